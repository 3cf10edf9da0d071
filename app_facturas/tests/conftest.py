from concurrent.futures import Future

import httpx
import pytest

from app_facturas.models import Client, Invoice, InvoiceStatus, ProductItem
from app_facturas.repositories import LocalStore
from app_facturas.sheets import Workbook, create_app
from app_facturas.sync import RemoteSyncClient

SHEETS_URL = 'http://sheets.test/'


class FakeRemote:
    """Remote double: records every pushed dataset and serves a fixed pull."""

    def __init__(self, pull_result=None, push_result=True):
        self.pull_result = pull_result
        self.push_result = push_result
        self.pulls = 0
        self.pushes = []

    def pull(self):
        self.pulls += 1
        return self.pull_result

    def push(self, dataset):
        self.pushes.append(dataset)
        future = Future()
        future.set_result(self.push_result)
        return future

    def flush(self, timeout=None):
        return True


@pytest.fixture
def fake_remote():
    return FakeRemote()


@pytest.fixture
def store(fake_remote):
    return LocalStore(remote=fake_remote)


@pytest.fixture
def workbook(tmp_path):
    return Workbook(str(tmp_path / 'workbook.json'))


@pytest.fixture
def sheet_app(workbook):
    app = create_app(workbook=workbook)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def sheet_client(sheet_app):
    with sheet_app.test_client() as c:
        yield c


@pytest.fixture
def remote(sheet_app):
    client = RemoteSyncClient(
        SHEETS_URL,
        transport=httpx.WSGITransport(app=sheet_app),
        retry_backoff=0
    )
    yield client
    client.close()


@pytest.fixture
def maria():
    return Client(id='c-maria', name='Maria', phone='04141234567')


def make_invoice(client_id='c-maria', status=InvoiceStatus.PENDING, **item_overrides):
    """Invoice with a single 1 kg line: 2 units at 10 -> 15, commission 1."""
    item = dict(
        name='Vestido',
        quantity=2,
        weight=1,
        weight_unit='kg',
        original_price=10,
        final_price=15,
        commission=1,
    )
    item.update(item_overrides)
    return Invoice(client_id=client_id, status=status, items=[ProductItem(**item)])


@pytest.fixture
def invoice_factory():
    return make_invoice
