import json

import pytest

from app_facturas.sheets import Workbook, create_app
from app_facturas.sheets.server import CLIENT_HEADERS, INVOICE_HEADERS


INVOICE = {
    'id': 'f1',
    'clientId': 'c1',
    'createdAt': '2025-03-01T10:00:00+00:00',
    'updatedAt': '2025-03-01T10:00:00+00:00',
    'status': 'Abonado',
    'exchangeRate': 40.5,
    'pricePerKg': 15,
    'logisticsCost': 30,
    'amountPaid': '12,5',
    'grandTotalUsd': 62,
    'items': [{'id': 'i1', 'name': 'Vestido', 'quantity': 2, 'finalPrice': 15}],
}


def test_get_empty_workbook_returns_defaults(sheet_client):
    r = sheet_client.get('/')
    assert r.status_code == 200
    data = r.get_json()
    assert data['clients'] == []
    assert data['invoices'] == []
    assert data['expenses'] == []
    assert data['settings'] == {'exchangeRate': 40.5, 'pricePerKg': 15.43, 'formulaVersion': 2}


def test_post_then_get(sheet_client):
    r = sheet_client.post('/', json={
        'clients': [{'id': 'c1', 'name': 'Maria', 'phone': '0414'}],
        'invoices': [INVOICE],
        'expenses': [{'id': 'e1', 'description': 'Cajas', 'amount': '7,25', 'category': 'Material', 'date': '2025-03-02'}],
        'settings': {'exchangeRate': '41', 'pricePerKg': 15, 'formulaVersion': 2},
    })
    assert r.status_code == 200
    assert r.get_json() == {'status': 'success'}

    data = sheet_client.get('/').get_json()
    assert data['clients'] == [{'id': 'c1', 'name': 'Maria', 'phone': '0414', 'email': '', 'address': '', 'notes': ''}]

    invoice = data['invoices'][0]
    assert invoice['items'] == INVOICE['items']
    assert invoice['amountPaid'] == 12.5
    assert invoice['pricePerKg'] == 15
    # derived totals other than grandTotalUsd are not stored
    assert 'totalProductSale' not in invoice

    assert data['expenses'][0]['amount'] == 7.25
    assert data['settings']['exchangeRate'] == 41


def test_sheets_are_created_on_first_write(workbook, sheet_client):
    assert workbook.sheet_names() == []
    sheet_client.post('/', json={'clients': [], 'settings': {'exchangeRate': 40}})
    assert sorted(workbook.sheet_names()) == ['Clients', 'Settings']
    assert workbook.get_rows('Clients') == [CLIENT_HEADERS]


def test_post_replaces_only_present_collections(sheet_client):
    sheet_client.post('/', json={'clients': [{'id': 'c1', 'name': 'Maria'}]})
    sheet_client.post('/', json={'settings': {'exchangeRate': 50}})

    data = sheet_client.get('/').get_json()
    assert [c['id'] for c in data['clients']] == ['c1']
    assert data['settings']['exchangeRate'] == 50

    # a present collection is overwritten, never merged
    sheet_client.post('/', json={'clients': [{'id': 'c2', 'name': 'Ana'}]})
    data = sheet_client.get('/').get_json()
    assert [c['id'] for c in data['clients']] == ['c2']


def test_post_invalid_json_returns_error_envelope(sheet_client):
    r = sheet_client.post('/', data='no es json', content_type='text/plain')
    assert r.status_code == 200
    assert r.get_json()['status'] == 'error'


def test_post_invalid_collection_returns_error_envelope(sheet_client):
    r = sheet_client.post('/', json={'clients': 'Maria'})
    assert r.status_code == 200
    body = r.get_json()
    assert body['status'] == 'error'
    assert body['message']


def test_post_with_one_invalid_collection_writes_nothing(sheet_client):
    r = sheet_client.post('/', json={'clients': [{'id': 'c1', 'name': 'Maria'}]})
    assert r.get_json() == {'status': 'success'}

    r = sheet_client.post('/', json={'clients': [], 'invoices': 'roto'})
    assert r.get_json()['status'] == 'error'

    data = sheet_client.get('/').get_json()
    assert [c['id'] for c in data['clients']] == ['c1']
    assert data['invoices'] == []


def test_post_accepts_plain_text_body(sheet_client):
    r = sheet_client.post('/', data=json.dumps({'clients': [{'id': 'c1', 'name': 'Maria'}]}), content_type='text/plain')
    assert r.get_json() == {'status': 'success'}


def test_header_drift_is_repaired(tmp_path):
    path = tmp_path / 'workbook.json'
    path.write_text(json.dumps({
        'Invoices': [
            ['id', 'clientId', 'status', 'legacy'],
            ['f0', 'c0', 'Pagado', 'x'],
        ]
    }), encoding='utf-8')
    workbook = Workbook(str(path))
    app = create_app(workbook=workbook)

    with app.test_client() as c:
        # old rows are still readable by header name
        old = c.get('/').get_json()['invoices'][0]
        assert old['id'] == 'f0'
        assert old['status'] == 'Pagado'
        assert old['items'] == []
        assert old['pricePerKg'] == 0

        assert c.post('/', json={'invoices': [INVOICE]}).get_json() == {'status': 'success'}

    rows = workbook.get_rows('Invoices')
    assert rows[0] == INVOICE_HEADERS + ['legacy']
    assert len(rows) == 2
    assert rows[1][0] == 'f1'
    assert rows[1][-1] == ''
    assert json.loads(rows[1][INVOICE_HEADERS.index('items')]) == INVOICE['items']


def test_invalid_items_cell_reads_as_empty_list(workbook, sheet_client):
    workbook.write_records('Invoices', INVOICE_HEADERS, [dict(INVOICE, items=None)])
    rows = workbook.get_rows('Invoices')
    rows[1][INVOICE_HEADERS.index('items')] = '[{roto'
    workbook._write_raw({'Invoices': rows})

    invoice = sheet_client.get('/').get_json()['invoices'][0]
    assert invoice['items'] == []


def test_blank_rows_are_skipped(workbook, sheet_client):
    workbook._write_raw({'Clients': [CLIENT_HEADERS, ['', '', '', '', '', ''], ['c1', 'Maria', '', '', '', '']]})
    clients = sheet_client.get('/').get_json()['clients']
    assert [c['id'] for c in clients] == ['c1']


def test_corrupt_workbook_reads_as_empty(tmp_path):
    path = tmp_path / 'workbook.json'
    path.write_text('{corrupto', encoding='utf-8')
    app = create_app(workbook_path=str(path))
    with app.test_client() as c:
        assert c.get('/').get_json()['clients'] == []


def test_busy_lock_returns_error_envelopes(sheet_app, sheet_client):
    sheet_app.config['READ_LOCK_TIMEOUT'] = 0.01
    sheet_app.config['WRITE_LOCK_TIMEOUT'] = 0.01
    lock = sheet_app.extensions['facturas_lock']

    lock.acquire()
    try:
        assert 'error' in sheet_client.get('/').get_json()
        body = sheet_client.post('/', json={'clients': []}).get_json()
        assert body['status'] == 'error'
    finally:
        lock.release()

    assert sheet_client.post('/', json={'clients': []}).get_json() == {'status': 'success'}


def test_unsupported_method_uses_envelope(sheet_client):
    r = sheet_client.put('/', json={})
    assert r.status_code == 405
    assert r.get_json()['status'] == 'error'


@pytest.mark.parametrize('cell, expected', [('15,5', 15.5), ('', 0), ('abc', 0), (20, 20)])
def test_settings_values_are_coerced(workbook, sheet_client, cell, expected):
    workbook.write_settings({'pricePerKg': cell})
    assert sheet_client.get('/').get_json()['settings']['pricePerKg'] == expected
