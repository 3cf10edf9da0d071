import pytest

from app_facturas.models import (
    Client,
    Expense,
    ExpenseCategory,
    FormulaVersion,
    Invoice,
    InvoiceStatus,
    ProductItem,
)
from app_facturas.services import StatsService, UNKNOWN_CLIENT_NAME, finance_service


def _invoice(id_, status, amount_paid, created_at):
    # grand total 20, theoretical profit 10 (V2)
    invoice = Invoice(
        id=id_,
        client_id='c1',
        status=status,
        amount_paid=amount_paid,
        created_at=created_at,
        items=[ProductItem(quantity=1, original_price=10, final_price=20)],
    )
    return finance_service.apply_totals(invoice)


@pytest.fixture
def invoices():
    return [
        _invoice('draft', InvoiceStatus.DRAFT, 20, '2025-01-05T10:00:00Z'),
        _invoice('pending', InvoiceStatus.PENDING, 0, '2025-01-10T10:00:00Z'),
        _invoice('partial', InvoiceStatus.PARTIAL, 10, '2025-01-20T10:00:00+00:00'),
        _invoice('paid', InvoiceStatus.PAID, 20, '2025-02-01T10:00:00'),
        _invoice('delivered', InvoiceStatus.DELIVERED, 20, '2024-12-31T23:00:00Z'),
    ]


@pytest.fixture
def service(invoices):
    clients = [Client(id='c1', name='Maria Perez', phone='04141234567'), Client(id='c2', name='Ana')]
    expenses = [
        Expense(id='e1', description='Cajas', amount=5, category=ExpenseCategory.MATERIAL),
        Expense(id='e2', description='Taxi', amount=2.5, category=ExpenseCategory.TRANSPORT),
    ]
    return StatsService(
        invoice_loader=lambda: invoices,
        expense_loader=lambda: expenses,
        client_loader=lambda: clients,
    )


def test_financial_stats(service):
    stats = service.financial_stats()
    # drafts are ignored; pending counts only as debt
    assert stats['orders_count'] == 4
    assert stats['revenue'] == 50.0
    assert stats['pending'] == 30.0
    # 10 * 0.5 + 10 + 10
    assert stats['net_profit'] == 25.0


def test_financial_stats_uses_formula_version(invoices):
    service = StatsService(lambda: invoices, version_loader=lambda: FormulaVersion.V1)
    assert service.financial_stats()['net_profit'] == 25.0


def test_monthly_cash_flow(service):
    assert service.monthly_cash_flow() == [
        {'name': '12/2024', 'value': 20.0},
        {'name': '1/2025', 'value': 10.0},
        {'name': '2/2025', 'value': 20.0},
    ]


def test_expense_summary_and_net_balance(service):
    summary = service.expense_summary()
    assert summary['total'] == 7.5
    assert summary['by_category'] == {'Material': 5.0, 'Servicio': 0.0, 'Transporte': 2.5, 'Otro': 0.0}
    assert service.net_balance() == 17.5


def test_list_invoices_newest_first(service):
    ids = [i.id for i in service.list_invoices()]
    assert ids == ['paid', 'partial', 'pending', 'draft', 'delivered']
    assert [i.id for i in service.list_invoices(InvoiceStatus.PAID)] == ['paid']
    assert [i.id for i in service.list_invoices('Pendiente')] == ['pending']


def test_client_lookup_and_search(service):
    assert service.client_name('c1') == 'Maria Perez'
    assert service.client_name('borrado') == UNKNOWN_CLIENT_NAME
    assert [c.id for c in service.search_clients('maria')] == ['c1']
    assert [c.id for c in service.search_clients('0414')] == ['c1']
    assert len(service.search_clients('')) == 2


def test_empty_portfolio():
    service = StatsService(lambda: [])
    assert service.financial_stats() == {'revenue': 0, 'net_profit': 0, 'pending': 0, 'orders_count': 0}
    assert service.monthly_cash_flow() == []
    assert service.expense_summary()['total'] == 0
