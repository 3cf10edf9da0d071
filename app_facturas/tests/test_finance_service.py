import pytest

from app_facturas.models import FormulaVersion, Invoice, InvoiceStatus, ProductItem
from app_facturas.services import finance_service as fs


def test_weight_conversion():
    assert fs.weight_in_kg(2.20462, 'lb') == pytest.approx(1.0)
    assert fs.weight_in_kg(3, 'kg') == 3
    items = [
        ProductItem(weight=2.20462, weight_unit='lb', quantity=2),
        ProductItem(weight=1, weight_unit='kg', quantity=1),
    ]
    assert fs.total_weight_kg(items) == pytest.approx(3.0)


def test_logistics_by_weight():
    items = [ProductItem(weight=1, weight_unit='kg', quantity=2)]
    result = fs.calculate_logistics(items, 15)
    assert result['cost'] == 30.0
    assert result['total_weight'] == 2.0
    assert result['weight_cost'] == 30.0
    assert result['electronics_tax'] == 0.0


def test_electronics_surcharge_v1_uses_original_price():
    items = [ProductItem(original_price=100, quantity=2, taxes=10, discounts=5, is_electronics=True)]
    assert fs.electronics_surcharge(items, FormulaVersion.V1) == pytest.approx(40.0)


def test_electronics_surcharge_v2_subtracts_adjustments():
    items = [
        ProductItem(original_price=100, quantity=2, taxes=10, discounts=5, is_electronics=True),
        ProductItem(original_price=50, quantity=1),  # not electronics
    ]
    assert fs.electronics_surcharge(items, FormulaVersion.V2) == pytest.approx(34.0)
    result = fs.calculate_logistics(items, 0, FormulaVersion.V2)
    assert result['cost'] == 34.0


def test_derive_final_price():
    adjusted = ProductItem(original_price=100, taxes=10, discounts=5, final_price=1)
    plain = ProductItem(original_price=100, final_price=120)

    assert fs.derive_final_price(adjusted, FormulaVersion.V2) == 95.0
    assert fs.derive_final_price(plain, FormulaVersion.V2) == 120.0
    # V1 always keeps the typed price
    assert fs.derive_final_price(adjusted, FormulaVersion.V1) == 1.0


def test_normalize_items_does_not_touch_input():
    item = ProductItem(original_price=100, taxes=10, final_price=1)
    normalized = fs.normalize_items([item])
    assert normalized[0].final_price == 90.0
    assert item.final_price == 1


def test_totals_include_logistics_and_commissions():
    items = [ProductItem(quantity=2, original_price=10, final_price=15, commission=1)]
    totals = fs.calculate_totals(items, 30)
    assert totals == {
        'total_product_cost': 20.0,
        'total_product_sale': 30.0,
        'total_commissions': 2.0,
        'grand_total_usd': 62.0,
    }


def test_apply_totals_ignores_stored_values():
    invoice = Invoice(
        items=[ProductItem(quantity=1, final_price=10)],
        logistics_cost=5,
        grand_total_usd=999,
    )
    fs.apply_totals(invoice)
    assert invoice.grand_total_usd == 15.0


def test_balances():
    assert fs.remaining_balance(62, 20) == 42.0
    assert fs.remaining_balance(62, 100) == 0.0
    assert fs.percent_paid(200, 50) == pytest.approx(25.0)
    assert fs.percent_paid(0, 50) == 0.0
    assert fs.grand_total_local(10, 40.5) == 405.0


def test_invoice_remaining_balance_rounds_half_up():
    invoice = Invoice(grand_total_usd=2.675, amount_paid=0)
    assert invoice.remaining_balance == 2.68
    assert invoice.remaining_balance == fs.remaining_balance(2.675, 0)
    assert Invoice(grand_total_usd=10, amount_paid=15).remaining_balance == 0.0


def test_unit_gain_per_version():
    item = ProductItem(original_price=10, taxes=2, final_price=12, commission=1)
    assert fs.unit_gain(item, FormulaVersion.V1) == pytest.approx(3.0)
    assert fs.unit_gain(item, FormulaVersion.V2) == pytest.approx(5.0)


def test_realized_profit_is_proportional_and_capped():
    assert fs.realized_profit(100, 200, 50) == pytest.approx(25.0)
    assert fs.realized_profit(100, 200, 300) == pytest.approx(100.0)
    assert fs.realized_profit(100, 0, 50) == 0.0


def test_invoice_realized_profit_ignores_pending():
    invoice = Invoice(
        status=InvoiceStatus.PENDING,
        items=[ProductItem(quantity=1, original_price=10, final_price=15)],
    )
    fs.apply_totals(invoice)
    assert fs.invoice_realized_profit(invoice) == 0.0

    invoice.status = InvoiceStatus.PAID
    invoice.amount_paid = invoice.grand_total_usd
    assert fs.invoice_realized_profit(invoice) == pytest.approx(5.0)


@pytest.mark.parametrize('status, amount, expected', [
    (InvoiceStatus.PENDING, 0, InvoiceStatus.PENDING),
    (InvoiceStatus.PENDING, 10, InvoiceStatus.PARTIAL),
    (InvoiceStatus.PARTIAL, 62, InvoiceStatus.PAID),
    (InvoiceStatus.PAID, 70, InvoiceStatus.PAID),
    (InvoiceStatus.PAID, -5, InvoiceStatus.PENDING),
    (InvoiceStatus.DRAFT, 62, InvoiceStatus.DRAFT),
    (InvoiceStatus.DELIVERED, 0, InvoiceStatus.DELIVERED),
])
def test_status_for_amount(status, amount, expected):
    assert fs.status_for_amount(status, amount, 62) == expected


def _invoice(status=InvoiceStatus.PENDING, amount_paid=0):
    # grand total 62
    return Invoice(
        status=status,
        amount_paid=amount_paid,
        logistics_cost=30,
        items=[ProductItem(quantity=2, original_price=10, final_price=15, commission=1)],
    )


def test_change_status_couples_amount():
    invoice = fs.change_status(_invoice(amount_paid=10), InvoiceStatus.PAID)
    assert invoice.amount_paid == 62.0

    invoice = fs.change_status(invoice, InvoiceStatus.PENDING)
    assert invoice.amount_paid == 0.0

    invoice = fs.change_status(_invoice(amount_paid=10), InvoiceStatus.DELIVERED)
    assert invoice.amount_paid == 62.0

    invoice = fs.change_status(_invoice(amount_paid=10), InvoiceStatus.PARTIAL)
    assert invoice.amount_paid == 10.0


def test_change_amount_paid_keeps_delivered():
    invoice = fs.change_amount_paid(_invoice(status=InvoiceStatus.DELIVERED, amount_paid=62), 10)
    assert invoice.status == InvoiceStatus.DELIVERED
    assert invoice.amount_paid == 10.0


def test_change_amount_paid_from_text():
    invoice = fs.change_amount_paid(_invoice(), '31,5')
    assert invoice.status == InvoiceStatus.PARTIAL
    assert invoice.amount_paid == 31.5


def test_apply_deposit():
    invoice = fs.apply_deposit(_invoice())
    assert invoice.amount_paid == 43.4
    assert invoice.status == InvoiceStatus.PARTIAL

    draft = fs.apply_deposit(_invoice(status=InvoiceStatus.DRAFT))
    assert draft.amount_paid == 43.4
    assert draft.status == InvoiceStatus.DRAFT
