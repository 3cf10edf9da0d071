# ==============================================================================
# MOTOR DE FÓRMULAS FINANCIERAS
# ==============================================================================
# Funciones puras: a partir de los productos de una factura y la
# configuración (tasa, precio por kg, versión de fórmulas) calculan peso,
# logística, totales, ganancia y las transiciones estado <-> monto pagado.
#
# VERSIONES DE FÓRMULAS (ver FormulaVersion):
# - V1: precio final editable; recargo electrónico = original * 20%;
#       ganancia unitaria = (final - original) + comisión
# - V2: precio final = original - impuestos + descuentos (si hay ajustes);
#       recargo electrónico = (original - impuestos - descuentos) * 20%;
#       ganancia unitaria = final + comisión - (original - impuestos)
# ==============================================================================

import copy
from typing import Any, Dict, Iterable, List, Optional

from app_facturas.models import (
    FINANCIALLY_ACTIVE_STATUSES,
    FormulaVersion,
    Invoice,
    InvoiceStatus,
    ProductItem,
)
from app_facturas.numbers import round2, safe_number


LB_PER_KG = 2.20462
ELECTRONICS_RATE = 0.20
DEPOSIT_RATIO = 0.70


# =========================================================================
# PESO
# =========================================================================

def weight_in_kg(weight: float, unit: str) -> float:
    """
    Normaliza un peso a kilogramos.

    Args:
        weight: Peso en la unidad indicada
        unit: 'lb' o 'kg'

    Returns:
        Peso en kg
    """
    weight = safe_number(weight)
    if unit == 'lb':
        return weight / LB_PER_KG
    return weight


def total_weight_kg(items: Iterable[ProductItem]) -> float:
    """Peso total de la factura en kg (peso unitario * cantidad)."""
    return sum(weight_in_kg(i.weight, i.weight_unit) * safe_number(i.quantity) for i in items)


# =========================================================================
# PRECIO FINAL Y AJUSTES
# =========================================================================

def _taxes(item: ProductItem) -> float:
    return safe_number(item.taxes)


def _discounts(item: ProductItem) -> float:
    return safe_number(item.discounts)


def derive_final_price(item: ProductItem, version: FormulaVersion = FormulaVersion.V2) -> float:
    """
    Precio final de venta de una línea.

    En V2, si la línea tiene impuestos o descuentos, el precio final se
    deriva (original - impuestos + descuentos). En cualquier otro caso se
    respeta el precio ingresado.
    """
    if version == FormulaVersion.V2 and item.has_adjustments:
        return round2(safe_number(item.original_price) - _taxes(item) + _discounts(item))
    return safe_number(item.final_price)


def normalize_items(
    items: Iterable[ProductItem],
    version: FormulaVersion = FormulaVersion.V2
) -> List[ProductItem]:
    """
    Devuelve copias de los productos con el precio final derivado aplicado.

    Args:
        items: Productos de la factura
        version: Versión de fórmulas

    Returns:
        Nueva lista (los originales no se modifican)
    """
    result = []
    for item in items:
        clone = copy.deepcopy(item)
        clone.final_price = derive_final_price(clone, version)
        result.append(clone)
    return result


# =========================================================================
# LOGÍSTICA
# =========================================================================

def electronics_surcharge(
    items: Iterable[ProductItem],
    version: FormulaVersion = FormulaVersion.V2
) -> float:
    """Recargo del 20% sobre los productos electrónicos (sin redondear)."""
    total = 0.0
    for item in items:
        if not item.is_electronics:
            continue
        base = safe_number(item.original_price)
        if version == FormulaVersion.V2:
            base = base - _taxes(item) - _discounts(item)
        total += base * safe_number(item.quantity) * ELECTRONICS_RATE
    return total


def calculate_logistics(
    items: List[ProductItem],
    price_per_kg: float,
    version: FormulaVersion = FormulaVersion.V2
) -> Dict[str, float]:
    """
    Calcula el costo de logística sugerido.

    Args:
        items: Productos de la factura
        price_per_kg: Tarifa por kg (global o congelada en la factura)
        version: Versión de fórmulas

    Returns:
        Dict con cost, total_weight, weight_cost, electronics_tax
        (todos redondeados a 2 decimales)
    """
    total_kg = total_weight_kg(items)
    weight_cost = total_kg * safe_number(price_per_kg)
    electronics_tax = electronics_surcharge(items, version)

    return {
        'cost': round2(weight_cost + electronics_tax),
        'total_weight': round2(total_kg),
        'weight_cost': round2(weight_cost),
        'electronics_tax': round2(electronics_tax),
    }


# =========================================================================
# TOTALES
# =========================================================================

def calculate_totals(items: Iterable[ProductItem], logistics_cost: float) -> Dict[str, float]:
    """
    Calcula los totales derivados de una factura.

    grand_total_usd = venta de productos + logística + comisiones

    Args:
        items: Productos (con precio final ya derivado)
        logistics_cost: Costo de logística de la factura

    Returns:
        Dict con total_product_cost, total_product_sale,
        total_commissions, grand_total_usd
    """
    items = list(items)
    total_cost = sum(safe_number(i.original_price) * safe_number(i.quantity) for i in items)
    total_sale = sum(safe_number(i.final_price) * safe_number(i.quantity) for i in items)
    total_commissions = sum(safe_number(i.commission) * safe_number(i.quantity) for i in items)
    logistics = safe_number(logistics_cost)

    return {
        'total_product_cost': round2(total_cost),
        'total_product_sale': round2(total_sale),
        'total_commissions': round2(total_commissions),
        'grand_total_usd': round2(total_sale + logistics + total_commissions),
    }


def apply_totals(invoice: Invoice) -> Invoice:
    """Recalcula en sitio los totales derivados de la factura y la retorna."""
    totals = calculate_totals(invoice.items, invoice.logistics_cost)
    invoice.total_product_cost = totals['total_product_cost']
    invoice.total_product_sale = totals['total_product_sale']
    invoice.total_commissions = totals['total_commissions']
    invoice.grand_total_usd = totals['grand_total_usd']
    return invoice


def remaining_balance(grand_total: float, amount_paid: float) -> float:
    """Saldo pendiente: max(0, total - pagado)."""
    return max(0.0, round2(safe_number(grand_total) - safe_number(amount_paid)))


def percent_paid(grand_total: float, amount_paid: float) -> float:
    """Porcentaje pagado (0 si el total es 0)."""
    grand_total = safe_number(grand_total)
    if grand_total <= 0:
        return 0.0
    return safe_number(amount_paid) / grand_total * 100


def grand_total_local(grand_total: float, exchange_rate: float) -> float:
    """Total en moneda local (Bs) según la tasa de la factura."""
    return round2(safe_number(grand_total) * safe_number(exchange_rate))


# =========================================================================
# GANANCIA
# =========================================================================

def unit_gain(item: ProductItem, version: FormulaVersion = FormulaVersion.V2) -> float:
    """Ganancia por unidad de una línea según la versión de fórmulas."""
    final_price = safe_number(item.final_price)
    original = safe_number(item.original_price)
    commission = safe_number(item.commission)
    if version == FormulaVersion.V1:
        return (final_price - original) + commission
    return final_price + commission - (original - _taxes(item))


def theoretical_profit(
    items: Iterable[ProductItem],
    version: FormulaVersion = FormulaVersion.V2
) -> float:
    """Ganancia teórica de la factura (suma de ganancia unitaria * cantidad)."""
    return sum(unit_gain(i, version) * safe_number(i.quantity) for i in items)


def realized_profit(profit: float, grand_total: float, amount_paid: float) -> float:
    """
    Ganancia reconocida en proporción a lo cobrado, sin superar el 100%.

    Args:
        profit: Ganancia teórica
        grand_total: Total de la factura
        amount_paid: Monto pagado

    Returns:
        profit * min(1, pagado / total)  (0 si el total es 0)
    """
    grand_total = safe_number(grand_total)
    if grand_total <= 0:
        return 0.0
    ratio = min(1.0, safe_number(amount_paid) / grand_total)
    return safe_number(profit) * ratio


def invoice_realized_profit(invoice: Invoice, version: FormulaVersion = FormulaVersion.V2) -> float:
    """Ganancia realizada de una factura; solo Abonado/Pagado/Entregado cuentan."""
    if invoice.status not in FINANCIALLY_ACTIVE_STATUSES:
        return 0.0
    return realized_profit(
        theoretical_profit(invoice.items, version),
        invoice.grand_total_usd,
        invoice.amount_paid
    )


# =========================================================================
# ACOPLAMIENTO ESTADO <-> MONTO PAGADO
# =========================================================================

def amount_for_status(status: InvoiceStatus, amount_paid: float, grand_total: float) -> float:
    """
    Monto pagado resultante al cambiar el estado.

    Pagado/Entregado -> total; Pendiente -> 0; resto sin cambios.
    """
    if status in (InvoiceStatus.PAID, InvoiceStatus.DELIVERED):
        return round2(grand_total)
    if status == InvoiceStatus.PENDING:
        return 0.0
    return safe_number(amount_paid)


def status_for_amount(status: InvoiceStatus, amount_paid: float, grand_total: float) -> InvoiceStatus:
    """
    Estado resultante al editar el monto pagado.

    Borrador no cambia; Entregado es "pegajoso". En los demás casos:
    monto <= 0 -> Pendiente; 0 < monto < total -> Abonado;
    monto >= total -> Pagado.
    """
    total = round2(grand_total)
    amount = safe_number(amount_paid)

    if status in (InvoiceStatus.DRAFT, InvoiceStatus.DELIVERED) or total <= 0:
        return status
    if amount <= 0:
        return InvoiceStatus.PENDING
    if amount < total:
        return InvoiceStatus.PARTIAL
    return InvoiceStatus.PAID


def change_status(invoice: Invoice, new_status: InvoiceStatus) -> Invoice:
    """Aplica un cambio de estado (y su efecto sobre el monto) en sitio."""
    new_status = InvoiceStatus.parse(new_status)
    apply_totals(invoice)
    invoice.status = new_status
    invoice.amount_paid = amount_for_status(new_status, invoice.amount_paid, invoice.grand_total_usd)
    return invoice


def change_amount_paid(invoice: Invoice, amount: Any) -> Invoice:
    """Aplica un nuevo monto pagado (y su efecto sobre el estado) en sitio."""
    apply_totals(invoice)
    invoice.amount_paid = safe_number(amount)
    invoice.status = status_for_amount(invoice.status, invoice.amount_paid, invoice.grand_total_usd)
    return invoice


def apply_deposit(invoice: Invoice, ratio: Optional[float] = None) -> Invoice:
    """
    Registra un abono porcentual del total (70% por defecto).

    El estado pasa a Abonado salvo que la factura sea Borrador o Entregado.
    """
    ratio = DEPOSIT_RATIO if ratio is None else safe_number(ratio)
    apply_totals(invoice)
    invoice.amount_paid = round2(invoice.grand_total_usd * ratio)
    if invoice.status not in (InvoiceStatus.DRAFT, InvoiceStatus.DELIVERED):
        invoice.status = InvoiceStatus.PARTIAL
    return invoice
