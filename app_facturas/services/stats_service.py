# ==============================================================================
# SERVICIO DE ESTADÍSTICAS FINANCIERAS
# ==============================================================================
# Reportes del portafolio calculados sobre la caché local.
#
# REGLAS:
# - Borrador se ignora por completo
# - Deuda por cobrar: saldo pendiente de TODA factura no borrador
#   (Pendiente incluida)
# - Ingresos y ganancia realizada: solo Abonado / Pagado / Entregado
# - La ganancia se reconoce en proporción a lo cobrado (máximo 100%)
# ==============================================================================

from collections import defaultdict
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from app_facturas.models import (
    FINANCIALLY_ACTIVE_STATUSES,
    Client,
    Expense,
    ExpenseCategory,
    FormulaVersion,
    Invoice,
    InvoiceStatus,
)
from app_facturas.services import finance_service

UNKNOWN_CLIENT_NAME = 'Cliente desconocido'


class StatsService:
    """
    Servicio para cálculo de estadísticas financieras.

    Responsabilidades:
    - Ingresos, ganancia realizada, deuda y pedidos activos
    - Flujo de caja mensual
    - Resumen de gastos por categoría
    - Búsquedas y filtros simples para listados
    """

    def __init__(
        self,
        invoice_loader: Callable[[], List[Invoice]],
        expense_loader: Callable[[], List[Expense]] = None,
        client_loader: Callable[[], List[Client]] = None,
        version_loader: Callable[[], FormulaVersion] = None
    ):
        """
        Inicializa el servicio.

        Args:
            invoice_loader: Función que retorna las facturas (p. ej. store.get_invoices)
            expense_loader: Función que retorna los gastos
            client_loader: Función que retorna los clientes
            version_loader: Función que retorna la versión de fórmulas activa
        """
        self._invoice_loader = invoice_loader
        self._expense_loader = expense_loader or (lambda: [])
        self._client_loader = client_loader or (lambda: [])
        self._version_loader = version_loader or (lambda: FormulaVersion.V2)

    @classmethod
    def from_store(cls, store) -> 'StatsService':
        """Crea el servicio leyendo de un LocalStore."""
        return cls(
            invoice_loader=store.get_invoices,
            expense_loader=store.get_expenses,
            client_loader=store.get_clients,
            version_loader=store.get_formula_version,
        )

    # =========================================================================
    # ESTADÍSTICAS PRINCIPALES
    # =========================================================================

    def financial_stats(self) -> Dict[str, Any]:
        """
        Calcula las estadísticas del panel principal.

        Returns:
            Dict con revenue (dinero recibido), net_profit (ganancia
            realizada), pending (deuda por cobrar) y orders_count
            (pedidos no borrador)
        """
        version = self._version_loader()
        revenue = 0.0
        net_profit = 0.0
        pending = 0.0
        count = 0

        for invoice in self._invoice_loader():
            if invoice.status == InvoiceStatus.DRAFT:
                continue

            count += 1
            pending += finance_service.remaining_balance(
                invoice.grand_total_usd, invoice.amount_paid
            )

            if invoice.status in FINANCIALLY_ACTIVE_STATUSES:
                revenue += invoice.amount_paid
                net_profit += finance_service.invoice_realized_profit(invoice, version)

        return {
            'revenue': round(revenue, 2),
            'net_profit': round(net_profit, 2),
            'pending': round(pending, 2),
            'orders_count': count,
        }

    def monthly_cash_flow(self) -> List[Dict[str, Any]]:
        """
        Dinero cobrado agrupado por mes de creación ("M/AAAA").

        Solo facturas en estados activos con monto pagado > 0.

        Returns:
            Lista [{'name': '3/2025', 'value': 120.0}, ...] en orden cronológico
        """
        data = defaultdict(float)
        for invoice in self._invoice_loader():
            if invoice.status not in FINANCIALLY_ACTIVE_STATUSES or invoice.amount_paid <= 0:
                continue
            created = _parse_date(invoice.created_at)
            if created is None:
                continue
            data[(created.year, created.month)] += invoice.amount_paid

        return [
            {'name': f'{month}/{year}', 'value': round(value, 2)}
            for (year, month), value in sorted(data.items())
        ]

    def expense_summary(self) -> Dict[str, Any]:
        """
        Total de gastos y desglose por categoría.

        Returns:
            Dict con total y by_category {'Material': 10.0, ...}
        """
        by_category = {category.value: 0.0 for category in ExpenseCategory}
        total = 0.0
        for expense in self._expense_loader():
            category = ExpenseCategory.parse(expense.category).value
            by_category[category] += expense.amount
            total += expense.amount

        return {
            'total': round(total, 2),
            'by_category': {k: round(v, 2) for k, v in by_category.items()},
        }

    def net_balance(self) -> float:
        """Ganancia realizada menos gastos operativos."""
        stats = self.financial_stats()
        return round(stats['net_profit'] - self.expense_summary()['total'], 2)

    # =========================================================================
    # LISTADOS
    # =========================================================================

    def list_invoices(self, status: Optional[InvoiceStatus] = None) -> List[Invoice]:
        """
        Facturas ordenadas de la más reciente a la más antigua.

        Args:
            status: Filtrar por estado (None = todas)
        """
        invoices = self._invoice_loader()
        if status is not None:
            wanted = InvoiceStatus.parse(status)
            invoices = [i for i in invoices if i.status == wanted]
        return sorted(
            invoices,
            key=lambda i: _parse_date(i.created_at) or datetime.min,
            reverse=True
        )

    def client_name(self, client_id: str) -> str:
        """Nombre del cliente o 'Cliente desconocido' si fue eliminado."""
        for client in self._client_loader():
            if client.id == client_id:
                return client.name
        return UNKNOWN_CLIENT_NAME

    def search_clients(self, term: str) -> List[Client]:
        """Busca por nombre (sin distinguir mayúsculas) o por teléfono."""
        term = (term or '').strip()
        clients = self._client_loader()
        if not term:
            return clients
        low = term.lower()
        return [c for c in clients if low in c.name.lower() or term in c.phone]


def _parse_date(value: str) -> Optional[datetime]:
    """Parsea una fecha ISO; None si no se puede."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except (ValueError, TypeError):
        return None
    # Comparables entre sí sin importar la zona
    return parsed.replace(tzinfo=None)
