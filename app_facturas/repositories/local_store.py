# ==============================================================================
# ALMACÉN LOCAL (CACHÉ EN MEMORIA)
# ==============================================================================
# Espejo en memoria de clientes, facturas, gastos y configuración.
#
# - Lecturas siempre desde memoria (nunca van a la red)
# - Escrituras optimistas: se aplican en memoria, se notifica a los
#   suscriptores y DESPUÉS se programa el envío del dataset completo
# - init()/refresh() es la única lectura remota
#
# Una instancia por aplicación (ver app_container.py); los tests crean
# una nueva por caso.
# ==============================================================================

import copy
import logging
import threading
import uuid
from concurrent.futures import Future
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from app_facturas.models import (
    Client,
    Expense,
    FormulaVersion,
    Invoice,
    InvoiceStatus,
    Settings,
    ValidationError,
)
from app_facturas.numbers import safe_number
from app_facturas.repositories.interfaces import IRemoteSync
from app_facturas.services import finance_service

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
T = TypeVar('T')


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return str(uuid.uuid4())


def _index_of(records: List[Any], record_id: str) -> int:
    """Posición del registro con ese id, o -1."""
    if not record_id:
        return -1
    for i, record in enumerate(records):
        if record.id == record_id:
            return i
    return -1


def _completed_future(result: bool) -> 'Future[bool]':
    future = Future()
    future.set_result(result)
    return future


class LocalStore:
    """
    Caché local del dataset completo.

    Uso:
        store = LocalStore(remote=RemoteSyncClient(url))
        store.init()
        unsubscribe = store.subscribe(lambda: print('cambió'))
        store.save_client(Client(name='Maria', phone='0414-0000000'))
    """

    def __init__(self, remote: Optional[IRemoteSync] = None):
        """
        Inicializa el almacén vacío.

        Args:
            remote: Sincronizador remoto (None = solo memoria)
        """
        self._remote = remote
        self._lock = threading.RLock()
        self._clients: List[Client] = []
        self._invoices: List[Invoice] = []
        self._expenses: List[Expense] = []
        self._settings = Settings()
        self._listeners: List[Listener] = []
        self._pending_push: Optional['Future[bool]'] = None

    # =========================================================================
    # SUSCRIPCIONES
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Registra un callback sin argumentos que se invoca tras cada cambio.

        Args:
            listener: Función a invocar

        Returns:
            Función que cancela la suscripción
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        """Notifica de forma síncrona; un suscriptor con error no bloquea a los demás."""
        for listener in list(self._listeners):
            try:
                listener()
            except Exception:
                logger.exception('[STORE] Error en suscriptor %r', listener)

    # =========================================================================
    # SINCRONIZACIÓN
    # =========================================================================

    @property
    def pending_push(self) -> Optional['Future[bool]']:
        """Future del último envío programado (None si no hubo cambios)."""
        return self._pending_push

    def _push(self) -> 'Future[bool]':
        if self._remote is None:
            future = _completed_future(True)
        else:
            future = self._remote.push(self.snapshot())
        self._pending_push = future
        return future

    def _commit(self) -> 'Future[bool]':
        """Notificar primero, luego enviar (la UI nunca espera a la red)."""
        self._notify()
        return self._push()

    def init(self) -> bool:
        """
        Descarga el dataset remoto y reemplaza la caché completa.

        Si falla, la caché actual queda intacta.

        Returns:
            True si se cargaron datos remotos
        """
        if self._remote is None:
            logger.warning('[STORE] Sin sincronizador remoto; se omite la carga inicial')
            return False

        data = self._remote.pull()
        if data is None:
            return False

        try:
            self.replace_all(data)
        except (TypeError, ValueError) as e:
            logger.error('[STORE] Dataset remoto inválido: %s', e)
            return False

        logger.info(
            '[STORE] Datos descargados: %d clientes, %d facturas, %d gastos',
            len(self._clients), len(self._invoices), len(self._expenses)
        )
        return True

    def refresh(self) -> bool:
        """Recarga forzada desde el remoto (igual que init)."""
        return self.init()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Espera a que terminen los envíos pendientes.

        Returns:
            True si no quedaron envíos en curso
        """
        if self._remote is None:
            return True
        return self._remote.flush(timeout)

    def snapshot(self) -> Dict[str, Any]:
        """Dataset completo en formato de intercambio (camelCase)."""
        with self._lock:
            return {
                'clients': [c.to_dict() for c in self._clients],
                'invoices': [self._view_invoice(i).to_dict() for i in self._invoices],
                'expenses': [e.to_dict() for e in self._expenses],
                'settings': self._settings.to_dict(),
            }

    def replace_all(self, dataset: Dict[str, Any]) -> None:
        """
        Reemplaza atómicamente las cuatro colecciones y notifica una vez.

        Todo se interpreta antes de tocar la caché: si algo falla, nada cambia.

        Args:
            dataset: Dataset en formato de intercambio

        Raises:
            ValueError: Si el dataset no es un diccionario
        """
        if not isinstance(dataset, dict):
            raise ValueError('El dataset debe ser un objeto JSON')

        def records(key: str) -> List[Dict[str, Any]]:
            value = dataset.get(key)
            if not isinstance(value, list):
                return []
            return [r for r in value if isinstance(r, dict)]

        clients = [Client.from_dict(r) for r in records('clients')]
        invoices = [Invoice.from_dict(r) for r in records('invoices')]
        expenses = [Expense.from_dict(r) for r in records('expenses')]
        settings = Settings.from_dict(dataset.get('settings'))

        with self._lock:
            self._clients = clients
            self._invoices = invoices
            self._expenses = expenses
            self._settings = settings
            self._notify()

    # =========================================================================
    # CLIENTES
    # =========================================================================

    def get_clients(self) -> List[Client]:
        """Copia de todos los clientes."""
        with self._lock:
            return copy.deepcopy(self._clients)

    def get_client(self, client_id: str) -> Optional[Client]:
        with self._lock:
            idx = _index_of(self._clients, client_id)
            return copy.deepcopy(self._clients[idx]) if idx >= 0 else None

    def save_client(self, client: Client) -> Client:
        """
        Crea o reemplaza un cliente.

        Args:
            client: Cliente a guardar (si el id no existe se agrega)

        Returns:
            Copia del cliente guardado (con id asignado)

        Raises:
            ValidationError: Si falta el nombre
        """
        client.validate()
        stored = copy.deepcopy(client)
        with self._lock:
            self._upsert(self._clients, stored)
            self._commit()
            return copy.deepcopy(stored)

    def delete_client(self, client_id: str) -> bool:
        """Elimina un cliente (las facturas conservan la referencia)."""
        with self._lock:
            removed = self._remove(self._clients, client_id)
            self._commit()
            return removed

    # =========================================================================
    # FACTURAS
    # =========================================================================

    def _view_invoice(self, invoice: Invoice) -> Invoice:
        """Vista recalculada: totales nunca se toman del valor persistido."""
        view = copy.deepcopy(invoice)
        if view.exchange_rate <= 0:
            view.exchange_rate = self._settings.exchange_rate or 1
        return finance_service.apply_totals(view)

    def _prepare_invoice(self, invoice: Invoice) -> Invoice:
        """Aplica fórmulas de escritura: precio final, logística, tasas y fechas."""
        version = self._settings.formula_version
        for item in invoice.items:
            if not item.id:
                item.id = _new_id()
        invoice.items = finance_service.normalize_items(invoice.items, version)

        if not invoice.price_per_kg or invoice.price_per_kg <= 0:
            invoice.price_per_kg = self._settings.price_per_kg
        if invoice.exchange_rate <= 0:
            invoice.exchange_rate = self._settings.exchange_rate

        logistics = finance_service.calculate_logistics(
            invoice.items, invoice.price_per_kg, version
        )
        invoice.logistics_cost = logistics['cost']
        invoice.amount_paid = safe_number(invoice.amount_paid)
        invoice.status = InvoiceStatus.parse(invoice.status)

        now = _now_iso()
        invoice.updated_at = now
        if not invoice.created_at:
            invoice.created_at = now
        return finance_service.apply_totals(invoice)

    def get_invoices(self) -> List[Invoice]:
        """Todas las facturas con totales recalculados."""
        with self._lock:
            return [self._view_invoice(i) for i in self._invoices]

    def get_invoice(self, invoice_id: str) -> Optional[Invoice]:
        with self._lock:
            idx = _index_of(self._invoices, invoice_id)
            return self._view_invoice(self._invoices[idx]) if idx >= 0 else None

    def save_invoice(self, invoice: Invoice) -> Invoice:
        """
        Crea o reemplaza una factura recalculando sus campos derivados.

        Args:
            invoice: Factura a guardar

        Returns:
            Vista de la factura guardada

        Raises:
            ValidationError: Si no tiene cliente o un producto es inválido
        """
        invoice.validate()
        stored = copy.deepcopy(invoice)
        with self._lock:
            self._prepare_invoice(stored)
            self._upsert(self._invoices, stored)
            self._commit()
            return self._view_invoice(stored)

    def delete_invoice(self, invoice_id: str) -> bool:
        with self._lock:
            removed = self._remove(self._invoices, invoice_id)
            self._commit()
            return removed

    def _mutate_invoice(self, invoice_id: str, mutation: Callable[[Invoice], Any]) -> Optional[Invoice]:
        with self._lock:
            idx = _index_of(self._invoices, invoice_id)
            if idx < 0:
                logger.warning('[STORE] Factura no encontrada: %s', invoice_id)
                return None
            invoice = self._invoices[idx]
            mutation(invoice)
            invoice.updated_at = _now_iso()
            self._commit()
            return self._view_invoice(invoice)

    def update_invoice_status(self, invoice_id: str, status: InvoiceStatus) -> Optional[Invoice]:
        """
        Cambia el estado de una factura.
        Pagado/Entregado fijan el monto al total; Pendiente lo pone en 0.
        """
        return self._mutate_invoice(
            invoice_id, lambda inv: finance_service.change_status(inv, status)
        )

    def set_amount_paid(self, invoice_id: str, amount: Any) -> Optional[Invoice]:
        """
        Registra el monto pagado y deriva el estado (salvo Borrador/Entregado).
        """
        return self._mutate_invoice(
            invoice_id, lambda inv: finance_service.change_amount_paid(inv, amount)
        )

    def apply_deposit(self, invoice_id: str, ratio: Optional[float] = None) -> Optional[Invoice]:
        """Registra un abono del 70% (o el porcentaje indicado) del total."""
        return self._mutate_invoice(
            invoice_id, lambda inv: finance_service.apply_deposit(inv, ratio)
        )

    # =========================================================================
    # GASTOS
    # =========================================================================

    def get_expenses(self) -> List[Expense]:
        with self._lock:
            return copy.deepcopy(self._expenses)

    def get_expense(self, expense_id: str) -> Optional[Expense]:
        with self._lock:
            idx = _index_of(self._expenses, expense_id)
            return copy.deepcopy(self._expenses[idx]) if idx >= 0 else None

    def save_expense(self, expense: Expense) -> Expense:
        """
        Crea o reemplaza un gasto.

        Raises:
            ValidationError: Sin descripción o con monto <= 0
        """
        expense.validate()
        stored = copy.deepcopy(expense)
        if not stored.date:
            stored.date = date.today().isoformat()
        with self._lock:
            self._upsert(self._expenses, stored)
            self._commit()
            return copy.deepcopy(stored)

    def delete_expense(self, expense_id: str) -> bool:
        with self._lock:
            removed = self._remove(self._expenses, expense_id)
            self._commit()
            return removed

    # =========================================================================
    # CONFIGURACIÓN
    # =========================================================================

    def get_settings(self) -> Settings:
        with self._lock:
            return copy.deepcopy(self._settings)

    def get_exchange_rate(self) -> float:
        return self._settings.exchange_rate

    def set_exchange_rate(self, rate: Any) -> 'Future[bool]':
        """
        Establece la tasa de cambio global.

        Raises:
            ValidationError: Si la tasa es negativa
        """
        return self._update_settings(exchange_rate=safe_number(rate))

    def get_price_per_kg(self) -> float:
        return self._settings.price_per_kg

    def set_price_per_kg(self, price: Any) -> 'Future[bool]':
        """Establece el precio por kg global (no afecta facturas ya guardadas)."""
        return self._update_settings(price_per_kg=safe_number(price))

    def get_formula_version(self) -> FormulaVersion:
        return self._settings.formula_version

    def set_formula_version(self, version: Any) -> 'Future[bool]':
        return self._update_settings(formula_version=FormulaVersion.parse(version))

    def _update_settings(self, **changes: Any) -> 'Future[bool]':
        with self._lock:
            candidate = copy.deepcopy(self._settings)
            for key, value in changes.items():
                setattr(candidate, key, value)
            candidate.validate()
            self._settings = candidate
            return self._commit()

    # =========================================================================
    # UTILIDADES INTERNAS
    # =========================================================================

    @staticmethod
    def _upsert(records: List[T], record: T) -> None:
        """Reemplazo completo por id; si no existe se agrega con id nuevo si falta."""
        idx = _index_of(records, record.id)
        if idx >= 0:
            records[idx] = record
            return
        if not record.id:
            record.id = _new_id()
        records.append(record)

    @staticmethod
    def _remove(records: List[Any], record_id: str) -> bool:
        before = len(records)
        records[:] = [r for r in records if r.id != record_id]
        return len(records) != before


__all__ = ['LocalStore', 'ValidationError']
