# ==============================================================================
# SERVICIO DE HOJAS - Endpoint único GET/POST
# ==============================================================================
# Contrato (siempre HTTP 200, el error viaja en el cuerpo):
#
#   GET  /  → {"clients": [...], "invoices": [...], "expenses": [...],
#              "settings": {...}}
#             o {"error": "<mensaje>"}
#
#   POST /  ← cuerpo JSON con cualquier subconjunto de
#             clients / invoices / expenses / settings.
#             Cada colección presente REEMPLAZA su hoja completa.
#           → {"status": "success"} o {"status": "error", "message": "..."}
#
# Un único lock serializa todas las peticiones:
#   - lectura: espera hasta READ_LOCK_TIMEOUT
#   - escritura: espera hasta WRITE_LOCK_TIMEOUT
# ==============================================================================

import logging
import threading
from typing import Any, Dict, List, Optional

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from app_facturas.config import (
    DEFAULT_SETTINGS,
    READ_LOCK_TIMEOUT,
    WORKBOOK_PATH,
    WRITE_LOCK_TIMEOUT,
)
from app_facturas.numbers import safe_number
from app_facturas.performance_logger import init_profiling
from app_facturas.sheets.workbook import Workbook

logger = logging.getLogger(__name__)

# ═══════════════════════════════════════════════════════════════════════════
# ESQUEMA DE HOJAS
# ═══════════════════════════════════════════════════════════════════════════

CLIENTS_SHEET = 'Clients'
INVOICES_SHEET = 'Invoices'
EXPENSES_SHEET = 'Expenses'

CLIENT_HEADERS = ['id', 'name', 'phone', 'email', 'address', 'notes']
INVOICE_HEADERS = [
    'id', 'clientId', 'createdAt', 'updatedAt', 'status', 'exchangeRate',
    'pricePerKg', 'logisticsCost', 'amountPaid', 'grandTotalUsd', 'items'
]
EXPENSE_HEADERS = ['id', 'description', 'amount', 'category', 'date']

INVOICE_NUMERIC_FIELDS = ('exchangeRate', 'pricePerKg', 'logisticsCost', 'amountPaid', 'grandTotalUsd')
EXPENSE_NUMERIC_FIELDS = ('amount',)
JSON_COLUMNS = ('items',)

BUSY_MESSAGE = 'Servicio ocupado, intente nuevamente'


def _coerce_numbers(record: Dict[str, Any], fields) -> Dict[str, Any]:
    """Copia del registro con los campos numéricos convertidos."""
    result = dict(record)
    for field in fields:
        result[field] = safe_number(result.get(field))
    return result


def _records(value: Any) -> List[Dict[str, Any]]:
    """Solo los elementos que son objetos; el resto se descarta."""
    if not isinstance(value, list):
        raise ValueError('Se esperaba una lista de registros')
    return [r for r in value if isinstance(r, dict)]


# ═══════════════════════════════════════════════════════════════════════════
# LECTURA / ESCRITURA DEL DATASET
# ═══════════════════════════════════════════════════════════════════════════

def read_dataset(workbook: Workbook) -> Dict[str, Any]:
    """
    Lee el dataset completo del libro.

    Args:
        workbook: Libro de hojas

    Returns:
        Diccionario con clients, invoices, expenses y settings
    """
    clients = workbook.read_records(CLIENTS_SHEET, CLIENT_HEADERS)
    invoices = [
        _coerce_numbers(inv, INVOICE_NUMERIC_FIELDS)
        for inv in workbook.read_records(INVOICES_SHEET, INVOICE_HEADERS, json_columns=JSON_COLUMNS)
    ]
    expenses = [
        _coerce_numbers(exp, EXPENSE_NUMERIC_FIELDS)
        for exp in workbook.read_records(EXPENSES_SHEET, EXPENSE_HEADERS)
    ]
    return {
        'clients': clients,
        'invoices': invoices,
        'expenses': expenses,
        'settings': workbook.read_settings(DEFAULT_SETTINGS),
    }


def write_dataset(workbook: Workbook, payload: Dict[str, Any]) -> List[str]:
    """
    Sobrescribe las hojas de las colecciones presentes en el payload.

    Args:
        workbook: Libro de hojas
        payload: Subconjunto del dataset

    Returns:
        Nombres de las colecciones escritas

    Raises:
        ValueError: Si alguna colección tiene un formato inválido
    """
    # Primero se valida todo; ninguna hoja se toca si algo es inválido
    clients = invoices = expenses = settings = None

    if 'clients' in payload:
        clients = _records(payload['clients'])

    if 'invoices' in payload:
        invoices = [
            _coerce_numbers(inv, INVOICE_NUMERIC_FIELDS)
            for inv in _records(payload['invoices'])
        ]

    if 'expenses' in payload:
        expenses = [
            _coerce_numbers(exp, EXPENSE_NUMERIC_FIELDS)
            for exp in _records(payload['expenses'])
        ]

    if 'settings' in payload:
        if not isinstance(payload['settings'], dict):
            raise ValueError('settings debe ser un objeto')
        settings = {str(k): safe_number(v) for k, v in payload['settings'].items()}

    written = []
    if clients is not None:
        workbook.write_records(CLIENTS_SHEET, CLIENT_HEADERS, clients)
        written.append('clients')
    if invoices is not None:
        workbook.write_records(INVOICES_SHEET, INVOICE_HEADERS, invoices, json_columns=JSON_COLUMNS)
        written.append('invoices')
    if expenses is not None:
        workbook.write_records(EXPENSES_SHEET, EXPENSE_HEADERS, expenses)
        written.append('expenses')
    if settings is not None:
        workbook.write_settings(settings)
        written.append('settings')

    return written


# ═══════════════════════════════════════════════════════════════════════════
# APP FLASK
# ═══════════════════════════════════════════════════════════════════════════

def create_app(workbook: Optional[Workbook] = None, workbook_path: Optional[str] = None) -> Flask:
    """
    Crea la app Flask del servicio de hojas.

    Args:
        workbook: Libro ya construido (tests)
        workbook_path: Ruta del archivo del libro si no se pasa workbook

    Returns:
        App Flask lista para servir o para usar con test_client()
    """
    app = Flask(__name__)
    app.config['WORKBOOK'] = workbook or Workbook(workbook_path or WORKBOOK_PATH)
    app.config['READ_LOCK_TIMEOUT'] = READ_LOCK_TIMEOUT
    app.config['WRITE_LOCK_TIMEOUT'] = WRITE_LOCK_TIMEOUT

    # Un solo lock para todo el libro
    lock = threading.Lock()
    app.extensions['facturas_lock'] = lock

    init_profiling(app)

    @app.route('/', methods=['GET'])
    def do_get():
        if not lock.acquire(timeout=app.config['READ_LOCK_TIMEOUT']):
            logger.warning('[SHEETS] Lectura rechazada: lock ocupado')
            return jsonify({'error': BUSY_MESSAGE})
        try:
            return jsonify(read_dataset(app.config['WORKBOOK']))
        except Exception as e:
            logger.exception('[SHEETS] Error leyendo el libro')
            return jsonify({'error': str(e)})
        finally:
            lock.release()

    @app.route('/', methods=['POST'])
    def do_post():
        payload = request.get_json(force=True, silent=True)
        if not isinstance(payload, dict):
            return jsonify({'status': 'error', 'message': 'JSON inválido'})

        if not lock.acquire(timeout=app.config['WRITE_LOCK_TIMEOUT']):
            logger.warning('[SHEETS] Escritura rechazada: lock ocupado')
            return jsonify({'status': 'error', 'message': BUSY_MESSAGE})
        try:
            written = write_dataset(app.config['WORKBOOK'], payload)
            logger.info('[SHEETS] Hojas escritas: %s', ', '.join(written) or '(ninguna)')
            return jsonify({'status': 'success'})
        except Exception as e:
            logger.exception('[SHEETS] Error escribiendo el libro')
            return jsonify({'status': 'error', 'message': str(e)})
        finally:
            lock.release()

    @app.errorhandler(HTTPException)
    def handle_http_error(e):
        return jsonify({'status': 'error', 'message': e.description}), e.code

    return app


__all__ = [
    'CLIENT_HEADERS',
    'INVOICE_HEADERS',
    'EXPENSE_HEADERS',
    'read_dataset',
    'write_dataset',
    'create_app',
]
