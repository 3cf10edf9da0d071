# ==============================================================================
# CONFIGURACIÓN
# ==============================================================================
# Valores por defecto del sistema. Cada uno puede sobrescribirse con una
# variable de entorno, por ejemplo:
#   export FACTURAS_SCRIPT_URL="http://192.168.1.10:5000/"
# ==============================================================================

import logging
import os

BASE = os.path.dirname(os.path.abspath(__file__))


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ('1', 'true', 'yes', 'si', 'sí', 'on')


# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURACIÓN GLOBAL POR DEFECTO
# ═══════════════════════════════════════════════════════════════════════════
# Tasa de cambio (Bs por USD), precio por kg y versión de fórmulas.
DEFAULT_EXCHANGE_RATE = 40.5
DEFAULT_PRICE_PER_KG = 15.43
DEFAULT_FORMULA_VERSION = 2

DEFAULT_SETTINGS = {
    'exchangeRate': DEFAULT_EXCHANGE_RATE,
    'pricePerKg': DEFAULT_PRICE_PER_KG,
    'formulaVersion': DEFAULT_FORMULA_VERSION,
}

# ═══════════════════════════════════════════════════════════════════════════
# SINCRONIZACIÓN CON EL SERVICIO REMOTO
# ═══════════════════════════════════════════════════════════════════════════
SCRIPT_URL = os.environ.get('FACTURAS_SCRIPT_URL', 'http://127.0.0.1:5000/')
HTTP_TIMEOUT = _env_float('FACTURAS_HTTP_TIMEOUT', 30.0)

# Reintentos del envío (push) antes de darlo por fallido
PUSH_MAX_ATTEMPTS = int(_env_float('FACTURAS_PUSH_MAX_ATTEMPTS', 3))
PUSH_RETRY_BACKOFF = _env_float('FACTURAS_PUSH_RETRY_BACKOFF', 1.0)  # segundos

# ═══════════════════════════════════════════════════════════════════════════
# SERVICIO DE HOJAS (documento remoto)
# ═══════════════════════════════════════════════════════════════════════════
WORKBOOK_PATH = os.environ.get(
    'FACTURAS_WORKBOOK_PATH',
    os.path.join(BASE, 'workbook.json')
)
READ_LOCK_TIMEOUT = _env_float('FACTURAS_READ_LOCK_TIMEOUT', 10.0)
WRITE_LOCK_TIMEOUT = _env_float('FACTURAS_WRITE_LOCK_TIMEOUT', 30.0)

# ═══════════════════════════════════════════════════════════════════════════
# LOGGING Y PROFILING
# ═══════════════════════════════════════════════════════════════════════════
LOG_LEVEL = os.environ.get('FACTURAS_LOG_LEVEL', 'INFO').upper()
LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'
ENABLE_PROFILING = _env_bool('FACTURAS_ENABLE_PROFILING', True)


def configure_logging(level: str = None) -> None:
    """
    Configura el logging raíz una sola vez.

    Args:
        level: Nivel de log (por defecto LOG_LEVEL)
    """
    root = logging.getLogger()
    if root.handlers:
        return
    logging.basicConfig(level=(level or LOG_LEVEL), format=LOG_FORMAT)
