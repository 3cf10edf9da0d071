# ==============================================================================
# SISTEMA DE PROFILING INTERNO
# ==============================================================================
# Mide el tiempo de las llamadas de red (pull / push) y de las peticiones al
# servicio de hojas sin afectar el flujo normal.
#
# ACTIVAR/DESACTIVAR: config.ENABLE_PROFILING (FACTURAS_ENABLE_PROFILING)
# ==============================================================================

import logging
import threading
import time
from collections import defaultdict
from functools import wraps

from app_facturas.config import ENABLE_PROFILING

logger = logging.getLogger(__name__)

# Umbrales de tiempo (en milisegundos)
THRESHOLD_WARNING = 300   # Advertencia si supera 300ms
THRESHOLD_CRITICAL = 700  # Crítico si supera 700ms


# ═══════════════════════════════════════════════════════════════════════════
# ESTADÍSTICAS DE FUNCIONES (en memoria)
# ═══════════════════════════════════════════════════════════════════════════

# Estructura: {nombre_funcion: {calls: int, total_time: float, max_time: float}}
_function_stats = defaultdict(lambda: {'calls': 0, 'total_time': 0.0, 'max_time': 0.0})
_stats_lock = threading.Lock()


def _log_slow_call(kind, name, time_ms):
    """Registra una llamada lenta con su severidad."""
    if time_ms >= THRESHOLD_CRITICAL:
        logger.warning('[CRÍTICO] %s %s: %.0f ms (umbral %d ms)', kind, name, time_ms, THRESHOLD_CRITICAL)
    elif time_ms >= THRESHOLD_WARNING:
        logger.info('[LENTO] %s %s: %.0f ms (umbral %d ms)', kind, name, time_ms, THRESHOLD_WARNING)


# ═══════════════════════════════════════════════════════════════════════════
# 1️⃣ HOOKS PARA FLASK (before/after request)
# ═══════════════════════════════════════════════════════════════════════════

def init_profiling(app):
    """
    Inicializa el profiling en una app Flask.
    Registra hooks before_request y after_request.

    Uso:
        from app_facturas.performance_logger import init_profiling
        init_profiling(app)
    """
    if not ENABLE_PROFILING:
        return

    @app.before_request
    def _start_timer():
        from flask import g
        g.start_time = time.perf_counter()

    @app.after_request
    def _log_request(response):
        from flask import g, request

        if not hasattr(g, 'start_time'):
            return response

        elapsed = (time.perf_counter() - g.start_time) * 1000  # ms
        logger.debug('[PERFORMANCE] %s %s: %.0f ms', request.method, request.path, elapsed)
        _log_slow_call('Ruta', f'{request.method} {request.path}', elapsed)
        return response


# ═══════════════════════════════════════════════════════════════════════════
# 2️⃣ DECORADOR PARA FUNCIONES CLAVE
# ═══════════════════════════════════════════════════════════════════════════

def profile_function(func=None, name=None):
    """
    Decorador para medir rendimiento de funciones críticas.

    Uso:
        @profile_function
        def mi_funcion():
            ...

        @profile_function(name="Descargar dataset")
        def pull():
            ...

    Registra:
        - Cantidad de llamadas
        - Tiempo promedio
        - Tiempo máximo
    """
    def decorator(fn):
        if not ENABLE_PROFILING:
            return fn

        func_name = name or fn.__name__

        @wraps(fn)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                elapsed_ms = (time.perf_counter() - start) * 1000

                with _stats_lock:
                    stats = _function_stats[func_name]
                    stats['calls'] += 1
                    stats['total_time'] += elapsed_ms
                    if elapsed_ms > stats['max_time']:
                        stats['max_time'] = elapsed_ms

                _log_slow_call('Función', func_name, elapsed_ms)

        return wrapper

    # Permitir uso sin paréntesis: @profile_function
    if func is not None:
        return decorator(func)
    return decorator


# ═══════════════════════════════════════════════════════════════════════════
# 3️⃣ REPORTE DE ESTADÍSTICAS
# ═══════════════════════════════════════════════════════════════════════════

def get_function_stats():
    """
    Obtiene estadísticas de todas las funciones perfiladas.

    Returns:
        dict: {nombre: {calls, avg_time, max_time}}
    """
    with _stats_lock:
        result = {}
        for func_name, stats in _function_stats.items():
            calls = stats['calls']
            avg = stats['total_time'] / calls if calls > 0 else 0
            result[func_name] = {
                'calls': calls,
                'avg_time': round(avg, 2),
                'max_time': round(stats['max_time'], 2)
            }
        return result


def reset_stats():
    """Reinicia todas las estadísticas (útil para testing)"""
    with _stats_lock:
        _function_stats.clear()


__all__ = [
    'THRESHOLD_WARNING',
    'THRESHOLD_CRITICAL',
    'init_profiling',
    'profile_function',
    'get_function_stats',
    'reset_stats',
]
