# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# PRINCIPIOS:
# 1. finance_service contiene SOLO funciones puras (sin estado, sin red)
# 2. stats_service agrega reportes sobre lo que el almacén local devuelve
# 3. Los servicios NO conocen el transporte remoto
#
# ESTRUCTURA:
# ├── finance_service.py → Peso, logística, totales, ganancia, estado <-> pago
# └── stats_service.py   → Panel: ingresos, ganancia realizada, deuda, gastos
# ==============================================================================

from app_facturas.services import finance_service
from app_facturas.services.stats_service import StatsService, UNKNOWN_CLIENT_NAME

__all__ = [
    'finance_service',
    'StatsService',
    'UNKNOWN_CLIENT_NAME',
]
