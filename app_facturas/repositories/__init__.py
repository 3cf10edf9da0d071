# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# La fuente de verdad de la sesión es la caché en memoria (LocalStore).
# El documento remoto es solo una capa de durabilidad: se lee en init() y se
# sobrescribe completo después de cada cambio.
#
# ESTRUCTURA:
# ├── interfaces.py  → Protocolo IRemoteSync (pull / push / flush)
# └── local_store.py → Caché en memoria + suscripciones
# ==============================================================================

from .interfaces import IRemoteSync
from .local_store import LocalStore

__all__ = [
    'IRemoteSync',
    'LocalStore',
]
