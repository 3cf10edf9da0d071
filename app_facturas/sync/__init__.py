# ==============================================================================
# SINCRONIZACIÓN CON EL SERVICIO DE HOJAS
# ==============================================================================
# ├── remote_client.py → RemoteSyncClient (httpx): pull() / push() / flush()
# ==============================================================================

from .remote_client import RemoteSyncClient

__all__ = ['RemoteSyncClient']
