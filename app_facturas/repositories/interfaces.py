# ==============================================================================
# INTERFACES DE SINCRONIZACIÓN
# ==============================================================================
#
# El almacén local depende de este protocolo, no de una implementación
# concreta. Esto permite:
#
# 1. INDEPENDENCIA DEL TRANSPORTE
#    - Hoy: RemoteSyncClient (HTTP contra el servicio de hojas)
#    - Tests: cualquier objeto con pull()/push()
#
# 2. CONTRATO DEL DOCUMENTO REMOTO
#    - pull() lee TODO el dataset
#    - push() sobrescribe TODO el dataset (no hay endpoints por entidad)
#
# ==============================================================================

from concurrent.futures import Future
from typing import Any, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class IRemoteSync(Protocol):
    """
    Interfaz del almacenamiento remoto del dataset completo.

    Formato del dataset:
    {
        "clients": [...],
        "invoices": [...],
        "expenses": [...],
        "settings": {"exchangeRate": 40.5, "pricePerKg": 15.43, "formulaVersion": 2}
    }
    """

    def pull(self) -> Optional[Dict[str, Any]]:
        """Descarga el dataset completo. None si falla."""
        ...

    def push(self, dataset: Dict[str, Any]) -> 'Future[bool]':
        """Programa la sobrescritura del dataset completo (no bloquea)."""
        ...

    def flush(self, timeout: Optional[float] = None) -> bool:
        """Espera a que terminen los envíos pendientes."""
        ...
