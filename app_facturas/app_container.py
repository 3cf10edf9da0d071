# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Punto central para obtener el sincronizador remoto, el almacén local y el
# servicio de estadísticas. Facilita:
#   - Inyección de dependencias
#   - Testing (se puede pasar un remoto falso o un transporte httpx)
#   - Cambiar el transporte sin tocar servicios
#
# No es un singleton: cada aplicación (o test) crea su propia instancia.
# ==============================================================================

import logging
from typing import Optional

import httpx

from app_facturas.config import SCRIPT_URL
from app_facturas.repositories import IRemoteSync, LocalStore
from app_facturas.services import StatsService
from app_facturas.sync import RemoteSyncClient

logger = logging.getLogger(__name__)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Uso:
        container = AppContainer(script_url='http://127.0.0.1:5000/')
        container.init()
        container.store.save_client(Client(name='Maria'))
        stats = container.stats_service.financial_stats()
        container.close()
    """

    def __init__(
        self,
        script_url: str = None,
        remote: Optional[IRemoteSync] = None,
        transport: Optional[httpx.BaseTransport] = None
    ):
        """
        Inicializa el contenedor.

        Args:
            script_url: URL del servicio de hojas (por defecto SCRIPT_URL)
            remote: Sincronizador ya construido (tiene prioridad)
            transport: Transporte httpx para el RemoteSyncClient (tests)
        """
        self._script_url = script_url or SCRIPT_URL
        self._transport = transport

        # Lazy loading
        self._remote: Optional[IRemoteSync] = remote
        self._store: Optional[LocalStore] = None
        self._stats_service: Optional[StatsService] = None

    # =========================================================================
    # COMPONENTES
    # =========================================================================

    @property
    def remote(self) -> IRemoteSync:
        """Sincronizador remoto."""
        if self._remote is None:
            self._remote = RemoteSyncClient(self._script_url, transport=self._transport)
        return self._remote

    @property
    def store(self) -> LocalStore:
        """Almacén local (fuente de verdad de la sesión)."""
        if self._store is None:
            self._store = LocalStore(remote=self.remote)
        return self._store

    @property
    def stats_service(self) -> StatsService:
        """Servicio de estadísticas sobre el almacén."""
        if self._stats_service is None:
            self._stats_service = StatsService.from_store(self.store)
        return self._stats_service

    # =========================================================================
    # CICLO DE VIDA
    # =========================================================================

    def init(self) -> bool:
        """
        Carga inicial desde el servicio de hojas.

        Returns:
            True si se descargaron datos; False si se trabaja con caché vacía
        """
        loaded = self.store.init()
        if not loaded:
            logger.warning('[SYNC] Trabajando sin datos remotos')
        return loaded

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Envía lo pendiente y libera el cliente HTTP."""
        if self._remote is not None and hasattr(self._remote, 'close'):
            self._remote.close(timeout)

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        self.close()
        self._remote = None
        self._store = None
        self._stats_service = None
