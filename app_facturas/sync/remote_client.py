# ==============================================================================
# CLIENTE DE SINCRONIZACIÓN REMOTA
# ==============================================================================
# Habla con el servicio de hojas (un único endpoint):
#   GET  <url> → dataset completo
#   POST <url> → sobrescribe el dataset completo
#
# - pull(): síncrono, se usa solo en init()/refresh()
# - push(): NO bloquea. Encola el snapshot y un thread escritor lo envía
#   (mismo esquema write-behind que la caché JSON de la app de stock).
#   Snapshots consecutivos en cola se fusionan: solo viaja el más reciente.
#   Un envío fallido se reintenta PUSH_MAX_ATTEMPTS veces y luego se
#   registra en el log; nunca se revierte el estado local.
# ==============================================================================

import logging
import threading
import time
from concurrent.futures import Future
from queue import Empty, Queue
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app_facturas.config import (
    HTTP_TIMEOUT,
    PUSH_MAX_ATTEMPTS,
    PUSH_RETRY_BACKOFF,
    SCRIPT_URL,
)
from app_facturas.performance_logger import profile_function

logger = logging.getLogger(__name__)

_SHUTDOWN = None  # Señal de cierre para el thread escritor


class RemoteSyncClient:
    """
    Sincronizador HTTP del dataset completo.

    Uso:
        remote = RemoteSyncClient('http://127.0.0.1:5000/')
        data = remote.pull()
        future = remote.push(store.snapshot())
        future.result(timeout=10)  # True si el remoto aceptó el envío
    """

    def __init__(
        self,
        url: str = SCRIPT_URL,
        timeout: float = HTTP_TIMEOUT,
        max_attempts: int = PUSH_MAX_ATTEMPTS,
        retry_backoff: float = PUSH_RETRY_BACKOFF,
        transport: Optional[httpx.BaseTransport] = None,
        http_client: Optional[httpx.Client] = None
    ):
        """
        Inicializa el cliente.

        Args:
            url: URL del endpoint del servicio de hojas
            timeout: Timeout HTTP en segundos
            max_attempts: Intentos por envío (mínimo 1)
            retry_backoff: Espera base entre intentos (se multiplica por el intento)
            transport: Transporte httpx alternativo (tests: WSGITransport/MockTransport)
            http_client: Cliente httpx ya configurado (tiene prioridad sobre transport)
        """
        self.url = url
        self.max_attempts = max(1, int(max_attempts))
        self.retry_backoff = max(0.0, float(retry_backoff))
        self._http = http_client or httpx.Client(
            timeout=timeout,
            transport=transport,
            follow_redirects=True
        )

        self._queue: Queue = Queue()
        self._writer_thread: Optional[threading.Thread] = None
        self._thread_lock = threading.Lock()
        self._outstanding = 0
        self._idle = threading.Condition()
        self._closed = False

    # =========================================================================
    # LECTURA
    # =========================================================================

    @profile_function(name='Descargar dataset')
    def pull(self) -> Optional[Dict[str, Any]]:
        """
        Descarga el dataset completo.

        Returns:
            Dataset (dict) o None si hubo error de red, JSON inválido o
            el servicio respondió con un error
        """
        try:
            response = self._http.get(self.url)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            logger.error('[SYNC] Fallo carga inicial: %s', e)
            return None
        except ValueError as e:
            logger.error('[SYNC] Respuesta no es JSON válido: %s', e)
            return None

        if not isinstance(data, dict):
            logger.error('[SYNC] Formato de datos inválido desde la hoja')
            return None
        if data.get('error'):
            logger.error('[SYNC] El servicio de hojas reportó un error: %s', data['error'])
            return None

        logger.info('[SYNC] Datos descargados de la hoja')
        return data

    # =========================================================================
    # ESCRITURA (write-behind)
    # =========================================================================

    def push(self, dataset: Dict[str, Any]) -> 'Future[bool]':
        """
        Programa el envío del dataset completo sin bloquear.

        Args:
            dataset: Snapshot completo (no debe modificarse después)

        Returns:
            Future que se resuelve en True/False; nunca lanza excepción
        """
        future: 'Future[bool]' = Future()
        if self._closed:
            logger.warning('[SYNC] Cliente cerrado; cambio no enviado')
            future.set_result(False)
            return future

        with self._idle:
            self._outstanding += 1
        self._start_writer()
        self._queue.put((dataset, future))
        return future

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Espera a que se resuelvan todos los envíos encolados.

        Args:
            timeout: Segundos máximos de espera (None = sin límite)

        Returns:
            True si no quedan envíos pendientes
        """
        with self._idle:
            return self._idle.wait_for(lambda: self._outstanding == 0, timeout)

    def close(self, timeout: Optional[float] = 5.0) -> None:
        """Envía lo pendiente, detiene el thread escritor y cierra el cliente HTTP."""
        if self._closed:
            return
        self.flush(timeout)
        self._closed = True
        if self._writer_thread is not None and self._writer_thread.is_alive():
            self._queue.put(_SHUTDOWN)
            self._writer_thread.join(timeout=timeout)
        self._http.close()

    def __enter__(self) -> 'RemoteSyncClient':
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # =========================================================================
    # THREAD ESCRITOR
    # =========================================================================

    def _start_writer(self) -> None:
        """Inicia el thread de escritura si no está corriendo."""
        with self._thread_lock:
            if self._writer_thread is None or not self._writer_thread.is_alive():
                self._writer_thread = threading.Thread(
                    target=self._writer_loop,
                    name='facturas-sync-writer',
                    daemon=True
                )
                self._writer_thread.start()

    def _drain(self, first: Tuple[Dict[str, Any], Future]) -> Tuple[List[Tuple[Dict[str, Any], Future]], bool]:
        """Toma todo lo que ya está en cola para fusionarlo con el primer envío."""
        batch = [first]
        shutdown = False
        while True:
            try:
                item = self._queue.get_nowait()
            except Empty:
                break
            if item is _SHUTDOWN:
                shutdown = True
                break
            batch.append(item)
        return batch, shutdown

    def _writer_loop(self) -> None:
        """Loop de escritura en background (no bloquea a quien modifica datos)."""
        while True:
            item = self._queue.get()
            if item is _SHUTDOWN:
                break

            batch, shutdown = self._drain(item)
            dataset = batch[-1][0]
            if len(batch) > 1:
                logger.debug('[SYNC] %d cambios fusionados en un solo envío', len(batch))

            try:
                ok = self._send_with_retry(dataset)
            except Exception:
                logger.exception('[SYNC] Error inesperado enviando a la nube')
                ok = False

            for _, future in batch:
                future.set_result(ok)
            with self._idle:
                self._outstanding -= len(batch)
                self._idle.notify_all()

            if shutdown:
                break

    def _send_with_retry(self, dataset: Dict[str, Any]) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            if self._send(dataset, attempt):
                return True
            if attempt < self.max_attempts and self.retry_backoff:
                time.sleep(self.retry_backoff * attempt)

        logger.error(
            '[SYNC] No se pudo guardar en la nube tras %d intentos; '
            'los datos locales se mantienen',
            self.max_attempts
        )
        return False

    @profile_function(name='Enviar dataset')
    def _send(self, dataset: Dict[str, Any], attempt: int = 1) -> bool:
        """
        Un intento de POST del dataset completo.

        Returns:
            True si el servicio aceptó la escritura
        """
        try:
            response = self._http.post(self.url, json=dataset)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning('[SYNC] Error guardando en nube (intento %d): %s', attempt, e)
            return False

        # El servicio puede responder sin cuerpo legible: se asume éxito
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and body.get('status') == 'error':
            logger.warning(
                '[SYNC] La hoja rechazó la escritura (intento %d): %s',
                attempt, body.get('message')
            )
            return False

        logger.info('[SYNC] Sincronizado con la hoja')
        return True
