# ==============================================================================
# LIBRO DE HOJAS - Persistencia tabular del servicio remoto
# ==============================================================================
# Simula una hoja de cálculo: cada hoja es una lista de filas, la primera
# fila son las cabeceras. Todo el libro vive en un archivo JSON:
#
#   {
#     "Clients":  [["id", "name", ...], ["c1", "Maria", ...]],
#     "Invoices": [["id", "clientId", ..., "items"], [...]],
#     "Settings": [["key", "value"], ["exchangeRate", 40.5]]
#   }
#
# AUTO-REPARACIÓN DE CABECERAS:
# Si las cabeceras guardadas no coinciden con las declaradas (se agregó un
# campo nuevo), se reescribe la fila de cabeceras. Las columnas viejas que
# ya no se declaran se conservan al final, en blanco.
# ==============================================================================

import json
import logging
import os
import threading
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from app_facturas.numbers import safe_number

logger = logging.getLogger(__name__)

SETTINGS_SHEET = 'Settings'
SETTINGS_HEADERS = ['key', 'value']


def _cell(value: Any) -> Any:
    """Valor de celda: None se guarda como celda vacía."""
    return '' if value is None else value


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(cell is None or str(cell).strip() == '' for cell in row)


def _decode_json_cell(value: Any) -> List[Any]:
    """Decodifica una celda con una lista JSON; cualquier otra cosa -> []."""
    if isinstance(value, list):
        return value
    if isinstance(value, str) and value.strip().startswith('['):
        try:
            decoded = json.loads(value)
        except ValueError:
            return []
        return decoded if isinstance(decoded, list) else []
    return []


class Workbook:
    """
    Libro de hojas persistido en un archivo JSON.

    Proporciona lectura/escritura atómica con manejo de concurrencia
    básico mediante locks (igual que los repositorios JSON).
    """

    # Lock global para evitar escrituras concurrentes al archivo
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el libro.

        Args:
            file_path: Ruta absoluta al archivo JSON del libro
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo vacío si no existe."""
        if not os.path.exists(self.file_path):
            directory = os.path.dirname(self.file_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            self._write_raw({})

    def _read_raw(self) -> Dict[str, List[List[Any]]]:
        """
        Lee el libro completo.

        Returns:
            Diccionario {nombre_hoja: filas}; vacío si el archivo está corrupto
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except (json.JSONDecodeError, FileNotFoundError):
                logger.warning('[SHEETS] Libro ilegible, se trata como vacío: %s', self.file_path)
                return {}
        return data if isinstance(data, dict) else {}

    def _write_raw(self, data: Dict[str, List[List[Any]]]) -> None:
        """
        Escribe el libro completo de forma atómica.

        Raises:
            OSError: Si hay error de escritura
        """
        with self._file_lock:
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except Exception:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise

    # =========================================================================
    # HOJAS GENÉRICAS
    # =========================================================================

    def sheet_names(self) -> List[str]:
        return list(self._read_raw().keys())

    def get_rows(self, sheet_name: str) -> List[List[Any]]:
        """Filas crudas de una hoja (incluye cabeceras); [] si no existe."""
        rows = self._read_raw().get(sheet_name)
        return [list(r) for r in rows] if isinstance(rows, list) else []

    def read_records(
        self,
        sheet_name: str,
        headers: Sequence[str],
        json_columns: Iterable[str] = ()
    ) -> List[Dict[str, Any]]:
        """
        Lee las filas de datos como diccionarios, buscando cada columna
        por nombre de cabecera.

        Args:
            sheet_name: Nombre de la hoja
            headers: Cabeceras declaradas
            json_columns: Columnas que guardan listas JSON como texto

        Returns:
            Lista de registros; columnas ausentes se devuelven como ''
        """
        rows = self.get_rows(sheet_name)
        if len(rows) < 2:
            return []

        json_columns = set(json_columns)
        index = {}
        for position, name in enumerate(rows[0]):
            index.setdefault(str(name), position)

        records = []
        for row in rows[1:]:
            if _is_blank_row(row):
                continue
            record = {}
            for header in headers:
                position = index.get(header)
                value = row[position] if position is not None and position < len(row) else ''
                if header in json_columns:
                    value = _decode_json_cell(value)
                record[header] = value
            records.append(record)
        return records

    def write_records(
        self,
        sheet_name: str,
        headers: Sequence[str],
        records: Iterable[Dict[str, Any]],
        json_columns: Iterable[str] = ()
    ) -> None:
        """
        Reemplaza todas las filas de datos de una hoja (no hace merge).

        Args:
            sheet_name: Nombre de la hoja
            headers: Cabeceras declaradas (orden fijo de columnas)
            records: Registros a escribir
            json_columns: Columnas que se guardan como texto JSON
        """
        headers = list(headers)
        json_columns = set(json_columns)

        with self._file_lock:
            data = self._read_raw()
            current = data.get(sheet_name)
            if not current:
                header_row = headers
                logger.info('[SHEETS] Hoja creada: %s', sheet_name)
            else:
                header_row, changed = self._heal_headers(current[0], headers)
                if changed:
                    logger.info(
                        '[SHEETS] Cabeceras actualizadas en %s: %s', sheet_name, header_row
                    )

            extra_blanks = [''] * (len(header_row) - len(headers))
            rows = [header_row]
            for record in records:
                row = []
                for header in headers:
                    value = record.get(header)
                    if header in json_columns:
                        value = json.dumps(value or [], ensure_ascii=False)
                    row.append(_cell(value))
                rows.append(row + extra_blanks)

            data[sheet_name] = rows
            self._write_raw(data)

    @staticmethod
    def _heal_headers(current: Sequence[Any], headers: List[str]) -> Tuple[List[str], bool]:
        """
        Compara cabeceras guardadas con las declaradas.

        Returns:
            (fila de cabeceras a usar, True si hubo que reescribirla)
        """
        current = ['' if h is None else str(h) for h in current]
        if current[:len(headers)] == headers:
            return current, False
        extras = [h for h in current if h and h not in headers]
        return headers + extras, True

    # =========================================================================
    # HOJA DE CONFIGURACIÓN (clave / valor)
    # =========================================================================

    def read_settings(self, defaults: Optional[Dict[str, Any]] = None) -> Dict[str, float]:
        """
        Lee la hoja Settings; cada valor se coerciona a número.

        Args:
            defaults: Valores por defecto si falta la hoja o la clave
        """
        settings = dict(defaults or {})
        for row in self.get_rows(SETTINGS_SHEET)[1:]:
            if not row or not row[0]:
                continue
            settings[str(row[0])] = safe_number(row[1] if len(row) > 1 else '')
        return settings

    def write_settings(self, settings: Dict[str, Any]) -> None:
        """Reescribe la hoja Settings completa."""
        with self._file_lock:
            data = self._read_raw()
            data[SETTINGS_SHEET] = [list(SETTINGS_HEADERS)] + [
                [key, _cell(value)] for key, value in settings.items()
            ]
            self._write_raw(data)
