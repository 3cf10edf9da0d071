# ==============================================================================
# SERVICIO REMOTO DE HOJAS
# ==============================================================================
# ├── workbook.py → Libro de hojas en JSON con auto-reparación de cabeceras
# └── server.py   → App Flask GET/POST del dataset completo
# ==============================================================================

from .workbook import Workbook
from .server import create_app, read_dataset, write_dataset

__all__ = [
    'Workbook',
    'create_app',
    'read_dataset',
    'write_dataset',
]
