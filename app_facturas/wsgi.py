# ==============================================================================
# WSGI Entry Point - Servicio de hojas para Gunicorn
# ==============================================================================
# Este archivo es el punto de entrada para servidores WSGI como Gunicorn.
#
# USO:
#   gunicorn app_facturas.wsgi:app --bind 0.0.0.0:$PORT
#
# El libro se guarda en FACTURAS_WORKBOOK_PATH (por defecto
# app_facturas/workbook.json).
# ==============================================================================

from app_facturas.config import configure_logging
from app_facturas.sheets import create_app

configure_logging()

app = create_app()

# ==============================================================================
# PUNTO DE ENTRADA
# ==============================================================================
# Para desarrollo local:
#   python -m app_facturas.wsgi
# ==============================================================================

if __name__ == '__main__':
    app.run(debug=True, host='0.0.0.0', port=5000)
