# ==============================================================================
# APP FACTURAS - Facturación y gastos para pequeños importadores
# ==============================================================================
# ESTRUCTURA:
# ├── numbers.py           → safe_number / round2
# ├── config.py            → Valores por defecto y variables de entorno
# ├── models/              → Entidades (Client, Invoice, Expense, Settings)
# ├── services/            → Fórmulas financieras y estadísticas
# ├── repositories/        → Almacén local con suscripciones
# ├── sync/                → Cliente HTTP del servicio de hojas
# ├── sheets/              → Servicio de hojas (Flask)
# └── app_container.py     → Contenedor de dependencias
# ==============================================================================

__version__ = '1.0.0'
