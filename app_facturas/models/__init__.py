# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Independientes del mecanismo de persistencia: la hoja remota solo ve
# diccionarios camelCase producidos por to_dict().
# ==============================================================================

from .entities import (
    # Errores
    ValidationError,

    # Clientes
    Client,

    # Facturas
    Invoice,
    InvoiceStatus,
    ProductItem,
    Platform,
    FINANCIALLY_ACTIVE_STATUSES,
    WEIGHT_UNITS,

    # Gastos
    Expense,
    ExpenseCategory,

    # Configuración
    Settings,
    FormulaVersion,
)

__all__ = [
    'ValidationError',
    'Client',
    'Invoice',
    'InvoiceStatus',
    'ProductItem',
    'Platform',
    'FINANCIALLY_ACTIVE_STATUSES',
    'WEIGHT_UNITS',
    'Expense',
    'ExpenseCategory',
    'Settings',
    'FormulaVersion',
]
