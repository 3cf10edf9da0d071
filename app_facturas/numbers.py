# ==============================================================================
# COERCIÓN NUMÉRICA
# ==============================================================================
# La hoja de cálculo remota puede devolver números como texto ("15,50"),
# celdas vacías o basura. Todo valor numérico que entra al sistema pasa por
# safe_number() y nunca lanza excepción.
# ==============================================================================

import math
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any


def safe_number(value: Any) -> float:
    """
    Convierte un valor arbitrario en float finito.

    Acepta números, None, cadenas vacías y cadenas con coma o punto
    decimal. Cualquier valor no interpretable devuelve 0.

    Args:
        value: Valor a convertir

    Returns:
        Número finito (0.0 si no se puede interpretar)
    """
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    if value is None:
        return 0.0

    text = str(value).strip()
    if not text:
        return 0.0

    # Formato latino: "15,50" -> "15.50"
    text = text.replace(',', '.', 1)
    try:
        number = float(text)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def safe_int(value: Any) -> int:
    """Igual que safe_number pero truncado a entero."""
    return int(safe_number(value))


def round2(value: Any) -> float:
    """
    Redondea a 2 decimales (mitad hacia arriba), como toFixed(2).

    Args:
        value: Valor numérico (se coerciona con safe_number)

    Returns:
        Valor redondeado (valores enormes se devuelven sin cambios)
    """
    number = safe_number(value)
    try:
        return float(Decimal(repr(number)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        # Magnitud fuera de la precisión de Decimal: el float ya no tiene decimales
        return number
