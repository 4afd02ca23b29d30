"""
Montos: conversión a Decimal, redondeo y formato
"""
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Any, Union

TWO_PLACES = Decimal("0.01")
SIX_PLACES = Decimal("0.000001")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Any, default: str = "0") -> Decimal:
    """
    Convierte un valor numérico a Decimal sin pasar por binario flotante

    Args:
        value: int, float, str o Decimal (None o "" usan el default)

    Raises:
        ValueError: Si el valor no es numérico
    """
    if value is None or value == "":
        return Decimal(default)
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    try:
        return Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ValueError(f"Valor numérico inválido: {value!r}") from e


def round_money(value: Number) -> Decimal:
    """Redondeo half-up a 2 decimales."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def format_amount(value: Number) -> str:
    """Monto con 2 decimales fijos, ej: 118.00"""
    return f"{round_money(value):.2f}"


def format_price(value: Number) -> str:
    """Precio unitario con 6 decimales fijos, ej: 100.000000"""
    return f"{to_decimal(value).quantize(SIX_PLACES, rounding=ROUND_HALF_UP):.6f}"
