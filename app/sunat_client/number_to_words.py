"""
Conversión de montos a letras (leyenda 1000 del comprobante)

Ejemplo:
    number_to_words(1234.56, "PEN") -> "MIL DOSCIENTOS TREINTA Y CUATRO CON 56/100 SOLES"
"""
from decimal import Decimal, ROUND_FLOOR
from typing import Dict

from .utils import Number, round_money

UNITS = ["", "UNO", "DOS", "TRES", "CUATRO", "CINCO", "SEIS", "SIETE", "OCHO", "NUEVE"]
TENS = ["", "DIEZ", "VEINTE", "TREINTA", "CUARENTA", "CINCUENTA", "SESENTA", "SETENTA", "OCHENTA", "NOVENTA"]
TEENS = ["DIEZ", "ONCE", "DOCE", "TRECE", "CATORCE", "QUINCE", "DIECISEIS", "DIECISIETE", "DIECIOCHO", "DIECINUEVE"]
TWENTIES = [
    "VEINTE", "VEINTIUNO", "VEINTIDOS", "VEINTITRES", "VEINTICUATRO",
    "VEINTICINCO", "VEINTISEIS", "VEINTISIETE", "VEINTIOCHO", "VEINTINUEVE",
]
HUNDREDS = [
    "", "CIENTO", "DOSCIENTOS", "TRESCIENTOS", "CUATROCIENTOS",
    "QUINIENTOS", "SEISCIENTOS", "SETECIENTOS", "OCHOCIENTOS", "NOVECIENTOS",
]

CURRENCY_NAMES: Dict[str, Dict[str, str]] = {
    "PEN": {"singular": "SOL", "plural": "SOLES", "cents": "CENTIMOS"},
    "USD": {"singular": "DOLAR", "plural": "DOLARES", "cents": "CENTAVOS"},
    "EUR": {"singular": "EURO", "plural": "EUROS", "cents": "CENTIMOS"},
}


def _tens(n: int) -> str:
    if n == 0:
        return ""
    if n < 10:
        return UNITS[n]
    if n < 20:
        return TEENS[n - 10]
    if n < 30:
        return TWENTIES[n - 20]
    tens, units = divmod(n, 10)
    if units == 0:
        return TENS[tens]
    return f"{TENS[tens]} Y {UNITS[units]}"


def _hundreds(n: int) -> str:
    if n == 0:
        return ""
    if n == 100:
        return "CIEN"
    hundreds, remainder = divmod(n, 100)
    words = HUNDREDS[hundreds]
    if remainder > 0:
        words = f"{words} {_tens(remainder)}".strip()
    return words


def _apocope(words: str) -> str:
    # "VEINTIUNO MIL" -> "VEINTIUN MIL"
    if words.endswith("UNO"):
        return words[:-1]
    return words


def _thousands(n: int) -> str:
    if n == 0:
        return ""
    thousands, remainder = divmod(n, 1000)
    words = ""
    if thousands == 1:
        words = "MIL"
    elif thousands > 0:
        words = f"{_apocope(_hundreds(thousands))} MIL"
    if remainder > 0:
        words = f"{words} {_hundreds(remainder)}".strip()
    return words


def integer_to_words(n: int) -> str:
    """Cardinal en mayúsculas sin tildes; 0 -> 'CERO'."""
    if n < 0:
        raise ValueError(f"Monto negativo no soportado: {n}")
    if n == 0:
        return "CERO"
    millions, remainder = divmod(n, 1_000_000)
    words = ""
    if millions == 1:
        words = "UN MILLON"
    elif millions > 0:
        words = f"{_apocope(_thousands(millions))} MILLONES"
    if remainder > 0:
        words = f"{words} {_thousands(remainder)}".strip()
    return words or "CERO"


def number_to_words(amount: Number, currency: str = "PEN") -> str:
    """
    Convierte un monto a letras con sufijo de moneda

    Args:
        amount: Monto (se redondea a 2 decimales half-up)
        currency: PEN, USD o EUR (otra moneda usa PEN)

    Returns:
        "<ENTERO> CON NN/100 <MONEDA>", moneda en singular solo si el entero es 1
    """
    info = CURRENCY_NAMES.get(currency, CURRENCY_NAMES["PEN"])
    value = round_money(amount)
    integer_part = int(value.to_integral_value(rounding=ROUND_FLOOR))
    cents = int((value - Decimal(integer_part)) * 100)

    name = info["singular"] if integer_part == 1 else info["plural"]
    return f"{integer_to_words(integer_part)} CON {cents:02d}/100 {name}"
