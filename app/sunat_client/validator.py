"""
Validaciones previas al envío: RUC/DNI, series, notas y totales

Todas son funciones puras; un fallo de totales bloquea el envío
(ensure_totals_valid lanza ValidationError, nunca corrige montos).
"""
import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, List, Optional

from .catalogs import (
    DOC_CREDIT_NOTE,
    DOC_DEBIT_NOTE,
    DOC_INVOICE,
    DOC_RECEIPT,
    ID_DNI,
    ID_NO_DOCUMENT,
    ID_RUC,
    IGV_RATE,
    NOTE_TYPES,
    TAX_EXPORT,
    TAX_TAXED,
    note_reasons_for,
)
from .exceptions import ValidationError
from .models import DocumentTotals, FiscalDocument, LineItem
from .utils import to_decimal

TOTALS_TOLERANCE = Decimal("0.01")

RUC_PREFIXES = ("10", "15", "17", "20")
RUC_WEIGHTS = (5, 4, 3, 2, 7, 6, 5, 4, 3, 2)

SERIES_PATTERNS = {
    DOC_INVOICE: re.compile(r"^[FB][A-Z0-9]{3}$"),
    DOC_RECEIPT: re.compile(r"^[FB][A-Z0-9]{3}$"),
    DOC_CREDIT_NOTE: re.compile(r"^[FB]C[A-Z0-9]{2}$"),
    DOC_DEBIT_NOTE: re.compile(r"^[FB]D[A-Z0-9]{2}$"),
}

SERIES_MESSAGES = {
    DOC_INVOICE: "La serie debe ser F### o B### (4 caracteres)",
    DOC_RECEIPT: "La serie debe ser F### o B### (4 caracteres)",
    DOC_CREDIT_NOTE: "La serie de NC debe ser FC## o BC## (4 caracteres)",
    DOC_DEBIT_NOTE: "La serie de ND debe ser FD## o BD## (4 caracteres)",
}


@dataclass
class TotalsValidationResult:
    """Resultado de validate_totals"""
    valid: bool
    errors: List[str] = field(default_factory=list)


def calc_ruc_dv(base: str) -> int:
    """
    Calcula el dígito verificador de un RUC (mod 11, pesos 5,4,3,2,7,6,5,4,3,2)

    base: los 10 primeros dígitos del RUC.
    Retorna: int 0..9 (resto 0 -> 0, resto 1 -> 1, otro -> 11 - resto)
    """
    s = (base or "").strip()
    if not s.isdigit() or len(s) != 10:
        raise ValueError(f"base debe tener 10 dígitos, recibido: {base!r}")

    total = sum(int(ch) * w for ch, w in zip(s, RUC_WEIGHTS))
    remainder = total % 11
    # Resto 0 -> 0 y resto 1 -> 1; la variante 11 - resto (10 -> 0, 11 -> 1) invierte ambos casos
    if remainder == 0:
        return 0
    if remainder == 1:
        return 1
    return 11 - remainder


def validate_ruc(ruc: str) -> bool:
    """RUC de 11 dígitos, prefijo 10/15/17/20 y dígito verificador correcto."""
    s = (ruc or "").strip()
    if not re.fullmatch(r"[0-9]{11}", s):
        return False
    if not s.startswith(RUC_PREFIXES):
        return False
    return calc_ruc_dv(s[:10]) == int(s[10])


def validate_dni(dni: str) -> bool:
    return bool(re.fullmatch(r"[0-9]{8}", (dni or "").strip()))


def validate_document_number(identity_type: str, number: Optional[str]) -> bool:
    """
    Valida el número de documento de identidad según el Catálogo 06

    Args:
        identity_type: '6' RUC, '1' DNI, '0' sin documento, otro
        number: Número de documento
    """
    value = number or ""
    if identity_type == ID_RUC:
        return validate_ruc(value)
    if identity_type == ID_DNI:
        return validate_dni(value)
    if identity_type == ID_NO_DOCUMENT:
        return value in ("-", "")
    return len(value) > 0


def validate_series(document_type: str, series: str) -> None:
    """
    Raises:
        ValidationError: Si la serie no cumple el formato del tipo de documento
    """
    pattern = SERIES_PATTERNS.get(document_type)
    if pattern is None:
        return
    if not pattern.match(series or ""):
        raise ValidationError(f"{SERIES_MESSAGES[document_type]}: {series!r}")


def validate_customer_for_document(document: FiscalDocument) -> None:
    """
    Valida que el adquiriente sea compatible con el tipo de comprobante

    Las facturas (serie F) y sus notas requieren un cliente con RUC;
    las boletas aceptan cualquier documento de identidad.

    Raises:
        ValidationError: Si el cliente no corresponde o su número es inválido
    """
    customer = document.customer
    if customer is None:
        raise ValidationError("El comprobante debe tener cliente")

    requires_ruc = document.document_type == DOC_INVOICE or (
        document.document_type in NOTE_TYPES and document.series.startswith("F")
    )
    if requires_ruc and customer.document_type != ID_RUC:
        raise ValidationError("La factura requiere un cliente con RUC")

    if not validate_document_number(customer.document_type, customer.document_number):
        raise ValidationError(
            f"Número de documento del cliente inválido: {customer.document_number!r} "
            f"(tipo {customer.document_type})"
        )


def validate_note(document: FiscalDocument) -> None:
    """
    Raises:
        ValidationError: Si la nota no tiene documento de referencia o motivo válido
    """
    if document.document_type not in NOTE_TYPES:
        return
    if document.reference is None:
        raise ValidationError("El documento de referencia es requerido")
    reasons = note_reasons_for(document.document_type)
    if document.note_reason_code not in reasons:
        raise ValidationError(f"Motivo de nota inválido: {document.note_reason_code!r}")
    if not (document.note_reason or "").strip():
        raise ValidationError("El motivo es requerido")


def validate_document(document: FiscalDocument) -> None:
    """
    Precondición común a todos los adaptadores de transporte

    Raises:
        ValidationError: Si falta RUC del emisor, cliente o líneas
    """
    errors = []
    if not document.issuer or not document.issuer.ruc:
        errors.append("El RUC del emisor es requerido")
    if document.customer is None:
        errors.append("El comprobante debe tener cliente")
    if not document.items:
        errors.append("Debe tener al menos un item")
    if errors:
        raise ValidationError("; ".join(errors), errors=errors)


def validate_totals(items: Iterable[LineItem], totals: DocumentTotals) -> TotalsValidationResult:
    """
    Recalcula los totales desde las líneas y los compara con los declarados

    La base imponible y el IGV se suman sobre las líneas gravadas (10 y 40);
    el total sobre las líneas no gratuitas. El descuento global declarado se
    descuenta con IGV incluido, igual que en tax_calculator.

    Diferencias menores a un centavo se toleran (redondeo del descuento global).

    Returns:
        TotalsValidationResult con un mensaje por campo que no coincide
    """
    expected_taxable = Decimal("0")
    expected_igv = Decimal("0")
    expected_total = Decimal("0")

    for item in items:
        if item.is_free:
            continue
        if item.tax_type in (TAX_TAXED, TAX_EXPORT):
            expected_taxable += to_decimal(item.taxable_base)
        expected_igv += to_decimal(item.tax_amount)
        expected_total += to_decimal(item.total)

    discount = to_decimal(totals.discount)
    if discount > 0:
        discount_base = discount / (1 + IGV_RATE)
        expected_taxable -= discount_base
        expected_igv -= discount_base * IGV_RATE
        expected_total -= discount

    errors = []
    checks = (
        ("Base imponible", expected_taxable, to_decimal(totals.taxable)),
        ("IGV", expected_igv, to_decimal(totals.igv)),
        ("Total", expected_total, to_decimal(totals.total)),
    )
    for label, expected, actual in checks:
        if abs(expected - actual) >= TOTALS_TOLERANCE:
            errors.append(f"{label} no coincide: esperado {expected:.2f}, actual {actual:.2f}")

    return TotalsValidationResult(valid=not errors, errors=errors)


def ensure_totals_valid(document: FiscalDocument) -> None:
    """
    Raises:
        ValidationError: Si los totales del documento no coinciden con sus líneas
    """
    result = validate_totals(document.items, document.totals)
    if not result.valid:
        raise ValidationError(", ".join(result.errors), errors=result.errors, code="TOTALS_MISMATCH")
