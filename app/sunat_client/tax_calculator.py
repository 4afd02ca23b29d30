"""
Cálculo de IGV y totales del comprobante

Reglas (Catálogo 07):
- 10: gravado, IGV 18%
- 11..17: gravado gratuito (retiros/bonificaciones), sin IGV cobrado, precio tipo 02
- 20: exonerado
- 30: inafecto
- 40: exportación, base gravada con tasa cero

Los montos por línea se redondean a 2 decimales y los buckets del documento
acumulan esos montos ya redondeados, de modo que la suma de las líneas
coincide al centavo con los totales (salvo el descuento global, que se
redondea al agregar).
"""
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Iterable, List, Optional

from .catalogs import (
    IGV_PERCENTAGE,
    IGV_RATE,
    TAX_EXEMPT,
    TAX_EXPORT,
    TAX_TAXED,
    TAX_UNAFFECTED,
    is_free_tax_type,
)
from .exceptions import ValidationError
from .models import CalculationResult, DocumentTotals, LineItem
from .utils import Number, round_money, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _line_subtotal(item: LineItem) -> Decimal:
    quantity = to_decimal(item.quantity)
    if quantity <= 0:
        raise ValidationError(f"La cantidad debe ser mayor a 0 ({item.description})")
    unit_price = to_decimal(item.unit_price)
    if unit_price < 0:
        raise ValidationError(f"El precio no puede ser negativo ({item.description})")
    return quantity * unit_price - to_decimal(item.discount)


def calculate_totals(items: Iterable[LineItem], global_discount: Optional[Number] = None) -> CalculationResult:
    """
    Calcula montos por línea y totales del documento

    Args:
        items: Líneas con cantidad, precio unitario (sin IGV), descuento y tipo de afectación
        global_discount: Descuento global con IGV incluido (solo afecta la base gravada)

    Returns:
        CalculationResult con las líneas completadas y los totales

    Raises:
        ValidationError: Si una línea tiene tipo de afectación desconocido,
            cantidad no positiva o precio negativo
    """
    taxable = ZERO
    exempt = ZERO
    unaffected = ZERO
    free = ZERO
    igv = ZERO
    calculated: List[LineItem] = []

    for item in items:
        subtotal = round_money(_line_subtotal(item))
        tax_type = item.tax_type
        tax_amount = ZERO
        is_free = False

        if tax_type == TAX_TAXED:
            tax_amount = round_money(subtotal * IGV_RATE)
            taxable += subtotal
            igv += tax_amount
        elif is_free_tax_type(tax_type):
            free += subtotal
            is_free = True
        elif tax_type == TAX_EXEMPT:
            exempt += subtotal
        elif tax_type == TAX_UNAFFECTED:
            unaffected += subtotal
        elif tax_type == TAX_EXPORT:
            taxable += subtotal
        else:
            raise ValidationError(f"Tipo de afectación IGV desconocido: {tax_type!r}")

        calculated.append(
            replace(
                item,
                quantity=to_decimal(item.quantity),
                unit_price=to_decimal(item.unit_price),
                discount=to_decimal(item.discount),
                taxable_base=subtotal,
                tax_amount=tax_amount,
                total=subtotal + tax_amount,
                is_free=is_free,
                igv_percentage=IGV_PERCENTAGE if tax_type == TAX_TAXED else ZERO,
            )
        )

    discount = to_decimal(global_discount)
    applied_discount = ZERO
    if discount > 0 and taxable > 0:
        applied_discount = discount
        discount_base = discount / (1 + IGV_RATE)
        taxable -= discount_base
        igv -= discount_base * IGV_RATE

    totals = DocumentTotals(
        taxable=round_money(taxable),
        exempt=round_money(exempt),
        unaffected=round_money(unaffected),
        free=round_money(free),
        igv=round_money(igv),
        discount=round_money(applied_discount),
    )
    totals.subtotal = totals.taxable + totals.exempt + totals.unaffected
    totals.total = totals.subtotal + totals.igv

    logger.debug(
        f"Totales calculados: gravado={totals.taxable} exonerado={totals.exempt} "
        f"inafecto={totals.unaffected} gratuito={totals.free} igv={totals.igv} total={totals.total}"
    )
    return CalculationResult(items=calculated, totals=totals)
