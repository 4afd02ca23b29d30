"""
Catálogos SUNAT usados por el emisor

Catálogo 01 - Tipo de documento
Catálogo 06 - Tipo de documento de identidad
Catálogo 07 - Tipo de afectación del IGV
Catálogo 09 - Motivo de nota de crédito
Catálogo 10 - Motivo de nota de débito
Catálogo 51 - Tipo de operación
"""
from decimal import Decimal

IGV_RATE = Decimal("0.18")
IGV_PERCENTAGE = Decimal("18")

# Catálogo 01
DOC_INVOICE = "01"
DOC_RECEIPT = "03"
DOC_CREDIT_NOTE = "07"
DOC_DEBIT_NOTE = "08"
DOC_DISPATCH_GUIDE = "09"
DOC_CARRIER_GUIDE = "31"
DOC_RETENTION = "20"
DOC_PERCEPTION = "40"

DOCUMENT_TYPES = {
    DOC_INVOICE: "Factura",
    DOC_RECEIPT: "Boleta de Venta",
    DOC_CREDIT_NOTE: "Nota de Crédito",
    DOC_DEBIT_NOTE: "Nota de Débito",
    DOC_DISPATCH_GUIDE: "Guía de Remisión Remitente",
    DOC_CARRIER_GUIDE: "Guía de Remisión Transportista",
    DOC_RETENTION: "Comprobante de Retención",
    DOC_PERCEPTION: "Comprobante de Percepción",
}

INVOICE_FAMILY = (DOC_INVOICE, DOC_RECEIPT)
NOTE_TYPES = (DOC_CREDIT_NOTE, DOC_DEBIT_NOTE)
UBL_DOCUMENT_TYPES = INVOICE_FAMILY + NOTE_TYPES

# Catálogo 06
ID_NO_DOCUMENT = "0"
ID_DNI = "1"
ID_FOREIGN_CARD = "4"
ID_RUC = "6"
ID_PASSPORT = "7"
ID_DIPLOMATIC = "A"

IDENTITY_TYPES = {
    ID_NO_DOCUMENT: "Sin documento",
    ID_DNI: "DNI",
    ID_FOREIGN_CARD: "Carnet de extranjería",
    ID_RUC: "RUC",
    ID_PASSPORT: "Pasaporte",
    ID_DIPLOMATIC: "Cédula diplomática",
}

# Catálogo 07
TAX_TAXED = "10"
TAX_EXEMPT = "20"
TAX_UNAFFECTED = "30"
TAX_EXPORT = "40"
TAX_FREE_CODES = ("11", "12", "13", "14", "15", "16", "17")

TAX_TYPES = {
    "10": "Gravado - Operación Onerosa",
    "11": "Gravado - Retiro por premio",
    "12": "Gravado - Retiro por donación",
    "13": "Gravado - Retiro",
    "14": "Gravado - Retiro por publicidad",
    "15": "Gravado - Bonificaciones",
    "16": "Gravado - Retiro por entrega a trabajadores",
    "17": "Gravado - IVAP",
    "20": "Exonerado - Operación Onerosa",
    "30": "Inafecto - Operación Onerosa",
    "40": "Exportación",
}

# Esquemas de tributo (Catálogo 05): (id, nombre, código internacional)
TAX_SCHEME_IGV = ("1000", "IGV", "VAT")
TAX_SCHEME_EXEMPT = ("9997", "EXO", "VAT")
TAX_SCHEME_UNAFFECTED = ("9998", "INA", "FRE")
TAX_SCHEME_FREE = ("9996", "GRA", "FRE")
TAX_SCHEME_EXPORT = ("9995", "EXP", "FRE")

# Catálogo 16 - Tipo de precio
PRICE_TYPE_NORMAL = "01"
PRICE_TYPE_FREE = "02"

# Catálogo 09
CREDIT_NOTE_REASONS = {
    "01": "Anulación de la operación",
    "02": "Anulación por error en el RUC",
    "03": "Corrección por error en la descripción",
    "04": "Descuento global",
    "05": "Descuento por ítem",
    "06": "Devolución total",
    "07": "Devolución por ítem",
    "08": "Bonificación",
    "09": "Disminución en el valor",
}

# Catálogo 10
DEBIT_NOTE_REASONS = {
    "01": "Intereses por mora",
    "02": "Aumento en el valor",
    "03": "Penalidades / otros conceptos",
}

# Catálogo 51
OPERATION_TYPES = {
    "0101": "Venta interna",
    "0200": "Exportación de bienes",
    "0300": "No domiciliados",
    "0401": "Ventas no domiciliados que no califican como exportación",
    "0501": "Compra interna",
}

CURRENCIES = ("PEN", "USD", "EUR")

# Leyenda 1000: monto en letras
LEGEND_AMOUNT_IN_WORDS = "1000"

DEFAULT_UBIGEO = "150101"
DEFAULT_ADDRESS_TYPE_CODE = "0000"
DEFAULT_UNIT_CODE = "NIU"


def is_free_tax_type(tax_type: str) -> bool:
    return tax_type in TAX_FREE_CODES


def note_reasons_for(document_type: str) -> dict:
    """Retorna el catálogo de motivos según el tipo de nota (07 o 08)."""
    if document_type == DOC_CREDIT_NOTE:
        return CREDIT_NOTE_REASONS
    if document_type == DOC_DEBIT_NOTE:
        return DEBIT_NOTE_REASONS
    return {}
