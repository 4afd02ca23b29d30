"""
Modelos de datos para comprobantes electrónicos SUNAT
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional, List

from .catalogs import DEFAULT_UNIT_CODE, TAX_TAXED

# Estados del comprobante
STATUS_DRAFT = "draft"
STATUS_PENDING = "pending"
STATUS_ACCEPTED = "accepted"
STATUS_REJECTED = "rejected"
STATUS_OBSERVED = "observed"
STATUS_EXCEPTION = "exception"
STATUS_VOIDED = "voided"

RESULT_STATUSES = (STATUS_PENDING, STATUS_ACCEPTED, STATUS_REJECTED, STATUS_OBSERVED, STATUS_EXCEPTION)


@dataclass
class Issuer:
    """Emisor (tenant)"""
    ruc: str
    legal_name: str
    trade_name: Optional[str] = None
    address: Optional[str] = None
    ubigeo: Optional[str] = None
    department: Optional[str] = None
    province: Optional[str] = None
    district: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.trade_name or self.legal_name


@dataclass
class Customer:
    """Adquiriente / usuario"""
    document_type: str = "0"
    document_number: str = "-"
    name: str = "VARIOS"
    address: Optional[str] = None
    email: Optional[str] = None


@dataclass
class LineItem:
    """
    Línea del comprobante

    Los campos derivados (taxable_base, tax_amount, total, is_free,
    igv_percentage) los completa tax_calculator.calculate_totals.
    """
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_type: str = TAX_TAXED
    discount: Decimal = Decimal("0")
    unit_code: str = DEFAULT_UNIT_CODE
    product_code: Optional[str] = None
    taxable_base: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    total: Optional[Decimal] = None
    is_free: bool = False
    igv_percentage: Decimal = Decimal("0")


@dataclass
class DocumentTotals:
    """Totales agregados del comprobante"""
    taxable: Decimal = Decimal("0.00")
    exempt: Decimal = Decimal("0.00")
    unaffected: Decimal = Decimal("0.00")
    free: Decimal = Decimal("0.00")
    igv: Decimal = Decimal("0.00")
    subtotal: Decimal = Decimal("0.00")
    total: Decimal = Decimal("0.00")
    discount: Decimal = Decimal("0.00")
    charges: Decimal = Decimal("0.00")


@dataclass
class CalculationResult:
    items: List[LineItem]
    totals: DocumentTotals


@dataclass
class DocumentReference:
    """Comprobante afectado por una nota de crédito/débito"""
    document_type: str
    series: str
    number: str

    @property
    def document_id(self) -> str:
        return f"{self.series}-{self.number}"


@dataclass
class FiscalDocument:
    """Comprobante electrónico (unidad de envío)"""
    document_type: str
    series: str
    number: str
    issuer: Issuer
    customer: Optional[Customer]
    items: List[LineItem]
    totals: DocumentTotals = field(default_factory=DocumentTotals)
    currency: str = "PEN"
    exchange_rate: Optional[Decimal] = None
    operation_type: str = "0101"
    issue_date: date = field(default_factory=date.today)
    issue_time: Optional[time] = None
    due_date: Optional[date] = None
    note: Optional[str] = None
    reference: Optional[DocumentReference] = None
    note_reason_code: Optional[str] = None
    note_reason: Optional[str] = None
    status: str = STATUS_DRAFT

    @property
    def document_id(self) -> str:
        return f"{self.series}-{self.number}"

    @property
    def file_name(self) -> str:
        """Nombre SUNAT sin extensión: {ruc}-{tipo}-{serie}-{numero}"""
        return f"{self.issuer.ruc}-{self.document_type}-{self.series}-{self.number}"


@dataclass
class SignedEnvelope:
    """XML UBL, XML firmado y DigestValue de la firma"""
    xml: str
    signed_xml: str
    digest_value: str


@dataclass
class TransportResult:
    """Resultado de un intento de envío o consulta"""
    success: bool
    status: str
    response_code: Optional[str] = None
    response_message: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    ticket: Optional[str] = None
    hash: Optional[str] = None
    signed_xml: Optional[str] = None
    cdr: Optional[str] = None
    timestamp: Optional[datetime] = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.now()
