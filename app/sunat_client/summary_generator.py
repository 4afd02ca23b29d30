"""
Resumen diario (RC) y comunicación de baja (RA)

- SummaryDocuments-1: boletas y sus notas, ID RC-YYYYMMDD-NNNNN (fecha de los comprobantes)
- VoidedDocuments-1: anulación de comprobantes, ID RA-YYYYMMDD-NNNNN (fecha de emisión de la baja)

Ambos llevan cac:Signature apuntando a #SignatureSP y se envían con sendSummary.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional

from lxml import etree

from .catalogs import DOC_RECEIPT, TAX_SCHEME_IGV
from .date_utils import format_compact_date, format_date, peru_today
from .models import DocumentReference, FiscalDocument
from .utils import format_amount, to_decimal
from .xml_signer import SIGNATURE_ID
from .xml_utils import NS_EXT, NS_SAC, NS_SUMMARY, NS_VOIDED, UBL_NSMAP, cac, cbc, sac, to_xml_string

logger = logging.getLogger(__name__)

SUMMARY_UBL_VERSION = "2.0"
SUMMARY_CUSTOMIZATION_ID = "1.1"
VOIDED_CUSTOMIZATION_ID = "1.0"

# ConditionCode del resumen
CONDITION_ADD = "1"
CONDITION_MODIFY = "2"
CONDITION_VOID = "3"

# InstructionID de sac:BillingPayment
INSTRUCTION_TAXABLE = "01"
INSTRUCTION_EXEMPT = "02"
INSTRUCTION_UNAFFECTED = "03"
INSTRUCTION_FREE = "05"


@dataclass
class SummaryItem:
    document_type: str
    series: str
    start_number: str
    end_number: str
    total_amount: Decimal
    taxable_amount: Decimal
    igv_amount: Decimal
    currency: str
    customer_document_type: str
    customer_document_number: str
    status: str = CONDITION_ADD
    exempt_amount: Decimal = Decimal("0")
    unaffected_amount: Decimal = Decimal("0")
    free_amount: Decimal = Decimal("0")
    other_charges: Decimal = Decimal("0")
    reference: Optional[DocumentReference] = None


@dataclass
class VoidedItem:
    document_type: str
    series: str
    number: str
    reason: str


def summary_id(prefix: str, day: date, correlative: int) -> str:
    """RC-20250115-00001 / RA-20250115-00001"""
    return f"{prefix}-{format_compact_date(day)}-{int(correlative):05d}"


class SummaryBuilder:
    """Generador de SummaryDocuments y VoidedDocuments"""

    def _header(
        self,
        namespace: str,
        tag: str,
        customization_id: str,
        document_id: str,
        reference_date: date,
        issue_date: date,
        issuer_ruc: str,
        issuer_name: str,
    ):
        nsmap = {None: namespace}
        nsmap.update(UBL_NSMAP)
        nsmap["sac"] = NS_SAC
        root = etree.Element(f"{{{namespace}}}{tag}", nsmap=nsmap)

        extensions = etree.SubElement(root, f"{{{NS_EXT}}}UBLExtensions")
        extension = etree.SubElement(extensions, f"{{{NS_EXT}}}UBLExtension")
        etree.SubElement(extension, f"{{{NS_EXT}}}ExtensionContent")

        cbc(root, "UBLVersionID", SUMMARY_UBL_VERSION)
        cbc(root, "CustomizationID", customization_id)
        cbc(root, "ID", document_id)
        cbc(root, "ReferenceDate", format_date(reference_date))
        cbc(root, "IssueDate", format_date(issue_date))

        signature = cac(root, "Signature")
        cbc(signature, "ID", f"IDSign{issuer_ruc}")
        signatory = cac(signature, "SignatoryParty")
        cbc(cac(signatory, "PartyIdentification"), "ID", issuer_ruc)
        cbc(cac(signatory, "PartyName"), "Name", issuer_name)
        attachment = cac(signature, "DigitalSignatureAttachment")
        cbc(cac(attachment, "ExternalReference"), "URI", f"#{SIGNATURE_ID}")

        party = cac(cac(root, "AccountingSupplierParty"), "Party")
        cbc(cac(party, "PartyIdentification"), "ID", issuer_ruc, schemeID="6")
        cbc(cac(party, "PartyLegalEntity"), "RegistrationName", issuer_name)
        return root

    def build_daily_summary(
        self,
        issuer_ruc: str,
        issuer_name: str,
        reference_date: date,
        correlative: int,
        items: List[SummaryItem],
        issue_date: Optional[date] = None,
    ) -> str:
        """
        Genera el Resumen Diario

        Args:
            reference_date: Fecha de emisión de los comprobantes resumidos
            correlative: Correlativo del día (1, 2, 3...)
        """
        root = self._header(
            NS_SUMMARY,
            "SummaryDocuments",
            SUMMARY_CUSTOMIZATION_ID,
            summary_id("RC", reference_date, correlative),
            reference_date,
            issue_date or peru_today(),
            issuer_ruc,
            issuer_name,
        )
        for line_number, item in enumerate(items, start=1):
            self._summary_line(root, item, line_number)
        return to_xml_string(root)

    def build_voided_documents(
        self,
        issuer_ruc: str,
        issuer_name: str,
        reference_date: date,
        correlative: int,
        items: List[VoidedItem],
        issue_date: Optional[date] = None,
    ) -> str:
        """
        Genera la Comunicación de Baja

        Args:
            reference_date: Fecha de emisión de los comprobantes a anular
            issue_date: Fecha de la comunicación (define el ID RA-...)
        """
        issued = issue_date or peru_today()
        root = self._header(
            NS_VOIDED,
            "VoidedDocuments",
            VOIDED_CUSTOMIZATION_ID,
            summary_id("RA", issued, correlative),
            reference_date,
            issued,
            issuer_ruc,
            issuer_name,
        )
        for line_number, item in enumerate(items, start=1):
            line = sac(root, "VoidedDocumentsLine")
            cbc(line, "LineID", line_number)
            cbc(line, "DocumentTypeCode", item.document_type)
            sac(line, "DocumentSerialID", item.series)
            sac(line, "DocumentNumberID", item.number)
            sac(line, "VoidReasonDescription", item.reason)
        return to_xml_string(root)

    def _billing_payment(self, line, amount: Decimal, instruction_id: str, currency: str) -> None:
        if amount <= 0:
            return
        payment = sac(line, "BillingPayment")
        cbc(payment, "PaidAmount", format_amount(amount), currencyID=currency)
        cbc(payment, "InstructionID", instruction_id)

    def _summary_line(self, root, item: SummaryItem, line_number: int) -> None:
        currency = item.currency
        line = sac(root, "SummaryDocumentsLine")
        cbc(line, "LineID", line_number)
        cbc(line, "DocumentTypeCode", item.document_type)
        cbc(line, "ID", f"{item.series}-{item.start_number}")

        customer = cac(cac(line, "AccountingCustomerParty"), "Party")
        cbc(
            cac(customer, "PartyIdentification"),
            "ID",
            item.customer_document_number,
            schemeID=item.customer_document_type,
        )

        if item.reference is not None:
            invoice_ref = cac(cac(line, "BillingReference"), "InvoiceDocumentReference")
            cbc(invoice_ref, "ID", item.reference.document_id)
            cbc(invoice_ref, "DocumentTypeCode", item.reference.document_type)

        cbc(cac(line, "Status"), "ConditionCode", item.status)
        sac(line, "TotalAmount", format_amount(item.total_amount), currencyID=currency)

        self._billing_payment(line, to_decimal(item.taxable_amount), INSTRUCTION_TAXABLE, currency)
        self._billing_payment(line, to_decimal(item.exempt_amount), INSTRUCTION_EXEMPT, currency)
        self._billing_payment(line, to_decimal(item.unaffected_amount), INSTRUCTION_UNAFFECTED, currency)
        self._billing_payment(line, to_decimal(item.free_amount), INSTRUCTION_FREE, currency)

        if to_decimal(item.other_charges) > 0:
            charge = cac(line, "AllowanceCharge")
            cbc(charge, "ChargeIndicator", "true")
            cbc(charge, "Amount", format_amount(item.other_charges), currencyID=currency)

        tax_total = cac(line, "TaxTotal")
        cbc(tax_total, "TaxAmount", format_amount(item.igv_amount), currencyID=currency)
        subtotal = cac(tax_total, "TaxSubtotal")
        cbc(subtotal, "TaxableAmount", format_amount(item.taxable_amount), currencyID=currency)
        cbc(subtotal, "TaxAmount", format_amount(item.igv_amount), currencyID=currency)
        scheme = cac(cac(subtotal, "TaxCategory"), "TaxScheme")
        scheme_id, scheme_name, type_code = TAX_SCHEME_IGV
        cbc(scheme, "ID", scheme_id)
        cbc(scheme, "Name", scheme_name)
        cbc(scheme, "TaxTypeCode", type_code)


def create_daily_summary(
    documents: Iterable[FiscalDocument],
    issuer_ruc: str,
    issuer_name: str,
    reference_date: date,
    correlative: int,
    issue_date: Optional[date] = None,
) -> str:
    """Arma el Resumen Diario a partir de comprobantes (condición 1: adicionar)."""
    items = []
    for doc in documents:
        customer = doc.customer
        reference = doc.reference
        if reference is not None and not reference.document_type:
            reference = DocumentReference(DOC_RECEIPT, reference.series, reference.number)
        items.append(
            SummaryItem(
                document_type=doc.document_type,
                series=doc.series,
                start_number=doc.number,
                end_number=doc.number,
                total_amount=to_decimal(doc.totals.total),
                taxable_amount=to_decimal(doc.totals.taxable),
                igv_amount=to_decimal(doc.totals.igv),
                exempt_amount=to_decimal(doc.totals.exempt),
                unaffected_amount=to_decimal(doc.totals.unaffected),
                free_amount=to_decimal(doc.totals.free),
                currency=doc.currency,
                customer_document_type=(customer.document_type if customer else None) or "1",
                customer_document_number=(customer.document_number if customer else None) or "-",
                status=CONDITION_ADD,
                reference=reference,
            )
        )
    xml = SummaryBuilder().build_daily_summary(
        issuer_ruc, issuer_name, reference_date, correlative, items, issue_date=issue_date
    )
    logger.info(f"Resumen diario generado: {len(items)} comprobantes")
    return xml


def create_voided_communication(
    documents: Iterable[VoidedItem],
    issuer_ruc: str,
    issuer_name: str,
    reference_date: date,
    correlative: int,
    issue_date: Optional[date] = None,
) -> str:
    """Arma la Comunicación de Baja para los comprobantes indicados."""
    items = list(documents)
    return SummaryBuilder().build_voided_documents(
        issuer_ruc, issuer_name, reference_date, correlative, items, issue_date=issue_date
    )
