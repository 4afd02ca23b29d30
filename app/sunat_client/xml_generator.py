"""
Generador de XML UBL 2.1 para comprobantes SUNAT

Factura (01) y boleta (03) comparten la estructura Invoice y solo difieren
en InvoiceTypeCode; notas de crédito (07) y débito (08) usan CreditNote y
DebitNote con DiscrepancyResponse y BillingReference.

El orden de los elementos es el exigido por los XSD de SUNAT.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from lxml import etree

from .catalogs import (
    DEFAULT_ADDRESS_TYPE_CODE,
    DEFAULT_UBIGEO,
    DOC_CREDIT_NOTE,
    DOC_DEBIT_NOTE,
    INVOICE_FAMILY,
    LEGEND_AMOUNT_IN_WORDS,
    PRICE_TYPE_FREE,
    PRICE_TYPE_NORMAL,
    TAX_EXEMPT,
    TAX_EXPORT,
    TAX_SCHEME_EXEMPT,
    TAX_SCHEME_EXPORT,
    TAX_SCHEME_FREE,
    TAX_SCHEME_IGV,
    TAX_SCHEME_UNAFFECTED,
    TAX_TAXED,
    TAX_UNAFFECTED,
)
from .date_utils import format_date, format_time, peru_now
from .exceptions import UnsupportedDocumentType
from .models import FiscalDocument
from .number_to_words import number_to_words
from .utils import format_amount, format_price, to_decimal
from .xml_utils import (
    NS_CREDIT_NOTE,
    NS_DEBIT_NOTE,
    NS_EXT,
    NS_INVOICE,
    UBL_NSMAP,
    cac,
    cbc,
    to_xml_string,
)

logger = logging.getLogger(__name__)

UBL_VERSION = "2.1"
CUSTOMIZATION_ID = "2.0"


@dataclass
class UblLine:
    id: int
    quantity: Decimal
    unit_code: str
    description: str
    unit_price: Decimal
    unit_price_with_tax: Decimal
    taxable_amount: Decimal
    tax_amount: Decimal
    tax_type: str
    igv_percentage: Decimal
    total: Decimal
    is_free: bool
    price_type_code: str


@dataclass
class UblLegend:
    code: str
    value: str


@dataclass
class UblDocumentData:
    """Vista plana y ya resuelta de un comprobante para el generador"""
    issuer_ruc: str
    issuer_name: str
    document_type: str
    series: str
    number: str
    issue_date: str
    issue_time: str
    currency: str
    customer_document_type: str
    customer_document_number: str
    customer_name: str
    taxable_amount: Decimal
    exempt_amount: Decimal
    unaffected_amount: Decimal
    free_amount: Decimal
    igv_amount: Decimal
    total: Decimal
    items: List[UblLine]
    issuer_trade_name: Optional[str] = None
    issuer_address: Optional[str] = None
    issuer_ubigeo: Optional[str] = None
    due_date: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    customer_address: Optional[str] = None
    isc_amount: Decimal = Decimal("0")
    other_taxes: Decimal = Decimal("0")
    global_discount: Decimal = Decimal("0")
    other_charges: Decimal = Decimal("0")
    operation_type: str = "0101"
    observations: Optional[str] = None
    reference_document_type: Optional[str] = None
    reference_document_number: Optional[str] = None
    note_reason_code: Optional[str] = None
    note_reason_description: Optional[str] = None
    legends: List[UblLegend] = field(default_factory=list)


def _line_tax_scheme(tax_type: str):
    if tax_type == TAX_TAXED:
        return TAX_SCHEME_IGV
    if tax_type == TAX_EXEMPT:
        return TAX_SCHEME_EXEMPT
    if tax_type == TAX_UNAFFECTED:
        return TAX_SCHEME_UNAFFECTED
    if tax_type == TAX_EXPORT:
        return TAX_SCHEME_EXPORT
    return TAX_SCHEME_FREE


def _plain_decimal(value: Decimal) -> str:
    """1.500 -> "1.5", 18.00 -> "18" (cantidades y porcentajes)"""
    return f"{to_decimal(value).normalize():f}"


def document_to_ubl_data(document: FiscalDocument) -> UblDocumentData:
    """
    Convierte un FiscalDocument (con líneas ya calculadas) en la vista del generador

    - Precio con IGV: unit_price * (1 + igv_percentage / 100)
    - Tipo de precio 02 para líneas gratuitas, 01 en otro caso
    - Cliente por defecto: tipo '0', número '-', nombre 'VARIOS'
    - Leyenda 1000 con el total en letras
    """
    now = peru_now()
    issue_time = document.issue_time or now.time().replace(microsecond=0)

    items = []
    for index, item in enumerate(document.items, start=1):
        unit_price = to_decimal(item.unit_price)
        igv_percentage = to_decimal(item.igv_percentage)
        items.append(
            UblLine(
                id=index,
                quantity=to_decimal(item.quantity),
                unit_code=item.unit_code,
                description=item.description,
                unit_price=unit_price,
                unit_price_with_tax=unit_price * (1 + igv_percentage / 100),
                taxable_amount=to_decimal(item.taxable_base),
                tax_amount=to_decimal(item.tax_amount),
                tax_type=item.tax_type,
                igv_percentage=igv_percentage,
                total=to_decimal(item.total),
                is_free=item.is_free,
                price_type_code=PRICE_TYPE_FREE if item.is_free else PRICE_TYPE_NORMAL,
            )
        )

    customer = document.customer
    issuer = document.issuer
    totals = document.totals
    reference = document.reference

    return UblDocumentData(
        issuer_ruc=issuer.ruc or "",
        issuer_name=issuer.legal_name or "",
        issuer_trade_name=issuer.trade_name or None,
        issuer_address=issuer.address or None,
        issuer_ubigeo=issuer.ubigeo or None,
        document_type=document.document_type,
        series=document.series,
        number=document.number,
        issue_date=format_date(document.issue_date or now.date()),
        issue_time=format_time(issue_time),
        due_date=format_date(document.due_date) if document.due_date else None,
        currency=document.currency,
        exchange_rate=document.exchange_rate,
        customer_document_type=(customer.document_type if customer else None) or "0",
        customer_document_number=(customer.document_number if customer else None) or "-",
        customer_name=(customer.name if customer else None) or "VARIOS",
        customer_address=(customer.address if customer else None) or None,
        taxable_amount=to_decimal(totals.taxable),
        exempt_amount=to_decimal(totals.exempt),
        unaffected_amount=to_decimal(totals.unaffected),
        free_amount=to_decimal(totals.free),
        igv_amount=to_decimal(totals.igv),
        global_discount=to_decimal(totals.discount),
        other_charges=to_decimal(totals.charges),
        total=to_decimal(totals.total),
        operation_type=document.operation_type or "0101",
        items=items,
        observations=document.note or None,
        reference_document_type=reference.document_type if reference else None,
        reference_document_number=reference.document_id if reference else None,
        note_reason_code=document.note_reason_code or None,
        note_reason_description=document.note_reason or None,
        legends=[UblLegend(LEGEND_AMOUNT_IN_WORDS, number_to_words(totals.total, document.currency))],
    )


class UblBuilder:
    """Generador UBL 2.1 (Invoice / CreditNote / DebitNote)"""

    def build_invoice(self, data: UblDocumentData) -> str:
        root = self._root(NS_INVOICE, "Invoice", data)
        if data.due_date:
            cbc(root, "DueDate", data.due_date)
        cbc(root, "InvoiceTypeCode", data.document_type, listID=data.operation_type)
        self._notes(root, data)
        cbc(root, "DocumentCurrencyCode", data.currency)
        self._body(root, data, line_tag="InvoiceLine", quantity_tag="InvoicedQuantity")
        return to_xml_string(root)

    def build_credit_note(self, data: UblDocumentData) -> str:
        root = self._root(NS_CREDIT_NOTE, "CreditNote", data)
        self._notes(root, data)
        cbc(root, "DocumentCurrencyCode", data.currency)
        self._discrepancy_response(root, data)
        self._billing_reference(root, data)
        self._body(root, data, line_tag="CreditNoteLine", quantity_tag="CreditedQuantity")
        return to_xml_string(root)

    def build_debit_note(self, data: UblDocumentData) -> str:
        root = self._root(NS_DEBIT_NOTE, "DebitNote", data)
        self._notes(root, data)
        cbc(root, "DocumentCurrencyCode", data.currency)
        self._discrepancy_response(root, data)
        self._billing_reference(root, data)
        self._body(root, data, line_tag="DebitNoteLine", quantity_tag="DebitedQuantity")
        return to_xml_string(root)

    def _root(self, namespace: str, tag: str, data: UblDocumentData):
        nsmap = {None: namespace}
        nsmap.update(UBL_NSMAP)
        root = etree.Element(f"{{{namespace}}}{tag}", nsmap=nsmap)

        # ExtensionContent queda vacío; lo llena el firmador
        extensions = etree.SubElement(root, f"{{{NS_EXT}}}UBLExtensions")
        extension = etree.SubElement(extensions, f"{{{NS_EXT}}}UBLExtension")
        etree.SubElement(extension, f"{{{NS_EXT}}}ExtensionContent")

        cbc(root, "UBLVersionID", UBL_VERSION)
        cbc(root, "CustomizationID", CUSTOMIZATION_ID)
        cbc(root, "ID", f"{data.series}-{data.number}")
        cbc(root, "IssueDate", data.issue_date)
        cbc(root, "IssueTime", data.issue_time)
        return root

    def _notes(self, root, data: UblDocumentData) -> None:
        if data.observations:
            cbc(root, "Note", data.observations)
        for legend in data.legends:
            cbc(root, "Note", legend.value, languageLocaleID=legend.code)

    def _body(self, root, data: UblDocumentData, line_tag: str, quantity_tag: str) -> None:
        self._supplier_party(root, data)
        self._customer_party(root, data)
        self._tax_total(root, data)
        self._legal_monetary_total(root, data)
        for line in data.items:
            self._line(root, data, line, line_tag, quantity_tag)

    def _discrepancy_response(self, root, data: UblDocumentData) -> None:
        if not data.note_reason_code:
            return
        discrepancy = cac(root, "DiscrepancyResponse")
        cbc(discrepancy, "ReferenceID", data.reference_document_number or "")
        cbc(discrepancy, "ResponseCode", data.note_reason_code)
        cbc(discrepancy, "Description", data.note_reason_description or "")

    def _billing_reference(self, root, data: UblDocumentData) -> None:
        if not data.reference_document_number:
            return
        billing = cac(root, "BillingReference")
        invoice_ref = cac(billing, "InvoiceDocumentReference")
        cbc(invoice_ref, "ID", data.reference_document_number)
        cbc(invoice_ref, "DocumentTypeCode", data.reference_document_type or "")

    def _supplier_party(self, root, data: UblDocumentData) -> None:
        party = cac(cac(root, "AccountingSupplierParty"), "Party")
        cbc(cac(party, "PartyIdentification"), "ID", data.issuer_ruc, schemeID="6")
        cbc(cac(party, "PartyName"), "Name", data.issuer_trade_name or data.issuer_name)
        legal = cac(party, "PartyLegalEntity")
        cbc(legal, "RegistrationName", data.issuer_name)
        address = cac(legal, "RegistrationAddress")
        cbc(address, "ID", data.issuer_ubigeo or DEFAULT_UBIGEO)
        cbc(address, "AddressTypeCode", DEFAULT_ADDRESS_TYPE_CODE)
        cbc(cac(address, "AddressLine"), "Line", data.issuer_address or "-")

    def _customer_party(self, root, data: UblDocumentData) -> None:
        party = cac(cac(root, "AccountingCustomerParty"), "Party")
        cbc(
            cac(party, "PartyIdentification"),
            "ID",
            data.customer_document_number,
            schemeID=data.customer_document_type,
        )
        legal = cac(party, "PartyLegalEntity")
        cbc(legal, "RegistrationName", data.customer_name)
        if data.customer_address:
            address = cac(legal, "RegistrationAddress")
            cbc(cac(address, "AddressLine"), "Line", data.customer_address)

    def _tax_subtotal(self, parent, currency: str, taxable, tax, scheme, percent=None, reason=None) -> None:
        subtotal = cac(parent, "TaxSubtotal")
        cbc(subtotal, "TaxableAmount", format_amount(taxable), currencyID=currency)
        cbc(subtotal, "TaxAmount", format_amount(tax), currencyID=currency)
        category = cac(subtotal, "TaxCategory")
        if percent is not None:
            cbc(category, "Percent", percent)
        if reason is not None:
            cbc(category, "TaxExemptionReasonCode", reason)
        scheme_elem = cac(category, "TaxScheme")
        scheme_id, scheme_name, type_code = scheme
        cbc(scheme_elem, "ID", scheme_id)
        cbc(scheme_elem, "Name", scheme_name)
        cbc(scheme_elem, "TaxTypeCode", type_code)

    def _tax_total(self, root, data: UblDocumentData) -> None:
        currency = data.currency
        tax_total = cac(root, "TaxTotal")
        total_tax = data.igv_amount + data.isc_amount + data.other_taxes
        cbc(tax_total, "TaxAmount", format_amount(total_tax), currencyID=currency)

        if data.igv_amount > 0 or data.taxable_amount > 0:
            self._tax_subtotal(tax_total, currency, data.taxable_amount, data.igv_amount, TAX_SCHEME_IGV)
        if data.exempt_amount > 0:
            self._tax_subtotal(tax_total, currency, data.exempt_amount, 0, TAX_SCHEME_EXEMPT)
        if data.unaffected_amount > 0:
            self._tax_subtotal(tax_total, currency, data.unaffected_amount, 0, TAX_SCHEME_UNAFFECTED)

    def _legal_monetary_total(self, root, data: UblDocumentData) -> None:
        currency = data.currency
        monetary = cac(root, "LegalMonetaryTotal")
        line_extension = data.taxable_amount + data.exempt_amount + data.unaffected_amount
        cbc(monetary, "LineExtensionAmount", format_amount(line_extension), currencyID=currency)
        cbc(monetary, "TaxInclusiveAmount", format_amount(data.total), currencyID=currency)
        if data.global_discount > 0:
            cbc(monetary, "AllowanceTotalAmount", format_amount(data.global_discount), currencyID=currency)
        if data.other_charges > 0:
            cbc(monetary, "ChargeTotalAmount", format_amount(data.other_charges), currencyID=currency)
        cbc(monetary, "PayableAmount", format_amount(data.total), currencyID=currency)

    def _line(self, root, data: UblDocumentData, line: UblLine, line_tag: str, quantity_tag: str) -> None:
        currency = data.currency
        elem = cac(root, line_tag)
        cbc(elem, "ID", line.id)
        cbc(elem, quantity_tag, _plain_decimal(line.quantity), unitCode=line.unit_code)
        cbc(elem, "LineExtensionAmount", format_amount(line.taxable_amount), currencyID=currency)

        alternative = cac(cac(elem, "PricingReference"), "AlternativeConditionPrice")
        cbc(alternative, "PriceAmount", format_price(line.unit_price_with_tax), currencyID=currency)
        cbc(alternative, "PriceTypeCode", line.price_type_code)

        tax_total = cac(elem, "TaxTotal")
        cbc(tax_total, "TaxAmount", format_amount(line.tax_amount), currencyID=currency)
        self._tax_subtotal(
            tax_total,
            currency,
            line.taxable_amount,
            line.tax_amount,
            _line_tax_scheme(line.tax_type),
            percent=_plain_decimal(line.igv_percentage),
            reason=line.tax_type,
        )

        cbc(cac(elem, "Item"), "Description", line.description)
        cbc(cac(elem, "Price"), "PriceAmount", format_price(line.unit_price), currencyID=currency)


def build_document_xml(document: FiscalDocument) -> str:
    """
    Genera el XML UBL 2.1 sin firmar de un comprobante

    Raises:
        UnsupportedDocumentType: Si el tipo no es 01, 03, 07 u 08
    """
    builder = UblBuilder()
    doc_type = document.document_type
    if doc_type in INVOICE_FAMILY:
        build = builder.build_invoice
    elif doc_type == DOC_CREDIT_NOTE:
        build = builder.build_credit_note
    elif doc_type == DOC_DEBIT_NOTE:
        build = builder.build_debit_note
    else:
        raise UnsupportedDocumentType(doc_type)

    xml = build(document_to_ubl_data(document))
    logger.info(f"XML UBL generado: {document.file_name}")
    return xml
