from dataclasses import replace
from datetime import date, time
from decimal import Decimal
from pathlib import Path
import sys

import pytest
from lxml import etree

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.sunat_client.exceptions import UnsupportedDocumentType  # noqa: E402
from app.sunat_client.models import Customer, DocumentReference, LineItem  # noqa: E402
from app.sunat_client.xml_generator import build_document_xml  # noqa: E402

CBC = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"


def _root(xml: str):
    return etree.fromstring(xml.encode("utf-8"))


def _text(root, path: str) -> str:
    return root.xpath(f"string({path})")


def _children(root):
    return [etree.QName(child).localname for child in root]


def test_invoice_header_and_element_order(invoice):
    doc = replace(invoice, issue_time=time(10, 15, 0), due_date=date(2025, 2, 15))
    xml = build_document_xml(doc)
    assert xml.startswith("<?xml version='1.0' encoding='UTF-8'?>")

    root = _root(xml)
    assert etree.QName(root).localname == "Invoice"
    assert _children(root) == [
        "UBLExtensions",
        "UBLVersionID",
        "CustomizationID",
        "ID",
        "IssueDate",
        "IssueTime",
        "DueDate",
        "InvoiceTypeCode",
        "Note",
        "DocumentCurrencyCode",
        "AccountingSupplierParty",
        "AccountingCustomerParty",
        "TaxTotal",
        "LegalMonetaryTotal",
        "InvoiceLine",
    ]
    assert _text(root, '/*/*[local-name()="UBLVersionID"]') == "2.1"
    assert _text(root, '/*/*[local-name()="ID"]') == "F001-00000001"
    assert _text(root, '/*/*[local-name()="IssueDate"]') == "2025-01-15"
    assert _text(root, '/*/*[local-name()="IssueTime"]') == "10:15:00"

    type_code = root.find(f"{{{CBC}}}InvoiceTypeCode")
    assert type_code.text == "01"
    assert type_code.get("listID") == "0101"

    extension_content = root.xpath('//*[local-name()="ExtensionContent"]')[0]
    assert len(extension_content) == 0


def test_invoice_amounts_and_legend(invoice):
    root = _root(build_document_xml(invoice))

    legend = root.find(f"{{{CBC}}}Note")
    assert legend.get("languageLocaleID") == "1000"
    assert legend.text == "CIENTO DIECIOCHO CON 00/100 SOLES"

    assert _text(root, '/*/*[local-name()="TaxTotal"]/*[local-name()="TaxAmount"]') == "18.00"
    payable = root.xpath('//*[local-name()="PayableAmount"]')[0]
    assert payable.text == "118.00"
    assert payable.get("currencyID") == "PEN"

    line = root.xpath('//*[local-name()="InvoiceLine"]')[0]
    assert _text(line, './*[local-name()="InvoicedQuantity"]') == "1"
    assert _text(line, './/*[local-name()="AlternativeConditionPrice"]/*[local-name()="PriceAmount"]') == "118.000000"
    assert _text(line, './*[local-name()="Price"]/*[local-name()="PriceAmount"]') == "100.000000"
    assert _text(line, './/*[local-name()="TaxExemptionReasonCode"]') == "10"
    assert _text(line, './/*[local-name()="TaxScheme"]/*[local-name()="ID"]') == "1000"


def test_receipt_uses_invoice_structure(receipt):
    root = _root(build_document_xml(receipt))
    assert etree.QName(root).localname == "Invoice"
    assert root.find(f"{{{CBC}}}InvoiceTypeCode").text == "03"
    customer_id = root.xpath('//*[local-name()="AccountingCustomerParty"]//*[local-name()="ID"]')[0]
    assert customer_id.get("schemeID") == "1"
    assert customer_id.text == "12345678"


def test_receipt_without_customer_defaults_to_varios(receipt):
    root = _root(build_document_xml(replace(receipt, customer=None)))
    party = root.xpath('//*[local-name()="AccountingCustomerParty"]')[0]
    assert _text(party, './/*[local-name()="RegistrationName"]') == "VARIOS"
    assert party.xpath('.//*[local-name()="ID"]')[0].get("schemeID") == "0"


def test_free_line_has_free_price_type(make_document):
    doc = make_document(items=[
        LineItem(description="Pagado", quantity=Decimal("1"), unit_price=Decimal("50")),
        LineItem(description="Regalo", quantity=Decimal("1"), unit_price=Decimal("20"), tax_type="15"),
    ])
    root = _root(build_document_xml(doc))
    lines = root.xpath('//*[local-name()="InvoiceLine"]')
    assert _text(lines[0], './/*[local-name()="PriceTypeCode"]') == "01"
    assert _text(lines[1], './/*[local-name()="PriceTypeCode"]') == "02"
    assert _text(lines[1], './/*[local-name()="TaxScheme"]/*[local-name()="ID"]') == "9996"


def test_exempt_and_unaffected_subtotals(make_document):
    doc = make_document(items=[
        LineItem(description="Exonerado", quantity=Decimal("1"), unit_price=Decimal("40"), tax_type="20"),
        LineItem(description="Inafecto", quantity=Decimal("1"), unit_price=Decimal("60"), tax_type="30"),
    ])
    root = _root(build_document_xml(doc))
    document_tax = root.xpath('/*/*[local-name()="TaxTotal"]')[0]
    scheme_ids = document_tax.xpath('.//*[local-name()="TaxScheme"]/*[local-name()="ID"]/text()')
    assert scheme_ids == ["9997", "9998"]


def test_credit_note_structure(credit_note):
    root = _root(build_document_xml(credit_note))
    assert etree.QName(root).localname == "CreditNote"
    names = _children(root)
    assert names.index("DiscrepancyResponse") < names.index("BillingReference") < names.index("AccountingSupplierParty")
    assert "InvoiceTypeCode" not in names

    assert _text(root, '//*[local-name()="DiscrepancyResponse"]/*[local-name()="ReferenceID"]') == "F001-00000001"
    assert _text(root, '//*[local-name()="DiscrepancyResponse"]/*[local-name()="ResponseCode"]') == "01"
    assert _text(root, '//*[local-name()="InvoiceDocumentReference"]/*[local-name()="DocumentTypeCode"]') == "01"
    assert root.xpath('//*[local-name()="CreditNoteLine"]/*[local-name()="CreditedQuantity"]')


def test_debit_note_structure(make_document):
    doc = make_document(
        document_type="08",
        series="FD01",
        reference=DocumentReference("01", "F001", "00000001"),
        note_reason_code="01",
        note_reason="Intereses por mora",
    )
    root = _root(build_document_xml(doc))
    assert etree.QName(root).localname == "DebitNote"
    assert root.xpath('//*[local-name()="DebitNoteLine"]/*[local-name()="DebitedQuantity"]')


def test_usd_invoice_legend_and_currency(make_document):
    doc = make_document(currency="USD", exchange_rate=Decimal("3.75"))
    root = _root(build_document_xml(doc))
    assert root.find(f"{{{CBC}}}DocumentCurrencyCode").text == "USD"
    assert root.find(f"{{{CBC}}}Note").text.endswith("DOLARES")
    assert all(e.get("currencyID") == "USD" for e in root.xpath('//*[@currencyID]'))


def test_customer_name_is_escaped(make_document):
    doc = make_document(customer=Customer(document_type="6", document_number="20100066603", name="A & B <S.A.C.>"))
    xml = build_document_xml(doc)
    assert "A &amp; B &lt;S.A.C.&gt;" in xml
    assert _text(_root(xml), '//*[local-name()="AccountingCustomerParty"]//*[local-name()="RegistrationName"]') == "A & B <S.A.C.>"


def test_unsupported_document_type(make_document):
    with pytest.raises(UnsupportedDocumentType):
        build_document_xml(make_document(document_type="09", series="T001"))
