"""
Utilidades XML: parseo compacto, canonicalización C14N y serialización
"""
from typing import Union

from lxml import etree

from .exceptions import SignatureError

XmlInput = Union[str, bytes]

# Namespaces UBL 2.1 / SUNAT
NS_INVOICE = "urn:oasis:names:specification:ubl:schema:xsd:Invoice-2"
NS_CREDIT_NOTE = "urn:oasis:names:specification:ubl:schema:xsd:CreditNote-2"
NS_DEBIT_NOTE = "urn:oasis:names:specification:ubl:schema:xsd:DebitNote-2"
NS_SUMMARY = "urn:sunat:names:specification:ubl:peru:schema:xsd:SummaryDocuments-1"
NS_VOIDED = "urn:sunat:names:specification:ubl:peru:schema:xsd:VoidedDocuments-1"
NS_CAC = "urn:oasis:names:specification:ubl:schema:xsd:CommonAggregateComponents-2"
NS_CBC = "urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2"
NS_EXT = "urn:oasis:names:specification:ubl:schema:xsd:CommonExtensionComponents-2"
NS_SAC = "urn:sunat:names:specification:ubl:peru:schema:xsd:SunatAggregateComponents-1"
NS_DS = "http://www.w3.org/2000/09/xmldsig#"

UBL_NSMAP = {
    "cac": NS_CAC,
    "cbc": NS_CBC,
    "ds": NS_DS,
    "ext": NS_EXT,
}


def _to_bytes(xml_content: XmlInput) -> bytes:
    if isinstance(xml_content, bytes):
        return xml_content
    return xml_content.lstrip("\ufeff").encode("utf-8")


def parse_xml(xml_content: XmlInput) -> etree._Element:
    """
    Parsea XML descartando espacios entre etiquetas

    Raises:
        SignatureError: Si el XML no es válido
    """
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False)
    try:
        return etree.fromstring(_to_bytes(xml_content), parser)
    except etree.XMLSyntaxError as e:
        raise SignatureError(f"XML inválido: {e}") from e


def canonicalize(xml_content: XmlInput) -> str:
    """
    Canonicaliza un documento (C14N 1.0 inclusiva, sin comentarios)

    Elimina la declaración XML y los espacios no significativos entre
    etiquetas. Aplicarla sobre un XML ya canónico no lo modifica.
    """
    root = parse_xml(xml_content)
    return etree.tostring(root, method="c14n", with_comments=False).decode("utf-8")


def to_xml_string(root: etree._Element) -> str:
    """Serializa con declaración UTF-8 y sin indentación."""
    return etree.tostring(
        root,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=False,
    ).decode("utf-8")


def find_first_by_localname(root: etree._Element, name: str):
    found = root.xpath(f'//*[local-name()="{name}"]')
    return found[0] if found else None


def text_by_localname(root: etree._Element, name: str) -> str:
    elem = find_first_by_localname(root, name)
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def sub_element(parent: etree._Element, namespace: str, name: str, text=None, **attrib) -> etree._Element:
    elem = etree.SubElement(parent, f"{{{namespace}}}{name}", **attrib)
    if text is not None:
        elem.text = str(text)
    return elem


def cac(parent: etree._Element, name: str) -> etree._Element:
    return sub_element(parent, NS_CAC, name)


def cbc(parent: etree._Element, name: str, text=None, **attrib) -> etree._Element:
    return sub_element(parent, NS_CBC, name, text, **attrib)


def sac(parent: etree._Element, name: str, text=None, **attrib) -> etree._Element:
    return sub_element(parent, NS_SAC, name, text, **attrib)
