import base64
import hashlib
from pathlib import Path
import sys

import pytest
from lxml import etree

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.sunat_client.exceptions import CertificateError, SignatureError  # noqa: E402
from app.sunat_client.pkcs12_utils import load_certificate, load_pkcs12  # noqa: E402
from app.sunat_client.xml_generator import build_document_xml  # noqa: E402
from app.sunat_client.xml_signer import (  # noqa: E402
    SIGNATURE_ID,
    XmlSigner,
    get_hash_from_signed_xml,
    sign_xml,
    verify_xml_signature,
)
from app.sunat_client.xml_utils import canonicalize  # noqa: E402


def test_canonicalize_is_idempotent():
    xml = '<?xml version="1.0" encoding="UTF-8"?>\n<a  xmlns="urn:x" b="1">\n  <c>texto</c>\n  <!-- nota -->\n</a>'
    once = canonicalize(xml)
    assert not once.startswith("<?xml")
    assert "<!--" not in once
    assert canonicalize(once) == once


def test_canonicalize_ignores_leading_bom():
    assert canonicalize("\ufeff<a><b>1</b></a>") == "<a><b>1</b></a>"


def test_canonicalize_rejects_malformed_xml():
    with pytest.raises(SignatureError):
        canonicalize("<a><b></a>")


def test_load_pkcs12_wrong_password(p12_bytes):
    with pytest.raises(CertificateError, match="contraseña"):
        load_pkcs12(p12_bytes, "incorrecta")


def test_load_certificate_missing_file(tmp_path):
    with pytest.raises(CertificateError, match="no encontrado"):
        load_certificate(p12_path=tmp_path / "no-existe.p12", password="x")


def test_load_pkcs12_without_private_key(p12_without_key, p12_password):
    with pytest.raises(CertificateError, match="clave privada"):
        load_pkcs12(p12_without_key, p12_password)


def test_load_pkcs12_without_certificate(p12_without_certificate, p12_password):
    with pytest.raises(CertificateError, match="No se encontró el certificado"):
        load_pkcs12(p12_without_certificate, p12_password)


def test_load_certificate_from_path(p12_file, p12_password):
    bundle = load_certificate(p12_path=p12_file, password=p12_password)
    info = bundle.get_certificate_info()
    assert "20123456786" in info["subject"]
    assert "\n" not in bundle.certificate_base64


def test_sign_and_verify_invoice(invoice, p12_bytes, p12_password):
    xml = build_document_xml(invoice)
    signed = sign_xml(xml, p12_data=p12_bytes, password=p12_password)

    root = etree.fromstring(signed.encode("utf-8"))
    signatures = root.xpath('//*[local-name()="Signature" and namespace-uri()="http://www.w3.org/2000/09/xmldsig#"]')
    assert len(signatures) == 1
    assert signatures[0].get("Id") == SIGNATURE_ID
    assert signatures[0].getparent().xpath("local-name()") == "ExtensionContent"

    algorithms = {e.get("Algorithm") for e in root.iter() if e.get("Algorithm")}
    assert "http://www.w3.org/2001/04/xmldsig-more#rsa-sha256" in algorithms
    assert "http://www.w3.org/2001/04/xmlenc#sha256" in algorithms
    assert "http://www.w3.org/TR/2001/REC-xml-c14n-20010315" in algorithms

    assert verify_xml_signature(signed) is True
    assert len(get_hash_from_signed_xml(signed)) == 44


def test_tampered_document_fails_verification(invoice, p12_bytes, p12_password):
    signed = sign_xml(build_document_xml(invoice), p12_data=p12_bytes, password=p12_password)
    tampered = signed.replace(">118.00<", ">1.00<")
    assert tampered != signed
    assert verify_xml_signature(tampered) is False


def _replace_text(signed: str, local_name: str, value: str) -> str:
    root = etree.fromstring(signed.encode("utf-8"))
    node = root.xpath(f'//*[local-name()="{local_name}"]')[0]
    node.text = value
    return etree.tostring(root, encoding="unicode")


def test_tampered_digest_fails_verification(invoice, p12_bytes, p12_password):
    signed = sign_xml(build_document_xml(invoice), p12_data=p12_bytes, password=p12_password)
    forged = base64.b64encode(hashlib.sha256(b"otro documento").digest()).decode("ascii")
    assert forged != get_hash_from_signed_xml(signed)

    tampered = _replace_text(signed, "DigestValue", forged)
    assert get_hash_from_signed_xml(tampered) == forged
    assert verify_xml_signature(tampered) is False


def test_tampered_signature_value_fails_verification(invoice, p12_bytes, p12_password):
    signed = sign_xml(build_document_xml(invoice), p12_data=p12_bytes, password=p12_password)
    tampered = _replace_text(signed, "SignatureValue", base64.b64encode(b"\x00" * 256).decode("ascii"))
    assert verify_xml_signature(tampered) is False


def test_unsigned_xml_does_not_verify(invoice):
    assert verify_xml_signature(build_document_xml(invoice)) is False
    assert get_hash_from_signed_xml(build_document_xml(invoice)) == ""


def test_signer_reuses_loaded_certificate(invoice, receipt, p12_bytes, p12_password):
    signer = XmlSigner.from_pkcs12(p12_data=p12_bytes, password=p12_password)
    first = signer.sign_envelope(build_document_xml(invoice))
    second = signer.sign_envelope(build_document_xml(receipt))
    assert first.digest_value != second.digest_value
    assert verify_xml_signature(first.signed_xml)
    assert verify_xml_signature(second.signed_xml)


def test_sign_requires_extension_content(p12_bytes, p12_password):
    signer = XmlSigner.from_pkcs12(p12_data=p12_bytes, password=p12_password)
    with pytest.raises(SignatureError, match="ExtensionContent"):
        signer.sign("<Invoice/>")
