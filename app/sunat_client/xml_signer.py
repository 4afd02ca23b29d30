"""
Firma XMLDSig de comprobantes UBL según el perfil SUNAT

- Firma enveloped dentro de ext:UBLExtensions/ext:UBLExtension/ext:ExtensionContent
- Reference URI="" (documento completo) con transform enveloped-signature
- CanonicalizationMethod: C14N 1.0 inclusiva (REC-xml-c14n-20010315)
- DigestMethod: SHA-256
- SignatureMethod: RSA-SHA256
- ds:Signature Id="SignatureSP" (referenciado desde cac:Signature)
- X509Certificate en KeyInfo (DER base64, sin cabeceras PEM)
"""
import logging
import textwrap
from pathlib import Path
from typing import Optional, Union

from lxml import etree
from signxml import (
    CanonicalizationMethod,
    DigestAlgorithm,
    SignatureConfiguration,
    SignatureMethod,
    XMLSigner,
    XMLVerifier,
    methods,
)

from .exceptions import SignatureError
from .models import SignedEnvelope
from .pkcs12_utils import CertificateBundle, load_certificate
from .xml_utils import NS_DS, NS_EXT, XmlInput, parse_xml, text_by_localname, to_xml_string

logger = logging.getLogger(__name__)

SIGNATURE_ID = "SignatureSP"
PLACEHOLDER_ID = "placeholder"


def _pem_from_base64(cert_b64: str) -> str:
    body = "".join(cert_b64.split())
    lines = "\n".join(textwrap.wrap(body, 64))
    return f"-----BEGIN CERTIFICATE-----\n{lines}\n-----END CERTIFICATE-----\n"


class XmlSigner:
    """
    Firmador de comprobantes con un certificado PKCS#12 ya abierto

    El certificado se carga una vez (load_certificate) y se reutiliza
    para firmar varios documentos.
    """

    def __init__(self, bundle: CertificateBundle):
        self.bundle = bundle
        self._signer = XMLSigner(
            method=methods.enveloped,
            signature_algorithm=SignatureMethod.RSA_SHA256,
            digest_algorithm=DigestAlgorithm.SHA256,
            c14n_algorithm=CanonicalizationMethod.CANONICAL_XML_1_0,
        )

    @classmethod
    def from_pkcs12(
        cls,
        p12_path: Optional[Union[str, Path]] = None,
        password: Optional[str] = None,
        p12_data: Optional[bytes] = None,
    ) -> "XmlSigner":
        """
        Raises:
            CertificateError: Si el P12 no se puede abrir o le falta clave/certificado
        """
        return cls(load_certificate(p12_path=p12_path, password=password, p12_data=p12_data))

    def _insert_placeholder(self, root: etree._Element) -> None:
        extension_content = root.find(f".//{{{NS_EXT}}}ExtensionContent")
        if extension_content is None:
            raise SignatureError("No se encontró ext:ExtensionContent para insertar la firma")

        for child in list(extension_content):
            extension_content.remove(child)
        extension_content.text = None

        nsmap = None if NS_DS in root.nsmap.values() else {"ds": NS_DS}
        etree.SubElement(extension_content, f"{{{NS_DS}}}Signature", nsmap=nsmap, Id=PLACEHOLDER_ID)

    def sign(self, xml_content: XmlInput) -> str:
        """
        Firma un XML UBL y reemplaza el contenido de ext:ExtensionContent por ds:Signature

        Args:
            xml_content: XML UBL sin firmar (con ExtensionContent vacío)

        Returns:
            XML firmado como string, con declaración UTF-8

        Raises:
            SignatureError: Si el XML es inválido o no tiene ExtensionContent
        """
        root = parse_xml(xml_content)
        self._insert_placeholder(root)

        try:
            signed_root = self._signer.sign(
                root,
                key=self.bundle.private_key,
                cert=self.bundle.certificate_pem,
            )
        except (ValueError, TypeError) as e:
            raise SignatureError(f"Error al firmar XML: {e}") from e

        signature = signed_root.find(f".//{{{NS_DS}}}Signature")
        if signature is None:
            raise SignatureError("La firma no quedó insertada en el documento")
        # Fuera de SignedInfo: no altera el digest ni el SignatureValue
        signature.set("Id", SIGNATURE_ID)
        for cert_elem in signature.iter(f"{{{NS_DS}}}X509Certificate"):
            cert_elem.text = self.bundle.certificate_base64

        signed_xml = to_xml_string(signed_root)
        logger.info("XML firmado exitosamente")
        return signed_xml

    def sign_envelope(self, xml_content: str) -> SignedEnvelope:
        signed_xml = self.sign(xml_content)
        return SignedEnvelope(
            xml=xml_content,
            signed_xml=signed_xml,
            digest_value=get_hash_from_signed_xml(signed_xml),
        )


def sign_xml(
    xml_content: XmlInput,
    p12_data: Optional[bytes] = None,
    password: Optional[str] = None,
    p12_path: Optional[Union[str, Path]] = None,
) -> str:
    """
    Firma un XML con un certificado PKCS#12 (bytes o ruta)

    Raises:
        CertificateError: Si el certificado no se puede cargar
        SignatureError: Si el XML no se puede firmar
    """
    signer = XmlSigner.from_pkcs12(p12_path=p12_path, password=password, p12_data=p12_data)
    return signer.sign(xml_content)


def get_hash_from_signed_xml(signed_xml: XmlInput) -> str:
    """Retorna el DigestValue de la firma ('' si el XML no está firmado)."""
    return text_by_localname(parse_xml(signed_xml), "DigestValue")


def verify_xml_signature(signed_xml: XmlInput) -> bool:
    """
    Verifica la firma usando el certificado embebido en KeyInfo

    Comprueba el DigestValue contra el documento y el SignatureValue contra
    SignedInfo canonicalizado. Solo sirve para pruebas de ida y vuelta: el
    certificado no se valida contra ninguna CA.

    Returns:
        True si la firma es válida, False en caso contrario (nunca lanza)
    """
    try:
        root = parse_xml(signed_xml)
        cert_b64 = text_by_localname(root, "X509Certificate")
        if not cert_b64:
            logger.warning("XML sin X509Certificate, no se puede verificar")
            return False

        XMLVerifier().verify(
            root,
            x509_cert=_pem_from_base64(cert_b64),
            expect_config=SignatureConfiguration(location=".//"),
        )
        return True
    except Exception as e:
        logger.error(f"Error al verificar firma: {str(e)}")
        return False
