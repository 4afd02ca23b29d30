"""
Carga de certificados digitales PKCS#12 (P12/PFX)

El P12 es la fuente de verdad: se abre en memoria con cryptography y nunca
se escriben claves a disco.
"""
import base64
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12

from .exceptions import CertificateError

logger = logging.getLogger(__name__)


@dataclass
class CertificateBundle:
    """Clave privada + certificado extraídos del P12"""
    private_key: Any
    certificate: x509.Certificate
    additional_certificates: List[x509.Certificate] = field(default_factory=list)

    @property
    def certificate_pem(self) -> str:
        return self.certificate.public_bytes(serialization.Encoding.PEM).decode("ascii")

    @property
    def certificate_base64(self) -> str:
        """Certificado DER en base64, sin cabeceras PEM ni saltos de línea."""
        der = self.certificate.public_bytes(serialization.Encoding.DER)
        return base64.b64encode(der).decode("ascii")

    def get_certificate_info(self) -> Dict[str, str]:
        cert = self.certificate
        return {
            "subject": cert.subject.rfc4514_string(),
            "issuer": cert.issuer.rfc4514_string(),
            "serial_number": str(cert.serial_number),
            "not_valid_before": cert.not_valid_before_utc.isoformat(),
            "not_valid_after": cert.not_valid_after_utc.isoformat(),
        }


def read_p12_bytes(p12_path: Union[str, Path]) -> bytes:
    """
    Raises:
        CertificateError: Si el archivo no existe o no es un archivo
    """
    path = Path(p12_path)
    if not path.exists():
        raise CertificateError(f"Archivo P12 no encontrado: {p12_path}")
    if not path.is_file():
        raise CertificateError(f"La ruta no es un archivo: {p12_path}")
    return path.read_bytes()


def load_pkcs12(p12_data: bytes, password: Optional[str]) -> CertificateBundle:
    """
    Abre un P12 en memoria

    Args:
        p12_data: Contenido binario del P12/PFX
        password: Contraseña del P12

    Returns:
        CertificateBundle con clave RSA y certificado

    Raises:
        CertificateError: Si la contraseña es incorrecta, el archivo está dañado,
            o falta el certificado o la clave privada
    """
    if not p12_data:
        raise CertificateError("El certificado P12 está vacío")

    pwd = password.encode("utf-8") if password else None
    try:
        private_key, certificate, additional = pkcs12.load_key_and_certificates(p12_data, pwd)
    except ValueError as e:
        raise CertificateError(
            "No se pudo abrir el certificado P12 (contraseña incorrecta o archivo dañado)"
        ) from e

    if private_key is None:
        raise CertificateError("No se encontró la clave privada en el certificado P12")
    if certificate is None:
        raise CertificateError("No se encontró el certificado en el archivo P12")
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise CertificateError("La clave privada del certificado debe ser RSA")

    logger.debug(f"Certificado cargado: {certificate.subject.rfc4514_string()}")
    return CertificateBundle(
        private_key=private_key,
        certificate=certificate,
        additional_certificates=list(additional or []),
    )


def load_certificate(
    p12_path: Optional[Union[str, Path]] = None,
    password: Optional[str] = None,
    p12_data: Optional[bytes] = None,
) -> CertificateBundle:
    """
    Carga el certificado desde bytes (prioridad) o desde una ruta

    Raises:
        CertificateError: Si no se indicó certificado o no se puede abrir
    """
    if p12_data is None:
        if not p12_path:
            raise CertificateError("Certificado no especificado (ruta o contenido P12)")
        p12_data = read_p12_bytes(p12_path)
    return load_pkcs12(p12_data, password)
