"""
Excepciones personalizadas para el cliente SUNAT
"""
from typing import List, Optional


class SunatException(Exception):
    """Excepción base para errores SUNAT"""
    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        self.code = code
        super().__init__(self.message)


class ValidationError(SunatException):
    """Error de validación (totales, RUC/DNI, serie, tipo de documento)"""
    def __init__(self, message: str, errors: Optional[List[str]] = None, code: Optional[str] = None):
        self.errors = list(errors) if errors else [message]
        super().__init__(message, code)


class UnsupportedDocumentType(ValidationError):
    """Tipo de documento sin esquema UBL conocido"""
    def __init__(self, document_type: str):
        self.document_type = document_type
        super().__init__(f"Tipo de documento no soportado: {document_type}", code="UNSUPPORTED_DOCUMENT_TYPE")


class ConfigurationError(SunatException):
    """Configuración del proveedor incompleta o inválida"""
    pass


class CertificateError(SunatException):
    """Error al cargar el certificado digital (PKCS#12)"""
    pass


class SignatureError(SunatException):
    """Error en la firma digital"""
    pass


class ArchiveError(SunatException):
    """ZIP inválido o método de compresión no soportado"""
    pass


InvalidArchive = ArchiveError


class TransportException(SunatException):
    """Error de red, timeout, SOAP fault o respuesta HTTP no exitosa"""
    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        fault_code: Optional[str] = None,
        http_status: Optional[int] = None,
    ):
        self.fault_code = fault_code
        self.http_status = http_status
        super().__init__(message, code or fault_code)
