"""
Contrato común de los adaptadores de transporte hacia SUNAT
"""
import logging
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..config import SunatConfig
from ..exceptions import SunatException
from ..models import STATUS_EXCEPTION, FiscalDocument, TransportResult
from ..validator import validate_document

logger = logging.getLogger(__name__)


class SunatAdapter(ABC):
    """
    Adaptador de envío (directo SOAP, OSE REST o simulador)

    Los métodos públicos nunca propagan errores de red: devuelven un
    TransportResult con status 'exception'. Sí propagan ValidationError
    (antes de cualquier llamada de red) y CertificateError.
    """

    name: str = ""
    supported_documents: Tuple[str, ...] = ()

    def __init__(self, config: SunatConfig):
        self.config = config

    @abstractmethod
    def send_document(self, document: FiscalDocument) -> TransportResult:
        ...

    @abstractmethod
    def query_status(self, ticket: str) -> TransportResult:
        ...

    @abstractmethod
    def void_document(self, document: FiscalDocument, reason: str) -> TransportResult:
        ...

    def get_supported_documents(self) -> List[str]:
        return list(self.supported_documents)

    def get_name(self) -> str:
        return self.name

    def get_document_filename(self, document: FiscalDocument) -> str:
        """RUC-TIPO-SERIE-NUMERO (RUC del emisor o, en su defecto, el configurado)"""
        ruc = (document.issuer.ruc if document.issuer else None) or self.config.ruc
        return f"{ruc}-{document.document_type}-{document.series}-{document.number}"

    def validate_document(self, document: FiscalDocument) -> None:
        """
        Raises:
            ValidationError: Sin RUC de emisor, sin cliente o sin líneas
        """
        validate_document(document)

    def exception_result(
        self,
        error: Exception,
        notes: Optional[List[str]] = None,
        **extra,
    ) -> TransportResult:
        """Normaliza un error local o de red en un resultado 'exception'."""
        if isinstance(error, SunatException):
            code = error.code or "ERROR"
            message = error.message
        else:
            code = "ERROR"
            message = str(error) or "Unknown error"
        logger.warning(f"[{self.name}] Resultado exception ({code}): {message}")
        return TransportResult(
            success=False,
            status=STATUS_EXCEPTION,
            response_code=code,
            response_message=message,
            notes=list(notes or []),
            **extra,
        )
