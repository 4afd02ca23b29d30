"""
Simulador de SUNAT para desarrollo y pruebas

No hace llamadas de red. Permite forzar rechazos y excepciones para
probar los caminos negativos.
"""
import base64
import logging
import secrets
import time

from lxml import etree

from ..config import SunatConfig
from ..models import (
    STATUS_ACCEPTED,
    STATUS_EXCEPTION,
    STATUS_REJECTED,
    FiscalDocument,
    TransportResult,
)
from ..xml_utils import NS_CBC, NS_INVOICE, to_xml_string
from ..zip_utils import zip_document
from .base import SunatAdapter

logger = logging.getLogger(__name__)

NS_APPLICATION_RESPONSE = "urn:oasis:names:specification:ubl:schema:xsd:ApplicationResponse-2"

DEFAULT_ERROR_CODE = "2010"

ERROR_MESSAGES = {
    "2010": "El numero de documento del receptor no cumple con el formato establecido",
    "2017": "El documento ya fue informado anteriormente",
    "2800": "El tipo de documento del receptor no es valido",
    "3105": "El XML no cumple con el formato UBL 2.1",
}


def generate_mock_hash() -> str:
    """44 caracteres base64, como un DigestValue SHA-256."""
    return base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def generate_mock_cdr(filename: str, digest: str) -> str:
    """CDR sintético de aceptación: ZIP con R-{filename}.xml, en base64."""
    root = etree.Element(
        f"{{{NS_APPLICATION_RESPONSE}}}ApplicationResponse",
        nsmap={None: NS_APPLICATION_RESPONSE, "cbc": NS_CBC},
    )
    etree.SubElement(root, f"{{{NS_CBC}}}ID").text = filename
    etree.SubElement(root, f"{{{NS_CBC}}}ResponseCode").text = "0"
    etree.SubElement(root, f"{{{NS_CBC}}}Description").text = "El Comprobante ha sido aceptado"
    etree.SubElement(root, f"{{{NS_CBC}}}DigestValue").text = digest
    zip_bytes = zip_document(f"R-{filename}", to_xml_string(root))
    return base64.b64encode(zip_bytes).decode("ascii")


class MockAdapter(SunatAdapter):
    """
    Adaptador simulado (proveedor por defecto)

    Opciones (SunatConfig):
        mock_delay: segundos de espera antes de responder
        mock_force_status: 'rejected' o 'exception'
        mock_force_error_code: código del rechazo forzado (por defecto 2010)
    """

    name = "mock"
    supported_documents = ("01", "03", "07", "08")

    def __init__(self, config: SunatConfig):
        super().__init__(config)
        self.delay = config.mock_delay
        self.force_status = config.mock_force_status
        self.force_error_code = config.mock_force_error_code

    def _wait(self) -> None:
        if self.delay:
            time.sleep(self.delay)

    def send_document(self, document: FiscalDocument) -> TransportResult:
        """
        Raises:
            ValidationError: Documento incompleto
        """
        self._wait()
        self.validate_document(document)

        if self.force_status == STATUS_REJECTED:
            return self.rejected_result(self.force_error_code or DEFAULT_ERROR_CODE)
        if self.force_status == STATUS_EXCEPTION:
            return self.exception_response()

        digest = generate_mock_hash()
        filename = self.get_document_filename(document)
        logger.info(f"[mock] {filename} aceptado")
        return TransportResult(
            success=True,
            status=STATUS_ACCEPTED,
            response_code="0",
            response_message=f"El Comprobante numero {document.series}-{document.number}, ha sido aceptado",
            notes=[],
            hash=digest,
            cdr=generate_mock_cdr(filename, digest),
            signed_xml=self._mock_signed_xml(document),
        )

    def query_status(self, ticket: str) -> TransportResult:
        self._wait()
        return TransportResult(
            success=True,
            status=STATUS_ACCEPTED,
            response_code="0",
            response_message="Proceso completado correctamente",
            ticket=ticket,
        )

    def void_document(self, document: FiscalDocument, reason: str) -> TransportResult:
        self._wait()
        filename = self.get_document_filename(document)
        return TransportResult(
            success=True,
            status=STATUS_ACCEPTED,
            response_code="0",
            response_message=f"El documento {filename} ha sido anulado correctamente. Motivo: {reason}",
            ticket=f"ticket_{int(time.time() * 1000)}",
        )

    def rejected_result(self, error_code: str) -> TransportResult:
        message = ERROR_MESSAGES.get(error_code, f"Error {error_code}")
        logger.warning(f"[mock] rechazo forzado {error_code}: {message}")
        return TransportResult(
            success=False,
            status=STATUS_REJECTED,
            response_code=error_code,
            response_message=message,
            notes=[],
        )

    def exception_response(self) -> TransportResult:
        return TransportResult(
            success=False,
            status=STATUS_EXCEPTION,
            response_code="EXC001",
            response_message="Error de conexion con los servidores de SUNAT",
            notes=["Intente nuevamente en unos minutos"],
        )

    @staticmethod
    def _mock_signed_xml(document: FiscalDocument) -> str:
        root = etree.Element(f"{{{NS_INVOICE}}}Invoice", nsmap={None: NS_INVOICE})
        root.append(etree.Comment(f" Mock signed XML for {document.series}-{document.number} "))
        return to_xml_string(root)
