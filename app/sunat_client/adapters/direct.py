"""
Adaptador de envío directo a los webservices SOAP de SUNAT

Flujo sendBill: UBL -> firma -> ZIP -> SOAP -> CDR
Flujo sendSummary (RC/RA): XML -> firma -> ZIP -> SOAP -> ticket
"""
import logging
from datetime import date
from typing import Iterable, Optional

from ..cdr import map_response_code, read_cdr
from ..config import SunatConfig
from ..date_utils import peru_today
from ..exceptions import ArchiveError, ConfigurationError, TransportException, ValidationError
from ..models import (
    STATUS_ACCEPTED,
    STATUS_EXCEPTION,
    STATUS_OBSERVED,
    STATUS_PENDING,
    FiscalDocument,
    SignedEnvelope,
    TransportResult,
)
from ..soap_client import SoapResponse, SunatSoapClient
from ..summary_generator import (
    VoidedItem,
    create_daily_summary,
    create_voided_communication,
    summary_id,
)
from ..xml_generator import build_document_xml
from ..xml_signer import XmlSigner
from ..zip_utils import zip_document
from .base import SunatAdapter

logger = logging.getLogger(__name__)

# Familia de comprobante -> servicio SOAP
SERVICE_BY_DOCUMENT_TYPE = {
    "01": "invoice",
    "03": "invoice",
    "07": "invoice",
    "08": "invoice",
    "20": "retention",
    "40": "retention",
    "09": "guia",
    "31": "guia",
}

# getStatus: 98 = en proceso
TICKET_IN_PROGRESS_CODES = ("0", "98")

VOID_SENT_MESSAGE = "Comunicación de baja enviada. Consulte el ticket para el resultado."
SUMMARY_SENT_MESSAGE = "Resumen diario enviado. Consulte el ticket para el resultado."


class DirectAdapter(SunatAdapter):
    """
    Envío directo a SUNAT con certificado digital y credenciales SOL

    El certificado se carga una sola vez, en el primer envío.
    """

    name = "direct"
    supported_documents = ("01", "03", "07", "08", "09", "20", "40")

    def __init__(self, config: SunatConfig, soap_client: Optional[SunatSoapClient] = None):
        super().__init__(config)
        self._validate_config()
        self.soap_client = soap_client or SunatSoapClient.from_config(config)
        self._signer: Optional[XmlSigner] = None

    def _validate_config(self) -> None:
        """
        Raises:
            ConfigurationError: RUC, credenciales SOL o certificado faltantes
        """
        config = self.config
        if not config.ruc or len(config.ruc) != 11:
            raise ConfigurationError("RUC inválido: debe tener 11 dígitos")
        if not config.sol_user:
            raise ConfigurationError("El usuario SOL es requerido")
        if not config.sol_password:
            raise ConfigurationError("La clave SOL es requerida")
        if not config.certificate_path and not config.certificate:
            raise ConfigurationError("La ruta del certificado es requerida")
        if not config.certificate_password:
            raise ConfigurationError("La contraseña del certificado es requerida")

    def _get_signer(self) -> XmlSigner:
        """
        Raises:
            CertificateError: Certificado inexistente, contraseña incorrecta o P12 incompleto
        """
        if self._signer is None:
            self._signer = XmlSigner.from_pkcs12(
                p12_path=self.config.certificate_path,
                password=self.config.certificate_password,
                p12_data=self.config.certificate,
            )
            logger.info("Certificado digital cargado")
        return self._signer

    def get_service_url(self, document_type: str) -> str:
        service_key = SERVICE_BY_DOCUMENT_TYPE.get(document_type, "invoice")
        return self.config.get_soap_service_url(service_key)

    def send_document(self, document: FiscalDocument) -> TransportResult:
        """
        Envía Factura, Boleta o Nota con sendBill

        Raises:
            ValidationError: Documento incompleto o tipo sin esquema UBL
            CertificateError: Certificado no se pudo cargar
        """
        self.validate_document(document)
        signer = self._get_signer()

        xml = build_document_xml(document)
        envelope = signer.sign_envelope(xml)
        filename = self.get_document_filename(document)
        zip_bytes = zip_document(filename, envelope.signed_xml)
        logger.debug(f"{filename}.zip: {len(zip_bytes)} bytes")

        try:
            response = self.soap_client.send_bill(
                self.get_service_url(document.document_type), filename, zip_bytes
            )
            return self._bill_result(response, envelope)
        except (TransportException, ArchiveError) as e:
            return self.exception_result(e, hash=envelope.digest_value, signed_xml=envelope.signed_xml)

    def _bill_result(self, response: SoapResponse, envelope: SignedEnvelope) -> TransportResult:
        if response.application_response:
            cdr = read_cdr(response.application_response)
            status = map_response_code(cdr.response_code)
            logger.info(f"CDR recibido: código {cdr.response_code} -> {status}")
            return TransportResult(
                success=status in (STATUS_ACCEPTED, STATUS_OBSERVED),
                status=status,
                response_code=cdr.response_code,
                response_message=cdr.description,
                notes=cdr.notes,
                hash=envelope.digest_value,
                signed_xml=envelope.signed_xml,
                cdr=response.application_response,
            )

        if response.ticket:
            logger.info(f"Ticket recibido: {response.ticket}")
            return TransportResult(
                success=True,
                status=STATUS_PENDING,
                ticket=response.ticket,
                hash=envelope.digest_value,
                signed_xml=envelope.signed_xml,
            )

        raise TransportException("Respuesta de SUNAT inválida: sin CDR ni ticket", code="INVALID_RESPONSE")

    def query_status(self, ticket: str) -> TransportResult:
        """Consulta un ticket de sendSummary (getStatus)."""
        try:
            response = self.soap_client.get_status(self.config.get_soap_service_url("invoice"), ticket)

            if response.application_response:
                cdr = read_cdr(response.application_response)
                status = map_response_code(cdr.response_code)
                return TransportResult(
                    success=status in (STATUS_ACCEPTED, STATUS_OBSERVED),
                    status=status,
                    response_code=cdr.response_code,
                    response_message=cdr.description,
                    notes=cdr.notes,
                    ticket=ticket,
                    cdr=response.application_response,
                )

            if response.status_code:
                in_progress = response.status_code in TICKET_IN_PROGRESS_CODES
                return TransportResult(
                    success=in_progress,
                    status=STATUS_PENDING if in_progress else STATUS_EXCEPTION,
                    response_code=response.status_code,
                    response_message=response.status_message or "Procesando",
                    ticket=ticket,
                )

            raise TransportException("Respuesta de estado inválida", code="INVALID_RESPONSE")
        except (TransportException, ArchiveError) as e:
            return self.exception_result(e, ticket=ticket)

    def query_cdr(self, document: FiscalDocument) -> TransportResult:
        """Recupera el CDR de un comprobante ya enviado (getStatusCdr)."""
        ruc = document.issuer.ruc if document.issuer else self.config.ruc
        try:
            response = self.soap_client.get_status_cdr(
                self.config.get_soap_service_url("consult"),
                ruc,
                document.document_type,
                document.series,
                document.number,
            )
            if response.application_response:
                cdr = read_cdr(response.application_response)
                status = map_response_code(cdr.response_code)
                return TransportResult(
                    success=status in (STATUS_ACCEPTED, STATUS_OBSERVED),
                    status=status,
                    response_code=cdr.response_code,
                    response_message=cdr.description,
                    notes=cdr.notes,
                    cdr=response.application_response,
                )
            return TransportResult(
                success=False,
                status=STATUS_EXCEPTION,
                response_code=response.status_code or "ERROR",
                response_message=response.status_message or "CDR no disponible",
            )
        except (TransportException, ArchiveError) as e:
            return self.exception_result(e)

    def _send_summary(self, summary_xml: str, filename: str, message: str) -> TransportResult:
        envelope = self._get_signer().sign_envelope(summary_xml)
        zip_bytes = zip_document(filename, envelope.signed_xml)
        try:
            response = self.soap_client.send_summary(
                self.config.get_soap_service_url("invoice"), filename, zip_bytes
            )
            if not response.ticket:
                raise TransportException("No se recibió ticket de SUNAT", code="NO_TICKET")
        except TransportException as e:
            return self.exception_result(e, hash=envelope.digest_value, signed_xml=envelope.signed_xml)

        logger.info(f"{filename}: ticket {response.ticket}")
        return TransportResult(
            success=True,
            status=STATUS_PENDING,
            response_message=message,
            ticket=response.ticket,
            hash=envelope.digest_value,
            signed_xml=envelope.signed_xml,
        )

    def void_document(
        self,
        document: FiscalDocument,
        reason: str,
        correlative: int = 1,
        issue_date: Optional[date] = None,
    ) -> TransportResult:
        """
        Envía la Comunicación de Baja (RA) del comprobante

        No devuelve un resultado final: el estado queda pendiente del ticket.

        Raises:
            ValidationError: Documento incompleto
            CertificateError: Certificado no se pudo cargar
        """
        self.validate_document(document)
        issue_date = issue_date or peru_today()
        ruc = document.issuer.ruc
        voided_xml = create_voided_communication(
            [VoidedItem(document.document_type, document.series, document.number, reason)],
            issuer_ruc=ruc,
            issuer_name=document.issuer.legal_name,
            reference_date=document.issue_date,
            correlative=correlative,
            issue_date=issue_date,
        )
        filename = f"{ruc}-{summary_id('RA', issue_date, correlative)}"
        return self._send_summary(voided_xml, filename, VOID_SENT_MESSAGE)

    def send_daily_summary(
        self,
        documents: Iterable[FiscalDocument],
        reference_date: date,
        correlative: int = 1,
        issue_date: Optional[date] = None,
    ) -> TransportResult:
        """
        Envía el Resumen Diario (RC) de boletas y sus notas

        El RUC del resumen es el del emisor de los comprobantes (o, en su
        defecto, el configurado); todos deben ser del mismo emisor.

        Raises:
            ValidationError: Resumen vacío o comprobantes de emisores distintos
        """
        issue_date = issue_date or peru_today()
        documents = list(documents)
        if not documents:
            raise ValidationError("El resumen diario debe incluir al menos un comprobante")

        issuer = documents[0].issuer
        ruc = (issuer.ruc if issuer else None) or self.config.ruc
        foreign = [
            doc.document_id for doc in documents
            if ((doc.issuer.ruc if doc.issuer else None) or self.config.ruc) != ruc
        ]
        if foreign:
            raise ValidationError(
                f"El resumen diario solo admite comprobantes del RUC {ruc}: {', '.join(foreign)}"
            )

        summary_xml = create_daily_summary(
            documents,
            issuer_ruc=ruc,
            issuer_name=issuer.legal_name if issuer else "",
            reference_date=reference_date,
            correlative=correlative,
            issue_date=issue_date,
        )
        filename = f"{ruc}-{summary_id('RC', reference_date, correlative)}"
        return self._send_summary(summary_xml, filename, SUMMARY_SENT_MESSAGE)
