"""
Cliente SOAP 1.1 para los webservices SEE de SUNAT (billService)

Operaciones:
- sendBill: Factura, Boleta, Nota de Crédito/Débito (respuesta síncrona con CDR)
- sendSummary: Resumen Diario y Comunicación de Baja (respuesta con ticket)
- getStatus: consulta de ticket
- getStatusCdr: consulta de CDR por comprobante (billConsultService)

Autenticación WS-Security UsernameToken con usuario = RUC + usuario SOL y
password SOL en texto plano (perfil de SUNAT, no digest).
"""
import base64
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import requests
from lxml import etree
from requests import Session

from .config import SunatConfig
from .exceptions import TransportException

logger = logging.getLogger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
SUNAT_SERVICE_NS = "http://service.sunat.gob.pe"
WSSE_NS = "http://docs.oasis-open.org/wss/2004/01/oasis-200401-wss-wssecurity-secext-1.0.xsd"

SOAP_NSMAP = {
    "soapenv": SOAP_ENV_NS,
    "ser": SUNAT_SERVICE_NS,
    "wsse": WSSE_NS,
}

ACTION_SEND_BILL = "sendBill"
ACTION_SEND_SUMMARY = "sendSummary"
ACTION_GET_STATUS = "getStatus"
ACTION_GET_STATUS_CDR = "getStatusCdr"


@dataclass
class SoapResponse:
    """Campos extraídos de la respuesta SOAP de SUNAT"""
    application_response: Optional[str] = None
    ticket: Optional[str] = None
    status_code: Optional[str] = None
    status_message: Optional[str] = None


def build_soap_envelope(
    username: str,
    password: str,
    action: str,
    fields: List[Tuple[str, str]],
) -> bytes:
    """
    Construye el envelope SOAP 1.1 con cabecera WS-Security

    Args:
        username: RUC + usuario SOL
        password: Clave SOL
        action: Operación (sendBill, sendSummary, getStatus, getStatusCdr)
        fields: Pares (nombre, valor) del cuerpo de la operación, en orden

    Returns:
        Bytes del envelope con declaración XML UTF-8
    """
    envelope = etree.Element(f"{{{SOAP_ENV_NS}}}Envelope", nsmap=SOAP_NSMAP)

    header = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Header")
    security = etree.SubElement(header, f"{{{WSSE_NS}}}Security")
    token = etree.SubElement(security, f"{{{WSSE_NS}}}UsernameToken")
    etree.SubElement(token, f"{{{WSSE_NS}}}Username").text = username
    etree.SubElement(token, f"{{{WSSE_NS}}}Password").text = password

    body = etree.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    operation = etree.SubElement(body, f"{{{SUNAT_SERVICE_NS}}}{action}")
    # Los parámetros de la operación van sin namespace
    for name, value in fields:
        etree.SubElement(operation, name).text = value

    return etree.tostring(
        envelope,
        xml_declaration=True,
        encoding="UTF-8",
        pretty_print=False,
    )


def _fault_number(fault_code: str) -> Optional[str]:
    """'soap-env:Client.0111' -> '0111'"""
    match = re.search(r"(\d+)\s*$", fault_code or "")
    return match.group(1) if match else None


def is_soap_fault(content: bytes) -> bool:
    if not content:
        return False
    try:
        root = etree.fromstring(content, etree.XMLParser(resolve_entities=False))
    except etree.XMLSyntaxError:
        return False
    return bool(root.xpath('//*[local-name()="Fault"]'))


def parse_soap_response(content: bytes) -> SoapResponse:
    """
    Extrae applicationResponse/ticket/statusCode/statusMessage/content

    En getStatusCdr el CDR llega en <content>; se normaliza a application_response.

    Raises:
        TransportException: SOAP Fault o respuesta que no es XML
    """
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False)
    try:
        root = etree.fromstring(content, parser)
    except etree.XMLSyntaxError as e:
        raise TransportException(f"Respuesta SOAP inválida: {e}", code="INVALID_RESPONSE") from e

    def find_text(name: str) -> Optional[str]:
        nodes = root.xpath(f'//*[local-name()="{name}"]')
        if nodes and nodes[0].text:
            return nodes[0].text.strip()
        return None

    if root.xpath('//*[local-name()="Fault"]'):
        fault_code = find_text("faultcode") or ""
        fault_string = find_text("faultstring") or "SOAP Fault sin descripción"
        number = _fault_number(fault_code)
        raise TransportException(
            f"SOAP Fault [{fault_code}]: {fault_string}",
            code=number,
            fault_code=fault_code,
        )

    result = SoapResponse(
        application_response=find_text("applicationResponse"),
        ticket=find_text("ticket"),
        status_code=find_text("statusCode"),
        status_message=find_text("statusMessage"),
    )
    cdr_content = find_text("content")
    if cdr_content:
        result.application_response = cdr_content
    return result


class SunatSoapClient:
    """
    Cliente SOAP para billService/billConsultService

    Un cliente por emisor: las credenciales SOL viajan en cada envelope.
    """

    def __init__(
        self,
        ruc: str,
        sol_user: str,
        sol_password: str,
        timeout: float = SunatConfig.DEFAULT_TIMEOUT,
        session: Optional[Session] = None,
    ):
        self.username = f"{ruc}{sol_user}"
        self.password = sol_password
        self.timeout = timeout
        self.session = session or Session()

    @classmethod
    def from_config(cls, config: SunatConfig) -> "SunatSoapClient":
        return cls(
            ruc=config.ruc,
            sol_user=config.sol_user or "",
            sol_password=config.sol_password or "",
            timeout=config.request_timeout,
        )

    def _headers(self, action: str) -> Dict[str, str]:
        return {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": f"urn:{action}",
            "Accept": "text/xml",
        }

    def _post(self, url: str, action: str, fields: List[Tuple[str, str]]) -> SoapResponse:
        envelope = build_soap_envelope(self.username, self.password, action, fields)
        logger.info(f"Enviando {action} a {url}")

        try:
            resp = self.session.post(
                url,
                data=envelope,
                headers=self._headers(action),
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise TransportException(
                f"Timeout de {self.timeout}s esperando respuesta de SUNAT ({action})",
                code="TIMEOUT",
            ) from e
        except requests.exceptions.RequestException as e:
            raise TransportException(f"Error de conexión con SUNAT: {e}", code="CONNECTION_ERROR") from e

        logger.debug(f"{action}: HTTP {resp.status_code}, {len(resp.content)} bytes")

        if not 200 <= resp.status_code < 300:
            # SUNAT devuelve los Fault con HTTP 500
            if is_soap_fault(resp.content):
                parse_soap_response(resp.content)
            raise TransportException(
                f"SOAP request failed: {resp.status_code} - {resp.text[:500]}",
                code=f"HTTP_{resp.status_code}",
                http_status=resp.status_code,
            )
        return parse_soap_response(resp.content)

    def send_bill(self, url: str, filename: str, zip_content: bytes) -> SoapResponse:
        """Envía Factura, Boleta o Nota (filename sin extensión)."""
        return self._post(url, ACTION_SEND_BILL, [
            ("fileName", f"{filename}.zip"),
            ("contentFile", base64.b64encode(zip_content).decode("ascii")),
        ])

    def send_summary(self, url: str, filename: str, zip_content: bytes) -> SoapResponse:
        """Envía Resumen Diario o Comunicación de Baja; SUNAT responde con ticket."""
        return self._post(url, ACTION_SEND_SUMMARY, [
            ("fileName", f"{filename}.zip"),
            ("contentFile", base64.b64encode(zip_content).decode("ascii")),
        ])

    def get_status(self, url: str, ticket: str) -> SoapResponse:
        return self._post(url, ACTION_GET_STATUS, [("ticket", ticket)])

    def get_status_cdr(self, url: str, ruc: str, document_type: str, series: str, number: str) -> SoapResponse:
        return self._post(url, ACTION_GET_STATUS_CDR, [
            ("rucComprobante", ruc),
            ("tipoComprobante", document_type),
            ("serieComprobante", series),
            ("numeroComprobante", str(number)),
        ])

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any):
        self.close()
