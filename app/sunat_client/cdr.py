"""
Lectura de la Constancia de Recepción (CDR) y clasificación del código de respuesta
"""
import base64
import binascii
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Union

from lxml import etree

from .exceptions import ArchiveError
from .models import STATUS_ACCEPTED, STATUS_EXCEPTION, STATUS_OBSERVED, STATUS_REJECTED
from .zip_utils import read_zip_entry

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_CODE = "ERROR"
DEFAULT_DESCRIPTION = "Unknown response"


@dataclass
class CdrResponse:
    response_code: str = DEFAULT_RESPONSE_CODE
    description: str = DEFAULT_DESCRIPTION
    notes: List[str] = field(default_factory=list)
    reference_id: Optional[str] = None


def parse_cdr(cdr_xml: Union[str, bytes]) -> CdrResponse:
    """
    Extrae ResponseCode, Description y Note del ApplicationResponse

    Si falta un campo se usan los valores por defecto ('ERROR' /
    'Unknown response'); un CDR ilegible se trata igual.
    """
    data = cdr_xml.encode("utf-8") if isinstance(cdr_xml, str) else cdr_xml
    try:
        root = etree.fromstring(data, etree.XMLParser(resolve_entities=False))
    except etree.XMLSyntaxError as e:
        logger.warning(f"CDR no es XML válido: {e}")
        return CdrResponse()

    def first_text(name: str) -> Optional[str]:
        nodes = root.xpath(f'//*[local-name()="{name}"]')
        for node in nodes:
            if node.text and node.text.strip():
                return node.text.strip()
        return None

    notes = [
        node.text.strip()
        for node in root.xpath('//*[local-name()="Note"]')
        if node.text and node.text.strip()
    ]

    return CdrResponse(
        response_code=first_text("ResponseCode") or DEFAULT_RESPONSE_CODE,
        description=first_text("Description") or DEFAULT_DESCRIPTION,
        notes=notes,
        reference_id=first_text("ReferenceID"),
    )


def read_cdr(application_response: str) -> CdrResponse:
    """
    Decodifica el CDR en base64 (ZIP) y lo parsea

    Raises:
        ArchiveError: base64 inválido o ZIP corrupto
    """
    try:
        zip_data = base64.b64decode(application_response, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ArchiveError(f"CDR en base64 inválido: {e}") from e
    # bytes: lxml respeta la codificación declarada en el CDR
    return parse_cdr(read_zip_entry(zip_data))


def map_response_code(code: Optional[str]) -> str:
    """
    Clasifica el código de respuesta de SUNAT

    0 aceptado; 100-1999 excepción; 2000-3999 rechazo; >=4000 observado.
    Cualquier otro valor (incluido 'ERROR') es excepción.
    """
    if code is None:
        return STATUS_EXCEPTION
    code = str(code).strip()
    try:
        number = int(code)
    except ValueError:
        return STATUS_EXCEPTION
    if number == 0:
        return STATUS_ACCEPTED
    if 100 <= number <= 1999:
        return STATUS_EXCEPTION
    if 2000 <= number <= 3999:
        return STATUS_REJECTED
    if number >= 4000:
        return STATUS_OBSERVED
    return STATUS_EXCEPTION
