"""
ZIP de envío y lectura del CDR

SUNAT espera un ZIP con una sola entrada {ruc}-{tipo}-{serie}-{numero}.xml,
comprimida con deflate (método 8). El CDR vuelve como ZIP en base64; puede
traer una carpeta vacía (dummy/) antes del XML de respuesta.
"""
import logging
import zipfile
import zlib
from datetime import datetime
from io import BytesIO
from typing import Optional, Union

from .exceptions import ArchiveError

logger = logging.getLogger(__name__)

LOCAL_FILE_HEADER = b"PK\x03\x04"
SUPPORTED_METHODS = (zipfile.ZIP_STORED, zipfile.ZIP_DEFLATED)


def zip_document(filename: str, xml_content: Union[str, bytes], now: Optional[datetime] = None) -> bytes:
    """
    Comprime el XML firmado en un ZIP de una sola entrada

    Args:
        filename: Nombre sin extensión ({ruc}-{tipo}-{serie}-{numero})
        xml_content: XML firmado
        now: Fecha/hora para la cabecera DOS (por defecto, ahora)

    Returns:
        Bytes del ZIP
    """
    data = xml_content.encode("utf-8") if isinstance(xml_content, str) else xml_content
    stamp = now or datetime.now()
    info = zipfile.ZipInfo(f"{filename}.xml", date_time=stamp.timetuple()[:6])
    info.compress_type = zipfile.ZIP_DEFLATED

    mem = BytesIO()
    with zipfile.ZipFile(mem, mode="w", compression=zipfile.ZIP_DEFLATED, compresslevel=9) as zf:
        zf.writestr(info, data, compress_type=zipfile.ZIP_DEFLATED, compresslevel=9)
    payload = mem.getvalue()
    logger.debug(f"ZIP generado: {filename}.xml ({len(data)} -> {len(payload)} bytes)")
    return payload


def read_zip_entry(zip_data: bytes, name: Optional[str] = None) -> bytes:
    """
    Lee una entrada de un ZIP (CDR o envío) sin decodificarla

    Args:
        zip_data: Bytes del ZIP
        name: Entrada a leer; por defecto la primera entrada que no es carpeta

    Raises:
        ArchiveError: Si no es un ZIP, el método de compresión no es stored/deflate
            o no hay entradas legibles
    """
    if not zip_data or zip_data[:4] != LOCAL_FILE_HEADER:
        raise ArchiveError("Archivo ZIP inválido")

    try:
        with zipfile.ZipFile(BytesIO(zip_data)) as zf:
            entries = [info for info in zf.infolist() if not info.is_dir()]
            if name is not None:
                entries = [info for info in entries if info.filename == name]
            if not entries:
                raise ArchiveError("El ZIP no contiene archivos")

            info = entries[0]
            if info.compress_type not in SUPPORTED_METHODS:
                raise ArchiveError(f"Método de compresión no soportado: {info.compress_type}")
            return zf.read(info)
    except (zipfile.BadZipFile, zlib.error, EOFError) as e:
        raise ArchiveError(f"Archivo ZIP inválido: {e}") from e


def unzip_response(zip_data: bytes, name: Optional[str] = None) -> str:
    """
    Extrae el XML de un ZIP como texto UTF-8

    Raises:
        ArchiveError: ZIP inválido o contenido que no es UTF-8
    """
    content = read_zip_entry(zip_data, name)
    try:
        return content.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ArchiveError(f"El contenido del ZIP no es UTF-8: {e}") from e
