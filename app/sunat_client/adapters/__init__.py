"""
Adaptadores de transporte hacia SUNAT y fábrica por proveedor
"""
import logging
from typing import Optional

from ..config import (
    PROVIDER_DIRECT,
    PROVIDER_EFACT,
    PROVIDER_MOCK,
    PROVIDER_NUBEFACT,
    SunatConfig,
)
from ..exceptions import ConfigurationError
from .base import SunatAdapter
from .direct import DirectAdapter
from .mock import MockAdapter
from .nubefact import NubefactAdapter

logger = logging.getLogger(__name__)


def create_adapter(provider: Optional[str], config: SunatConfig) -> SunatAdapter:
    """
    Crea el adaptador del proveedor configurado para el emisor

    Args:
        provider: 'mock' (por defecto), 'direct', 'nubefact' o 'efact'
        config: Configuración del emisor

    Returns:
        Adaptador listo para enviar

    Raises:
        ConfigurationError: Credenciales faltantes o proveedor desconocido/no implementado
    """
    provider = (provider or PROVIDER_MOCK).lower()
    logger.debug(f"Creando adaptador '{provider}' ({config.env})")

    if provider == PROVIDER_MOCK:
        return MockAdapter(config)

    if provider == PROVIDER_DIRECT:
        if not (config.certificate_path or config.certificate) or not config.certificate_password:
            raise ConfigurationError(
                "El adaptador directo requiere certificado (ruta o contenido) y su contraseña"
            )
        if not config.sol_user or not config.sol_password:
            raise ConfigurationError("El adaptador directo requiere usuario y clave SOL")
        return DirectAdapter(config)

    if provider == PROVIDER_NUBEFACT:
        if not config.api_key:
            raise ConfigurationError("El adaptador Nubefact requiere api_key")
        return NubefactAdapter(config)

    if provider == PROVIDER_EFACT:
        raise ConfigurationError("El adaptador eFact no está implementado. Use nubefact o direct.")

    raise ConfigurationError(f"Proveedor SUNAT desconocido: {provider}")


__all__ = [
    "SunatAdapter",
    "DirectAdapter",
    "NubefactAdapter",
    "MockAdapter",
    "create_adapter",
]
