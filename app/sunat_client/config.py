"""
Configuración para cliente SUNAT

Cada emisor (tenant) tiene su propia configuración de proveedor. La carga
desde variables de entorno (get_sunat_config) es solo un atajo para tools/.
"""
import os
from typing import Optional, Dict

from dotenv import load_dotenv

from .exceptions import ConfigurationError

load_dotenv()


PROVIDER_MOCK = "mock"
PROVIDER_DIRECT = "direct"
PROVIDER_NUBEFACT = "nubefact"
PROVIDER_EFACT = "efact"

PROVIDERS = (PROVIDER_MOCK, PROVIDER_DIRECT, PROVIDER_NUBEFACT, PROVIDER_EFACT)


class SunatConfig:
    """Configuración del proveedor SUNAT por ambiente"""

    ENV_BETA = "beta"
    ENV_PRODUCTION = "production"

    # Servicios SOAP de SUNAT (SEE - Del contribuyente)
    SOAP_SERVICES: Dict[str, Dict[str, str]] = {
        "beta": {
            "invoice": "https://e-beta.sunat.gob.pe/ol-ti-itcpfegem-beta/billService",
            "retention": "https://e-beta.sunat.gob.pe/ol-ti-itemision-otroscpe-gem-beta/billService",
            "guia": "https://e-beta.sunat.gob.pe/ol-ti-itemision-guia-gem-beta/billService",
            "consult": "https://e-beta.sunat.gob.pe/ol-it-wsconscpegem-beta/billConsultService",
        },
        "production": {
            "invoice": "https://e-factura.sunat.gob.pe/ol-ti-itcpfegem/billService",
            "retention": "https://e-factura.sunat.gob.pe/ol-ti-itemision-otroscpe-gem/billService",
            "guia": "https://e-factura.sunat.gob.pe/ol-ti-itemision-guia-gem/billService",
            "consult": "https://e-factura.sunat.gob.pe/ol-it-wsconscpegem/billConsultService",
        },
    }

    # API REST del OSE (Nubefact)
    NUBEFACT_URLS = {
        "beta": "https://demo.nubefact.com/api/v1",
        "production": "https://api.nubefact.com/api/v1",
    }

    DEFAULT_TIMEOUT = 30

    def __init__(
        self,
        env: str = ENV_BETA,
        provider: str = PROVIDER_MOCK,
        ruc: str = "",
        sol_user: Optional[str] = None,
        sol_password: Optional[str] = None,
        certificate_path: Optional[str] = None,
        certificate: Optional[bytes] = None,
        certificate_password: Optional[str] = None,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        request_timeout: Optional[float] = None,
        mock_delay: float = 0.0,
        mock_force_status: Optional[str] = None,
        mock_force_error_code: Optional[str] = None,
    ):
        """
        Inicializa la configuración SUNAT

        Args:
            env: Ambiente ('beta' o 'production')
            provider: Proveedor de transporte ('mock', 'direct', 'nubefact', 'efact')
            certificate: Bytes del PKCS#12 (tiene prioridad sobre certificate_path)
        """
        if env not in [self.ENV_BETA, self.ENV_PRODUCTION]:
            raise ConfigurationError(f"Ambiente inválido: {env}. Debe ser 'beta' o 'production'")

        self.env = env
        self.provider = (provider or PROVIDER_MOCK).lower()
        self.ruc = ruc or ""

        # Credenciales SOL + certificado (envío directo)
        self.sol_user = sol_user
        self.sol_password = sol_password
        self.certificate_path = certificate_path
        self.certificate = certificate
        self.certificate_password = certificate_password

        # OSE REST
        self.api_key = api_key
        self.api_url = api_url

        self.request_timeout = float(request_timeout) if request_timeout else float(self.DEFAULT_TIMEOUT)

        # Simulador
        self.mock_delay = float(mock_delay or 0)
        self.mock_force_status = mock_force_status
        self.mock_force_error_code = mock_force_error_code

    @property
    def is_production(self) -> bool:
        return self.env == self.ENV_PRODUCTION

    def get_soap_service_url(self, service_key: str) -> str:
        """
        Obtiene la URL del servicio SOAP para el ambiente actual

        Args:
            service_key: 'invoice', 'retention', 'guia' o 'consult'

        Returns:
            URL del endpoint

        Raises:
            ConfigurationError: Si el servicio no existe
        """
        services = self.SOAP_SERVICES[self.env]
        if service_key not in services:
            raise ConfigurationError(
                f"Servicio SOAP desconocido: {service_key}. Disponibles: {', '.join(services)}"
            )
        return services[service_key]

    def get_nubefact_url(self) -> str:
        return self.api_url or self.NUBEFACT_URLS[self.env]


def get_sunat_config(env: Optional[str] = None) -> SunatConfig:
    """
    Factory function para obtener configuración SUNAT desde variables de entorno

    Args:
        env: Ambiente ('beta' o 'production'). Si es None, usa SUNAT_ENV o 'beta'

    Returns:
        Configuración SUNAT
    """
    env = env or os.getenv("SUNAT_ENV", SunatConfig.ENV_BETA)
    timeout = os.getenv("SUNAT_REQUEST_TIMEOUT", str(SunatConfig.DEFAULT_TIMEOUT))
    try:
        request_timeout = float(timeout)
    except ValueError as e:
        raise ConfigurationError(f"SUNAT_REQUEST_TIMEOUT inválido: {timeout!r}") from e

    return SunatConfig(
        env=env,
        provider=os.getenv("SUNAT_PROVIDER", PROVIDER_MOCK),
        ruc=os.getenv("SUNAT_RUC", ""),
        sol_user=os.getenv("SUNAT_SOL_USER"),
        sol_password=os.getenv("SUNAT_SOL_PASSWORD"),
        certificate_path=os.getenv("SUNAT_CERT_PATH"),
        certificate_password=os.getenv("SUNAT_CERT_PASSWORD"),
        api_key=os.getenv("SUNAT_API_KEY"),
        api_url=os.getenv("SUNAT_API_URL"),
        request_timeout=request_timeout,
        mock_delay=float(os.getenv("SUNAT_MOCK_DELAY", "0") or 0),
        mock_force_status=os.getenv("SUNAT_MOCK_FORCE_STATUS") or None,
        mock_force_error_code=os.getenv("SUNAT_MOCK_FORCE_ERROR_CODE") or None,
    )
