"""
Módulo cliente para la emisión electrónica ante SUNAT (SEE)
Perú - Factura, Boleta, Notas de Crédito/Débito, Resumen Diario y Baja
"""
from .config import SunatConfig, get_sunat_config
from .models import (
    Issuer,
    Customer,
    LineItem,
    DocumentTotals,
    CalculationResult,
    DocumentReference,
    FiscalDocument,
    SignedEnvelope,
    TransportResult,
)
from .tax_calculator import calculate_totals
from .validator import validate_totals, validate_ruc, validate_dni, calc_ruc_dv
from .number_to_words import number_to_words
from .xml_generator import UblBuilder, build_document_xml, document_to_ubl_data
from .summary_generator import SummaryBuilder, create_daily_summary, create_voided_communication
from .xml_utils import canonicalize
from .xml_signer import XmlSigner, sign_xml, verify_xml_signature, get_hash_from_signed_xml
from .pkcs12_utils import CertificateBundle, load_certificate
from .zip_utils import zip_document, unzip_response, read_zip_entry
from .soap_client import SunatSoapClient
from .cdr import parse_cdr, map_response_code
from .adapters import SunatAdapter, DirectAdapter, NubefactAdapter, MockAdapter, create_adapter
from .exceptions import (
    SunatException,
    ValidationError,
    UnsupportedDocumentType,
    ConfigurationError,
    CertificateError,
    SignatureError,
    ArchiveError,
    InvalidArchive,
    TransportException,
)

__all__ = [
    'SunatConfig',
    'get_sunat_config',
    'Issuer',
    'Customer',
    'LineItem',
    'DocumentTotals',
    'CalculationResult',
    'DocumentReference',
    'FiscalDocument',
    'SignedEnvelope',
    'TransportResult',
    'calculate_totals',
    'validate_totals',
    'validate_ruc',
    'validate_dni',
    'calc_ruc_dv',
    'number_to_words',
    'UblBuilder',
    'build_document_xml',
    'document_to_ubl_data',
    'SummaryBuilder',
    'create_daily_summary',
    'create_voided_communication',
    'canonicalize',
    'XmlSigner',
    'sign_xml',
    'verify_xml_signature',
    'get_hash_from_signed_xml',
    'CertificateBundle',
    'load_certificate',
    'zip_document',
    'unzip_response',
    'read_zip_entry',
    'SunatSoapClient',
    'parse_cdr',
    'map_response_code',
    'SunatAdapter',
    'DirectAdapter',
    'NubefactAdapter',
    'MockAdapter',
    'create_adapter',
    'SunatException',
    'ValidationError',
    'UnsupportedDocumentType',
    'ConfigurationError',
    'CertificateError',
    'SignatureError',
    'ArchiveError',
    'InvalidArchive',
    'TransportException',
]
