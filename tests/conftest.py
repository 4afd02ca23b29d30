from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
import sys

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.hazmat.primitives.serialization import pkcs12
from cryptography.x509.oid import NameOID

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.sunat_client.config import SunatConfig  # noqa: E402
from app.sunat_client.models import (  # noqa: E402
    Customer,
    DocumentReference,
    FiscalDocument,
    Issuer,
    LineItem,
)
from app.sunat_client.tax_calculator import calculate_totals  # noqa: E402

# RUCs con dígito verificador correcto
ISSUER_RUC = "20123456786"
CUSTOMER_RUC = "20100066603"

P12_PASSWORD = "secreto123"


def _make_key_and_certificate():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    name = x509.Name([
        x509.NameAttribute(NameOID.COUNTRY_NAME, "PE"),
        x509.NameAttribute(NameOID.ORGANIZATION_NAME, "EMPRESA DE PRUEBA S.A.C."),
        x509.NameAttribute(NameOID.COMMON_NAME, f"RUC {ISSUER_RUC}"),
    ])
    now = datetime.now(timezone.utc)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - timedelta(days=1))
        .not_valid_after(now + timedelta(days=365))
        .sign(key, hashes.SHA256())
    )
    return key, cert


def _make_p12(password: str, with_key: bool = True, with_certificate: bool = True) -> bytes:
    key, cert = _make_key_and_certificate()
    return pkcs12.serialize_key_and_certificates(
        b"sunat-test",
        key if with_key else None,
        cert if with_certificate else None,
        None if with_key else [cert],
        serialization.BestAvailableEncryption(password.encode("utf-8")),
    )


@pytest.fixture(scope="session")
def p12_bytes() -> bytes:
    return _make_p12(P12_PASSWORD)


@pytest.fixture(scope="session")
def p12_without_key() -> bytes:
    """Solo el certificado, como bolsa adicional"""
    return _make_p12(P12_PASSWORD, with_key=False, with_certificate=False)


@pytest.fixture(scope="session")
def p12_without_certificate() -> bytes:
    return _make_p12(P12_PASSWORD, with_certificate=False)


@pytest.fixture()
def p12_file(tmp_path, p12_bytes) -> Path:
    path = tmp_path / "certificado.p12"
    path.write_bytes(p12_bytes)
    return path


@pytest.fixture()
def issuer() -> Issuer:
    return Issuer(
        ruc=ISSUER_RUC,
        legal_name="EMPRESA DE PRUEBA S.A.C.",
        trade_name="PRUEBA",
        address="AV. LARCO 123, MIRAFLORES",
        ubigeo="150122",
    )


def build_document(
    issuer: Issuer,
    document_type: str = "01",
    series: str = "F001",
    number: str = "00000001",
    items=None,
    customer: Customer = None,
    **kwargs,
) -> FiscalDocument:
    items = items or [LineItem(description="Producto A", quantity=Decimal("1"), unit_price=Decimal("100"))]
    calculation = calculate_totals(items, kwargs.pop("global_discount", None))
    if customer is None:
        customer = Customer(document_type="6", document_number=CUSTOMER_RUC, name="CLIENTE S.A.")
    return FiscalDocument(
        document_type=document_type,
        series=series,
        number=number,
        issuer=issuer,
        customer=customer,
        items=calculation.items,
        totals=calculation.totals,
        issue_date=kwargs.pop("issue_date", date(2025, 1, 15)),
        **kwargs,
    )


@pytest.fixture()
def make_document(issuer):
    def _make(**kwargs) -> FiscalDocument:
        return build_document(issuer, **kwargs)
    return _make


@pytest.fixture()
def invoice(issuer) -> FiscalDocument:
    return build_document(issuer)


@pytest.fixture()
def receipt(issuer) -> FiscalDocument:
    return build_document(
        issuer,
        document_type="03",
        series="B001",
        customer=Customer(document_type="1", document_number="12345678", name="JUAN PEREZ"),
    )


@pytest.fixture()
def credit_note(issuer) -> FiscalDocument:
    return build_document(
        issuer,
        document_type="07",
        series="FC01",
        reference=DocumentReference("01", "F001", "00000001"),
        note_reason_code="01",
        note_reason="Anulación de la operación",
    )


@pytest.fixture()
def direct_config(p12_bytes) -> SunatConfig:
    return SunatConfig(
        env=SunatConfig.ENV_BETA,
        provider="direct",
        ruc=ISSUER_RUC,
        sol_user="MODDATOS",
        sol_password="moddatos",
        certificate=p12_bytes,
        certificate_password=P12_PASSWORD,
    )


@pytest.fixture()
def p12_password() -> str:
    return P12_PASSWORD
