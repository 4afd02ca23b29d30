from dataclasses import replace
from decimal import Decimal
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.sunat_client.exceptions import ValidationError  # noqa: E402
from app.sunat_client.models import Customer, FiscalDocument  # noqa: E402
from app.sunat_client.validator import (  # noqa: E402
    calc_ruc_dv,
    ensure_totals_valid,
    validate_customer_for_document,
    validate_document,
    validate_document_number,
    validate_note,
    validate_ruc,
    validate_series,
)


def test_ruc_check_digit():
    assert calc_ruc_dv("2010006660") == 3
    assert calc_ruc_dv("2012345678") == 6


def test_ruc_check_digit_low_remainders():
    # 5*1 + 2*3 = 11 -> resto 0; 5*2 + 2*1 = 12 -> resto 1
    assert calc_ruc_dv("1000000003") == 0
    assert calc_ruc_dv("2000000001") == 1


@pytest.mark.parametrize("ruc", ["20100066603", "20123456786"])
def test_valid_ruc(ruc):
    assert validate_ruc(ruc) is True


@pytest.mark.parametrize(
    "ruc",
    [
        "20100066604",  # DV incorrecto
        "30100066603",  # prefijo no permitido
        "2010006660",  # 10 dígitos
        "2010006660A",
        "",
        None,
    ],
)
def test_invalid_ruc(ruc):
    assert validate_ruc(ruc) is False


def test_calc_ruc_dv_rejects_bad_base():
    with pytest.raises(ValueError):
        calc_ruc_dv("123")


def test_identity_numbers_by_catalog():
    assert validate_document_number("1", "12345678") is True
    assert validate_document_number("1", "1234567") is False
    assert validate_document_number("0", "-") is True
    assert validate_document_number("0", "123") is False
    assert validate_document_number("7", "AB123456") is True
    assert validate_document_number("7", "") is False


@pytest.mark.parametrize(
    "document_type, series",
    [("01", "F001"), ("03", "B001"), ("07", "FC01"), ("07", "BC01"), ("08", "FD01")],
)
def test_valid_series(document_type, series):
    validate_series(document_type, series)


@pytest.mark.parametrize(
    "document_type, series",
    [("01", "X001"), ("01", "F01"), ("07", "F001"), ("08", "FC01")],
)
def test_invalid_series(document_type, series):
    with pytest.raises(ValidationError):
        validate_series(document_type, series)


def test_invoice_requires_ruc_customer(invoice):
    doc = replace(invoice, customer=Customer(document_type="1", document_number="12345678", name="X"))
    with pytest.raises(ValidationError, match="RUC"):
        validate_customer_for_document(doc)


def test_receipt_accepts_dni_customer(receipt):
    validate_customer_for_document(receipt)


def test_customer_with_bad_ruc_is_rejected(invoice):
    doc = replace(invoice, customer=Customer(document_type="6", document_number="20100066604", name="X"))
    with pytest.raises(ValidationError, match="inválido"):
        validate_customer_for_document(doc)


def test_note_requires_reference_and_reason(credit_note):
    validate_note(credit_note)

    with pytest.raises(ValidationError, match="referencia"):
        validate_note(replace(credit_note, reference=None))
    with pytest.raises(ValidationError, match="Motivo"):
        validate_note(replace(credit_note, note_reason_code="99"))
    with pytest.raises(ValidationError, match="motivo"):
        validate_note(replace(credit_note, note_reason="  "))


def test_validate_document_collects_errors(issuer):
    doc = FiscalDocument(
        document_type="01",
        series="F001",
        number="00000001",
        issuer=replace(issuer, ruc=""),
        customer=None,
        items=[],
    )
    with pytest.raises(ValidationError) as exc:
        validate_document(doc)
    assert len(exc.value.errors) == 3


def test_declared_total_off_by_one_cent_blocks_submission(invoice):
    doc = replace(invoice, totals=replace(invoice.totals, total=Decimal("118.01")))
    with pytest.raises(ValidationError) as exc:
        ensure_totals_valid(doc)
    assert exc.value.code == "TOTALS_MISMATCH"


def test_calculated_document_totals_are_valid(invoice):
    ensure_totals_valid(invoice)
