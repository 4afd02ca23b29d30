import base64
from dataclasses import replace
from datetime import date
from decimal import Decimal
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from app.sunat_client.adapters import MockAdapter  # noqa: E402
from app.sunat_client.adapters.direct import DirectAdapter  # noqa: E402
from app.sunat_client.config import SunatConfig  # noqa: E402
from app.sunat_client.exceptions import ValidationError  # noqa: E402
from app.sunat_client.models import TransportResult  # noqa: E402
from app.sunat_client.soap_client import SoapResponse  # noqa: E402
from app.sunat_client.zip_utils import zip_document  # noqa: E402
from sunat_sender.core_send import (  # noqa: E402
    resolve_ticket,
    resolve_void_ticket,
    submit_document,
    void_accepted_document,
)
from sunat_sender.document_status import StatusTransitionError  # noqa: E402


class _PendingAdapter(MockAdapter):
    def send_document(self, document):
        return TransportResult(success=True, status="pending", ticket="1737000000009")


def _mock(**kwargs) -> MockAdapter:
    return MockAdapter(SunatConfig(ruc="20123456786", **kwargs))


def test_submit_accepted(invoice):
    outcome = submit_document(document=invoice, adapter=_mock())
    assert outcome.ok is True
    assert outcome.status == "accepted"
    assert outcome.document.status == "accepted"
    assert invoice.status == "draft"

    data = outcome.to_dict()
    assert data["document_id"] == "F001-00000001"
    assert data["provider"] == "mock"
    assert data["response_code"] == "0"


def test_submit_rejected(invoice):
    outcome = submit_document(document=invoice, adapter=_mock(mock_force_status="rejected"))
    assert outcome.ok is False
    assert outcome.status == "rejected"


def test_exception_can_be_retried(invoice):
    first = submit_document(document=invoice, adapter=_mock(mock_force_status="exception"))
    assert first.status == "exception"

    retry = submit_document(document=first.document, adapter=_mock())
    assert retry.status == "accepted"


def test_accepted_document_cannot_be_resubmitted(invoice):
    outcome = submit_document(document=invoice, adapter=_mock())
    with pytest.raises(StatusTransitionError):
        submit_document(document=outcome.document, adapter=_mock())


def test_totals_mismatch_blocks_submission(invoice):
    tampered = replace(invoice, totals=replace(invoice.totals, total=Decimal("118.01")))
    with pytest.raises(ValidationError, match="Total"):
        submit_document(document=tampered, adapter=_mock())


def test_ticket_keeps_document_pending_until_resolved(invoice):
    adapter = _PendingAdapter(SunatConfig(ruc="20123456786"))
    outcome = submit_document(document=invoice, adapter=adapter)
    assert outcome.ok is True
    assert outcome.status == "pending"
    assert outcome.result.ticket == "1737000000009"

    resolved = resolve_ticket(document=outcome.document, ticket=outcome.result.ticket, adapter=adapter)
    assert resolved.status == "accepted"


def test_void_accepted_within_window(invoice):
    accepted = replace(invoice, status="accepted", issue_date=date(2025, 1, 15))
    outcome = void_accepted_document(
        document=accepted, reason="Error en el monto", adapter=_mock(), today=date(2025, 1, 20)
    )
    assert outcome.status == "voided"


def test_void_outside_window_is_refused(invoice):
    accepted = replace(invoice, status="accepted", issue_date=date(2025, 1, 1))
    with pytest.raises(ValidationError) as exc:
        void_accepted_document(document=accepted, reason="Error", adapter=_mock(), today=date(2025, 1, 20))
    assert exc.value.code == "VOID_NOT_ALLOWED"


def test_void_requires_reason(invoice):
    accepted = replace(invoice, status="accepted")
    with pytest.raises(ValidationError, match="motivo"):
        void_accepted_document(document=accepted, reason=" ", adapter=_mock())


def _zipped_cdr(code: str) -> str:
    cdr = (
        '<ar:ApplicationResponse xmlns:ar="urn:oasis:names:specification:ubl:schema:xsd:ApplicationResponse-2" '
        'xmlns:cbc="urn:oasis:names:specification:ubl:schema:xsd:CommonBasicComponents-2">'
        f"<cbc:ResponseCode>{code}</cbc:ResponseCode>"
        "<cbc:Description>La Comunicacion de baja RA-20250117-1 ha sido aceptada</cbc:Description>"
        "</ar:ApplicationResponse>"
    )
    return base64.b64encode(zip_document("R-20123456786-RA-20250117-00001", cdr)).decode("ascii")


class _SummarySoapClient:
    """sendSummary devuelve un ticket; getStatus responde en orden con status_responses"""

    def __init__(self, *status_responses):
        self.status_responses = list(status_responses)
        self.calls = []

    def send_summary(self, url, filename, zip_content):
        self.calls.append(("send_summary", filename))
        return SoapResponse(ticket="1737")

    def get_status(self, url, ticket):
        self.calls.append(("get_status", ticket))
        return self.status_responses.pop(0)


def test_direct_void_resolves_to_voided(direct_config, invoice):
    soap = _SummarySoapClient(
        SoapResponse(status_code="98", status_message="En proceso"),
        SoapResponse(application_response=_zipped_cdr("0")),
    )
    adapter = DirectAdapter(direct_config, soap_client=soap)
    accepted = replace(invoice, status="accepted", issue_date=date(2025, 1, 15))

    sent = void_accepted_document(
        document=accepted, reason="Error en el RUC", adapter=adapter, today=date(2025, 1, 17)
    )
    assert sent.status == "accepted"
    assert sent.result.status == "pending"
    assert sent.result.ticket == "1737"

    in_progress = resolve_void_ticket(document=sent.document, ticket="1737", adapter=adapter)
    assert in_progress.status == "accepted"

    resolved = resolve_void_ticket(document=in_progress.document, ticket="1737", adapter=adapter)
    assert resolved.status == "voided"
    assert resolved.document.status == "voided"
    assert [name for name, _ in soap.calls] == ["send_summary", "get_status", "get_status"]


def test_rejected_void_keeps_document_accepted(direct_config, invoice):
    adapter = DirectAdapter(
        direct_config, soap_client=_SummarySoapClient(SoapResponse(application_response=_zipped_cdr("2323")))
    )
    accepted = replace(invoice, status="accepted")

    outcome = resolve_void_ticket(document=accepted, ticket="1737", adapter=adapter)
    assert outcome.ok is False
    assert outcome.status == "accepted"
    assert outcome.result.status == "rejected"


def test_void_ticket_requires_accepted_document(invoice):
    with pytest.raises(StatusTransitionError):
        resolve_void_ticket(document=invoice, ticket="1737", adapter=_mock())
