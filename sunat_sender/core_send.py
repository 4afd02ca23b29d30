from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Optional

from app.sunat_client.adapters import SunatAdapter
from app.sunat_client.exceptions import ValidationError
from app.sunat_client.models import (
    STATUS_ACCEPTED,
    STATUS_OBSERVED,
    STATUS_PENDING,
    STATUS_VOIDED,
    FiscalDocument,
    TransportResult,
)
from app.sunat_client.validator import (
    ensure_totals_valid,
    validate_customer_for_document,
    validate_note,
    validate_series,
)

from .document_status import StatusTransitionError, apply_transport_result, can_void, transition

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionOutcome:
    """Resultado de un envío, para que el llamador lo persista"""
    ok: bool
    status: str
    document: FiscalDocument
    result: TransportResult
    provider: str

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "success": self.result.success,
            "status": self.status,
            "document_id": self.document.document_id,
            "provider": self.provider,
            "response_code": self.result.response_code,
            "response_message": self.result.response_message,
            "notes": list(self.result.notes),
            "ticket": self.result.ticket,
            "hash": self.result.hash,
            "timestamp": self.result.timestamp.isoformat() if self.result.timestamp else None,
        }


def _outcome(adapter: SunatAdapter, document: FiscalDocument, result: TransportResult) -> SubmissionOutcome:
    return SubmissionOutcome(
        ok=result.status in (STATUS_ACCEPTED, STATUS_OBSERVED, STATUS_PENDING),
        status=document.status,
        document=document,
        result=result,
        provider=adapter.get_name(),
    )


def validate_before_submit(document: FiscalDocument) -> None:
    """
    Raises:
        ValidationError: Totales, serie, cliente o datos de la nota inválidos
    """
    ensure_totals_valid(document)
    validate_series(document.document_type, document.series)
    validate_customer_for_document(document)
    validate_note(document)


def submit_document(*, document: FiscalDocument, adapter: SunatAdapter) -> SubmissionOutcome:
    """
    Valida, envía y clasifica un comprobante

    El comprobante pasa de draft (o exception, en un reintento) a pending
    antes de llamar al adaptador. No hay reintentos automáticos.

    Raises:
        ValidationError: El comprobante no puede enviarse tal como está
        StatusTransitionError: El comprobante ya fue enviado
        CertificateError: El certificado del emisor no se pudo cargar
    """
    validate_before_submit(document)
    pending = replace(document, status=transition(document.status, STATUS_PENDING))

    logger.info(f"Enviando {pending.document_type} {pending.document_id} con '{adapter.get_name()}'")
    result = adapter.send_document(pending)
    final = apply_transport_result(pending, result)
    return _outcome(adapter, final, result)


def resolve_ticket(*, document: FiscalDocument, ticket: str, adapter: SunatAdapter) -> SubmissionOutcome:
    """
    Consulta el ticket de un comprobante pendiente y aplica el resultado

    Raises:
        StatusTransitionError: El comprobante no está pendiente
    """
    result = adapter.query_status(ticket)
    final = apply_transport_result(document, result)
    return _outcome(adapter, final, result)


def _apply_void_result(document: FiscalDocument, result: TransportResult) -> FiscalDocument:
    """Aceptado u observado pasa a voided; cualquier otro resultado deja el comprobante aceptado."""
    if result.status in (STATUS_ACCEPTED, STATUS_OBSERVED):
        logger.info(f"{document.document_id} anulado")
        return replace(document, status=transition(document.status, STATUS_VOIDED))
    if result.status == STATUS_PENDING:
        logger.info(f"Baja de {document.document_id} en proceso (ticket {result.ticket})")
    else:
        logger.warning(f"Baja de {document.document_id}: {result.status} {result.response_message}")
    return document


def void_accepted_document(
    *,
    document: FiscalDocument,
    reason: str,
    adapter: SunatAdapter,
    today: Optional[date] = None,
) -> SubmissionOutcome:
    """
    Anula un comprobante aceptado dentro del plazo

    Con envío directo el resultado queda pendiente del ticket y el
    comprobante conserva su estado hasta consultar el ticket con resolve_void_ticket.

    Raises:
        ValidationError: No aceptado, fuera de plazo o sin motivo
    """
    if not (reason or "").strip():
        raise ValidationError("El motivo de anulación es requerido")
    if not can_void(document, today):
        raise ValidationError(
            "Solo se pueden anular comprobantes aceptados dentro de los 7 días de su emisión; "
            "use una Nota de Crédito",
            code="VOID_NOT_ALLOWED",
        )

    result = adapter.void_document(document, reason)
    return _outcome(adapter, _apply_void_result(document, result), result)


def resolve_void_ticket(*, document: FiscalDocument, ticket: str, adapter: SunatAdapter) -> SubmissionOutcome:
    """
    Consulta el ticket de una Comunicación de Baja

    Un CDR aceptado (u observado) deja el comprobante en voided; si la baja
    sigue en proceso o fue rechazada, el comprobante sigue aceptado.

    Raises:
        StatusTransitionError: El comprobante no está aceptado
    """
    if document.status != STATUS_ACCEPTED:
        raise StatusTransitionError(document.status, STATUS_VOIDED)
    result = adapter.query_status(ticket)
    return _outcome(adapter, _apply_void_result(document, result), result)
