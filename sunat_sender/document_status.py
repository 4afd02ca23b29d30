"""
Estado del comprobante a partir del resultado del transporte

draft -> pending -> accepted | rejected | observed | exception
pending con ticket queda pending hasta que query_status lo resuelva.
exception puede reintentarse (vuelve a pending); accepted puede anularse.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import Dict, FrozenSet, Optional

from app.sunat_client.date_utils import is_within_days
from app.sunat_client.exceptions import SunatException
from app.sunat_client.models import (
    RESULT_STATUSES,
    STATUS_ACCEPTED,
    STATUS_DRAFT,
    STATUS_EXCEPTION,
    STATUS_OBSERVED,
    STATUS_PENDING,
    STATUS_REJECTED,
    STATUS_VOIDED,
    FiscalDocument,
    TransportResult,
)

logger = logging.getLogger(__name__)

# Pasado este plazo desde la emisión se debe usar Nota de Crédito
VOID_WINDOW_DAYS = 7

TRANSITIONS: Dict[str, FrozenSet[str]] = {
    STATUS_DRAFT: frozenset({STATUS_PENDING}),
    STATUS_PENDING: frozenset(RESULT_STATUSES),
    STATUS_EXCEPTION: frozenset({STATUS_PENDING}),
    STATUS_ACCEPTED: frozenset({STATUS_VOIDED}),
    STATUS_OBSERVED: frozenset(),
    STATUS_REJECTED: frozenset(),
    STATUS_VOIDED: frozenset(),
}


class StatusTransitionError(SunatException):
    """Cambio de estado no permitido"""
    def __init__(self, current: str, new: str):
        self.current = current
        self.new = new
        super().__init__(
            f"Transición de estado inválida: {current} -> {new}",
            code="INVALID_STATUS_TRANSITION",
        )


def can_transition(current: str, new: str) -> bool:
    return new in TRANSITIONS.get(current, frozenset())


def transition(current: str, new: str) -> str:
    """
    Raises:
        StatusTransitionError: Si el cambio no está permitido
    """
    if not can_transition(current, new):
        raise StatusTransitionError(current, new)
    return new


def classify_result(result: TransportResult) -> str:
    """
    Estado canónico para un TransportResult

    Un resultado con ticket y sin estado final queda 'pending'; cualquier
    estado desconocido se trata como 'exception'.
    """
    if result.status in (STATUS_ACCEPTED, STATUS_REJECTED, STATUS_OBSERVED, STATUS_EXCEPTION):
        return result.status
    if result.status == STATUS_PENDING:
        return STATUS_PENDING
    if result.ticket:
        return STATUS_PENDING
    logger.warning(f"Estado de transporte desconocido: {result.status!r}")
    return STATUS_EXCEPTION


def apply_transport_result(document: FiscalDocument, result: TransportResult) -> FiscalDocument:
    """
    Devuelve una copia del comprobante con el estado resultante

    El comprobante debe estar 'pending' (enviado y sin respuesta).

    Raises:
        StatusTransitionError: Si el comprobante no está pendiente
    """
    new_status = transition(document.status, classify_result(result))
    if new_status in (STATUS_REJECTED, STATUS_OBSERVED, STATUS_EXCEPTION):
        logger.warning(
            f"{document.document_id}: {new_status} ({result.response_code}) {result.response_message}"
        )
    else:
        logger.info(f"{document.document_id}: {document.status} -> {new_status}")
    return replace(document, status=new_status)


def can_void(document: FiscalDocument, today: Optional[date] = None) -> bool:
    """Solo comprobantes aceptados y dentro de los 7 días desde su emisión."""
    if document.status != STATUS_ACCEPTED:
        return False
    return is_within_days(document.issue_date, VOID_WINDOW_DAYS, today)
