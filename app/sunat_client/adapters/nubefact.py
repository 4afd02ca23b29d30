"""
Adaptador para el OSE Nubefact (API REST JSON)

El OSE firma y envía a SUNAT por nosotros: aquí solo se traduce el
comprobante al formato plano de Nubefact y se interpreta su respuesta.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

import httpx

from ..catalogs import (
    DOC_CREDIT_NOTE,
    DOC_DEBIT_NOTE,
    DOC_INVOICE,
    IGV_PERCENTAGE,
    IGV_RATE,
    NOTE_TYPES,
    TAX_TAXED,
)
from ..config import SunatConfig
from ..date_utils import format_date
from ..exceptions import TransportException
from ..models import (
    STATUS_ACCEPTED,
    STATUS_EXCEPTION,
    STATUS_REJECTED,
    FiscalDocument,
    LineItem,
    TransportResult,
)
from ..tax_calculator import calculate_totals
from ..utils import round_money, to_decimal
from .base import SunatAdapter

logger = logging.getLogger(__name__)

DOCUMENT_TYPE_MAP = {"01": 1, "03": 2, "07": 3, "08": 4}
CURRENCY_MAP = {"PEN": 1, "USD": 2, "EUR": 3}
OPERATION_TYPE_MAP = {"0101": 1, "0200": 2, "0401": 4}
TAX_TYPE_MAP = {"10": 1, "11": 2, "20": 8, "30": 9}
IDENTITY_TYPE_MAP = {"0": "0", "1": "1", "4": "4", "6": "6", "7": "7", "A": "A"}
CREDIT_NOTE_REASON_MAP = {"01": 1, "02": 2, "03": 3, "04": 4, "05": 5, "06": 6, "07": 7, "09": 9}
DEBIT_NOTE_REASON_MAP = {"01": 1, "02": 2, "03": 3}

DEFAULT_IDENTITY_TYPE = "6"
DEFAULT_PRODUCT_CODE = "PROD"


def _number(value: Any) -> float:
    return float(round_money(to_decimal(value)))


def _optional_number(value: Any) -> Optional[float]:
    amount = to_decimal(value)
    return float(round_money(amount)) if amount else None


def _document_number(number: str) -> int:
    return int(str(number).lstrip("0") or "0")


class NubefactAdapter(SunatAdapter):
    """
    Envío a través del OSE Nubefact

    Autenticación con token Bearer; endpoint {base}/{ruc}.
    """

    name = "nubefact"
    supported_documents = ("01", "03", "07", "08")

    def __init__(self, config: SunatConfig, client: Optional[httpx.Client] = None):
        super().__init__(config)
        self.base_url = config.get_nubefact_url().rstrip("/")
        self.client = client or httpx.Client(timeout=config.request_timeout, verify=True)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/{self.config.ruc}"

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    def _post(self, payload: Dict[str, Any]) -> httpx.Response:
        """
        Raises:
            TransportException: Timeout o error de red
        """
        logger.info(f"POST {payload.get('operacion')} a {self.base_url}")
        try:
            return self.client.post(self.endpoint, json=payload, headers=self._headers())
        except httpx.TimeoutException as e:
            raise TransportException(
                f"Timeout al contactar Nubefact ({self.config.request_timeout}s)", code="TIMEOUT"
            ) from e
        except httpx.RequestError as e:
            raise TransportException(f"Error de conexión con Nubefact: {e}", code="CONNECTION_ERROR") from e

    @staticmethod
    def _errors(body: Dict[str, Any]) -> List[str]:
        errors = body.get("errors") or body.get("errores")
        if not errors:
            return []
        if isinstance(errors, str):
            return [errors]
        return [str(e) for e in errors]

    def _read_json(self, response: httpx.Response) -> Dict[str, Any]:
        """
        Raises:
            TransportException: Respuesta 2xx que no es un objeto JSON
        """
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            return body
        if response.is_success:
            raise TransportException("Respuesta de Nubefact no es JSON válido", code="INVALID_RESPONSE")
        return {}

    def send_document(self, document: FiscalDocument) -> TransportResult:
        """
        Raises:
            ValidationError: Documento incompleto
        """
        self.validate_document(document)
        payload = self.map_document(document)

        try:
            response = self._post(payload)
            body = self._read_json(response)
        except TransportException as e:
            return self.exception_result(e)
        errors = self._errors(body)

        if not response.is_success:
            message = ", ".join(errors) or f"Error HTTP {response.status_code}"
            logger.warning(f"Nubefact HTTP {response.status_code}: {message}")
            return TransportResult(
                success=False,
                status=STATUS_EXCEPTION,
                response_code=body.get("sunat_responsecode") or f"HTTP_{response.status_code}",
                response_message=message,
            )

        if errors:
            logger.warning(f"Nubefact rechazó {document.document_id}: {errors}")
            return TransportResult(
                success=False,
                status=STATUS_REJECTED,
                response_code=body.get("sunat_responsecode") or "ERROR",
                response_message=", ".join(errors),
            )

        accepted = body.get("aceptada_por_sunat") is True
        return TransportResult(
            success=accepted,
            status=STATUS_ACCEPTED if accepted else STATUS_REJECTED,
            response_code=body.get("sunat_responsecode") or "0",
            response_message=body.get("sunat_description") or "Documento procesado",
            notes=[body["sunat_note"]] if body.get("sunat_note") else [],
            hash=body.get("codigo_hash"),
        )

    def query_status(self, ticket: str) -> TransportResult:
        # Nubefact procesa de forma síncrona: no hay tickets pendientes
        return TransportResult(
            success=True,
            status=STATUS_ACCEPTED,
            response_code="0",
            response_message="Nubefact procesa los comprobantes de forma síncrona",
            ticket=ticket,
        )

    def void_document(self, document: FiscalDocument, reason: str) -> TransportResult:
        payload = {
            "operacion": "generar_anulacion",
            "tipo_de_comprobante": DOCUMENT_TYPE_MAP.get(document.document_type, 1),
            "serie": document.series,
            "numero": _document_number(document.number),
            "motivo": reason,
            "codigo_unico": document.document_id,
        }
        try:
            response = self._post(payload)
            body = self._read_json(response)
        except TransportException as e:
            return self.exception_result(e)
        errors = self._errors(body)
        if not response.is_success:
            return TransportResult(
                success=False,
                status=STATUS_EXCEPTION,
                response_code=f"HTTP_{response.status_code}",
                response_message=", ".join(errors) or f"Error HTTP {response.status_code}",
            )
        if errors:
            return TransportResult(
                success=False,
                status=STATUS_REJECTED,
                response_code="ERROR",
                response_message=", ".join(errors),
            )
        return TransportResult(
            success=True,
            status=STATUS_ACCEPTED,
            response_code="0",
            response_message="Documento anulado correctamente",
            ticket=body.get("sunat_ticket_numero"),
        )

    def map_document(self, doc: FiscalDocument) -> Dict[str, Any]:
        """Traduce el comprobante al JSON de 'generar_comprobante'."""
        customer = doc.customer
        totals = doc.totals
        payload: Dict[str, Any] = {
            "operacion": "generar_comprobante",
            "tipo_de_comprobante": DOCUMENT_TYPE_MAP.get(doc.document_type, 1),
            "serie": doc.series,
            "numero": _document_number(doc.number),
            "sunat_transaction": OPERATION_TYPE_MAP.get(doc.operation_type or "0101", 1),
            "cliente_tipo_de_documento": IDENTITY_TYPE_MAP.get(
                customer.document_type if customer else DEFAULT_IDENTITY_TYPE, DEFAULT_IDENTITY_TYPE
            ),
            "cliente_numero_de_documento": (customer.document_number if customer else "") or "",
            "cliente_denominacion": (customer.name if customer else "") or "",
            "cliente_direccion": customer.address if customer else None,
            "cliente_email": customer.email if customer else None,
            "fecha_de_emision": format_date(doc.issue_date),
            "fecha_de_vencimiento": format_date(doc.due_date) if doc.due_date else None,
            "moneda": CURRENCY_MAP.get(doc.currency, 1),
            "tipo_de_cambio": float(doc.exchange_rate) if doc.exchange_rate else None,
            "porcentaje_de_igv": float(IGV_PERCENTAGE),
            "descuento_global": _optional_number(totals.discount),
            "total_gravada": _number(totals.taxable),
            "total_exonerada": _optional_number(totals.exempt),
            "total_inafecta": _optional_number(totals.unaffected),
            "total_gratuita": _optional_number(totals.free),
            "total_igv": _number(totals.igv),
            "total": _number(totals.total),
            "observaciones": doc.note or None,
            "enviar_automaticamente_a_la_sunat": True,
            "enviar_automaticamente_al_cliente": False,
            "codigo_unico": doc.document_id,
            "items": [self.map_item(item) for item in self._calculated_items(doc)],
        }

        if doc.document_type in NOTE_TYPES and doc.reference is not None:
            reference = doc.reference
            payload["documento_que_se_modifica_tipo"] = DOCUMENT_TYPE_MAP.get(
                reference.document_type or DOC_INVOICE, 1
            )
            payload["documento_que_se_modifica_serie"] = reference.series
            payload["documento_que_se_modifica_numero"] = _document_number(reference.number)
            reason_code = doc.note_reason_code or "01"
            if doc.document_type == DOC_CREDIT_NOTE:
                payload["tipo_de_nota_de_credito"] = CREDIT_NOTE_REASON_MAP.get(reason_code, 1)
            elif doc.document_type == DOC_DEBIT_NOTE:
                payload["tipo_de_nota_de_debito"] = DEBIT_NOTE_REASON_MAP.get(reason_code, 1)

        return {key: value for key, value in payload.items() if value is not None}

    @staticmethod
    def _calculated_items(doc: FiscalDocument) -> List[LineItem]:
        if all(item.taxable_base is not None for item in doc.items):
            return list(doc.items)
        return calculate_totals(doc.items).items

    def map_item(self, item: LineItem) -> Dict[str, Any]:
        unit_price = to_decimal(item.unit_price)
        # precio_unitario incluye IGV solo en operaciones gravadas onerosas
        price_with_tax = unit_price * (1 + IGV_RATE) if item.tax_type == TAX_TAXED else unit_price
        discount = to_decimal(item.discount)
        mapped = {
            "unidad_de_medida": item.unit_code or "NIU",
            "codigo": item.product_code or DEFAULT_PRODUCT_CODE,
            "descripcion": item.description,
            "cantidad": float(to_decimal(item.quantity)),
            "valor_unitario": float(unit_price),
            "precio_unitario": float(price_with_tax.quantize(Decimal("0.000001"))),
            "subtotal": _number(item.taxable_base),
            "tipo_de_igv": TAX_TYPE_MAP.get(item.tax_type or TAX_TAXED, 1),
            "igv": _number(item.tax_amount),
            "total": _number(item.total),
        }
        if discount:
            mapped["descuento"] = float(discount)
        return mapped
