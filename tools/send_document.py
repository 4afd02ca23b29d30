#!/usr/bin/env python3
"""
Envía un comprobante descrito en JSON con el proveedor configurado

Uso:
    python -m tools.send_document --json factura.json
    python -m tools.send_document --json factura.json --provider direct --env beta
    python -m tools.send_document --json factura.json --dry-run --out artifacts/

Formato del JSON: document_type, series, number, issuer{ruc, legal_name, ...},
customer{document_type, document_number, name, ...}, items[{description,
quantity, unit_price, tax_type, discount, unit_code, product_code}] y,
opcionalmente, currency, issue_date, issue_time, due_date, operation_type,
note, global_discount, reference{document_type, series, number},
note_reason_code y note_reason. Los totales se calculan a partir de las líneas.
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

# Asegurar import "app.*" aunque ejecutes desde tools/
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.sunat_client.adapters import create_adapter
from app.sunat_client.config import PROVIDERS, SunatConfig, get_sunat_config
from app.sunat_client.date_utils import parse_date, peru_today
from app.sunat_client.exceptions import SunatException
from app.sunat_client.models import Customer, DocumentReference, FiscalDocument, Issuer, LineItem
from app.sunat_client.tax_calculator import calculate_totals
from app.sunat_client.utils import to_decimal
from app.sunat_client.xml_generator import build_document_xml
from sunat_sender.core_send import submit_document, validate_before_submit

logger = logging.getLogger(__name__)


def setup_logging() -> None:
    logging.basicConfig(
        level=os.getenv("SUNAT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def load_document(data: Dict[str, Any]) -> FiscalDocument:
    """
    Construye el FiscalDocument y calcula líneas y totales

    Raises:
        ValidationError: Líneas con cantidad o precio inválidos
        KeyError: Falta un campo obligatorio
    """
    items = [
        LineItem(
            description=item["description"],
            quantity=to_decimal(item["quantity"]),
            unit_price=to_decimal(item["unit_price"]),
            tax_type=str(item.get("tax_type", "10")),
            discount=to_decimal(item.get("discount", 0)),
            unit_code=item.get("unit_code", "NIU"),
            product_code=item.get("product_code"),
        )
        for item in data["items"]
    ]
    calculation = calculate_totals(items, data.get("global_discount"))

    reference = None
    if data.get("reference"):
        ref = data["reference"]
        reference = DocumentReference(ref.get("document_type", "01"), ref["series"], str(ref["number"]))

    issue_time = None
    if data.get("issue_time"):
        issue_time = datetime.strptime(data["issue_time"], "%H:%M:%S").time()

    return FiscalDocument(
        document_type=data["document_type"],
        series=data["series"],
        number=str(data["number"]),
        issuer=Issuer(**data["issuer"]),
        customer=Customer(**data["customer"]) if data.get("customer") else Customer(),
        items=calculation.items,
        totals=calculation.totals,
        currency=data.get("currency", "PEN"),
        exchange_rate=to_decimal(data["exchange_rate"]) if data.get("exchange_rate") else None,
        operation_type=data.get("operation_type", "0101"),
        issue_date=parse_date(data["issue_date"]) if data.get("issue_date") else peru_today(),
        issue_time=issue_time,
        due_date=parse_date(data["due_date"]) if data.get("due_date") else None,
        note=data.get("note"),
        reference=reference,
        note_reason_code=data.get("note_reason_code"),
        note_reason=data.get("note_reason"),
    )


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Envía un comprobante electrónico a SUNAT")
    ap.add_argument("--json", required=True, dest="json_path", help="Comprobante en JSON")
    ap.add_argument("--env", choices=[SunatConfig.ENV_BETA, SunatConfig.ENV_PRODUCTION], default=None)
    ap.add_argument("--provider", choices=list(PROVIDERS), default=None, help="Por defecto SUNAT_PROVIDER")
    ap.add_argument("--dry-run", action="store_true", help="Solo valida y genera el XML UBL sin enviar")
    ap.add_argument("--out", default=None, help="Directorio donde guardar XML/CDR")
    args = ap.parse_args(argv)

    setup_logging()

    json_path = Path(args.json_path).expanduser()
    if not json_path.is_file():
        raise SystemExit(f"ERROR: no existe el archivo: {json_path}")

    try:
        document = load_document(json.loads(json_path.read_text(encoding="utf-8")))
    except (KeyError, TypeError, ValueError) as e:
        raise SystemExit(f"ERROR: JSON de comprobante inválido: {e}")
    except SunatException as e:
        raise SystemExit(f"ERROR: {e.message}")

    out_dir = Path(args.out).expanduser() if args.out else None
    if out_dir:
        out_dir.mkdir(parents=True, exist_ok=True)

    try:
        if args.dry_run:
            validate_before_submit(document)
            xml = build_document_xml(document)
            if out_dir:
                target = out_dir / f"{document.file_name}.xml"
                target.write_text(xml, encoding="utf-8")
                print(f"XML: {target}")
            else:
                print(xml)
            return 0

        config = get_sunat_config(env=args.env)
        if not config.ruc:
            config.ruc = document.issuer.ruc
        adapter = create_adapter(args.provider or config.provider, config)
        outcome = submit_document(document=document, adapter=adapter)
    except SunatException as e:
        logger.error(f"{type(e).__name__}: {e.message}")
        return 2

    if out_dir and outcome.result.signed_xml:
        (out_dir / f"{document.file_name}.xml").write_text(outcome.result.signed_xml, encoding="utf-8")
    if out_dir and outcome.result.cdr:
        (out_dir / f"R-{document.file_name}.zip.b64").write_text(outcome.result.cdr, encoding="utf-8")

    print(json.dumps(outcome.to_dict(), ensure_ascii=False, indent=2))
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
