#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path

# Asegurar import "app.*" aunque ejecutes desde tools/
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.sunat_client.adapters import create_adapter
from app.sunat_client.config import PROVIDERS, SunatConfig, get_sunat_config
from app.sunat_client.exceptions import SunatException
from app.sunat_client.models import STATUS_ACCEPTED, STATUS_OBSERVED, STATUS_PENDING

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Consulta el estado de un ticket SUNAT (getStatus)")
    ap.add_argument("--ticket", required=True, help="Ticket devuelto por sendSummary")
    ap.add_argument("--env", choices=[SunatConfig.ENV_BETA, SunatConfig.ENV_PRODUCTION], default=None)
    ap.add_argument("--provider", choices=list(PROVIDERS), default=None, help="Por defecto SUNAT_PROVIDER")
    ap.add_argument("--retries", type=int, default=1, help="Consultas mientras siga pendiente")
    ap.add_argument("--sleep", type=int, default=10, dest="sleep_seconds")
    args = ap.parse_args(argv)

    if args.retries < 1:
        raise SystemExit("ERROR: --retries debe ser >= 1")
    if args.sleep_seconds < 0:
        raise SystemExit("ERROR: --sleep debe ser >= 0")

    logging.basicConfig(
        level=os.getenv("SUNAT_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = get_sunat_config(env=args.env)
        adapter = create_adapter(args.provider or config.provider, config)
    except SunatException as e:
        raise SystemExit(f"ERROR: {e.message}")

    ticket = args.ticket.strip()
    result = None
    for attempt in range(1, args.retries + 1):
        result = adapter.query_status(ticket)
        print(
            f"[{attempt}/{args.retries}] ticket={ticket} status={result.status} "
            f"code={result.response_code} msg={result.response_message}"
        )
        if result.status != STATUS_PENDING:
            break
        if attempt < args.retries:
            time.sleep(args.sleep_seconds)

    print(json.dumps(
        {
            "ticket": ticket,
            "status": result.status,
            "response_code": result.response_code,
            "response_message": result.response_message,
            "notes": result.notes,
            "has_cdr": bool(result.cdr),
        },
        ensure_ascii=False,
        indent=2,
    ))
    return 0 if result.status in (STATUS_ACCEPTED, STATUS_OBSERVED) else 1


if __name__ == "__main__":
    raise SystemExit(main())
