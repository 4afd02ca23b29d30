#!/usr/bin/env python3
# tools/ruc_dv.py
# Dígito verificador (mod 11) del RUC peruano

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Asegurar import "app.*" aunque ejecutes desde tools/
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from app.sunat_client.validator import calc_ruc_dv, validate_ruc


def fix_ruc(ruc: str) -> str:
    """
    Corrige el dígito verificador de un RUC de 11 dígitos.
    """
    s = (ruc or "").strip()
    if not s.isdigit() or len(s) != 11:
        raise ValueError(f"RUC inválido (se esperan 11 dígitos): {ruc!r}")
    base = s[:10]
    return base + str(calc_ruc_dv(base))


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Calcula o verifica el dígito verificador de un RUC")
    ap.add_argument("value", help="10 dígitos (calcula DV) u 11 dígitos (verifica)")
    ap.add_argument("--fix", action="store_true", help="Imprime el RUC con el DV corregido")
    args = ap.parse_args(argv)

    value = args.value.strip()
    try:
        if len(value) == 10:
            print(calc_ruc_dv(value))
            return 0
        if args.fix:
            print(fix_ruc(value))
            return 0
    except ValueError as e:
        raise SystemExit(f"ERROR: {e}")

    if validate_ruc(value):
        print(f"OK: {value}")
        return 0
    print(f"INVALIDO: {value}")
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
