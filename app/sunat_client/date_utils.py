"""
Fechas para comprobantes SUNAT (hora de Perú, UTC-5 sin horario de verano)
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

PERU_TZ = timezone(timedelta(hours=-5), name="America/Lima")


def peru_now() -> datetime:
    return datetime.now(PERU_TZ)


def peru_today() -> date:
    return peru_now().date()


def format_date(value: Union[date, datetime]) -> str:
    """YYYY-MM-DD"""
    return value.strftime("%Y-%m-%d")


def format_time(value: Union[time, datetime]) -> str:
    """HH:MM:SS"""
    return value.strftime("%H:%M:%S")


def format_compact_date(value: Union[date, datetime]) -> str:
    """YYYYMMDD (identificadores RC/RA)"""
    return value.strftime("%Y%m%d")


def parse_date(value: str) -> date:
    """Parsea 'YYYY-MM-DD'."""
    return datetime.strptime(value.strip()[:10], "%Y-%m-%d").date()


def is_within_days(value: date, days: int, today: Optional[date] = None) -> bool:
    """True si entre value y hoy (hora de Perú) hay a lo sumo `days` días."""
    if isinstance(value, datetime):
        value = value.date()
    reference = today or peru_today()
    return (reference - value).days <= days
