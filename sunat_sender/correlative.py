"""
Numeración correlativa de comprobantes por emisor y serie

Es el único estado compartido entre envíos concurrentes: dos asignaciones
para la misma serie nunca pueden devolver el mismo número.
"""
from __future__ import annotations

import logging
import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Optional, Protocol, Union

from app.sunat_client.exceptions import SunatException

logger = logging.getLogger(__name__)

NUMBER_WIDTH = 8
MAX_NUMBER = 10 ** NUMBER_WIDTH - 1


class CorrelativeError(SunatException):
    """Serie inexistente, inactiva o agotada"""
    pass


def format_correlative(number: int) -> str:
    """1 -> '00000001'"""
    return str(int(number)).zfill(NUMBER_WIDTH)


class CorrelativeAllocator(Protocol):
    def allocate_next(self, tenant_id: str, series: str) -> str:
        ...


class SqliteCorrelativeAllocator:
    """
    Asignador sobre SQLite

    Cada asignación abre su propia conexión y toma el lock de escritura con
    BEGIN IMMEDIATE antes de leer el número actual.
    """

    def __init__(self, db_path: Union[str, Path], busy_timeout_ms: int = 5000):
        self.db_path = str(db_path)
        self.busy_timeout_ms = busy_timeout_ms
        self.init_db()

    def _connect(self) -> sqlite3.Connection:
        con = sqlite3.connect(self.db_path, isolation_level=None, timeout=self.busy_timeout_ms / 1000)
        con.row_factory = sqlite3.Row
        con.execute("PRAGMA journal_mode = WAL;")
        con.execute("PRAGMA synchronous = FULL;")
        con.execute(f"PRAGMA busy_timeout = {int(self.busy_timeout_ms)};")
        return con

    def init_db(self) -> None:
        with closing(self._connect()) as con:
            con.executescript(
                """
                CREATE TABLE IF NOT EXISTS document_series (
                    tenant_id TEXT NOT NULL,
                    series TEXT NOT NULL,
                    document_type TEXT NOT NULL,
                    current_number INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    PRIMARY KEY (tenant_id, series)
                );
                """
            )

    def register_series(
        self,
        tenant_id: str,
        document_type: str,
        series: str,
        current_number: int = 0,
    ) -> None:
        """Registra una serie (o la reactiva sin tocar su número actual)."""
        with closing(self._connect()) as con:
            con.execute(
                "INSERT INTO document_series (tenant_id, series, document_type, current_number) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT (tenant_id, series) DO UPDATE SET is_active = 1",
                (tenant_id, series, document_type, int(current_number)),
            )

    def deactivate_series(self, tenant_id: str, series: str) -> None:
        with closing(self._connect()) as con:
            con.execute(
                "UPDATE document_series SET is_active = 0 WHERE tenant_id = ? AND series = ?",
                (tenant_id, series),
            )

    def current_number(self, tenant_id: str, series: str) -> Optional[int]:
        with closing(self._connect()) as con:
            row = con.execute(
                "SELECT current_number FROM document_series WHERE tenant_id = ? AND series = ?",
                (tenant_id, series),
            ).fetchone()
        return int(row["current_number"]) if row else None

    def allocate_next(self, tenant_id: str, series: str) -> str:
        """
        Reserva el siguiente número de la serie

        Returns:
            Número con 8 dígitos ('00000001')

        Raises:
            CorrelativeError: Serie desconocida, inactiva o agotada
        """
        with closing(self._connect()) as con:
            con.execute("BEGIN IMMEDIATE")
            try:
                row = con.execute(
                    "SELECT current_number, is_active FROM document_series "
                    "WHERE tenant_id = ? AND series = ?",
                    (tenant_id, series),
                ).fetchone()
                if row is None:
                    raise CorrelativeError(f"Serie no registrada: {series}", code="UNKNOWN_SERIES")
                if not row["is_active"]:
                    raise CorrelativeError(f"Serie inactiva: {series}", code="INACTIVE_SERIES")

                number = int(row["current_number"]) + 1
                if number > MAX_NUMBER:
                    raise CorrelativeError(f"Serie agotada: {series}", code="SERIES_EXHAUSTED")

                con.execute(
                    "UPDATE document_series SET current_number = ? WHERE tenant_id = ? AND series = ?",
                    (number, tenant_id, series),
                )
                con.execute("COMMIT")
            except BaseException:
                con.execute("ROLLBACK")
                raise

        logger.debug(f"Correlativo asignado {series}-{format_correlative(number)} ({tenant_id})")
        return format_correlative(number)
