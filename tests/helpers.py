"""
tests/helpers.py

In-memory record store used in place of Postgres / Google Sheets.
"""

from __future__ import annotations

from harvest_intake.core.errors import StoreUnavailable
from harvest_intake.models import RawRow, RegistrationRecord


class FakeRecordStore:
    """
    RecordStore double backed by a list.

    Set ``fail_reads`` / ``fail_writes`` to make the next calls raise
    StoreUnavailable. ``rows`` can be edited directly to simulate another
    process writing to the same table.
    """

    def __init__(self, name: str = "fake", rows: list[RawRow] | None = None):
        self.name = name
        self.rows: list[RawRow] = [list(r) for r in (rows or [])]
        self.fail_reads = False
        self.fail_writes = False
        self.load_calls = 0
        self.append_calls = 0

    async def load_rows(self) -> list[RawRow]:
        self.load_calls += 1
        if self.fail_reads:
            raise StoreUnavailable(f"{self.name} read failed", store=self.name)
        return [list(r) for r in self.rows]

    async def append(self, record: RegistrationRecord) -> RawRow:
        self.append_calls += 1
        if self.fail_writes:
            raise StoreUnavailable(f"{self.name} write failed", store=self.name)
        row = [
            record.id,
            record.variedad,
            record.bloque,
            str(record.tallos),
            record.tamano,
            record.fecha,
            record.etapa or "",
        ]
        self.rows.append(row)
        return list(row)


def make_row(
    id: str = "1",
    variedad: str = "Freedom",
    bloque: str = "6",
    tallos: str = "20",
    tamano: str = "Largo",
    fecha: str = "2026-10-18",
    etapa: str = "",
) -> RawRow:
    return [id, variedad, bloque, tallos, tamano, fecha, etapa]
