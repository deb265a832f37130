"""
Harvest Intake - Google Sheets Store

Spreadsheet-backed registration table. Authenticates with a service account,
opens the configured worksheet once per process (creating it with the
expected header when missing) and exposes load-all / append-row.

gspread is synchronous; calls run in a worker thread so the event loop keeps
serving other requests while Google responds.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Callable

import gspread
from google.auth.exceptions import GoogleAuthError
from gspread.worksheet import Worksheet
from loguru import logger

from ..config import Settings
from ..core.errors import StoreUnavailable
from ..models import SHEET_HEADERS, RawRow, RegistrationRecord

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Failures that mean "the sheet is unreachable right now" rather than a bug
SHEET_ERRORS: tuple[type[Exception], ...] = (
    gspread.exceptions.GSpreadException,
    GoogleAuthError,
    OSError,
    ValueError,
)


def _open_worksheet(credentials: dict[str, Any], spreadsheet_id: str, sheet_name: str) -> Worksheet:
    client = gspread.service_account_from_dict(credentials, scopes=SCOPES)
    spreadsheet = client.open_by_key(spreadsheet_id)
    try:
        worksheet = spreadsheet.worksheet(sheet_name)
    except gspread.exceptions.WorksheetNotFound:
        logger.info(f"Worksheet {sheet_name!r} not found; creating it")
        worksheet = spreadsheet.add_worksheet(
            title=sheet_name, rows=1000, cols=len(SHEET_HEADERS)
        )
        worksheet.append_row(SHEET_HEADERS, value_input_option="RAW")
        return worksheet

    if not worksheet.row_values(1):
        worksheet.update([SHEET_HEADERS], "A1")
    return worksheet


class SheetRecordStore:
    """
    Registration rows in a Google Sheets worksheet.

    The first row is the header (SHEET_HEADERS); data rows follow in
    insertion order.
    """

    name = "google_sheets"

    def __init__(
        self,
        credentials_loader: Callable[[], dict[str, Any]],
        spreadsheet_id: str,
        sheet_name: str,
        *,
        clock: Callable[[], datetime] | None = None,
    ):
        self._credentials_loader = credentials_loader
        self._spreadsheet_id = spreadsheet_id
        self._sheet_name = sheet_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._worksheet: Worksheet | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SheetRecordStore":
        return cls(
            settings.google_credentials,
            settings.SPREADSHEET_ID,
            settings.SHEET_NAME,
        )

    def _get_worksheet(self) -> Worksheet:
        if self._worksheet is None:
            worksheet = _open_worksheet(
                self._credentials_loader(), self._spreadsheet_id, self._sheet_name
            )
            logger.info(f"Spreadsheet ready: {self._sheet_name}")
            self._worksheet = worksheet
        return self._worksheet

    def _load_rows_sync(self) -> list[RawRow]:
        values = self._get_worksheet().get_all_values()
        return [list(row) for row in values[1:]]

    def _append_sync(self, cells: list[Any]) -> None:
        self._get_worksheet().append_row(cells, value_input_option="RAW")

    async def load_rows(self) -> list[RawRow]:
        try:
            rows = await asyncio.to_thread(self._load_rows_sync)
        except SHEET_ERRORS as e:
            logger.error(f"Failed to read spreadsheet {self._sheet_name!r}: {type(e).__name__}: {e}")
            raise StoreUnavailable(
                f"No se pudo leer la hoja de cálculo: {e}", store=self.name
            ) from e
        logger.info(f"Read {len(rows)} rows from spreadsheet {self._sheet_name!r}")
        return rows

    def build_row(self, record: RegistrationRecord) -> RawRow:
        """Cells for a record, in SHEET_HEADERS order, as written (RAW)."""
        return [
            record.id,
            record.variedad,
            record.bloque,
            str(record.tallos),
            record.tamano,
            record.fecha,
            record.etapa or "",
            self._clock().isoformat(),
        ]

    async def append(self, record: RegistrationRecord) -> RawRow:
        row = self.build_row(record)
        # tallos goes in as a number so sheet formulas can sum it
        cells: list[Any] = [record.tallos if i == 3 else v for i, v in enumerate(row)]
        try:
            await asyncio.to_thread(self._append_sync, cells)
        except SHEET_ERRORS as e:
            logger.error(f"Failed to append to spreadsheet {self._sheet_name!r}: {type(e).__name__}: {e}")
            raise StoreUnavailable(
                f"No se pudo escribir en la hoja de cálculo: {e}", store=self.name
            ) from e
        logger.info(f"Row written to spreadsheet: {row}")
        return row
