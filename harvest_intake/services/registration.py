"""
Harvest Intake - Registration Service

validate -> duplicate check -> write to each store -> update cache.

Stores are written independently in the order given (relational first,
spreadsheet mirror second); one failing does not undo the other. A write
that fails after another store accepted the record is queued in the outbox
and reported as PartialWrite so the operator does not scan again.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Callable, Sequence

from ..config import Settings
from ..core.errors import (
    DuplicateRecord,
    InvalidField,
    InvalidNumber,
    MissingField,
    PartialWrite,
    StoreUnavailable,
)
from ..models import RawRow, RegistrationRecord, RegistrationResult, RegistrationSubmission
from ..stores import PostgresRecordStore, RecordStore, SheetRecordStore
from .cache import DuplicateCache
from .keys import key_for_record
from .outbox import FlushReport, PendingWrite, WriteOutbox

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("id", "variedad", "bloque", "tallos", "tamano")

# plain ASCII digits only: no sign, no "1_000", no non-Latin numerals
STEM_COUNT_RE = re.compile(r"[0-9]+")


def _today_utc() -> str:
    return datetime.now(timezone.utc).date().isoformat()


def validate_submission(
    submission: RegistrationSubmission,
    today: Callable[[], str] = _today_utc,
) -> RegistrationRecord:
    """
    Turn raw values into a record.

    Raises:
        MissingField: First required field that is absent or empty
        InvalidNumber: tallos is not a non-negative integer
        InvalidField: bloque is blank
    """
    for name in REQUIRED_FIELDS:
        value = getattr(submission, name)
        if value is None or value == "":
            raise MissingField(name)

    raw_tallos = submission.tallos or ""
    if not STEM_COUNT_RE.fullmatch(raw_tallos.strip()):
        raise InvalidNumber("tallos", raw_tallos)
    tallos = int(raw_tallos.strip())

    bloque = (submission.bloque or "").strip()
    if not bloque:
        raise InvalidField("bloque")

    return RegistrationRecord(
        id=submission.id or "",
        variedad=submission.variedad or "",
        bloque=bloque,
        tallos=tallos,
        tamano=submission.tamano or "",
        fecha=submission.fecha or today(),
        etapa=submission.etapa,
    )


class RegistrationService:
    """Registers harvest records against a duplicate cache and a set of stores."""

    def __init__(
        self,
        cache: DuplicateCache,
        sinks: Sequence[RecordStore],
        outbox: WriteOutbox | None = None,
        *,
        today: Callable[[], str] = _today_utc,
    ):
        self.cache = cache
        self.sinks = list(sinks)
        self.outbox = outbox if outbox is not None else WriteOutbox()
        self._today = today

    @property
    def sink_names(self) -> list[str]:
        return [sink.name for sink in self.sinks]

    def _after_write(self, sink: RecordStore, record: RegistrationRecord, raw_row: RawRow) -> None:
        if sink is self.cache.source:
            self.cache.append(record, raw_row)

    async def register(
        self,
        submission: RegistrationSubmission,
        *,
        bypass_duplicate_check: bool = False,
    ) -> RegistrationResult:
        record = validate_submission(submission, self._today)

        if not bypass_duplicate_check:
            if await self.cache.contains(record):
                raise DuplicateRecord(key_for_record(record))
        else:
            logger.info(f"Duplicate check bypassed for id={record.id}")

        if not self.sinks:
            raise StoreUnavailable("No hay almacenamiento configurado")

        persisted: list[str] = []
        failed: list[tuple[RecordStore, StoreUnavailable]] = []

        for sink in self.sinks:
            try:
                raw_row = await sink.append(record)
            except StoreUnavailable as e:
                failed.append((sink, e))
                continue
            persisted.append(sink.name)
            self._after_write(sink, record, raw_row)

        if failed:
            if not persisted:
                raise failed[0][1]
            for sink, error in failed:
                mirrored = sink is self.cache.source
                if mirrored:
                    # the outbox will write this row; a re-scan must already be a duplicate
                    self.cache.append(record, record.as_row())
                self.outbox.enqueue(sink.name, record, error, cached=mirrored)
            raise PartialWrite(persisted=persisted, pending=[sink.name for sink, _ in failed])

        logger.info(f"✅ Registered id={record.id} in {', '.join(persisted)}: {record.model_dump()}")
        return RegistrationResult(
            record=record,
            sinks=persisted,
            duplicate_check=not bypass_duplicate_check,
        )

    def _after_replay(self, sink: RecordStore, entry: PendingWrite, raw_row: RawRow) -> None:
        if not entry.cached:
            self._after_write(sink, entry.record, raw_row)

    async def flush_outbox(self) -> FlushReport:
        return await self.outbox.flush(
            {sink.name: sink for sink in self.sinks},
            on_written=self._after_replay,
        )


def build_registration_service(settings: Settings) -> RegistrationService:
    """
    Wire stores, cache and outbox from settings.

    The cache mirrors the spreadsheet when it is configured (it is the table
    operators edit by hand), otherwise the relational table.
    """
    sinks: list[RecordStore] = []
    if settings.relational_enabled:
        sinks.append(PostgresRecordStore(settings.REGISTROS_TABLE))
    sheet_store: SheetRecordStore | None = None
    if settings.sheets_enabled:
        sheet_store = SheetRecordStore.from_settings(settings)
        sinks.append(sheet_store)

    if not sinks:
        logger.warning("No record store configured; registrations will fail")

    source: RecordStore = sheet_store or (sinks[0] if sinks else _UnconfiguredStore())
    logger.info(f"Sinks: {[s.name for s in sinks]}; duplicate cache mirrors {source.name}")
    return RegistrationService(DuplicateCache(source), sinks)


class _UnconfiguredStore:
    name = "unconfigured"

    async def load_rows(self) -> list[RawRow]:
        raise StoreUnavailable("No hay almacenamiento configurado", store=self.name)

    async def append(self, record: RegistrationRecord) -> RawRow:
        raise StoreUnavailable("No hay almacenamiento configurado", store=self.name)
