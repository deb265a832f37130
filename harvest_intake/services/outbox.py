"""
Harvest Intake - Write Outbox

Holds writes that failed on one store after another store already accepted
the same registration. Flushing is manual (admin endpoint); there is no
automatic retry. Entries live in memory and are lost on restart.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Mapping

from pydantic import BaseModel

from ..core.errors import IntakeError
from ..models import RawRow, RegistrationRecord
from ..stores.base import RecordStore

logger = logging.getLogger(__name__)


@dataclass
class PendingWrite:
    sink: str
    record: RegistrationRecord
    last_error: str
    queued_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    attempts: int = 1
    # key already added to the duplicate cache when the write was queued
    cached: bool = False

    def as_dict(self) -> dict[str, object]:
        return {
            "sink": self.sink,
            "record": self.record.model_dump(),
            "last_error": self.last_error,
            "queued_at": self.queued_at.isoformat(),
            "attempts": self.attempts,
        }


WrittenCallback = Callable[[RecordStore, PendingWrite, RawRow], None]


class FlushReport(BaseModel):
    written: int
    remaining: int


def _describe(error: Exception) -> str:
    if isinstance(error, IntakeError):
        return error.message
    return f"{type(error).__name__}: {error}"


class WriteOutbox:
    def __init__(self) -> None:
        self._pending: list[PendingWrite] = []

    def __len__(self) -> int:
        return len(self._pending)

    def enqueue(
        self,
        sink: str,
        record: RegistrationRecord,
        error: Exception,
        *,
        cached: bool = False,
    ) -> PendingWrite:
        entry = PendingWrite(sink=sink, record=record, last_error=str(error), cached=cached)
        self._pending.append(entry)
        logger.warning(f"Queued {sink} write for id={record.id}: {error}")
        return entry

    def pending(self) -> list[PendingWrite]:
        return list(self._pending)

    async def flush(
        self,
        sinks: Mapping[str, RecordStore],
        on_written: WrittenCallback | None = None,
    ) -> FlushReport:
        """
        Attempt every queued write once.

        Any failure keeps the entry queued with the error recorded; one bad
        entry never drops the others. Entries whose sink is no longer
        configured stay queued untouched.
        """
        written = 0
        remaining: list[PendingWrite] = []
        batch, self._pending = self._pending, []

        for entry in batch:
            sink = sinks.get(entry.sink)
            if sink is None:
                remaining.append(entry)
                continue
            try:
                raw_row = await sink.append(entry.record)
            except Exception as e:
                if not isinstance(e, IntakeError):
                    logger.exception(f"Unexpected error replaying {entry.sink} write for id={entry.record.id}")
                entry.attempts += 1
                entry.last_error = _describe(e)
                remaining.append(entry)
                continue
            written += 1
            if on_written is not None:
                on_written(sink, entry, raw_row)

        # entries queued while this flush was awaiting keep their place at the end
        self._pending = remaining + self._pending
        logger.info(f"Outbox flush: written={written} remaining={len(self._pending)}")
        return FlushReport(written=written, remaining=len(self._pending))
