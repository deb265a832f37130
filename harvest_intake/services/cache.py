"""
Harvest Intake - Duplicate Cache

In-memory mirror of one record store: its rows and their composite keys.
Avoids re-reading the whole store on every duplicate check.

Lifecycle:
- Empty at process start.
- Loaded in full on the first check (lazy) or on an explicit reload.
- Extended by one entry per successful write, without re-reading.
- Never pruned.

Consistency: once non-empty the cache is not reloaded implicitly. If the
first entries arrive through append() (writes before any check), rows that
already existed in the store stay invisible until force_reload(). Rows other
processes add are likewise only picked up by a reload.

No lock is held between contains() and the caller's write, so two concurrent
requests for the same key can both pass the check.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from ..models import RawRow, RegistrationRecord
from ..stores.base import RecordStore
from .keys import key_for_record, key_for_row

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheState:
    rows: list[RawRow] = field(default_factory=list)
    keys: set[str] = field(default_factory=set)
    loaded_at: datetime | None = None


@dataclass(frozen=True)
class CacheSnapshot:
    """Size and freshness of the cache, for admin and health output."""

    total_rows: int
    loaded_at: datetime | None

    def as_dict(self) -> dict[str, object]:
        return {
            "total_rows": self.total_rows,
            "loaded_at": self.loaded_at.isoformat() if self.loaded_at else None,
        }


class DuplicateCache:
    """Read-through / write-through key cache over a single record store."""

    def __init__(self, source: RecordStore, *, clock: Callable[[], datetime] | None = None):
        self.source = source
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._state = CacheState()

    @property
    def rows(self) -> list[RawRow]:
        return self._state.rows

    @property
    def keys(self) -> set[str]:
        return self._state.keys

    @property
    def loaded_at(self) -> datetime | None:
        return self._state.loaded_at

    def snapshot(self) -> CacheSnapshot:
        return CacheSnapshot(total_rows=len(self._state.rows), loaded_at=self._state.loaded_at)

    async def _load(self) -> CacheState:
        # StoreUnavailable propagates and leaves the previous state in place
        rows = await self.source.load_rows()
        keys = {key_for_row(row) for row in rows}
        self._state = CacheState(rows=list(rows), keys=keys, loaded_at=self._clock())
        logger.info(f"Duplicate cache loaded from {self.source.name}: {len(rows)} rows")
        return self._state

    async def ensure_loaded(self) -> CacheState:
        if self._state.rows:
            return self._state
        return await self._load()

    async def contains(self, record: RegistrationRecord) -> bool:
        key = key_for_record(record)
        state = await self.ensure_loaded()
        found = key in state.keys
        logger.debug(f"contains({key}) -> {found}")
        return found

    def append(self, record: RegistrationRecord, raw_row: RawRow) -> None:
        """Record a row the caller has already written to the store."""
        self._state.rows.append(raw_row)
        self._state.keys.add(key_for_record(record))

    async def force_reload(self) -> CacheSnapshot:
        logger.info(f"Forcing duplicate cache reload from {self.source.name}")
        await self._load()
        return self.snapshot()
