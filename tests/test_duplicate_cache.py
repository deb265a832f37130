"""
Tests for the in-memory duplicate cache.

Covers lazy load, failure not being cached, append on a cold cache (and the
consistency gap that follows) and forced reloads picking up foreign rows.
"""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from harvest_intake.core.errors import StoreUnavailable
from harvest_intake.models import RegistrationRecord
from harvest_intake.services.cache import DuplicateCache
from tests.helpers import FakeRecordStore, make_row

LOADED_AT = datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore(name="google_sheets", rows=[make_row(id="9")])


@pytest.fixture
def cache(store: FakeRecordStore) -> DuplicateCache:
    return DuplicateCache(store, clock=lambda: LOADED_AT)


class TestEnsureLoaded:
    @pytest.mark.asyncio
    async def test_starts_empty(self, cache: DuplicateCache) -> None:
        assert cache.rows == []
        assert cache.keys == set()
        assert cache.loaded_at is None

    @pytest.mark.asyncio
    async def test_first_call_loads_everything(self, cache: DuplicateCache, store: FakeRecordStore) -> None:
        state = await cache.ensure_loaded()

        assert store.load_calls == 1
        assert len(state.rows) == 1
        assert "9|Freedom|6|20|Largo|2026-10-18|" in state.keys
        assert state.loaded_at == LOADED_AT

    @pytest.mark.asyncio
    async def test_loaded_once_per_process(self, cache: DuplicateCache, store: FakeRecordStore) -> None:
        await cache.ensure_loaded()
        await cache.ensure_loaded()
        await cache.ensure_loaded()

        assert store.load_calls == 1

    @pytest.mark.asyncio
    async def test_read_failure_is_not_cached(self, cache: DuplicateCache, store: FakeRecordStore) -> None:
        store.fail_reads = True
        with pytest.raises(StoreUnavailable):
            await cache.ensure_loaded()
        assert cache.loaded_at is None

        store.fail_reads = False
        state = await cache.ensure_loaded()
        assert store.load_calls == 2
        assert len(state.rows) == 1


class TestContains:
    @pytest.mark.asyncio
    async def test_detects_stored_row(self, cache: DuplicateCache, record: RegistrationRecord) -> None:
        stored = record.model_copy(update={"id": "9", "fecha": "2026-10-18"})
        assert await cache.contains(stored) is True

    @pytest.mark.asyncio
    async def test_unknown_record(self, cache: DuplicateCache, record: RegistrationRecord) -> None:
        assert await cache.contains(record) is False

    @pytest.mark.asyncio
    async def test_surfaces_store_errors(self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord) -> None:
        store.fail_reads = True
        with pytest.raises(StoreUnavailable):
            await cache.contains(record)


class TestAppend:
    @pytest.mark.asyncio
    async def test_append_after_load(self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord) -> None:
        await cache.ensure_loaded()
        cache.append(record, make_row())

        assert len(cache.rows) == 2
        assert await cache.contains(record) is True
        assert cache.loaded_at == LOADED_AT
        assert store.load_calls == 1

    @pytest.mark.asyncio
    async def test_append_without_load_is_detectable(
        self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord
    ) -> None:
        cache.append(record, make_row())

        assert await cache.contains(record) is True
        assert store.load_calls == 0
        assert cache.loaded_at is None

    @pytest.mark.asyncio
    async def test_cold_append_hides_existing_rows_until_reload(
        self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord
    ) -> None:
        """Writes before the first check make the cache a strict subset of the store."""
        cache.append(record, make_row())
        existing = record.model_copy(update={"id": "9"})

        assert await cache.contains(existing) is False

        await cache.force_reload()
        assert await cache.contains(existing) is True

    def test_append_does_not_touch_store(self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord) -> None:
        cache.append(record, make_row())
        assert store.append_calls == 0
        assert len(store.rows) == 1


class TestForceReload:
    @pytest.mark.asyncio
    async def test_picks_up_rows_written_elsewhere(
        self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord
    ) -> None:
        await cache.ensure_loaded()
        store.rows.append(make_row(id="1", fecha=record.fecha))
        assert await cache.contains(record) is False

        snapshot = await cache.force_reload()

        assert snapshot.total_rows == 2
        assert snapshot.loaded_at == LOADED_AT
        assert await cache.contains(record) is True

    @pytest.mark.asyncio
    async def test_reload_replaces_stale_rows(
        self, cache: DuplicateCache, store: FakeRecordStore, record: RegistrationRecord
    ) -> None:
        cache.append(record, make_row())
        store.rows.clear()

        snapshot = await cache.force_reload()

        assert snapshot.total_rows == 0
        assert cache.keys == set()

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_previous_state(self, cache: DuplicateCache, store: FakeRecordStore) -> None:
        await cache.ensure_loaded()
        store.fail_reads = True

        with pytest.raises(StoreUnavailable):
            await cache.force_reload()
        assert len(cache.rows) == 1

    def test_snapshot_as_dict(self, cache: DuplicateCache) -> None:
        assert cache.snapshot().as_dict() == {"total_rows": 0, "loaded_at": None}
