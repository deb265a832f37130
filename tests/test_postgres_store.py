"""
Tests for the Postgres record store.

The connection pool is mocked; no database is needed.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import psycopg
from psycopg import errors as pg_errors
from psycopg import sql
import pytest

from harvest_intake.core.errors import InvalidField, StoreUnavailable
from harvest_intake.models import RegistrationRecord
from harvest_intake.stores.postgres import PostgresRecordStore, to_date, to_decimal_bloque


def _mock_pool(fetchone=None, fetchall=None):
    """Pool whose connection().cursor() yields a cursor with canned results."""
    cur = MagicMock()
    cur.execute = AsyncMock()
    cur.fetchone = AsyncMock(return_value=fetchone)
    cur.fetchall = AsyncMock(return_value=fetchall or [])

    cursor_cm = MagicMock()
    cursor_cm.__aenter__.return_value = cur
    conn = MagicMock()
    conn.cursor.return_value = cursor_cm

    conn_cm = MagicMock()
    conn_cm.__aenter__.return_value = conn
    pool = MagicMock()
    pool.connection.return_value = conn_cm
    return pool, cur


def _store(pool) -> PostgresRecordStore:
    async def getter():
        return pool

    return PostgresRecordStore("registros_flores", pool_getter=getter)


class TestConversions:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [("6", Decimal("6")), ("1.1", Decimal("1.1")), (" 2.30 ", Decimal("2.30"))],
    )
    def test_block_to_decimal(self, raw: str, expected: Decimal) -> None:
        assert to_decimal_bloque(raw) == expected

    @pytest.mark.parametrize("raw", ["A3", "", "NaN", "Infinity"])
    def test_block_not_numeric(self, raw: str) -> None:
        with pytest.raises(InvalidField) as exc_info:
            to_decimal_bloque(raw)
        assert exc_info.value.field == "bloque"

    def test_date(self) -> None:
        assert to_date("2026-10-18") == date(2026, 10, 18)

    @pytest.mark.parametrize("raw", ["18/10/2026", "2026-13-01", "hoy"])
    def test_bad_date(self, raw: str) -> None:
        with pytest.raises(InvalidField) as exc_info:
            to_date(raw)
        assert exc_info.value.field == "fecha"


class TestAppend:
    @pytest.mark.asyncio
    async def test_insert_parameters(self, record: RegistrationRecord) -> None:
        pool, cur = _mock_pool(fetchone=("1",))

        row = await _store(pool).append(record.model_copy(update={"bloque": "1.1"}))

        params = cur.execute.await_args.args[1]
        assert params == ("1", "Freedom", Decimal("1.1"), 20, "Largo", date(2026, 10, 18), None)
        assert row == ["1", "Freedom", "1.1", "20", "Largo", "2026-10-18", ""]

    @pytest.mark.asyncio
    async def test_conflict_is_not_an_error(self, record: RegistrationRecord) -> None:
        pool, _ = _mock_pool(fetchone=None)

        row = await _store(pool).append(record)

        assert row[0] == "1"

    @pytest.mark.asyncio
    async def test_invalid_block_rejected_before_io(self, record: RegistrationRecord) -> None:
        pool, cur = _mock_pool()

        with pytest.raises(InvalidField):
            await _store(pool).append(record.model_copy(update={"bloque": "B-12"}))
        cur.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_database_error(self, record: RegistrationRecord) -> None:
        pool, cur = _mock_pool()
        cur.execute.side_effect = psycopg.OperationalError("connection lost")

        with pytest.raises(StoreUnavailable) as exc_info:
            await _store(pool).append(record)
        assert exc_info.value.store == "postgres"
        assert "connection lost" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_no_pool(self, record: RegistrationRecord) -> None:
        async def no_pool():
            return None

        store = PostgresRecordStore(pool_getter=no_pool)

        with pytest.raises(StoreUnavailable):
            await store.append(record)


class TestLoadRows:
    @pytest.mark.asyncio
    async def test_rows_as_text(self) -> None:
        pool, _ = _mock_pool(
            fetchall=[
                ("1", "Freedom", "6", "20", "Largo", "2026-10-18", ""),
                ("2", "Mondial", "1.1", "15", "Corto", "2026-10-18", None),
            ]
        )

        rows = await _store(pool).load_rows()

        assert rows[1] == ["2", "Mondial", "1.1", "15", "Corto", "2026-10-18", ""]
        assert all(isinstance(cell, str) for row in rows for cell in row)

    @pytest.mark.asyncio
    async def test_database_error(self) -> None:
        pool, cur = _mock_pool()
        cur.execute.side_effect = pg_errors.UndefinedTable("relation does not exist")

        with pytest.raises(StoreUnavailable):
            await _store(pool).load_rows()


def test_schema_qualified_table() -> None:
    store = PostgresRecordStore("intake.registros")
    assert store._identifier() == sql.Identifier("intake", "registros")
