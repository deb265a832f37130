"""
Harvest Intake - Postgres Store

Relational registration table. Inserts use ON CONFLICT DO NOTHING: a row
rejected by whatever uniqueness constraint the table carries is dropped
silently and the write still counts as done.

bloque is a numeric column here (the spreadsheet keeps the raw text), and
fecha a date column; values that do not convert are rejected before any I/O.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Awaitable, Callable, Optional

import psycopg
from loguru import logger
from psycopg import sql
from psycopg_pool import AsyncConnectionPool

from ..core.errors import InvalidField, StoreUnavailable
from ..db import get_pool
from ..models import RawRow, RegistrationRecord

PoolGetter = Callable[[], Awaitable[Optional[AsyncConnectionPool]]]

COLUMNS = ("id", "variedad", "bloque", "tallos", "tamano", "fecha", "etapa")


def to_decimal_bloque(bloque: str) -> Decimal:
    """Convert a block label to the numeric column value ("1.1" -> Decimal("1.1"))."""
    try:
        value = Decimal(bloque.strip())
    except InvalidOperation as e:
        raise InvalidField("bloque", f"{bloque!r} no es un número de bloque") from e
    if not value.is_finite():
        raise InvalidField("bloque", f"{bloque!r} no es un número de bloque")
    return value


def to_date(fecha: str) -> date:
    try:
        return date.fromisoformat(fecha.strip())
    except ValueError as e:
        raise InvalidField("fecha", f"{fecha!r} no tiene formato AAAA-MM-DD") from e


class PostgresRecordStore:
    """Registration rows in a Postgres table (see sql/registros_flores.sql)."""

    name = "postgres"

    def __init__(self, table: str = "registros_flores", pool_getter: PoolGetter = get_pool):
        self._table = table
        self._pool_getter = pool_getter

    def _identifier(self) -> sql.Identifier:
        # schema-qualified names ("intake.registros") are split on the dot
        return sql.Identifier(*self._table.split("."))

    async def _pool(self) -> AsyncConnectionPool:
        pool = await self._pool_getter()
        if pool is None:
            raise StoreUnavailable("La base de datos no está disponible", store=self.name)
        return pool

    async def load_rows(self) -> list[RawRow]:
        query = sql.SQL(
            "SELECT id::text, variedad, bloque::text, tallos::text, tamano, "
            "fecha::text, coalesce(etapa, '') FROM {} ORDER BY fecha, id"
        ).format(self._identifier())

        pool = await self._pool()
        try:
            async with pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query)
                    rows = await cur.fetchall()
        except psycopg.Error as e:
            logger.error(f"Failed to read {self._table}: {type(e).__name__}: {e}")
            raise StoreUnavailable(f"No se pudo leer la base de datos: {e}", store=self.name) from e

        logger.info(f"Read {len(rows)} rows from {self._table}")
        return [[cell if cell is not None else "" for cell in row] for row in rows]

    async def append(self, record: RegistrationRecord) -> RawRow:
        bloque = to_decimal_bloque(record.bloque)
        fecha = to_date(record.fecha)

        query = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({values}) "
            "ON CONFLICT DO NOTHING RETURNING id"
        ).format(
            table=self._identifier(),
            columns=sql.SQL(", ").join(sql.Identifier(c) for c in COLUMNS),
            values=sql.SQL(", ").join(sql.Placeholder() * len(COLUMNS)),
        )
        params = (
            record.id,
            record.variedad,
            bloque,
            record.tallos,
            record.tamano,
            fecha,
            record.etapa,
        )

        pool = await self._pool()
        try:
            async with pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(query, params)
                    inserted = await cur.fetchone()
        except psycopg.Error as e:
            logger.error(f"Failed to insert into {self._table}: {type(e).__name__}: {e}")
            raise StoreUnavailable(
                f"No se pudo escribir en la base de datos: {e}", store=self.name
            ) from e

        if inserted is None:
            logger.warning(f"Insert into {self._table} ignored by conflict: {params}")
        else:
            logger.info(f"Row written to {self._table}: id={record.id}")

        return [
            record.id,
            record.variedad,
            str(bloque),
            str(record.tallos),
            record.tamano,
            fecha.isoformat(),
            record.etapa or "",
        ]
