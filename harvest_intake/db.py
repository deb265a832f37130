"""
Harvest Intake - Database Layer

Async PostgreSQL connection pool (psycopg3 + psycopg_pool) for the relational
sink. Opened once from the app lifespan; a database that is missing or down
leaves the pool unset so the spreadsheet sink keeps working and the
relational sink answers StoreUnavailable per request.
"""

from __future__ import annotations

import asyncio
import sys
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

from loguru import logger
from psycopg_pool import AsyncConnectionPool

from . import __version__
from .config import Settings

# psycopg3 async connections are incompatible with the Proactor loop
if sys.platform.startswith("win"):
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

POOL_MIN_SIZE = 1
POOL_MAX_SIZE = 5


@dataclass
class PoolStatus:
    """What /api/health reports about the relational sink."""

    ready: bool = False
    error: str | None = None
    open_ms: float | None = None


_status = PoolStatus()
_pool: Optional[AsyncConnectionPool] = None


def get_pool_status() -> PoolStatus:
    return _status


def describe_dsn(dsn: str) -> str:
    """user@host:port/dbname for log lines; the password never appears."""
    try:
        url = urlparse(dsn)
        port = url.port or 5432
    except ValueError:
        return "<unparseable DSN>"
    return f"{url.username or '?'}@{url.hostname or '?'}:{port}/{url.path.lstrip('/') or '?'}"


async def _check_connection(pool: AsyncConnectionPool) -> None:
    async with pool.connection() as conn:
        cur = await conn.execute("SELECT 1")
        row = await cur.fetchone()
    if not row or row[0] != 1:
        raise RuntimeError(f"unexpected SELECT 1 result {row!r}")


async def init_db_pool(settings: Settings) -> None:
    """
    Open the pool and check it with SELECT 1. Never raises.

    Called once from the app lifespan with the app's settings. No retry: if
    this fails the relational sink stays down until restart.
    """
    global _pool

    if _pool is not None:
        return

    if not settings.DATABASE_URL:
        logger.info("DATABASE_URL is not set; relational sink disabled")
        _status.error = "DATABASE_URL not configured"
        return

    logger.info(f"Opening database pool to {describe_dsn(settings.DATABASE_URL)}")
    started = time.monotonic()
    pool = AsyncConnectionPool(
        settings.DATABASE_URL,
        min_size=POOL_MIN_SIZE,
        max_size=POOL_MAX_SIZE,
        kwargs={"application_name": f"harvest_intake_v{__version__.replace('.', '_')}"},
        open=False,
    )
    try:
        await pool.open()
        await _check_connection(pool)
    except Exception as e:
        await pool.close()
        _status.ready = False
        _status.error = f"{type(e).__name__}: {str(e)[:200]}"
        logger.error(f"❌ Database pool unavailable: {_status.error}")
        return

    _pool = pool
    _status.ready = True
    _status.error = None
    _status.open_ms = (time.monotonic() - started) * 1000
    logger.info(f"✅ Database pool ready ({_status.open_ms:.0f}ms)")


async def close_db_pool() -> None:
    global _pool
    if _pool is None:
        return
    logger.info("Closing database pool")
    await _pool.close()
    _pool = None
    _status.ready = False


async def get_pool() -> Optional[AsyncConnectionPool]:
    """
    The pool opened by init_db_pool(), or None.

    Never opens a pool itself: after a failed startup every request gets
    None (and StoreUnavailable) at once instead of waiting on a dead host.
    """
    return _pool
