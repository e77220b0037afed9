"""Async Postgres connection pool.

Record lookups use an async pool (psycopg3). The pipeline never writes: every connection is handed
out in autocommit mode with read-only transactions and, optionally, a server-side statement timeout.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from typing import AsyncIterator

from psycopg import AsyncConnection
from psycopg_pool import AsyncConnectionPool


def session_configurator(
        statement_timeout_ms: int | None = None,
) -> Callable[[AsyncConnection], Awaitable[None]]:
    """Build the per-connection setup hook used by the pool."""

    async def _configure(conn: AsyncConnection) -> None:
        await conn.set_autocommit(True)
        await conn.execute("SET default_transaction_read_only = on")
        if statement_timeout_ms:
            # SET cannot take bind parameters; the value is an int we control.
            await conn.execute(f"SET statement_timeout = {int(statement_timeout_ms)}")

    return _configure


def create_pool(
        database_url: str,
        *,
        min_size: int = 1,
        max_size: int | None = None,
        timeout: float = 30.0,
        statement_timeout_ms: int | None = None,
) -> AsyncConnectionPool:
    """Create an async DB pool.

    Notes:
        - The returned pool is created with `open=False`. Call `await pool.open()` at startup.
        - `statement_timeout_ms` bounds each search on the server; `None` or `0` disables it.
    """

    return AsyncConnectionPool(
        conninfo=database_url,
        min_size=min_size,
        max_size=max_size,
        timeout=timeout,
        open=False,
        configure=session_configurator(statement_timeout_ms),
    )


@asynccontextmanager
async def get_conn(pool: AsyncConnectionPool) -> AsyncIterator[AsyncConnection]:
    """Acquire a read-only connection from the pool."""

    async with pool.connection() as conn:
        yield conn
