"""Tests for per-connection session setup (no database needed)."""

from __future__ import annotations

import pytest

from pairing_query.db.pool import create_pool, session_configurator


class _FakeConnection:
    def __init__(self) -> None:
        self.autocommit = False
        self.statements: list[str] = []

    async def set_autocommit(self, value: bool) -> None:
        self.autocommit = value

    async def execute(self, sql: str) -> None:
        self.statements.append(sql)


@pytest.mark.asyncio
async def test_sessions_are_read_only_with_timeout() -> None:
    conn = _FakeConnection()

    await session_configurator(5000)(conn)  # type: ignore[arg-type]

    assert conn.autocommit is True
    assert conn.statements == [
        "SET default_transaction_read_only = on",
        "SET statement_timeout = 5000",
    ]


@pytest.mark.asyncio
async def test_statement_timeout_can_be_disabled() -> None:
    conn = _FakeConnection()

    await session_configurator(0)(conn)  # type: ignore[arg-type]

    assert conn.statements == ["SET default_transaction_read_only = on"]


@pytest.mark.asyncio
async def test_create_pool_uses_the_given_url_and_stays_closed() -> None:
    pool = create_pool("postgresql://reader@localhost/pairings", max_size=3)

    assert pool.conninfo == "postgresql://reader@localhost/pairings"
    assert pool.max_size == 3
    assert pool.closed


def test_create_pool_requires_a_database_url() -> None:
    with pytest.raises(TypeError):
        create_pool()  # type: ignore[call-arg]
