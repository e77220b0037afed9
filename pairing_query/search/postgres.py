"""Postgres implementation of the record search interface."""

from __future__ import annotations

import logging

import psycopg
from psycopg_pool import AsyncConnectionPool

from pairing_query.db.pool import get_conn
from pairing_query.db.query import fetch_all_dicts
from pairing_query.records import Record
from pairing_query.search.builder import (
    BuiltQuery,
    SearchBuilderError,
    build_lookup_query,
    build_search_query,
)
from pairing_query.search.interface import SearchError
from pairing_query.search.spec import SearchSpec

logger = logging.getLogger(__name__)


class PostgresRecordSearch:
    """`RecordSearch` over the `pairings` table.

    Driver failures, unbuildable specs and rows that do not validate as `Record` are all reported
    as `SearchError`; the caller never sees partial results.
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def _fetch(self, built: BuiltQuery) -> list[Record]:
        try:
            async with get_conn(self._pool) as conn:
                rows = await fetch_all_dicts(conn, built.sql, built.params)
        except psycopg.Error as exc:
            raise SearchError("pairing query failed") from exc

        try:
            return [Record.model_validate(row) for row in rows]
        except ValueError as exc:
            raise SearchError("pairing row failed validation") from exc

    async def search(self, spec: SearchSpec) -> list[Record]:
        try:
            built = build_search_query(spec)
        except SearchBuilderError as exc:
            raise SearchError(str(exc)) from exc

        records = await self._fetch(built)
        logger.debug("search source=%s rows=%d", spec.record_source_id, len(records))
        return records

    async def get_by_identifier(self, identifier: str, record_source_id: int) -> Record | None:
        try:
            built = build_lookup_query(identifier, record_source_id)
        except SearchBuilderError as exc:
            raise SearchError(str(exc)) from exc

        records = await self._fetch(built)
        return records[0] if records else None
