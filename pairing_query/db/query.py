"""Safe DB query helpers.

These helpers never interpolate user values into SQL; every value travels in `params`.
"""

from __future__ import annotations

from typing import Any, LiteralString, cast

from psycopg import AsyncConnection
from psycopg.rows import dict_row


async def fetch_all_dicts(
        conn: AsyncConnection,
        sql: str,
        params: tuple[Any, ...] = (),
) -> list[dict[str, Any]]:
    """Execute a query and return every row as a column-name → value dict.

    Contract:
        - Returns `[]` if the query yields no rows.
        - The query must be parameterized; all values are passed via `params`.
        - DB errors are not swallowed (caller decides how to handle them).
    """

    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(cast(LiteralString, sql), params)
        rows = await cur.fetchall()

    return list(rows)
