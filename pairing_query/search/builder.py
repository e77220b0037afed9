"""Deterministic SQL builder for pairing searches.

The builder converts a `SearchSpec` into a parameterized SQL query. Identifiers (columns, operators,
sort directions) are strictly allowlisted; only values become bound parameters.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pairing_query.search.columns import (
    EFFICIENCY_EXPRESSION,
    FREE_TEXT_COLUMNS,
    IDENTIFIER_ORDER,
    RANGE_FILTER_COLUMNS,
    SORT_DIRECTIONS,
    SORT_EXPRESSIONS,
    TABLE,
)
from pairing_query.search.spec import SearchSpec


class SearchBuilderError(ValueError):
    """Raised when a search spec cannot be converted into deterministic SQL."""


@dataclass(frozen=True)
class BuiltQuery:
    """A parameterized SQL query ready for execution."""

    sql: str
    params: tuple[Any, ...]


def _where_and(clauses: list[str]) -> str:
    if not clauses:
        return ""
    return "WHERE " + " AND ".join(clauses)


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so the free-text term matches literally."""

    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _append_free_text(clauses: list[str], params: list[Any], term: str | None) -> None:
    if not term:
        return
    pattern = f"%{escape_like(term)}%"
    clauses.append("(" + " OR ".join(f"{col} ILIKE %s" for col in FREE_TEXT_COLUMNS) + ")")
    params.extend([pattern] * len(FREE_TEXT_COLUMNS))


def _append_ranges(clauses: list[str], params: list[Any], spec: SearchSpec) -> None:
    for name, (column, operator) in RANGE_FILTER_COLUMNS.items():
        value = getattr(spec, name)
        if value is None:
            continue
        clauses.append(f"{column} {operator} %s")
        params.append(value)

    if spec.efficiency is not None:
        clauses.append(f"{EFFICIENCY_EXPRESSION} >= %s")
        params.append(spec.efficiency)


def _order_by(spec: SearchSpec) -> str:
    if spec.sort_by is None:
        return f"ORDER BY {IDENTIFIER_ORDER}"

    try:
        expression = SORT_EXPRESSIONS[spec.sort_by]
        direction = SORT_DIRECTIONS[spec.sort_order]
    except KeyError as exc:
        raise SearchBuilderError(f"Unsupported sort: {spec.sort_by} {spec.sort_order}") from exc

    if expression is None:
        return f"ORDER BY {IDENTIFIER_ORDER}"
    return f"ORDER BY {expression} {direction}, {IDENTIFIER_ORDER}"


def build_search_query(spec: SearchSpec) -> BuiltQuery:
    """Build a row-returning SQL query + params from a search spec."""

    clauses: list[str] = ["p.bid_package_id = %s"]
    params: list[Any] = [spec.record_source_id]

    _append_free_text(clauses, params, spec.search)
    _append_ranges(clauses, params, spec)

    sql = f"SELECT p.* FROM {TABLE} {_where_and(clauses)} {_order_by(spec)}"
    return BuiltQuery(sql=sql, params=tuple(params))


def build_lookup_query(identifier: str, record_source_id: int) -> BuiltQuery:
    """Build an exact pairing-number lookup within one bid package."""

    if not identifier.strip():
        raise SearchBuilderError("identifier must not be empty")

    sql = (
        f"SELECT p.* FROM {TABLE} "
        "WHERE p.pairing_number = %s AND p.bid_package_id = %s "
        "LIMIT 1"
    )
    return BuiltQuery(sql=sql, params=(identifier.strip(), record_source_id))
