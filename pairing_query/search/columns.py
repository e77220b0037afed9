"""Allowlisted SQL identifiers for the `pairings` table.

All column expressions referenced in generated SQL must come from these mappings; no user-provided
identifier is ever interpolated into SQL.
"""

from __future__ import annotations

from pairing_query.search.spec import SortKey, SortOrder

TABLE = "pairings p"

# TAFB is free text ("100.53" decimal hours, or placeholders such as "0d 00:00"); only plain
# decimal values take part in TAFB bounds, anything else is unknown and never matches.
_TAFB_HOURS = r"CASE WHEN p.tafb ~ '^\d+(\.\d+)?$' THEN CAST(p.tafb AS numeric) END"

# Search spec field -> (column expression, operator).
RANGE_FILTER_COLUMNS: dict[str, tuple[str, str]] = {
    "pairing_days": ("p.pairing_days", "="),
    "pairing_days_min": ("p.pairing_days", ">="),
    "pairing_days_max": ("p.pairing_days", "<="),
    "credit_min": ("p.credit_hours", ">="),
    "credit_max": ("p.credit_hours", "<="),
    "block_min": ("p.block_hours", ">="),
    "block_max": ("p.block_hours", "<="),
    "tafb_min": (_TAFB_HOURS, ">="),
    "tafb_max": (_TAFB_HOURS, "<="),
    "hold_probability_min": ("COALESCE(p.hold_probability, 0)", ">="),
}

EFFICIENCY_EXPRESSION = "CASE WHEN p.block_hours > 0 THEN p.credit_hours / p.block_hours ELSE 0 END"

FREE_TEXT_COLUMNS: tuple[str, ...] = (
    "p.pairing_number",
    "p.route",
    "p.effective_dates",
    "p.full_text_block",
)

# `None` leaves the order to the ranking engine (identifier order only).
SORT_EXPRESSIONS: dict[SortKey, str | None] = {
    SortKey.credit_hours: "p.credit_hours",
    SortKey.credit_block_ratio: EFFICIENCY_EXPRESSION,
    SortKey.hold_probability: "COALESCE(p.hold_probability, 0)",
    SortKey.overall: None,
}

SORT_DIRECTIONS: dict[SortOrder, str] = {
    "asc": "ASC",
    "desc": "DESC",
}

IDENTIFIER_ORDER = "p.pairing_number ASC"
