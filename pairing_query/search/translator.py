"""Intent → search spec translation.

Pure and total: the same intent always produces the same spec, and every valid intent produces one.
"""

from __future__ import annotations

from pairing_query.intent.schema import Filters, Intent, RankingMode
from pairing_query.search.spec import SearchSpec, SortKey

# Filter fields that map 1:1 onto search spec fields.
_DIRECT_FIELDS: tuple[str, ...] = (
    "pairing_days",
    "pairing_days_min",
    "pairing_days_max",
    "credit_min",
    "credit_max",
    "block_min",
    "block_max",
    "tafb_min",
    "tafb_max",
    "hold_probability_min",
    "efficiency",
)

_SORT_BY_RANKING: dict[RankingMode, SortKey] = {
    RankingMode.credit: SortKey.credit_hours,
    RankingMode.efficiency: SortKey.credit_block_ratio,
    RankingMode.hold_probability: SortKey.hold_probability,
    RankingMode.overall: SortKey.overall,
}


def free_text_term(filters: Filters) -> str | None:
    """Pairing number and city share the store's single full-text field; the number wins."""

    return filters.pairing_number or filters.city


def to_search_spec(intent: Intent, *, record_source_id: int) -> SearchSpec:
    """Translate a validated intent into the canonical search spec."""

    filters = intent.filters
    fields = {
        name: getattr(filters, name)
        for name in _DIRECT_FIELDS
        if getattr(filters, name) is not None
    }

    sort_by = _SORT_BY_RANKING.get(intent.ranking)
    return SearchSpec(
        record_source_id=record_source_id,
        search=free_text_term(filters),
        sort_by=sort_by,
        sort_order="desc",
        **fields,
    )
