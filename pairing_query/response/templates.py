"""Deterministic response templates.

These never call the LLM. Every number they print is either a count or a value copied from the
records/filters they were given.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pairing_query.intent.schema import Filters
from pairing_query.records import Record

FALLBACK_TOP_N = 3


def format_value(value: Any) -> str:
    """Render a record value without float noise (`22.0` -> `22`, `1.375` -> `1.375`)."""

    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int | float):
        return f"{value:g}"
    return str(value)


def _pairings(count: int) -> str:
    return "pairing" if count == 1 else "pairings"


def summary_line(record: Record) -> str:
    return (
        f"Pairing {record.pairing_number} – {format_value(record.credit_hours)} credit hours, "
        f"{format_value(record.hold_probability)}% hold probability"
    )


def fallback_response(records: Sequence[Record]) -> str:
    """Answer used when the LLM is unavailable: count, top 3, truncation note."""

    count = len(records)
    if count == 0:
        return (
            "I found 0 pairings matching your criteria. "
            "Try adjusting your filters or broadening your search."
        )

    lines = [
        f"I found {count} {_pairings(count)} matching your criteria. Here are the top results:",
        "",
    ]
    for index, record in enumerate(records[:FALLBACK_TOP_N], start=1):
        lines.append(f"{index}. {summary_line(record)}")

    if count > FALLBACK_TOP_N:
        lines.append("")
        lines.append(f"...and {count - FALLBACK_TOP_N} more.")
    return "\n".join(lines)


def _relaxation_hints(active: dict[str, Any]) -> list[str]:
    hints: list[str] = []
    if "pairingNumber" in active:
        hints.append(f"Check that pairing {active['pairingNumber']} is in this bid package")
    if "pairingDays" in active:
        hints.append(f"Search for a different trip length than {active['pairingDays']} days")
    if "pairingDaysMin" in active or "pairingDaysMax" in active:
        hints.append("Widen the trip length range")
    if "creditMin" in active:
        hints.append(f"Lower the credit minimum (currently {format_value(active['creditMin'])})")
    if "creditMax" in active:
        hints.append(f"Raise the credit maximum (currently {format_value(active['creditMax'])})")
    if "blockMin" in active or "blockMax" in active:
        hints.append("Widen the block hours range")
    if "tafbMin" in active or "tafbMax" in active:
        hints.append("Widen the time-away-from-base range")
    if "holdProbabilityMin" in active:
        hints.append(
            "Lower the hold probability minimum "
            f"(currently {format_value(active['holdProbabilityMin'])}%)"
        )
    if "efficiency" in active:
        hints.append(f"Lower the efficiency minimum (currently {format_value(active['efficiency'])})")
    if "city" in active:
        hints.append(f"Try a different layover city than {active['city']}")
    hints.append("Remove some filters")
    return hints


def no_data_response(query: str, filters: Filters | dict[str, Any] | None) -> str:
    """Explain an empty result: the active filters and how to relax them."""

    if isinstance(filters, Filters):
        active = filters.active()
    else:
        active = {k: v for k, v in (filters or {}).items() if v is not None}

    response = f'I found 0 pairings matching your criteria for "{query}". '
    if not active:
        return (
            response
            + "Try adding specific criteria like trip length, credit hours, or hold probability."
        )

    lines = [response.rstrip(), "", "Active filters:"]
    lines.extend(f"{key}: {format_value(value)}" for key, value in active.items())
    lines.append("")
    lines.append("Try:")
    lines.extend(f"- {hint}" for hint in _relaxation_hints(active))
    return "\n".join(lines)


def not_found_response(identifier: str) -> str:
    return f"I couldn't find pairing {identifier} in the current bid package."


def describe_records(
        records: Sequence[Record],
        ranking_rationale: str | None = None,
        *,
        max_records: int = 100,
) -> str:
    """Describe the records for the response prompt (the only data the LLM may cite)."""

    shown = list(records[:max_records])
    lines = [f"PAIRING COUNT: {len(records)} pairings found", ""]

    if ranking_rationale:
        lines.extend(["RANKING LOGIC:", ranking_rationale, ""])

    lines.append(f"PAIRING DATA (top {len(shown)}):")
    for index, record in enumerate(shown, start=1):
        lines.append("")
        lines.append(f"{index}. Pairing {record.pairing_number}")
        lines.append(f"   Credit: {format_value(record.credit_hours)} hours")
        lines.append(f"   Block: {format_value(record.block_hours)} hours")
        if record.tafb is not None:
            lines.append(f"   TAFB: {format_value(record.tafb)}")
        lines.append(f"   Days: {record.pairing_days}")
        lines.append(f"   Hold Probability: {format_value(record.hold_probability)}%")

        route = record.payload("route")
        if route:
            lines.append(f"   Route: {route}")

        score = getattr(record, "score", None)
        if score is not None:
            lines.append(f"   Score: {score:.2f}")
        breakdown = getattr(record, "score_breakdown", None)
        if breakdown is not None:
            lines.append(
                f"   Score Breakdown: {breakdown.model_dump_json(by_alias=True, exclude_none=True)}"
            )

        if record.layovers:
            layovers = ", ".join(
                f"{layover.city} ({format_value(layover.duration)})" for layover in record.layovers
            )
            lines.append(f"   Layovers: {layovers}")

    if len(records) > len(shown):
        lines.append("")
        lines.append(f"... and {len(records) - len(shown)} more pairings")

    return "\n".join(lines)
