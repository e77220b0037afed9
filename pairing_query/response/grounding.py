"""Grounding checks for model-written answers.

An answer is grounded when every pairing identifier it cites belongs to the supplied records and
every number it states was shown to the model (the rendered record data or the user's question).
Bare numbers such as "8888" are covered by the number check.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from pairing_query.records import Record

_ID = r"\d{3,5}[A-Za-z]?"

# "Pairing 7892", "**Trip #7892**", "sequence no. 7892", "#7892", "7892A"
_CITED_PAIRING_RE = re.compile(
    rf"\b(?:pairings?|trips?|sequences?)\s*(?:#|no\.?\s*|number\s+)?\s*(?P<named>{_ID})\b"
    rf"|#(?P<hashed>{_ID})\b"
    r"|\b(?P<suffixed>\d{3,5}[A-Za-z])\b",
    flags=re.IGNORECASE,
)

_NUMBER_RE = re.compile(r"(?<![\w.])\d+(?:\.\d+)?")


def cited_identifiers(text: str) -> set[str]:
    """Pairing identifiers the text refers to."""

    return {
        (m.group("named") or m.group("hashed") or m.group("suffixed")).upper()
        for m in _CITED_PAIRING_RE.finditer(text or "")
    }


def ungrounded_identifiers(text: str, records: Iterable[Record]) -> set[str]:
    """Pairing identifiers cited in `text` that are not among `records`."""

    known = {record.pairing_number.upper() for record in records}
    return cited_identifiers(text) - known


def numeric_values(text: str) -> set[float]:
    """Every number written in `text` (`22`, `21.5`, the `80` of `80%`, both parts of `24:30`)."""

    return {float(token) for token in _NUMBER_RE.findall(text or "")}


def ungrounded_numbers(text: str, *sources: str) -> set[float]:
    """Numbers in `text` that appear in none of `sources`."""

    allowed: set[float] = set()
    for source in sources:
        allowed |= numeric_values(source)
    return numeric_values(text) - allowed
