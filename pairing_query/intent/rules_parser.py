"""Rules-based English intent pre-pass.

This parser is intentionally strict and deterministic:
    - it only recognizes the literal phrases from `dictionaries`,
    - every content word must be accounted for, otherwise the query is left to the LLM,
    - it produces an Intent validated by the Pydantic schema.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any

from pairing_query.intent.dictionaries import (
    BOUND_FIELDS,
    BOUND_METRIC_TERM_TO_METRIC,
    COMPARATOR_PHRASE_TO_OP,
    FILLER_WORDS,
    INTEGER_METRICS,
    KNOWN_CITY_TERMS,
    NUMBER_WORDS,
    PHRASE_RULES,
    city_code,
    parse_number,
)
from pairing_query.intent.normalize import normalize_text
from pairing_query.intent.schema import Filters, Intent, RankingMode


class RulesParserError(ValueError):
    """Raised when the rules parser cannot produce a confident intent."""


def _alternation(terms: list[str] | tuple[str, ...]) -> str:
    ordered = sorted(terms, key=lambda t: (-len(t), t))
    return "|".join(re.escape(t) for t in ordered)


_NUMBER = rf"(?:\d+(?:\.\d+)?|{_alternation(tuple(NUMBER_WORDS))})"
_COMPARATORS = _alternation(tuple(COMPARATOR_PHRASE_TO_OP))
_METRICS = _alternation(tuple(BOUND_METRIC_TERM_TO_METRIC))
_UNITS = r"(?:hours|hour|hrs|hr|h|percent|pct)"
_CITIES = _alternation(KNOWN_CITY_TERMS)

_PAIRING_NUMBER_RE = re.compile(
    r"\b(?:pairing|trip|sequence)\s+(?:number\s+|no\s+)?(?P<id>\d{3,5}[a-z]?)\b"
)

# "credit over 20 hours", "hold at least 70"
_METRIC_FIRST_BOUND_RE = re.compile(
    rf"\b(?P<metric>{_METRICS})\s+(?:is\s+|of\s+)?(?P<comp>{_COMPARATORS})\s+"
    rf"(?P<value>{_NUMBER})(?:\s+{_UNITS})?\b"
)

# "more than 20 credit hours", "at least 4 days", "under 60 hours of tafb"
_VALUE_FIRST_BOUND_RE = re.compile(
    rf"\b(?P<comp>{_COMPARATORS})\s+(?P<value>{_NUMBER})\s+(?:{_UNITS}\s+)?(?:of\s+)?"
    rf"(?P<metric>{_METRICS})\b"
)

_LIMIT_RE = re.compile(rf"\b(?:top|best)\s+(?P<n>{_NUMBER})\b(?!\s+days?\b)")

_DAY_COUNT_RE = re.compile(rf"\b(?P<n>{_NUMBER})\s+days?\b")

_CITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"\b(?:layovers?|overnights?)\s+(?:in|at)\s+(?P<city>{_CITIES})\b"),
    re.compile(rf"\b(?P<city>{_CITIES})\s+(?:layovers?|overnights?)\b"),
    re.compile(rf"\b(?:to|in|into|through|via)\s+(?P<city>{_CITIES})\b"),
)


@dataclass
class _ParseState:
    """Mutable scratch space for one parse; matched spans are blanked out of `remaining`."""

    remaining: str
    filters: dict[str, Any] = field(default_factory=dict)
    rankings: set[RankingMode] = field(default_factory=set)
    limit: int | None = None

    def set_filter(self, name: str, value: Any) -> None:
        current = self.filters.get(name)
        if current is not None and current != value:
            raise RulesParserError(f"conflicting values for {name}: {current} vs {value}")
        self.filters[name] = value

    def consume(self, pattern: re.Pattern[str], handle: Any) -> None:
        def _blank(match: re.Match[str]) -> str:
            handle(match)
            return " "

        self.remaining = pattern.sub(_blank, self.remaining)


def _number(token: str) -> float:
    value = parse_number(token)
    if value is None:
        raise RulesParserError(f"not a number: {token}")
    return value


def _bound(state: _ParseState, match: re.Match[str]) -> None:
    metric = BOUND_METRIC_TERM_TO_METRIC[match.group("metric")]
    op = COMPARATOR_PHRASE_TO_OP[match.group("comp")]
    value = _number(match.group("value"))

    lower_field, upper_field = BOUND_FIELDS[metric]
    is_lower = op in {">", ">="}
    target = lower_field if is_lower else upper_field
    if target is None:
        raise RulesParserError(f"unsupported bound {op} for {metric}")

    if metric in INTEGER_METRICS:
        state.set_filter(target, _integer_bound(op, value))
    else:
        state.set_filter(target, value)


def _integer_bound(op: str, value: float) -> int:
    """Tightest whole-number bound equivalent to `op value` (e.g. "< 3.5" is "<= 3")."""

    if op == ">=":
        return math.ceil(value)
    if op == ">":
        return math.floor(value) + 1
    if op == "<":
        return math.ceil(value) - 1
    return math.floor(value)


def _whole(token: str) -> int:
    value = _number(token)
    if not value.is_integer():
        raise RulesParserError(f"not a whole number: {token}")
    return int(value)


def _pairing_number(state: _ParseState, match: re.Match[str]) -> None:
    state.set_filter("pairing_number", match.group("id").upper())


def _limit(state: _ParseState, match: re.Match[str]) -> None:
    count = _whole(match.group("n"))
    if state.limit is not None and state.limit != count:
        raise RulesParserError("conflicting result limits")
    state.limit = count
    state.rankings.add(RankingMode.overall)


def _day_count(state: _ParseState, match: re.Match[str]) -> None:
    state.set_filter("pairing_days", _whole(match.group("n")))


def _city(state: _ParseState, match: re.Match[str]) -> None:
    state.set_filter("city", city_code(match.group("city")))


def _consume_phrases(state: _ParseState) -> None:
    for rule in PHRASE_RULES:
        needle = f" {rule.phrase} "
        padded = f" {state.remaining} "
        if needle not in padded:
            continue
        state.remaining = padded.replace(needle, " ")
        for name, value in rule.filters.items():
            state.set_filter(name, value)
        if rule.ranking is not None:
            state.rankings.add(rule.ranking)


def _resolve_ranking(rankings: set[RankingMode]) -> RankingMode:
    """An explicit ranking wins over the generic "best/top" → overall."""

    specific = rankings - {RankingMode.overall}
    if len(specific) > 1:
        raise RulesParserError("conflicting ranking phrases")
    if specific:
        return next(iter(specific))
    if RankingMode.overall in rankings:
        return RankingMode.overall
    return RankingMode.none


def parse_intent(text: str) -> Intent:
    """Parse normalized English text into a confident Intent or raise `RulesParserError`."""

    normalized = normalize_text(text)
    if not normalized:
        raise RulesParserError("empty query")

    state = _ParseState(remaining=f" {normalized} ")

    state.consume(_PAIRING_NUMBER_RE, lambda m: _pairing_number(state, m))
    state.consume(_METRIC_FIRST_BOUND_RE, lambda m: _bound(state, m))
    state.consume(_VALUE_FIRST_BOUND_RE, lambda m: _bound(state, m))
    state.consume(_LIMIT_RE, lambda m: _limit(state, m))
    state.consume(_DAY_COUNT_RE, lambda m: _day_count(state, m))
    for pattern in _CITY_PATTERNS:
        state.consume(pattern, lambda m: _city(state, m))
    _consume_phrases(state)

    leftover = [t for t in state.remaining.split() if t not in FILLER_WORDS]
    if leftover:
        raise RulesParserError(f"unrecognized terms: {' '.join(leftover)}")

    try:
        intent = Intent(
            filters=Filters(**state.filters),
            ranking=_resolve_ranking(state.rankings),
            limit=state.limit,
        )
    except ValueError as exc:
        raise RulesParserError(str(exc)) from exc

    if not intent.has_criteria():
        raise RulesParserError("no filter or ranking recognized")
    return intent
