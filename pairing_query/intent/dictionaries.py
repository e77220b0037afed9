"""English dictionaries for pairing filters, rankings and comparators.

These mappings are used by the rules pre-pass and mirror the synonym table in the LLM prompt, so a
phrase resolves to the same filter whichever parser handles it. Keep them small and deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from pairing_query.intent.schema import RankingMode

Comparator = Literal[">", ">=", "<", "<="]

NUMBER_WORDS: dict[str, int] = {
    "one": 1,
    "two": 2,
    "three": 3,
    "four": 4,
    "five": 5,
    "six": 6,
    "seven": 7,
    "eight": 8,
    "nine": 9,
    "ten": 10,
}

# Thresholds behind the qualitative words; changing them changes query results.
HIGH_CREDIT_MIN = 18.0
LOW_CREDIT_MAX = 15.0
HOLD_LIKELY = 70.0
HOLD_POSSIBLE = 30.0
HOLD_GUARANTEED = 90.0
HOLD_MAYBE = 50.0

_TRIP_NOUNS: tuple[str, ...] = ("trip", "trips", "pairing", "pairings")


@dataclass(frozen=True)
class PhraseRule:
    """A literal phrase resolved to filters and/or a ranking mode."""

    phrase: str
    filters: dict[str, Any] = field(default_factory=dict)
    ranking: RankingMode | None = None


def _trip_phrases(*adjectives: str) -> tuple[str, ...]:
    return tuple(f"{adj} {noun}" for adj in adjectives for noun in _TRIP_NOUNS)


DURATION_PHRASES: dict[str, dict[str, int]] = {
    "quad": {"pairing_days": 4},
    "quads": {"pairing_days": 4},
    "turn": {"pairing_days": 1},
    "turns": {"pairing_days": 1},
    "day trip": {"pairing_days": 1},
    "day trips": {"pairing_days": 1},
    **{p: {"pairing_days": 1} for p in _trip_phrases("quick")},
    **{p: {"pairing_days_max": 2} for p in _trip_phrases("short")},
    **{p: {"pairing_days_min": 4} for p in _trip_phrases("long", "extended")},
}

CREDIT_PHRASES: dict[str, dict[str, float]] = {
    **{
        p: {"credit_min": HIGH_CREDIT_MIN}
        for p in ("high credit", "good pay", "great pay", "high pay", "maximum pay", "max pay")
    },
    **{p: {"credit_max": LOW_CREDIT_MAX} for p in ("low credit", "low pay", "minimum pay")},
}

HOLD_PHRASES: dict[str, float] = {
    "senior friendly": HOLD_LIKELY,
    "senior pilot": HOLD_LIKELY,
    "senior pilots": HOLD_LIKELY,
    "likely to hold": HOLD_LIKELY,
    "high hold": HOLD_LIKELY,
    "junior friendly": HOLD_POSSIBLE,
    "junior pilot": HOLD_POSSIBLE,
    "junior pilots": HOLD_POSSIBLE,
    "possible to get": HOLD_POSSIBLE,
    "guaranteed": HOLD_GUARANTEED,
    "sure thing": HOLD_GUARANTEED,
    "definitely hold": HOLD_GUARANTEED,
    "may hold": HOLD_MAYBE,
}

RANKING_SYNONYMS: dict[RankingMode, tuple[str, ...]] = {
    RankingMode.credit: (
        "best pay",
        "highest credit",
        "highest pay",
        "most credit",
        "top pay",
        "most money",
    ),
    RankingMode.efficiency: (
        "most efficient",
        "efficient",
        "efficiency",
        "good ratio",
        "best ratio",
        "credit to block ratio",
        "credit to block",
        "c/b ratio",
        "c/b",
    ),
    RankingMode.hold_probability: (
        "most likely to hold",
        "highest hold probability",
        "best hold",
        "best chance",
    ),
    RankingMode.overall: ("best overall", "best", "top"),
}

PHRASE_RULES: list[PhraseRule] = sorted(
    [
        *(PhraseRule(phrase=p, filters=f) for p, f in DURATION_PHRASES.items()),
        *(PhraseRule(phrase=p, filters=f) for p, f in CREDIT_PHRASES.items()),
        *(
            PhraseRule(phrase=p, filters={"hold_probability_min": v})
            for p, v in HOLD_PHRASES.items()
        ),
        *(
            PhraseRule(phrase=p, ranking=mode)
            for mode, phrases in RANKING_SYNONYMS.items()
            for p in phrases
        ),
    ],
    key=lambda r: (-len(r.phrase), r.phrase),
)

COMPARATOR_SYNONYMS: dict[Comparator, tuple[str, ...]] = {
    ">": ("more than", "greater than", "higher than", "longer than", "over", "above"),
    ">=": ("at least", "no less than", "minimum of", "min"),
    "<": ("less than", "fewer than", "lower than", "shorter than", "under", "below"),
    "<=": ("at most", "no more than", "maximum of", "up to", "max"),
}

COMPARATOR_PHRASE_TO_OP: dict[str, Comparator] = {
    phrase: op for op, phrases in COMPARATOR_SYNONYMS.items() for phrase in phrases
}

# Metric synonyms for numeric bounds ("credit over 20", "at least 4 days").
BOUND_METRIC_SYNONYMS: dict[str, tuple[str, ...]] = {
    "credit": ("credit hours", "credit", "pay"),
    "block": ("block hours", "block time", "flight time", "block"),
    "tafb": ("time away from base", "time away", "tafb"),
    "hold_probability": ("hold probability", "hold chance", "hold"),
    "efficiency": ("credit to block ratio", "c/b ratio", "efficiency", "ratio"),
    "pairing_days": ("days", "day"),
}

BOUND_METRIC_TERM_TO_METRIC: dict[str, str] = {
    term: metric for metric, terms in BOUND_METRIC_SYNONYMS.items() for term in terms
}

# Filter field for (metric, lower/upper bound); `None` means the bound is unsupported.
BOUND_FIELDS: dict[str, tuple[str | None, str | None]] = {
    "credit": ("credit_min", "credit_max"),
    "block": ("block_min", "block_max"),
    "tafb": ("tafb_min", "tafb_max"),
    "hold_probability": ("hold_probability_min", None),
    "efficiency": ("efficiency", None),
    "pairing_days": ("pairing_days_min", "pairing_days_max"),
}

INTEGER_METRICS: frozenset[str] = frozenset({"pairing_days"})

CITY_CODES: dict[str, str] = {
    "atlanta": "ATL",
    "boston": "BOS",
    "denver": "DEN",
    "detroit": "DTW",
    "honolulu": "HNL",
    "las vegas": "LAS",
    "los angeles": "LAX",
    "miami": "MIA",
    "minneapolis": "MSP",
    "orlando": "MCO",
    "phoenix": "PHX",
    "portland": "PDX",
    "salt lake city": "SLC",
    "san diego": "SAN",
    "san francisco": "SFO",
    "santa barbara": "SBA",
    "seattle": "SEA",
}

KNOWN_CITY_TERMS: tuple[str, ...] = tuple(
    sorted(
        {*CITY_CODES, *(code.lower() for code in CITY_CODES.values())},
        key=lambda term: (-len(term), term),
    )
)

# Words that carry no filter meaning on their own. Referential words ("that", "same", "those")
# are deliberately absent so such queries reach the LLM.
FILLER_WORDS: frozenset[str] = frozenset(
    {
        "a",
        "about",
        "all",
        "an",
        "and",
        "any",
        "are",
        "available",
        "bid",
        "can",
        "could",
        "details",
        "find",
        "for",
        "get",
        "give",
        "have",
        "hours",
        "i",
        "in",
        "info",
        "is",
        "layover",
        "layovers",
        "list",
        "looking",
        "me",
        "my",
        "need",
        "of",
        "on",
        "ones",
        "options",
        "or",
        "package",
        "pairing",
        "pairings",
        "please",
        "sequence",
        "sequences",
        "show",
        "some",
        "tell",
        "the",
        "there",
        "trip",
        "trips",
        "want",
        "what",
        "which",
        "with",
        "you",
    }
)


def parse_number(token: str) -> float | None:
    """Parse a digit string or an English number word ("four")."""

    if token in NUMBER_WORDS:
        return float(NUMBER_WORDS[token])
    try:
        return float(token)
    except ValueError:
        return None


def city_code(term: str) -> str:
    """Resolve a city name or airport code to an upper-case airport code."""

    return CITY_CODES.get(term, term.upper())

