"""Deterministic ranking engine.

The engine decides the order of pairings; the LLM only explains it. Every function here is pure:
input records are never modified, and the same input always yields the same scores and order.

Ordering is a total order: descending score, then ascending pairing number, then original
position. Every input record appears exactly once in the output.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from pairing_query.intent.schema import RankingMode
from pairing_query.records import Record

CREDIT_WEIGHT = 0.4
DEFAULT_HOLD_WEIGHT = 0.3
JUNIOR_HOLD_WEIGHT = 0.4
SENIOR_HOLD_WEIGHT = 0.2
# Seniority percentiles above this are junior (less likely to hold popular pairings).
JUNIOR_PERCENTILE = 50

_MODE_SENTENCES: dict[RankingMode, str] = {
    RankingMode.credit: "Ranked by credit hours (highest pay first).",
    RankingMode.efficiency: "Ranked by credit/block ratio (most efficient use of flight time).",
    RankingMode.hold_probability: "Ranked by hold probability (most likely to be awarded first).",
    RankingMode.overall: (
        "Ranked by weighted composite score considering credit, efficiency, and hold probability.\n"
        "Weights are adjusted based on seniority level."
    ),
}


class _BreakdownModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class RankingWeights(_BreakdownModel):
    credit_weight: float
    efficiency_weight: float
    hold_weight: float


class NormalizedScores(_BreakdownModel):
    credit: float
    efficiency: float
    hold: float


class ScoreBreakdown(_BreakdownModel):
    """Why a record scored what it did; only the components of the active mode are set."""

    credit: float | None = None
    efficiency: float | None = None
    hold_probability: float | None = None
    max_layover_hours: float | None = None
    weights: RankingWeights | None = None
    normalized_scores: NormalizedScores | None = None


class RankedRecord(Record):
    """A record plus its score; built fresh for each ranking call."""

    score: float
    score_breakdown: ScoreBreakdown


@dataclass(frozen=True)
class NormalizationBounds:
    """Practical ceilings used to put credit and efficiency on a 0-100 scale."""

    credit_ceiling: float = 30.0
    efficiency_floor: float = 1.0
    efficiency_ceiling: float = 1.5

    def __post_init__(self) -> None:
        if self.credit_ceiling <= 0:
            raise ValueError("credit_ceiling must be positive")
        if self.efficiency_ceiling <= self.efficiency_floor:
            raise ValueError("efficiency_ceiling must be greater than efficiency_floor")

    def normalize_credit(self, credit: float) -> float:
        return min(max(credit / self.credit_ceiling * 100, 0.0), 100.0)

    def normalize_efficiency(self, efficiency: float) -> float:
        span = self.efficiency_ceiling - self.efficiency_floor
        return min(max((efficiency - self.efficiency_floor) / span * 100, 0.0), 100.0)


DEFAULT_BOUNDS = NormalizationBounds()


def hold_weight_for(seniority: float | None) -> float:
    """Junior pilots weight hold probability more; senior pilots can chase credit/efficiency."""

    if seniority is None:
        return DEFAULT_HOLD_WEIGHT
    if seniority > JUNIOR_PERCENTILE:
        return JUNIOR_HOLD_WEIGHT
    return SENIOR_HOLD_WEIGHT


def overall_weights(seniority: float | None) -> RankingWeights:
    hold_weight = hold_weight_for(seniority)
    return RankingWeights(
        credit_weight=CREDIT_WEIGHT,
        efficiency_weight=round(1 - CREDIT_WEIGHT - hold_weight, 6),
        hold_weight=hold_weight,
    )


def _score(
        record: Record,
        mode: RankingMode,
        seniority: float | None,
        bounds: NormalizationBounds,
) -> tuple[float, ScoreBreakdown]:
    credit = record.credit_hours
    efficiency = record.efficiency
    hold = record.hold_probability

    if mode == RankingMode.credit:
        return credit, ScoreBreakdown(credit=credit)

    if mode == RankingMode.efficiency:
        return efficiency, ScoreBreakdown(efficiency=round(efficiency, 3))

    if mode == RankingMode.hold_probability:
        return hold, ScoreBreakdown(hold_probability=hold)

    weights = overall_weights(seniority)
    normalized = NormalizedScores(
        credit=bounds.normalize_credit(credit),
        efficiency=bounds.normalize_efficiency(efficiency),
        hold=hold,
    )
    score = (
            normalized.credit * weights.credit_weight
            + normalized.efficiency * weights.efficiency_weight
            + normalized.hold * weights.hold_weight
    )
    breakdown = ScoreBreakdown(
        credit=credit,
        efficiency=round(efficiency, 3),
        hold_probability=hold,
        weights=weights,
        normalized_scores=NormalizedScores(
            credit=round(normalized.credit, 1),
            efficiency=round(normalized.efficiency, 1),
            hold=hold,
        ),
    )
    return score, breakdown


def _with_score(record: Record, score: float, breakdown: ScoreBreakdown) -> RankedRecord:
    return RankedRecord.model_validate(
        {**record.model_dump(), "score": score, "score_breakdown": breakdown}
    )


def _ordered(ranked: list[RankedRecord]) -> list[RankedRecord]:
    order = sorted(
        range(len(ranked)),
        key=lambda i: (-ranked[i].score, ranked[i].pairing_number, i),
    )
    return [ranked[i] for i in order]


def rank(
        records: Sequence[Record],
        mode: RankingMode | str,
        seniority: float | None = None,
        *,
        bounds: NormalizationBounds = DEFAULT_BOUNDS,
) -> list[RankedRecord]:
    """Score and order records by `mode` (highest score first).

    Args:
        records: Records to rank; none are dropped.
        mode: Any ranking mode except `none`.
        seniority: Seniority percentile (lower is more senior); only affects `overall`.
        bounds: Normalization ceilings for the `overall` composite.
    """

    mode = RankingMode(mode)
    if mode == RankingMode.none:
        raise ValueError("ranking mode 'none' has no score")

    ranked = [_with_score(r, *_score(r, mode, seniority, bounds)) for r in records]
    return _ordered(ranked)


def rank_by_longest_layover(records: Sequence[Record], limit: int | None = 10) -> list[RankedRecord]:
    """Rank records by their longest layover (hours), for "best layover" questions."""

    ranked = [
        _with_score(r, r.max_layover_hours, ScoreBreakdown(max_layover_hours=r.max_layover_hours))
        for r in records
    ]
    ordered = _ordered(ranked)
    return ordered if limit is None else ordered[:limit]


def _rationale(
        criteria: str,
        ranked: Sequence[RankedRecord],
        limit: int,
        sentence: str | None,
) -> str:
    top = list(ranked[:limit])

    lines = [f"Ranking Criteria: {criteria}", "", f"Top {len(top)} pairings by score:", ""]
    for index, record in enumerate(top, start=1):
        breakdown = record.score_breakdown.model_dump(by_alias=True, exclude_none=True)
        lines.append(f"{index}. Pairing {record.pairing_number}")
        lines.append(f"   Score: {record.score:.2f}")
        lines.append(f"   Breakdown: {json.dumps(breakdown, sort_keys=True)}")
        lines.append("")

    if sentence:
        lines.append(sentence)
    return "\n".join(lines)


def explain_ranking(
        ranked: Sequence[RankedRecord],
        mode: RankingMode | str,
        limit: int = 10,
) -> str:
    """Render a ranking rationale for the response generator."""

    mode = RankingMode(mode)
    return _rationale(mode.value, ranked, limit, _MODE_SENTENCES.get(mode))


def explain_layover_ranking(ranked: Sequence[RankedRecord], limit: int = 10) -> str:
    return _rationale(
        "longest_layover",
        ranked,
        limit,
        "Ranked by longest single layover in hours (more rest time first).",
    )
