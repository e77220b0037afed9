"""Tests for the strict Intent Pydantic schema and its cross-field invariants."""

from __future__ import annotations

import pytest

from pairing_query.intent.schema import (
    DEFAULT_CLARIFICATION_QUESTION,
    Filters,
    Intent,
    RankingMode,
    clarification_intent,
    intent_from_obj,
)


def test_intent_from_wire_json() -> None:
    intent = intent_from_obj(
        {
            "filters": {"pairingDays": 4, "creditMin": 18, "city": "lax"},
            "ranking": "efficiency",
            "limit": 5,
            "needsClarification": False,
        }
    )
    assert intent.filters.pairing_days == 4
    assert intent.filters.credit_min == 18
    assert intent.filters.city == "LAX"
    assert intent.ranking == RankingMode.efficiency
    assert intent.limit == 5
    assert intent.has_criteria()


def test_null_ranking_means_none() -> None:
    intent = intent_from_obj({"filters": {"pairingDays": 1}, "ranking": None})
    assert intent.ranking == RankingMode.none


def test_unknown_filter_key_is_rejected() -> None:
    with pytest.raises(ValueError):
        intent_from_obj({"filters": {"layoverLength": 24}})


def test_unknown_ranking_is_rejected() -> None:
    with pytest.raises(ValueError):
        intent_from_obj({"filters": {}, "ranking": "cheapest"})


def test_clarification_requires_question() -> None:
    with pytest.raises(ValueError):
        Intent(needs_clarification=True)


def test_question_only_allowed_with_clarification() -> None:
    with pytest.raises(ValueError):
        Intent(filters=Filters(pairing_days=3), clarification_question="Which days?")


def test_min_above_max_is_rejected() -> None:
    with pytest.raises(ValueError):
        Filters(credit_min=20, credit_max=15)

    with pytest.raises(ValueError):
        Filters(pairing_days_min=5, pairing_days_max=2)


@pytest.mark.parametrize("value", [-1, 101])
def test_hold_probability_range(value: float) -> None:
    with pytest.raises(ValueError):
        Filters(hold_probability_min=value)


def test_limit_must_be_positive() -> None:
    with pytest.raises(ValueError):
        Intent(filters=Filters(pairing_days=2), limit=0)


def test_active_filters_use_wire_names() -> None:
    filters = Filters(pairing_days=4, hold_probability_min=70)
    assert filters.active() == {"pairingDays": 4, "holdProbabilityMin": 70}
    assert not filters.is_empty()
    assert Filters().is_empty()


def test_empty_intent_has_no_criteria() -> None:
    assert not Intent().has_criteria()
    assert Intent(ranking=RankingMode.credit).has_criteria()


def test_clarification_intent_defaults() -> None:
    intent = clarification_intent()
    assert intent.needs_clarification
    assert intent.clarification_question == DEFAULT_CLARIFICATION_QUESTION
    assert intent.filters.is_empty()
    assert intent.ranking == RankingMode.none
