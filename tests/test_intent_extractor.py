"""Tests for intent extraction: rules pre-pass, LLM JSON validation and fallbacks."""

from __future__ import annotations

import json

import pytest

from pairing_query.intent.extractor import (
    FALLBACK_CLARIFICATION_QUESTION,
    IntentExtractor,
    IntentParseError,
    enforce_clarification,
    parse_intent_payload,
)
from pairing_query.intent.schema import DEFAULT_CLARIFICATION_QUESTION, Intent, RankingMode
from pairing_query.llm.client import CompletionError
from pairing_query.records import ConversationTurn


def _payload(**overrides: object) -> str:
    body: dict[str, object] = {
        "filters": {},
        "ranking": None,
        "limit": None,
        "needsClarification": False,
    }
    body.update(overrides)
    return json.dumps(body)


def test_parse_payload_strips_code_fences() -> None:
    text = "```json\n" + _payload(filters={"pairingDays": 3}) + "\n```"
    assert parse_intent_payload(text).filters.pairing_days == 3


def test_parse_payload_drops_null_filters() -> None:
    intent = parse_intent_payload(_payload(filters={"pairingDays": 2, "city": None}))
    assert intent.filters.active() == {"pairingDays": 2}


def test_parse_payload_fills_missing_question() -> None:
    intent = parse_intent_payload(_payload(needsClarification=True))
    assert intent.needs_clarification
    assert intent.clarification_question == DEFAULT_CLARIFICATION_QUESTION


def test_parse_payload_ignores_question_without_clarification() -> None:
    intent = parse_intent_payload(
        _payload(filters={"pairingDays": 2}, clarificationQuestion="unused")
    )
    assert intent.clarification_question is None


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        "[1, 2]",
        json.dumps({"filters": {}}),
        _payload(filters={"layoverHours": 24}),
        _payload(ranking="cheapest"),
    ],
)
def test_parse_payload_rejects_invalid(text: str) -> None:
    with pytest.raises(IntentParseError):
        parse_intent_payload(text)


def test_enforce_clarification_for_empty_intent() -> None:
    intent = enforce_clarification(Intent())
    assert intent.needs_clarification
    assert intent.clarification_question


@pytest.mark.asyncio
async def test_rules_prepass_skips_the_llm(fake_completion) -> None:
    completion = fake_completion()
    extractor = IntentExtractor(completion)

    result = await extractor.extract_with_source("4-day pairings")

    assert result.source == "rules"
    assert result.intent.filters.active() == {"pairingDays": 4}
    assert result.intent.ranking == RankingMode.none
    assert completion.calls == []


@pytest.mark.asyncio
async def test_vague_query_asks_for_clarification(fake_completion) -> None:
    question = "What makes a good pairing for you - high credit, efficiency, or hold probability?"
    completion = fake_completion(
        _payload(needsClarification=True, clarificationQuestion=question)
    )
    extractor = IntentExtractor(completion)

    result = await extractor.extract_with_source("good pairings")

    assert result.source == "llm"
    assert result.intent.needs_clarification
    assert result.intent.clarification_question == question
    assert len(completion.calls) == 1
    assert completion.calls[0].options.json_mode is True


@pytest.mark.asyncio
async def test_llm_intent_without_criteria_is_forced_to_clarify(fake_completion) -> None:
    extractor = IntentExtractor(fake_completion(_payload()))

    intent = await extractor.extract("good pairings")

    assert intent.needs_clarification
    assert intent.clarification_question


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [CompletionError("timeout"), "garbage", "```\n```"])
async def test_failures_fall_back_to_clarification(fake_completion, reply) -> None:
    extractor = IntentExtractor(fake_completion(reply))

    result = await extractor.extract_with_source("what about something nice")

    assert result.source == "fallback"
    assert result.intent.needs_clarification
    assert result.intent.clarification_question == FALLBACK_CLARIFICATION_QUESTION
    assert result.intent.filters.is_empty()
    assert result.intent.ranking == RankingMode.none


@pytest.mark.asyncio
async def test_history_goes_to_the_llm_with_window(fake_completion) -> None:
    completion = fake_completion(_payload(filters={"city": "LAX", "pairingDays": 3}))
    extractor = IntentExtractor(completion, history_window=2)
    history = [
        ConversationTurn(role="user", content="pairings to LAX"),
        ConversationTurn(role="assistant", content="I found 12 pairings."),
        ConversationTurn(role="user", content="only the 4-day ones"),
        ConversationTurn(role="assistant", content="I found 3 pairings."),
    ]

    # Parsable by the rules, but history is present, so the model resolves references.
    result = await extractor.extract_with_source("3 day pairings", history)

    assert result.source == "llm"
    assert result.intent.filters.city == "LAX"
    messages = completion.calls[0].messages
    assert [m["content"] for m in messages] == [
        "only the 4-day ones",
        "I found 3 pairings.",
        "3 day pairings",
    ]


@pytest.mark.asyncio
async def test_rules_prepass_can_be_disabled(fake_completion) -> None:
    completion = fake_completion(_payload(filters={"pairingDays": 4}))
    extractor = IntentExtractor(completion, rules_prepass=False)

    result = await extractor.extract_with_source("4-day pairings")

    assert result.source == "llm"
    assert len(completion.calls) == 1
