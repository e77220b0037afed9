"""End-to-end pipeline tests with fake completion and search collaborators."""

from __future__ import annotations

import pytest

from pairing_query.intent.extractor import IntentExtractor
from pairing_query.intent.schema import RankingMode
from pairing_query.llm.client import CompletionError
from pairing_query.pipeline.orchestrator import (
    GENERIC_FAILURE_RESPONSE,
    NONE_FOUND_RESPONSE,
    SEARCH_FAILED_RESPONSE,
    PipelineStage,
    QueryPipeline,
)
from pairing_query.response.generator import ResponseGenerator
from pairing_query.response.templates import not_found_response
from pairing_query.search.interface import SearchError
from pairing_query.search.spec import SortKey


def _pipeline(completion, search) -> QueryPipeline:
    return QueryPipeline(IntentExtractor(completion), search, ResponseGenerator(completion))


def _records(make_record):
    return [
        make_record("101", credit=22, block=16, hold=80),
        make_record("102", credit=21.5, block=20, hold=75),
        make_record("103", credit=19, block=15, hold=20),
        make_record("104", credit=18, block=17, hold=50),
        make_record("105", credit=25, block=18, hold=10),
    ]


@pytest.mark.asyncio
async def test_simple_filter_query(fake_completion, fake_search, make_record) -> None:
    completion = fake_completion("Pairing 101 and Pairing 102 are both 4-day trips.")
    search = fake_search(_records(make_record))

    result = await _pipeline(completion, search).run_query("4-day pairings", 12)

    assert result.stage == PipelineStage.done
    assert result.intent is not None
    assert result.intent.filters.active() == {"pairingDays": 4}
    assert result.intent.ranking == RankingMode.none
    assert not result.requires_clarification
    assert result.response == "Pairing 101 and Pairing 102 are both 4-day trips."
    # Store order is kept when no ranking is requested.
    assert [r.pairing_number for r in result.data] == ["101", "102", "103", "104", "105"]
    assert search.specs[0].pairing_days == 4
    assert search.specs[0].record_source_id == 12
    # Rules handled the intent; only the response used the model.
    assert len(completion.calls) == 1


@pytest.mark.asyncio
async def test_vague_query_requires_clarification(fake_completion, fake_search) -> None:
    completion = fake_completion(
        '{"filters": {}, "ranking": null, "limit": null, "needsClarification": true, '
        '"clarificationQuestion": "What makes a good pairing for you?"}'
    )
    search = fake_search()

    result = await _pipeline(completion, search).run_query("good pairings", 12)

    assert result.stage == PipelineStage.clarify
    assert result.requires_clarification
    assert result.response == "What makes a good pairing for you?"
    assert result.data == []
    assert search.specs == []


@pytest.mark.asyncio
async def test_zero_results_use_no_data_template(fake_completion, fake_search) -> None:
    completion = fake_completion()

    result = await _pipeline(completion, fake_search([])).run_query("4-day pairings", 12)

    assert result.stage == PipelineStage.no_data
    assert result.data == []
    assert result.response.startswith("I found 0 pairings")
    assert "pairingDays: 4" in result.response
    assert completion.calls == []


@pytest.mark.asyncio
async def test_overall_ranking_uses_seniority(fake_completion, fake_search, make_record) -> None:
    completion = fake_completion(CompletionError("down"))
    search = fake_search(_records(make_record))

    result = await _pipeline(completion, search).run_query("top 3 pairings", 12, seniority=80)

    assert result.stage == PipelineStage.done
    assert result.truncated
    assert len(result.data) == 3
    assert search.specs[0].sort_by == SortKey.overall

    scores = [r.score for r in result.data]
    assert scores == sorted(scores, reverse=True)
    weights = result.data[0].score_breakdown.weights
    assert weights.credit_weight == pytest.approx(0.4)
    assert weights.hold_weight == pytest.approx(0.4)
    assert weights.efficiency_weight == pytest.approx(0.2)
    total = weights.credit_weight + weights.efficiency_weight + weights.hold_weight
    assert total == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_completion_failure_falls_back_to_template(
        fake_completion,
        fake_search,
        make_record,
) -> None:
    completion = fake_completion(CompletionError("timeout"))

    result = await _pipeline(completion, fake_search(_records(make_record))).run_query(
        "high credit trips", 12
    )

    assert result.stage == PipelineStage.done
    assert not result.truncated
    assert result.response.startswith("I found 5 pairings matching your criteria.")
    assert "1. Pairing 101" in result.response
    assert "3. Pairing 103" in result.response
    assert result.response.endswith("...and 2 more.")


@pytest.mark.asyncio
async def test_search_error_is_reported(fake_completion, fake_search) -> None:
    search = fake_search(error=SearchError("connection refused"))

    result = await _pipeline(fake_completion(), search).run_query("4-day pairings", 12)

    assert result.stage == PipelineStage.failed
    assert result.response == SEARCH_FAILED_RESPONSE
    assert "connection refused" not in result.response


@pytest.mark.asyncio
async def test_unexpected_error_never_escapes(fake_completion, fake_search) -> None:
    search = fake_search(error=KeyError("boom"))

    result = await _pipeline(fake_completion(), search).run_query("4-day pairings", 12)

    assert result.stage == PipelineStage.failed
    assert result.response == GENERIC_FAILURE_RESPONSE


@pytest.mark.asyncio
async def test_result_serializes_with_scores(fake_completion, fake_search, make_record) -> None:
    completion = fake_completion(CompletionError("down"))
    search = fake_search(_records(make_record))

    result = await _pipeline(completion, search).run_query("best pay trips", 12)
    dumped = result.model_dump(mode="json", by_alias=True)

    assert dumped["stage"] == "done"
    assert dumped["requiresClarification"] is False
    assert dumped["data"][0]["pairingNumber"] == "105"
    assert dumped["data"][0]["score"] == 25
    assert dumped["intent"]["ranking"] == "credit"


@pytest.mark.asyncio
async def test_analyze_by_identifier(fake_completion, fake_search, make_record) -> None:
    completion = fake_completion("Pairing 103 credits 19 hours.")
    search = fake_search(_records(make_record))
    pipeline = _pipeline(completion, search)

    found = await pipeline.analyze_by_identifier("103", 12)
    assert found.stage == PipelineStage.done
    assert found.response == "Pairing 103 credits 19 hours."
    assert [r.pairing_number for r in found.data] == ["103"]

    missing = await pipeline.analyze_by_identifier("9999", 12)
    assert missing.stage == PipelineStage.no_data
    assert missing.response == "I couldn't find pairing 9999 in the current bid package."
    assert missing.not_found == ["9999"]
    assert search.lookups == [("103", 12), ("9999", 12)]


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier", ["", "   "])
async def test_blank_identifier_is_not_found_without_lookup(
        fake_completion, fake_search, make_record, identifier,
) -> None:
    completion = fake_completion()
    search = fake_search(_records(make_record))

    result = await _pipeline(completion, search).analyze_by_identifier(identifier, 12)

    assert result.stage == PipelineStage.no_data
    assert result.response == not_found_response("")
    assert result.data == []
    assert search.lookups == []
    assert completion.calls == []


@pytest.mark.asyncio
async def test_compare_skips_blank_identifiers(fake_completion, fake_search, make_record) -> None:
    completion = fake_completion("Pairing 101 pays more than Pairing 104.")
    search = fake_search(_records(make_record))

    result = await _pipeline(completion, search).compare_by_identifiers(
        ["101", " ", "", " 104"], 12
    )

    assert [r.pairing_number for r in result.data] == ["101", "104"]
    assert result.not_found == []
    assert search.lookups == [("101", 12), ("104", 12)]


@pytest.mark.asyncio
async def test_compare_reports_missing_identifiers(
        fake_completion,
        fake_search,
        make_record,
) -> None:
    completion = fake_completion("Pairing 101 pays more than Pairing 104.")
    search = fake_search(_records(make_record))

    result = await _pipeline(completion, search).compare_by_identifiers(
        ["101", "9999", "104", "101"], 12
    )

    assert result.stage == PipelineStage.done
    assert [r.pairing_number for r in result.data] == ["101", "104"]
    assert result.not_found == ["9999"]
    assert result.response.startswith("Pairing 101 pays more than Pairing 104.")
    assert result.response.endswith("Not found in this bid package: 9999")
    assert "101, 104" in completion.calls[0].messages[-1]["content"]


@pytest.mark.asyncio
async def test_compare_with_nothing_found(fake_completion, fake_search) -> None:
    completion = fake_completion()

    result = await _pipeline(completion, fake_search()).compare_by_identifiers(["1", "2"], 12)

    assert result.response == NONE_FOUND_RESPONSE
    assert result.not_found == ["1", "2"]
    assert completion.calls == []


@pytest.mark.asyncio
async def test_find_best_layovers(fake_completion, fake_search, make_record) -> None:
    records = [
        make_record("101", layovers=[{"city": "SEA", "duration": "14:00"}]),
        make_record("102", layovers=[{"city": "LAX", "duration": "30:15"}]),
        make_record("103"),
    ]
    completion = fake_completion("Pairing 102 has a 30 hour LAX layover.")
    search = fake_search(records)

    result = await _pipeline(completion, search).find_best_layovers(12, limit=2)

    assert result.stage == PipelineStage.done
    assert result.truncated
    assert [r.pairing_number for r in result.data] == ["102", "101"]
    assert search.specs[0].record_source_id == 12
    assert "longest_layover" in completion.calls[0].system_prompt
