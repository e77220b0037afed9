"""Query pipeline: extract → translate → retrieve → rank → limit → respond.

Hard contract: every public call returns a `QueryResult` with a user-facing `response`. Search
failures and unexpected errors end in the `failed` stage with a generic message; details only go
to the log.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from time import monotonic

from pydantic import BaseModel, ConfigDict, Field, SerializeAsAny
from pydantic.alias_generators import to_camel

from pairing_query.intent.extractor import IntentExtractor
from pairing_query.intent.schema import DEFAULT_CLARIFICATION_QUESTION, Filters, Intent, RankingMode
from pairing_query.ranking.engine import (
    DEFAULT_BOUNDS,
    NormalizationBounds,
    explain_layover_ranking,
    explain_ranking,
    rank,
    rank_by_longest_layover,
)
from pairing_query.records import ConversationTurn, Record
from pairing_query.response.generator import ResponseGenerator
from pairing_query.response.templates import not_found_response
from pairing_query.search.interface import RecordSearch, SearchError
from pairing_query.search.spec import SearchSpec
from pairing_query.search.translator import to_search_spec

logger = logging.getLogger(__name__)

DEFAULT_RATIONALE_LIMIT = 10

SEARCH_FAILED_RESPONSE = (
    "I couldn't complete the search for your pairings right now. Please try again in a moment."
)
GENERIC_FAILURE_RESPONSE = (
    "I encountered an error processing your query. "
    "Please try rephrasing or simplifying your request."
)
NONE_FOUND_RESPONSE = "I couldn't find any of the specified pairings."


class PipelineStage(StrEnum):
    extracting = "extracting"
    clarify = "clarify"
    translating = "translating"
    retrieving = "retrieving"
    no_data = "no_data"
    ranking = "ranking"
    limiting = "limiting"
    responding = "responding"
    done = "done"
    failed = "failed"


class QueryResult(BaseModel):
    """What the caller gets back: the answer plus the records it was written from."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    response: str
    data: list[SerializeAsAny[Record]] = Field(default_factory=list)
    intent: Intent | None = None
    requires_clarification: bool = False
    truncated: bool = False
    stage: PipelineStage
    not_found: list[str] = Field(default_factory=list)


@dataclass
class _Progress:
    operation: str
    stage: PipelineStage = PipelineStage.extracting
    started: float = field(default_factory=monotonic)

    def advance(self, stage: PipelineStage) -> None:
        self.stage = stage
        logger.debug("%s stage=%s", self.operation, stage)

    @property
    def latency_ms(self) -> int:
        return int((monotonic() - self.started) * 1000)


class QueryPipeline:
    """Answer pilot questions about the pairings of one bid package.

    Collaborators are injected: the intent extractor and response generator wrap the completion
    client, `search` is the record store. Ranking is deterministic and never consults the model.
    """

    def __init__(
            self,
            extractor: IntentExtractor,
            search: RecordSearch,
            generator: ResponseGenerator,
            *,
            bounds: NormalizationBounds = DEFAULT_BOUNDS,
    ) -> None:
        self._extractor = extractor
        self._search = search
        self._generator = generator
        self._bounds = bounds

    async def _guard(self, progress: _Progress, work: Awaitable[QueryResult]) -> QueryResult:
        # noinspection PyBroadException
        try:
            result = await work
        except SearchError as exc:
            logger.error(
                "%s failed stage=%s reason=%s latency_ms=%d",
                progress.operation,
                progress.stage,
                exc,
                progress.latency_ms,
            )
            return QueryResult(response=SEARCH_FAILED_RESPONSE, stage=PipelineStage.failed)
        except Exception:
            # Pipeline boundary: nothing internal may leak into the answer.
            logger.exception("%s failed stage=%s", progress.operation, progress.stage)
            return QueryResult(response=GENERIC_FAILURE_RESPONSE, stage=PipelineStage.failed)

        logger.info(
            "%s stage=%s records=%d truncated=%s latency_ms=%d",
            progress.operation,
            result.stage,
            len(result.data),
            result.truncated,
            progress.latency_ms,
        )
        return result

    async def run_query(
            self,
            message: str,
            record_source_id: int,
            seniority: float | None = None,
            history: Sequence[ConversationTurn] | None = None,
    ) -> QueryResult:
        """Answer a free-form question.

        Args:
            message: The pilot's utterance.
            record_source_id: Bid package to search.
            seniority: Seniority percentile (lower is more senior); tunes `overall` ranking.
            history: Prior turns, oldest first; only the most recent ones are used.
        """

        progress = _Progress("query")
        return await self._guard(
            progress,
            self._run_query(progress, message, record_source_id, seniority, history),
        )

    async def _run_query(
            self,
            progress: _Progress,
            message: str,
            record_source_id: int,
            seniority: float | None,
            history: Sequence[ConversationTurn] | None,
    ) -> QueryResult:
        intent = await self._extractor.extract(message, history)

        if intent.needs_clarification:
            progress.advance(PipelineStage.clarify)
            return QueryResult(
                response=intent.clarification_question or DEFAULT_CLARIFICATION_QUESTION,
                intent=intent,
                requires_clarification=True,
                stage=PipelineStage.clarify,
            )

        progress.advance(PipelineStage.translating)
        spec = to_search_spec(intent, record_source_id=record_source_id)

        progress.advance(PipelineStage.retrieving)
        records: list[Record] = list(await self._search.search(spec))

        if not records:
            progress.advance(PipelineStage.no_data)
            return QueryResult(
                response=self._generator.generate_no_data_response(message, intent.filters),
                intent=intent,
                stage=PipelineStage.no_data,
            )

        rationale = None
        if intent.ranking != RankingMode.none:
            progress.advance(PipelineStage.ranking)
            ranked = rank(records, intent.ranking, seniority, bounds=self._bounds)
            rationale = explain_ranking(
                ranked,
                intent.ranking,
                intent.limit or DEFAULT_RATIONALE_LIMIT,
            )
            records = list(ranked)

        progress.advance(PipelineStage.limiting)
        truncated = intent.limit is not None and len(records) > intent.limit
        if truncated:
            records = records[: intent.limit]

        progress.advance(PipelineStage.responding)
        response = await self._generator.generate(message, records, rationale, history)

        progress.advance(PipelineStage.done)
        return QueryResult(
            response=response,
            data=records,
            intent=intent,
            truncated=truncated,
            stage=PipelineStage.done,
        )

    async def analyze_by_identifier(self, identifier: str, record_source_id: int) -> QueryResult:
        """Describe a single pairing looked up by its pairing number."""

        progress = _Progress("analyze")
        return await self._guard(progress, self._analyze(progress, identifier, record_source_id))

    async def _analyze(
            self,
            progress: _Progress,
            identifier: str,
            record_source_id: int,
    ) -> QueryResult:
        identifier = identifier.strip()
        record = None
        if identifier:
            progress.advance(PipelineStage.retrieving)
            record = await self._search.get_by_identifier(identifier, record_source_id)

        if record is None:
            progress.advance(PipelineStage.no_data)
            return QueryResult(
                response=not_found_response(identifier),
                stage=PipelineStage.no_data,
                not_found=[identifier] if identifier else [],
            )

        progress.advance(PipelineStage.responding)
        response = await self._generator.generate(
            f"Provide a detailed analysis of pairing {identifier}",
            [record],
        )
        return QueryResult(response=response, data=[record], stage=PipelineStage.done)

    async def compare_by_identifiers(
            self,
            identifiers: Sequence[str],
            record_source_id: int,
    ) -> QueryResult:
        """Compare several pairings side by side; identifiers that do not exist are reported."""

        progress = _Progress("compare")
        return await self._guard(progress, self._compare(progress, identifiers, record_source_id))

    async def _compare(
            self,
            progress: _Progress,
            identifiers: Sequence[str],
            record_source_id: int,
    ) -> QueryResult:
        progress.advance(PipelineStage.retrieving)
        found: list[Record] = []
        missing: list[str] = []
        wanted = dict.fromkeys(identifier.strip() for identifier in identifiers)
        wanted.pop("", None)
        for identifier in wanted:
            record = await self._search.get_by_identifier(identifier, record_source_id)
            if record is None:
                missing.append(identifier)
            else:
                found.append(record)

        if not found:
            progress.advance(PipelineStage.no_data)
            return QueryResult(
                response=NONE_FOUND_RESPONSE,
                stage=PipelineStage.no_data,
                not_found=missing,
            )

        progress.advance(PipelineStage.responding)
        numbers = ", ".join(record.pairing_number for record in found)
        response = await self._generator.generate(
            f"Compare these pairings: {numbers}. Highlight key differences and trade-offs.",
            found,
        )
        if missing:
            response = f"{response}\n\nNot found in this bid package: {', '.join(missing)}"

        return QueryResult(
            response=response,
            data=found,
            stage=PipelineStage.done,
            not_found=missing,
        )

    async def find_best_layovers(self, record_source_id: int, limit: int = 10) -> QueryResult:
        """Pairings with the longest single layover, longest first."""

        progress = _Progress("layovers")
        return await self._guard(progress, self._best_layovers(progress, record_source_id, limit))

    async def _best_layovers(
            self,
            progress: _Progress,
            record_source_id: int,
            limit: int,
    ) -> QueryResult:
        progress.advance(PipelineStage.retrieving)
        records = await self._search.search(SearchSpec(record_source_id=record_source_id))
        if not records:
            progress.advance(PipelineStage.no_data)
            return QueryResult(
                response=self._generator.generate_no_data_response("best layovers", Filters()),
                stage=PipelineStage.no_data,
            )

        progress.advance(PipelineStage.ranking)
        ranked = rank_by_longest_layover(records, limit=None)

        progress.advance(PipelineStage.limiting)
        shown = ranked[:limit]

        progress.advance(PipelineStage.responding)
        response = await self._generator.generate(
            f"Show me the {len(shown)} pairings with the best layovers",
            shown,
            explain_layover_ranking(shown, limit),
        )
        return QueryResult(
            response=response,
            data=shown,
            truncated=len(ranked) > len(shown),
            stage=PipelineStage.done,
        )
