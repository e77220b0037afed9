"""Application composition root.

This module wires together configuration, the DB pool, the completion client and the query pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from pairing_query.config.settings import Settings
from pairing_query.db.pool import create_pool
from pairing_query.intent.extractor import IntentExtractor
from pairing_query.llm.client import (
    ChatCompletionsClient,
    CompletionClient,
    CompletionOptions,
    DisabledCompletionClient,
    LLMConfig,
)
from pairing_query.pipeline.orchestrator import QueryPipeline
from pairing_query.ranking.engine import NormalizationBounds
from pairing_query.response.generator import ResponseGenerator
from pairing_query.search.interface import RecordSearch
from pairing_query.search.postgres import PostgresRecordSearch


@dataclass(frozen=True)
class App:
    """Shared application dependencies."""

    settings: Settings
    pool: AsyncConnectionPool
    pipeline: QueryPipeline


def build_completion_client(settings: Settings) -> CompletionClient:
    if not settings.llm_enabled or not settings.llm_api_key:
        return DisabledCompletionClient()
    return ChatCompletionsClient(
        LLMConfig(
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            api_base=settings.llm_api_base,
            timeout_s=settings.llm_timeout_s,
        )
    )


def build_pipeline(
        settings: Settings,
        search: RecordSearch,
        completion: CompletionClient,
) -> QueryPipeline:
    """Assemble the pipeline around an arbitrary record search and completion client."""

    extractor = IntentExtractor(
        completion,
        options=CompletionOptions(
            temperature=settings.intent_temperature,
            max_tokens=settings.intent_max_tokens,
            json_mode=True,
        ),
        history_window=settings.history_window,
        rules_prepass=settings.rules_prepass_enabled,
    )
    generator = ResponseGenerator(
        completion,
        options=CompletionOptions(
            temperature=settings.response_temperature,
            max_tokens=settings.response_max_tokens,
        ),
        history_window=settings.history_window,
        max_records_in_context=settings.max_records_in_context,
    )
    bounds = NormalizationBounds(
        credit_ceiling=settings.credit_ceiling,
        efficiency_floor=settings.efficiency_floor,
        efficiency_ceiling=settings.efficiency_ceiling,
    )
    return QueryPipeline(extractor, search, generator, bounds=bounds)


def create_app(settings: Settings) -> App:
    """Create the application container.

    Note:
        The returned DB pool is not opened. Call `await app.pool.open()` at startup.
    """

    pool = create_pool(
        settings.database_url,
        max_size=settings.db_pool_max_size,
        statement_timeout_ms=settings.db_statement_timeout_ms,
    )
    pipeline = build_pipeline(
        settings,
        PostgresRecordSearch(pool),
        build_completion_client(settings),
    )
    return App(settings=settings, pool=pool, pipeline=pipeline)
