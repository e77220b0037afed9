"""Response generation grounded in the retrieved pairings.

The LLM writes the prose, but it only sees the records handed to `generate`. An answer citing a
pairing number outside that set, or stating a number it was never shown, is discarded in favour
of the deterministic template.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache
from pathlib import Path
from string import Template

from pairing_query.intent.schema import Filters
from pairing_query.llm.client import CompletionClient, CompletionError, CompletionOptions
from pairing_query.records import ConversationTurn, Record, recent_messages
from pairing_query.response.grounding import ungrounded_identifiers, ungrounded_numbers
from pairing_query.response.templates import describe_records, fallback_response, no_data_response

logger = logging.getLogger(__name__)

RESPONSE_OPTIONS = CompletionOptions(temperature=0.7, max_tokens=1500, json_mode=False)


@lru_cache(maxsize=1)
def _load_prompt_template() -> Template:
    prompt_path = Path(__file__).resolve().parent / "prompt_response_v1.md"
    return Template(prompt_path.read_text(encoding="utf-8"))


def render_prompt(query: str, data_description: str) -> str:
    return _load_prompt_template().substitute(query=query, data=data_description)


class ResponseGenerator:
    """Write the user-facing answer for a set of records."""

    def __init__(
            self,
            completion: CompletionClient,
            *,
            options: CompletionOptions = RESPONSE_OPTIONS,
            history_window: int = 4,
            max_records_in_context: int = 100,
    ) -> None:
        self._completion = completion
        self._options = options
        self._history_window = history_window
        self._max_records = max_records_in_context

    async def generate(
            self,
            query: str,
            records: Sequence[Record],
            ranking_rationale: str | None = None,
            history: Sequence[ConversationTurn] | None = None,
    ) -> str:
        """Return prose about `records`, or the deterministic template if the LLM fails."""

        if not records:
            return fallback_response(records)

        data_description = describe_records(
            records,
            ranking_rationale,
            max_records=self._max_records,
        )
        messages = [
            *recent_messages(history, window=self._history_window),
            {"role": "user", "content": f'Generate a helpful response for this query: "{query}"'},
        ]

        try:
            text = await self._completion.complete(
                render_prompt(query, data_description),
                messages,
                options=self._options,
            )
        except CompletionError as exc:
            logger.info("response source=fallback reason=%s", exc)
            return fallback_response(records)

        text = (text or "").strip()
        if not text:
            logger.info("response source=fallback reason=empty completion")
            return fallback_response(records)

        unknown = ungrounded_identifiers(text, records)
        if unknown:
            logger.warning(
                "response source=fallback reason=ungrounded pairings=%s", sorted(unknown)
            )
            return fallback_response(records)

        invented = ungrounded_numbers(text, data_description, query)
        if invented:
            logger.warning(
                "response source=fallback reason=ungrounded values=%s", sorted(invented)
            )
            return fallback_response(records)

        logger.info("response source=llm records=%d length=%d", len(records), len(text))
        return text

    def generate_no_data_response(self, query: str, filters: Filters) -> str:
        """Explain an empty result. Nothing can be grounded, so the LLM is never called."""

        return no_data_response(query, filters)
