"""Intent extraction orchestration (rules pre-pass; LLM for everything else).

`IntentExtractor.extract` never raises: malformed model output, transport failures and schema
violations all collapse into a clarification intent, so the pipeline has no separate
"extraction failed" branch.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pairing_query.intent.rules_parser import RulesParserError
from pairing_query.intent.rules_parser import parse_intent as parse_rules_intent
from pairing_query.intent.schema import (
    DEFAULT_CLARIFICATION_QUESTION,
    Intent,
    clarification_intent,
    intent_from_obj,
)
from pairing_query.llm.client import (
    CompletionClient,
    CompletionError,
    CompletionOptions,
    strip_code_fences,
)
from pairing_query.records import ConversationTurn, recent_messages

logger = logging.getLogger(__name__)

FALLBACK_CLARIFICATION_QUESTION = (
    "I had trouble understanding your query. Could you rephrase it? "
    '(e.g., "show me 4-day pairings" or "high credit trips for senior pilots")'
)

INTENT_OPTIONS = CompletionOptions(temperature=0.3, max_tokens=300, json_mode=True)


class IntentParseError(ValueError):
    """Raised when model output is not a valid Intent JSON object."""


IntentSource = Literal["rules", "llm", "fallback"]


@dataclass(frozen=True)
class ExtractionResult:
    """Validated intent plus information about which path produced it."""

    intent: Intent
    source: IntentSource


@lru_cache(maxsize=1)
def load_prompt() -> str:
    prompt_path = Path(__file__).resolve().parent / "prompt_intent_v1.md"
    return prompt_path.read_text(encoding="utf-8")


def _normalize_payload(obj: dict[str, Any]) -> dict[str, Any]:
    payload = dict(obj)

    if not isinstance(payload.get("needsClarification"), bool):
        raise IntentParseError("Invalid intent response: missing needsClarification")

    question = payload.get("clarificationQuestion")
    if payload["needsClarification"]:
        if not isinstance(question, str) or not question.strip():
            payload["clarificationQuestion"] = DEFAULT_CLARIFICATION_QUESTION
    else:
        payload.pop("clarificationQuestion", None)

    filters = payload.get("filters")
    if filters is None:
        payload["filters"] = {}
    elif isinstance(filters, dict):
        payload["filters"] = {k: v for k, v in filters.items() if v is not None}

    return payload


def parse_intent_payload(text: str) -> Intent:
    """Decode and validate the model's JSON answer."""

    try:
        obj = json.loads(strip_code_fences(text))
    except json.JSONDecodeError as exc:
        raise IntentParseError("LLM did not return valid JSON") from exc

    if not isinstance(obj, dict):
        raise IntentParseError("LLM JSON is not an object")

    try:
        return intent_from_obj(_normalize_payload(obj))
    except IntentParseError:
        raise
    except ValueError as exc:
        raise IntentParseError(f"LLM intent failed validation: {exc}") from exc


def enforce_clarification(intent: Intent) -> Intent:
    """An intent without any filter or ranking must ask for clarification."""

    if intent.needs_clarification or intent.has_criteria():
        return intent
    logger.warning("intent without criteria marked as resolved; forcing clarification")
    return clarification_intent()


class IntentExtractor:
    """Turn an utterance (plus recent turns) into a validated `Intent`."""

    def __init__(
            self,
            completion: CompletionClient,
            *,
            options: CompletionOptions = INTENT_OPTIONS,
            history_window: int = 4,
            rules_prepass: bool = True,
    ) -> None:
        self._completion = completion
        self._options = options
        self._history_window = history_window
        self._rules_prepass = rules_prepass

    async def extract(
            self,
            query: str,
            history: Sequence[ConversationTurn] | None = None,
    ) -> Intent:
        return (await self.extract_with_source(query, history)).intent

    async def extract_with_source(
            self,
            query: str,
            history: Sequence[ConversationTurn] | None = None,
    ) -> ExtractionResult:
        """Extract an intent and report whether rules, the LLM or the fallback produced it.

        Strategy:
            1) Without history, try the strict rules pre-pass (no network call).
            2) Otherwise, or if the rules miss, ask the LLM for Intent JSON and validate it.
            3) On any failure, return the generic clarification intent.
        """

        if self._rules_prepass and not history:
            try:
                intent = parse_rules_intent(query)
                logger.info("intent source=rules ranking=%s", intent.ranking)
                return ExtractionResult(intent=intent, source="rules")
            except RulesParserError as exc:
                logger.debug("rules pre-pass miss reason=%s", exc)

        messages = [
            *recent_messages(history, window=self._history_window),
            {"role": "user", "content": query},
        ]

        try:
            raw = await self._completion.complete(load_prompt(), messages, options=self._options)
            intent = enforce_clarification(parse_intent_payload(raw))
        except (CompletionError, IntentParseError) as exc:
            logger.info("intent source=fallback reason=%s", exc)
            return ExtractionResult(
                intent=clarification_intent(FALLBACK_CLARIFICATION_QUESTION),
                source="fallback",
            )

        logger.info(
            "intent source=llm ranking=%s clarification=%s",
            intent.ranking,
            intent.needs_clarification,
        )
        return ExtractionResult(intent=intent, source="llm")
