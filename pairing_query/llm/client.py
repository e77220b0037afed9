"""Completion interface and its OpenAI-style implementation.

Both model-backed stages (intent extraction, response generation) talk to the LLM only through the
`CompletionClient` protocol, so tests and alternative providers can be injected. Any failure is
raised as `CompletionError`; callers decide how to degrade.
"""

from __future__ import annotations

import asyncio
import http.client
import json
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen


class CompletionError(RuntimeError):
    """Raised when the completion service fails or returns no usable text."""


@dataclass(frozen=True)
class CompletionOptions:
    """Per-call generation options."""

    temperature: float = 0.0
    max_tokens: int = 300
    json_mode: bool = False


class CompletionClient(Protocol):
    """Anything that can turn a system prompt + chat messages into text."""

    async def complete(
            self,
            system_prompt: str,
            messages: Sequence[dict[str, str]],
            *,
            options: CompletionOptions,
    ) -> str:
        ...


@dataclass(frozen=True)
class LLMConfig:
    """Configuration for the OpenAI-style Chat Completions API call."""

    api_key: str
    model: str = "gpt-4.1"
    api_base: str = "https://api.openai.com/v1"
    timeout_s: float = 30.0


def strip_code_fences(text: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if any."""

    value = (text or "").strip()
    if value.startswith("```"):
        value = value.strip("`")
        # After stripping backticks, try to remove leading "json" marker.
        value = value.removeprefix("json").strip()
    return value


def _chat_completions_url(api_base: str) -> str:
    return api_base.rstrip("/") + "/chat/completions"


class ChatCompletionsClient:
    """`CompletionClient` for OpenAI-compatible `/v1/chat/completions` APIs.

    The HTTP call is blocking (stdlib `urllib`), so it runs in a worker thread.
    """

    def __init__(self, config: LLMConfig) -> None:
        self._config = config

    def build_payload(
            self,
            system_prompt: str,
            messages: Sequence[dict[str, str]],
            options: CompletionOptions,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._config.model,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
        }
        if options.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    def _post(self, payload: dict[str, Any]) -> bytes:
        req = Request(
            _chat_completions_url(self._config.api_base),
            method="POST",
            headers={
                "Authorization": f"Bearer {self._config.api_key}",
                "Content-Type": "application/json",
            },
            data=json.dumps(payload).encode(),
        )

        try:
            with urlopen(req, timeout=self._config.timeout_s) as resp:  # noqa: S310 (fixed API base)
                return resp.read()
        except HTTPError as exc:
            raise CompletionError(f"LLM HTTP error: {exc.code}") from exc
        except (URLError, TimeoutError) as exc:
            raise CompletionError("LLM connection error") from exc
        except (OSError, http.client.HTTPException) as exc:
            # Raised by getresponse() or read() (e.g. RemoteDisconnected, IncompleteRead).
            raise CompletionError(f"LLM transport error: {type(exc).__name__}") from exc

    async def complete(
            self,
            system_prompt: str,
            messages: Sequence[dict[str, str]],
            *,
            options: CompletionOptions,
    ) -> str:
        payload = self.build_payload(system_prompt, messages, options)
        body = await asyncio.to_thread(self._post, payload)
        return extract_content(body)


def extract_content(body: bytes | str) -> str:
    """Pull the first choice's message text out of a Chat Completions response body."""

    try:
        decoded = json.loads(body)
        content = decoded["choices"][0]["message"]["content"]
    except Exception as exc:  # noqa: BLE001
        raise CompletionError("Unexpected LLM response format") from exc

    if not isinstance(content, str) or not content.strip():
        raise CompletionError("LLM returned no content")
    return content


class DisabledCompletionClient:
    """Stand-in used when LLM calls are turned off; every call fails with `CompletionError`.

    The pipeline then runs on the rules pre-pass and deterministic templates only.
    """

    async def complete(
            self,
            system_prompt: str,
            messages: Sequence[dict[str, str]],
            *,
            options: CompletionOptions,
    ) -> str:
        raise CompletionError("LLM is disabled (LLM_ENABLED=false)")
