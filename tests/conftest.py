"""Pytest configuration.

The repository uses a flat layout without an installed package. This conftest ensures tests can
import from the `pairing_query.*` namespace when running `pytest` locally, and provides fake
completion/search collaborators so no test needs a network or a database.
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from types import SimpleNamespace
from typing import Any

import pytest

# Ensure `import pairing_query...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from pairing_query.llm.client import CompletionError, CompletionOptions  # noqa: E402
from pairing_query.records import Record  # noqa: E402


class FakeCompletion:
    """Scripted `CompletionClient`: pops one reply per call; exceptions in the script are raised."""

    def __init__(self, *replies: str | Exception) -> None:
        self.replies = list(replies)
        self.calls: list[SimpleNamespace] = []

    async def complete(
            self,
            system_prompt: str,
            messages: Sequence[dict[str, str]],
            *,
            options: CompletionOptions,
    ) -> str:
        self.calls.append(
            SimpleNamespace(system_prompt=system_prompt, messages=list(messages), options=options)
        )
        if not self.replies:
            raise CompletionError("no scripted reply")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeSearch:
    """In-memory `RecordSearch` that records every spec and lookup it receives."""

    def __init__(self, records: Sequence[Record] = (), *, error: Exception | None = None) -> None:
        self.records = list(records)
        self.error = error
        self.specs: list[Any] = []
        self.lookups: list[tuple[str, int]] = []

    async def search(self, spec: Any) -> list[Record]:
        self.specs.append(spec)
        if self.error is not None:
            raise self.error
        return list(self.records)

    async def get_by_identifier(self, identifier: str, record_source_id: int) -> Record | None:
        self.lookups.append((identifier, record_source_id))
        if self.error is not None:
            raise self.error
        return next((r for r in self.records if r.pairing_number == identifier), None)


def _make_record(
        pairing_number: str,
        *,
        credit: float = 20.0,
        block: float = 16.0,
        days: int = 3,
        hold: float = 50.0,
        **extra: Any,
) -> Record:
    return Record.model_validate(
        {
            "pairingNumber": pairing_number,
            "creditHours": credit,
            "blockHours": block,
            "pairingDays": days,
            "holdProbability": hold,
            **extra,
        }
    )


@pytest.fixture
def make_record() -> Callable[..., Record]:
    return _make_record


@pytest.fixture
def fake_completion() -> type[FakeCompletion]:
    return FakeCompletion


@pytest.fixture
def fake_search() -> type[FakeSearch]:
    return FakeSearch
