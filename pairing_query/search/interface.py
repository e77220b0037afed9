"""Record search interface (external collaborator)."""

from __future__ import annotations

from typing import Protocol

from pairing_query.records import Record
from pairing_query.search.spec import SearchSpec


class SearchError(RuntimeError):
    """Raised when the record store cannot answer a search or lookup."""


class RecordSearch(Protocol):
    """Read-only access to the pairings of a bid package."""

    async def search(self, spec: SearchSpec) -> list[Record]:
        """Return all records matching `spec`, in the store's order."""
        ...

    async def get_by_identifier(self, identifier: str, record_source_id: int) -> Record | None:
        """Return the record with this pairing number, or `None`."""
        ...
