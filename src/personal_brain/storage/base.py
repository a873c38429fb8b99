"""Abstract base class for memory-record stores.

The ingest orchestrator and the HTTP layer only depend on this
interface, so the Supabase backend can be swapped for an in-memory fake
in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from personal_brain.storage.models import MemoryRecord


class MemoryStoreBase(ABC):
    """Owner-scoped CRUD over memory records.

    Every method takes ``user_id`` and must never return or modify a row
    owned by someone else.
    """

    @abstractmethod
    def insert(self, *, user_id: str, content: str, metadata: dict[str, Any]) -> MemoryRecord:
        """Create one durable row and return it with its generated id and timestamps.

        Raises :class:`~personal_brain.errors.StorageError` on failure.
        """
        ...

    @abstractmethod
    def update(
        self, record_id: str, *, user_id: str, content: str, metadata: dict[str, Any]
    ) -> MemoryRecord:
        """Replace content and metadata of an existing row, refreshing ``updated_at``.

        Raises :class:`~personal_brain.errors.RecordNotFoundError` when the
        caller owns no such row.
        """
        ...

    @abstractmethod
    def get(self, record_id: str, *, user_id: str) -> MemoryRecord:
        """Fetch one row or raise :class:`~personal_brain.errors.RecordNotFoundError`."""
        ...

    @abstractmethod
    def list_for_user(self, user_id: str, *, limit: int = 50) -> list[MemoryRecord]:
        """Return the caller's rows, most recently updated first."""
        ...

    @abstractmethod
    def search_text(self, user_id: str, query: str, *, limit: int = 10) -> list[MemoryRecord]:
        """Case-insensitive substring match over ``content``, newest first."""
        ...
