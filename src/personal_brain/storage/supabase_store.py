"""Supabase (PostgREST) implementation of the memory-record store."""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from postgrest.exceptions import APIError

from personal_brain.config import settings
from personal_brain.errors import RecordNotFoundError, StorageError
from personal_brain.storage.base import MemoryStoreBase
from personal_brain.storage.models import MemoryRecord

if TYPE_CHECKING:
    from supabase import Client

logger = logging.getLogger(__name__)

# Postgres rejects a malformed uuid literal with this code; for a lookup
# that simply means "no such record".
_INVALID_TEXT_REPRESENTATION = "22P02"


def escape_like(query: str) -> str:
    """Escape SQL LIKE special characters so user input matches literally."""
    return re.sub(r"([%_\\])", r"\\\1", query)


def _storage_error(exc: APIError) -> StorageError:
    return StorageError(
        exc.message or str(exc),
        details=exc.details if isinstance(exc.details, str) else None,
        code=exc.code,
    )


class SupabaseMemoryStore(MemoryStoreBase):
    """Memory records persisted in a Supabase table.

    Parameters
    ----------
    client:
        A ``supabase.Client``; share one per process (see
        :func:`personal_brain.clients.get_supabase_client`).
    table:
        Name of the table holding memory rows.
    """

    def __init__(self, client: Client, *, table: str = settings.memories_table) -> None:
        self._client = client
        self.table = table

    # -- MemoryStoreBase overrides --------------------------------------------

    def insert(self, *, user_id: str, content: str, metadata: dict[str, Any]) -> MemoryRecord:
        row = {"content": content, "user_id": user_id, "metadata": metadata}
        try:
            response = self._client.table(self.table).insert(row).execute()
        except APIError as exc:
            logger.error("Insert into %s failed: %s (code=%s)", self.table, exc.message, exc.code)
            raise _storage_error(exc) from exc

        if not response.data:
            raise StorageError("Insert returned no rows")
        return MemoryRecord.model_validate(response.data[0])

    def update(
        self, record_id: str, *, user_id: str, content: str, metadata: dict[str, Any]
    ) -> MemoryRecord:
        changes = {
            "content": content,
            "metadata": metadata,
            "updated_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            response = (
                self._client.table(self.table)
                .update(changes)
                .eq("id", record_id)
                .eq("user_id", user_id)
                .execute()
            )
        except APIError as exc:
            if exc.code == _INVALID_TEXT_REPRESENTATION:
                raise RecordNotFoundError(f"Memory {record_id!r} not found") from exc
            logger.error("Update of %s failed: %s (code=%s)", record_id, exc.message, exc.code)
            raise _storage_error(exc) from exc

        if not response.data:
            raise RecordNotFoundError(f"Memory {record_id!r} not found")
        return MemoryRecord.model_validate(response.data[0])

    def get(self, record_id: str, *, user_id: str) -> MemoryRecord:
        try:
            response = (
                self._client.table(self.table)
                .select("*")
                .eq("id", record_id)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
        except APIError as exc:
            if exc.code == _INVALID_TEXT_REPRESENTATION:
                raise RecordNotFoundError(f"Memory {record_id!r} not found") from exc
            raise _storage_error(exc) from exc

        if not response.data:
            raise RecordNotFoundError(f"Memory {record_id!r} not found")
        return MemoryRecord.model_validate(response.data[0])

    def list_for_user(self, user_id: str, *, limit: int = 50) -> list[MemoryRecord]:
        try:
            response = (
                self._client.table(self.table)
                .select("*")
                .eq("user_id", user_id)
                .order("updated_at", desc=True)
                .limit(limit)
                .execute()
            )
        except APIError as exc:
            raise _storage_error(exc) from exc
        return [MemoryRecord.model_validate(row) for row in response.data or []]

    def search_text(self, user_id: str, query: str, *, limit: int = 10) -> list[MemoryRecord]:
        try:
            response = (
                self._client.table(self.table)
                .select("*")
                .eq("user_id", user_id)
                .ilike("content", f"%{escape_like(query)}%")
                .order("updated_at", desc=True)
                .limit(limit)
                .execute()
            )
        except APIError as exc:
            raise _storage_error(exc) from exc
        return [MemoryRecord.model_validate(row) for row in response.data or []]
