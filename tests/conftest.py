"""Shared pytest configuration and fixtures."""

from __future__ import annotations

import itertools
from collections.abc import Mapping
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from langchain_core.documents import Document

from personal_brain.auth.session import AuthenticatedUser, AuthGate
from personal_brain.config import Settings
from personal_brain.errors import RecordNotFoundError, StorageError, UnauthorizedError
from personal_brain.retrieval.base import VectorStoreBase
from personal_brain.retrieval.models import MetadataFilter
from personal_brain.storage.base import MemoryStoreBase
from personal_brain.storage.models import MemoryRecord

SESSION_COOKIE = "sb-test-auth-token"


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests requiring external services")


# ── Fakes ─────────────────────────────────────────────────────────────


class FakeAuthGate(AuthGate):
    """Maps session-cookie values straight to user ids."""

    def __init__(self, sessions: dict[str, str] | None = None) -> None:
        self.sessions = sessions if sessions is not None else {"session-1": "user-1", "session-2": "user-2"}
        self.calls = 0

    def authenticate(self, cookies: Mapping[str, str]) -> AuthenticatedUser:
        self.calls += 1
        token = cookies.get(SESSION_COOKIE)
        if not token:
            raise UnauthorizedError("No user found", details="Missing session cookie")
        if token not in self.sessions:
            raise UnauthorizedError("Invalid session")
        return AuthenticatedUser(id=self.sessions[token])


class FakeMemoryStore(MemoryStoreBase):
    """Dict-backed store with monotonically increasing timestamps."""

    def __init__(self, fail_with: StorageError | None = None) -> None:
        self.records: dict[str, MemoryRecord] = {}
        self.fail_with = fail_with
        self.writes = 0
        self._ids = itertools.count(1)
        self._clock = itertools.count()
        self._epoch = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _now(self) -> datetime:
        return self._epoch + timedelta(seconds=next(self._clock))

    def insert(self, *, user_id: str, content: str, metadata: dict[str, Any]) -> MemoryRecord:
        if self.fail_with is not None:
            raise self.fail_with
        now = self._now()
        record = MemoryRecord(
            id=f"note-{next(self._ids)}",
            user_id=user_id,
            content=content,
            metadata=metadata,
            created_at=now,
            updated_at=now,
        )
        self.records[record.id] = record
        self.writes += 1
        return record

    def update(
        self, record_id: str, *, user_id: str, content: str, metadata: dict[str, Any]
    ) -> MemoryRecord:
        if self.fail_with is not None:
            raise self.fail_with
        existing = self.get(record_id, user_id=user_id)
        record = existing.model_copy(
            update={"content": content, "metadata": metadata, "updated_at": self._now()}
        )
        self.records[record_id] = record
        self.writes += 1
        return record

    def get(self, record_id: str, *, user_id: str) -> MemoryRecord:
        record = self.records.get(record_id)
        if record is None or record.user_id != user_id:
            raise RecordNotFoundError(f"Memory {record_id!r} not found")
        return record

    def list_for_user(self, user_id: str, *, limit: int = 50) -> list[MemoryRecord]:
        owned = [r for r in self.records.values() if r.user_id == user_id]
        return sorted(owned, key=lambda r: r.updated_at, reverse=True)[:limit]

    def search_text(self, user_id: str, query: str, *, limit: int = 10) -> list[MemoryRecord]:
        needle = query.casefold()
        return [r for r in self.list_for_user(user_id, limit=1000) if needle in r.content.casefold()][
            :limit
        ]


class FakeIndexer:
    """Records every ``index_chunks`` and ``remove_chunks`` call; optionally fails."""

    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[tuple[list[Document], str]] = []
        self.removed: list[tuple[list[str], str]] = []

    def index_chunks(self, chunks: list[Document], *, namespace: str) -> list[str]:
        if self.error is not None:
            raise self.error
        self.calls.append((chunks, namespace))
        return [f"{c.metadata['noteId']}#{c.metadata['chunkIndex']}" for c in chunks]

    def remove_chunks(self, ids: list[str], *, namespace: str) -> None:
        if self.error is not None:
            raise self.error
        self.removed.append((ids, namespace))


class FakeVectorStore(VectorStoreBase):
    """In-memory fake that returns canned results."""

    def __init__(self, hits: list[dict[str, Any]] | None = None, namespace: str = "user-1") -> None:
        super().__init__(namespace)
        self._hits: list[dict[str, Any]] = hits or []
        self.last_filters: list[MetadataFilter] | None = None

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        self.last_filters = filters
        return self._hits[:k]

    def similarity_search_by_text(
        self,
        query: str,
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        self.last_filters = filters
        return self._hits[:k]


SAMPLE_HITS: list[dict[str, Any]] = [
    {
        "id": "note-1#3",
        "content": "Quarterly taxes are due on the 15th.",
        "score": 0.92,
        "metadata": {"noteId": "note-1", "userId": "user-1", "title": "Taxes", "chunkIndex": 3},
    },
    {
        "id": "note-2#0",
        "content": "Dentist appointment moved to Friday.",
        "score": 0.87,
        "metadata": {"noteId": "note-2", "userId": "user-1", "title": "Health", "chunkIndex": 0},
    },
    {
        "id": "note-3#1",
        "content": "Ideas for the garden layout.",
        "score": 0.45,
        "metadata": {"noteId": "note-3", "userId": "user-1"},
    },
]


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest.fixture()
def full_settings() -> Settings:
    """Settings with every vector credential present."""
    return Settings(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_anon_key="anon",
        auth_cookie_name=SESSION_COOKIE,
        pinecone_api_key="pc-key",
        pinecone_index_name="brain",
        openrouter_api_key="or-key",
    )


@pytest.fixture()
def bare_settings() -> Settings:
    """Settings with no vector credentials."""
    return Settings(
        _env_file=None,
        supabase_url="https://test.supabase.co",
        supabase_anon_key="anon",
        auth_cookie_name=SESSION_COOKIE,
        pinecone_api_key="",
        pinecone_index_name="",
        openrouter_api_key="",
    )


@pytest.fixture()
def auth_gate() -> FakeAuthGate:
    return FakeAuthGate()


@pytest.fixture()
def memory_store() -> FakeMemoryStore:
    return FakeMemoryStore()


@pytest.fixture()
def indexer() -> FakeIndexer:
    return FakeIndexer()


@pytest.fixture()
def session_cookies() -> dict[str, str]:
    return {SESSION_COOKIE: "session-1"}
