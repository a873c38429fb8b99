"""Ingest orchestrator — auth, persist, then best-effort indexing.

Usage::

    service = IngestService(auth_gate, memory_store, indexer_factory=make_indexer)
    result  = service.ingest(request.cookies, content, metadata)
    return JSONResponse(result.to_body(), status_code=result.status_code)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol

from personal_brain.config import Settings, settings as default_settings
from personal_brain.errors import (
    BadInputError,
    IndexingError,
    RecordNotFoundError,
    StorageError,
    UnauthorizedError,
)
from personal_brain.ingestion.chunker import chunk_id, chunk_memory
from personal_brain.ingestion.results import (
    Failure,
    FailureKind,
    IngestResult,
    IngestState,
    Success,
    SuccessWithWarning,
)

if TYPE_CHECKING:
    from langchain_core.documents import Document

    from personal_brain.auth.session import AuthGate, AuthenticatedUser
    from personal_brain.storage.base import MemoryStoreBase
    from personal_brain.storage.models import MemoryRecord

logger = logging.getLogger(__name__)

MSG_TOO_SHORT = "Note too short for AI memory, saved to DB only"
MSG_INDEXED = "Note saved to database and AI memory"
MSG_INDEX_FAILED = "Note saved to database. Vector storage failed - check Pinecone configuration."
WARN_NOT_CONFIGURED = "Pinecone not configured"


class ChunkIndexer(Protocol):
    """Anything that can upsert chunks into an owner namespace."""

    def index_chunks(self, chunks: list[Document], *, namespace: str) -> list[str]: ...

    def remove_chunks(self, ids: list[str], *, namespace: str) -> None: ...


class IngestService:
    """Run one ingest (or re-save) through the full state machine.

    Parameters
    ----------
    auth:
        Resolves the caller from request cookies.
    store:
        Relational source of truth.
    indexer_factory:
        Returns the indexer to use.  Only called once the record is
        persisted and indexing is configured, so provider clients are never
        touched for short notes or unconfigured deployments.
    settings:
        Chunking parameters, minimum indexable length and the vector
        configuration gate.
    """

    def __init__(
        self,
        auth: AuthGate,
        store: MemoryStoreBase,
        *,
        indexer_factory: Callable[[], ChunkIndexer] | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._auth = auth
        self._store = store
        self._indexer_factory = indexer_factory
        self.settings = settings or default_settings

    # -- public API -----------------------------------------------------------

    def ingest(
        self,
        cookies: Mapping[str, str],
        content: Any,
        metadata: Any = None,
        *,
        note_id: str | None = None,
    ) -> IngestResult:
        """Authenticate, persist and index one note.

        Parameters
        ----------
        cookies:
            Request cookies carrying the session.
        content:
            Note text.  Empty or whitespace-only content is rejected before
            any write.
        metadata:
            Free-form metadata object; stored as ``{}`` when omitted.
        note_id:
            When given, re-save that existing record instead of inserting.

        Returns
        -------
        IngestResult
            :class:`Failure` only for auth, bad input, unknown record or
            storage errors.  Every outcome after the relational write is a
            success, possibly with a warning.
        """
        try:
            user = self._auth.authenticate(cookies)
        except UnauthorizedError as exc:
            logger.info("Ingest rejected in %s: %s", IngestState.AUTH_PENDING.value, exc.message)
            return Failure(FailureKind.UNAUTHORIZED, "Unauthorized", details=exc.details or exc.message)
        return self.ingest_for_user(user, content, metadata, note_id=note_id)

    def ingest_for_user(
        self,
        user: AuthenticatedUser,
        content: Any,
        metadata: Any = None,
        *,
        note_id: str | None = None,
    ) -> IngestResult:
        """Same as :meth:`ingest` for a caller the HTTP layer already authenticated."""
        logger.info("Ingest for user %s entered %s", user.id, IngestState.AUTHENTICATED.value)
        try:
            text = self._validate(content)
            metadata = self._validate_metadata(metadata)
        except BadInputError as exc:
            return Failure(FailureKind.BAD_INPUT, exc.message)

        logger.info(
            "Processing ingest for user %s (chars=%d, metadata_keys=%d, resave=%s)",
            user.id, len(text), len(metadata), note_id is not None,
        )

        previous: MemoryRecord | None = None
        try:
            if note_id is not None:
                previous = self._store.get(note_id, user_id=user.id)
            record = self._persist(user, text, metadata, note_id)
        except RecordNotFoundError as exc:
            return Failure(FailureKind.NOT_FOUND, "Not found", details=exc.message)
        except StorageError as exc:
            logger.error("Storage failure for user %s: %s", user.id, exc.message)
            return Failure(
                FailureKind.STORAGE_ERROR, "Database error", details=exc.message, code=exc.code
            )
        logger.info("Memory %s entered %s", record.id, IngestState.PERSISTED.value)

        result = self._index(record, previous)
        logger.info("Ingest of %s finished in state %s", record.id, result.state.value)
        return result

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _validate(content: Any) -> str:
        if not isinstance(content, str) or not content.strip():
            raise BadInputError("Content cannot be empty")
        return content

    @staticmethod
    def _validate_metadata(metadata: Any) -> dict[str, Any]:
        if metadata is None:
            return {}
        if not isinstance(metadata, dict):
            raise BadInputError("Metadata must be an object")
        return dict(metadata)

    def _persist(
        self,
        user: AuthenticatedUser,
        content: str,
        metadata: dict[str, Any],
        note_id: str | None,
    ) -> MemoryRecord:
        if note_id is None:
            return self._store.insert(user_id=user.id, content=content, metadata=metadata)
        return self._store.update(note_id, user_id=user.id, content=content, metadata=metadata)

    def _chunks(self, record: MemoryRecord) -> list[Document]:
        """Chunks for *record*, or none when it is too short to index."""
        if len(record.content.strip()) < self.settings.min_indexable_length:
            return []
        return chunk_memory(
            record.content,
            record.metadata,
            note_id=record.id,
            user_id=record.user_id,
            chunk_size=self.settings.chunk_size,
            chunk_overlap=self.settings.chunk_overlap,
        )

    def _index(
        self, record: MemoryRecord, previous: MemoryRecord | None = None
    ) -> Success | SuccessWithWarning:
        too_short = len(record.content.strip()) < self.settings.min_indexable_length
        # Chunking is deterministic, so the previous version's chunk count
        # tells which trailing ids a shorter re-save leaves behind.
        previous_count = len(self._chunks(previous)) if previous is not None else 0
        if too_short and previous_count == 0:
            return Success(record.id, MSG_TOO_SHORT, IngestState.SKIPPED_TOO_SHORT)

        missing = self.settings.missing_vector_settings()
        if missing or self._indexer_factory is None:
            logger.warning("Vector storage not configured (missing %s); saved to database only", missing)
            if too_short:
                return Success(record.id, MSG_TOO_SHORT, IngestState.SKIPPED_TOO_SHORT)
            return SuccessWithWarning(
                record.id,
                "Note saved to database. Vector storage not configured - add "
                "PINECONE_API_KEY, PINECONE_INDEX_NAME, and OPENROUTER_API_KEY to enable AI search.",
                WARN_NOT_CONFIGURED,
                IngestState.NOT_CONFIGURED,
            )

        try:
            chunks = self._chunks(record)
            indexer = self._indexer_factory()
            if chunks:
                indexer.index_chunks(chunks, namespace=record.user_id)
            stale = [chunk_id(record.id, i) for i in range(len(chunks), previous_count)]
            if stale:
                indexer.remove_chunks(stale, namespace=record.user_id)
        except IndexingError as exc:
            return self._index_failed(record, exc.message)
        except Exception as exc:  # noqa: BLE001 - client setup or chunking; the stored record stands
            return self._index_failed(record, str(exc) or type(exc).__name__)

        if too_short:
            return Success(record.id, MSG_TOO_SHORT, IngestState.SKIPPED_TOO_SHORT)
        return Success(record.id, MSG_INDEXED, IngestState.INDEXED)

    @staticmethod
    def _index_failed(record: MemoryRecord, reason: str) -> SuccessWithWarning:
        logger.warning("Vector indexing failed for %s (record kept)", record.id, exc_info=True)
        return SuccessWithWarning(record.id, MSG_INDEX_FAILED, reason, IngestState.INDEX_FAILED)
