"""Embedding and vector-store persistence."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from langchain_openai import OpenAIEmbeddings
from langchain_pinecone import PineconeVectorStore

from personal_brain.config import settings
from personal_brain.errors import IndexingError
from personal_brain.ingestion.chunker import chunk_ids

if TYPE_CHECKING:
    from langchain_core.documents import Document
    from langchain_core.embeddings import Embeddings

logger = logging.getLogger(__name__)


def get_embedding_function() -> OpenAIEmbeddings:
    """Return the configured embedding client.

    The client targets ``settings.embedding_base_url`` (OpenRouter by
    default), which speaks the OpenAI embeddings protocol.
    """
    return OpenAIEmbeddings(
        model=settings.embedding_model,
        api_key=settings.openrouter_api_key,
        base_url=settings.embedding_base_url,
        # Non-OpenAI hosts do not accept pre-tokenized input.
        check_embedding_ctx_length=False,
    )


def flatten_metadata(metadata: dict[str, Any]) -> dict[str, Any]:
    """Keep only values a vector index can store.

    Pinecone metadata values must be strings, numbers, booleans or lists
    of strings.  Nested objects and nulls are dropped; other lists are
    stringified element-wise.
    """
    flat: dict[str, Any] = {}
    for key, value in metadata.items():
        if isinstance(value, (str, int, float, bool)):
            flat[key] = value
        elif isinstance(value, (list, tuple)):
            flat[key] = [str(v) for v in value if v is not None and not isinstance(v, dict)]
    return flat


class MemoryIndexer:
    """Embed chunks and upsert them into a namespaced Pinecone index.

    Parameters
    ----------
    index:
        Pinecone data-plane index handle.
    embedding:
        Embedding function; one vector is computed per chunk.
    batch_size:
        Max vectors per upsert call.
    """

    def __init__(self, index: Any, embedding: Embeddings, *, batch_size: int = 32) -> None:
        self._index = index
        self._embedding = embedding
        self.batch_size = batch_size

    def index_chunks(self, chunks: list[Document], *, namespace: str) -> list[str]:
        """Upsert *chunks* under *namespace* and return their vector ids.

        Raises
        ------
        ValueError
            If *namespace* is empty.  Every owner gets its own namespace
            and nothing is ever written to the shared default one.
        IndexingError
            If embedding or the upsert fails.
        """
        if not namespace:
            raise ValueError("A non-empty namespace (owner id) is required")
        if not chunks:
            return []

        for chunk in chunks:
            missing = {"noteId", "userId"} - chunk.metadata.keys()
            if missing:
                raise ValueError(f"Chunk metadata missing required keys: {sorted(missing)}")
            chunk.metadata = flatten_metadata(chunk.metadata)

        ids = chunk_ids(chunks)
        try:
            store = PineconeVectorStore(index=self._index, embedding=self._embedding, namespace=namespace)
            store.add_documents(chunks, ids=ids, batch_size=self.batch_size)
        except Exception as exc:
            raise IndexingError(str(exc) or type(exc).__name__) from exc
        logger.info("Upserted %d vectors into namespace %s", len(ids), namespace)
        return ids

    def remove_chunks(self, ids: list[str], *, namespace: str) -> None:
        """Delete vectors by id from *namespace*; used to drop stale tail chunks."""
        if not namespace:
            raise ValueError("A non-empty namespace (owner id) is required")
        if not ids:
            return
        try:
            self._index.delete(ids=ids, namespace=namespace)
        except Exception as exc:
            raise IndexingError(str(exc) or type(exc).__name__) from exc
        logger.info("Deleted %d stale vectors from namespace %s", len(ids), namespace)
