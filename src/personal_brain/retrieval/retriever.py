"""Semantic retriever — per-owner search with citation tracking.

Usage::

    from personal_brain.retrieval.retriever import SemanticRetriever

    retriever = SemanticRetriever(store)
    results   = retriever.search("what did I note about tax returns?", k=5)
    for r in results:
        print(r.citation.short_ref(), r.content[:80])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from personal_brain.retrieval.base import VectorStoreBase
from personal_brain.retrieval.models import Citation, MetadataFilter, RetrievalResult

if TYPE_CHECKING:
    from personal_brain.storage.models import MemoryRecord

logger = logging.getLogger(__name__)


class SemanticRetriever:
    """High-level retriever that wraps any :class:`VectorStoreBase`.

    Parameters
    ----------
    store:
        A concrete vector-store backend, already bound to the caller's
        namespace.
    default_k:
        Default number of results returned by :meth:`search`.
    score_threshold:
        Minimum similarity score; results below this are discarded.
    """

    def __init__(
        self,
        store: VectorStoreBase,
        *,
        default_k: int = 5,
        score_threshold: float = 0.0,
    ) -> None:
        self._store = store
        self.default_k = default_k
        self.score_threshold = score_threshold

    # -- public API -----------------------------------------------------------

    def search(
        self,
        query: str,
        *,
        k: int | None = None,
        filters: list[MetadataFilter] | None = None,
    ) -> list[RetrievalResult]:
        """Run a semantic search and return results with citations.

        Parameters
        ----------
        query:
            Natural-language query string.
        k:
            Number of results (defaults to ``self.default_k``).
        filters:
            Optional metadata filters forwarded to the vector store.
        """
        k = k or self.default_k
        raw_hits = self._store.similarity_search_by_text(query, k=k, filters=filters)
        logger.debug("Namespace %s returned %d hits", self._store.namespace, len(raw_hits))
        return self._to_results(raw_hits)

    # -- internals ------------------------------------------------------------

    def _to_results(self, raw_hits: list[dict[str, Any]]) -> list[RetrievalResult]:
        results: list[RetrievalResult] = []
        for hit in raw_hits:
            score = hit.get("score")
            if score is not None and score < self.score_threshold:
                continue

            meta = hit.get("metadata", {})
            chunk_index = meta.get("chunkIndex")
            citation = Citation(
                vector_id=hit.get("id"),
                note_id=meta.get("noteId"),
                title=meta.get("title") or "Untitled",
                chunk_index=int(chunk_index) if chunk_index is not None else None,
                score=score,
                metadata=meta,
            )
            results.append(RetrievalResult(content=hit.get("content", ""), citation=citation))
        return results


def search_filters(
    *, note_id: str | None = None, tags: list[str] | None = None
) -> list[MetadataFilter]:
    """Metadata filters narrowing a search to one note and/or any of *tags*."""
    filters: list[MetadataFilter] = []
    if note_id:
        filters.append(MetadataFilter.equals("noteId", note_id))
    if tags:
        filters.append(MetadataFilter.one_of("tags", tags))
    return filters


def keyword_results(
    records: list[MemoryRecord],
    *,
    note_id: str | None = None,
    tags: list[str] | None = None,
) -> list[RetrievalResult]:
    """Wrap relational keyword matches in the same result shape as vector hits.

    *note_id* and *tags* narrow the matches the same way
    :func:`search_filters` narrows a vector query.
    """
    wanted = set(tags or [])
    results: list[RetrievalResult] = []
    for record in records:
        if note_id and record.id != note_id:
            continue
        record_tags = record.metadata.get("tags")
        if wanted and not (isinstance(record_tags, list) and wanted & {str(t) for t in record_tags}):
            continue
        results.append(
            RetrievalResult(
                content=record.content,
                citation=Citation(note_id=record.id, title=record.title, metadata=record.metadata),
            )
        )
    return results
