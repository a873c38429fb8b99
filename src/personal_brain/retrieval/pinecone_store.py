"""Pinecone implementation of the vector-store abstraction."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from personal_brain.retrieval.base import VectorStoreBase
from personal_brain.retrieval.models import MetadataFilter

if TYPE_CHECKING:
    from langchain_core.embeddings import Embeddings

# Metadata key the ingest path stores chunk text under.
TEXT_KEY = "text"

_OP_MAP = {
    "eq": "$eq",
    "ne": "$ne",
    "gt": "$gt",
    "gte": "$gte",
    "lt": "$lt",
    "lte": "$lte",
    "in": "$in",
    "nin": "$nin",
}


def build_pinecone_filter(filters: list[MetadataFilter]) -> dict[str, Any] | None:
    """Convert a list of :class:`MetadataFilter` to Pinecone filter syntax."""
    if not filters:
        return None

    clauses: list[dict[str, Any]] = []
    for f in filters:
        op = _OP_MAP.get(f.operator)
        if op is None:
            raise ValueError(f"Unsupported filter operator: {f.operator!r}")
        clauses.append({f.field: {op: f.value}})

    if len(clauses) == 1:
        return clauses[0]
    return {"$and": clauses}


class PineconeStore(VectorStoreBase):
    """Pinecone-backed store bound to one owner namespace.

    Parameters
    ----------
    index:
        Pinecone data-plane index handle (shared across requests).
    embedding:
        Embedding function used for text queries; must match the one used
        at ingest time.
    namespace:
        Owner id.  Every query is sent with this namespace.
    """

    def __init__(self, index: Any, embedding: Embeddings, *, namespace: str) -> None:
        super().__init__(namespace)
        self._index = index
        self._embedder = embedding

    # -- VectorStoreBase overrides --------------------------------------------

    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        response = self._index.query(
            vector=query_embedding,
            top_k=k,
            namespace=self.namespace,
            include_metadata=True,
            filter=build_pinecone_filter(filters) if filters else None,
        )

        hits: list[dict[str, Any]] = []
        for match in response.matches or []:
            meta = dict(match.metadata or {})
            content = meta.pop(TEXT_KEY, "")
            hits.append(
                {
                    "id": match.id,
                    "content": content,
                    "score": match.score,
                    "metadata": meta,
                }
            )
        return hits

    def similarity_search_by_text(
        self,
        query: str,
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        embedding = self._embedder.embed_query(query)
        return self.similarity_search(embedding, k=k, filters=filters)
