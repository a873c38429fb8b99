"""Domain models for retrieval results and citation tracking."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field


class MetadataFilter(BaseModel):
    """Declarative metadata filter for vector-store queries.

    Attributes
    ----------
    field:
        The metadata key to filter on (e.g. ``"noteId"``, ``"tags"``).
    operator:
        Comparison operator — one of ``eq``, ``ne``, ``gt``, ``gte``,
        ``lt``, ``lte``, ``in``, ``nin``.
    value:
        The value (or list of values for ``in`` / ``nin``) to compare against.
    """

    field: str
    operator: str = "eq"
    value: Any = None

    # -- helpers for common filters ------------------------------------------

    @classmethod
    def equals(cls, field: str, value: Any) -> MetadataFilter:
        return cls(field=field, operator="eq", value=value)

    @classmethod
    def one_of(cls, field: str, values: list[Any]) -> MetadataFilter:
        return cls(field=field, operator="in", value=values)


class Citation(BaseModel):
    """Provenance record linking a retrieved chunk back to its memory record.

    Attributes
    ----------
    vector_id:
        The vector-store id of the chunk (``None`` for keyword matches).
    note_id:
        Id of the parent memory record.
    title:
        Title copied from the record metadata.
    chunk_index:
        Ordinal position of the chunk within the record.
    score:
        Similarity score returned by the vector store.
    metadata:
        Everything else stored alongside the chunk.
    retrieved_at:
        UTC timestamp of when the retrieval happened.
    """

    vector_id: str | None = None
    note_id: str | None = None
    title: str = "Untitled"
    chunk_index: int | None = None
    score: float | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    retrieved_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def short_ref(self) -> str:
        """Return a compact ``[title§chunk]`` reference string."""
        chunk = self.chunk_index if self.chunk_index is not None else "?"
        return f"[{self.title}§{chunk}]"


class RetrievalResult(BaseModel):
    """A single retrieved passage together with its citation."""

    content: str
    citation: Citation

    def __str__(self) -> str:  # noqa: D105
        return f"{self.citation.short_ref()} {self.content[:120]}…"
