"""Abstract base class for vector-store backends.

Adding a new backend only requires subclassing :class:`VectorStoreBase`
and implementing the abstract methods.  The rest of the retrieval stack
is backend-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from personal_brain.retrieval.models import MetadataFilter


class VectorStoreBase(ABC):
    """Backend-agnostic, single-namespace vector-store interface.

    Parameters
    ----------
    namespace:
        Owner id.  A store instance only ever reads this one partition.
    """

    def __init__(self, namespace: str) -> None:
        if not namespace:
            raise ValueError("A non-empty namespace (owner id) is required")
        self.namespace = namespace

    # -- required overrides ---------------------------------------------------

    @abstractmethod
    def similarity_search(
        self,
        query_embedding: list[float],
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Return the top-*k* results matching *query_embedding*.

        Each result dict **must** contain at least:

        * ``"id"`` – vector identifier
        * ``"content"`` – the chunk text
        * ``"score"`` – similarity score (higher = more similar)
        * ``"metadata"`` – associated metadata dict
        """
        ...

    @abstractmethod
    def similarity_search_by_text(
        self,
        query: str,
        *,
        k: int = 5,
        filters: list[MetadataFilter] | None = None,
    ) -> list[dict[str, Any]]:
        """Embed *query* and delegate to :meth:`similarity_search`."""
        ...
