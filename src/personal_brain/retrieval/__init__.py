"""
Retrieval — semantic search over one owner's namespace, with citations.

Public surface
--------------
- :class:`SemanticRetriever` — main entry point for retrieval with citations.
- :class:`VectorStoreBase` — abstract backend.
- :class:`PineconeStore` — default Pinecone backend.
- :class:`Citation`, :class:`RetrievalResult`, :class:`MetadataFilter` — data models.
"""

from personal_brain.retrieval.base import VectorStoreBase
from personal_brain.retrieval.models import Citation, MetadataFilter, RetrievalResult
from personal_brain.retrieval.retriever import SemanticRetriever, keyword_results, search_filters

__all__ = [
    "Citation",
    "MetadataFilter",
    "PineconeStore",
    "RetrievalResult",
    "SemanticRetriever",
    "VectorStoreBase",
    "keyword_results",
    "search_filters",
]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import PineconeStore so importing the package stays cheap."""
    if name == "PineconeStore":
        from personal_brain.retrieval.pinecone_store import PineconeStore

        return PineconeStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
