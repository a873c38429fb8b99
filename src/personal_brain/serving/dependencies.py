"""FastAPI dependency providers.

Routes depend on these rather than on the provider clients directly so
tests can swap in fakes through ``app.dependency_overrides``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request

from personal_brain.auth.session import AuthenticatedUser, AuthGate, SupabaseAuthGate
from personal_brain.clients import get_embeddings, get_pinecone_index, get_supabase_client
from personal_brain.config import Settings, settings
from personal_brain.ingestion.embedder import MemoryIndexer
from personal_brain.ingestion.service import IngestService
from personal_brain.retrieval.base import VectorStoreBase
from personal_brain.storage.base import MemoryStoreBase
from personal_brain.storage.supabase_store import SupabaseMemoryStore

VectorStoreFactory = Callable[[str], VectorStoreBase]


def get_settings() -> Settings:
    return settings


def get_auth_gate(app_settings: Annotated[Settings, Depends(get_settings)]) -> AuthGate:
    return SupabaseAuthGate(get_supabase_client(), cookie_name=app_settings.session_cookie_name)


def get_memory_store(app_settings: Annotated[Settings, Depends(get_settings)]) -> MemoryStoreBase:
    return SupabaseMemoryStore(get_supabase_client(), table=app_settings.memories_table)


def make_indexer() -> MemoryIndexer:
    """Indexer over the shared Pinecone index and embedding clients."""
    return MemoryIndexer(get_pinecone_index(), get_embeddings())


def get_indexer_factory() -> Callable[[], MemoryIndexer]:
    return make_indexer


def get_ingest_service(
    auth: Annotated[AuthGate, Depends(get_auth_gate)],
    store: Annotated[MemoryStoreBase, Depends(get_memory_store)],
    indexer_factory: Annotated[Callable[[], MemoryIndexer], Depends(get_indexer_factory)],
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> IngestService:
    return IngestService(auth, store, indexer_factory=indexer_factory, settings=app_settings)


def get_vector_store_factory(
    app_settings: Annotated[Settings, Depends(get_settings)],
) -> VectorStoreFactory | None:
    """Per-namespace store builder, or ``None`` when indexing is not configured."""
    if not app_settings.indexing_enabled:
        return None

    from personal_brain.retrieval.pinecone_store import PineconeStore

    def factory(namespace: str) -> VectorStoreBase:
        return PineconeStore(get_pinecone_index(), get_embeddings(), namespace=namespace)

    return factory


def current_user(
    request: Request, auth: Annotated[AuthGate, Depends(get_auth_gate)]
) -> AuthenticatedUser:
    """Resolve the caller; ``UnauthorizedError`` is rendered as 401 by the app."""
    return auth.authenticate(request.cookies)


CurrentUser = Annotated[AuthenticatedUser, Depends(current_user)]
MemoryStore = Annotated[MemoryStoreBase, Depends(get_memory_store)]
