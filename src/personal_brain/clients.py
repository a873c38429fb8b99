"""Process-wide provider clients.

Each factory builds its client once and hands the same instance to every
request.  :func:`reset_clients` drops them so the next call rebuilds
from current settings; the FastAPI lifespan calls it on shutdown.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING

from personal_brain.config import settings

if TYPE_CHECKING:
    from langchain_openai import OpenAIEmbeddings
    from pinecone import Pinecone
    from supabase import Client

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Return the shared Supabase client."""
    from supabase import create_client

    if not settings.supabase_url or not settings.supabase_key:
        raise ValueError(
            "SUPABASE_URL and one of SUPABASE_SERVICE_ROLE_KEY / SUPABASE_ANON_KEY must be set"
        )
    logger.info("Creating Supabase client for %s", settings.supabase_url)
    return create_client(settings.supabase_url, settings.supabase_key)


@lru_cache(maxsize=1)
def get_pinecone_client() -> Pinecone:
    """Return the shared Pinecone control-plane client."""
    from pinecone import Pinecone

    return Pinecone(api_key=settings.pinecone_api_key)


@lru_cache(maxsize=1)
def get_pinecone_index():  # noqa: ANN201
    """Return the data-plane handle of the configured Pinecone index."""
    logger.info("Connecting to Pinecone index %s", settings.pinecone_index_name)
    return get_pinecone_client().Index(settings.pinecone_index_name)


@lru_cache(maxsize=1)
def get_embeddings() -> OpenAIEmbeddings:
    """Return the shared embedding client (OpenAI-compatible endpoint)."""
    from personal_brain.ingestion.embedder import get_embedding_function

    return get_embedding_function()


def reset_clients() -> None:
    """Forget every cached client."""
    for factory in (get_supabase_client, get_pinecone_client, get_pinecone_index, get_embeddings):
        factory.cache_clear()
