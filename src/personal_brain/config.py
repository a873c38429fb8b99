"""Shared configuration loaded from environment / .env file."""

from __future__ import annotations

from urllib.parse import urlparse

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Env-var names of the credentials the vector path cannot run without.
VECTOR_SETTINGS: dict[str, str] = {
    "pinecone_api_key": "PINECONE_API_KEY",
    "pinecone_index_name": "PINECONE_INDEX_NAME",
    "openrouter_api_key": "OPENROUTER_API_KEY",
}


class Settings(BaseSettings):
    """Application-wide settings, populated from env vars or .env file."""

    # Relational store / auth provider
    supabase_url: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_URL", "NEXT_PUBLIC_SUPABASE_URL"),
    )
    supabase_anon_key: str = Field(
        default="",
        validation_alias=AliasChoices("SUPABASE_ANON_KEY", "NEXT_PUBLIC_SUPABASE_ANON_KEY"),
    )
    supabase_service_role_key: str = Field(
        default="",
        description="Server-side key. Falls back to the anon key when unset.",
    )
    auth_cookie_name: str = Field(
        default="",
        description="Session cookie name. Empty means 'sb-<project-ref>-auth-token'.",
    )
    memories_table: str = "memories"

    # Vector store
    pinecone_api_key: str = ""
    pinecone_index_name: str = ""

    # Embedding
    openrouter_api_key: str = ""
    embedding_base_url: str = "https://openrouter.ai/api/v1"
    embedding_model: str = "openai/text-embedding-3-small"

    # Ingestion
    chunk_size: int = 1000
    chunk_overlap: int = 200
    min_indexable_length: int = Field(
        default=3,
        description="Trimmed content shorter than this is stored but never embedded.",
    )
    max_upload_bytes: int = 10 * 1024 * 1024

    # Retrieval
    search_default_k: int = 5

    # Serving
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def missing_vector_settings(self) -> list[str]:
        """Return env-var names of the indexing credentials that are not set."""
        return [env for field, env in VECTOR_SETTINGS.items() if not getattr(self, field).strip()]

    @property
    def indexing_enabled(self) -> bool:
        return not self.missing_vector_settings()

    @property
    def supabase_key(self) -> str:
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def session_cookie_name(self) -> str:
        """Cookie the browser client stores the Supabase session under."""
        if self.auth_cookie_name:
            return self.auth_cookie_name
        host = urlparse(self.supabase_url).hostname or ""
        project_ref = host.split(".")[0] if host else "local"
        return f"sb-{project_ref}-auth-token"


# Singleton — import `settings` wherever needed.
settings = Settings()
