"""
Storage — the relational source of truth for memory records.

Every note the user saves lands here first.  The vector index only ever
holds chunks derived from these rows.
"""

from personal_brain.storage.base import MemoryStoreBase
from personal_brain.storage.models import MemoryRecord

__all__ = ["MemoryRecord", "MemoryStoreBase", "SupabaseMemoryStore"]


def __getattr__(name: str):  # noqa: ANN001
    """Lazy-import SupabaseMemoryStore to avoid pulling in supabase at import time."""
    if name == "SupabaseMemoryStore":
        from personal_brain.storage.supabase_store import SupabaseMemoryStore

        return SupabaseMemoryStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
