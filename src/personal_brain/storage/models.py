"""Domain model for stored memories."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class MemoryRecord(BaseModel):
    """One row of the ``memories`` table.

    Attributes
    ----------
    id:
        Opaque identifier generated by the store.
    user_id:
        Owner.  Always the authenticated user, never taken from the client.
    content:
        Raw note text exactly as submitted.
    metadata:
        Free-form key/values (``title``, ``tags``, …).
    created_at / updated_at:
        Timestamps maintained by the store.
    """

    id: str
    user_id: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def title(self) -> str:
        return str(self.metadata.get("title") or "Untitled")
