"""
Ingestion — persist a note, then chunk, embed and upsert it for search.

The relational write always happens first and is never undone; the
vector path is best effort and reports its outcome as a warning.
"""

from personal_brain.ingestion.results import (
    Failure,
    FailureKind,
    IngestResult,
    IngestState,
    Success,
    SuccessWithWarning,
)
from personal_brain.ingestion.service import IngestService

__all__ = [
    "Failure",
    "FailureKind",
    "IngestResult",
    "IngestService",
    "IngestState",
    "Success",
    "SuccessWithWarning",
]
