"""Exception taxonomy shared by every layer of the service.

Modules that talk to an external collaborator (Supabase, Pinecone, the
embedding provider) translate that collaborator's exceptions into one of
these classes, so callers only ever branch on ``BrainError`` subclasses.
"""

from __future__ import annotations


class BrainError(Exception):
    """Base class for all expected failures."""

    status_code: int = 500
    error: str = "Internal error"

    def __init__(self, message: str = "", *, details: str | None = None) -> None:
        super().__init__(message or self.error)
        self.message = message or self.error
        self.details = details


class UnauthorizedError(BrainError):
    """Missing, malformed or rejected session."""

    status_code = 401
    error = "Unauthorized"


class BadInputError(BrainError):
    """The request payload cannot be accepted."""

    status_code = 400
    error = "Bad input"


class UnsupportedUploadError(BadInputError):
    """Uploaded file type or size is not accepted."""

    error = "Unsupported upload"


class StorageError(BrainError):
    """The relational store rejected a read or write."""

    status_code = 500
    error = "Database error"

    def __init__(
        self, message: str = "", *, details: str | None = None, code: str | None = None
    ) -> None:
        super().__init__(message, details=details)
        self.code = code


class RecordNotFoundError(BrainError):
    """No record with that id is owned by the caller."""

    status_code = 404
    error = "Not found"


class IndexingError(BrainError):
    """Chunking, embedding or vector upsert failed."""

    error = "Vector indexing failed"
