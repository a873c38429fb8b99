"""Ingest outcomes as explicit result types.

An ingest either fails before anything durable happened (:class:`Failure`)
or the record is stored, in which case the outcome is :class:`Success` or
:class:`SuccessWithWarning` depending on the vector path.  Callers branch
on the type rather than on exceptions, so a degraded outcome can never be
mistaken for a failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class IngestState(str, Enum):
    """States of the ingest handler.

    ``AUTH_PENDING → AUTHENTICATED → PERSISTED`` then exactly one terminal
    state.  ``UNAUTHORIZED``, ``BAD_INPUT`` and ``STORAGE_FAILED`` are the
    terminal states reached before anything is indexed.
    """

    AUTH_PENDING = "auth_pending"
    AUTHENTICATED = "authenticated"
    PERSISTED = "persisted"
    SKIPPED_TOO_SHORT = "skipped_too_short"
    NOT_CONFIGURED = "not_configured"
    INDEXED = "indexed"
    INDEX_FAILED = "index_failed"
    UNAUTHORIZED = "unauthorized"
    BAD_INPUT = "bad_input"
    STORAGE_FAILED = "storage_failed"


class FailureKind(str, Enum):
    """Why an ingest aborted, with the HTTP status it maps to."""

    UNAUTHORIZED = "unauthorized"
    BAD_INPUT = "bad_input"
    NOT_FOUND = "not_found"
    STORAGE_ERROR = "storage_error"

    @property
    def status_code(self) -> int:
        return _FAILURE_STATUS[self]


_FAILURE_STATUS = {
    FailureKind.UNAUTHORIZED: 401,
    FailureKind.BAD_INPUT: 400,
    FailureKind.NOT_FOUND: 404,
    FailureKind.STORAGE_ERROR: 500,
}


@dataclass(frozen=True)
class Success:
    """Record stored; indexed or deliberately not indexed."""

    note_id: str
    message: str
    state: IngestState

    status_code = 200

    def to_body(self) -> dict[str, Any]:
        return {"success": True, "noteId": self.note_id, "message": self.message}


@dataclass(frozen=True)
class SuccessWithWarning:
    """Record stored, but it is not (or not fully) searchable.

    Attributes
    ----------
    reason:
        Short warning surfaced to the client, e.g. the indexing error.
    """

    note_id: str
    message: str
    reason: str
    state: IngestState

    status_code = 200

    def to_body(self) -> dict[str, Any]:
        return {
            "success": True,
            "noteId": self.note_id,
            "message": self.message,
            "warning": self.reason,
        }


@dataclass(frozen=True)
class Failure:
    """Nothing was stored."""

    kind: FailureKind
    error: str
    details: str | None = None
    code: str | None = None

    @property
    def state(self) -> IngestState:
        return {
            FailureKind.UNAUTHORIZED: IngestState.UNAUTHORIZED,
            FailureKind.BAD_INPUT: IngestState.BAD_INPUT,
        }.get(self.kind, IngestState.STORAGE_FAILED)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = {"success": False, "error": self.error}
        if self.details is not None:
            body["details"] = self.details
        if self.code is not None:
            body["code"] = self.code
        return body


IngestResult = Union[Success, SuccessWithWarning, Failure]
