"""FastAPI application exposing ingest, memory records and search."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastapi import Body, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from personal_brain.clients import reset_clients
from personal_brain.config import Settings, settings
from personal_brain.errors import BrainError, StorageError, UnsupportedUploadError
from personal_brain.ingestion.loader import extract_upload_text
from personal_brain.ingestion.results import IngestResult
from personal_brain.ingestion.service import IngestService
from personal_brain.retrieval.models import RetrievalResult
from personal_brain.retrieval.retriever import SemanticRetriever, keyword_results, search_filters
from personal_brain.serving.dependencies import (
    CurrentUser,
    MemoryStore,
    VectorStoreFactory,
    get_ingest_service,
    get_settings,
    get_vector_store_factory,
)
from personal_brain.storage.models import MemoryRecord

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log the effective configuration; drop pooled clients on shutdown."""
    missing = settings.missing_vector_settings()
    if missing:
        logger.warning("Vector indexing disabled, missing: %s", ", ".join(missing))
    else:
        logger.info("Vector indexing enabled (index=%s)", settings.pinecone_index_name)
    yield
    reset_clients()
    logger.info("Provider clients released")


app = FastAPI(
    title="Personal Brain API",
    version="0.1.0",
    description="Notes, uploads and semantic search over a personal knowledge base.",
    lifespan=lifespan,
)


@app.exception_handler(BrainError)
async def brain_error_handler(request: Request, exc: BrainError) -> JSONResponse:
    body: dict[str, Any] = {"success": False, "error": exc.error, "details": exc.details or exc.message}
    if isinstance(exc, StorageError) and exc.code:
        body["code"] = exc.code
    return JSONResponse(body, status_code=exc.status_code)


# ── Request / Response schemas ────────────────────────────────────────
class SearchResponse(BaseModel):
    """Ranked passages for a query."""

    success: bool = True
    query: str
    mode: str
    results: list[RetrievalResult] = []
    warning: str | None = None


IngestServiceDep = Annotated[IngestService, Depends(get_ingest_service)]
# Any JSON value; the ingest service validates the fields after auth.
NoteBody = Annotated[Any, Body()]


def _respond(result: IngestResult) -> JSONResponse:
    return JSONResponse(result.to_body(), status_code=result.status_code)


def _note_fields(payload: Any) -> tuple[Any, Any]:
    """``(content, metadata)`` from a request body, ``None`` where absent."""
    if not isinstance(payload, dict):
        return None, None
    return payload.get("content"), payload.get("metadata")


# ── Routes ────────────────────────────────────────────────────────────
@app.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "ok"}


@app.post("/api/ingest")
def ingest(request: Request, service: IngestServiceDep, payload: NoteBody = None) -> JSONResponse:
    """Save a note and, when possible, make it searchable."""
    logger.info("Ingest called (cookies=%s)", sorted(request.cookies))
    content, metadata = _note_fields(payload)
    return _respond(service.ingest(request.cookies, content, metadata))


@app.get("/api/memories", response_model=list[MemoryRecord])
def list_memories(
    user: CurrentUser,
    store: MemoryStore,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> list[MemoryRecord]:
    """The caller's memories, most recently updated first."""
    return store.list_for_user(user.id, limit=limit)


@app.get("/api/memories/{memory_id}", response_model=MemoryRecord)
def get_memory(memory_id: str, user: CurrentUser, store: MemoryStore) -> MemoryRecord:
    return store.get(memory_id, user_id=user.id)


@app.put("/api/memories/{memory_id}")
def resave_memory(
    memory_id: str, request: Request, service: IngestServiceDep, payload: NoteBody = None
) -> JSONResponse:
    """Re-save an existing memory and re-index it in full."""
    content, metadata = _note_fields(payload)
    return _respond(service.ingest(request.cookies, content, metadata, note_id=memory_id))


@app.post("/api/memories/upload")
def upload_memory(
    user: CurrentUser,
    service: IngestServiceDep,
    app_settings: Annotated[Settings, Depends(get_settings)],
    file: Annotated[UploadFile, File()],
    source_name: Annotated[str | None, Form()] = None,
    tags: Annotated[str, Form()] = "",
    is_private: Annotated[bool, Form()] = False,
) -> JSONResponse:
    """Extract text from an uploaded file and ingest it as a memory."""
    filename = file.filename or "upload"
    data = file.file.read(app_settings.max_upload_bytes + 1)
    if len(data) > app_settings.max_upload_bytes:
        raise UnsupportedUploadError(
            "File too large", details=f"Limit is {app_settings.max_upload_bytes} bytes"
        )

    content = extract_upload_text(filename, data)
    metadata = {
        "title": filename,
        "fileName": filename,
        "source": source_name or filename,
        "tags": [t.strip() for t in tags.split(",") if t.strip()],
        "isPrivate": is_private,
    }
    logger.info("Upload %s from user %s (%d bytes)", filename, user.id, len(data))
    return _respond(service.ingest_for_user(user, content, metadata))


@app.get("/api/search", response_model=SearchResponse, response_model_exclude_none=True)
def search(
    user: CurrentUser,
    store: MemoryStore,
    vector_store_factory: Annotated[VectorStoreFactory | None, Depends(get_vector_store_factory)],
    app_settings: Annotated[Settings, Depends(get_settings)],
    q: Annotated[str, Query(min_length=1)],
    k: Annotated[int | None, Query(ge=1, le=50)] = None,
    note_id: str | None = None,
    tag: Annotated[list[str] | None, Query()] = None,
    min_score: Annotated[float, Query(ge=0.0, le=1.0)] = 0.0,
) -> SearchResponse:
    """Semantic search in the caller's namespace, keyword search as fallback.

    ``note_id`` limits hits to one memory and repeated ``tag`` parameters to
    memories carrying any of those tags.  ``min_score`` drops weaker vector hits.
    """
    k = k or app_settings.search_default_k

    if vector_store_factory is None:
        records = store.search_text(user.id, q, limit=k)
        return SearchResponse(
            query=q,
            mode="keyword",
            results=keyword_results(records, note_id=note_id, tags=tag),
            warning="Vector storage not configured; showing keyword matches",
        )

    try:
        retriever = SemanticRetriever(
            vector_store_factory(user.id), default_k=k, score_threshold=min_score
        )
        results = retriever.search(q, filters=search_filters(note_id=note_id, tags=tag))
    except Exception as exc:  # noqa: BLE001 - keyword matches are still useful
        logger.warning("Semantic search failed for user %s", user.id, exc_info=True)
        records = store.search_text(user.id, q, limit=k)
        return SearchResponse(
            query=q,
            mode="keyword",
            results=keyword_results(records, note_id=note_id, tags=tag),
            warning=f"Semantic search failed: {exc}",
        )
    return SearchResponse(query=q, mode="semantic", results=results)


def main() -> None:
    """Console entry point: run the API under uvicorn."""
    import uvicorn

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
