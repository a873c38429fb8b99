"""Text chunking for memory records."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from langchain_text_splitters import RecursiveCharacterTextSplitter

if TYPE_CHECKING:
    from langchain_core.documents import Document

DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200


def chunk_memory(
    content: str,
    metadata: dict[str, Any] | None,
    *,
    note_id: str,
    user_id: str,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP,
) -> list[Document]:
    """Split *content* into overlapping windows ready for embedding.

    Parameters
    ----------
    content:
        Full text of the memory record.
    metadata:
        Record metadata copied onto every chunk.
    note_id:
        Id of the parent record; stamped as ``noteId``.
    user_id:
        Owner id; stamped as ``userId``.
    chunk_size:
        Maximum number of characters per chunk.
    chunk_overlap:
        Number of overlapping characters between consecutive chunks.

    Returns
    -------
    list[Document]
        Chunks in source order.  Each carries ``chunkIndex`` and
        ``chunkCount`` alongside the shared metadata.  Content shorter
        than *chunk_size* yields exactly one chunk.
    """
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        length_function=len,
    )
    # Ownership keys are applied last so record metadata cannot override them.
    base = {**(metadata or {}), "noteId": note_id, "userId": user_id}
    chunks = splitter.create_documents([content], [base])

    for index, chunk in enumerate(chunks):
        chunk.metadata["chunkIndex"] = index
        chunk.metadata["chunkCount"] = len(chunks)
    return chunks


def chunk_id(note_id: str, chunk_index: int) -> str:
    """Deterministic vector id (``<noteId>#<chunkIndex>``) so re-saves overwrite."""
    return f"{note_id}#{chunk_index}"


def chunk_ids(chunks: list[Document]) -> list[str]:
    return [chunk_id(c.metadata["noteId"], c.metadata["chunkIndex"]) for c in chunks]
