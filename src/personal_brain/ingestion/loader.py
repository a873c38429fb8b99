"""Text extraction for uploaded files — thin wrappers around LangChain loaders."""

from __future__ import annotations

import tempfile
from pathlib import Path

from langchain_community.document_loaders import PyPDFLoader
from pypdf.errors import PyPdfError

from personal_brain.errors import UnsupportedUploadError

TEXT_EXTENSIONS = frozenset({".txt", ".md", ".markdown"})
PDF_EXTENSIONS = frozenset({".pdf"})
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | PDF_EXTENSIONS


def load_text(data: bytes) -> str:
    """Decode a plain-text or Markdown upload."""
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise UnsupportedUploadError("File is not valid UTF-8 text") from exc


def load_pdf(path: str | Path) -> str:
    """Load a single PDF file and join its pages."""
    try:
        pages = PyPDFLoader(str(path)).load()
    except PyPdfError as exc:
        raise UnsupportedUploadError("Could not read PDF", details=str(exc)) from exc
    return "\n\n".join(page.page_content for page in pages)


def extract_upload_text(filename: str, data: bytes) -> str:
    """Return the text content of an uploaded file.

    Parameters
    ----------
    filename:
        Client-supplied name; only its extension is used.
    data:
        Raw file bytes.

    Raises
    ------
    UnsupportedUploadError
        For extensions other than ``.txt``, ``.md``, ``.markdown`` and ``.pdf``.
    """
    suffix = Path(filename).suffix.lower()
    if suffix in TEXT_EXTENSIONS:
        return load_text(data)
    if suffix in PDF_EXTENSIONS:
        # PyPDFLoader reads from a path, not a buffer.
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "upload.pdf"
            path.write_bytes(data)
            return load_pdf(path)
    raise UnsupportedUploadError(
        f"Unsupported file type {suffix or '(none)'!r}",
        details=f"Supported: {', '.join(sorted(SUPPORTED_EXTENSIONS))}",
    )
