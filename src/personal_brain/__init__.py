"""Personal Brain — notes, uploads and semantic search over a personal knowledge base."""

__version__ = "0.1.0"
