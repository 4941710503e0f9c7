"""Document store backends."""

from __future__ import annotations

from botparts.config import Settings

from .base import Document, DocumentStore, DocumentWatch, split_document_path
from .memory import MemoryDocumentStore
from .sqlite import SqliteDocumentStore


def open_store(settings: Settings) -> DocumentStore:
    """Build the backend named by ``settings.store``."""

    if settings.store == "memory":
        return MemoryDocumentStore()
    return SqliteDocumentStore(settings.db_path)


__all__ = [
    "Document",
    "DocumentStore",
    "DocumentWatch",
    "MemoryDocumentStore",
    "SqliteDocumentStore",
    "open_store",
    "split_document_path",
]
