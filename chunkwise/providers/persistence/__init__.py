"""Persistence adapters for documents, chunks, logs and checkpoints."""

from chunkwise.providers.persistence.sqlite_document_repository import SQLiteDocumentRepository

__all__ = ["SQLiteDocumentRepository"]
