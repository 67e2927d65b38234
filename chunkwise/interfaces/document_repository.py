"""Abstract base class for the document store.

One repository holds every record the ingestion pipeline reads or writes:
documents, chunks, dataset aggregates, processing logs and step
checkpoints.  Keeping checkpoints in the same store as the document lets
a resumed run see exactly the state its previous attempt left behind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from chunkwise.models.document import (
    Chunk,
    Dataset,
    Document,
    DocumentStatus,
    ProgressStep,
)
from chunkwise.models.processing import ProcessingLogEntry, StepCheckpoint


# Concrete implementations: SQLiteDocumentRepository
# Located in: chunkwise/providers/persistence/
class IDocumentRepository(ABC):
    """Contract for document, chunk, dataset, log and checkpoint persistence.

    All operations are async to support network-backed stores.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indexes if they do not exist yet."""

    # -- Documents ---------------------------------------------------------

    @abstractmethod
    async def create_document(self, document: Document) -> Document:
        """Insert a new document record and return it."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document, or ``None`` if it does not exist."""

    @abstractmethod
    async def list_documents(self, dataset_id: str | None = None) -> list[Document]:
        """Return documents, optionally restricted to one dataset."""

    @abstractmethod
    async def update_progress(
        self,
        document_id: str,
        step: ProgressStep | None,
        percent: int,
    ) -> None:
        """Record the current sub-step and percentage of a processing run."""

    @abstractmethod
    async def set_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_message: str | None = None,
        progress_step: ProgressStep | None = None,
        progress_percent: int | None = None,
    ) -> None:
        """Transition the document's status.

        ``error_message`` is written as given, so passing ``None`` clears a
        message left by an earlier failed run.
        """

    # -- Chunks ------------------------------------------------------------

    @abstractmethod
    async def delete_chunks_for_document(self, document_id: str) -> int:
        """Delete every chunk of *document_id*; return the number removed."""

    @abstractmethod
    async def insert_chunks(self, chunks: list[Chunk]) -> int:
        """Insert *chunks* atomically and return the number actually persisted.

        The returned count is read back from the store, not echoed from the
        input, so callers can detect a short write.
        """

    @abstractmethod
    async def list_chunks(self, document_id: str, active_only: bool = True) -> list[Chunk]:
        """Return the document's chunks ordered by ``chunk_index``."""

    # -- Datasets ----------------------------------------------------------

    @abstractmethod
    async def create_dataset(self, dataset: Dataset) -> Dataset:
        """Insert a new dataset record and return it."""

    @abstractmethod
    async def get_dataset(self, dataset_id: str) -> Dataset | None:
        """Return the dataset, or ``None`` if it does not exist."""

    @abstractmethod
    async def count_documents(self, dataset_id: str) -> int:
        """Count documents currently assigned to *dataset_id*."""

    @abstractmethod
    async def count_chunks(self, dataset_id: str) -> int:
        """Count active chunks currently assigned to *dataset_id*."""

    @abstractmethod
    async def sum_storage_bytes(self, dataset_id: str) -> int:
        """Sum ``file_size`` over documents assigned to *dataset_id*."""

    @abstractmethod
    async def update_dataset_stats(
        self,
        dataset_id: str,
        document_count: int,
        chunk_count: int,
        total_storage_bytes: int,
    ) -> None:
        """Overwrite the dataset's aggregate counts with absolute values."""

    # -- Processing logs ---------------------------------------------------

    @abstractmethod
    async def append_log(self, entry: ProcessingLogEntry) -> ProcessingLogEntry:
        """Append a processing-log entry and return it with its id set."""

    @abstractmethod
    async def list_logs(self, document_id: str) -> list[ProcessingLogEntry]:
        """Return the document's log entries in insertion order."""

    @abstractmethod
    async def clear_logs(self, document_id: str) -> int:
        """Delete all log entries of *document_id*; return the number removed."""

    # -- Step checkpoints --------------------------------------------------

    @abstractmethod
    async def save_checkpoint(self, checkpoint: StepCheckpoint) -> None:
        """Persist a step result, replacing any earlier one for the same step and run."""

    @abstractmethod
    async def load_checkpoints(self, document_id: str, run_id: str) -> dict[str, Any]:
        """Return ``{step: result}`` for every checkpoint of this run."""

    @abstractmethod
    async def clear_checkpoints(self, document_id: str, keep_run_id: str | None = None) -> int:
        """Delete checkpoints of *document_id* except those of *keep_run_id*."""
