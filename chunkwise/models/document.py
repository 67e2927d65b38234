"""Persisted records: documents, chunks and dataset aggregates.

All models are frozen; repositories return fresh instances and state
changes go through the repository, never through mutation.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class DocumentStatus(str, Enum):  # noqa: UP042
    """Lifecycle of an uploaded document.

    ``uploaded`` → ``processing`` → ``approved`` | ``reviewing`` | ``failed``
    """

    UPLOADED = "uploaded"
    PROCESSING = "processing"
    REVIEWING = "reviewing"
    APPROVED = "approved"
    FAILED = "failed"


class ProgressStep(str, Enum):  # noqa: UP042
    """Sub-step reported while a document is ``processing``."""

    PARSING = "parsing"
    CHUNKING = "chunking"
    CONTEXT_GENERATION = "context_generation"
    EMBEDDING = "embedding"
    QUALITY_CHECK = "quality_check"


class ChunkStatus(str, Enum):  # noqa: UP042
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    MODIFIED = "modified"


class Document(BaseModel):
    """A tenant-scoped uploaded source document.

    ``dataset_id`` of ``None`` means the document lives in the tenant's
    library, unassigned to any dataset.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    dataset_id: str | None = None
    filename: str
    file_path: str
    file_type: str
    file_size: int = Field(default=0, ge=0)
    status: DocumentStatus = DocumentStatus.UPLOADED
    progress_step: ProgressStep | None = None
    progress_percent: int = Field(default=0, ge=0, le=100)
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


class Chunk(BaseModel):
    """A persisted, embedded, quality-classified fragment of a document.

    ``dataset_id`` is a denormalised copy of the owning document's dataset.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    document_id: str
    dataset_id: str | None = None
    chunk_index: int = Field(ge=0)
    content: str
    embedding: list[float] = Field(default_factory=list)
    quality_score: float = Field(ge=0.0, le=100.0)
    status: ChunkStatus = ChunkStatus.PENDING
    auto_approved: bool = False
    context_prefix: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    version: int = Field(default=1, ge=1)
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class Dataset(BaseModel):
    """A tenant-owned named collection with recomputed aggregate counts."""

    model_config = ConfigDict(frozen=True)

    id: str
    tenant_id: str
    name: str
    document_count: int = Field(default=0, ge=0)
    chunk_count: int = Field(default=0, ge=0)
    total_storage_bytes: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=_utcnow)


class DatasetStats(BaseModel):
    """Authoritative counts for one dataset, as written back by the aggregator."""

    model_config = ConfigDict(frozen=True)

    dataset_id: str
    document_count: int = Field(ge=0)
    chunk_count: int = Field(ge=0)
    total_storage_bytes: int = Field(ge=0)
