"""Pydantic request/response schemas for the Chunkwise API.

Defines the public contract for the ingestion trigger and the polling
endpoints (progress, processing log, chunks, dataset statistics, health).

Convention: request schemas end with "Request", response schemas end with
"Response".
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class IngestRequest(BaseModel):
    """Body of ``POST /documents/{id}/ingest``.

    ``run_id`` is optional; re-sending a previous ``run_id`` resumes that
    run from its last checkpoint instead of starting over.
    """

    tenant_id: str = Field(..., min_length=1)
    dataset_id: str | None = None
    user_id: str = ""
    run_id: str | None = None


class IngestAcceptedResponse(BaseModel):
    """Returned with 202 once the ingestion run has been scheduled."""

    document_id: str
    run_id: str
    status: str = "accepted"


class ProgressResponse(BaseModel):
    """Persisted status and progress of one document."""

    document_id: str
    status: str
    progress_step: str | None = None
    progress_percent: int = Field(ge=0, le=100)
    message: str | None = None
    error_message: str | None = None


class ProcessingLogItem(BaseModel):
    step: str
    status: str
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    duration_ms: int | None = None
    error_message: str | None = None
    created_at: datetime


class ProcessingLogResponse(BaseModel):
    document_id: str
    entries: list[ProcessingLogItem] = Field(default_factory=list)


class ChunkItem(BaseModel):
    """A persisted chunk without its embedding vector."""

    id: str
    chunk_index: int
    content: str
    context_prefix: str | None = None
    quality_score: float
    status: str
    auto_approved: bool
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChunkListResponse(BaseModel):
    document_id: str
    total: int
    auto_approved: int
    pending_review: int
    chunks: list[ChunkItem] = Field(default_factory=list)


class DatasetStatsResponse(BaseModel):
    dataset_id: str
    name: str
    document_count: int
    chunk_count: int
    total_storage_bytes: int
    updated_at: datetime


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
