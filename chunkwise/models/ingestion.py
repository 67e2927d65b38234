"""Typed payloads flowing through the ingestion pipeline.

The trigger, every step result and the terminal outcome are explicit
models so optional fields (``dataset_id``, ``prompt``) are visible in the
types instead of hidden in loosely-shaped dicts.
"""

from __future__ import annotations

import uuid
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from chunkwise.models.document import DocumentStatus


class IngestionTrigger(BaseModel):
    """Job input emitted when a document has been uploaded.

    ``run_id`` identifies one (re)processing attempt.  Re-delivering the
    same trigger (same ``run_id``) resumes from the last checkpoint; a new
    ``run_id`` starts over from a clean slate.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    tenant_id: str
    dataset_id: str | None = None
    user_id: str = ""
    filename: str
    file_type: str
    file_path: str
    run_id: str = Field(default_factory=lambda: uuid.uuid4().hex)


class ParsedDocument(BaseModel):
    """Plain text extracted from raw document bytes."""

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class SegmentationConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_chunk_size: int = Field(default=500, gt=0)
    overlap: int = Field(default=50, ge=0)
    preserve_structure: bool = True


class SegmentedChunk(BaseModel):
    """One fragment emitted by the segmenter, before enrichment and embedding."""

    model_config = ConfigDict(frozen=True)

    index: int = Field(ge=0)
    content: str
    quality_score: float = Field(ge=0.0, le=100.0)
    metadata: dict[str, Any] = Field(default_factory=dict)


class EnrichmentOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    batch_size: int = Field(default=10, gt=0)
    batch_delay_ms: int = Field(default=200, ge=0)
    max_document_length: int = Field(default=20000, gt=0)
    max_context_tokens: int = Field(default=150, gt=0)
    save_prompt: bool = True


class ContextResult(BaseModel):
    """Context prefix generated for one chunk.

    An empty ``context_prefix`` means enrichment failed or was skipped for
    that chunk; the chunk is still embedded from its content alone.
    """

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0)
    context_prefix: str = ""
    prompt: str | None = None


class IngestionSuccess(BaseModel):
    model_config = ConfigDict(frozen=True)

    outcome: Literal["success"] = "success"
    document_id: str
    tenant_id: str
    run_id: str
    chunk_count: int = Field(ge=0)
    auto_approved: int = Field(ge=0)
    pending_review: int = Field(ge=0)
    final_status: DocumentStatus
    attempts: int = Field(default=1, ge=1)

    @property
    def ok(self) -> bool:
        return True


class IngestionFailure(BaseModel):
    """Terminal failure carried back to the caller of the orchestrator.

    ``step`` is the pipeline step that raised; ``error`` is the
    user-facing message also written to the document record.
    """

    model_config = ConfigDict(frozen=True)

    outcome: Literal["failure"] = "failure"
    document_id: str
    tenant_id: str
    run_id: str
    step: str | None = None
    error: str
    error_type: str
    stack: str | None = None
    recoverable: bool = True
    attempts: int = Field(default=1, ge=1)

    @property
    def ok(self) -> bool:
        return False


IngestionOutcome = IngestionSuccess | IngestionFailure
