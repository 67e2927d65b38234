"""Processing-log entries and per-run step checkpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class PipelineStep(str, Enum):  # noqa: UP042
    """Checkpointed steps of an ingestion run, in execution order."""

    INITIALIZE = "initialize_processing"
    PARSE = "parse_document"
    CHUNK = "chunk_document"
    CONTEXT = "generate_context"
    EMBED = "generate_embeddings"
    PERSIST = "save_chunks"
    STATISTICS = "update_dataset_stats"
    FINALIZE = "update_status"
    NOTIFY = "notify_admin"


# Log-only step name for run-level entries (final summary, terminal failure).
PIPELINE_LOG_STEP = "pipeline"


class LogStatus(str, Enum):  # noqa: UP042
    STARTED = "started"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class ProcessingLogEntry(BaseModel):
    """One append-only record of a pipeline step outcome.

    Cleared at the start of each fresh (re)processing run so the log always
    reflects the latest attempt.
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    document_id: str
    tenant_id: str
    step: str
    status: LogStatus
    message: str = ""
    details: dict[str, Any] = Field(default_factory=dict)
    duration_ms: int | None = Field(default=None, ge=0)
    error_message: str | None = None
    error_stack: str | None = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class StepCheckpoint(BaseModel):
    """Durable record that *step* finished for a given ingestion run.

    ``result`` is the JSON-serialisable value the step returned; on resume
    the orchestrator reuses it instead of executing the step again.
    """

    model_config = ConfigDict(frozen=True)

    document_id: str
    run_id: str
    step: str
    result: Any = None
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )
