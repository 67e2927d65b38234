"""Chunkwise domain models -- re-exports all public model classes.

    - document.py     -- Document, Chunk and Dataset records
    - processing.py   -- processing-log entries and step checkpoints
    - ingestion.py    -- trigger, step payloads and run outcomes
    - notification.py -- administrator notifications
"""

from __future__ import annotations

from chunkwise.models.document import (
    Chunk,
    ChunkStatus,
    Dataset,
    DatasetStats,
    Document,
    DocumentStatus,
    ProgressStep,
)
from chunkwise.models.ingestion import (
    ContextResult,
    EnrichmentOptions,
    IngestionFailure,
    IngestionOutcome,
    IngestionSuccess,
    IngestionTrigger,
    ParsedDocument,
    SegmentationConfig,
    SegmentedChunk,
)
from chunkwise.models.notification import Notification, NotificationType
from chunkwise.models.processing import (
    PIPELINE_LOG_STEP,
    LogStatus,
    PipelineStep,
    ProcessingLogEntry,
    StepCheckpoint,
)

__all__ = [
    "Chunk",
    "ChunkStatus",
    "ContextResult",
    "Dataset",
    "DatasetStats",
    "Document",
    "DocumentStatus",
    "EnrichmentOptions",
    "IngestionFailure",
    "IngestionOutcome",
    "IngestionSuccess",
    "IngestionTrigger",
    "LogStatus",
    "Notification",
    "NotificationType",
    "PIPELINE_LOG_STEP",
    "ParsedDocument",
    "PipelineStep",
    "ProcessingLogEntry",
    "ProgressStep",
    "SegmentationConfig",
    "SegmentedChunk",
    "StepCheckpoint",
]
