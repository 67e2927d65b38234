"""Ingestion pipeline: step checkpointing, progress tracking, orchestration."""

from chunkwise.pipeline.checkpoints import StepRunner
from chunkwise.pipeline.orchestrator import IngestionOrchestrator, PipelineTimeouts
from chunkwise.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "IngestionOrchestrator",
    "PipelineTimeouts",
    "ProgressTracker",
    "StepRunner",
]
