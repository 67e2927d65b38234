"""Utility modules for Chunkwise.

- **errors** -- Domain exception hierarchy rooted at ChunkwiseError; every
  class declares whether the ingestion orchestrator may retry it.
- **concurrency** -- batched fan-out helpers that keep per-chunk LLM calls
  under provider rate limits.
- **logging** -- structlog setup with a dual-renderer pattern plus helpers
  that bind the document being ingested into every log event.
"""

from chunkwise.utils.concurrency import run_in_batches
from chunkwise.utils.errors import (
    ChunkIntegrityError,
    ChunkwiseError,
    ConfigurationError,
    DocumentNotFoundError,
    DocumentParseError,
    EmbeddingError,
    IngestionInputError,
    LLMError,
    PipelineError,
    ProviderUnavailableError,
    RateLimitError,
    StepTimeoutError,
    StorageAccessError,
    StorageNotFoundError,
    is_recoverable,
)
from chunkwise.utils.logging import (
    bind_ingestion_context,
    clear_ingestion_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "ChunkIntegrityError",
    "ChunkwiseError",
    "ConfigurationError",
    "DocumentNotFoundError",
    "DocumentParseError",
    "EmbeddingError",
    "IngestionInputError",
    "LLMError",
    "PipelineError",
    "ProviderUnavailableError",
    "RateLimitError",
    "StepTimeoutError",
    "StorageAccessError",
    "StorageNotFoundError",
    "bind_ingestion_context",
    "clear_ingestion_context",
    "configure_logging",
    "get_logger",
    "is_recoverable",
    "run_in_batches",
]
