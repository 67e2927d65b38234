"""Chunkwise API layer: routes, schemas and middleware."""

from chunkwise.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from chunkwise.api.routes import router
from chunkwise.api.schemas import (
    ChunkListResponse,
    DatasetStatsResponse,
    ErrorResponse,
    HealthResponse,
    IngestAcceptedResponse,
    IngestRequest,
    ProcessingLogResponse,
    ProgressResponse,
)

__all__ = [
    "ChunkListResponse",
    "DatasetStatsResponse",
    "ErrorHandlingMiddleware",
    "ErrorResponse",
    "HealthResponse",
    "IngestAcceptedResponse",
    "IngestRequest",
    "ProcessingLogResponse",
    "ProgressResponse",
    "RequestLoggingMiddleware",
    "configure_cors",
    "router",
]
