"""FastAPI routes for the Chunkwise ingestion pipeline.

Endpoint                                  Method  Description
--------------------------------------------------------------------------
/api/v1/documents/{document_id}/ingest    POST    Schedule an ingestion run (202)
/api/v1/documents/{document_id}/progress  GET     Poll status and progress
/api/v1/documents/{document_id}/logs      GET     Processing log of the latest run
/api/v1/documents/{document_id}/chunks    GET     Persisted chunks of the document
/api/v1/datasets/{dataset_id}/stats       GET     Recomputed dataset aggregates
/api/v1/health                            GET     Health check + provider status

Every document and dataset route is tenant-scoped: the caller supplies its
tenant id and a resource owned by another tenant is reported as 404.
Service dependencies are resolved from ``app.state`` via ``Depends``.
"""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from chunkwise import __version__
from chunkwise.api.schemas import (
    ChunkItem,
    ChunkListResponse,
    DatasetStatsResponse,
    HealthResponse,
    IngestAcceptedResponse,
    IngestRequest,
    ProcessingLogItem,
    ProcessingLogResponse,
    ProgressResponse,
)
from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.document import Document, DocumentStatus
from chunkwise.models.ingestion import IngestionTrigger
from chunkwise.pipeline.orchestrator import IngestionOrchestrator
from chunkwise.pipeline.progress_tracker import ProgressTracker
from chunkwise.utils.logging import get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

router = APIRouter(prefix="/api/v1")


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _get_orchestrator(request: Request) -> IngestionOrchestrator:
    return request.app.state.orchestrator


def _get_repository(request: Request) -> IDocumentRepository:
    return request.app.state.repository


def _get_progress_tracker(request: Request) -> ProgressTracker:
    return request.app.state.progress_tracker


OrchestratorDep = Annotated[IngestionOrchestrator, Depends(_get_orchestrator)]
RepositoryDep = Annotated[IDocumentRepository, Depends(_get_repository)]
TrackerDep = Annotated[ProgressTracker, Depends(_get_progress_tracker)]
TenantQuery = Annotated[str, Query(min_length=1, description="Tenant owning the resource")]


async def _require_document(
    repository: IDocumentRepository, document_id: str, tenant_id: str
) -> Document:
    document = await repository.get_document(document_id)
    if document is None or document.tenant_id != tenant_id:
        raise HTTPException(status_code=404, detail=f"Document {document_id} not found")
    return document


# ---------------------------------------------------------------------------
# Ingestion trigger
# ---------------------------------------------------------------------------


@router.post(
    "/documents/{document_id}/ingest",
    response_model=IngestAcceptedResponse,
    status_code=202,
    summary="Schedule ingestion of an uploaded document",
)
async def ingest_document(
    document_id: str,
    body: IngestRequest,
    background_tasks: BackgroundTasks,
    orchestrator: OrchestratorDep,
    repository: RepositoryDep,
) -> IngestAcceptedResponse:
    """Validate ownership, then run the pipeline after the response is sent."""
    document = await _require_document(repository, document_id, body.tenant_id)
    if document.status == DocumentStatus.PROCESSING and body.run_id is None:
        raise HTTPException(status_code=409, detail="Document is already being processed")

    fields: dict[str, Any] = {
        "document_id": document.id,
        "tenant_id": document.tenant_id,
        "dataset_id": body.dataset_id,
        "user_id": body.user_id,
        "filename": document.filename,
        "file_type": document.file_type,
        "file_path": document.file_path,
    }
    if body.run_id:
        fields["run_id"] = body.run_id
    trigger = IngestionTrigger(**fields)

    background_tasks.add_task(orchestrator.run, trigger)
    _logger.info(
        "ingestion_scheduled",
        document_id=document.id,
        tenant_id=document.tenant_id,
        run_id=trigger.run_id,
    )
    return IngestAcceptedResponse(document_id=document.id, run_id=trigger.run_id)


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------


@router.get(
    "/documents/{document_id}/progress",
    response_model=ProgressResponse,
    summary="Poll ingestion progress",
)
async def get_progress(
    document_id: str,
    tenant_id: TenantQuery,
    repository: RepositoryDep,
    tracker: TrackerDep,
) -> ProgressResponse:
    document = await _require_document(repository, document_id, tenant_id)
    live = tracker.get_status(document_id)
    return ProgressResponse(
        document_id=document.id,
        status=document.status.value,
        progress_step=document.progress_step.value if document.progress_step else None,
        progress_percent=document.progress_percent,
        message=live.get("message") or None,
        error_message=document.error_message,
    )


@router.get(
    "/documents/{document_id}/logs",
    response_model=ProcessingLogResponse,
    summary="Processing log of the latest run",
)
async def get_processing_logs(
    document_id: str,
    tenant_id: TenantQuery,
    repository: RepositoryDep,
) -> ProcessingLogResponse:
    await _require_document(repository, document_id, tenant_id)
    entries = await repository.list_logs(document_id)
    return ProcessingLogResponse(
        document_id=document_id,
        entries=[
            ProcessingLogItem(
                step=e.step,
                status=e.status.value,
                message=e.message,
                details=e.details,
                duration_ms=e.duration_ms,
                error_message=e.error_message,
                created_at=e.created_at,
            )
            for e in entries
        ],
    )


@router.get(
    "/documents/{document_id}/chunks",
    response_model=ChunkListResponse,
    summary="Persisted chunks of a document",
)
async def get_chunks(
    document_id: str,
    tenant_id: TenantQuery,
    repository: RepositoryDep,
) -> ChunkListResponse:
    await _require_document(repository, document_id, tenant_id)
    chunks = await repository.list_chunks(document_id)
    auto_approved = sum(1 for c in chunks if c.auto_approved)
    return ChunkListResponse(
        document_id=document_id,
        total=len(chunks),
        auto_approved=auto_approved,
        pending_review=len(chunks) - auto_approved,
        chunks=[
            ChunkItem(
                id=c.id,
                chunk_index=c.chunk_index,
                content=c.content,
                context_prefix=c.context_prefix,
                quality_score=c.quality_score,
                status=c.status.value,
                auto_approved=c.auto_approved,
                metadata=c.metadata,
            )
            for c in chunks
        ],
    )


@router.get(
    "/datasets/{dataset_id}/stats",
    response_model=DatasetStatsResponse,
    summary="Dataset aggregate counts",
)
async def get_dataset_stats(
    dataset_id: str,
    tenant_id: TenantQuery,
    repository: RepositoryDep,
) -> DatasetStatsResponse:
    dataset = await repository.get_dataset(dataset_id)
    if dataset is None or dataset.tenant_id != tenant_id:
        raise HTTPException(status_code=404, detail=f"Dataset {dataset_id} not found")
    return DatasetStatsResponse(
        dataset_id=dataset.id,
        name=dataset.name,
        document_count=dataset.document_count,
        chunk_count=dataset.chunk_count,
        total_storage_bytes=dataset.total_storage_bytes,
        updated_at=dataset.updated_at,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Application health check",
)
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability.

    ``unhealthy`` without an embedding provider; ``degraded`` when context
    generation is disabled.
    """
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}))

    if not providers.get("embedding", False):
        status = "unhealthy"
    elif not providers.get("context_generation", False):
        status = "degraded"
    else:
        status = "healthy"

    return HealthResponse(status=status, version=__version__, providers=providers)
