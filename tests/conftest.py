"""Shared pytest fixtures for the Chunkwise test suite."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.interfaces.notification_provider import INotificationProvider
from chunkwise.models.document import Dataset, Document
from chunkwise.models.ingestion import IngestionTrigger, SegmentedChunk
from chunkwise.pipeline.orchestrator import IngestionOrchestrator
from chunkwise.pipeline.progress_tracker import ProgressTracker
from chunkwise.providers.persistence.sqlite_document_repository import SQLiteDocumentRepository
from chunkwise.providers.storage.local_storage_provider import LocalStorageProvider
from chunkwise.services.chunk_store import ChunkStore
from chunkwise.services.dataset_stats import DatasetStatsAggregator
from chunkwise.services.parsing.document_parser import DocumentParser
from chunkwise.services.segmenter import ChunkSegmenter

TENANT = "tenant-a"
DATASET = "dataset-1"

SAMPLE_TEXT = (
    "Refund policy\n\n"
    "Customers may request a refund within thirty days of purchase. "
    "Refunds are issued to the original payment method.\n\n"
    "Shipping\n\n"
    "Orders ship within two business days. Express delivery is available "
    "for an additional fee in most regions."
)


def make_chunks(scores: list[float]) -> list[SegmentedChunk]:
    """Build segmenter output with predetermined quality scores."""
    return [
        SegmentedChunk(
            index=i,
            content=f"Section {i}: the warranty covers manufacturing defects for two years.",
            quality_score=score,
            metadata={"start_offset": i * 100, "end_offset": i * 100 + 70, "language": "en"},
        )
        for i, score in enumerate(scores)
    ]


def _fake_vectors(texts: list[str]) -> list[list[float]]:
    return [[float(i), 0.5, 0.25] for i, _ in enumerate(texts)]


# ---------------------------------------------------------------------------
# Persistence and storage
# ---------------------------------------------------------------------------


@pytest.fixture
async def repository(tmp_path: Path) -> SQLiteDocumentRepository:
    repo = SQLiteDocumentRepository(db_path=tmp_path / "chunkwise.db")
    await repo.initialize()
    return repo


@pytest.fixture
def storage(tmp_path: Path) -> LocalStorageProvider:
    return LocalStorageProvider(root=tmp_path / "uploads")


@pytest.fixture
def seed_document(
    repository: SQLiteDocumentRepository, storage: LocalStorageProvider
) -> Callable[..., Any]:
    """Return a coroutine factory that uploads a file and registers its document."""

    async def _seed(
        document_id: str = "doc-1",
        tenant_id: str = TENANT,
        dataset_id: str | None = DATASET,
        filename: str = "policy.txt",
        text: str = SAMPLE_TEXT,
        upload: bool = True,
    ) -> Document:
        if dataset_id is not None and await repository.get_dataset(dataset_id) is None:
            await repository.create_dataset(
                Dataset(id=dataset_id, tenant_id=tenant_id, name="Support FAQ")
            )
        key = f"{tenant_id}/{document_id}/{filename}"
        data = text.encode("utf-8")
        if upload:
            await storage.put_file(key, tenant_id, data)
        return await repository.create_document(
            Document(
                id=document_id,
                tenant_id=tenant_id,
                dataset_id=dataset_id,
                filename=filename,
                file_path=key,
                file_type="text/plain",
                file_size=len(data),
            )
        )

    return _seed


def trigger_for(document: Document, **overrides: Any) -> IngestionTrigger:
    fields: dict[str, Any] = {
        "document_id": document.id,
        "tenant_id": document.tenant_id,
        "dataset_id": document.dataset_id,
        "filename": document.filename,
        "file_type": document.file_type,
        "file_path": document.file_path,
    }
    fields.update(overrides)
    return IngestionTrigger(**fields)


# ---------------------------------------------------------------------------
# Mocked external collaborators
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedder() -> MagicMock:
    embedder = MagicMock(spec=IEmbeddingProvider)
    embedder.embed = AsyncMock(side_effect=_fake_vectors)
    embedder.get_provider_name.return_value = "fake_embedding"
    embedder.get_dimension.return_value = 3
    embedder.is_available.return_value = True
    return embedder


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock(spec=ILLMProvider)
    llm.complete = AsyncMock(return_value="This chunk is from the warranty section.")
    llm.get_provider_name.return_value = "fake_llm"
    llm.is_available.return_value = True
    return llm


@pytest.fixture
def mock_notifier() -> MagicMock:
    notifier = MagicMock(spec=INotificationProvider)
    notifier.send = AsyncMock()
    notifier.get_provider_name.return_value = "fake_notifier"
    return notifier


@pytest.fixture
def mock_segmenter() -> MagicMock:
    segmenter = MagicMock(spec=ChunkSegmenter)
    segmenter.segment.return_value = make_chunks([90.0] * 10)
    return segmenter


@pytest.fixture
def build_orchestrator(
    repository: SQLiteDocumentRepository,
    storage: LocalStorageProvider,
    mock_embedder: MagicMock,
    mock_notifier: MagicMock,
    mock_segmenter: MagicMock,
) -> Callable[..., IngestionOrchestrator]:
    """Return a factory wiring the real repository with mocked providers."""

    def _build(**overrides: Any) -> IngestionOrchestrator:
        kwargs: dict[str, Any] = {
            "repository": repository,
            "storage": storage,
            "parser": DocumentParser(),
            "segmenter": mock_segmenter,
            "embedder": mock_embedder,
            "notifier": mock_notifier,
            "chunk_store": ChunkStore(repository, batch_size=4),
            "stats_aggregator": DatasetStatsAggregator(repository),
            "progress_tracker": ProgressTracker(repository),
            "enricher": None,
            "max_retries": 3,
            "retry_backoff_seconds": 0.0,
        }
        kwargs.update(overrides)
        return IngestionOrchestrator(**kwargs)

    return _build


@pytest.fixture
def chunk_factory() -> Callable[[list[float]], list[SegmentedChunk]]:
    return make_chunks


@pytest.fixture
def make_trigger() -> Callable[..., IngestionTrigger]:
    return trigger_for
