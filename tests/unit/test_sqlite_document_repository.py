"""Unit tests for SQLiteDocumentRepository."""

from __future__ import annotations

import sqlite3
import uuid

import pytest

from chunkwise.models.document import (
    Chunk,
    ChunkStatus,
    Dataset,
    Document,
    DocumentStatus,
    ProgressStep,
)
from chunkwise.models.processing import LogStatus, ProcessingLogEntry, StepCheckpoint
from chunkwise.providers.persistence.sqlite_document_repository import SQLiteDocumentRepository
from tests.conftest import DATASET, TENANT


def _document(document_id: str = "doc-1", **overrides: object) -> Document:
    fields: dict = {
        "id": document_id,
        "tenant_id": TENANT,
        "dataset_id": DATASET,
        "filename": "policy.txt",
        "file_path": f"{TENANT}/{document_id}/policy.txt",
        "file_type": "text/plain",
        "file_size": 300,
    }
    fields.update(overrides)
    return Document(**fields)


def _chunk(index: int, document_id: str = "doc-1", **overrides: object) -> Chunk:
    fields: dict = {
        "id": str(uuid.uuid4()),
        "tenant_id": TENANT,
        "document_id": document_id,
        "dataset_id": DATASET,
        "chunk_index": index,
        "content": f"Chunk {index} content.",
        "embedding": [0.1, 0.2, 0.3],
        "quality_score": 88.5,
        "status": ChunkStatus.APPROVED,
        "auto_approved": True,
        "metadata": {"language": "en"},
    }
    fields.update(overrides)
    return Chunk(**fields)


class TestDocuments:
    @pytest.mark.asyncio
    async def test_create_and_get(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create_document(_document())

        loaded = await repository.get_document("doc-1")

        assert loaded is not None
        assert loaded.tenant_id == TENANT
        assert loaded.status == DocumentStatus.UPLOADED
        assert loaded.file_size == 300

    @pytest.mark.asyncio
    async def test_get_missing(self, repository: SQLiteDocumentRepository) -> None:
        assert await repository.get_document("nope") is None

    @pytest.mark.asyncio
    async def test_list_by_dataset(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create_document(_document("doc-1"))
        await repository.create_document(_document("doc-2", dataset_id="other"))

        assert [d.id for d in await repository.list_documents(DATASET)] == ["doc-1"]
        assert len(await repository.list_documents()) == 2

    @pytest.mark.asyncio
    async def test_progress_is_clamped(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create_document(_document())

        await repository.update_progress("doc-1", ProgressStep.EMBEDDING, 140)

        loaded = await repository.get_document("doc-1")
        assert loaded.progress_step == ProgressStep.EMBEDDING
        assert loaded.progress_percent == 100

    @pytest.mark.asyncio
    async def test_status_without_progress_keeps_progress(
        self, repository: SQLiteDocumentRepository
    ) -> None:
        await repository.create_document(_document())
        await repository.update_progress("doc-1", ProgressStep.CHUNKING, 20)

        await repository.set_document_status("doc-1", DocumentStatus.FAILED, error_message="boom")

        loaded = await repository.get_document("doc-1")
        assert loaded.status == DocumentStatus.FAILED
        assert loaded.error_message == "boom"
        assert loaded.progress_step == ProgressStep.CHUNKING
        assert loaded.progress_percent == 20

    @pytest.mark.asyncio
    async def test_status_with_progress_clears_step(
        self, repository: SQLiteDocumentRepository
    ) -> None:
        await repository.create_document(_document())
        await repository.update_progress("doc-1", ProgressStep.QUALITY_CHECK, 90)

        await repository.set_document_status(
            "doc-1", DocumentStatus.APPROVED, progress_step=None, progress_percent=100
        )

        loaded = await repository.get_document("doc-1")
        assert loaded.status == DocumentStatus.APPROVED
        assert loaded.progress_step is None
        assert loaded.progress_percent == 100
        assert loaded.error_message is None


class TestChunks:
    @pytest.mark.asyncio
    async def test_insert_returns_persisted_count(
        self, repository: SQLiteDocumentRepository
    ) -> None:
        assert await repository.insert_chunks([_chunk(0), _chunk(1), _chunk(2)]) == 3

        chunks = await repository.list_chunks("doc-1")
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert chunks[0].embedding == [0.1, 0.2, 0.3]
        assert chunks[0].metadata == {"language": "en"}
        assert chunks[0].auto_approved is True
        assert chunks[0].status == ChunkStatus.APPROVED

    @pytest.mark.asyncio
    async def test_insert_empty_batch(self, repository: SQLiteDocumentRepository) -> None:
        assert await repository.insert_chunks([]) == 0

    @pytest.mark.asyncio
    async def test_duplicate_active_index_rolls_back_batch(
        self, repository: SQLiteDocumentRepository
    ) -> None:
        with pytest.raises(sqlite3.IntegrityError):
            await repository.insert_chunks([_chunk(0), _chunk(1), _chunk(1)])

        assert await repository.list_chunks("doc-1") == []

    @pytest.mark.asyncio
    async def test_inactive_versions_may_share_index(
        self, repository: SQLiteDocumentRepository
    ) -> None:
        await repository.insert_chunks([_chunk(0), _chunk(0, is_active=False, version=2)])

        assert len(await repository.list_chunks("doc-1")) == 1
        assert len(await repository.list_chunks("doc-1", active_only=False)) == 2

    @pytest.mark.asyncio
    async def test_delete_for_document(self, repository: SQLiteDocumentRepository) -> None:
        await repository.insert_chunks([_chunk(0), _chunk(1), _chunk(0, document_id="doc-2")])

        assert await repository.delete_chunks_for_document("doc-1") == 2
        assert await repository.list_chunks("doc-1") == []
        assert len(await repository.list_chunks("doc-2")) == 1


class TestDatasets:
    @pytest.mark.asyncio
    async def test_counts_and_stats(self, repository: SQLiteDocumentRepository) -> None:
        await repository.create_dataset(Dataset(id=DATASET, tenant_id=TENANT, name="FAQ"))
        await repository.create_document(_document("doc-1", file_size=100))
        await repository.create_document(_document("doc-2", file_size=250))
        await repository.insert_chunks(
            [_chunk(0), _chunk(1), _chunk(2, is_active=False)]
        )

        assert await repository.count_documents(DATASET) == 2
        assert await repository.count_chunks(DATASET) == 2
        assert await repository.sum_storage_bytes(DATASET) == 350
        assert await repository.sum_storage_bytes("empty") == 0

        await repository.update_dataset_stats(
            DATASET, document_count=2, chunk_count=2, total_storage_bytes=350
        )
        dataset = await repository.get_dataset(DATASET)
        assert (dataset.document_count, dataset.chunk_count, dataset.total_storage_bytes) == (
            2,
            2,
            350,
        )

    @pytest.mark.asyncio
    async def test_missing_dataset(self, repository: SQLiteDocumentRepository) -> None:
        assert await repository.get_dataset("nope") is None


class TestLogsAndCheckpoints:
    @pytest.mark.asyncio
    async def test_logs_round_trip_in_order(self, repository: SQLiteDocumentRepository) -> None:
        first = await repository.append_log(
            ProcessingLogEntry(
                document_id="doc-1",
                tenant_id=TENANT,
                step="parse_document",
                status=LogStatus.COMPLETED,
                details={"text_length": 42},
                duration_ms=12,
            )
        )
        await repository.append_log(
            ProcessingLogEntry(
                document_id="doc-1",
                tenant_id=TENANT,
                step="pipeline",
                status=LogStatus.FAILED,
                error_message="boom",
                error_stack="Traceback ...",
            )
        )

        logs = await repository.list_logs("doc-1")

        assert first.id is not None
        assert [entry.step for entry in logs] == ["parse_document", "pipeline"]
        assert logs[0].details == {"text_length": 42}
        assert logs[1].status == LogStatus.FAILED
        assert logs[1].error_stack == "Traceback ..."

        assert await repository.clear_logs("doc-1") == 2
        assert await repository.list_logs("doc-1") == []

    @pytest.mark.asyncio
    async def test_checkpoint_upsert(self, repository: SQLiteDocumentRepository) -> None:
        await repository.save_checkpoint(
            StepCheckpoint(document_id="doc-1", run_id="r1", step="chunk_document", result=[1])
        )
        await repository.save_checkpoint(
            StepCheckpoint(document_id="doc-1", run_id="r1", step="chunk_document", result=[2])
        )

        assert await repository.load_checkpoints("doc-1", "r1") == {"chunk_document": [2]}
        assert await repository.load_checkpoints("doc-1", "r2") == {}

    @pytest.mark.asyncio
    async def test_clear_checkpoints_keeps_current_run(
        self, repository: SQLiteDocumentRepository
    ) -> None:
        for run_id in ("old", "current"):
            await repository.save_checkpoint(
                StepCheckpoint(document_id="doc-1", run_id=run_id, step="parse_document", result={})
            )

        assert await repository.clear_checkpoints("doc-1", keep_run_id="current") == 1
        assert await repository.load_checkpoints("doc-1", "current") == {"parse_document": {}}
        assert await repository.clear_checkpoints("doc-1") == 1
        assert await repository.load_checkpoints("doc-1", "current") == {}

    def test_provider_name(self, tmp_path) -> None:
        repository = SQLiteDocumentRepository(db_path=tmp_path / "unused.db")
        assert repository.get_provider_name() == "sqlite_documents"
