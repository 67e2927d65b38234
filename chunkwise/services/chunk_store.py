"""Chunk persistence with write verification.

Turns segmented, enriched and embedded fragments into :class:`Chunk`
records, applies the quality gate, and writes them in bounded batches.
Each batch runs in one repository transaction; the repository reports
how many rows it actually holds afterwards and any shortfall raises
:class:`ChunkIntegrityError` immediately.
"""

from __future__ import annotations

import uuid
from typing import NamedTuple

import structlog

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.document import Chunk, Document
from chunkwise.models.ingestion import ContextResult, SegmentedChunk
from chunkwise.services.quality_gate import classify
from chunkwise.utils.errors import ChunkIntegrityError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_BATCH_SIZE = 100


class PersistResult(NamedTuple):
    chunk_count: int
    auto_approved: int
    pending_review: int
    average_quality: float


class ChunkStore:
    """Writes a document's chunks, replacing whatever an earlier run left behind.

    Parameters
    ----------
    repository:
        Backing document store.
    batch_size:
        Rows per insert transaction.
    """

    def __init__(self, repository: IDocumentRepository, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._repository = repository
        self._batch_size = max(1, batch_size)

    async def purge(self, document_id: str) -> int:
        """Delete every chunk of *document_id*."""
        deleted = await self._repository.delete_chunks_for_document(document_id)
        if deleted:
            logger.info("stale_chunks_purged", document_id=document_id, deleted=deleted)
        return deleted

    def build_records(
        self,
        document: Document,
        chunks: list[SegmentedChunk],
        contexts: list[ContextResult],
        embeddings: list[list[float]],
    ) -> list[Chunk]:
        """Combine step outputs into gated :class:`Chunk` records.

        ``dataset_id`` is copied from *document*, never from the trigger.

        Raises
        ------
        ChunkIntegrityError
            If the embedding count differs from the chunk count.
        """
        if len(embeddings) != len(chunks):
            raise ChunkIntegrityError(
                message=(
                    f"Embedding count {len(embeddings)} does not match "
                    f"chunk count {len(chunks)}"
                ),
                expected=len(chunks),
                actual=len(embeddings),
            )

        context_by_index = {c.chunk_index: c for c in contexts}
        records: list[Chunk] = []
        for chunk, embedding in zip(chunks, embeddings):
            decision = classify(chunk.quality_score)
            context = context_by_index.get(chunk.index)
            metadata = dict(chunk.metadata)
            if context is not None and context.prompt:
                metadata["context_prompt"] = context.prompt
            records.append(
                Chunk(
                    id=str(uuid.uuid4()),
                    tenant_id=document.tenant_id,
                    document_id=document.id,
                    dataset_id=document.dataset_id,
                    chunk_index=chunk.index,
                    content=chunk.content,
                    embedding=embedding,
                    quality_score=chunk.quality_score,
                    status=decision.status,
                    auto_approved=decision.auto_approved,
                    context_prefix=(context.context_prefix or None) if context else None,
                    metadata=metadata,
                )
            )
        return records

    async def persist(self, records: list[Chunk]) -> PersistResult:
        """Insert *records* batch by batch, verifying every batch.

        Raises
        ------
        ChunkIntegrityError
            As soon as a batch persists fewer rows than submitted.
        """
        for start in range(0, len(records), self._batch_size):
            batch = records[start : start + self._batch_size]
            persisted = await self._repository.insert_chunks(batch)
            if persisted != len(batch):
                logger.error(
                    "chunk_batch_short_write",
                    batch_start=start,
                    expected=len(batch),
                    actual=persisted,
                )
                raise ChunkIntegrityError(
                    message=(
                        f"Chunk batch starting at {start} persisted {persisted} "
                        f"of {len(batch)} rows"
                    ),
                    expected=len(batch),
                    actual=persisted,
                )
            logger.debug("chunk_batch_persisted", batch_start=start, rows=persisted)

        auto_approved = sum(1 for r in records if r.auto_approved)
        return PersistResult(
            chunk_count=len(records),
            auto_approved=auto_approved,
            pending_review=len(records) - auto_approved,
            average_quality=(
                round(sum(r.quality_score for r in records) / len(records), 2) if records else 0.0
            ),
        )
