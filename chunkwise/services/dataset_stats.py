"""Dataset aggregate recomputation.

Counts are recomputed from the authoritative rows after every ingestion
rather than incremented, so concurrent ingestions into one dataset
converge on the right totals without a lock.
"""

from __future__ import annotations

import structlog

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.document import DatasetStats

logger = structlog.get_logger(logger_name=__name__)


class DatasetStatsAggregator:
    """Recomputes the aggregate counters of a dataset from its rows.

    Safe to call any number of times; the result depends only on the
    current contents of the documents and chunks tables.
    """

    def __init__(self, repository: IDocumentRepository) -> None:
        self._repository = repository

    async def recompute(self, dataset_id: str) -> DatasetStats:
        """Count documents, active chunks and bytes for *dataset_id* and write them back."""
        stats = DatasetStats(
            dataset_id=dataset_id,
            document_count=await self._repository.count_documents(dataset_id),
            chunk_count=await self._repository.count_chunks(dataset_id),
            total_storage_bytes=await self._repository.sum_storage_bytes(dataset_id),
        )
        await self._repository.update_dataset_stats(
            dataset_id,
            document_count=stats.document_count,
            chunk_count=stats.chunk_count,
            total_storage_bytes=stats.total_storage_bytes,
        )
        logger.info(
            "dataset_stats_recomputed",
            dataset_id=dataset_id,
            document_count=stats.document_count,
            chunk_count=stats.chunk_count,
            total_storage_bytes=stats.total_storage_bytes,
        )
        return stats
