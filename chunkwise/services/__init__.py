"""Ingestion services: parsing, segmentation, enrichment, gating, persistence."""

from chunkwise.services.chunk_store import ChunkStore, PersistResult
from chunkwise.services.contextual_enricher import ContextualEnricher, build_contextual_content
from chunkwise.services.dataset_stats import DatasetStatsAggregator
from chunkwise.services.parsing import DocumentParser
from chunkwise.services.processing_log import ProcessingLog
from chunkwise.services.quality_gate import AUTO_APPROVAL_THRESHOLD, classify
from chunkwise.services.quality_scorer import HeuristicQualityScorer, QualityScorer
from chunkwise.services.segmenter import ChunkSegmenter

__all__ = [
    "AUTO_APPROVAL_THRESHOLD",
    "ChunkSegmenter",
    "ChunkStore",
    "ContextualEnricher",
    "DatasetStatsAggregator",
    "DocumentParser",
    "HeuristicQualityScorer",
    "PersistResult",
    "ProcessingLog",
    "QualityScorer",
    "build_contextual_content",
    "classify",
]
