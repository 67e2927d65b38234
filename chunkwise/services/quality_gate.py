"""Auto-approval gate for freshly scored chunks.

A chunk scoring at or above :data:`AUTO_APPROVAL_THRESHOLD` is usable
without human review; everything else waits in the review queue.  The
threshold is a fixed platform constant, identical for every tenant.
"""

from __future__ import annotations

from typing import NamedTuple

from chunkwise.models.document import ChunkStatus

AUTO_APPROVAL_THRESHOLD = 85.0


class GateDecision(NamedTuple):
    auto_approved: bool
    status: ChunkStatus


def classify(quality_score: float) -> GateDecision:
    """Return the approval decision for a chunk with *quality_score*."""
    auto_approved = quality_score >= AUTO_APPROVAL_THRESHOLD
    return GateDecision(
        auto_approved=auto_approved,
        status=ChunkStatus.APPROVED if auto_approved else ChunkStatus.PENDING,
    )
