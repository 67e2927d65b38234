"""Ingestion progress tracking.

The orchestrator reports ``(progress_step, progress_percent)`` after every
sub-step.  The tracker persists it on the document row, so pollers can
read it without touching the processing log, and keeps an in-memory
snapshot per document with the latest human-readable message.

    Orchestrator ──update()──→ ProgressTracker ──→ repository (documents row)
                                               ──→ in-process snapshot
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.document import ProgressStep
from chunkwise.utils.logging import get_logger


@dataclass
class _ProgressSnapshot:
    step: ProgressStep | None = None
    percent: int = 0
    message: str = ""


class ProgressTracker:
    """Persists per-document ingestion progress."""

    def __init__(self, repository: IDocumentRepository) -> None:
        self._repository = repository
        self._snapshots: dict[str, _ProgressSnapshot] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    async def update(
        self,
        document_id: str,
        step: ProgressStep | None,
        percent: float,
        message: str = "",
    ) -> None:
        """Record a progress update on the document row.

        Parameters
        ----------
        document_id:
            The document being ingested.
        step:
            Current sub-step, or ``None`` once processing has finished.
        percent:
            Completion of *step* (clamped to 0 – 100).
        message:
            Human-readable status message.
        """
        clamped = int(round(max(0.0, min(100.0, percent))))
        await self._repository.update_progress(document_id, step, clamped)
        self._snapshots[document_id] = _ProgressSnapshot(step=step, percent=clamped, message=message)

        self._logger.debug(
            "progress_update",
            document_id=document_id,
            step=step.value if step else None,
            percent=clamped,
            message=message,
        )

    def get_status(self, document_id: str) -> dict:
        """Return the last reported step, percent and message for a document.

        Returns zeroed defaults when the document has not been tracked in
        this process; callers needing durable state read the document row.
        """
        snapshot = self._snapshots.get(document_id, _ProgressSnapshot())
        return {
            "step": snapshot.step.value if snapshot.step else None,
            "percent": snapshot.percent,
            "message": snapshot.message,
        }

    def forget(self, document_id: str) -> None:
        """Drop the snapshot of a finished document."""
        self._snapshots.pop(document_id, None)
