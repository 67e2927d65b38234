"""Per-document processing log recorder.

Thin helper over the repository so pipeline code can write
``started`` / ``completed`` / ``skipped`` / ``failed`` entries in one line.
"""

from __future__ import annotations

from typing import Any

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.processing import LogStatus, ProcessingLogEntry


class ProcessingLog:
    """Appends processing-log entries for one document of one tenant."""

    def __init__(self, repository: IDocumentRepository, document_id: str, tenant_id: str) -> None:
        self._repository = repository
        self._document_id = document_id
        self._tenant_id = tenant_id

    async def record(
        self,
        step: str,
        status: LogStatus,
        message: str = "",
        details: dict[str, Any] | None = None,
        duration_ms: int | None = None,
        error_message: str | None = None,
        error_stack: str | None = None,
    ) -> ProcessingLogEntry:
        return await self._repository.append_log(
            ProcessingLogEntry(
                document_id=self._document_id,
                tenant_id=self._tenant_id,
                step=step,
                status=status,
                message=message,
                details=details or {},
                duration_ms=duration_ms,
                error_message=error_message,
                error_stack=error_stack,
            )
        )

    async def clear(self) -> int:
        return await self._repository.clear_logs(self._document_id)
