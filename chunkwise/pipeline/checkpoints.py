"""Durable step memoization for ingestion runs.

Every pipeline step runs through :meth:`StepRunner.run`.  The step's
JSON-serialisable result is written to the ``step_checkpoints`` table
before the next step starts; when a run with the same ``run_id`` is
re-entered (in-process retry, worker crash, redelivered trigger) completed
steps return their stored result instead of executing again.

Steps must therefore return plain JSON values (dicts, lists, numbers,
strings) -- pydantic models are dumped with ``model_dump(mode="json")``
by the caller and re-validated on the way out.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable

import structlog

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.processing import PipelineStep, StepCheckpoint

logger = structlog.get_logger(logger_name=__name__)


class StepRunner:
    """Executes pipeline steps at most once per ``(document_id, run_id)``.

    Build instances with :meth:`load` so the checkpoints of the run are
    read from the store first.
    """

    def __init__(
        self,
        repository: IDocumentRepository,
        document_id: str,
        run_id: str,
        completed: dict[str, Any] | None = None,
    ) -> None:
        self._repository = repository
        self._document_id = document_id
        self._run_id = run_id
        self._completed: dict[str, Any] = dict(completed or {})
        self.current_step: PipelineStep | None = None

    @classmethod
    async def load(
        cls,
        repository: IDocumentRepository,
        document_id: str,
        run_id: str,
    ) -> StepRunner:
        completed = await repository.load_checkpoints(document_id, run_id)
        if completed:
            logger.info(
                "ingestion_run_resumed",
                document_id=document_id,
                run_id=run_id,
                completed_steps=sorted(completed),
            )
        return cls(repository, document_id, run_id, completed)

    @property
    def resumed(self) -> bool:
        """``True`` when at least one step of this run already completed."""
        return bool(self._completed)

    def is_completed(self, step: PipelineStep) -> bool:
        return step.value in self._completed

    async def run(self, step: PipelineStep, fn: Callable[[], Awaitable[Any]]) -> Any:
        """Return the checkpointed result of *step*, executing *fn* only if needed."""
        self.current_step = step
        if step.value in self._completed:
            logger.debug("step_skipped_checkpointed", step=step.value, run_id=self._run_id)
            return self._completed[step.value]

        result = await fn()
        await self._repository.save_checkpoint(
            StepCheckpoint(
                document_id=self._document_id,
                run_id=self._run_id,
                step=step.value,
                result=result,
            )
        )
        self._completed[step.value] = result
        return result
