"""Central orchestrator for the document ingestion pipeline.

Turns one uploaded document into persisted, embedded, quality-gated chunks.
Steps run strictly in order, each checkpointed through :class:`StepRunner`
before the next one starts:

    initialize_processing → parse_document → chunk_document →
    generate_context (optional) → generate_embeddings → save_chunks →
    update_dataset_stats → update_status → notify_admin

Document status follows ``uploaded → processing → approved | reviewing``
and drops to ``failed`` when a non-recoverable error is raised or the retry
budget is exhausted.

Re-running a document is idempotent:

- chunks of earlier runs are purged before chunking and again right before
  persisting, so a re-run can never duplicate rows;
- the dataset id is always read from the document record, so a trigger
  with a missing or stale ``dataset_id`` still lands in the right dataset;
- a fresh ``run_id`` clears the previous run's processing log and
  checkpoints, while a redelivered ``run_id`` resumes where it stopped.

:meth:`IngestionOrchestrator.run` never raises for pipeline errors; it
returns :class:`IngestionSuccess` or :class:`IngestionFailure`.
"""

from __future__ import annotations

import asyncio
import time
import traceback
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, TypeVar

import structlog

from chunkwise.models.document import Document, DocumentStatus, ProgressStep
from chunkwise.models.ingestion import (
    ContextResult,
    IngestionFailure,
    IngestionOutcome,
    IngestionSuccess,
    IngestionTrigger,
    SegmentationConfig,
    SegmentedChunk,
)
from chunkwise.models.notification import Notification, NotificationType
from chunkwise.models.processing import PIPELINE_LOG_STEP, LogStatus, PipelineStep
from chunkwise.pipeline.checkpoints import StepRunner
from chunkwise.pipeline.progress_tracker import ProgressTracker
from chunkwise.services.chunk_store import ChunkStore
from chunkwise.services.contextual_enricher import build_contextual_content
from chunkwise.services.dataset_stats import DatasetStatsAggregator
from chunkwise.services.processing_log import ProcessingLog
from chunkwise.utils.errors import (
    ChunkIntegrityError,
    ChunkwiseError,
    DocumentNotFoundError,
    DocumentParseError,
    StepTimeoutError,
    StorageNotFoundError,
    is_recoverable,
)
from chunkwise.utils.logging import bind_ingestion_context, clear_ingestion_context, get_logger

if TYPE_CHECKING:
    from chunkwise.config.settings import Settings
    from chunkwise.interfaces.document_repository import IDocumentRepository
    from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
    from chunkwise.interfaces.notification_provider import INotificationProvider
    from chunkwise.interfaces.storage_provider import IStorageProvider
    from chunkwise.services.contextual_enricher import ContextualEnricher
    from chunkwise.services.parsing.document_parser import DocumentParser
    from chunkwise.services.segmenter import ChunkSegmenter

_T = TypeVar("_T")


@dataclass(frozen=True)
class PipelineTimeouts:
    """Per-call timeouts, in seconds, for every external call of a run."""

    storage: float = 30.0
    parse: float = 120.0
    enrichment: float = 600.0
    embedding: float = 300.0
    persist: float = 120.0

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineTimeouts:
        return cls(
            storage=settings.storage_timeout_seconds,
            parse=settings.parse_timeout_seconds,
            enrichment=settings.enrichment_timeout_seconds,
            embedding=settings.embedding_timeout_seconds,
            persist=settings.persist_timeout_seconds,
        )


class IngestionOrchestrator:
    """Runs the ingestion pipeline for one document at a time.

    All collaborators are injected at construction time.  ``enricher`` may
    be ``None`` when no LLM is configured; the context step is then logged
    as skipped and chunks are embedded without a context prefix.
    """

    def __init__(
        self,
        repository: IDocumentRepository,
        storage: IStorageProvider,
        parser: DocumentParser,
        segmenter: ChunkSegmenter,
        embedder: IEmbeddingProvider,
        notifier: INotificationProvider,
        chunk_store: ChunkStore,
        stats_aggregator: DatasetStatsAggregator,
        progress_tracker: ProgressTracker,
        enricher: ContextualEnricher | None = None,
        segmentation: SegmentationConfig | None = None,
        max_retries: int = 3,
        retry_backoff_seconds: float = 2.0,
        timeouts: PipelineTimeouts | None = None,
    ) -> None:
        self._repository = repository
        self._storage = storage
        self._parser = parser
        self._segmenter = segmenter
        self._embedder = embedder
        self._notifier = notifier
        self._chunk_store = chunk_store
        self._stats = stats_aggregator
        self._progress = progress_tracker
        self._enricher = enricher
        self._segmentation = segmentation or SegmentationConfig()
        self._max_retries = max(0, max_retries)
        self._retry_backoff = retry_backoff_seconds
        self._timeouts = timeouts or PipelineTimeouts()
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, trigger: IngestionTrigger) -> IngestionOutcome:
        """Ingest the document named by *trigger*.

        Recoverable errors retry the run up to ``max_retries`` times with
        linear backoff; each retry resumes after the last checkpointed step.
        Non-recoverable errors and exhausted retries go to the terminal
        failure handler.
        """
        bind_ingestion_context(trigger.document_id, trigger.tenant_id, trigger.run_id)
        started = time.monotonic()
        try:
            attempt = 0
            while True:
                attempt += 1
                runner = await StepRunner.load(
                    self._repository, trigger.document_id, trigger.run_id
                )
                try:
                    return await self._execute(trigger, runner, attempt, started)
                except Exception as exc:
                    step = runner.current_step.value if runner.current_step else None
                    if not is_recoverable(exc) or attempt > self._max_retries:
                        return await self._handle_failure(trigger, exc, step, attempt, started)

                    delay = self._retry_backoff * attempt
                    self._logger.warning(
                        "ingestion_attempt_failed",
                        step=step,
                        attempt=attempt,
                        max_retries=self._max_retries,
                        retry_in_seconds=delay,
                        error=str(exc),
                    )
                    if delay > 0:
                        await asyncio.sleep(delay)
        finally:
            self._progress.forget(trigger.document_id)
            clear_ingestion_context()

    # ------------------------------------------------------------------
    # Step sequence
    # ------------------------------------------------------------------

    async def _execute(
        self,
        trigger: IngestionTrigger,
        runner: StepRunner,
        attempt: int,
        started: float,
    ) -> IngestionSuccess:
        document = await self._load_document(trigger)
        log = ProcessingLog(self._repository, document.id, document.tenant_id)

        if runner.is_completed(PipelineStep.INITIALIZE) and not runner.is_completed(
            PipelineStep.FINALIZE
        ):
            await self._resume(trigger, document, runner, log)
        await runner.run(
            PipelineStep.INITIALIZE,
            lambda: self._initialize(trigger, document, runner, log),
        )

        parsed = await runner.run(PipelineStep.PARSE, lambda: self._parse(trigger, log))
        text: str = parsed["text"]

        chunks = [
            SegmentedChunk.model_validate(c)
            for c in await runner.run(PipelineStep.CHUNK, lambda: self._chunk(document, text, log))
        ]

        contexts = [
            ContextResult.model_validate(c)
            for c in await runner.run(
                PipelineStep.CONTEXT, lambda: self._generate_context(document, text, chunks, log)
            )
        ]

        embeddings: list[list[float]] = await runner.run(
            PipelineStep.EMBED, lambda: self._embed(document, chunks, contexts, log)
        )

        persisted = await runner.run(
            PipelineStep.PERSIST,
            lambda: self._persist(document, chunks, contexts, embeddings, log),
        )

        await runner.run(PipelineStep.STATISTICS, lambda: self._update_statistics(document))

        final_status = DocumentStatus(
            await runner.run(
                PipelineStep.FINALIZE,
                lambda: self._finalize(document, persisted, log, started),
            )
        )

        await runner.run(
            PipelineStep.NOTIFY, lambda: self._notify(trigger, document, persisted)
        )

        self._logger.info(
            "ingestion_complete",
            status=final_status.value,
            chunk_count=persisted["chunk_count"],
            auto_approved=persisted["auto_approved"],
            pending_review=persisted["pending_review"],
            attempts=attempt,
        )
        return IngestionSuccess(
            document_id=document.id,
            tenant_id=document.tenant_id,
            run_id=trigger.run_id,
            chunk_count=persisted["chunk_count"],
            auto_approved=persisted["auto_approved"],
            pending_review=persisted["pending_review"],
            final_status=final_status,
            attempts=attempt,
        )

    async def _load_document(self, trigger: IngestionTrigger) -> Document:
        document = await self._repository.get_document(trigger.document_id)
        if document is None or document.tenant_id != trigger.tenant_id:
            raise DocumentNotFoundError(
                message=f"Document {trigger.document_id} not found for tenant {trigger.tenant_id}"
            )

        if trigger.dataset_id is None:
            self._logger.info("dataset_id_resolved_from_document", dataset_id=document.dataset_id)
        elif trigger.dataset_id != document.dataset_id:
            self._logger.warning(
                "trigger_dataset_mismatch",
                trigger_dataset_id=trigger.dataset_id,
                document_dataset_id=document.dataset_id,
            )
        return document

    async def _initialize(
        self,
        trigger: IngestionTrigger,
        document: Document,
        runner: StepRunner,
        log: ProcessingLog,
    ) -> dict[str, Any]:
        if not runner.resumed:
            stale = await self._repository.clear_checkpoints(
                document.id, keep_run_id=trigger.run_id
            )
            cleared = await log.clear()
            self._logger.info("ingestion_run_started", stale_checkpoints=stale, cleared_logs=cleared)

        await self._repository.set_document_status(
            document.id,
            DocumentStatus.PROCESSING,
            error_message=None,
            progress_step=ProgressStep.PARSING,
            progress_percent=0,
        )
        await log.record(
            PipelineStep.INITIALIZE.value,
            LogStatus.STARTED,
            message=f"Processing started: {trigger.filename}",
            details={
                "filename": trigger.filename,
                "file_type": trigger.file_type,
                "dataset_id": document.dataset_id,
                "run_id": trigger.run_id,
            },
        )
        return {"dataset_id": document.dataset_id}

    async def _resume(
        self,
        trigger: IngestionTrigger,
        document: Document,
        runner: StepRunner,
        log: ProcessingLog,
    ) -> None:
        """Put a document back into ``processing`` when its run is re-entered.

        ``INITIALIZE`` is checkpointed, so a run resumed after a terminal
        failure would otherwise keep the ``failed`` status and its error
        message until ``FINALIZE``.
        """
        if document.status == DocumentStatus.PROCESSING and document.error_message is None:
            return

        await self._repository.set_document_status(
            document.id, DocumentStatus.PROCESSING, error_message=None
        )
        await log.record(
            PipelineStep.INITIALIZE.value,
            LogStatus.STARTED,
            message=f"Processing resumed: {trigger.filename}",
            details={
                "run_id": trigger.run_id,
                "previous_status": document.status.value,
                "completed_steps": sorted(
                    step.value for step in PipelineStep if runner.is_completed(step)
                ),
            },
        )
        self._logger.info("ingestion_run_reopened", previous_status=document.status.value)

    async def _parse(self, trigger: IngestionTrigger, log: ProcessingLog) -> dict[str, Any]:
        step_started = time.monotonic()
        await self._progress.update(trigger.document_id, ProgressStep.PARSING, 0, "Fetching file")

        try:
            data = await self._bounded(
                self._storage.get_file(trigger.file_path, trigger.tenant_id),
                self._timeouts.storage,
                "storage fetch",
            )
        except StorageNotFoundError as exc:
            raise StorageNotFoundError(
                message=(
                    f"The file '{trigger.filename}' could not be found in storage. "
                    "Please upload it again."
                ),
                provider_name=exc.provider_name,
                path=trigger.file_path,
            ) from exc

        try:
            parsed = await self._bounded(
                self._parser.parse(data, trigger.file_type),
                self._timeouts.parse,
                "document parsing",
            )
        except DocumentParseError as exc:
            raise DocumentParseError(
                message=f"The file '{trigger.filename}' could not be read: {exc.message}",
                provider_name=exc.provider_name,
            ) from exc
        if not parsed.text.strip():
            raise DocumentParseError(message=f"No text could be extracted from '{trigger.filename}'")

        await self._progress.update(trigger.document_id, ProgressStep.PARSING, 100, "Parsed")
        await log.record(
            PipelineStep.PARSE.value,
            LogStatus.COMPLETED,
            message="Document parsed",
            details={"text_length": len(parsed.text), "file_size": len(data)},
            duration_ms=_elapsed_ms(step_started),
        )
        return {"text": parsed.text, "metadata": parsed.metadata}

    async def _chunk(self, document: Document, text: str, log: ProcessingLog) -> list[dict]:
        step_started = time.monotonic()
        await self._progress.update(document.id, ProgressStep.CHUNKING, 0, "Segmenting text")
        await self._chunk_store.purge(document.id)

        chunks = self._segmenter.segment(text, self._segmentation)

        await self._progress.update(document.id, ProgressStep.CHUNKING, 100, "Segmented")
        await log.record(
            PipelineStep.CHUNK.value,
            LogStatus.COMPLETED,
            message=f"Created {len(chunks)} chunks",
            details={
                "chunk_count": len(chunks),
                "max_chunk_size": self._segmentation.max_chunk_size,
                "overlap": self._segmentation.overlap,
            },
            duration_ms=_elapsed_ms(step_started),
        )
        return [c.model_dump(mode="json") for c in chunks]

    async def _generate_context(
        self,
        document: Document,
        text: str,
        chunks: list[SegmentedChunk],
        log: ProcessingLog,
    ) -> list[dict]:
        if self._enricher is None:
            await log.record(
                PipelineStep.CONTEXT.value,
                LogStatus.SKIPPED,
                message="Context generation is not configured",
            )
            self._logger.info("context_generation_skipped")
            return []

        step_started = time.monotonic()
        await self._progress.update(
            document.id, ProgressStep.CONTEXT_GENERATION, 0, "Generating context"
        )

        async def _on_progress(completed: int, total: int) -> None:
            await self._progress.update(
                document.id,
                ProgressStep.CONTEXT_GENERATION,
                completed / total * 100 if total else 100,
                f"Context generated for {completed}/{total} chunks",
            )

        results = await self._bounded(
            self._enricher.enrich(text, chunks, _on_progress),
            self._timeouts.enrichment,
            "context generation",
        )

        succeeded = sum(1 for r in results if r.context_prefix)
        await self._progress.update(
            document.id, ProgressStep.CONTEXT_GENERATION, 100, "Context generated"
        )
        await log.record(
            PipelineStep.CONTEXT.value,
            LogStatus.COMPLETED,
            message=f"Generated context for {succeeded}/{len(chunks)} chunks",
            details={
                "provider": self._enricher.provider_name,
                "success_count": succeeded,
                "failure_count": len(chunks) - succeeded,
            },
            duration_ms=_elapsed_ms(step_started),
        )
        return [r.model_dump(mode="json") for r in results]

    async def _embed(
        self,
        document: Document,
        chunks: list[SegmentedChunk],
        contexts: list[ContextResult],
        log: ProcessingLog,
    ) -> list[list[float]]:
        step_started = time.monotonic()
        await self._progress.update(document.id, ProgressStep.EMBEDDING, 0, "Embedding chunks")

        prefix_by_index = {c.chunk_index: c.context_prefix for c in contexts}
        texts = [build_contextual_content(c.content, prefix_by_index.get(c.index)) for c in chunks]
        embeddings = (
            await self._bounded(
                self._embedder.embed(texts), self._timeouts.embedding, "embedding"
            )
            if texts
            else []
        )
        if len(embeddings) != len(chunks):
            raise ChunkIntegrityError(
                message=f"Embedder returned {len(embeddings)} vectors for {len(chunks)} chunks",
                provider_name=self._embedder.get_provider_name(),
                expected=len(chunks),
                actual=len(embeddings),
            )

        await self._progress.update(document.id, ProgressStep.EMBEDDING, 100, "Embedded")
        await log.record(
            PipelineStep.EMBED.value,
            LogStatus.COMPLETED,
            message=f"Generated {len(embeddings)} embeddings",
            details={
                "embedding_count": len(embeddings),
                "provider": self._embedder.get_provider_name(),
                "dimension": self._embedder.get_dimension(),
                "with_context": sum(1 for c in contexts if c.context_prefix),
            },
            duration_ms=_elapsed_ms(step_started),
        )
        return [list(map(float, e)) for e in embeddings]

    async def _persist(
        self,
        document: Document,
        chunks: list[SegmentedChunk],
        contexts: list[ContextResult],
        embeddings: list[list[float]],
        log: ProcessingLog,
    ) -> dict[str, Any]:
        step_started = time.monotonic()
        await self._progress.update(document.id, ProgressStep.QUALITY_CHECK, 0, "Saving chunks")

        records = self._chunk_store.build_records(document, chunks, contexts, embeddings)
        await self._chunk_store.purge(document.id)
        result = await self._bounded(
            self._chunk_store.persist(records), self._timeouts.persist, "chunk persistence"
        )

        await self._progress.update(document.id, ProgressStep.QUALITY_CHECK, 100, "Chunks saved")
        await log.record(
            PipelineStep.PERSIST.value,
            LogStatus.COMPLETED,
            message=(
                f"Saved {result.chunk_count} chunks "
                f"({result.auto_approved} auto-approved, {result.pending_review} pending)"
            ),
            details=result._asdict(),
            duration_ms=_elapsed_ms(step_started),
        )
        return result._asdict()

    async def _update_statistics(self, document: Document) -> dict[str, Any] | None:
        if document.dataset_id is None:
            return None
        stats = await self._stats.recompute(document.dataset_id)
        return stats.model_dump(mode="json")

    async def _finalize(
        self,
        document: Document,
        persisted: dict[str, Any],
        log: ProcessingLog,
        started: float,
    ) -> str:
        status = (
            DocumentStatus.APPROVED if persisted["pending_review"] == 0 else DocumentStatus.REVIEWING
        )
        await self._repository.set_document_status(
            document.id,
            status,
            error_message=None,
            progress_step=None,
            progress_percent=100,
        )
        await log.record(
            PIPELINE_LOG_STEP,
            LogStatus.COMPLETED,
            message=f"Processing finished with status {status.value}",
            details={"status": status.value, **persisted},
            duration_ms=_elapsed_ms(started),
        )
        return status.value

    async def _notify(
        self,
        trigger: IngestionTrigger,
        document: Document,
        persisted: dict[str, Any],
    ) -> dict[str, Any]:
        pending = persisted["pending_review"]
        if pending == 0:
            return {"notified": False}

        notification = Notification(
            type=NotificationType.REVIEW_NEEDED,
            tenant_id=document.tenant_id,
            document_id=document.id,
            message=f"{pending} chunks of '{trigger.filename}' need review.",
            pending_count=pending,
        )
        try:
            await self._notifier.send(notification)
        except Exception as exc:  # noqa: BLE001
            # Chunks are already persisted and the status is final.
            self._logger.error(
                "admin_notification_failed",
                provider=self._notifier.get_provider_name(),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            return {"notified": False, "error": str(exc) or type(exc).__name__}
        return {"notified": True, "pending_count": pending}

    # ------------------------------------------------------------------
    # Terminal failure handling
    # ------------------------------------------------------------------

    async def _handle_failure(
        self,
        trigger: IngestionTrigger,
        exc: Exception,
        step: str | None,
        attempts: int,
        started: float,
    ) -> IngestionFailure:
        message = exc.message if isinstance(exc, ChunkwiseError) else (str(exc) or type(exc).__name__)
        stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        recoverable = is_recoverable(exc)

        self._logger.error(
            "ingestion_failed",
            step=step,
            attempts=attempts,
            recoverable=recoverable,
            error_type=type(exc).__name__,
            error=str(exc),
        )

        if isinstance(exc, DocumentNotFoundError):
            # No document row of this tenant to record the failure against.
            return self._failure(trigger, exc, step, attempts, message, stack, recoverable)

        try:
            log = ProcessingLog(self._repository, trigger.document_id, trigger.tenant_id)
            await log.record(
                PIPELINE_LOG_STEP,
                LogStatus.FAILED,
                message=f"Processing failed at {step or 'startup'}",
                details={"step": step, "attempts": attempts, "error_type": type(exc).__name__},
                duration_ms=_elapsed_ms(started),
                error_message=message,
                error_stack=stack,
            )
            await self._repository.set_document_status(
                trigger.document_id, DocumentStatus.FAILED, error_message=message
            )
        except Exception as handler_exc:  # noqa: BLE001
            self._logger.error(
                "failure_handler_error",
                error=str(handler_exc),
                original_error=str(exc),
            )

        return self._failure(trigger, exc, step, attempts, message, stack, recoverable)

    @staticmethod
    def _failure(
        trigger: IngestionTrigger,
        exc: Exception,
        step: str | None,
        attempts: int,
        message: str,
        stack: str,
        recoverable: bool,
    ) -> IngestionFailure:
        return IngestionFailure(
            document_id=trigger.document_id,
            tenant_id=trigger.tenant_id,
            run_id=trigger.run_id,
            step=step,
            error=message,
            error_type=type(exc).__name__,
            stack=stack,
            recoverable=recoverable,
            attempts=attempts,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    async def _bounded(call: Awaitable[_T], seconds: float, what: str) -> _T:
        try:
            return await asyncio.wait_for(call, timeout=seconds)
        except asyncio.TimeoutError as exc:
            raise StepTimeoutError(message=f"{what} timed out after {seconds:g}s") from exc


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
