"""Chunkwise FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and exposes the ASGI ``app``.

:func:`build_components` is shared with the CLI so both entry points run
the exact same pipeline.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI

from chunkwise import __version__
from chunkwise.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from chunkwise.api.routes import router as api_router
from chunkwise.config.loader import load_config
from chunkwise.config.settings import Settings
from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.interfaces.notification_provider import INotificationProvider
from chunkwise.models.ingestion import EnrichmentOptions, SegmentationConfig
from chunkwise.pipeline.orchestrator import IngestionOrchestrator, PipelineTimeouts
from chunkwise.pipeline.progress_tracker import ProgressTracker
from chunkwise.providers.embedding.http_embedding_provider import HttpEmbeddingProvider
from chunkwise.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider
from chunkwise.providers.llm.openai_provider import OpenAILLMProvider
from chunkwise.providers.notification.log_notification_provider import LogNotificationProvider
from chunkwise.providers.notification.webhook_notification_provider import (
    WebhookNotificationProvider,
)
from chunkwise.providers.persistence.sqlite_document_repository import SQLiteDocumentRepository
from chunkwise.providers.storage.local_storage_provider import LocalStorageProvider
from chunkwise.services.chunk_store import ChunkStore
from chunkwise.services.contextual_enricher import ContextualEnricher
from chunkwise.services.dataset_stats import DatasetStatsAggregator
from chunkwise.services.parsing.document_parser import DocumentParser
from chunkwise.services.segmenter import ChunkSegmenter
from chunkwise.utils.errors import ConfigurationError
from chunkwise.utils.logging import configure_logging, get_logger

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider | None:
    """Return the context-generation LLM, or ``None`` when enrichment is disabled."""
    if not app_settings.is_context_generation_enabled():
        return None
    if app_settings.context_provider == "openai":
        return OpenAILLMProvider(settings=app_settings)
    return AnthropicLLMProvider(settings=app_settings)


def _build_embedding_provider(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> IEmbeddingProvider:
    """Select the embedding backend.

    Priority: self-hosted HTTP server (``EMBEDDING_API_URL``) ->
    OpenAI/OpenAI-compatible (``OPENAI_API_KEY``).

    Raises
    ------
    ConfigurationError
        If neither backend is configured.
    """
    if app_settings.embedding_api_url:
        return HttpEmbeddingProvider(settings=app_settings, client=http_client)
    if app_settings.openai_api_key:
        return OpenAIEmbeddingProvider(settings=app_settings)
    raise ConfigurationError(
        message="No embedding provider configured; set EMBEDDING_API_URL or OPENAI_API_KEY"
    )


def _build_notifier(
    app_settings: Settings, http_client: httpx.AsyncClient
) -> INotificationProvider:
    if app_settings.notification_webhook_url:
        return WebhookNotificationProvider(
            url=app_settings.notification_webhook_url, client=http_client
        )
    return LogNotificationProvider()


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def build_components(
    app_settings: Settings,
    config: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    The caller owns ``http_client`` and must close it on shutdown.
    """
    config = config if config is not None else load_config(settings=app_settings)

    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)
    repository = SQLiteDocumentRepository(db_path=app_settings.database_path)
    storage = LocalStorageProvider(root=app_settings.storage_root)

    # -- External providers --
    llm = _build_llm_provider(app_settings)
    embedder = _build_embedding_provider(app_settings, http_client)
    notifier = _build_notifier(app_settings, http_client)

    # -- Services --
    enricher = (
        ContextualEnricher(llm=llm, options=EnrichmentOptions(**config["enrichment"]))
        if llm is not None
        else None
    )
    progress_tracker = ProgressTracker(repository)
    orchestrator = IngestionOrchestrator(
        repository=repository,
        storage=storage,
        parser=DocumentParser(),
        segmenter=ChunkSegmenter(),
        embedder=embedder,
        notifier=notifier,
        chunk_store=ChunkStore(repository, batch_size=config["chunk_store"]["batch_size"]),
        stats_aggregator=DatasetStatsAggregator(repository),
        progress_tracker=progress_tracker,
        enricher=enricher,
        segmentation=SegmentationConfig(**config["segmentation"]),
        max_retries=config["pipeline"]["max_retries"],
        retry_backoff_seconds=config["pipeline"]["retry_backoff_seconds"],
        timeouts=PipelineTimeouts.from_settings(app_settings),
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, Any] = {
        "storage": storage.get_provider_name(),
        "repository": repository.get_provider_name(),
        "embedding": True,
        "embedding_provider": embedder.get_provider_name(),
        "context_generation": enricher is not None,
        "context_provider": llm.get_provider_name() if llm is not None else None,
        "notifier": notifier.get_provider_name(),
    }

    return {
        "http_client": http_client,
        "repository": repository,
        "storage": storage,
        "progress_tracker": progress_tracker,
        "orchestrator": orchestrator,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = build_components(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["repository"].initialize()

    _logger.info(
        "app_startup",
        version=__version__,
        environment=settings.app_env,
        embedding=components["provider_registry"]["embedding_provider"],
        context_generation=components["provider_registry"]["context_generation"],
    )

    yield

    http_client: httpx.AsyncClient = components["http_client"]
    await http_client.aclose()
    _logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="Chunkwise API",
        version=__version__,
        description=(
            "Trigger ingestion of uploaded documents into quality-gated, "
            "embedded chunks and poll their progress."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()

if __name__ == "__main__":
    uvicorn.run(
        "chunkwise.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
