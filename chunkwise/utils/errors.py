"""Custom exception hierarchy for Chunkwise.

All application exceptions inherit from :class:`ChunkwiseError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "anthropic", "local_storage") caused the
failure.

The hierarchy is organized by how the ingestion orchestrator treats it:

    ChunkwiseError  (base -- catch-all for any chunkwise error)
    +-- ConfigurationError       (startup / missing config)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- LLMError                 (any LLM API call failure)
    +-- EmbeddingError           (embedding API failure or bad vectors)
    +-- StepTimeoutError         (an external call exceeded its budget)
    +-- PipelineError            (orchestration faults)
    +-- ChunkIntegrityError      (persisted rows != submitted rows)
    +-- IngestionInputError      (the uploaded document itself is unusable)
        +-- StorageNotFoundError
        +-- StorageAccessError
        +-- DocumentParseError
        +-- DocumentNotFoundError

Every class declares ``recoverable``.  The orchestrator retries a job only
when the raised error is recoverable; input errors and integrity
violations go straight to the terminal failure handler.
"""


class ChunkwiseError(Exception):
    """Base exception for all Chunkwise errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    recoverable: bool = True

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


def is_recoverable(exc: BaseException) -> bool:
    """Return ``True`` if *exc* should be retried at the job level.

    Unknown exceptions (network hiccups surfaced as plain ``Exception``
    subclasses by third-party SDKs) are treated as transient.
    """
    if isinstance(exc, ChunkwiseError):
        return exc.recoverable
    return True


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

class ConfigurationError(ChunkwiseError):
    """Raised when configuration is invalid or missing at startup."""

    recoverable = False

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors (transient)
# ---------------------------------------------------------------------------

class ProviderUnavailableError(ChunkwiseError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(ChunkwiseError):
    """Raised when an API rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(ChunkwiseError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(ChunkwiseError):
    """Raised when an embedding call fails or returns malformed vectors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StepTimeoutError(ChunkwiseError):
    """Raised when an external call inside a pipeline step exceeds its timeout."""

    def __init__(
        self,
        message: str = "Pipeline step timed out",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------

class PipelineError(ChunkwiseError):
    """Raised when pipeline orchestration fails (bad checkpoint, invalid state)."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ChunkIntegrityError(ChunkwiseError):
    """Raised when the backend persisted a different number of rows than submitted.

    Never retried: a shortfall is a correctness bug signal, not a
    transient condition.
    """

    recoverable = False

    def __init__(
        self,
        message: str = "Chunk write verification failed",
        provider_name: str | None = None,
        expected: int | None = None,
        actual: int | None = None,
    ) -> None:
        self.expected = expected
        self.actual = actual
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Non-recoverable input errors
# ---------------------------------------------------------------------------

class IngestionInputError(ChunkwiseError):
    """Raised when the uploaded document cannot be ingested no matter how often we retry."""

    recoverable = False

    def __init__(
        self,
        message: str = "Document cannot be ingested",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageNotFoundError(IngestionInputError):
    """Raised by storage adapters when the requested object does not exist."""

    def __init__(
        self,
        message: str = "File not found in storage",
        provider_name: str | None = None,
        path: str | None = None,
    ) -> None:
        self.path = path
        super().__init__(message=message, provider_name=provider_name)


class StorageAccessError(IngestionInputError):
    """Raised when a storage key lies outside the requesting tenant's prefix."""

    def __init__(
        self,
        message: str = "Access denied to the requested file",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentParseError(IngestionInputError):
    """Raised when a file is of an unsupported type, corrupt, or has no text."""

    def __init__(
        self,
        message: str = "Document parsing failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DocumentNotFoundError(IngestionInputError):
    """Raised when the document row referenced by a trigger does not exist."""

    def __init__(
        self,
        message: str = "Document record not found",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
