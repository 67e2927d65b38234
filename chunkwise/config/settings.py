"""Application settings loaded from environment variables via pydantic-settings.

Values are resolved in priority order:

  1. **Environment variables**, e.g. ``ANTHROPIC_API_KEY=sk-ant-...``
  2. **.env file** in the working directory (local development)
  3. The defaults declared below

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; pydantic-settings
upper-cases and matches automatically.  An empty string means "not
configured" and the composition root in :mod:`chunkwise.main` skips the
corresponding provider.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

# Keys shorter than this, or containing a template placeholder, are treated
# as unset so a copied .env.example never triggers real LLM calls.
_MIN_API_KEY_LENGTH = 20
_PLACEHOLDER_MARKER = "your-"


class Settings(BaseSettings):
    """Chunkwise application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === LLM / Embedding Providers ===
    context_provider: str = "anthropic"  # "anthropic" | "openai" | "none"
    anthropic_api_key: str = ""
    context_model: str = "claude-3-haiku-20240307"
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoints (TogetherAI, vLLM, ...)
    openai_context_model: str = "gpt-4o-mini"
    openai_embedding_model: str = ""
    embedding_api_url: str = ""  # Self-hosted embedding server, e.g. http://bge:8080

    # === Storage / Persistence ===
    storage_root: str = "data/uploads"
    database_path: str = "data/chunkwise.db"

    # === Notification ===
    notification_webhook_url: str = ""

    # === Ingestion Pipeline ===
    ingestion_max_retries: int = 3
    ingestion_retry_backoff_seconds: float = 2.0
    storage_timeout_seconds: float = 30.0
    parse_timeout_seconds: float = 120.0
    enrichment_timeout_seconds: float = 600.0
    embedding_timeout_seconds: float = 300.0
    persist_timeout_seconds: float = 120.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def is_context_generation_enabled(self) -> bool:
        """Return ``True`` when the selected context provider has a usable key."""
        if self.context_provider == "anthropic":
            key = self.anthropic_api_key
        elif self.context_provider == "openai":
            key = self.openai_api_key
        else:
            return False
        return len(key) > _MIN_API_KEY_LENGTH and _PLACEHOLDER_MARKER not in key

    def get_available_embedding_providers(self) -> list[str]:
        """Return embedding backends in preference order that have configuration."""
        providers: list[str] = []
        if self.embedding_api_url:
            providers.append("http")
        if self.openai_api_key:
            providers.append("openai")
        return providers
