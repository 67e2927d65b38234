"""Self-hosted embedding server adapter.

Talks to a BGE-style embedding server over plain HTTP:

    POST {base_url}/embed   {"texts": [...], "normalize": true}
                         -> {"embeddings": [[...], ...]}
    GET  {base_url}/health

Free to run next to the pipeline; no API key required.
"""

from __future__ import annotations

import httpx
import structlog

from chunkwise.config.settings import Settings
from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_BATCH_LIMIT = 32
_DIMENSION = 1024
_REQUEST_TIMEOUT = 60.0


class HttpEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a self-hosted ``/embed`` endpoint.

    Produces 1024-dimensional normalised vectors (BGE-M3).  Batches of 32
    texts are sent sequentially; every returned vector is checked against
    the expected dimension.
    """

    def __init__(self, settings: Settings, client: httpx.AsyncClient | None = None) -> None:
        self._settings = settings
        self._base_url = settings.embedding_api_url.rstrip("/")
        self._client = client

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        all_embeddings: list[list[float]] = []
        for start in range(0, len(texts), _BATCH_LIMIT):
            batch = texts[start : start + _BATCH_LIMIT]
            vectors = await self._post_batch(batch)
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    message=f"Embedding server returned {len(vectors)} vectors for {len(batch)} texts",
                    provider_name=self.get_provider_name(),
                )
            for vector in vectors:
                if len(vector) != _DIMENSION:
                    raise EmbeddingError(
                        message=f"Expected {_DIMENSION}-dim vectors, got {len(vector)}",
                        provider_name=self.get_provider_name(),
                    )
            all_embeddings.extend(vectors)
            logger.info("http_embedding_batch", batch_size=len(batch), url=self._base_url)
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        return _DIMENSION

    def get_provider_name(self) -> str:
        return "http_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the embedding server answers its health check."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/health", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False

    async def _post_batch(self, batch: list[str]) -> list[list[float]]:
        payload = {"texts": batch, "normalize": True}
        url = f"{self._base_url}/embed"
        try:
            if self._client is not None:
                response = await self._client.post(url, json=payload, timeout=_REQUEST_TIMEOUT)
            else:
                async with httpx.AsyncClient(timeout=_REQUEST_TIMEOUT) as client:
                    response = await client.post(url, json=payload)
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise ProviderUnavailableError(
                message=f"Embedding server unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code == 429:
            raise RateLimitError(
                message="Embedding server rate limit exceeded",
                provider_name=self.get_provider_name(),
            )
        if response.status_code != 200:
            raise EmbeddingError(
                message=f"Embedding server returned HTTP {response.status_code}: {response.text[:200]}",
                provider_name=self.get_provider_name(),
            )
        data = response.json()
        embeddings = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(embeddings, list):
            raise EmbeddingError(
                message="Embedding server response missing 'embeddings'",
                provider_name=self.get_provider_name(),
            )
        return embeddings
