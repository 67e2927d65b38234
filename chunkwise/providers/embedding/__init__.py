"""Embedding provider adapters."""

from chunkwise.providers.embedding.http_embedding_provider import HttpEmbeddingProvider
from chunkwise.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["HttpEmbeddingProvider", "OpenAIEmbeddingProvider"]
