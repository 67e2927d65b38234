"""Public interface definitions for all external collaborators.

Every externally-backed service the ingestion pipeline touches is reached
through one of these abstract base classes.  Concrete adapters live in
``chunkwise/providers/`` and are wired together in ``chunkwise/main.py``;
tests inject mocks built from the same interfaces.

    Interface               →  Concrete implementations
    ─────────────────────────────────────────────────────
    IStorageProvider        →  LocalStorageProvider
    ILLMProvider            →  AnthropicLLMProvider, OpenAILLMProvider
    IEmbeddingProvider      →  OpenAIEmbeddingProvider, HttpEmbeddingProvider
    INotificationProvider   →  LogNotificationProvider, WebhookNotificationProvider
    IDocumentRepository     →  SQLiteDocumentRepository
"""

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.interfaces.embedding_provider import IEmbeddingProvider
from chunkwise.interfaces.llm_provider import ILLMProvider
from chunkwise.interfaces.notification_provider import INotificationProvider
from chunkwise.interfaces.storage_provider import IStorageProvider

__all__ = [
    "IDocumentRepository",
    "IEmbeddingProvider",
    "ILLMProvider",
    "INotificationProvider",
    "IStorageProvider",
]
