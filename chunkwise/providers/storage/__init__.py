"""File storage adapters."""

from chunkwise.providers.storage.local_storage_provider import LocalStorageProvider

__all__ = ["LocalStorageProvider"]
