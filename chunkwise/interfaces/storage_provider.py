"""Abstract base class for tenant-scoped file storage."""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: LocalStorageProvider
# Located in: chunkwise/providers/storage/
class IStorageProvider(ABC):
    """Contract for the blob store holding uploaded source documents.

    Keys are ``{tenant_id}/...``; an adapter must refuse keys that fall
    outside the requesting tenant's prefix.
    """

    @abstractmethod
    async def get_file(self, path: str, tenant_id: str) -> bytes:
        """Return the raw bytes stored under *path*.

        Raises
        ------
        chunkwise.utils.errors.StorageNotFoundError
            If nothing is stored under *path*.
        chunkwise.utils.errors.StorageAccessError
            If *path* does not belong to *tenant_id*.
        """

    @abstractmethod
    async def put_file(self, path: str, tenant_id: str, data: bytes) -> int:
        """Store *data* under *path* and return the number of bytes written."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"local_storage"``."""
