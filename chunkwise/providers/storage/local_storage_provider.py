"""Local-filesystem storage adapter.

Objects are stored under ``{storage_root}/{tenant_id}/...``.  Keys are
validated against the requesting tenant before touching the disk, and
blocking file I/O runs in a worker thread so the event loop stays free.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import structlog

from chunkwise.interfaces.storage_provider import IStorageProvider
from chunkwise.utils.errors import StorageAccessError, StorageNotFoundError

logger = structlog.get_logger(logger_name=__name__)


class LocalStorageProvider(IStorageProvider):
    """Tenant-scoped blob store on the local filesystem."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).resolve()

    async def get_file(self, path: str, tenant_id: str) -> bytes:
        target = self._resolve(path, tenant_id)
        if not target.is_file():
            raise StorageNotFoundError(
                message=f"File not found: {path}",
                provider_name=self.get_provider_name(),
                path=path,
            )
        data = await asyncio.to_thread(target.read_bytes)
        logger.debug("storage_file_read", path=path, size=len(data))
        return data

    async def put_file(self, path: str, tenant_id: str, data: bytes) -> int:
        target = self._resolve(path, tenant_id)
        target.parent.mkdir(parents=True, exist_ok=True)
        written = await asyncio.to_thread(target.write_bytes, data)
        logger.info("storage_file_written", path=path, size=written)
        return written

    def get_provider_name(self) -> str:
        return "local_storage"

    def _resolve(self, path: str, tenant_id: str) -> Path:
        """Map a storage key to a filesystem path inside the tenant's directory."""
        if not tenant_id or not path.startswith(f"{tenant_id}/"):
            raise StorageAccessError(
                message=f"Access denied: {path} is outside tenant {tenant_id}",
                provider_name=self.get_provider_name(),
            )
        tenant_dir = (self._root / tenant_id).resolve()
        target = (self._root / path).resolve()
        # Reject "../" escapes out of the tenant directory.
        if tenant_dir not in target.parents:
            raise StorageAccessError(
                message=f"Access denied: {path} escapes the tenant directory",
                provider_name=self.get_provider_name(),
            )
        return target
