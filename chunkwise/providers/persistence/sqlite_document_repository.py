"""SQLite-backed document repository.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IDocumentRepository).
#
# Database: ``data/chunkwise.db`` -- documents, chunks, dataset aggregates,
# processing logs and step checkpoints live side by side so an ingestion
# run's checkpoints are always consistent with the rows it wrote.
#
# Uses ``aiosqlite`` for async I/O and ``PRAGMA journal_mode=WAL`` so the
# API can poll progress while a pipeline run is writing.
#
# Chunk batches are inserted inside one transaction; the persisted count
# returned to the caller is read back with a COUNT query after commit.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from chunkwise.interfaces.document_repository import IDocumentRepository
from chunkwise.models.document import (
    Chunk,
    Dataset,
    Document,
    DocumentStatus,
    ProgressStep,
)
from chunkwise.models.processing import ProcessingLogEntry, StepCheckpoint

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/chunkwise.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_DOCUMENTS_TABLE = """\
CREATE TABLE IF NOT EXISTS documents (
    id               TEXT    PRIMARY KEY,
    tenant_id        TEXT    NOT NULL,
    dataset_id       TEXT,
    filename         TEXT    NOT NULL,
    file_path        TEXT    NOT NULL,
    file_type        TEXT    NOT NULL,
    file_size        INTEGER NOT NULL DEFAULT 0,
    status           TEXT    NOT NULL DEFAULT 'uploaded',
    progress_step    TEXT,
    progress_percent INTEGER NOT NULL DEFAULT 0,
    error_message    TEXT,
    created_at       TEXT    NOT NULL,
    updated_at       TEXT    NOT NULL
);
"""

_CREATE_CHUNKS_TABLE = """\
CREATE TABLE IF NOT EXISTS chunks (
    id             TEXT    PRIMARY KEY,
    tenant_id      TEXT    NOT NULL,
    document_id    TEXT    NOT NULL,
    dataset_id     TEXT,
    chunk_index    INTEGER NOT NULL,
    content        TEXT    NOT NULL,
    embedding      TEXT    NOT NULL,
    quality_score  REAL    NOT NULL,
    status         TEXT    NOT NULL DEFAULT 'pending',
    auto_approved  INTEGER NOT NULL DEFAULT 0,
    context_prefix TEXT,
    metadata       TEXT    NOT NULL DEFAULT '{}',
    version        INTEGER NOT NULL DEFAULT 1,
    is_active      INTEGER NOT NULL DEFAULT 1,
    created_at     TEXT    NOT NULL
);
"""

_CREATE_DATASETS_TABLE = """\
CREATE TABLE IF NOT EXISTS datasets (
    id                  TEXT    PRIMARY KEY,
    tenant_id           TEXT    NOT NULL,
    name                TEXT    NOT NULL,
    document_count      INTEGER NOT NULL DEFAULT 0,
    chunk_count         INTEGER NOT NULL DEFAULT 0,
    total_storage_bytes INTEGER NOT NULL DEFAULT 0,
    updated_at          TEXT    NOT NULL
);
"""

_CREATE_LOGS_TABLE = """\
CREATE TABLE IF NOT EXISTS processing_logs (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id   TEXT    NOT NULL,
    tenant_id     TEXT    NOT NULL,
    step          TEXT    NOT NULL,
    status        TEXT    NOT NULL,
    message       TEXT    NOT NULL DEFAULT '',
    details       TEXT    NOT NULL DEFAULT '{}',
    duration_ms   INTEGER,
    error_message TEXT,
    error_stack   TEXT,
    created_at    TEXT    NOT NULL
);
"""

_CREATE_CHECKPOINTS_TABLE = """\
CREATE TABLE IF NOT EXISTS step_checkpoints (
    document_id TEXT NOT NULL,
    run_id      TEXT NOT NULL,
    step        TEXT NOT NULL,
    result_json TEXT NOT NULL,
    created_at  TEXT NOT NULL,
    PRIMARY KEY (document_id, run_id, step)
);
"""

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_documents_dataset ON documents(dataset_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_dataset ON chunks(dataset_id, is_active);",
    # No two active chunks of one document may share an index.
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_chunks_document_index "
    "ON chunks(document_id, chunk_index) WHERE is_active = 1;",
    "CREATE INDEX IF NOT EXISTS idx_logs_document ON processing_logs(document_id);",
]

# ── DML ───────────────────────────────────────────────────────────────

_INSERT_DOCUMENT = """\
INSERT INTO documents (id, tenant_id, dataset_id, filename, file_path, file_type, file_size,
                       status, progress_step, progress_percent, error_message, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_DOCUMENT_COLUMNS = """\
SELECT id, tenant_id, dataset_id, filename, file_path, file_type, file_size, status,
       progress_step, progress_percent, error_message, created_at, updated_at
FROM documents
"""

_UPDATE_PROGRESS = """\
UPDATE documents SET progress_step = ?, progress_percent = ?, updated_at = ?
WHERE id = ?;
"""

_UPDATE_STATUS = """\
UPDATE documents SET status = ?, error_message = ?, updated_at = ?
WHERE id = ?;
"""

_UPDATE_STATUS_WITH_PROGRESS = """\
UPDATE documents SET status = ?, error_message = ?, progress_step = ?, progress_percent = ?,
                     updated_at = ?
WHERE id = ?;
"""

_INSERT_CHUNK = """\
INSERT INTO chunks (id, tenant_id, document_id, dataset_id, chunk_index, content, embedding,
                    quality_score, status, auto_approved, context_prefix, metadata, version,
                    is_active, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_SELECT_CHUNK_COLUMNS = """\
SELECT id, tenant_id, document_id, dataset_id, chunk_index, content, embedding, quality_score,
       status, auto_approved, context_prefix, metadata, version, is_active, created_at
FROM chunks
"""

_INSERT_DATASET = """\
INSERT INTO datasets (id, tenant_id, name, document_count, chunk_count, total_storage_bytes,
                      updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_UPDATE_DATASET_STATS = """\
UPDATE datasets SET document_count = ?, chunk_count = ?, total_storage_bytes = ?, updated_at = ?
WHERE id = ?;
"""

_INSERT_LOG = """\
INSERT INTO processing_logs (document_id, tenant_id, step, status, message, details,
                             duration_ms, error_message, error_stack, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_UPSERT_CHECKPOINT = """\
INSERT INTO step_checkpoints (document_id, run_id, step, result_json, created_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(document_id, run_id, step)
DO UPDATE SET result_json = excluded.result_json,
              created_at  = excluded.created_at;
"""


def _now() -> str:
    return datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017


class SQLiteDocumentRepository(IDocumentRepository):
    """SQLite-backed persistence for everything the ingestion pipeline touches."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create all tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.execute(_CREATE_DOCUMENTS_TABLE)
            await db.execute(_CREATE_CHUNKS_TABLE)
            await db.execute(_CREATE_DATASETS_TABLE)
            await db.execute(_CREATE_LOGS_TABLE)
            await db.execute(_CREATE_CHECKPOINTS_TABLE)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_documents"

    # ── Documents ──────────────────────────────────────────────────────

    async def create_document(self, document: Document) -> Document:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_INSERT_DOCUMENT, (
                document.id,
                document.tenant_id,
                document.dataset_id,
                document.filename,
                document.file_path,
                document.file_type,
                document.file_size,
                document.status.value,
                document.progress_step.value if document.progress_step else None,
                document.progress_percent,
                document.error_message,
                document.created_at.isoformat(),
                document.updated_at.isoformat(),
            ))
            await db.commit()
        logger.info(
            "document_created",
            document_id=document.id,
            tenant_id=document.tenant_id,
            dataset_id=document.dataset_id,
        )
        return document

    async def get_document(self, document_id: str) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(_SELECT_DOCUMENT_COLUMNS + "WHERE id = ?;", (document_id,))
            row = await cursor.fetchone()
        return self._row_to_document(dict(row)) if row is not None else None

    async def list_documents(self, dataset_id: str | None = None) -> list[Document]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            if dataset_id is None:
                cursor = await db.execute(_SELECT_DOCUMENT_COLUMNS + "ORDER BY created_at;")
            else:
                cursor = await db.execute(
                    _SELECT_DOCUMENT_COLUMNS + "WHERE dataset_id = ? ORDER BY created_at;",
                    (dataset_id,),
                )
            rows = await cursor.fetchall()
        return [self._row_to_document(dict(r)) for r in rows]

    async def update_progress(
        self,
        document_id: str,
        step: ProgressStep | None,
        percent: int,
    ) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPDATE_PROGRESS, (
                step.value if step else None,
                max(0, min(100, int(percent))),
                _now(),
                document_id,
            ))
            await db.commit()

    async def set_document_status(
        self,
        document_id: str,
        status: DocumentStatus,
        error_message: str | None = None,
        progress_step: ProgressStep | None = None,
        progress_percent: int | None = None,
    ) -> None:
        """Transition the document's status.

        Progress columns are only written when ``progress_percent`` is given;
        ``progress_step`` is then written as-is, so ``None`` clears it.
        """
        async with aiosqlite.connect(str(self._db_path)) as db:
            if progress_percent is None:
                await db.execute(
                    _UPDATE_STATUS, (status.value, error_message, _now(), document_id)
                )
            else:
                await db.execute(_UPDATE_STATUS_WITH_PROGRESS, (
                    status.value,
                    error_message,
                    progress_step.value if progress_step else None,
                    max(0, min(100, int(progress_percent))),
                    _now(),
                    document_id,
                ))
            await db.commit()
        logger.info("document_status_changed", document_id=document_id, status=status.value)

    # ── Chunks ─────────────────────────────────────────────────────────

    async def delete_chunks_for_document(self, document_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM chunks WHERE document_id = ?;", (document_id,))
            deleted = cursor.rowcount
            await db.commit()
        return max(deleted, 0)

    async def insert_chunks(self, chunks: list[Chunk]) -> int:
        """Insert *chunks* in one transaction and return the count read back."""
        if not chunks:
            return 0

        rows = [
            (
                c.id,
                c.tenant_id,
                c.document_id,
                c.dataset_id,
                c.chunk_index,
                c.content,
                json.dumps(c.embedding),
                c.quality_score,
                c.status.value,
                int(c.auto_approved),
                c.context_prefix,
                json.dumps(c.metadata),
                c.version,
                int(c.is_active),
                c.created_at.isoformat(),
            )
            for c in chunks
        ]
        ids = [c.id for c in chunks]
        placeholders = ", ".join("?" for _ in ids)

        async with aiosqlite.connect(str(self._db_path)) as db:
            try:
                await db.execute("BEGIN;")
                await db.executemany(_INSERT_CHUNK, rows)
                await db.commit()
            except Exception:
                await db.rollback()
                raise
            cursor = await db.execute(
                f"SELECT COUNT(*) FROM chunks WHERE id IN ({placeholders});",  # noqa: S608
                ids,
            )
            (persisted,) = await cursor.fetchone()
        return int(persisted)

    async def list_chunks(self, document_id: str, active_only: bool = True) -> list[Chunk]:
        query = _SELECT_CHUNK_COLUMNS + "WHERE document_id = ?"
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY chunk_index;"
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(query, (document_id,))
            rows = await cursor.fetchall()
        return [self._row_to_chunk(dict(r)) for r in rows]

    # ── Datasets ───────────────────────────────────────────────────────

    async def create_dataset(self, dataset: Dataset) -> Dataset:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_INSERT_DATASET, (
                dataset.id,
                dataset.tenant_id,
                dataset.name,
                dataset.document_count,
                dataset.chunk_count,
                dataset.total_storage_bytes,
                dataset.updated_at.isoformat(),
            ))
            await db.commit()
        return dataset

    async def get_dataset(self, dataset_id: str) -> Dataset | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT id, tenant_id, name, document_count, chunk_count, total_storage_bytes, "
                "updated_at FROM datasets WHERE id = ?;",
                (dataset_id,),
            )
            row = await cursor.fetchone()
        return Dataset(**dict(row)) if row is not None else None

    async def count_documents(self, dataset_id: str) -> int:
        return await self._scalar(
            "SELECT COUNT(*) FROM documents WHERE dataset_id = ?;", (dataset_id,)
        )

    async def count_chunks(self, dataset_id: str) -> int:
        return await self._scalar(
            "SELECT COUNT(*) FROM chunks WHERE dataset_id = ? AND is_active = 1;", (dataset_id,)
        )

    async def sum_storage_bytes(self, dataset_id: str) -> int:
        return await self._scalar(
            "SELECT COALESCE(SUM(file_size), 0) FROM documents WHERE dataset_id = ?;",
            (dataset_id,),
        )

    async def update_dataset_stats(
        self,
        dataset_id: str,
        document_count: int,
        chunk_count: int,
        total_storage_bytes: int,
    ) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPDATE_DATASET_STATS, (
                document_count,
                chunk_count,
                total_storage_bytes,
                _now(),
                dataset_id,
            ))
            await db.commit()

    # ── Processing logs ────────────────────────────────────────────────

    async def append_log(self, entry: ProcessingLogEntry) -> ProcessingLogEntry:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(_INSERT_LOG, (
                entry.document_id,
                entry.tenant_id,
                entry.step,
                entry.status.value,
                entry.message,
                json.dumps(entry.details, default=str),
                entry.duration_ms,
                entry.error_message,
                entry.error_stack,
                entry.created_at.isoformat(),
            ))
            await db.commit()
            row_id = cursor.lastrowid
        return entry.model_copy(update={"id": row_id})

    async def list_logs(self, document_id: str) -> list[ProcessingLogEntry]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT id, document_id, tenant_id, step, status, message, details, duration_ms, "
                "error_message, error_stack, created_at FROM processing_logs "
                "WHERE document_id = ? ORDER BY id;",
                (document_id,),
            )
            rows = await cursor.fetchall()
        entries = []
        for row in rows:
            data = dict(row)
            data["details"] = json.loads(data["details"] or "{}")
            entries.append(ProcessingLogEntry(**data))
        return entries

    async def clear_logs(self, document_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "DELETE FROM processing_logs WHERE document_id = ?;", (document_id,)
            )
            deleted = cursor.rowcount
            await db.commit()
        return max(deleted, 0)

    # ── Step checkpoints ───────────────────────────────────────────────

    async def save_checkpoint(self, checkpoint: StepCheckpoint) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_UPSERT_CHECKPOINT, (
                checkpoint.document_id,
                checkpoint.run_id,
                checkpoint.step,
                json.dumps(checkpoint.result),
                checkpoint.created_at.isoformat(),
            ))
            await db.commit()

    async def load_checkpoints(self, document_id: str, run_id: str) -> dict[str, Any]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(
                "SELECT step, result_json FROM step_checkpoints "
                "WHERE document_id = ? AND run_id = ?;",
                (document_id, run_id),
            )
            rows = await cursor.fetchall()
        return {step: json.loads(result_json) for step, result_json in rows}

    async def clear_checkpoints(self, document_id: str, keep_run_id: str | None = None) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            if keep_run_id is None:
                cursor = await db.execute(
                    "DELETE FROM step_checkpoints WHERE document_id = ?;", (document_id,)
                )
            else:
                cursor = await db.execute(
                    "DELETE FROM step_checkpoints WHERE document_id = ? AND run_id != ?;",
                    (document_id, keep_run_id),
                )
            deleted = cursor.rowcount
            await db.commit()
        return max(deleted, 0)

    # ── Private helpers ────────────────────────────────────────────────

    async def _scalar(self, query: str, params: tuple) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(query, params)
            row = await cursor.fetchone()
        return int(row[0]) if row and row[0] is not None else 0

    @staticmethod
    def _row_to_document(row: dict[str, Any]) -> Document:
        return Document(**row)

    @staticmethod
    def _row_to_chunk(row: dict[str, Any]) -> Chunk:
        row["embedding"] = json.loads(row["embedding"])
        row["metadata"] = json.loads(row["metadata"] or "{}")
        row["auto_approved"] = bool(row["auto_approved"])
        row["is_active"] = bool(row["is_active"])
        return Chunk(**row)
