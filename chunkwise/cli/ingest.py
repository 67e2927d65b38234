"""Command-line ingestion tool.

Usage::

    python -m chunkwise.cli ingest --file manual.pdf --tenant acme --dataset faq
    python -m chunkwise.cli reprocess --document <document-id>
    python -m chunkwise.cli status --document <document-id>
    python -m chunkwise.cli init-db

``ingest`` copies a local file into tenant storage, registers the document
and runs the pipeline in-process.  ``reprocess`` starts a fresh run for an
existing document.  The CLI builds the same components as the web app via
:func:`chunkwise.main.build_components`.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
import uuid
from pathlib import Path
from typing import Any

from chunkwise.config.settings import Settings
from chunkwise.models.document import Dataset, Document
from chunkwise.models.ingestion import IngestionOutcome, IngestionTrigger
from chunkwise.providers.persistence.sqlite_document_repository import SQLiteDocumentRepository
from chunkwise.services.parsing.document_parser import normalize_file_type
from chunkwise.utils.errors import ChunkwiseError


def _build_components(app_settings: Settings) -> dict[str, Any]:
    # Deferred: importing main configures logging and builds the ASGI app.
    from chunkwise.main import build_components

    return build_components(app_settings)


def _print_outcome(outcome: IngestionOutcome) -> int:
    if outcome.ok:
        print("Ingestion complete:")
        print(f"  Document:       {outcome.document_id}")
        print(f"  Status:         {outcome.final_status.value}")
        print(f"  Chunks:         {outcome.chunk_count}")
        print(f"  Auto-approved:  {outcome.auto_approved}")
        print(f"  Pending review: {outcome.pending_review}")
        print(f"  Attempts:       {outcome.attempts}")
        return 0

    print("Ingestion failed:", file=sys.stderr)
    print(f"  Document: {outcome.document_id}", file=sys.stderr)
    print(f"  Step:     {outcome.step or 'startup'}", file=sys.stderr)
    print(f"  Error:    {outcome.error}", file=sys.stderr)
    return 1


async def _run(components: dict[str, Any], trigger: IngestionTrigger) -> int:
    try:
        outcome = await components["orchestrator"].run(trigger)
    finally:
        await components["http_client"].aclose()
    return _print_outcome(outcome)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(args: argparse.Namespace, app_settings: Settings) -> int:
    """Upload a local file into tenant storage and ingest it."""
    source = Path(args.file)
    if not source.is_file():
        print(f"Error: file not found: {source}", file=sys.stderr)
        return 1

    try:
        file_type = normalize_file_type(args.type or source.suffix)
    except ChunkwiseError as exc:
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    components = _build_components(app_settings)
    repository: SQLiteDocumentRepository = components["repository"]
    await repository.initialize()

    if args.dataset and await repository.get_dataset(args.dataset) is None:
        await repository.create_dataset(
            Dataset(id=args.dataset, tenant_id=args.tenant, name=args.dataset)
        )

    document_id = str(uuid.uuid4())
    data = source.read_bytes()
    storage_key = f"{args.tenant}/{document_id}/{source.name}"
    size = await components["storage"].put_file(storage_key, args.tenant, data)

    document = await repository.create_document(
        Document(
            id=document_id,
            tenant_id=args.tenant,
            dataset_id=args.dataset,
            filename=source.name,
            file_path=storage_key,
            file_type=file_type,
            file_size=size,
        )
    )
    print(f"Registered document {document.id} ({file_type}, {size} bytes)")

    trigger = IngestionTrigger(
        document_id=document.id,
        tenant_id=document.tenant_id,
        dataset_id=document.dataset_id,
        filename=document.filename,
        file_type=document.file_type,
        file_path=document.file_path,
    )
    return await _run(components, trigger)


async def _handle_reprocess(args: argparse.Namespace, app_settings: Settings) -> int:
    """Start a fresh ingestion run for an existing document."""
    components = _build_components(app_settings)
    repository: SQLiteDocumentRepository = components["repository"]
    await repository.initialize()

    document = await repository.get_document(args.document)
    if document is None:
        await components["http_client"].aclose()
        print(f"Error: document {args.document} not found", file=sys.stderr)
        return 1

    fields: dict[str, Any] = {
        "document_id": document.id,
        "tenant_id": document.tenant_id,
        "dataset_id": document.dataset_id,
        "filename": document.filename,
        "file_type": document.file_type,
        "file_path": document.file_path,
    }
    if args.run_id:
        fields["run_id"] = args.run_id
    return await _run(components, IngestionTrigger(**fields))


async def _handle_status(args: argparse.Namespace, app_settings: Settings) -> int:
    """Print the document's status and its latest processing log."""
    repository = SQLiteDocumentRepository(db_path=app_settings.database_path)
    await repository.initialize()

    document = await repository.get_document(args.document)
    if document is None:
        print(f"Error: document {args.document} not found", file=sys.stderr)
        return 1

    print(f"Document {document.id} ({document.filename})")
    print(f"  Status:   {document.status.value}")
    if document.progress_step is not None:
        print(f"  Progress: {document.progress_step.value} {document.progress_percent}%")
    if document.error_message:
        print(f"  Error:    {document.error_message}")

    chunks = await repository.list_chunks(document.id)
    if chunks:
        approved = sum(1 for c in chunks if c.auto_approved)
        print(f"  Chunks:   {len(chunks)} ({approved} auto-approved)")

    logs = await repository.list_logs(document.id)
    if logs:
        print("\n  Processing log:")
        for entry in logs:
            duration = f" {entry.duration_ms}ms" if entry.duration_ms is not None else ""
            print(f"    {entry.step:<24} {entry.status.value:<10}{duration}  {entry.message}")
    return 0


async def _handle_init_db(app_settings: Settings) -> int:
    repository = SQLiteDocumentRepository(db_path=app_settings.database_path)
    await repository.initialize()
    print(f"Database ready at {app_settings.database_path}")
    return 0


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m chunkwise.cli",
        description="Ingest documents into quality-gated, embedded chunks.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    ingest_parser = subparsers.add_parser("ingest", help="Upload and ingest a local file")
    ingest_parser.add_argument("--file", required=True, help="Path to the document")
    ingest_parser.add_argument("--tenant", required=True, help="Owning tenant id")
    ingest_parser.add_argument("--dataset", default=None, help="Target dataset id (created if missing)")
    ingest_parser.add_argument(
        "--type", default=None, help="File type override (MIME type or extension)"
    )

    reprocess_parser = subparsers.add_parser("reprocess", help="Re-run ingestion for a document")
    reprocess_parser.add_argument("--document", required=True, help="Document id")
    reprocess_parser.add_argument(
        "--run-id",
        dest="run_id",
        default=None,
        help="Resume an interrupted run instead of starting a fresh one",
    )

    status_parser = subparsers.add_parser("status", help="Show document status and log")
    status_parser.add_argument("--document", required=True, help="Document id")

    subparsers.add_parser("init-db", help="Create the SQLite schema")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """Parse *argv*, dispatch to a handler and return its exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    app_settings = Settings()

    try:
        if args.command == "ingest":
            return asyncio.run(_handle_ingest(args, app_settings))
        if args.command == "reprocess":
            return asyncio.run(_handle_reprocess(args, app_settings))
        if args.command == "status":
            return asyncio.run(_handle_status(args, app_settings))
        if args.command == "init-db":
            return asyncio.run(_handle_init_db(app_settings))
    except ChunkwiseError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
