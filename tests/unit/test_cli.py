"""Unit tests for the chunkwise command-line interface."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from chunkwise.cli.ingest import main
from chunkwise.models.document import Document, DocumentStatus
from chunkwise.models.ingestion import IngestionFailure, IngestionSuccess
from chunkwise.models.processing import LogStatus, ProcessingLogEntry
from chunkwise.providers.persistence.sqlite_document_repository import SQLiteDocumentRepository
from chunkwise.providers.storage.local_storage_provider import LocalStorageProvider


@pytest.fixture()
def db_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    path = tmp_path / "cli.db"
    monkeypatch.setenv("DATABASE_PATH", str(path))
    return path


def _components(tmp_path: Path, db_path: Path, outcome) -> dict:
    orchestrator = MagicMock()
    orchestrator.run = AsyncMock(return_value=outcome)
    return {
        "repository": SQLiteDocumentRepository(db_path=db_path),
        "storage": LocalStorageProvider(root=tmp_path / "uploads"),
        "orchestrator": orchestrator,
        "http_client": AsyncMock(),
    }


def _success(document_id: str = "doc-1") -> IngestionSuccess:
    return IngestionSuccess(
        document_id=document_id,
        tenant_id="acme",
        run_id="run-1",
        chunk_count=4,
        auto_approved=3,
        pending_review=1,
        final_status=DocumentStatus.REVIEWING,
    )


class TestArguments:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out.lower()

    def test_missing_required_option(self) -> None:
        with pytest.raises(SystemExit):
            main(["ingest", "--tenant", "acme"])


class TestInitDbAndStatus:
    def test_init_db(self, db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["init-db"]) == 0
        assert db_path.exists()
        assert "Database ready" in capsys.readouterr().out

    def test_status_unknown_document(
        self, db_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert main(["status", "--document", "nope"]) == 1
        assert "not found" in capsys.readouterr().err

    def test_status_prints_document_and_log(
        self, db_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        async def _seed() -> None:
            repo = SQLiteDocumentRepository(db_path=db_path)
            await repo.initialize()
            await repo.create_document(
                Document(
                    id="doc-1",
                    tenant_id="acme",
                    filename="manual.txt",
                    file_path="acme/doc-1/manual.txt",
                    file_type="text/plain",
                )
            )
            await repo.set_document_status("doc-1", DocumentStatus.FAILED, error_message="boom")
            await repo.append_log(
                ProcessingLogEntry(
                    document_id="doc-1",
                    tenant_id="acme",
                    step="parse_document",
                    status=LogStatus.FAILED,
                    message="Parsing failed",
                    duration_ms=7,
                )
            )

        asyncio.run(_seed())

        assert main(["status", "--document", "doc-1"]) == 0
        out = capsys.readouterr().out
        assert "Status:   failed" in out
        assert "Error:    boom" in out
        assert "parse_document" in out
        assert "7ms" in out


class TestIngest:
    def test_missing_file(self, db_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["ingest", "--file", "/no/such/file.txt", "--tenant", "acme"]) == 1
        assert "file not found" in capsys.readouterr().err

    def test_unsupported_type(
        self, db_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "scan.png"
        source.write_bytes(b"\x89PNG")
        assert main(["ingest", "--file", str(source), "--tenant", "acme"]) == 1
        assert "Unsupported file type" in capsys.readouterr().err

    def test_uploads_registers_and_runs(
        self, db_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "manual.md"
        source.write_text("# Manual\nPress the power button for three seconds.")
        components = _components(tmp_path, db_path, _success())

        with patch("chunkwise.cli.ingest._build_components", return_value=components):
            code = main(
                ["ingest", "--file", str(source), "--tenant", "acme", "--dataset", "faq"]
            )

        assert code == 0
        trigger = components["orchestrator"].run.call_args.args[0]
        assert trigger.tenant_id == "acme"
        assert trigger.dataset_id == "faq"
        assert trigger.file_type == "text/markdown"
        assert trigger.file_path == f"acme/{trigger.document_id}/manual.md"
        assert (tmp_path / "uploads" / trigger.file_path).read_text().startswith("# Manual")
        components["http_client"].aclose.assert_awaited_once()
        assert "Pending review: 1" in capsys.readouterr().out

        async def _check() -> tuple:
            repo = components["repository"]
            return await repo.get_document(trigger.document_id), await repo.get_dataset("faq")

        document, dataset = asyncio.run(_check())
        assert document.file_size == source.stat().st_size
        assert dataset.tenant_id == "acme"

    def test_failed_run_exits_nonzero(
        self, db_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        source = tmp_path / "manual.txt"
        source.write_text("Some text that will fail.")
        failure = IngestionFailure(
            document_id="doc-1",
            tenant_id="acme",
            run_id="run-1",
            step="generate_embeddings",
            error="embedding server down",
            error_type="ProviderUnavailableError",
        )

        with patch(
            "chunkwise.cli.ingest._build_components",
            return_value=_components(tmp_path, db_path, failure),
        ):
            assert main(["ingest", "--file", str(source), "--tenant", "acme"]) == 1

        err = capsys.readouterr().err
        assert "generate_embeddings" in err
        assert "embedding server down" in err


class TestReprocess:
    def test_unknown_document(
        self, db_path: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        components = _components(tmp_path, db_path, _success())
        with patch("chunkwise.cli.ingest._build_components", return_value=components):
            assert main(["reprocess", "--document", "ghost"]) == 1

        components["orchestrator"].run.assert_not_called()
        components["http_client"].aclose.assert_awaited_once()

    def test_resume_with_run_id(self, db_path: Path, tmp_path: Path) -> None:
        components = _components(tmp_path, db_path, _success())

        async def _seed() -> None:
            repo = components["repository"]
            await repo.initialize()
            await repo.create_document(
                Document(
                    id="doc-1",
                    tenant_id="acme",
                    dataset_id="faq",
                    filename="manual.txt",
                    file_path="acme/doc-1/manual.txt",
                    file_type="text/plain",
                )
            )

        asyncio.run(_seed())

        with patch("chunkwise.cli.ingest._build_components", return_value=components):
            assert main(["reprocess", "--document", "doc-1", "--run-id", "run-7"]) == 0

        trigger = components["orchestrator"].run.call_args.args[0]
        assert trigger.run_id == "run-7"
        assert trigger.dataset_id == "faq"
