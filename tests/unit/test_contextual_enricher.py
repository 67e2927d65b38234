"""Unit tests for contextual enrichment of chunks."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from chunkwise.models.ingestion import EnrichmentOptions
from chunkwise.services.contextual_enricher import (
    ContextualEnricher,
    build_contextual_content,
    build_prompt,
    document_window,
    is_korean_document,
)
from chunkwise.utils.errors import LLMError
from tests.conftest import SAMPLE_TEXT, make_chunks


class TestPromptHelpers:
    def test_short_document_is_shown_whole(self) -> None:
        assert document_window("short text", "short", 100) == "short text"

    def test_long_document_is_windowed_around_chunk(self) -> None:
        full = "a" * 100 + "CHUNK" + "b" * 100
        window = document_window(full, "CHUNK", 20)
        assert window == "..." + "a" * 10 + "CHUNK" + "b" * 10 + "..."

    def test_window_at_document_start_has_no_leading_ellipsis(self) -> None:
        full = "CHUNK" + "b" * 100
        window = document_window(full, "CHUNK", 20)
        assert window == "CHUNK" + "b" * 10 + "..."

    def test_missing_chunk_falls_back_to_head(self) -> None:
        full = "x" * 50
        assert document_window(full, "absent", 20) == "x" * 20 + "..."

    @pytest.mark.parametrize(
        ("text", "expected"),
        [("안녕하세요 hello", True), ("hello world", False), ("", False), ("   ", False)],
    )
    def test_korean_detection(self, text: str, expected: bool) -> None:
        assert is_korean_document(text) is expected

    def test_prompt_language_follows_document(self) -> None:
        english = build_prompt("The refund policy.", "refund", 1000)
        korean = build_prompt("환불 정책은 다음과 같습니다.", "환불", 1000)

        assert "<chunk>\nrefund\n</chunk>" in english
        assert "succinct context" in english
        assert "다음은 위 문서에서 추출한 청크입니다" in korean

    @pytest.mark.parametrize(
        ("prefix", "expected"),
        [("Context.", "Context.\n\nBody."), ("", "Body."), (None, "Body.")],
    )
    def test_contextual_content(self, prefix: str | None, expected: str) -> None:
        assert build_contextual_content("Body.", prefix) == expected


class TestContextualEnricher:
    @pytest.fixture()
    def options(self) -> EnrichmentOptions:
        return EnrichmentOptions(batch_size=2, batch_delay_ms=0, max_context_tokens=99)

    @pytest.mark.asyncio
    async def test_one_result_per_chunk_in_order(
        self, mock_llm: MagicMock, options: EnrichmentOptions
    ) -> None:
        enricher = ContextualEnricher(mock_llm, options)
        results = await enricher.enrich(SAMPLE_TEXT, make_chunks([90.0] * 5))

        assert [r.chunk_index for r in results] == [0, 1, 2, 3, 4]
        assert all(r.context_prefix == "This chunk is from the warranty section." for r in results)
        assert all(r.prompt and "<document>" in r.prompt for r in results)

    @pytest.mark.asyncio
    async def test_llm_call_arguments(
        self, mock_llm: MagicMock, options: EnrichmentOptions
    ) -> None:
        enricher = ContextualEnricher(mock_llm, options)
        await enricher.enrich(SAMPLE_TEXT, make_chunks([90.0]))

        kwargs = mock_llm.complete.call_args.kwargs
        assert kwargs["system_prompt"] == ""
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 99
        assert "Section 0:" in kwargs["user_prompt"]

    @pytest.mark.asyncio
    async def test_progress_reported_per_batch(
        self, mock_llm: MagicMock, options: EnrichmentOptions
    ) -> None:
        progress = AsyncMock()
        enricher = ContextualEnricher(mock_llm, options)

        await enricher.enrich(SAMPLE_TEXT, make_chunks([90.0] * 5), on_progress=progress)

        assert [c.args for c in progress.call_args_list] == [(2, 5), (4, 5), (5, 5)]

    @pytest.mark.asyncio
    async def test_failed_chunk_gets_empty_prefix(
        self, mock_llm: MagicMock, options: EnrichmentOptions
    ) -> None:
        async def _complete(**kwargs: object) -> str:
            if "Section 1:" in str(kwargs["user_prompt"]).split("<chunk>")[1]:
                raise LLMError(message="overloaded", provider_name="fake_llm")
            return "  Context sentence.  "

        mock_llm.complete = AsyncMock(side_effect=_complete)
        enricher = ContextualEnricher(mock_llm, options)

        results = await enricher.enrich(SAMPLE_TEXT, make_chunks([90.0] * 3))

        assert [r.context_prefix for r in results] == [
            "Context sentence.",
            "",
            "Context sentence.",
        ]

    @pytest.mark.asyncio
    async def test_prompt_not_kept_when_disabled(self, mock_llm: MagicMock) -> None:
        enricher = ContextualEnricher(
            mock_llm, EnrichmentOptions(batch_delay_ms=0, save_prompt=False)
        )
        results = await enricher.enrich(SAMPLE_TEXT, make_chunks([90.0, 90.0]))

        assert all(r.prompt is None for r in results)

    @pytest.mark.asyncio
    async def test_empty_chunk_list(self, mock_llm: MagicMock) -> None:
        enricher = ContextualEnricher(mock_llm)
        assert await enricher.enrich(SAMPLE_TEXT, []) == []
        mock_llm.complete.assert_not_called()

    def test_provider_name(self, mock_llm: MagicMock) -> None:
        assert ContextualEnricher(mock_llm).provider_name == "fake_llm"
