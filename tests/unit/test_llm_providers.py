"""Unit tests for LLM provider adapters — Anthropic, OpenAI."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from chunkwise.config.settings import Settings
from chunkwise.utils.errors import LLMError, RateLimitError


def _settings(**overrides) -> Settings:
    defaults = {
        "anthropic_api_key": "sk-ant-REDACTED",
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "context_model": "claude-3-haiku-20240307",
        "openai_context_model": "gpt-4o-mini",
    }
    defaults.update(overrides)
    return Settings(_env_file=None, **defaults)


def _request() -> httpx.Request:
    return httpx.Request("POST", "https://api.example.test/v1")


# ======================================================================
# Anthropic
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_provider_name_and_availability(self, settings: Settings) -> None:
        from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider

        provider = AnthropicLLMProvider(settings)
        assert provider.get_provider_name() == "anthropic"
        assert provider.is_available() is True
        assert AnthropicLLMProvider(_settings(anthropic_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self, settings: Settings) -> None:
        from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_response = MagicMock()
        mock_response.content = [
            MagicMock(type="text", text="Situating context."),
            MagicMock(type="tool_use", text="ignored"),
        ]
        mock_response.usage = MagicMock(input_tokens=120, output_tokens=12)
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch(
            "chunkwise.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            provider = AnthropicLLMProvider(settings)
            result = await provider.complete("", "user prompt", temperature=0.0, max_tokens=150)

        assert result == "Situating context."
        kwargs = mock_client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-3-haiku-20240307"
        assert kwargs["max_tokens"] == 150
        assert kwargs["messages"] == [{"role": "user", "content": "user prompt"}]
        assert "system" not in kwargs

    @pytest.mark.asyncio
    async def test_system_prompt_is_top_level(self, settings: Settings) -> None:
        from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_response = MagicMock()
        mock_response.content = [MagicMock(type="text", text="ok")]
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch(
            "chunkwise.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            await AnthropicLLMProvider(settings).complete("be brief", "user prompt")

        assert mock_client.messages.create.call_args.kwargs["system"] == "be brief"

    @pytest.mark.asyncio
    async def test_api_error_becomes_llm_error(self, settings: Settings) -> None:
        import anthropic

        from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(
            side_effect=anthropic.APIError(message="overloaded", request=_request(), body=None)
        )

        with patch(
            "chunkwise.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            provider = AnthropicLLMProvider(settings)
            with pytest.raises(LLMError) as exc_info:
                await provider.complete("", "user prompt")

        assert exc_info.value.provider_name == "anthropic"

    @pytest.mark.asyncio
    async def test_no_text_blocks(self, settings: Settings) -> None:
        from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_response = MagicMock()
        mock_response.content = []
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(return_value=mock_response)

        with patch(
            "chunkwise.providers.llm.anthropic_provider.anthropic.AsyncAnthropic",
            return_value=mock_client,
        ):
            with pytest.raises(LLMError, match="no text"):
                await AnthropicLLMProvider(settings).complete("", "user prompt")


# ======================================================================
# OpenAI
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_provider_name_and_availability(self, settings: Settings) -> None:
        from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

        assert OpenAILLMProvider(settings).get_provider_name() == "openai"
        assert OpenAILLMProvider(settings).is_available() is True
        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self, settings: Settings) -> None:
        from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content="Context line."))]
        mock_response.usage = MagicMock(total_tokens=100)
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with patch(
            "chunkwise.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            result = await provider.complete("", "user prompt", max_tokens=80)

        assert result == "Context line."
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["max_tokens"] == 80
        assert kwargs["messages"] == [{"role": "user", "content": "user prompt"}]

    @pytest.mark.asyncio
    async def test_rate_limit(self, settings: Settings) -> None:
        import openai

        from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.RateLimitError(
                message="slow down",
                response=httpx.Response(429, request=_request()),
                body=None,
            )
        )

        with patch(
            "chunkwise.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            with pytest.raises(RateLimitError):
                await OpenAILLMProvider(settings).complete("system", "user")

    @pytest.mark.asyncio
    async def test_empty_completion(self, settings: Settings) -> None:
        from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

        mock_response = MagicMock()
        mock_response.choices = [MagicMock(message=MagicMock(content=""))]
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=mock_response)

        with patch(
            "chunkwise.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            with pytest.raises(LLMError, match="empty"):
                await OpenAILLMProvider(settings).complete("", "user")

    def test_base_url_is_forwarded(self) -> None:
        from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

        with patch("chunkwise.providers.llm.openai_provider.openai.AsyncOpenAI") as client_cls:
            OpenAILLMProvider(_settings(openai_base_url="http://vllm:8000/v1"))

        client_cls.assert_called_once_with(api_key="sk-test", base_url="http://vllm:8000/v1")
