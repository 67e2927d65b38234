"""LLM provider adapters used for contextual enrichment."""

from chunkwise.providers.llm.anthropic_provider import AnthropicLLMProvider
from chunkwise.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OpenAILLMProvider"]
