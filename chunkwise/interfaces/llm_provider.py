"""Abstract base class for LLM service providers.

Defines the contract for the text-completion backend used to generate
chunk context prefixes.  Implementations wrap the Anthropic API (Claude)
or an OpenAI-compatible endpoint; call-sites stay provider-agnostic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations: AnthropicLLMProvider, OpenAILLMProvider
# Located in: chunkwise/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the contextual enricher."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
        max_tokens: int = 150,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
            May be empty.
        user_prompt:
            The user-facing prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        chunkwise.utils.errors.LLMError
            If the API call fails or returns an invalid response.
        chunkwise.utils.errors.RateLimitError
            If the provider rejected the request for rate-limit reasons.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider.

        Example return values: ``"anthropic"``, ``"openai"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations should verify that credentials are present without
        making an inference call.
        """
