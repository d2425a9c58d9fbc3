"""Abstract base class for LLM completion providers.

Used by the enrichment strategies (Q&A synthesis, summaries) and by the
oversized-text handler.  The adapter pattern keeps every call site
provider-agnostic: strategies receive the provider through the
:class:`~src.models.embedding.EmbeddingContext`, never by name.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.embedding import ModelInfo


# Concrete implementations: OpenAILLMProvider, OllamaLLMProvider
# Located in: src/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the enrichment phase."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        model: str | None = None,
        reasoning_effort: str | None = None,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The instruction message that sets the model's behaviour.
        user_prompt:
            The content to operate on.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.
        model:
            Model to use; ``None`` selects the provider's default.
        reasoning_effort:
            ``"low"``/``"medium"``/``"high"`` for reasoning-capable models,
            ignored otherwise.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        src.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def list_models(self) -> list[ModelInfo]:
        """Return the completion models this provider serves."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured."""

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Contact the remote service to confirm it accepts requests."""
