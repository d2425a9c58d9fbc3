"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.
Implementations wrap OpenAI-compatible embedding APIs or a local Ollama
server.  Each provider also reports the models it serves together with
their capabilities so the model registry can resolve names to providers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.embedding import EmbeddingParams, ModelInfo


# Concrete implementations:
#   OpenAIEmbeddingProvider  - text-embedding-3-* and OpenAI-compatible hosts
#   OllamaEmbeddingProvider  - nomic-embed-text, mxbai-embed-large, ... via Ollama
# Located in: src/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed(
        self, texts: list[str], params: EmbeddingParams | None = None
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            One or more text strings to embed.  Implementations handle
            the underlying API's per-call item limit internally.
        params:
            Model name, operation (index vs. query representation) and an
            optional requested output size.  ``None`` uses the provider's
            default model with the index representation.

        Returns
        -------
        list[list[float]]
            Raw embedding vectors corresponding positionally to *texts*.
            Lengths are whatever the model produced; callers fit them to
            the target dimension.

        Raises
        ------
        src.utils.errors.EmbeddingError
            If the embedding API call fails.
        """

    async def embed_single(self, text: str, params: EmbeddingParams | None = None) -> list[float]:
        """Generate an embedding vector for a single text string."""
        result = await self.embed([text], params)
        return result[0]

    @abstractmethod
    def list_models(self) -> list[ModelInfo]:
        """Return the embedding models this provider serves."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai_embedding"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and reachable."""
