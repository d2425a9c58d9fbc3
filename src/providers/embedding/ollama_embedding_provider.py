"""Ollama embedding provider adapter (local, no API key).

Talks to the OpenAI-compatible ``/v1`` endpoint that Ollama exposes, so
the ``openai`` SDK does the HTTP work; ``httpx`` is only used to probe the
native ``/api/tags`` endpoint for reachability and installed models.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.embedding import EmbeddingOperation, EmbeddingParams, ModelInfo
from src.providers.embedding.prefixes import apply_task_prefix
from src.utils.errors import EmbeddingError, ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 512

# name -> (dimension, context length)
_MODEL_CATALOG: dict[str, tuple[int, int]] = {
    "nomic-embed-text": (768, 2048),
    "mxbai-embed-large": (1024, 512),
    "snowflake-arctic-embed": (1024, 512),
    "bge-m3": (1024, 8192),
    "all-minilm": (384, 256),
}

_DEFAULT_MODEL = "nomic-embed-text"


class OllamaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by models served by a local Ollama server.

    Handles automatic batching for inputs exceeding 512 texts per call.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",  # Ollama ignores the key; the SDK requires one
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self, texts: list[str], params: EmbeddingParams | None = None
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts."""
        if not texts:
            return []

        model = params.model if params else _DEFAULT_MODEL
        operation = params.operation if params else EmbeddingOperation.INDEX
        inputs = apply_task_prefix(texts, model, operation)

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(inputs), _OLLAMA_BATCH_LIMIT):
                batch = inputs[start : start + _OLLAMA_BATCH_LIMIT]
                response = await self._client.embeddings.create(input=batch, model=model)
                all_embeddings.extend(item.embedding for item in response.data)
                logger.info(
                    "ollama_embedding_batch",
                    model=model,
                    operation=operation.value,
                    batch_size=len(batch),
                )
            return all_embeddings
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"Ollama server unreachable at {self._base_url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def list_models(self) -> list[ModelInfo]:
        return [
            ModelInfo(
                name=name,
                provider_name=self.get_provider_name(),
                aliases=(f"{name}:latest",),
                context_length=context_length,
                embedding_dimension=dimension,
            )
            for name, (dimension, context_length) in _MODEL_CATALOG.items()
        ]

    def get_provider_name(self) -> str:
        return "ollama_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server answers ``/api/tags``."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except httpx.HTTPError:
            return False
