"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible hosts (TogetherAI,
Fireworks, vLLM) via a custom ``base_url``.  The ``text-embedding-3-*``
models accept a ``dimensions`` argument and are therefore registered as
dimension-adjustable.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.models.embedding import EmbeddingOperation, EmbeddingParams, ModelInfo
from src.providers.embedding.prefixes import apply_task_prefix
from src.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_OPENAI_BATCH_LIMIT = 2048

# name -> (dimension, max input tokens, dimension adjustable)
_MODEL_CATALOG: dict[str, tuple[int, int, bool]] = {
    "text-embedding-3-small": (1536, 8191, True),
    "text-embedding-3-large": (3072, 8191, True),
    "text-embedding-ada-002": (1536, 8191, False),
    "BAAI/bge-base-en-v1.5": (768, 512, False),
    "BAAI/bge-large-en-v1.5": (1024, 512, False),
    "intfloat/multilingual-e5-large-instruct": (1024, 512, False),
    "togethercomputer/m2-bert-80M-8k-retrieval": (768, 8192, False),
}

_DEFAULT_MODEL = "text-embedding-3-small"


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Handles automatic batching for inputs exceeding the per-call limit and
    maps SDK exceptions onto the application's error hierarchy.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {"api_key": self._api_key}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._default_model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(
        self, texts: list[str], params: EmbeddingParams | None = None
    ) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Splits into batches of 2048 when the input exceeds the per-call
        limit.  ``params.dimensions`` is forwarded only to models that
        accept it.
        """
        if not texts:
            return []

        model = params.model if params else self._default_model
        operation = params.operation if params else EmbeddingOperation.INDEX
        inputs = apply_task_prefix(texts, model, operation)

        extra: dict = {}
        if params and params.dimensions and self._is_adjustable(model):
            extra["dimensions"] = params.dimensions

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(inputs), _OPENAI_BATCH_LIMIT):
                batch = inputs[start : start + _OPENAI_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=model,
                    **extra,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.info(
                    "openai_embedding_batch",
                    model=model,
                    provider=self._provider_label,
                    operation=operation.value,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
            return all_embeddings
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limit: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"{self._provider_label} unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    def list_models(self) -> list[ModelInfo]:
        models = dict(_MODEL_CATALOG)
        # A custom default (e.g. on an OpenAI-compatible host) is served too.
        models.setdefault(self._default_model, (768, 512, False))
        return [
            ModelInfo(
                name=name,
                provider_name=self._provider_label,
                context_length=max_tokens,
                embedding_dimension=dimension,
                dimension_adjustable=adjustable,
            )
            for name, (dimension, max_tokens, adjustable) in models.items()
        ]

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)

    @staticmethod
    def _is_adjustable(model: str) -> bool:
        entry = _MODEL_CATALOG.get(model)
        return bool(entry and entry[2])
