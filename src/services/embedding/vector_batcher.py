"""Batched vector computation within a model's context budget.

Provider throughput is limited by request rate rather than token count,
so texts are grouped into as few ``embed`` calls as the context budget
allows: a batch closes when adding the next text would push its estimated
token total past the budget, or when it reaches ``max_batch_items``.  A
single text larger than the budget travels alone (oversize handling runs
before batching, so this only happens for texts within tolerance).
"""

from __future__ import annotations

from collections.abc import Sequence

import structlog

from src.config.ingestion import IngestionConfig
from src.models.embedding import EmbeddingContext, EmbeddingOperation
from src.services.embedding.vectors import prepare_vector
from src.utils.errors import EmbeddingError
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)


class VectorBatcher:
    """Groups texts into provider calls and fits the returned vectors."""

    def __init__(
        self,
        config: IngestionConfig,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._config = config
        self._estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def plan_batches(self, texts: Sequence[str], token_budget: int) -> list[list[int]]:
        """Return groups of indices into *texts*, preserving order."""
        batches: list[list[int]] = []
        current: list[int] = []
        current_tokens = 0
        for index, text in enumerate(texts):
            tokens = self._estimator.estimate(text)
            full = len(current) >= self._config.max_batch_items
            over = current and current_tokens + tokens > token_budget
            if full or over:
                batches.append(current)
                current, current_tokens = [], 0
            current.append(index)
            current_tokens += tokens
        if current:
            batches.append(current)
        return batches

    async def embed_batch(
        self,
        texts: Sequence[str],
        context: EmbeddingContext,
        operation: EmbeddingOperation = EmbeddingOperation.INDEX,
    ) -> list[list[float]]:
        """Embed one batch in a single provider call and fit every vector.

        Raises
        ------
        EmbeddingError
            If the provider returns a different number of vectors than
            texts sent.
        """
        if not texts:
            return []
        raw = await context.embedding_provider.embed(
            list(texts), context.embedding_params(operation)
        )
        if len(raw) != len(texts):
            raise EmbeddingError(
                message=f"Provider returned {len(raw)} vectors for {len(texts)} texts",
                provider_name=context.embedding_provider.get_provider_name(),
            )
        return [
            prepare_vector(vector, context.embedding_dimension, self._config.normalize_vectors)
            for vector in raw
        ]

    async def embed_texts(
        self,
        texts: Sequence[str],
        context: EmbeddingContext,
        operation: EmbeddingOperation = EmbeddingOperation.INDEX,
    ) -> list[list[float]]:
        """Embed all *texts*, batching within the context budget."""
        vectors: list[list[float]] = []
        batches = self.plan_batches(texts, context.token_budget)
        for batch in batches:
            vectors.extend(await self.embed_batch([texts[i] for i in batch], context, operation))
        logger.debug(
            "embedding_texts_complete",
            texts=len(texts),
            calls=len(batches),
            model=context.embedding_model,
        )
        return vectors
