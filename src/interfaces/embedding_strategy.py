"""Abstract base class for embedding generation strategies.

A strategy turns one text unit (a chapter, a free-text query) plus a
resolved :class:`~src.models.embedding.EmbeddingContext` into zero or
more embedding records.  Strategies are looked up by name through the
:class:`~src.services.embedding.strategies.registry.StrategyRegistry`,
so adding one never touches the orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.models.embedding import EmbeddingContext, EmbeddingRecord, EmbeddingRequest


# Concrete implementations: ChapterEmbeddingStrategy, QueryEmbeddingStrategy,
# QAEmbeddingStrategy, SummaryEmbeddingStrategy
# Located in: src/services/embedding/strategies/
class IEmbeddingStrategy(ABC):
    """Contract for every embedding generation strategy."""

    @abstractmethod
    def get_strategy_name(self) -> str:
        """Return the registry name of this strategy (e.g. ``"chapter"``)."""

    @abstractmethod
    async def generate(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        """Produce embedding records, vectors included, for *request*.

        Models are taken from *context* only.  Every returned vector has
        exactly ``context.embedding_dimension`` entries.
        """
