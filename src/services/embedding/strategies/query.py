"""Query embedding strategy: one free-text search query, query representation."""

from __future__ import annotations

from src.models.document import EmbeddingKind
from src.models.embedding import (
    EmbeddingContext,
    EmbeddingOperation,
    EmbeddingRecord,
    EmbeddingRequest,
)
from src.services.embedding.strategies.base import BaseEmbeddingStrategy


class QueryEmbeddingStrategy(BaseEmbeddingStrategy):
    """Embeds a search query with :attr:`EmbeddingOperation.QUERY`.

    Model families with asymmetric retrieval (nomic, e5, bge, ...) embed
    queries and indexed passages with different input prefixes; using the
    index representation for a query silently degrades recall.
    """

    def get_strategy_name(self) -> str:
        return "query"

    async def generate(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        query = request.text.strip()
        if not query:
            msg = "Query text must not be empty"
            raise ValueError(msg)
        record = EmbeddingRecord(
            kind=EmbeddingKind.OTHER,
            text=query,
            metadata=self.provenance(request, context, EmbeddingOperation.QUERY),
        )
        return await self.attach_vectors([record], context, EmbeddingOperation.QUERY)
