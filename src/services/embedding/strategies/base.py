"""Shared plumbing for embedding strategies: provenance and vector attachment."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from src.interfaces.embedding_strategy import IEmbeddingStrategy
from src.models.embedding import (
    EmbeddingContext,
    EmbeddingOperation,
    EmbeddingRecord,
    EmbeddingRequest,
)
from src.services.embedding.vector_batcher import VectorBatcher


class BaseEmbeddingStrategy(IEmbeddingStrategy):
    """Base class holding the batcher every strategy embeds through."""

    def __init__(self, batcher: VectorBatcher) -> None:
        self._batcher = batcher

    def provenance(
        self,
        request: EmbeddingRequest,
        context: EmbeddingContext,
        operation: EmbeddingOperation = EmbeddingOperation.INDEX,
        **extra: Any,
    ) -> dict[str, Any]:
        """Return the provenance keys attached to every record."""
        metadata: dict[str, Any] = {
            "library_id": request.library_id or context.library_id,
            "document_id": request.document_id,
            "chapter_id": request.chapter_id,
            "strategy": self.get_strategy_name(),
            "embedding_model": context.embedding_model,
            "embedding_operation": operation.value,
            "created_at": datetime.now(tz=timezone.utc).isoformat(),  # noqa: UP017
        }
        metadata.update(extra)
        return metadata

    async def attach_vectors(
        self,
        records: list[EmbeddingRecord],
        context: EmbeddingContext,
        operation: EmbeddingOperation = EmbeddingOperation.INDEX,
    ) -> list[EmbeddingRecord]:
        """Compute vectors for *records* in batched calls."""
        if not records:
            return []
        vectors = await self._batcher.embed_texts([r.text for r in records], context, operation)
        return [record.with_vector(vector) for record, vector in zip(records, vectors)]
