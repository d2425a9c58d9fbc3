"""Chapter embedding strategy.

Five modes, dispatched through :attr:`ChapterEmbeddingStrategy._handlers`:

==================  ==========================================  ===========
mode                text embedded                               kind
==================  ==========================================  ===========
full_text_metadata  ``Title:`` line, metadata lines, body       chapter
metadata_only       ``Title:`` line and metadata lines          metadata
text_only           body                                        chapter
split               one piece per :class:`ChunkCutter` slice    chunk
auto                one of the above by estimated body tokens
==================  ==========================================  ===========

Auto mode: ``tokens <= full_text_max_tokens`` embeds full text with
metadata, ``tokens <= text_only_max_tokens`` embeds the body alone, and
anything larger is split into pieces of at most ``text_only_max_tokens``.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

from src.config.ingestion import IngestionConfig
from src.models.document import EmbeddingKind
from src.models.embedding import (
    ChapterMode,
    EmbeddingContext,
    EmbeddingRecord,
    EmbeddingRequest,
)
from src.services.embedding.strategies.base import BaseEmbeddingStrategy
from src.services.embedding.vector_batcher import VectorBatcher
from src.services.ingestion.chunk_cutter import ChunkCutter
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)

# Bookkeeping keys that say nothing about the content.
_IGNORED_METADATA_KEYS = frozenset(
    {
        "id",
        "checksum",
        "document_checksum",
        "size",
        "file_path",
        "file_name",
        "path",
        "created_at",
        "updated_at",
        "content_type",
        "split_reason",
        "heading_level",
        "heading_tag",
        "merged",
        "part",
        "article_count",
        "oversized_handled",
        "oversize_method",
    }
)

_Handler = Callable[[EmbeddingRequest, EmbeddingContext], list[EmbeddingRecord]]


def metadata_lines(metadata: dict[str, Any]) -> list[str]:
    """Render the descriptive metadata entries as ``key: value`` lines."""
    lines: list[str] = []
    for key, value in metadata.items():
        if key in _IGNORED_METADATA_KEYS or key.endswith("_id"):
            continue
        if value is None or isinstance(value, (dict, list, tuple, set)):
            continue
        if isinstance(value, str) and not value.strip():
            continue
        lines.append(f"{key}: {value}")
    return lines


class ChapterEmbeddingStrategy(BaseEmbeddingStrategy):
    """Embeds chapters whole, as metadata, or as bounded pieces."""

    def __init__(
        self,
        config: IngestionConfig,
        batcher: VectorBatcher,
        cutter: ChunkCutter | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        super().__init__(batcher)
        self._config = config
        self._estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)
        self._cutter = cutter or ChunkCutter(config.text_only_max_tokens, self._estimator)
        self._handlers: dict[ChapterMode, _Handler] = {
            ChapterMode.FULL_TEXT_METADATA: self._full_text_with_metadata,
            ChapterMode.METADATA_ONLY: self._metadata_only,
            ChapterMode.TEXT_ONLY: self._text_only,
            ChapterMode.SPLIT: self._split,
        }

    def get_strategy_name(self) -> str:
        return "chapter"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def select_mode(self, text: str) -> ChapterMode:
        """Resolve ``auto`` to a concrete mode from the estimated token count."""
        tokens = self._estimator.estimate(text)
        if tokens <= self._config.full_text_max_tokens:
            return ChapterMode.FULL_TEXT_METADATA
        if tokens <= self._config.text_only_max_tokens:
            return ChapterMode.TEXT_ONLY
        return ChapterMode.SPLIT

    def plan(self, request: EmbeddingRequest, context: EmbeddingContext) -> list[EmbeddingRecord]:
        """Build the chapter's records without vectors."""
        mode = request.mode
        if mode == ChapterMode.AUTO:
            mode = self.select_mode(request.text)
        records = self._handlers[mode](request, context)
        logger.debug(
            "chapter_planned",
            chapter_id=request.chapter_id,
            requested_mode=request.mode.value,
            mode=mode.value,
            records=len(records),
        )
        return records

    async def generate(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        return await self.attach_vectors(self.plan(request, context), context)

    # ------------------------------------------------------------------
    # Mode handlers
    # ------------------------------------------------------------------

    def _full_text_with_metadata(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        lines = metadata_lines(request.metadata)
        header = f"Title: {request.title}\n\n"
        if lines:
            header += "\n".join(lines) + "\n\n"
        return [
            EmbeddingRecord(
                kind=EmbeddingKind.CHAPTER,
                text=header + request.text,
                metadata=self._metadata(request, context, ChapterMode.FULL_TEXT_METADATA),
            )
        ]

    def _metadata_only(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        title = f"{request.title} (Metadata)"
        text = "\n".join([f"Title: {title}", *metadata_lines(request.metadata)])
        return [
            EmbeddingRecord(
                kind=EmbeddingKind.METADATA,
                text=text,
                metadata=self._metadata(
                    request, context, ChapterMode.METADATA_ONLY, title=title
                ),
            )
        ]

    def _text_only(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        if not request.text.strip():
            return []
        return [
            EmbeddingRecord(
                kind=EmbeddingKind.CHAPTER,
                text=request.text,
                metadata=self._metadata(request, context, ChapterMode.TEXT_ONLY),
            )
        ]

    def _split(self, request: EmbeddingRequest, context: EmbeddingContext) -> list[EmbeddingRecord]:
        return [
            EmbeddingRecord(
                kind=EmbeddingKind.CHUNK,
                text=piece.text,
                ordinal=piece.index,
                metadata=self._metadata(
                    request,
                    context,
                    ChapterMode.SPLIT,
                    chunk_index=piece.index,
                    total_chunks=piece.total,
                    parent_chapter=request.title,
                    char_start=piece.char_start,
                    char_end=piece.char_end,
                ),
            )
            for piece in self._cutter.cut(request.text)
        ]

    def _metadata(
        self,
        request: EmbeddingRequest,
        context: EmbeddingContext,
        mode: ChapterMode,
        **extra: Any,
    ) -> dict[str, Any]:
        return self.provenance(
            request,
            context,
            mode=mode.value,
            title=extra.pop("title", request.title),
            **extra,
        )
