"""docembed domain models - re-exports all public model classes.

Submodules by concern:
    - library.py    - Library tenancy unit and its weight-pair invariant
    - document.py   - Document → Chapter → Chunk hierarchy (arena storage)
    - embedding.py  - model capabilities, EmbeddingContext, strategy I/O
    - processing.py - processing status, options and results
"""

from __future__ import annotations

from src.models.document import Chapter, Chunk, Document, EmbeddingKind
from src.models.embedding import (
    ChapterMode,
    EmbeddingContext,
    EmbeddingOperation,
    EmbeddingParams,
    EmbeddingRecord,
    EmbeddingRequest,
    ModelCapability,
    ModelInfo,
)
from src.models.library import WEIGHT_TOLERANCE, Library
from src.models.processing import (
    EnrichmentOptions,
    EnrichmentResult,
    ProcessingOptions,
    ProcessingResult,
    ProcessingState,
    ProcessingStats,
    ProcessingStatus,
)

__all__ = [
    "WEIGHT_TOLERANCE",
    "Chapter",
    "ChapterMode",
    "Chunk",
    "Document",
    "EmbeddingContext",
    "EmbeddingKind",
    "EmbeddingOperation",
    "EmbeddingParams",
    "EmbeddingRecord",
    "EmbeddingRequest",
    "EnrichmentOptions",
    "EnrichmentResult",
    "Library",
    "ModelCapability",
    "ModelInfo",
    "ProcessingOptions",
    "ProcessingResult",
    "ProcessingState",
    "ProcessingStats",
    "ProcessingStatus",
]
