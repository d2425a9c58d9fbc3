"""Centralised thresholds for splitting, strategy selection and retry.

Every token budget the pipeline consults lives on :class:`IngestionConfig`
so splitters, strategies and the orchestrator agree on one set of numbers.
Values can come from ``config/config.yaml`` (``ingestion:`` section, see
:func:`src.config.loader.load_ingestion_config`) or from environment-backed
:class:`~src.config.settings.Settings`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, model_validator

if TYPE_CHECKING:
    from src.config.settings import Settings


class IngestionConfig(BaseModel):
    """Token budgets and pipeline limits for one orchestrator instance."""

    model_config = ConfigDict(frozen=True)

    # --- Token estimation ---
    chars_per_token: float = Field(
        default=3.8, gt=0, description="Fallback characters-per-token ratio."
    )

    # --- Chapter strategy auto mode ---
    # tokens <= full_text_max_tokens             -> full text with metadata
    # full_text_max_tokens < tokens <= text_only -> text only
    # tokens > text_only_max_tokens              -> split into chunks
    full_text_max_tokens: int = Field(default=512, gt=0)
    text_only_max_tokens: int = Field(default=2000, gt=0)

    # --- Chapter sizing (splitters) ---
    chapter_min_tokens: int = Field(default=500, ge=0)
    chapter_ideal_tokens: int = Field(default=4000, gt=0)
    chapter_max_tokens: int = Field(default=16000, gt=0)

    # --- Enrichment ---
    summary_min_tokens: int = Field(default=500, ge=0)
    qa_pairs: int = Field(default=3, ge=1, le=20)
    summary_max_length: int = Field(default=500, ge=100, le=2000)

    # --- Embedding batches ---
    max_batch_items: int = Field(default=16, ge=1)
    oversize_tolerance: float = Field(
        default=0.05,
        ge=0,
        description="Fraction above the context budget tolerated before summarising.",
    )
    normalize_vectors: bool = False

    # --- Retry ---
    max_retries: int = Field(default=2, ge=0)
    retry_delay_seconds: float = Field(default=120.0, ge=0)
    max_concurrent_documents: int = Field(default=4, ge=1)

    @model_validator(mode="after")
    def _check_ordering(self) -> IngestionConfig:
        if self.full_text_max_tokens >= self.text_only_max_tokens:
            msg = "full_text_max_tokens must be lower than text_only_max_tokens"
            raise ValueError(msg)
        if not self.chapter_min_tokens <= self.chapter_ideal_tokens <= self.chapter_max_tokens:
            msg = "chapter token limits must satisfy min <= ideal <= max"
            raise ValueError(msg)
        return self

    @classmethod
    def from_settings(cls, settings: Settings, **overrides: object) -> IngestionConfig:
        """Build a config from environment-backed settings plus explicit overrides."""
        values: dict[str, object] = {
            "max_retries": settings.processing_max_retries,
            "retry_delay_seconds": settings.processing_retry_delay_seconds,
            "max_concurrent_documents": settings.processing_max_concurrent_documents,
            "normalize_vectors": settings.normalize_vectors,
        }
        values.update(overrides)
        return cls(**values)
