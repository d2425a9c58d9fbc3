"""Processing lifecycle models: status, options and results of a document run.

:class:`ProcessingStatus` snapshots are immutable; the status tracker
swaps whole snapshots so a polling reader always sees a consistent one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.models.embedding import ChapterMode
from src.utils.errors import ConfigurationError


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


# ---------------------------------------------------------------------------
# ProcessingState - the per-document state machine.
# ---------------------------------------------------------------------------
class ProcessingState(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """NOT_STARTED → PROCESSING → {COMPLETED, FAILED}.

    A terminal state may be replaced by a fresh PROCESSING run.
    """

    NOT_STARTED = "NOT_STARTED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def description(self) -> str:
        return _STATE_DESCRIPTIONS[self]

    @property
    def is_terminal(self) -> bool:
        return self in (ProcessingState.COMPLETED, ProcessingState.FAILED)


_STATE_DESCRIPTIONS = {
    ProcessingState.NOT_STARTED: "Not started",
    ProcessingState.PROCESSING: "Processing",
    ProcessingState.COMPLETED: "Completed",
    ProcessingState.FAILED: "Failed",
}


class ProcessingStatus(BaseModel):
    """Snapshot of one document's processing run."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    title: str = ""
    state: ProcessingState = ProcessingState.NOT_STARTED
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    message: str = ""
    started_at: datetime | None = None
    updated_at: datetime = Field(default_factory=_utcnow)
    completed_at: datetime | None = None
    error_message: str | None = None
    chapters_count: int = 0
    embeddings_count: int = 0


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------
class EnrichmentOptions(BaseModel):
    """Phase-2 (enrichment) options."""

    model_config = ConfigDict(frozen=True)

    generate_qa: bool = True
    qa_pairs: int = Field(default=3, ge=1, le=20)
    generate_summary: bool = True
    summary_max_length: int = Field(default=500, ge=100, le=2000)
    summary_instructions: str | None = None
    continue_on_error: bool = True
    completion_model: str | None = None
    overwrite: bool = Field(
        default=False, description="Replace existing Q&A/summary records instead of keeping them."
    )

    def validate_selection(self) -> None:
        """Raise unless at least one enrichment kind is enabled."""
        if not (self.generate_qa or self.generate_summary):
            raise ConfigurationError(
                message="At least one of generate_qa or generate_summary must be enabled"
            )

    @classmethod
    def defaults(cls) -> EnrichmentOptions:
        return cls()

    @classmethod
    def qa_only(cls, qa_pairs: int = 3) -> EnrichmentOptions:
        return cls(generate_qa=True, qa_pairs=qa_pairs, generate_summary=False)

    @classmethod
    def summary_only(cls, summary_max_length: int = 500) -> EnrichmentOptions:
        return cls(
            generate_qa=False,
            generate_summary=True,
            summary_max_length=summary_max_length,
        )


class ProcessingOptions(BaseModel):
    """Caller-supplied options for one document run."""

    model_config = ConfigDict(frozen=True)

    chapter_mode: ChapterMode = ChapterMode.AUTO
    embedding_model: str | None = None
    embedding_dimension: int | None = None
    completion_model: str | None = None
    context_length: int | None = None
    include_qa: bool = False
    include_summary: bool = False
    qa_pairs: int = Field(default=3, ge=1, le=20)
    summary_max_length: int = Field(default=500, ge=100, le=2000)
    summary_instructions: str | None = None
    continue_on_error: bool = True
    overwrite: bool = False
    content_type_hint: str | None = None

    @property
    def enrichment_requested(self) -> bool:
        return self.include_qa or self.include_summary

    def enrichment_options(self) -> EnrichmentOptions:
        return EnrichmentOptions(
            generate_qa=self.include_qa,
            qa_pairs=self.qa_pairs,
            generate_summary=self.include_summary,
            summary_max_length=self.summary_max_length,
            summary_instructions=self.summary_instructions,
            continue_on_error=self.continue_on_error,
            completion_model=self.completion_model,
            overwrite=self.overwrite,
        )


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
class EnrichmentResult(BaseModel):
    """Outcome of phase 2; never invalidates phase-1 output."""

    model_config = ConfigDict(frozen=True)

    chapters_processed: int = 0
    qa_embeddings: int = 0
    summary_embeddings: int = 0
    chapters_skipped: int = 0
    failures: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def partial(self) -> bool:
        return self.failures > 0

    @property
    def embeddings_created(self) -> int:
        return self.qa_embeddings + self.summary_embeddings


class ProcessingStats(BaseModel):
    """Size statistics of a processed document."""

    model_config = ConfigDict(frozen=True)

    chapters_count: int = 0
    embeddings_count: int = 0
    total_characters: int = 0

    @property
    def average_characters_per_chapter(self) -> float:
        if self.chapters_count == 0:
            return 0.0
        return self.total_characters / self.chapters_count


class ProcessingResult(BaseModel):
    """Aggregate result returned from the orchestrator's entry points."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    chapters_count: int = 0
    embeddings_count: int = 0
    embeddings_processed: int = 0
    embeddings_failed: int = 0
    duration_seconds: float = 0.0
    success: bool = True
    error_message: str | None = None
    attempts: int = 1
    resumed: bool = False
    enrichment: EnrichmentResult | None = None

    @property
    def duration(self) -> str:
        """Human-readable duration, e.g. ``"12.5s"``."""
        return f"{self.duration_seconds:.1f}s"
