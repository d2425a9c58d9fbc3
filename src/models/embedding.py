"""Embedding-side models: model capabilities, per-run context, strategy I/O.

:class:`EmbeddingContext` is the single source of truth for model names,
target dimension and context budget during one document run.  It is built
by :class:`~src.services.embedding.context_resolver.EmbeddingContextResolver`
and is either fully populated or not built at all.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.models.document import EmbeddingKind
from src.utils.errors import ConfigurationError


class ModelCapability(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    EMBEDDING = "embedding"
    COMPLETION = "completion"


class EmbeddingOperation(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Which provider representation a text is embedded with.

    ``INDEX`` is used for stored content, ``QUERY`` for free-text search
    queries.  Several model families expect different input prefixes for
    the two, so they must never be conflated.
    """

    INDEX = "index"
    QUERY = "query"


class ChapterMode(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Chapter embedding modes."""

    FULL_TEXT_METADATA = "full_text_metadata"
    METADATA_ONLY = "metadata_only"
    TEXT_ONLY = "text_only"
    SPLIT = "split"
    AUTO = "auto"


# ---------------------------------------------------------------------------
# Model registry entries
# ---------------------------------------------------------------------------
class ModelInfo(BaseModel):
    """Capabilities of one installed model."""

    model_config = ConfigDict(frozen=True)

    name: str
    provider_name: str = ""
    aliases: tuple[str, ...] = ()
    capabilities: frozenset[ModelCapability] = frozenset({ModelCapability.EMBEDDING})
    context_length: int = Field(default=2048, gt=0)
    embedding_dimension: int | None = Field(default=None, gt=0)
    dimension_adjustable: bool = False
    reasoning_capable: bool = False

    @property
    def supports_embedding(self) -> bool:
        return ModelCapability.EMBEDDING in self.capabilities

    @property
    def supports_completion(self) -> bool:
        return ModelCapability.COMPLETION in self.capabilities


class EmbeddingParams(BaseModel):
    """Per-call options passed to :meth:`IEmbeddingProvider.embed`."""

    model_config = ConfigDict(frozen=True)

    model: str
    operation: EmbeddingOperation = EmbeddingOperation.INDEX
    dimensions: int | None = Field(
        default=None, gt=0, description="Requested output size for dimension-adjustable models."
    )


# ---------------------------------------------------------------------------
# EmbeddingContext
# ---------------------------------------------------------------------------
class EmbeddingContext(BaseModel):
    """Fully resolved model configuration for one document run."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    library_id: str
    library_name: str = ""
    embedding_model: str
    embedding_dimension: int = Field(gt=0)
    completion_model: str | None = None
    context_length: int = Field(gt=0)
    embedding_model_info: ModelInfo
    completion_model_info: ModelInfo | None = None
    # Only set when the embedding model can emit vectors of a requested size.
    desired_dimension: int | None = None
    embedding_provider: IEmbeddingProvider = Field(exclude=True, repr=False)
    llm_provider: ILLMProvider | None = Field(default=None, exclude=True, repr=False)

    @property
    def token_budget(self) -> int:
        """Tokens one embedding input may use: the smaller of run and model limits."""
        return min(self.context_length, self.embedding_model_info.context_length)

    def embedding_params(
        self, operation: EmbeddingOperation = EmbeddingOperation.INDEX
    ) -> EmbeddingParams:
        return EmbeddingParams(
            model=self.embedding_model,
            operation=operation,
            dimensions=self.desired_dimension,
        )

    @property
    def has_completion(self) -> bool:
        return bool(self.completion_model) and self.llm_provider is not None

    def require_completion(self) -> tuple[str, ILLMProvider]:
        """Return ``(model, provider)`` or raise if no completion model resolved."""
        if not self.completion_model or self.llm_provider is None:
            raise ConfigurationError(
                message=f"No completion model configured for library '{self.library_name}'"
            )
        return self.completion_model, self.llm_provider

    @property
    def completion_reasoning_capable(self) -> bool:
        return bool(self.completion_model_info and self.completion_model_info.reasoning_capable)


# ---------------------------------------------------------------------------
# Strategy input / output
# ---------------------------------------------------------------------------
class EmbeddingRequest(BaseModel):
    """A text unit handed to an embedding strategy."""

    model_config = ConfigDict(frozen=True)

    text: str
    title: str = ""
    library_id: str = ""
    document_id: str | None = None
    chapter_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    mode: ChapterMode = ChapterMode.AUTO
    qa_pairs: int | None = Field(default=None, ge=1, le=20)
    summary_max_length: int | None = Field(default=None, ge=100, le=2000)
    instructions: str | None = None


class EmbeddingRecord(BaseModel):
    """One embedding produced by a strategy (vector may still be pending)."""

    model_config = ConfigDict(frozen=True)

    kind: EmbeddingKind
    text: str
    ordinal: int = Field(default=0, ge=0)
    vector: list[float] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def with_vector(self, vector: list[float]) -> EmbeddingRecord:
        return self.model_copy(update={"vector": list(vector)})
