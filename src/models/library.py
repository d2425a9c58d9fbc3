"""Library model - the tenancy unit that owns documents and model defaults.

A library carries the default embedding/completion models used by every
document it owns, plus the semantic/textual weight pair consumed by
query-time hybrid ranking.  The weight pair must sum to 1.0 within
:data:`WEIGHT_TOLERANCE`; the model does not reject or correct an invalid
pair on construction so the embedding context resolver can refuse it
explicitly.
"""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict, Field

from src.utils.errors import ConfigurationError

WEIGHT_TOLERANCE = 0.001


class Library(BaseModel):
    """A knowledge library with default model configuration."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(description="Human-readable library name.")
    default_embedding_model: str | None = Field(
        default=None, description="Embedding model used when no override is given."
    )
    default_embedding_dimension: int | None = Field(
        default=None, description="Target vector dimension for this library."
    )
    default_completion_model: str | None = Field(
        default=None, description="Completion model for Q&A and summary generation."
    )
    default_max_context_tokens: int | None = Field(
        default=None, description="Context-length budget for embedding inputs."
    )
    semantic_weight: float = Field(default=0.60, ge=0.0, le=1.0)
    textual_weight: float = Field(default=0.40, ge=0.0, le=1.0)

    @property
    def weights_valid(self) -> bool:
        """``True`` when ``|semantic + textual - 1.0| <= 0.001``."""
        return abs(self.semantic_weight + self.textual_weight - 1.0) <= WEIGHT_TOLERANCE

    def validate_weights(self) -> None:
        """Raise :class:`ConfigurationError` if the weight pair is unusable."""
        if not self.weights_valid:
            raise ConfigurationError(
                message=(
                    f"Library '{self.name}' weights must sum to 1.0 "
                    f"(semantic={self.semantic_weight}, textual={self.textual_weight})"
                )
            )
