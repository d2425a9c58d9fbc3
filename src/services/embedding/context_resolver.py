"""Embedding context resolution: override → library → process default.

For each of the four per-run settings (embedding model, embedding
dimension, completion model, context length) the first non-empty value
among the explicit override, the library's configuration and the
process-wide default wins.  Resolved model names are then looked up in
the :class:`~src.providers.model_registry.ModelRegistry`; an unregistered
name fails the run before any provider call is made.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

import structlog
from pydantic import ValidationError

from src.config.settings import Settings
from src.models.embedding import EmbeddingContext, ModelCapability
from src.models.library import Library
from src.models.processing import ProcessingOptions
from src.providers.model_registry import ModelRegistry
from src.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

_T = TypeVar("_T")


def first_non_empty(*candidates: _T | None) -> _T | None:
    """Return the first candidate that is neither ``None`` nor a blank string.

    ``0`` and ``False`` count as values: only absence is skipped.
    """
    for candidate in candidates:
        if candidate is None:
            continue
        if isinstance(candidate, str) and not candidate.strip():
            continue
        return candidate
    return None


@dataclass(frozen=True)
class ContextOverrides:
    """Explicit per-run values that take precedence over library defaults."""

    embedding_model: str | None = None
    embedding_dimension: int | None = None
    completion_model: str | None = None
    context_length: int | None = None

    @classmethod
    def from_options(cls, options: ProcessingOptions | None) -> ContextOverrides:
        if options is None:
            return cls()
        return cls(
            embedding_model=options.embedding_model,
            embedding_dimension=options.embedding_dimension,
            completion_model=options.completion_model,
            context_length=options.context_length,
        )


@dataclass(frozen=True)
class ResolverDefaults:
    """Process-wide defaults: the last source consulted for every field."""

    embedding_model: str | None = None
    embedding_dimension: int | None = None
    completion_model: str | None = None
    context_length: int | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> ResolverDefaults:
        """Take the defaults from settings, preferring OpenAI models when a key is set."""
        if settings.openai_api_key:
            embedding_model = first_non_empty(
                settings.openai_embedding_model, settings.default_embedding_model
            )
            completion_model = first_non_empty(
                settings.openai_completion_model, settings.default_completion_model
            )
        else:
            embedding_model = settings.default_embedding_model
            completion_model = settings.default_completion_model
        return cls(
            embedding_model=embedding_model,
            embedding_dimension=settings.default_embedding_dimension,
            completion_model=completion_model,
            context_length=settings.default_context_length,
        )


class EmbeddingContextResolver:
    """Builds a fully populated :class:`EmbeddingContext` or fails."""

    def __init__(self, registry: ModelRegistry, defaults: ResolverDefaults) -> None:
        self._registry = registry
        self._defaults = defaults

    def resolve(
        self,
        library: Library,
        overrides: ContextOverrides | None = None,
    ) -> EmbeddingContext:
        """Resolve the run configuration for *library*.

        Raises
        ------
        ConfigurationError
            If the library weight pair is invalid or a field has no value
            at any level, or the dimension or context length is not positive.
        ModelNotFoundError
            If a resolved model name is not registered.
        """
        overrides = overrides or ContextOverrides()
        library.validate_weights()

        embedding_model = first_non_empty(
            overrides.embedding_model,
            library.default_embedding_model,
            self._defaults.embedding_model,
        )
        dimension = first_non_empty(
            overrides.embedding_dimension,
            library.default_embedding_dimension,
            self._defaults.embedding_dimension,
        )
        completion_model = first_non_empty(
            overrides.completion_model,
            library.default_completion_model,
            self._defaults.completion_model,
        )
        context_length = first_non_empty(
            overrides.context_length,
            library.default_max_context_tokens,
            self._defaults.context_length,
        )

        if embedding_model is None:
            raise ConfigurationError(
                message=f"No embedding model configured for library '{library.name}'"
            )
        embedding_entry = self._registry.require(embedding_model, ModelCapability.EMBEDDING)
        embedding_info = embedding_entry.info

        # A library without any dimension setting takes the model's native size.
        dimension = first_non_empty(dimension, embedding_info.embedding_dimension)
        if dimension is None:
            raise ConfigurationError(
                message=f"No embedding dimension configured for model '{embedding_info.name}'"
            )
        context_length = first_non_empty(context_length, embedding_info.context_length)
        if dimension <= 0 or context_length is None or context_length <= 0:
            raise ConfigurationError(
                message=f"Library '{library.name}' resolved a non-positive embedding "
                f"dimension ({dimension}) or context length ({context_length})"
            )

        completion_entry = (
            self._registry.require(completion_model, ModelCapability.COMPLETION)
            if completion_model is not None
            else None
        )

        try:
            context = EmbeddingContext(
                library_id=library.id,
                library_name=library.name,
                embedding_model=embedding_info.name,
                embedding_dimension=dimension,
                completion_model=completion_entry.info.name if completion_entry else None,
                context_length=context_length,
                embedding_model_info=embedding_info,
                completion_model_info=completion_entry.info if completion_entry else None,
                desired_dimension=dimension if embedding_info.dimension_adjustable else None,
                embedding_provider=embedding_entry.embedding_provider,
                llm_provider=completion_entry.llm_provider if completion_entry else None,
            )
        except ValidationError as exc:
            raise ConfigurationError(
                message=f"Invalid embedding context for library '{library.name}': {exc}"
            ) from exc
        logger.info(
            "embedding_context_resolved",
            library_id=library.id,
            embedding_model=context.embedding_model,
            dimension=context.embedding_dimension,
            completion_model=context.completion_model,
            context_length=context.context_length,
            token_budget=context.token_budget,
        )
        return context
