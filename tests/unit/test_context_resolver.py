"""Unit tests for EmbeddingContextResolver and the first-non-empty combinator."""

from __future__ import annotations

import pytest

from src.config.settings import Settings
from src.models.embedding import EmbeddingOperation
from src.models.library import Library
from src.models.processing import ProcessingOptions
from src.providers.model_registry import ModelRegistry
from src.services.embedding.context_resolver import (
    ContextOverrides,
    EmbeddingContextResolver,
    ResolverDefaults,
    first_non_empty,
)
from src.utils.errors import ConfigurationError, ModelNotFoundError
from tests.conftest import FAKE_ADJUSTABLE_MODEL, FAKE_COMPLETION_MODEL, FAKE_EMBEDDING_MODEL


class TestFirstNonEmpty:
    def test_returns_first_set_value(self) -> None:
        assert first_non_empty("a", "b") == "a"

    def test_skips_none_and_blank_strings(self) -> None:
        assert first_non_empty(None, "", "   ", "x") == "x"

    def test_zero_is_a_value(self) -> None:
        assert first_non_empty(None, 0, 5) == 0

    def test_all_empty_is_none(self) -> None:
        assert first_non_empty(None, "", None) is None
        assert first_non_empty() is None


class TestResolutionOrder:
    def test_library_defaults_used_without_override(
        self, resolver: EmbeddingContextResolver, library: Library
    ) -> None:
        context = resolver.resolve(library)
        assert context.embedding_model == FAKE_EMBEDDING_MODEL
        assert context.embedding_dimension == 8
        assert context.completion_model == FAKE_COMPLETION_MODEL
        assert context.context_length == 8192
        assert context.library_id == library.id

    def test_override_wins_over_library(
        self, resolver: EmbeddingContextResolver, library: Library
    ) -> None:
        context = resolver.resolve(
            library, ContextOverrides(embedding_dimension=4, context_length=1000)
        )
        assert context.embedding_dimension == 4
        assert context.context_length == 1000
        assert context.token_budget == 1000

    def test_blank_override_falls_through(
        self, resolver: EmbeddingContextResolver, library: Library
    ) -> None:
        context = resolver.resolve(library, ContextOverrides(embedding_model="   "))
        assert context.embedding_model == FAKE_EMBEDDING_MODEL

    def test_global_defaults_when_library_unset(self, resolver: EmbeddingContextResolver) -> None:
        context = resolver.resolve(Library(name="Bare"))
        assert context.embedding_model == FAKE_EMBEDDING_MODEL
        assert context.embedding_dimension == 8
        assert context.context_length == 2048
        assert context.completion_model is None
        assert context.has_completion is False

    def test_dimension_falls_back_to_model(self, model_registry: ModelRegistry) -> None:
        resolver = EmbeddingContextResolver(
            model_registry, ResolverDefaults(embedding_model=FAKE_EMBEDDING_MODEL)
        )
        context = resolver.resolve(Library(name="Bare"))
        assert context.embedding_dimension == 8
        assert context.context_length == 8192

    def test_alias_resolves_to_canonical_name(
        self, resolver: EmbeddingContextResolver
    ) -> None:
        library = Library(name="Alias", default_embedding_model="FAKE-EMBED:latest")
        assert resolver.resolve(library).embedding_model == FAKE_EMBEDDING_MODEL

    def test_override_from_processing_options(self) -> None:
        overrides = ContextOverrides.from_options(
            ProcessingOptions(embedding_model="m", embedding_dimension=32)
        )
        assert overrides.embedding_model == "m"
        assert overrides.embedding_dimension == 32
        assert ContextOverrides.from_options(None) == ContextOverrides()


class TestResolutionFailures:
    def test_invalid_weights_rejected(self, resolver: EmbeddingContextResolver) -> None:
        library = Library(name="Skewed", semantic_weight=0.8, textual_weight=0.5)
        with pytest.raises(ConfigurationError, match="weights"):
            resolver.resolve(library)

    def test_unregistered_model_rejected(self, resolver: EmbeddingContextResolver) -> None:
        library = Library(name="Unknown", default_embedding_model="not-installed")
        with pytest.raises(ModelNotFoundError):
            resolver.resolve(library)

    def test_unregistered_completion_model_rejected(
        self, resolver: EmbeddingContextResolver, library: Library
    ) -> None:
        with pytest.raises(ModelNotFoundError):
            resolver.resolve(library, ContextOverrides(completion_model="not-installed"))

    def test_no_embedding_model_anywhere(self, model_registry: ModelRegistry) -> None:
        resolver = EmbeddingContextResolver(model_registry, ResolverDefaults())
        with pytest.raises(ConfigurationError, match="No embedding model"):
            resolver.resolve(Library(name="Bare"))

    def test_zero_library_dimension_rejected(
        self, resolver: EmbeddingContextResolver, library: Library
    ) -> None:
        zero = library.model_copy(update={"default_embedding_dimension": 0})
        with pytest.raises(ConfigurationError, match="non-positive"):
            resolver.resolve(zero)

    @pytest.mark.parametrize(
        "overrides",
        [ContextOverrides(context_length=0), ContextOverrides(embedding_dimension=-4)],
    )
    def test_non_positive_override_rejected(
        self,
        resolver: EmbeddingContextResolver,
        library: Library,
        overrides: ContextOverrides,
    ) -> None:
        with pytest.raises(ConfigurationError, match="non-positive"):
            resolver.resolve(library, overrides)


class TestAdjustableDimension:
    def test_adjustable_model_requests_dimension(
        self, resolver: EmbeddingContextResolver
    ) -> None:
        library = Library(
            name="Adjustable",
            default_embedding_model=FAKE_ADJUSTABLE_MODEL,
            default_embedding_dimension=12,
        )
        context = resolver.resolve(library)
        assert context.desired_dimension == 12
        params = context.embedding_params(EmbeddingOperation.QUERY)
        assert params.dimensions == 12
        assert params.operation == EmbeddingOperation.QUERY

    def test_fixed_model_requests_nothing(
        self, resolver: EmbeddingContextResolver, library: Library
    ) -> None:
        context = resolver.resolve(library)
        assert context.desired_dimension is None
        assert context.embedding_params().dimensions is None


class TestResolverDefaults:
    def test_prefers_openai_models_when_key_set(self) -> None:
        settings = Settings(
            openai_api_key="sk-test",
            openai_embedding_model="text-embedding-3-small",
            openai_completion_model="",
            default_completion_model="llama3.1",
        )
        defaults = ResolverDefaults.from_settings(settings)
        assert defaults.embedding_model == "text-embedding-3-small"
        assert defaults.completion_model == "llama3.1"

    def test_uses_defaults_without_key(self) -> None:
        settings = Settings(
            openai_api_key="",
            openai_embedding_model="text-embedding-3-small",
            default_embedding_model="nomic-embed-text",
            default_embedding_dimension=768,
            default_context_length=2048,
        )
        defaults = ResolverDefaults.from_settings(settings)
        assert defaults.embedding_model == "nomic-embed-text"
        assert defaults.embedding_dimension == 768
        assert defaults.context_length == 2048
