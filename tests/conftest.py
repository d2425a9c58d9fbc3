"""Shared pytest fixtures for the docembed test suite."""

from __future__ import annotations

import re
from collections.abc import Callable
from typing import Any

import pytest

from src.config.ingestion import IngestionConfig
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.models.document import Document
from src.models.embedding import (
    EmbeddingContext,
    EmbeddingParams,
    ModelCapability,
    ModelInfo,
)
from src.models.library import Library
from src.pipeline.document_processor import DocumentProcessor
from src.pipeline.orchestrator import EmbeddingOrchestrator
from src.pipeline.status_tracker import ProcessingStatusTracker
from src.providers.model_registry import ModelRegistry
from src.providers.repository.memory_repository import InMemoryDocumentRepository
from src.services.embedding.context_resolver import EmbeddingContextResolver, ResolverDefaults
from src.services.embedding.strategies.registry import StrategyRegistry
from src.services.ingestion.router import DocumentRouter
from src.utils.errors import EmbeddingError
from src.utils.token_estimator import TokenEstimator

FAKE_EMBEDDING_MODEL = "fake-embed"
FAKE_ADJUSTABLE_MODEL = "fake-embed-adjustable"
FAKE_COMPLETION_MODEL = "fake-llm"
FAKE_DIMENSION = 8

_WANTED_PAIRS_RE = re.compile(r"Generate exactly (\d+)")


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic embedding provider.

    Returns vectors of ``vector_length`` entries and raises
    :class:`EmbeddingError` on its first ``fail_times`` calls.
    """

    def __init__(self, vector_length: int = FAKE_DIMENSION, fail_times: int = 0) -> None:
        self.vector_length = vector_length
        self.fail_times = fail_times
        self.calls: list[tuple[list[str], EmbeddingParams | None]] = []

    async def embed(
        self, texts: list[str], params: EmbeddingParams | None = None
    ) -> list[list[float]]:
        self.calls.append((list(texts), params))
        if self.fail_times > 0:
            self.fail_times -= 1
            raise EmbeddingError(message="Simulated provider outage", provider_name="fake")
        return [
            [float(len(text) % 7 + 1)] + [0.5] * (self.vector_length - 1) for text in texts
        ]

    def list_models(self) -> list[ModelInfo]:
        return [
            ModelInfo(
                name=FAKE_EMBEDDING_MODEL,
                provider_name="fake",
                aliases=(f"{FAKE_EMBEDDING_MODEL}:latest",),
                context_length=8192,
                embedding_dimension=FAKE_DIMENSION,
            ),
            ModelInfo(
                name=FAKE_ADJUSTABLE_MODEL,
                provider_name="fake",
                context_length=8192,
                embedding_dimension=16,
                dimension_adjustable=True,
            ),
        ]

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return True

    @property
    def texts_embedded(self) -> int:
        return sum(len(texts) for texts, _ in self.calls)


class FakeLLMProvider(ILLMProvider):
    """Completion provider answering Q&A and summary prompts from templates."""

    def __init__(self, summary: str = "A short summary of the chapter.") -> None:
        self.summary = summary
        self.qa_response: str | None = None
        self.error: Exception | None = None
        self.calls: list[dict[str, Any]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        model: str | None = None,
        reasoning_effort: str | None = None,
    ) -> str:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "max_tokens": max_tokens,
                "model": model,
                "reasoning_effort": reasoning_effort,
            }
        )
        if self.error is not None:
            raise self.error
        match = _WANTED_PAIRS_RE.search(user_prompt)
        if match:
            if self.qa_response is not None:
                return self.qa_response
            wanted = int(match.group(1))
            return "\n\n".join(
                f"Q: Question number {n}?\nA: Answer number {n}." for n in range(1, wanted + 1)
            )
        return self.summary

    def list_models(self) -> list[ModelInfo]:
        return [
            ModelInfo(
                name=FAKE_COMPLETION_MODEL,
                provider_name="fake_llm",
                capabilities=frozenset({ModelCapability.COMPLETION}),
                context_length=8192,
            )
        ]

    def get_provider_name(self) -> str:
        return "fake_llm"

    def is_available(self) -> bool:
        return True

    async def validate_credentials(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Configuration and models
# ---------------------------------------------------------------------------


@pytest.fixture
def ingestion_config() -> IngestionConfig:
    """Default thresholds with a short retry delay."""
    return IngestionConfig(retry_delay_seconds=0.05, max_retries=2)


@pytest.fixture
def estimator() -> TokenEstimator:
    return TokenEstimator()


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def llm_provider() -> FakeLLMProvider:
    return FakeLLMProvider()


@pytest.fixture
def model_registry(
    embedding_provider: FakeEmbeddingProvider, llm_provider: FakeLLMProvider
) -> ModelRegistry:
    return ModelRegistry(embedding_providers=[embedding_provider], llm_providers=[llm_provider])


@pytest.fixture
def resolver_defaults() -> ResolverDefaults:
    return ResolverDefaults(
        embedding_model=FAKE_EMBEDDING_MODEL,
        embedding_dimension=FAKE_DIMENSION,
        completion_model=None,
        context_length=2048,
    )


@pytest.fixture
def resolver(
    model_registry: ModelRegistry, resolver_defaults: ResolverDefaults
) -> EmbeddingContextResolver:
    return EmbeddingContextResolver(model_registry, resolver_defaults)


@pytest.fixture
def library() -> Library:
    return Library(
        id="lib-1",
        name="Test Library",
        default_embedding_model=FAKE_EMBEDDING_MODEL,
        default_embedding_dimension=FAKE_DIMENSION,
        default_completion_model=FAKE_COMPLETION_MODEL,
        default_max_context_tokens=8192,
    )


@pytest.fixture
def embedding_context(resolver: EmbeddingContextResolver, library: Library) -> EmbeddingContext:
    return resolver.resolve(library)


@pytest.fixture
def make_document(library: Library) -> Callable[..., Document]:
    """Factory building documents owned by the test library."""

    def _make(body: str, title: str = "Test Document", **kwargs: Any) -> Document:
        return Document(library_id=library.id, title=title, body=body, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Pipeline components
# ---------------------------------------------------------------------------


@pytest.fixture
def repository() -> InMemoryDocumentRepository:
    return InMemoryDocumentRepository()


@pytest.fixture
def tracker() -> ProcessingStatusTracker:
    return ProcessingStatusTracker()


@pytest.fixture
def strategies(ingestion_config: IngestionConfig, estimator: TokenEstimator) -> StrategyRegistry:
    return StrategyRegistry.default(ingestion_config, estimator)


@pytest.fixture
def processor(
    repository: InMemoryDocumentRepository,
    strategies: StrategyRegistry,
    ingestion_config: IngestionConfig,
    tracker: ProcessingStatusTracker,
    estimator: TokenEstimator,
) -> DocumentProcessor:
    return DocumentProcessor(
        repository=repository,
        router=DocumentRouter(ingestion_config, estimator),
        strategies=strategies,
        config=ingestion_config,
        tracker=tracker,
        estimator=estimator,
    )


@pytest.fixture
def orchestrator(
    resolver: EmbeddingContextResolver,
    processor: DocumentProcessor,
    repository: InMemoryDocumentRepository,
    strategies: StrategyRegistry,
    tracker: ProcessingStatusTracker,
    ingestion_config: IngestionConfig,
) -> EmbeddingOrchestrator:
    return EmbeddingOrchestrator(
        resolver=resolver,
        processor=processor,
        repository=repository,
        strategies=strategies,
        tracker=tracker,
        config=ingestion_config,
    )


# ---------------------------------------------------------------------------
# Sample text
# ---------------------------------------------------------------------------


def prose(paragraphs: int, sentences: int = 6) -> str:
    """Return *paragraphs* paragraphs of neutral prose separated by blank lines."""
    sentence = "The river valley keeps its old farms and quiet roads through every season"
    return "\n\n".join(
        " ".join(f"{sentence} {p}-{s}." for s in range(sentences)) for p in range(paragraphs)
    )


@pytest.fixture
def make_prose() -> Callable[..., str]:
    return prose
