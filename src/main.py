"""docembed composition root.

Wires providers, the model registry, the document repository, the
strategies and the orchestrator together.  Loads configuration from
``.env`` and ``config/config.yaml`` and configures structured logging.

Usage from an embedding host::

    orchestrator = await create_orchestrator()
    result = await orchestrator.process_document(document, library)
"""

from __future__ import annotations

import structlog

from src.config.ingestion import IngestionConfig
from src.config.loader import load_config, load_ingestion_config
from src.config.settings import Settings
from src.interfaces.document_repository import IDocumentRepository
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.llm_provider import ILLMProvider
from src.pipeline.document_processor import DocumentProcessor
from src.pipeline.orchestrator import EmbeddingOrchestrator
from src.pipeline.status_tracker import ProcessingStatusTracker
from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.providers.model_registry import ModelRegistry
from src.providers.repository.memory_repository import InMemoryDocumentRepository
from src.providers.repository.sqlite_repository import SQLiteDocumentRepository
from src.services.embedding.context_resolver import EmbeddingContextResolver, ResolverDefaults
from src.services.embedding.strategies.registry import StrategyRegistry
from src.services.ingestion.router import DocumentRouter
from src.utils.logging import configure_logging, get_logger
from src.utils.token_estimator import TokenEstimator

_DEFAULT_CONFIG_PATH = "config/config.yaml"


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_embedding_providers(app_settings: Settings) -> list[IEmbeddingProvider]:
    """Embedding providers in priority order.

    Priority: OpenAI/OpenAI-compatible (if API key set) -> Ollama.  The
    local Ollama catalogue is always registered so its models stay
    addressable by name; earlier providers win name collisions.
    """
    providers: list[IEmbeddingProvider] = []
    if app_settings.openai_api_key:
        providers.append(OpenAIEmbeddingProvider(settings=app_settings))
    providers.append(OllamaEmbeddingProvider(settings=app_settings))
    return providers


def _build_llm_providers(app_settings: Settings) -> list[ILLMProvider]:
    """Completion providers in priority order: OpenAI (if API key set) -> Ollama."""
    providers: list[ILLMProvider] = []
    if app_settings.openai_api_key:
        providers.append(OpenAILLMProvider(settings=app_settings))
    providers.append(OllamaLLMProvider(settings=app_settings))
    return providers


# ---------------------------------------------------------------------------
# Component factories
# ---------------------------------------------------------------------------


def build_model_registry(app_settings: Settings) -> ModelRegistry:
    return ModelRegistry(
        embedding_providers=_build_embedding_providers(app_settings),
        llm_providers=_build_llm_providers(app_settings),
    )


def build_document_repository(app_settings: Settings) -> IDocumentRepository:
    """SQLite when ``DOCUMENT_DB_PATH`` is set, in-memory otherwise.

    A SQLite repository must be initialised (``await repo.initialize()``)
    before use; :func:`create_orchestrator` does that.
    """
    if app_settings.document_db_path:
        return SQLiteDocumentRepository(db_path=app_settings.document_db_path)
    return InMemoryDocumentRepository()


def build_orchestrator(
    app_settings: Settings,
    config: IngestionConfig | None = None,
    repository: IDocumentRepository | None = None,
    registry: ModelRegistry | None = None,
) -> EmbeddingOrchestrator:
    """Assemble an :class:`EmbeddingOrchestrator` from settings.

    Every collaborator can be injected; the rest are built here.
    """
    config = config or IngestionConfig.from_settings(app_settings)
    repository = repository or build_document_repository(app_settings)
    registry = registry or build_model_registry(app_settings)

    estimator = TokenEstimator(chars_per_token=config.chars_per_token)
    strategies = StrategyRegistry.default(config, estimator)
    tracker = ProcessingStatusTracker()
    processor = DocumentProcessor(
        repository=repository,
        router=DocumentRouter(config, estimator),
        strategies=strategies,
        config=config,
        tracker=tracker,
        estimator=estimator,
    )
    resolver = EmbeddingContextResolver(registry, ResolverDefaults.from_settings(app_settings))
    return EmbeddingOrchestrator(
        resolver=resolver,
        processor=processor,
        repository=repository,
        strategies=strategies,
        tracker=tracker,
        config=config,
    )


async def create_orchestrator(
    app_settings: Settings | None = None,
    config_path: str = _DEFAULT_CONFIG_PATH,
) -> EmbeddingOrchestrator:
    """Load settings and YAML config, configure logging and build a ready orchestrator."""
    app_settings = app_settings or Settings()
    config = load_config(config_path, settings=app_settings)
    configure_logging(
        log_level=config.get("logging", {}).get("level", app_settings.log_level),
        json_output=(app_settings.app_env == "production"),
        app_env=app_settings.app_env,
    )
    logger: structlog.BoundLogger = get_logger(__name__)

    repository = build_document_repository(app_settings)
    if isinstance(repository, SQLiteDocumentRepository):
        await repository.initialize()

    orchestrator = build_orchestrator(
        app_settings,
        config=load_ingestion_config(config_path, settings=app_settings),
        repository=repository,
    )
    logger.info(
        "docembed_ready",
        providers=app_settings.get_available_providers(),
        repository=type(repository).__name__,
    )
    return orchestrator
