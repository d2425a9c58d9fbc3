"""Public interface definitions for all external collaborators.

Every model service and the persistence layer are accessed exclusively
through the abstract base classes in this package.  Concrete adapters
implement them and are injected at runtime (see ``src/main.py``), so unit
tests can pass fakes and providers can be swapped without touching the
pipeline.

CONCRETE PROVIDER MAP:
    Interface              →  Concrete implementations
    ─────────────────────────────────────────────────────────────
    IEmbeddingProvider     →  OpenAIEmbeddingProvider, OllamaEmbeddingProvider
    ILLMProvider           →  OpenAILLMProvider, OllamaLLMProvider
    IEmbeddingStrategy     →  Chapter, Query, QA and Summary strategies
    IDocumentRepository    →  InMemoryDocumentRepository, SQLiteDocumentRepository
"""

from src.interfaces.document_repository import IDocumentRepository
from src.interfaces.embedding_provider import IEmbeddingProvider
from src.interfaces.embedding_strategy import IEmbeddingStrategy
from src.interfaces.llm_provider import ILLMProvider

__all__ = [
    "IDocumentRepository",
    "IEmbeddingProvider",
    "IEmbeddingStrategy",
    "ILLMProvider",
]
