"""Document repository implementations."""

from src.providers.repository.memory_repository import InMemoryDocumentRepository
from src.providers.repository.sqlite_repository import SQLiteDocumentRepository

__all__ = ["InMemoryDocumentRepository", "SQLiteDocumentRepository"]
