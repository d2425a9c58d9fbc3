"""Abstract persistence contract for chapters and embedding records.

The pipeline hands Chapter and Chunk records to an implementation of this
interface.  Storage is arena-style: records are keyed by id and children
carry only their parent id, so implementations never need to maintain
object graphs.  Deleting a document's chapters cascades to its chunks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

    from src.models.document import Chapter, Chunk, EmbeddingKind


# Concrete implementations: InMemoryDocumentRepository, SQLiteDocumentRepository
# Located in: src/providers/repository/
class IDocumentRepository(ABC):
    """Contract for persisting the document hierarchy produced by ingestion."""

    @abstractmethod
    async def save_chapters(self, chapters: list[Chapter]) -> None:
        """Persist *chapters* (insert or replace by id)."""

    @abstractmethod
    async def save_chunks(self, chunks: list[Chunk]) -> None:
        """Persist *chunks* (insert or replace by id)."""

    @abstractmethod
    async def update_vector(self, chunk_id: str, vector: list[float]) -> None:
        """Write back the computed vector of one chunk.

        Raises
        ------
        src.utils.errors.PersistenceError
            If the chunk does not exist or the write fails.
        """

    @abstractmethod
    async def get_chapters(self, document_id: str) -> list[Chapter]:
        """Return a document's chapters ordered by ordinal."""

    @abstractmethod
    async def get_chunks(
        self,
        document_id: str,
        kinds: Iterable[EmbeddingKind] | None = None,
    ) -> list[Chunk]:
        """Return a document's chunks, optionally filtered by kind.

        Ordered by chapter ordinal, then chunk ordinal.
        """

    @abstractmethod
    async def count_chapters(self, document_id: str) -> int:
        """Return the number of chapters stored for a document."""

    @abstractmethod
    async def count_chunks(self, document_id: str) -> int:
        """Return the number of chunks stored for a document."""

    @abstractmethod
    async def delete_chapters(self, document_id: str) -> int:
        """Delete a document's chapters and, by cascade, their chunks.

        Returns the number of chapters deleted.
        """

    @abstractmethod
    async def delete_chunks(self, document_id: str, kinds: Iterable[EmbeddingKind]) -> int:
        """Delete a document's chunks of the given kinds; returns the count."""
