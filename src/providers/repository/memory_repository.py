"""In-memory arena repository for chapters and chunks.

Records live in two flat dicts keyed by id, with per-document indexes of
ids.  Children reference parents by id only; deleting a document's
chapters removes their chunks through the index.  Suitable for tests and
single-process use.
"""

from __future__ import annotations

from collections.abc import Iterable

import structlog

from src.interfaces.document_repository import IDocumentRepository
from src.models.document import Chapter, Chunk, EmbeddingKind
from src.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)


class InMemoryDocumentRepository(IDocumentRepository):
    """Arena storage keyed by generated ids."""

    def __init__(self) -> None:
        self._chapters: dict[str, Chapter] = {}
        self._chunks: dict[str, Chunk] = {}
        self._chapters_by_document: dict[str, set[str]] = {}
        self._chunks_by_document: dict[str, set[str]] = {}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_chapters(self, chapters: list[Chapter]) -> None:
        for chapter in chapters:
            self._chapters[chapter.id] = chapter
            self._chapters_by_document.setdefault(chapter.document_id, set()).add(chapter.id)

    async def save_chunks(self, chunks: list[Chunk]) -> None:
        for chunk in chunks:
            if chunk.chapter_id not in self._chapters:
                raise PersistenceError(
                    message=f"Chunk {chunk.id} references unknown chapter {chunk.chapter_id}",
                    provider_name="memory",
                )
            self._chunks[chunk.id] = chunk
            self._chunks_by_document.setdefault(chunk.document_id, set()).add(chunk.id)

    async def update_vector(self, chunk_id: str, vector: list[float]) -> None:
        chunk = self._chunks.get(chunk_id)
        if chunk is None:
            raise PersistenceError(
                message=f"Chunk {chunk_id} not found", provider_name="memory"
            )
        self._chunks[chunk_id] = chunk.with_vector(vector)

    async def delete_chapters(self, document_id: str) -> int:
        chapter_ids = self._chapters_by_document.pop(document_id, set())
        for chapter_id in chapter_ids:
            self._chapters.pop(chapter_id, None)
        for chunk_id in self._chunks_by_document.pop(document_id, set()):
            self._chunks.pop(chunk_id, None)
        logger.debug("chapters_deleted", document_id=document_id, chapters=len(chapter_ids))
        return len(chapter_ids)

    async def delete_chunks(self, document_id: str, kinds: Iterable[EmbeddingKind]) -> int:
        wanted = set(kinds)
        ids = self._chunks_by_document.get(document_id, set())
        doomed = {cid for cid in ids if self._chunks[cid].kind in wanted}
        for chunk_id in doomed:
            del self._chunks[chunk_id]
        ids -= doomed
        return len(doomed)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_chapters(self, document_id: str) -> list[Chapter]:
        ids = self._chapters_by_document.get(document_id, set())
        return sorted((self._chapters[cid] for cid in ids), key=lambda c: c.ordinal)

    async def get_chunks(
        self,
        document_id: str,
        kinds: Iterable[EmbeddingKind] | None = None,
    ) -> list[Chunk]:
        wanted = set(kinds) if kinds is not None else None
        ids = self._chunks_by_document.get(document_id, set())
        chunks = [
            self._chunks[cid]
            for cid in ids
            if wanted is None or self._chunks[cid].kind in wanted
        ]
        return sorted(chunks, key=self._sort_key)

    async def count_chapters(self, document_id: str) -> int:
        return len(self._chapters_by_document.get(document_id, ()))

    async def count_chunks(self, document_id: str) -> int:
        return len(self._chunks_by_document.get(document_id, ()))

    def _sort_key(self, chunk: Chunk) -> tuple[int, str, int]:
        chapter = self._chapters.get(chunk.chapter_id)
        return (chapter.ordinal if chapter else 0, chunk.kind.value, chunk.ordinal)
