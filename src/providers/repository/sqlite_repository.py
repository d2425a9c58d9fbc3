"""SQLite-backed document repository.

Persists chapters and chunks to a local SQLite database using ``aiosqlite``
for async I/O.  Vectors and metadata maps are stored as JSON text.  The
``chunks.chapter_id`` foreign key cascades on delete, so removing a
document's chapters removes their chunks in the same transaction.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.document_repository import IDocumentRepository
from src.models.document import Chapter, Chunk, EmbeddingKind
from src.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/documents.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS chapters (
    id           TEXT    PRIMARY KEY,
    document_id  TEXT    NOT NULL,
    title        TEXT    NOT NULL,
    text         TEXT    NOT NULL,
    ordinal      INTEGER NOT NULL,
    char_start   INTEGER NOT NULL DEFAULT 0,
    char_end     INTEGER NOT NULL DEFAULT 0,
    token_count  INTEGER NOT NULL DEFAULT 0,
    metadata     TEXT    NOT NULL DEFAULT '{}',
    UNIQUE(document_id, ordinal)
);
""",
    """\
CREATE TABLE IF NOT EXISTS chunks (
    id           TEXT    PRIMARY KEY,
    chapter_id   TEXT    NOT NULL REFERENCES chapters(id) ON DELETE CASCADE,
    document_id  TEXT    NOT NULL,
    library_id   TEXT    NOT NULL,
    kind         TEXT    NOT NULL,
    text         TEXT    NOT NULL,
    ordinal      INTEGER NOT NULL,
    vector       TEXT,
    metadata     TEXT    NOT NULL DEFAULT '{}'
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chapters_document ON chapters(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_chunks_chapter ON chunks(chapter_id);",
]

_UPSERT_CHAPTER_SQL = """\
INSERT INTO chapters
    (id, document_id, title, text, ordinal, char_start, char_end, token_count, metadata)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET title       = excluded.title,
              text        = excluded.text,
              ordinal     = excluded.ordinal,
              char_start  = excluded.char_start,
              char_end    = excluded.char_end,
              token_count = excluded.token_count,
              metadata    = excluded.metadata;
"""

_UPSERT_CHUNK_SQL = """\
INSERT INTO chunks
    (id, chapter_id, document_id, library_id, kind, text, ordinal, vector, metadata)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
ON CONFLICT(id)
DO UPDATE SET kind     = excluded.kind,
              text     = excluded.text,
              ordinal  = excluded.ordinal,
              vector   = excluded.vector,
              metadata = excluded.metadata;
"""

_SELECT_CHUNKS_SQL = """\
SELECT c.id, c.chapter_id, c.document_id, c.library_id, c.kind, c.text,
       c.ordinal, c.vector, c.metadata
FROM chunks c JOIN chapters ch ON ch.id = c.chapter_id
WHERE c.document_id = ?
"""


class SQLiteDocumentRepository(IDocumentRepository):
    """SQLite persistence for the chapter/chunk hierarchy."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_db_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def save_chapters(self, chapters: list[Chapter]) -> None:
        rows = [
            (
                c.id,
                c.document_id,
                c.title,
                c.text,
                c.ordinal,
                c.char_start,
                c.char_end,
                c.token_count,
                json.dumps(c.metadata, default=str),
            )
            for c in chapters
        ]
        await self._write_many(_UPSERT_CHAPTER_SQL, rows, "save_chapters")

    async def save_chunks(self, chunks: list[Chunk]) -> None:
        rows = [
            (
                c.id,
                c.chapter_id,
                c.document_id,
                c.library_id,
                c.kind.value,
                c.text,
                c.ordinal,
                json.dumps(c.vector) if c.vector is not None else None,
                json.dumps(c.metadata, default=str),
            )
            for c in chunks
        ]
        await self._write_many(_UPSERT_CHUNK_SQL, rows, "save_chunks")

    async def update_vector(self, chunk_id: str, vector: list[float]) -> None:
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    "UPDATE chunks SET vector = ? WHERE id = ?",
                    (json.dumps(vector), chunk_id),
                )
                await db.commit()
                updated = cursor.rowcount
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Vector write failed for chunk {chunk_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        if updated == 0:
            raise PersistenceError(
                message=f"Chunk {chunk_id} not found",
                provider_name=self.get_provider_name(),
            )

    async def delete_chapters(self, document_id: str) -> int:
        try:
            async with self._connect() as db:
                await db.execute("PRAGMA foreign_keys = ON")
                cursor = await db.execute(
                    "DELETE FROM chapters WHERE document_id = ?", (document_id,)
                )
                deleted = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Deleting chapters of {document_id} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info("chapters_deleted", document_id=document_id, chapters=deleted)
        return deleted

    async def delete_chunks(self, document_id: str, kinds: Iterable[EmbeddingKind]) -> int:
        values = [k.value for k in kinds]
        if not values:
            return 0
        placeholders = ", ".join("?" for _ in values)
        try:
            async with self._connect() as db:
                cursor = await db.execute(
                    f"DELETE FROM chunks WHERE document_id = ? AND kind IN ({placeholders})",  # noqa: S608
                    (document_id, *values),
                )
                deleted = cursor.rowcount
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Deleting chunks of {document_id} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_chapters(self, document_id: str) -> list[Chapter]:
        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT * FROM chapters WHERE document_id = ? ORDER BY ordinal",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_chapter(dict(r)) for r in rows]

    async def get_chunks(
        self,
        document_id: str,
        kinds: Iterable[EmbeddingKind] | None = None,
    ) -> list[Chunk]:
        sql = _SELECT_CHUNKS_SQL
        params: list[Any] = [document_id]
        if kinds is not None:
            values = [k.value for k in kinds]
            if not values:
                return []
            sql += f" AND c.kind IN ({', '.join('?' for _ in values)})"
            params.extend(values)
        sql += " ORDER BY ch.ordinal, c.kind, c.ordinal"

        async with self._connect() as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(sql, params)
            rows = await cursor.fetchall()
        return [self._row_to_chunk(dict(r)) for r in rows]

    async def count_chapters(self, document_id: str) -> int:
        return await self._count("chapters", document_id)

    async def count_chunks(self, document_id: str) -> int:
        return await self._count("chunks", document_id)

    def get_provider_name(self) -> str:
        return "sqlite_documents"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _connect(self) -> aiosqlite.Connection:
        return aiosqlite.connect(str(self._db_path))

    async def _write_many(self, sql: str, rows: list[tuple[Any, ...]], operation: str) -> None:
        if not rows:
            return
        try:
            async with self._connect() as db:
                await db.execute("PRAGMA foreign_keys = ON")
                await db.executemany(sql, rows)
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"{operation} failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def _count(self, table: str, document_id: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                f"SELECT COUNT(*) FROM {table} WHERE document_id = ?",  # noqa: S608
                (document_id,),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _row_to_chapter(row: dict[str, Any]) -> Chapter:
        return Chapter(
            id=row["id"],
            document_id=row["document_id"],
            title=row["title"],
            text=row["text"],
            ordinal=row["ordinal"],
            char_start=row["char_start"],
            char_end=row["char_end"],
            token_count=row["token_count"],
            metadata=json.loads(row["metadata"]),
        )

    @staticmethod
    def _row_to_chunk(row: dict[str, Any]) -> Chunk:
        return Chunk(
            id=row["id"],
            chapter_id=row["chapter_id"],
            document_id=row["document_id"],
            library_id=row["library_id"],
            kind=EmbeddingKind(row["kind"]),
            text=row["text"],
            ordinal=row["ordinal"],
            vector=json.loads(row["vector"]) if row["vector"] else None,
            metadata=json.loads(row["metadata"]),
        )
