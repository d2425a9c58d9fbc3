"""Document hierarchy models: Document → Chapter → Chunk.

The hierarchy is stored arena-style: every record has a generated id and
children hold only their parent's id (``Chapter.document_id``,
``Chunk.chapter_id``).  There are no back-pointers or embedded child
collections, so a repository can persist and load each level on its own.

All models are frozen; updates (a new body, a computed vector) produce a
new instance via ``model_copy``.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, computed_field

from src.utils.text_normalizer import compute_checksum
from src.utils.token_estimator import estimate_tokens


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class EmbeddingKind(str, Enum):  # noqa: UP042 - StrEnum requires Python 3.11+
    """Granularity / purpose of an embedding record."""

    DOCUMENT = "document"
    CHAPTER = "chapter"
    CHUNK = "chunk"
    QA_PAIR = "qa_pair"
    SUMMARY = "summary"
    METADATA = "metadata"
    OTHER = "other"


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------
class Document(BaseModel):
    """A source document bound to one library.

    ``checksum`` and ``token_count`` are derived from ``body`` and
    therefore recomputed on every body write.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    library_id: str = Field(description="Owning library id.")
    title: str
    body: str = Field(description="Raw text body.")
    metadata: dict[str, Any] = Field(default_factory=dict)
    active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def checksum(self) -> str:
        """SHA-256 of the case-folded, whitespace-collapsed body."""
        return compute_checksum(self.body)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def token_count(self) -> int:
        return estimate_tokens(self.body)

    def with_body(self, body: str) -> Document:
        """Return a copy with a new body and a refreshed ``updated_at``."""
        return self.model_copy(update={"body": body, "updated_at": _utcnow()})

    def is_same_content(self, other_body: str) -> bool:
        """``True`` if *other_body* normalizes to this document's content."""
        return compute_checksum(other_body) == self.checksum


# ---------------------------------------------------------------------------
# Chapter
# ---------------------------------------------------------------------------
class Chapter(BaseModel):
    """A titled, ordered top-level segment of a document.

    ``char_start``/``char_end`` delimit the chapter inside the document
    body (character offsets, not model tokens).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    document_id: str = Field(min_length=1, description="Parent document id.")
    title: str
    text: str
    ordinal: int = Field(ge=1, description="1-based position among sibling chapters.")
    char_start: int = Field(default=0, ge=0)
    char_end: int = Field(default=0, ge=0)
    token_count: int = Field(default=0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Chunk
# ---------------------------------------------------------------------------
class Chunk(BaseModel):
    """A leaf text unit carrying exactly one embedding once computed.

    ``vector`` is ``None`` between persistence and vector computation.
    The score fields are populated only by query-time consumers.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    chapter_id: str = Field(min_length=1)
    document_id: str = Field(min_length=1)
    library_id: str = Field(min_length=1)
    kind: EmbeddingKind
    text: str
    ordinal: int = Field(ge=0, description="Position within the chapter.")
    vector: list[float] | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    semantic_score: float | None = None
    textual_score: float | None = None
    combined_score: float | None = None

    @property
    def has_vector(self) -> bool:
        return self.vector is not None

    def with_vector(self, vector: list[float]) -> Chunk:
        return self.model_copy(update={"vector": list(vector)})
