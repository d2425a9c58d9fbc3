"""Abstract content splitter and the chapter-building steps all splitters share.

A splitter only decides where headings are (:meth:`find_headings`).  The
base class turns headings into chapters, falls back to paragraph packing
when a body has no structure, evens out chapter sizes and delegates
within-chapter chunking to the shared :class:`ChunkCutter`.

Chapters are contiguous, trimmed slices of the document body in body
order, so trimming and concatenating them reconstructs the logical
content and each chapter's ``char_start``/``char_end`` point back into
the body exactly.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

import structlog

from src.config.ingestion import IngestionConfig
from src.models.document import Chapter, Document
from src.services.ingestion.chunk_cutter import ChunkCutter, ChunkSlice, pack_spans
from src.utils.errors import SplitterError
from src.utils.text_normalizer import paragraph_spans, trim_span
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)

_LINE_RE = re.compile(r"^.*$", re.MULTILINE)


@dataclass(frozen=True)
class Heading:
    """A structural marker found in a document body."""

    start: int
    title: str
    level: int = 1
    tag: str = ""


@dataclass(frozen=True)
class Line:
    start: int
    end: int
    text: str

    @property
    def blank(self) -> bool:
        return not self.text.strip()


@dataclass
class _Section:
    start: int
    end: int
    title: str
    annotations: dict[str, Any] = field(default_factory=dict)


def iter_lines(body: str) -> list[Line]:
    """Return every line of *body* with its absolute offsets."""
    return [Line(m.start(), m.end(), m.group(0)) for m in _LINE_RE.finditer(body)]


class ContentSplitter(ABC):
    """Turns a document body into ordered chapters.

    Parameters
    ----------
    config:
        Chapter sizing thresholds (``chapter_min_tokens``,
        ``chapter_ideal_tokens``, ``chapter_max_tokens``) and the chunk
        ceiling (``text_only_max_tokens``).
    estimator:
        Token estimator; defaults to the character-ratio fallback.
    cutter:
        Within-chapter cutter; defaults to one bounded by
        ``config.text_only_max_tokens``.
    """

    content_type: ClassVar[str] = "generic"
    preamble_title: ClassVar[str] = "Introduction"

    def __init__(
        self,
        config: IngestionConfig,
        estimator: TokenEstimator | None = None,
        cutter: ChunkCutter | None = None,
    ) -> None:
        self._config = config
        self._estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)
        self._cutter = cutter or ChunkCutter(config.text_only_max_tokens, self._estimator)

    @abstractmethod
    def find_headings(self, body: str) -> list[Heading]:
        """Return the structural headings of *body* in order of appearance."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def split(self, document: Document) -> list[Chapter]:
        """Split *document* into 1-based ordered chapters.

        Raises
        ------
        SplitterError
            If the body is blank or no chapter could be produced.
        """
        body = document.body
        if not body or not body.strip():
            raise SplitterError(message=f"Document '{document.title}' has no content to split")

        headings = self.find_headings(body)
        if headings:
            sections = self._sections_from_headings(body, headings)
        else:
            sections = self._pack_paragraphs(body, 0, len(body))

        sections = self._merge_small(body, sections)
        sections = self._split_large(body, sections)

        chapters: list[Chapter] = []
        for section in sections:
            span = trim_span(body, section.start, section.end)
            if span is None:
                continue
            text = body[span[0] : span[1]]
            chapters.append(
                Chapter(
                    document_id=document.id,
                    title=section.title,
                    text=text,
                    ordinal=len(chapters) + 1,
                    char_start=span[0],
                    char_end=span[1],
                    token_count=self._estimator.estimate(text),
                    metadata={
                        **document.metadata,
                        "content_type": self.content_type,
                        **section.annotations,
                    },
                )
            )

        if not chapters:
            raise SplitterError(message=f"Splitting '{document.title}' produced no chapters")

        logger.info(
            "chapters_split",
            document_id=document.id,
            content_type=self.content_type,
            headings=len(headings),
            chapters=len(chapters),
        )
        return chapters

    def split_into_chunks(self, chapter: Chapter) -> list[ChunkSlice]:
        """Cut *chapter* into pieces within the chunk ceiling."""
        return self._cutter.cut(chapter.text)

    # ------------------------------------------------------------------
    # Sectioning
    # ------------------------------------------------------------------

    def _sections_from_headings(self, body: str, headings: list[Heading]) -> list[_Section]:
        sections: list[_Section] = []
        first = headings[0].start
        if trim_span(body, 0, first) is not None:
            sections.append(_Section(0, first, self.preamble_title, {"split_reason": "preamble"}))
        for index, heading in enumerate(headings):
            end = headings[index + 1].start if index + 1 < len(headings) else len(body)
            annotations: dict[str, Any] = {
                "split_reason": "heading",
                "heading_level": heading.level,
            }
            if heading.tag:
                annotations["heading_tag"] = heading.tag
            sections.append(_Section(heading.start, end, heading.title, annotations))
        return sections

    def _pack_paragraphs(self, body: str, start: int, end: int) -> list[_Section]:
        """Fallback: pack paragraphs up to ``chapter_ideal_tokens`` per chapter."""
        spans = pack_spans(
            body,
            paragraph_spans(body, start, end),
            self._config.chapter_ideal_tokens,
            self._estimator,
        )
        return [
            _Section(s, e, f"Section {n}", {"split_reason": "paragraph_packing"})
            for n, (s, e) in enumerate(spans, start=1)
        ]

    def _tokens(self, body: str, section: _Section) -> int:
        return self._estimator.estimate(body[section.start : section.end].strip())

    def _merge_small(self, body: str, sections: list[_Section]) -> list[_Section]:
        """Fold chapters under ``chapter_min_tokens`` into their successor.

        A small final chapter folds into its predecessor instead.
        """
        minimum = self._config.chapter_min_tokens
        if minimum <= 0 or len(sections) < 2:
            return sections

        merged: list[_Section] = []
        pending: _Section | None = None
        for section in sections:
            if pending is not None:
                section = _Section(
                    pending.start,
                    section.end,
                    pending.title,
                    {**section.annotations, **pending.annotations, "merged": True},
                )
                pending = None
            if self._tokens(body, section) < minimum:
                pending = section
            else:
                merged.append(section)

        if pending is not None:
            if merged:
                last = merged.pop()
                merged.append(
                    _Section(last.start, pending.end, last.title, {**last.annotations, "merged": True})
                )
            else:
                merged.append(pending)
        return merged

    def _split_large(self, body: str, sections: list[_Section]) -> list[_Section]:
        """Break chapters over ``chapter_max_tokens`` into "(Part N)" chapters."""
        result: list[_Section] = []
        for section in sections:
            if self._tokens(body, section) <= self._config.chapter_max_tokens:
                result.append(section)
                continue
            parts = pack_spans(
                body,
                paragraph_spans(body, section.start, section.end),
                self._config.chapter_ideal_tokens,
                self._estimator,
            )
            if len(parts) < 2:
                result.append(section)
                continue
            for number, (start, end) in enumerate(parts, start=1):
                result.append(
                    _Section(
                        start,
                        end,
                        f"{section.title} (Part {number})",
                        {**section.annotations, "split_reason": "size_limit", "part": number},
                    )
                )
        return result
