"""Normative (statute / regulation) splitter.

Chapters open at structural divisions: BOOK, TITLE, CHAPTER and SECTION,
in English or Portuguese (``LIVRO``, ``TÍTULO``, ``CAPÍTULO``, ``SEÇÃO``),
numbered with roman or arabic numerals.  A short all-caps line right
after the division line is its name and joins the title
("CAPÍTULO I - DOS DIREITOS").  Article lines (``Art. 5º``) never open a
chapter; they stay inside the division that contains them and are
counted in the chapter metadata.
"""

from __future__ import annotations

import re

from src.models.document import Chapter, Document
from src.services.ingestion.splitters.base import ContentSplitter, Heading, Line, iter_lines

_DIVISION_RE = re.compile(
    r"^(LIVRO|BOOK|T[IÍ]TULO|TITLE|CAP[IÍ]TULO|CHAPTER|SE[CÇ][AÃ]O|SECTION|SUBSE[CÇ][AÃ]O|SUBSECTION)"
    r"\s+([IVXLCDM]+|\d+)\b.*$",
    re.IGNORECASE,
)
_ARTICLE_RE = re.compile(r"^\s*Art\.?\s*\d+", re.MULTILINE | re.IGNORECASE)

_LEVELS = {
    "livro": 1,
    "book": 1,
    "titulo": 1,
    "título": 1,
    "title": 1,
    "capitulo": 2,
    "capítulo": 2,
    "chapter": 2,
    "secao": 3,
    "seção": 3,
    "seçao": 3,
    "secão": 3,
    "section": 3,
    "subsecao": 4,
    "subseção": 4,
    "subseçao": 4,
    "subsecão": 4,
    "subsection": 4,
}

_MAX_NAME_CHARS = 120


class NormativeSplitter(ContentSplitter):
    """Splits laws, decrees and regulations at their structural divisions."""

    content_type = "normative"
    preamble_title = "Preamble"

    def find_headings(self, body: str) -> list[Heading]:
        lines = iter_lines(body)
        headings: list[Heading] = []
        for index, line in enumerate(lines):
            stripped = line.text.strip()
            match = _DIVISION_RE.match(stripped)
            if not match or len(stripped) > _MAX_NAME_CHARS:
                continue
            keyword = match.group(1).lower()
            title = stripped
            name = self._division_name(lines, index)
            if name:
                title = f"{stripped} - {name}"
            headings.append(Heading(line.start, title, _LEVELS.get(keyword, 2), keyword))
        return headings

    def split(self, document: Document) -> list[Chapter]:
        return [
            chapter.model_copy(
                update={
                    "metadata": {
                        **chapter.metadata,
                        "article_count": len(_ARTICLE_RE.findall(chapter.text)),
                    }
                }
            )
            for chapter in super().split(document)
        ]

    @staticmethod
    def _division_name(lines: list[Line], index: int) -> str | None:
        """Return the all-caps name line following a division line, if any."""
        for candidate in lines[index + 1 : index + 3]:
            text = candidate.text.strip()
            if not text:
                continue
            if (
                len(text) <= _MAX_NAME_CHARS
                and text.isupper()
                and not _DIVISION_RE.match(text)
                and not _ARTICLE_RE.match(text)
            ):
                return text
            return None
        return None
