"""Encyclopedic (wiki) splitter.

Headings are wikitext sections (``== History ==``, ``=== Early years ===``),
markdown headings from wiki exports, and bold title lines
(``'''Title'''``).
"""

from __future__ import annotations

import re

from src.services.ingestion.splitters.base import ContentSplitter, Heading, iter_lines

_WIKITEXT_RE = re.compile(r"^(={2,6})\s*(.+?)\s*\1\s*$")
_MARKDOWN_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_BOLD_TITLE_RE = re.compile(r"^'''(.+?)'''\s*$")


class WikiSplitter(ContentSplitter):
    """Splits wikitext and wiki-derived markdown."""

    content_type = "wikipedia"

    def find_headings(self, body: str) -> list[Heading]:
        headings: list[Heading] = []
        for line in iter_lines(body):
            stripped = line.text.strip()
            if not stripped:
                continue
            match = _WIKITEXT_RE.match(stripped)
            if match:
                level = len(match.group(1))
                headings.append(Heading(line.start, match.group(2), level, f"h{level}"))
                continue
            match = _MARKDOWN_RE.match(stripped)
            if match:
                level = len(match.group(1))
                headings.append(Heading(line.start, match.group(2), level, f"h{level}"))
                continue
            match = _BOLD_TITLE_RE.match(stripped)
            if match:
                headings.append(Heading(line.start, match.group(1).strip(), 1, "bold"))
        return headings
