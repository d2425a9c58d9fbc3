"""Generic prose splitter.

Recognises four heading styles:

* markdown ``#`` headings (level = number of hashes),
* setext headings (a text line underlined with ``===`` or ``---``),
* numbered headings (``1. Scope``, ``2.3 Terms``, ``4) Annex``) that open
  a paragraph and read like a title,
* short all-caps lines standing alone between blank lines.

Documents with none of these fall back to paragraph packing.
"""

from __future__ import annotations

import re

from src.services.ingestion.splitters.base import ContentSplitter, Heading, iter_lines

_MARKDOWN_RE = re.compile(r"^(#{1,6})\s+(.+?)\s*#*\s*$")
_SETEXT_RE = re.compile(r"^\s*(=+|-+)\s*$")
_NUMBERED_RE = re.compile(r"^(\d+(?:\.\d+)*\.|\d+(?:\.\d+)+|\d+\))\s+(\S.*)$")

_MAX_TITLE_CHARS = 80


class GenericSplitter(ContentSplitter):
    """Splits plain prose, markdown and lightly structured text."""

    content_type = "generic"

    def find_headings(self, body: str) -> list[Heading]:
        lines = iter_lines(body)
        headings: list[Heading] = []
        for index, line in enumerate(lines):
            stripped = line.text.strip()
            if not stripped:
                continue
            previous_blank = index == 0 or lines[index - 1].blank
            next_line = lines[index + 1] if index + 1 < len(lines) else None

            match = _MARKDOWN_RE.match(stripped)
            if match:
                headings.append(
                    Heading(line.start, match.group(2), len(match.group(1)), "markdown")
                )
                continue

            if (
                next_line is not None
                and previous_blank
                and len(stripped) <= _MAX_TITLE_CHARS
                and _SETEXT_RE.match(next_line.text)
                and len(next_line.text.strip()) >= 3
            ):
                level = 1 if next_line.text.strip().startswith("=") else 2
                headings.append(Heading(line.start, stripped, level, "setext"))
                continue

            if not previous_blank or len(stripped) > _MAX_TITLE_CHARS:
                continue

            match = _NUMBERED_RE.match(stripped)
            if match and self._reads_like_title(match.group(2)):
                level = len(re.findall(r"\d+", match.group(1)))
                headings.append(Heading(line.start, stripped, level, "numbered"))
                continue

            next_blank = next_line is None or next_line.blank
            if next_blank and self._is_caps_heading(stripped):
                headings.append(Heading(line.start, stripped, 1, "uppercase"))
        return headings

    @staticmethod
    def _reads_like_title(text: str) -> bool:
        return not text.endswith((".", ",", ";", ":")) and text[:1].isupper()

    @staticmethod
    def _is_caps_heading(text: str) -> bool:
        letters = [c for c in text if c.isalpha()]
        return len(letters) >= 3 and text.isupper()
