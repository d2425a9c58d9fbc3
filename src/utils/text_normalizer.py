"""Text normalization utilities shared by models, splitters and strategies.

Three concerns live here:

1. **Checksum normalization** -- the document checksum is a pure function
   of the body after case-folding and whitespace collapsing, so
   re-uploading the same text with different line wrapping is detected as
   unchanged.

2. **Paragraph spans** -- splitters work on ``(start, end)`` offsets into
   the original body rather than on copies, which keeps chapter character
   ranges exact and lets trimmed chapters reconstruct the document.

3. **Prompt truncation** -- LLM strategies cap the text they send with a
   visible ``"..."`` suffix.
"""

import hashlib
import re

_WHITESPACE_RE = re.compile(r"\s+")
_PARAGRAPH_BREAK_RE = re.compile(r"\n[ \t]*\n")


def normalize_for_checksum(text: str | None) -> str:
    """Case-fold, collapse whitespace runs to one space and trim."""
    if not text:
        return ""
    return _WHITESPACE_RE.sub(" ", text.casefold()).strip()


def compute_checksum(text: str | None) -> str:
    """Return the SHA-256 hex digest of the normalized *text*."""
    return hashlib.sha256(normalize_for_checksum(text).encode("utf-8")).hexdigest()


def paragraph_spans(text: str, start: int = 0, end: int | None = None) -> list[tuple[int, int]]:
    """Return ``(start, end)`` offsets of the non-blank paragraphs in ``text[start:end]``.

    Paragraphs are separated by one or more blank lines.  Offsets are
    absolute (relative to *text*) and trimmed of surrounding whitespace.
    """
    stop = len(text) if end is None else end
    spans: list[tuple[int, int]] = []
    cursor = start
    for match in _PARAGRAPH_BREAK_RE.finditer(text, start, stop):
        span = trim_span(text, cursor, match.start())
        if span is not None:
            spans.append(span)
        cursor = match.end()
    span = trim_span(text, cursor, stop)
    if span is not None:
        spans.append(span)
    return spans


def trim_span(text: str, start: int, end: int) -> tuple[int, int] | None:
    """Shrink ``[start, end)`` to exclude surrounding whitespace; ``None`` if blank."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    if start >= end:
        return None
    return start, end


def truncate_text(text: str, max_chars: int, suffix: str = "...") -> str:
    """Cut *text* to *max_chars* characters, appending *suffix* when cut."""
    if len(text) <= max_chars:
        return text
    return text[:max_chars] + suffix
