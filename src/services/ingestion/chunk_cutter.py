"""Shared chunk cutter: slices an oversized chapter into bounded pieces.

Every piece stays within ``max_tokens`` (the chapter strategy's upper
auto threshold).  Cutting works on character spans of the chapter text
and degrades in three steps:

1. **Paragraphs** -- consecutive paragraphs are packed into one piece
   until the next would push it over budget.
2. **Sentences** -- a paragraph that alone exceeds the budget is packed
   sentence by sentence, using an abbreviation-aware boundary scan so
   "Dr." or "Art." never ends a sentence.
3. **Hard windows** -- a sentence that still exceeds the budget (tables,
   unpunctuated dumps) is cut into fixed character windows.

The same input always yields the same pieces.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

import structlog

from src.utils.text_normalizer import paragraph_spans, trim_span
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)

# Abbreviations whose trailing period does not end a sentence.
_ABBREVIATIONS = (
    "Dr",
    "Mr",
    "Mrs",
    "Ms",
    "Prof",
    "Jr",
    "Sr",
    "Sra",
    "St",
    "Vol",
    "No",
    "vs",
    "etc",
    "approx",
    "Inc",
    "Ltd",
    "Art",
    "art",
    "inc",
    "cf",
)

_ABBREVIATION_RE = re.compile(r"\b(" + "|".join(_ABBREVIATIONS) + r")\.")
_SENTENCE_END_RE = re.compile(r"[.!?](?:\s|$)")


@dataclass(frozen=True)
class ChunkSlice:
    """One piece of a chapter, with its position among its siblings."""

    text: str
    index: int
    total: int
    char_start: int
    char_end: int


def pack_spans(
    text: str,
    spans: Sequence[tuple[int, int]],
    max_tokens: int,
    estimator: TokenEstimator,
) -> list[tuple[int, int]]:
    """Greedily merge consecutive spans while ``text[start:end]`` fits *max_tokens*.

    A span that alone exceeds the budget is emitted on its own; callers
    decide whether to break it further.
    """
    packed: list[tuple[int, int]] = []
    current: tuple[int, int] | None = None
    for start, end in spans:
        if current is None:
            current = (start, end)
            continue
        if estimator.estimate(text[current[0] : end]) > max_tokens:
            packed.append(current)
            current = (start, end)
        else:
            current = (current[0], end)
    if current is not None:
        packed.append(current)
    return packed


class ChunkCutter:
    """Cuts chapter text into pieces of at most ``max_tokens`` estimated tokens.

    Parameters
    ----------
    max_tokens:
        Upper bound per piece.
    estimator:
        Token estimator shared with the splitters.
    """

    def __init__(self, max_tokens: int, estimator: TokenEstimator | None = None) -> None:
        if max_tokens <= 0:
            msg = f"max_tokens must be positive, got {max_tokens}"
            raise ValueError(msg)
        self._max_tokens = max_tokens
        self._estimator = estimator or TokenEstimator()

    @property
    def max_tokens(self) -> int:
        return self._max_tokens

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def cut(self, text: str) -> list[ChunkSlice]:
        """Return the ordered pieces of *text*; blank text yields none."""
        if not text or not text.strip():
            return []

        spans: list[tuple[int, int]] = []
        for start, end in pack_spans(
            text, paragraph_spans(text), self._max_tokens, self._estimator
        ):
            if self._fits(text, start, end):
                spans.append((start, end))
            else:
                spans.extend(self._cut_sentences(text, start, end))

        total = len(spans)
        pieces = [
            ChunkSlice(
                text=text[start:end],
                index=index,
                total=total,
                char_start=start,
                char_end=end,
            )
            for index, (start, end) in enumerate(spans)
        ]
        logger.debug(
            "chapter_cut",
            pieces=total,
            max_tokens=self._max_tokens,
            characters=len(text),
        )
        return pieces

    # ------------------------------------------------------------------
    # Sentence / window fallback
    # ------------------------------------------------------------------

    def _cut_sentences(self, text: str, start: int, end: int) -> list[tuple[int, int]]:
        result: list[tuple[int, int]] = []
        for s_start, s_end in pack_spans(
            text, self._sentence_spans(text, start, end), self._max_tokens, self._estimator
        ):
            if self._fits(text, s_start, s_end):
                result.append((s_start, s_end))
            else:
                result.extend(self._hard_windows(text, s_start, s_end))
        return result

    @staticmethod
    def _sentence_spans(text: str, start: int, end: int) -> list[tuple[int, int]]:
        """Split ``text[start:end]`` at sentence ends, skipping abbreviations.

        Abbreviation periods are masked with a same-length placeholder so
        offsets in the masked copy line up with the original.
        """
        segment = text[start:end]
        masked = _ABBREVIATION_RE.sub(lambda m: m.group(1) + "\x00", segment)

        spans: list[tuple[int, int]] = []
        last = 0
        for match in _SENTENCE_END_RE.finditer(masked):
            span = trim_span(text, start + last, start + match.end())
            if span is not None:
                spans.append(span)
            last = match.end()
        span = trim_span(text, start + last, end)
        if span is not None:
            spans.append(span)
        return spans or [(start, end)]

    def _hard_windows(self, text: str, start: int, end: int) -> list[tuple[int, int]]:
        window = max(1, self._estimator.max_chars_for(self._max_tokens))
        windows: list[tuple[int, int]] = []
        for offset in range(start, end, window):
            span = trim_span(text, offset, min(offset + window, end))
            if span is not None:
                windows.append(span)
        return windows

    def _fits(self, text: str, start: int, end: int) -> bool:
        return self._estimator.estimate(text[start:end]) <= self._max_tokens
