"""Cheap text-to-token-count estimation for chunking and strategy decisions.

The estimate only steers budgets (which chapter mode to use, where to cut
chunks, how many texts fit in one embedding call); it never needs to match
a provider's billing count.  When a HuggingFace ``tokenizers`` tokenizer
is supplied the exact count is used, otherwise ``ceil(len / 3.8)``.
"""

from __future__ import annotations

import math
from typing import Any

import structlog

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_CHARS_PER_TOKEN = 3.8


class TokenEstimator:
    """Estimates token counts, preferring an exact tokenizer when available.

    Parameters
    ----------
    tokenizer:
        Optional object exposing ``encode(text).ids`` (a
        ``tokenizers.Tokenizer``).  When ``None`` the character ratio is used.
    chars_per_token:
        Fallback characters-per-token ratio.
    """

    def __init__(
        self,
        tokenizer: Any | None = None,
        chars_per_token: float = DEFAULT_CHARS_PER_TOKEN,
    ) -> None:
        if chars_per_token <= 0:
            msg = f"chars_per_token must be positive, got {chars_per_token}"
            raise ValueError(msg)
        self._tokenizer = tokenizer
        self._chars_per_token = chars_per_token

    @classmethod
    def from_pretrained(
        cls, name: str, chars_per_token: float = DEFAULT_CHARS_PER_TOKEN
    ) -> TokenEstimator:
        """Build an estimator backed by a pretrained HuggingFace tokenizer.

        A tokenizer that cannot be loaded (offline host, unknown name)
        leaves the estimator on the character-ratio fallback.
        """
        try:
            from tokenizers import Tokenizer  # type: ignore[import-untyped]

            tokenizer = Tokenizer.from_pretrained(name)
        except Exception as exc:  # noqa: BLE001
            logger.info("tokenizer_unavailable", tokenizer=name, error=str(exc))
            tokenizer = None
        return cls(tokenizer=tokenizer, chars_per_token=chars_per_token)

    @property
    def chars_per_token(self) -> float:
        return self._chars_per_token

    @property
    def uses_tokenizer(self) -> bool:
        return self._tokenizer is not None

    def estimate(self, text: str | None) -> int:
        """Return a non-negative token estimate for *text*.  Never raises."""
        if not text:
            return 0
        if self._tokenizer is not None:
            try:
                return len(self._tokenizer.encode(text).ids)
            except Exception as exc:  # noqa: BLE001
                logger.debug("tokenizer_encode_failed", error=str(exc))
        return self.fallback_estimate(text)

    def fallback_estimate(self, text: str) -> int:
        """``ceil(len(text) / chars_per_token)``."""
        return math.ceil(len(text) / self._chars_per_token)

    def max_chars_for(self, tokens: int) -> int:
        """Approximate number of characters that fit in *tokens* tokens."""
        return max(0, int(tokens * self._chars_per_token))


_default_estimator = TokenEstimator()


def estimate_tokens(text: str | None) -> int:
    """Estimate tokens with the shared character-ratio estimator."""
    return _default_estimator.estimate(text)
