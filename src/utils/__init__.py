"""Utility modules for docembed.

Available utility modules (all re-exported here for convenience):

- **errors** -- Domain-specific exception hierarchy rooted at DocEmbedError;
  configuration errors fail fast, provider errors are retried per document.
- **concurrency** -- asyncio semaphore throttling for multi-document runs.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **text_normalizer** -- checksum normalization, paragraph span detection
  and prompt truncation.
- **token_estimator** -- tokenizer-backed or ``ceil(len / 3.8)`` token
  estimates used for every budget decision.
"""

# -- Domain exception hierarchy --------------------------------------------
from src.utils.errors import (
    ConfigurationError,
    DocEmbedError,
    EmbeddingError,
    LLMError,
    ModelNotFoundError,
    PersistenceError,
    PipelineError,
    ProviderUnavailableError,
    RateLimitError,
    SplitterError,
)

# -- Async concurrency helpers ---------------------------------------------
from src.utils.concurrency import throttled_gather

# -- Structured logging setup ----------------------------------------------
from src.utils.logging import bind_document_context, configure_logging, get_logger

# -- Text normalization and token estimation -------------------------------
from src.utils.text_normalizer import compute_checksum, normalize_for_checksum
from src.utils.token_estimator import TokenEstimator, estimate_tokens

__all__ = [
    "ConfigurationError",
    "DocEmbedError",
    "EmbeddingError",
    "LLMError",
    "ModelNotFoundError",
    "PersistenceError",
    "PipelineError",
    "ProviderUnavailableError",
    "RateLimitError",
    "SplitterError",
    "TokenEstimator",
    "bind_document_context",
    "compute_checksum",
    "configure_logging",
    "estimate_tokens",
    "get_logger",
    "normalize_for_checksum",
    "throttled_gather",
]
