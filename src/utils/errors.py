"""Custom exception hierarchy for docembed.

All application exceptions inherit from :class:`DocEmbedError`, which
carries an optional ``provider_name`` so error handlers can identify which
external service (e.g. "openai", "ollama", "sqlite") caused the failure.

The hierarchy follows the error taxonomy of the ingestion pipeline:

    DocEmbedError  (base -- catch-all for any docembed error)
    +-- ConfigurationError       (bad library weights, missing model config)
    |   +-- ModelNotFoundError   (resolved model name is not registered)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- LLMError                 (completion call failure)
    +-- EmbeddingError           (embedding call failure)
    +-- SplitterError            (document could not be split into chapters)
    +-- PersistenceError         (repository read/write failure)
    +-- PipelineError            (orchestration / terminal run failure)

Configuration errors are never retried.  Provider errors are retried only
at whole-document granularity by the orchestrator.
"""


class DocEmbedError(Exception):
    """Base exception for all docembed errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  The ``__str__`` method prefixes the provider name in brackets
    for structured log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Configuration errors (fail fast, never retried)
# ---------------------------------------------------------------------------

class ConfigurationError(DocEmbedError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ModelNotFoundError(ConfigurationError):
    """Raised when a resolved model name is not present in the model registry.

    The resolver never substitutes another model: a silently different
    embedding dimension would corrupt the index.
    """

    def __init__(
        self,
        message: str = "Model not found in registry",
        provider_name: str | None = None,
        model_name: str | None = None,
    ) -> None:
        self._model_name = model_name
        super().__init__(message=message, provider_name=provider_name)

    @property
    def model_name(self) -> str | None:
        return self._model_name


# ---------------------------------------------------------------------------
# External service / provider errors (transient, retried per document)
# ---------------------------------------------------------------------------

class ProviderUnavailableError(DocEmbedError):
    """Raised when an external model service is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(DocEmbedError):
    """Raised when a provider rate limit is exceeded."""

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class LLMError(DocEmbedError):
    """Raised when an LLM API call fails or returns an unusable response."""

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(DocEmbedError):
    """Raised when an embedding API call fails."""

    def __init__(
        self,
        message: str = "Embedding API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Pipeline errors
# ---------------------------------------------------------------------------

class SplitterError(DocEmbedError):
    """Raised when a document cannot be split into chapters."""

    def __init__(
        self,
        message: str = "Document splitting failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PersistenceError(DocEmbedError):
    """Raised when the document repository cannot read or write a record."""

    def __init__(
        self,
        message: str = "Persistence operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class PipelineError(DocEmbedError):
    """Raised when document processing fails terminally."""

    def __init__(
        self,
        message: str = "Pipeline orchestration failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
