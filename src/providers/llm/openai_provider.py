"""OpenAI-compatible LLM provider adapter.

Wraps the ``openai`` async client to implement :class:`ILLMProvider`.
When a custom ``openai_base_url`` is configured (TogetherAI, Fireworks,
vLLM, ...) the client points at that URL instead of api.openai.com.

Reasoning models (``o3-mini``, ``o4-mini``) take ``max_completion_tokens``
and ``reasoning_effort`` instead of ``max_tokens``/``temperature``.
"""

from __future__ import annotations

import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.embedding import ModelCapability, ModelInfo
from src.utils.errors import LLMError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

# name -> (context length, reasoning capable)
_MODEL_CATALOG: dict[str, tuple[int, bool]] = {
    "gpt-4o-mini": (128000, False),
    "gpt-4o": (128000, False),
    "gpt-4.1-mini": (1047576, False),
    "o3-mini": (200000, True),
    "o4-mini": (200000, True),
}

_DEFAULT_MODEL = "gpt-4o-mini"


class OpenAILLMProvider(ILLMProvider):
    """LLM provider backed by an OpenAI-compatible chat completions API."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(120.0, connect=5.0),
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        self._client = openai.AsyncOpenAI(**client_kwargs)
        self._default_model = settings.openai_completion_model or _DEFAULT_MODEL
        self._provider_label = "openai-compatible" if settings.openai_base_url else "openai"

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
        model: str | None = None,
        reasoning_effort: str | None = None,
    ) -> str:
        """Generate a text completion via the chat completions API."""
        model = model or self._default_model
        request: dict = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
        }
        if self._is_reasoning(model):
            request["max_completion_tokens"] = max_tokens
            if reasoning_effort:
                request["reasoning_effort"] = reasoning_effort
        else:
            request["temperature"] = temperature
            request["max_tokens"] = max_tokens

        try:
            response = await self._client.chat.completions.create(**request)
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limit: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"{self._provider_label} unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if not content:
            raise LLMError(
                message=f"{self._provider_label} returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info(
            "openai_completion",
            model=model,
            provider=self._provider_label,
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return content

    def list_models(self) -> list[ModelInfo]:
        models = dict(_MODEL_CATALOG)
        models.setdefault(self._default_model, (8192, False))
        return [
            ModelInfo(
                name=name,
                provider_name=self._provider_label,
                capabilities=frozenset({ModelCapability.COMPLETION}),
                context_length=context_length,
                reasoning_capable=reasoning,
            )
            for name, (context_length, reasoning) in models.items()
        ]

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured (doesn't verify it works)."""
        return bool(self._api_key)

    async def validate_credentials(self) -> bool:
        """List models to confirm the key is accepted, without inference cost."""
        if not self.is_available():
            return False
        try:
            await self._client.models.list()
            return True
        except openai.APIError:
            return False

    def get_provider_name(self) -> str:
        return self._provider_label

    @staticmethod
    def _is_reasoning(model: str) -> bool:
        entry = _MODEL_CATALOG.get(model)
        return bool(entry and entry[1])
