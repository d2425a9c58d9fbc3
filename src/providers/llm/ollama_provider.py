"""Ollama LLM provider adapter.

Wraps a local Ollama server via its OpenAI-compatible API endpoint, using
the ``openai`` client pointed at the Ollama base URL.  Runs completely
offline with no API costs.

Setup: install Ollama (https://ollama.ai), ``ollama pull llama3.1``, then
set OLLAMA_BASE_URL=http://localhost:11434
"""

from __future__ import annotations

import httpx
import openai
import structlog

from src.config.settings import Settings
from src.interfaces.llm_provider import ILLMProvider
from src.models.embedding import ModelCapability, ModelInfo
from src.utils.errors import LLMError, ProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

# name -> (context length, reasoning capable)
_MODEL_CATALOG: dict[str, tuple[int, bool]] = {
    "llama3.1": (8192, False),
    "llama3.2": (8192, False),
    "qwen2.5": (8192, False),
    "mistral": (8192, False),
    "qwen3": (8192, True),
    "deepseek-r1": (8192, True),
}

_DEFAULT_MODEL = "llama3.1"


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server.

    Ollama speaks the OpenAI protocol on ``/v1``, so the same SDK is reused
    with a different base URL instead of a separate HTTP client.
    """

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",
        )

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
        """Generate a text completion via Ollama's OpenAI-compatible API.

        ``reasoning_effort`` is accepted for interface compatibility; local
        reasoning models decide their own effort.
        """
        model = model or _DEFAULT_MODEL
        try:
            response = await self._client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": user_prompt},
                ],
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"Ollama server unreachable at {self._base_url}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise LLMError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content
        if not content:
            raise LLMError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=model)
        return content

    def list_models(self) -> list[ModelInfo]:
        return [
            ModelInfo(
                name=name,
                provider_name=self.get_provider_name(),
                aliases=(f"{name}:latest",),
                capabilities=frozenset({ModelCapability.COMPLETION}),
                context_length=context_length,
                reasoning_capable=reasoning,
            )
            for name, (context_length, reasoning) in _MODEL_CATALOG.items()
        ]

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama base URL is configured."""
        return bool(self._base_url)

    async def validate_credentials(self) -> bool:
        """Check that the Ollama server is running by listing installed models."""
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    def get_provider_name(self) -> str:
        return "ollama"
