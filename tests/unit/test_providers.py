"""Unit tests for the OpenAI-compatible and Ollama provider adapters.

The ``openai`` SDK client is replaced with mocks; no network access.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import openai
import pytest

from src.config.settings import Settings
from src.models.embedding import EmbeddingOperation, EmbeddingParams, ModelCapability
from src.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from src.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from src.providers.embedding.prefixes import apply_task_prefix, task_prefix
from src.providers.llm.ollama_provider import OllamaLLMProvider
from src.providers.llm.openai_provider import OpenAILLMProvider
from src.utils.errors import (
    EmbeddingError,
    LLMError,
    ProviderUnavailableError,
    RateLimitError,
)

_REQUEST = httpx.Request("POST", "https://api.example.test/v1/embeddings")


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "openai_completion_model": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def _embedding_response(*vectors: list[float]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=10)
    return response


def _completion_response(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(total_tokens=20)
    return response


# ======================================================================
# Task prefixes
# ======================================================================


class TestTaskPrefixes:
    @pytest.mark.parametrize(
        ("model", "operation", "expected"),
        [
            ("nomic-embed-text", EmbeddingOperation.QUERY, "search_query: "),
            ("nomic-embed-text", EmbeddingOperation.INDEX, "search_document: "),
            ("intfloat/multilingual-e5-large-instruct", EmbeddingOperation.QUERY, "query: "),
            ("intfloat/multilingual-e5-large-instruct", EmbeddingOperation.INDEX, "passage: "),
            ("BAAI/bge-base-en-v1.5", EmbeddingOperation.INDEX, ""),
            ("text-embedding-3-small", EmbeddingOperation.QUERY, ""),
        ],
    )
    def test_task_prefix(self, model: str, operation: EmbeddingOperation, expected: str) -> None:
        assert task_prefix(model, operation) == expected

    def test_bge_query_instruction(self) -> None:
        prefix = task_prefix("BAAI/bge-large-en-v1.5", EmbeddingOperation.QUERY)
        assert prefix.startswith("Represent this sentence")

    def test_apply_task_prefix_copies_symmetric_input(self) -> None:
        texts = ["a", "b"]
        result = apply_task_prefix(texts, "text-embedding-3-small", EmbeddingOperation.INDEX)
        assert result == texts
        assert result is not texts


# ======================================================================
# OpenAIEmbeddingProvider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embed_forwards_dimensions_for_adjustable_model(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1, 0.2]))
            provider = OpenAIEmbeddingProvider(settings=_settings())

            params = EmbeddingParams(model="text-embedding-3-small", dimensions=256)
            vectors = await provider.embed(["hello"], params)

        assert vectors == [[0.1, 0.2]]
        kwargs = client.embeddings.create.call_args.kwargs
        assert kwargs["model"] == "text-embedding-3-small"
        assert kwargs["input"] == ["hello"]
        assert kwargs["dimensions"] == 256

    @pytest.mark.asyncio
    async def test_dimensions_not_sent_to_fixed_model(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1]))
            provider = OpenAIEmbeddingProvider(settings=_settings())

            params = EmbeddingParams(model="text-embedding-ada-002", dimensions=256)
            await provider.embed(["hello"], params)

        assert "dimensions" not in client.embeddings.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_query_prefix_applied(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1]))
            provider = OpenAIEmbeddingProvider(settings=_settings())

            params = EmbeddingParams(
                model="intfloat/multilingual-e5-large-instruct",
                operation=EmbeddingOperation.QUERY,
            )
            await provider.embed(["rivers"], params)

        assert client.embeddings.create.call_args.kwargs["input"] == ["query: rivers"]

    @pytest.mark.asyncio
    async def test_empty_input_skips_call(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock()
            provider = OpenAIEmbeddingProvider(settings=_settings())
            assert await provider.embed([]) == []
        client.embeddings.create.assert_not_called()

    @pytest.mark.parametrize(
        ("sdk_error", "expected"),
        [
            (
                openai.RateLimitError(
                    "slow down", response=httpx.Response(429, request=_REQUEST), body=None
                ),
                RateLimitError,
            ),
            (openai.APIConnectionError(request=_REQUEST), ProviderUnavailableError),
            (openai.APIError("bad request", request=_REQUEST, body=None), EmbeddingError),
        ],
    )
    @pytest.mark.asyncio
    async def test_sdk_errors_mapped(self, sdk_error: Exception, expected: type) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(side_effect=sdk_error)
            provider = OpenAIEmbeddingProvider(settings=_settings())

            with pytest.raises(expected) as exc_info:
                await provider.embed(["hello"])

        assert exc_info.value.provider_name == "openai_embedding"

    def test_catalog_and_labels(self) -> None:
        with patch("openai.AsyncOpenAI"):
            provider = OpenAIEmbeddingProvider(
                settings=_settings(
                    openai_base_url="https://api.together.xyz/v1",
                    openai_embedding_model="custom/embedder",
                )
            )

        models = {m.name: m for m in provider.list_models()}
        assert provider.get_provider_name() == "openai-compatible_embedding"
        assert models["text-embedding-3-large"].dimension_adjustable is True
        assert models["text-embedding-ada-002"].dimension_adjustable is False
        assert models["custom/embedder"].embedding_dimension == 768
        assert all(m.supports_embedding for m in models.values())

    def test_availability_follows_api_key(self) -> None:
        with patch("openai.AsyncOpenAI"):
            assert OpenAIEmbeddingProvider(settings=_settings()).is_available() is True
            assert (
                OpenAIEmbeddingProvider(settings=_settings(openai_api_key="")).is_available()
                is False
            )


# ======================================================================
# OllamaEmbeddingProvider
# ======================================================================


class TestOllamaEmbeddingProvider:
    @pytest.mark.asyncio
    async def test_embed_uses_v1_endpoint_and_prefix(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(return_value=_embedding_response([1.0]))
            provider = OllamaEmbeddingProvider(
                settings=_settings(ollama_base_url="http://ollama:11434/")
            )

            await provider.embed(["doc"], EmbeddingParams(model="nomic-embed-text"))

        assert client_cls.call_args.kwargs["base_url"] == "http://ollama:11434/v1"
        assert client.embeddings.create.call_args.kwargs["input"] == ["search_document: doc"]

    @pytest.mark.asyncio
    async def test_connection_error_mapped(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.embeddings.create = AsyncMock(
                side_effect=openai.APIConnectionError(request=_REQUEST)
            )
            provider = OllamaEmbeddingProvider(settings=_settings())

            with pytest.raises(ProviderUnavailableError, match="unreachable"):
                await provider.embed(["doc"])

    def test_models_have_latest_alias(self) -> None:
        with patch("openai.AsyncOpenAI"):
            provider = OllamaEmbeddingProvider(settings=_settings())
        models = {m.name: m for m in provider.list_models()}
        assert models["nomic-embed-text"].aliases == ("nomic-embed-text:latest",)
        assert models["nomic-embed-text"].embedding_dimension == 768


# ======================================================================
# LLM providers
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.mark.asyncio
    async def test_standard_model_gets_temperature(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.chat.completions.create = AsyncMock(return_value=_completion_response("Hi"))
            provider = OpenAILLMProvider(settings=_settings())

            result = await provider.complete("sys", "user", temperature=0.2, max_tokens=50)

        assert result == "Hi"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.2
        assert kwargs["max_tokens"] == 50

    @pytest.mark.asyncio
    async def test_reasoning_model_gets_completion_tokens(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.chat.completions.create = AsyncMock(return_value=_completion_response("Hi"))
            provider = OpenAILLMProvider(settings=_settings())

            await provider.complete(
                "sys", "user", max_tokens=50, model="o3-mini", reasoning_effort="medium"
            )

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["max_completion_tokens"] == 50
        assert kwargs["reasoning_effort"] == "medium"
        assert "temperature" not in kwargs

    @pytest.mark.asyncio
    async def test_empty_content_raises(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.chat.completions.create = AsyncMock(return_value=_completion_response(None))
            provider = OpenAILLMProvider(settings=_settings())

            with pytest.raises(LLMError, match="empty response"):
                await provider.complete("sys", "user")

    def test_models_are_completion_capable(self) -> None:
        with patch("openai.AsyncOpenAI"):
            provider = OpenAILLMProvider(settings=_settings())
        models = {m.name: m for m in provider.list_models()}
        assert models["o4-mini"].reasoning_capable is True
        assert all(ModelCapability.COMPLETION in m.capabilities for m in models.values())
        assert not any(m.supports_embedding for m in models.values())


class TestOllamaLLMProvider:
    @pytest.mark.asyncio
    async def test_api_error_mapped(self) -> None:
        with patch("openai.AsyncOpenAI") as client_cls:
            client = client_cls.return_value
            client.chat.completions.create = AsyncMock(
                side_effect=openai.APIError("model missing", request=_REQUEST, body=None)
            )
            provider = OllamaLLMProvider(settings=_settings())

            with pytest.raises(LLMError) as exc_info:
                await provider.complete("sys", "user", model="qwen3")

        assert exc_info.value.provider_name == provider.get_provider_name()

    def test_reasoning_flags(self) -> None:
        with patch("openai.AsyncOpenAI"):
            provider = OllamaLLMProvider(settings=_settings())
        models = {m.name: m for m in provider.list_models()}
        assert models["qwen3"].reasoning_capable is True
        assert models["llama3.1"].reasoning_capable is False
