"""Unit tests for the concurrency, text normalization and logging helpers."""

from __future__ import annotations

import asyncio

import pytest
import structlog

from src.utils.concurrency import throttled_gather
from src.utils.errors import ConfigurationError, EmbeddingError, ModelNotFoundError
from src.utils.logging import bind_document_context
from src.utils.text_normalizer import (
    compute_checksum,
    normalize_for_checksum,
    paragraph_spans,
    truncate_text,
)


# ======================================================================
# throttled_gather
# ======================================================================


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_limits_concurrency_and_keeps_order(self) -> None:
        running = 0
        peak = 0

        async def job(value: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return value * 2

        results = await throttled_gather([job(i) for i in range(6)], asyncio.Semaphore(2))

        assert results == [0, 2, 4, 6, 8, 10]
        assert peak == 2

    @pytest.mark.asyncio
    async def test_exceptions_returned_in_place(self) -> None:
        async def fail() -> int:
            raise RuntimeError("boom")

        async def succeed() -> int:
            return 1

        results = await throttled_gather([succeed(), fail()], asyncio.Semaphore(1))

        assert results[0] == 1
        assert isinstance(results[1], RuntimeError)

    @pytest.mark.asyncio
    async def test_exceptions_raised_when_requested(self) -> None:
        async def fail() -> int:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await throttled_gather([fail()], asyncio.Semaphore(1), return_exceptions=False)


# ======================================================================
# text_normalizer
# ======================================================================


class TestTextNormalizer:
    def test_checksum_ignores_case_and_wrapping(self) -> None:
        assert compute_checksum("Hello   World\n") == compute_checksum("hello world")
        assert compute_checksum("hello world") != compute_checksum("hello, world")

    def test_normalize_empty(self) -> None:
        assert normalize_for_checksum(None) == ""
        assert normalize_for_checksum("  A\tB  ") == "a b"

    def test_paragraph_spans_are_trimmed_offsets(self) -> None:
        text = "  First para.\n\n\n Second para. \n  \nThird."
        spans = paragraph_spans(text)
        assert [text[s:e] for s, e in spans] == ["First para.", "Second para.", "Third."]

    def test_paragraph_spans_of_blank_text(self) -> None:
        assert paragraph_spans("   \n\n  ") == []

    def test_truncate_text(self) -> None:
        assert truncate_text("short", 10) == "short"
        assert truncate_text("abcdefghij", 4) == "abcd..."


# ======================================================================
# errors and logging context
# ======================================================================


class TestErrors:
    def test_str_includes_provider(self) -> None:
        error = EmbeddingError(message="timeout", provider_name="ollama_embedding")
        assert str(error) == "[ollama_embedding] timeout"
        assert error.message == "timeout"

    def test_model_not_found_is_configuration_error(self) -> None:
        assert issubclass(ModelNotFoundError, ConfigurationError)


class TestBindDocumentContext:
    def test_binds_and_restores(self) -> None:
        structlog.contextvars.clear_contextvars()
        with bind_document_context("doc-1", library_id="lib-1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"document_id": "doc-1", "library_id": "lib-1"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_restores_on_error(self) -> None:
        structlog.contextvars.clear_contextvars()
        with pytest.raises(ValueError), bind_document_context("doc-2"):
            raise ValueError("inside")
        assert "document_id" not in structlog.contextvars.get_contextvars()
