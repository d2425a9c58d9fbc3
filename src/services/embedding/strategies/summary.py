"""Summary strategy: one length-bounded LLM summary per chapter, embedded once.

Chapters at or below ``summary_min_tokens`` are skipped; summarising a
short chapter only restates it.
"""

from __future__ import annotations

import structlog

from src.config.ingestion import IngestionConfig
from src.models.document import EmbeddingKind
from src.models.embedding import EmbeddingContext, EmbeddingRecord, EmbeddingRequest
from src.services.embedding.strategies.base import BaseEmbeddingStrategy
from src.services.embedding.vector_batcher import VectorBatcher
from src.utils.errors import LLMError
from src.utils.text_normalizer import truncate_text
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)

_MAX_INPUT_CHARS = 8000
_MAX_SUMMARY_TOKENS = 2000
_TEMPERATURE = 0.3

_SYSTEM_PROMPT = (
    "You summarise documents. Keep the key facts, names, figures and "
    "conclusions. Write plain prose with no preamble."
)


class SummaryEmbeddingStrategy(BaseEmbeddingStrategy):
    """Summarises a chapter with the context's completion model and embeds it."""

    def __init__(
        self,
        config: IngestionConfig,
        batcher: VectorBatcher,
        estimator: TokenEstimator | None = None,
    ) -> None:
        super().__init__(batcher)
        self._config = config
        self._estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)

    def get_strategy_name(self) -> str:
        return "summary"

    def should_summarize(self, text: str) -> bool:
        return self._estimator.estimate(text) > self._config.summary_min_tokens

    async def generate(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        if not self.should_summarize(request.text):
            logger.info(
                "summary_skipped",
                chapter_id=request.chapter_id,
                tokens=self._estimator.estimate(request.text),
                minimum=self._config.summary_min_tokens,
            )
            return []

        max_length = request.summary_max_length or self._config.summary_max_length
        summary = await self.summarize(
            request.text,
            context,
            max_length=max_length,
            instructions=request.instructions,
        )
        record = EmbeddingRecord(
            kind=EmbeddingKind.SUMMARY,
            text=summary,
            metadata=self.provenance(
                request,
                context,
                completion_model=context.completion_model,
                summary_length=len(summary),
                original_length=len(request.text),
                title=request.title,
            ),
        )
        return await self.attach_vectors([record], context)

    async def summarize(
        self,
        text: str,
        context: EmbeddingContext,
        max_length: int | None = None,
        instructions: str | None = None,
    ) -> str:
        """Return a summary of *text* of at most *max_length* tokens.

        Also used by the orchestrator to shrink texts that exceed the
        embedding model's context budget.
        """
        model, llm = context.require_completion()
        max_length = max_length or self._config.summary_max_length
        user_prompt = f"Summarise the text below in at most {max_length} tokens.\n"
        if instructions:
            user_prompt += f"\nAdditional instructions: {instructions}\n"
        user_prompt += f"\nText:\n{truncate_text(text, _MAX_INPUT_CHARS)}"

        summary = await llm.complete(
            system_prompt=_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=_TEMPERATURE,
            max_tokens=min(max_length, _MAX_SUMMARY_TOKENS),
            model=model,
            reasoning_effort="medium" if context.completion_reasoning_capable else None,
        )
        summary = summary.strip()
        if not summary:
            raise LLMError(message="Completion model returned an empty summary")
        return summary
