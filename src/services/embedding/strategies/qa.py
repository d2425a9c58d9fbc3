"""Question/answer synthesis strategy.

Asks the context's completion model for N question/answer pairs about a
chapter and embeds each pair as ``"Question: ...\\nAnswer: ..."``.  Getting
fewer pairs than requested is logged and accepted.
"""

from __future__ import annotations

import re

import structlog

from src.config.ingestion import IngestionConfig
from src.models.document import EmbeddingKind
from src.models.embedding import EmbeddingContext, EmbeddingRecord, EmbeddingRequest
from src.services.embedding.strategies.base import BaseEmbeddingStrategy
from src.services.embedding.vector_batcher import VectorBatcher
from src.utils.text_normalizer import truncate_text

logger = structlog.get_logger(logger_name=__name__)

_MAX_INPUT_CHARS = 6000
_TOKENS_PER_PAIR = 340
_TEMPERATURE = 0.4

# "Q:", "Question 2:", "1. Q:", "**Q:**"
_QUESTION_RE = re.compile(
    r"^\s*(?:\d+[.)]\s*)?\**\s*(?:Q|Question|Pergunta)\s*\d*\s*\**\s*:\s*\**\s*(.*)$",
    re.IGNORECASE,
)
_ANSWER_RE = re.compile(
    r"^\s*\**\s*(?:A|Answer|Resposta)\s*\d*\s*\**\s*:\s*\**\s*(.*)$",
    re.IGNORECASE,
)

_SYSTEM_PROMPT = (
    "You write question and answer pairs that a reader could answer from the "
    "given text alone. Each answer must be factual and self-contained.\n"
    "Use exactly this format, with a blank line between pairs:\n"
    "Q: <question>\n"
    "A: <answer>"
)


def parse_qa_pairs(response: str) -> list[tuple[str, str]]:
    """Parse ``Q:``/``A:`` pairs from an LLM response.

    A ``Q:`` line opens a pair, an ``A:`` line opens its answer and every
    following line (blank lines included) extends that answer until the
    next question.  Pairs missing a question marker or with an empty
    answer are dropped.
    """
    pairs: list[tuple[str, str]] = []
    question: list[str] | None = None
    answer: list[str] | None = None

    def flush() -> None:
        if question is None or answer is None:
            return
        q = " ".join(part for part in question if part).strip()
        a = "\n".join(answer).strip()
        if q and a:
            pairs.append((q, a))

    for line in response.splitlines():
        q_match = _QUESTION_RE.match(line)
        if q_match:
            flush()
            question, answer = [q_match.group(1).strip()], None
            continue
        if question is None:
            continue
        a_match = _ANSWER_RE.match(line) if answer is None else None
        if a_match:
            answer = [a_match.group(1).strip()]
        elif answer is not None:
            answer.append(line.strip())
        elif line.strip():
            question.append(line.strip())
    flush()
    return pairs


class QAEmbeddingStrategy(BaseEmbeddingStrategy):
    """Synthesises and embeds question/answer pairs for a chapter."""

    def __init__(self, config: IngestionConfig, batcher: VectorBatcher) -> None:
        super().__init__(batcher)
        self._config = config

    def get_strategy_name(self) -> str:
        return "qa"

    async def generate(
        self, request: EmbeddingRequest, context: EmbeddingContext
    ) -> list[EmbeddingRecord]:
        if not request.text.strip():
            return []
        completion_model, _ = context.require_completion()
        wanted = request.qa_pairs or self._config.qa_pairs
        pairs = await self.generate_pairs(request, context, wanted)

        records = [
            EmbeddingRecord(
                kind=EmbeddingKind.QA_PAIR,
                text=f"Question: {question}\nAnswer: {answer}",
                ordinal=index,
                metadata=self.provenance(
                    request,
                    context,
                    completion_model=completion_model,
                    question=question,
                    answer=answer,
                    qa_pair_id=index + 1,
                    total_qa_pairs=len(pairs),
                    title=request.title,
                ),
            )
            for index, (question, answer) in enumerate(pairs)
        ]
        return await self.attach_vectors(records, context)

    async def generate_pairs(
        self, request: EmbeddingRequest, context: EmbeddingContext, wanted: int
    ) -> list[tuple[str, str]]:
        """Ask the completion model for *wanted* pairs and parse them."""
        model, llm = context.require_completion()
        user_prompt = (
            f"Generate exactly {wanted} question and answer pairs about the text below.\n"
        )
        if request.instructions:
            user_prompt += f"\nAdditional instructions: {request.instructions}\n"
        if request.title:
            user_prompt += f"\nTitle: {request.title}\n"
        user_prompt += f"\nText:\n{truncate_text(request.text, _MAX_INPUT_CHARS)}"

        response = await llm.complete(
            system_prompt=_SYSTEM_PROMPT,
            user_prompt=user_prompt,
            temperature=_TEMPERATURE,
            max_tokens=wanted * _TOKENS_PER_PAIR,
            model=model,
            reasoning_effort="medium" if context.completion_reasoning_capable else None,
        )
        pairs = parse_qa_pairs(response)[:wanted]
        if len(pairs) < wanted:
            logger.warning(
                "qa_pairs_shortfall",
                chapter_id=request.chapter_id,
                requested=wanted,
                received=len(pairs),
            )
        return pairs
