"""One attempt at processing a document: phase 1 (chapters + vectors) and phase 2.

Phase 1 is resumable.  Chapters and their chunk records are persisted with
null vectors before any embedding call is made; vectors are then computed
in batches and written back one by one.  When a later attempt finds the
document's chapters already stored it skips splitting and only computes
the vectors that are still missing, so retries never duplicate records.
Chapters carry the checksum of the body they were split from; a stored
split of a different body is discarded and the document split afresh.

Phase 2 (enrichment) adds Q&A and summary records per chapter.  Its
failures are collected into an :class:`EnrichmentResult` and never touch
phase-1 output.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass

import structlog

from src.config.ingestion import IngestionConfig
from src.interfaces.document_repository import IDocumentRepository
from src.models.document import Chapter, Chunk, Document, EmbeddingKind
from src.models.embedding import EmbeddingContext, EmbeddingRecord, EmbeddingRequest
from src.models.processing import EnrichmentOptions, EnrichmentResult, ProcessingOptions
from src.pipeline.status_tracker import ProcessingStatusTracker
from src.services.embedding.strategies.chapter import ChapterEmbeddingStrategy
from src.services.embedding.strategies.registry import StrategyRegistry
from src.services.embedding.strategies.summary import SummaryEmbeddingStrategy
from src.services.embedding.vector_batcher import VectorBatcher
from src.services.ingestion.router import DocumentRouter
from src.utils.errors import (
    ConfigurationError,
    DocEmbedError,
    PersistenceError,
    SplitterError,
)
from src.utils.token_estimator import TokenEstimator

logger = structlog.get_logger(logger_name=__name__)

# Record kinds written by phase 1; everything else belongs to enrichment.
PHASE_ONE_KINDS = frozenset(
    {EmbeddingKind.CHAPTER, EmbeddingKind.CHUNK, EmbeddingKind.METADATA}
)

# Progress bands reported to the status tracker.
_PROGRESS_SPLIT = 10.0
_PROGRESS_PERSISTED = 30.0
_PROGRESS_VECTORS_DONE = 90.0
_PROGRESS_ENRICHED = 99.0


@dataclass
class PhaseOneOutcome:
    """Counts produced by one phase-1 pass."""

    chapters_count: int = 0
    embeddings_count: int = 0
    embeddings_processed: int = 0
    embeddings_failed: int = 0
    total_characters: int = 0
    resumed: bool = False


def _body_changed(document: Document, chapters: list[Chapter]) -> bool:
    """True when stored chapters were split from a different body."""
    stamps = {chapter.metadata.get("document_checksum") for chapter in chapters}
    stamps.discard(None)
    return bool(stamps) and stamps != {document.checksum}


class DocumentProcessor:
    """Runs the two processing phases for one document and one context."""

    def __init__(
        self,
        repository: IDocumentRepository,
        router: DocumentRouter,
        strategies: StrategyRegistry,
        config: IngestionConfig,
        tracker: ProcessingStatusTracker | None = None,
        estimator: TokenEstimator | None = None,
    ) -> None:
        self._repository = repository
        self._router = router
        self._strategies = strategies
        self._config = config
        self._tracker = tracker
        self._estimator = estimator or TokenEstimator(chars_per_token=config.chars_per_token)
        self._batcher = VectorBatcher(config, self._estimator)

    # ------------------------------------------------------------------
    # Phase 1
    # ------------------------------------------------------------------

    async def run_phase_one(
        self,
        document: Document,
        context: EmbeddingContext,
        options: ProcessingOptions,
        overwrite: bool | None = None,
    ) -> PhaseOneOutcome:
        """Split, persist and embed *document*.

        Parameters
        ----------
        overwrite:
            Delete existing chapters first.  Defaults to ``options.overwrite``.

        Raises
        ------
        SplitterError
            If the document cannot be split or yields no chapters.
        """
        overwrite = options.overwrite if overwrite is None else overwrite
        existing = await self._repository.count_chapters(document.id)
        stored: list[Chapter] = []
        if existing and not overwrite:
            stored = await self._repository.get_chapters(document.id)
            if _body_changed(document, stored):
                logger.info(
                    "document_changed", chapters=len(stored), checksum=document.checksum
                )
                overwrite = True
        if existing and overwrite:
            deleted = await self._repository.delete_chapters(document.id)
            logger.info("existing_chapters_deleted", chapters=deleted)
            existing = 0

        if existing:
            chapters = stored
            await self._plan_missing(document, chapters, context, options)
            logger.info("processing_resumed", chapters=len(chapters))
        else:
            chapters = await self._split(document, options)
            await self._repository.save_chapters(chapters)
            await self._plan_missing(document, chapters, context, options)
        await self._progress(document.id, _PROGRESS_PERSISTED, "Chapters persisted")

        pending = [
            chunk
            for chunk in await self._repository.get_chunks(document.id, PHASE_ONE_KINDS)
            if chunk.vector is None
        ]
        processed, failed = await self._compute_vectors(document, pending, context)

        return PhaseOneOutcome(
            chapters_count=len(chapters),
            embeddings_count=await self._repository.count_chunks(document.id),
            embeddings_processed=processed,
            embeddings_failed=failed,
            total_characters=sum(len(c.text) for c in chapters),
            resumed=bool(existing),
        )

    async def _split(self, document: Document, options: ProcessingOptions) -> list[Chapter]:
        splitter = self._router.route(document, options.content_type_hint)
        chapters = splitter.split(document)
        if not chapters:
            raise SplitterError(message=f"No chapters produced for '{document.title}'")
        chapters = [
            chapter.model_copy(
                update={"metadata": {**chapter.metadata, "document_checksum": document.checksum}}
            )
            for chapter in chapters
        ]
        await self._progress(
            document.id, _PROGRESS_SPLIT, f"Split into {len(chapters)} chapters"
        )
        return chapters

    async def _plan_missing(
        self,
        document: Document,
        chapters: list[Chapter],
        context: EmbeddingContext,
        options: ProcessingOptions,
    ) -> None:
        """Persist chapter records (vector-less) for chapters that have none yet."""
        planned = {
            chunk.chapter_id
            for chunk in await self._repository.get_chunks(document.id, PHASE_ONE_KINDS)
        }
        strategy = self._strategies.get("chapter")
        if not isinstance(strategy, ChapterEmbeddingStrategy):
            raise ConfigurationError(
                message="The 'chapter' strategy must be a ChapterEmbeddingStrategy"
            )

        chunks: list[Chunk] = []
        for chapter in chapters:
            if chapter.id in planned:
                continue
            request = EmbeddingRequest(
                text=chapter.text,
                title=chapter.title,
                library_id=document.library_id,
                document_id=document.id,
                chapter_id=chapter.id,
                metadata=chapter.metadata,
                mode=options.chapter_mode,
            )
            records = strategy.plan(request, context)
            chunks.extend(self._to_chunk(r, chapter, document, r.ordinal) for r in records)
        await self._repository.save_chunks(chunks)

    async def _compute_vectors(
        self,
        document: Document,
        pending: list[Chunk],
        context: EmbeddingContext,
    ) -> tuple[int, int]:
        """Embed *pending* chunks in batches; returns ``(processed, failed)``."""
        if not pending:
            await self._progress(document.id, _PROGRESS_VECTORS_DONE, "No vectors to compute")
            return 0, 0

        texts = [await self._embedding_input(chunk, context) for chunk in pending]
        batches = self._batcher.plan_batches(texts, context.token_budget)

        processed = failed = done = 0
        for batch in batches:
            vectors = await self._batcher.embed_batch([texts[i] for i in batch], context)
            for index, vector in zip(batch, vectors):
                try:
                    await self._repository.update_vector(pending[index].id, vector)
                    processed += 1
                except PersistenceError as exc:
                    failed += 1
                    logger.warning(
                        "vector_write_failed",
                        chunk_id=pending[index].id,
                        error=str(exc),
                    )
            done += len(batch)
            span = _PROGRESS_VECTORS_DONE - _PROGRESS_PERSISTED
            await self._progress(
                document.id,
                _PROGRESS_PERSISTED + span * done / len(pending),
                f"Embedded {done}/{len(pending)} records",
            )

        logger.info(
            "embedding_batch_complete",
            records=len(pending),
            calls=len(batches),
            processed=processed,
            failed=failed,
        )
        return processed, failed

    async def _embedding_input(self, chunk: Chunk, context: EmbeddingContext) -> str:
        """Return the text to embed, shrinking it when it overflows the budget.

        Texts within ``oversize_tolerance`` of the budget pass unchanged.
        Larger ones are summarised when a completion model is available and
        truncated otherwise; the chunk's metadata records which.
        """
        budget = context.token_budget
        tokens = self._estimator.estimate(chunk.text)
        if tokens <= budget * (1 + self._config.oversize_tolerance):
            return chunk.text

        method = "truncate"
        text = chunk.text[: self._estimator.max_chars_for(budget)]
        if context.has_completion:
            summarizer = self._strategies.get("summary")
            if isinstance(summarizer, SummaryEmbeddingStrategy):
                try:
                    text = await summarizer.summarize(
                        chunk.text, context, max_length=max(100, budget // 2)
                    )
                    method = "summarize"
                except DocEmbedError as exc:
                    logger.warning(
                        "oversize_summary_failed", chunk_id=chunk.id, error=str(exc)
                    )

        logger.info(
            "oversized_text_handled",
            chunk_id=chunk.id,
            tokens=tokens,
            budget=budget,
            method=method,
        )
        metadata = {**chunk.metadata, "oversized_handled": True, "oversize_method": method}
        await self._repository.save_chunks([chunk.model_copy(update={"metadata": metadata})])
        return text

    # ------------------------------------------------------------------
    # Phase 2
    # ------------------------------------------------------------------

    async def run_phase_two(
        self,
        document: Document,
        context: EmbeddingContext,
        options: EnrichmentOptions,
    ) -> EnrichmentResult:
        """Generate Q&A and/or summary records for every eligible chapter.

        Chapter failures are counted, never raised.  Kinds a chapter already
        has are left alone unless ``options.overwrite`` is set.
        """
        options.validate_selection()
        chapters = await self._repository.get_chapters(document.id)

        kinds: list[EmbeddingKind] = []
        if options.generate_qa:
            kinds.append(EmbeddingKind.QA_PAIR)
        if options.generate_summary:
            kinds.append(EmbeddingKind.SUMMARY)
        if options.overwrite:
            await self._repository.delete_chunks(document.id, kinds)

        present: dict[str, set[EmbeddingKind]] = defaultdict(set)
        next_ordinal: dict[str, int] = defaultdict(int)
        for chunk in await self._repository.get_chunks(document.id):
            present[chunk.chapter_id].add(chunk.kind)
            next_ordinal[chunk.chapter_id] = max(next_ordinal[chunk.chapter_id], chunk.ordinal + 1)

        qa = self._strategies.get("qa")
        summary = self._strategies.get("summary")
        processed = qa_count = summary_count = skipped = failures = 0
        errors: list[str] = []

        for position, chapter in enumerate(chapters, start=1):
            if not chapter.text.strip():
                skipped += 1
                continue
            request = EmbeddingRequest(
                text=chapter.text,
                title=chapter.title,
                library_id=document.library_id,
                document_id=document.id,
                chapter_id=chapter.id,
                metadata=chapter.metadata,
                qa_pairs=options.qa_pairs,
                summary_max_length=options.summary_max_length,
                instructions=options.summary_instructions,
            )
            try:
                records: list[EmbeddingRecord] = []
                if options.generate_qa and EmbeddingKind.QA_PAIR not in present[chapter.id]:
                    qa_records = await qa.generate(request, context)
                    qa_count += len(qa_records)
                    records.extend(qa_records)
                if options.generate_summary and EmbeddingKind.SUMMARY not in present[chapter.id]:
                    summary_records = await summary.generate(request, context)
                    if not summary_records:
                        skipped += 1
                    summary_count += len(summary_records)
                    records.extend(summary_records)

                base = next_ordinal[chapter.id]
                await self._repository.save_chunks(
                    [
                        self._to_chunk(record, chapter, document, base + offset)
                        for offset, record in enumerate(records)
                    ]
                )
                next_ordinal[chapter.id] = base + len(records)
                processed += 1
            except Exception as exc:
                failures += 1
                errors.append(f"{chapter.title}: {exc}")
                logger.warning(
                    "enrichment_chapter_failed",
                    chapter_id=chapter.id,
                    chapter=chapter.title,
                    error=str(exc),
                )
                if not options.continue_on_error:
                    break

            span = _PROGRESS_ENRICHED - _PROGRESS_VECTORS_DONE
            await self._progress(
                document.id,
                _PROGRESS_VECTORS_DONE + span * position / len(chapters),
                f"Enriched {position}/{len(chapters)} chapters",
            )

        result = EnrichmentResult(
            chapters_processed=processed,
            qa_embeddings=qa_count,
            summary_embeddings=summary_count,
            chapters_skipped=skipped,
            failures=failures,
            errors=errors,
        )
        logger.info(
            "enrichment_complete",
            chapters_processed=processed,
            qa_embeddings=qa_count,
            summary_embeddings=summary_count,
            failures=failures,
            partial=result.partial,
        )
        return result

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _to_chunk(
        record: EmbeddingRecord, chapter: Chapter, document: Document, ordinal: int
    ) -> Chunk:
        return Chunk(
            chapter_id=chapter.id,
            document_id=document.id,
            library_id=document.library_id,
            kind=record.kind,
            text=record.text,
            ordinal=ordinal,
            vector=record.vector,
            metadata=record.metadata,
        )

    async def _progress(self, document_id: str, progress: float, message: str) -> None:
        if self._tracker is not None and self._tracker.is_processing(document_id):
            await self._tracker.update_progress(document_id, progress, message)
