"""Central orchestrator for the document-to-embeddings pipeline.

Drives one document through the two processing phases and reports through
the injected :class:`ProcessingStatusTracker`.

    process_document()                  → resolve context, then attempt
        └─ attempt (DocumentProcessor)  → phase 1, optional phase 2
           └─ on failure                → wait retry_delay_seconds, attempt again

The whole run is the retry unit: individual provider calls are never
retried on their own.  Configuration errors fail before the first attempt
and are never retried.  Because phase 1 persists chapters before any
embedding call, a retried attempt resumes where the failed one stopped.

The retry wait is an ``asyncio.sleep``: it holds no lock, and cancelling
the task interrupts it immediately.  Cancellation never rolls back what
phase 1 already persisted.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from src.config.ingestion import IngestionConfig
from src.interfaces.document_repository import IDocumentRepository
from src.models.document import Document
from src.models.embedding import EmbeddingContext, EmbeddingRecord, EmbeddingRequest
from src.models.library import Library
from src.models.processing import (
    EnrichmentOptions,
    EnrichmentResult,
    ProcessingOptions,
    ProcessingResult,
    ProcessingStats,
    ProcessingStatus,
)
from src.pipeline.document_processor import DocumentProcessor
from src.pipeline.status_tracker import ProcessingStatusTracker
from src.services.embedding.context_resolver import ContextOverrides, EmbeddingContextResolver
from src.services.embedding.strategies.registry import StrategyRegistry
from src.utils.concurrency import throttled_gather
from src.utils.errors import ConfigurationError, PipelineError
from src.utils.logging import bind_document_context, get_logger

_CANCELLED_MESSAGE = "Processing cancelled"


class EmbeddingOrchestrator:
    """Sequences splitting, embedding and enrichment with whole-run retry.

    Parameters
    ----------
    resolver:
        Builds the per-run :class:`EmbeddingContext` from library config.
    processor:
        Executes one attempt of phase 1 and phase 2.
    repository:
        Used directly for existing-count queries and deletions.
    strategies:
        Strategy lookup table; the ``query`` strategy serves
        :meth:`embed_query`.
    tracker:
        Status tracker updated on every transition.
    config:
        Retry count, retry delay and concurrency limit.
    """

    def __init__(
        self,
        resolver: EmbeddingContextResolver,
        processor: DocumentProcessor,
        repository: IDocumentRepository,
        strategies: StrategyRegistry,
        tracker: ProcessingStatusTracker,
        config: IngestionConfig,
    ) -> None:
        self._resolver = resolver
        self._processor = processor
        self._repository = repository
        self._strategies = strategies
        self._tracker = tracker
        self._config = config
        self._tasks: dict[str, asyncio.Task[ProcessingResult]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_document(
        self,
        document: Document,
        library: Library,
        options: ProcessingOptions | None = None,
    ) -> ProcessingResult:
        """Process *document* with up to ``max_retries`` additional attempts.

        Raises
        ------
        ConfigurationError
            Immediately, without retrying, when the run cannot be configured.
        PipelineError
            After the final attempt fails, chained from the last error.
        """
        return await self._run(document, library, options, self._config.max_retries)

    async def process_document_without_retry(
        self,
        document: Document,
        library: Library,
        options: ProcessingOptions | None = None,
    ) -> ProcessingResult:
        """Single attempt for callers with their own retry policy.

        The attempt's own exception propagates unchanged.
        """
        return await self._run(document, library, options, max_retries=None)

    def process_document_sync(
        self,
        document: Document,
        library: Library,
        options: ProcessingOptions | None = None,
    ) -> ProcessingResult:
        """Blocking wrapper around :meth:`process_document`.

        Must be called from a thread without a running event loop.
        """
        return asyncio.run(self.process_document(document, library, options))

    def submit(
        self,
        document: Document,
        library: Library,
        options: ProcessingOptions | None = None,
    ) -> asyncio.Task[ProcessingResult]:
        """Start processing in the background and return the task.

        Cancel the task (or call :meth:`cancel`) to stop issuing provider
        calls; persisted phase-1 results are kept.
        """
        task = asyncio.create_task(
            self.process_document(document, library, options),
            name=f"process-{document.id}",
        )
        self._tasks[document.id] = task
        task.add_done_callback(lambda _: self._tasks.pop(document.id, None))
        return task

    def cancel(self, document_id: str) -> bool:
        """Cancel the background task of *document_id*; ``True`` if one was running."""
        task = self._tasks.get(document_id)
        if task is None or task.done():
            return False
        return task.cancel()

    async def process_with_timeout(
        self,
        document: Document,
        library: Library,
        options: ProcessingOptions | None = None,
        timeout: float = 3600.0,
    ) -> ProcessingResult:
        """Like :meth:`process_document` but cancelled after *timeout* seconds.

        Raises
        ------
        asyncio.TimeoutError
            When the run (including retry waits) exceeds *timeout*.
        """
        return await asyncio.wait_for(
            self.process_document(document, library, options), timeout=timeout
        )

    async def process_many(
        self,
        items: list[tuple[Document, Library, ProcessingOptions | None]],
    ) -> list[ProcessingResult]:
        """Process several documents concurrently, ``max_concurrent_documents`` at a time.

        A failed document yields a result with ``success=False`` instead of
        aborting the others.
        """
        semaphore = asyncio.Semaphore(self._config.max_concurrent_documents)
        outcomes = await throttled_gather(
            [self.process_document(doc, lib, opts) for doc, lib, opts in items],
            semaphore=semaphore,
        )
        results: list[ProcessingResult] = []
        for (document, _, _), outcome in zip(items, outcomes):
            if isinstance(outcome, ProcessingResult):
                results.append(outcome)
            elif isinstance(outcome, Exception):
                results.append(
                    ProcessingResult(
                        document_id=document.id,
                        success=False,
                        error_message=str(outcome),
                    )
                )
            else:
                raise outcome
        return results

    async def enrich_document(
        self,
        document: Document,
        library: Library,
        options: EnrichmentOptions | None = None,
    ) -> EnrichmentResult:
        """Run phase 2 alone for a document whose phase 1 is stored.

        Raises
        ------
        ConfigurationError
            If no enrichment kind is selected or no completion model resolves.
        PipelineError
            If the document has no chapters yet.
        """
        options = options or EnrichmentOptions.defaults()
        options.validate_selection()
        with bind_document_context(document.id):
            context = self._resolver.resolve(
                library, ContextOverrides(completion_model=options.completion_model)
            )
            context.require_completion()
            if await self._repository.count_chapters(document.id) == 0:
                raise PipelineError(
                    message=f"Document '{document.title}' has no chapters. "
                    "Run phase 1 processing first"
                )
            return await self._processor.run_phase_two(document, context, options)

    async def embed_query(
        self,
        text: str,
        library: Library,
        overrides: ContextOverrides | None = None,
    ) -> EmbeddingRecord:
        """Embed a free-text search query with the library's embedding model."""
        context = self._resolver.resolve(library, overrides)
        records = await self._strategies.get("query").generate(
            EmbeddingRequest(text=text, library_id=library.id), context
        )
        return records[0]

    # ------------------------------------------------------------------
    # Existing data
    # ------------------------------------------------------------------

    async def get_existing_counts(self, document_id: str) -> dict[str, int]:
        """Return ``{"chapters": n, "embeddings": m}`` already stored for a document."""
        return {
            "chapters": await self._repository.count_chapters(document_id),
            "embeddings": await self._repository.count_chunks(document_id),
        }

    async def delete_existing(self, document_id: str) -> int:
        """Delete a document's chapters and, by cascade, all its records."""
        return await self._repository.delete_chapters(document_id)

    def get_status(self, document_id: str) -> ProcessingStatus:
        return self._tracker.get_status(document_id)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    async def _run(
        self,
        document: Document,
        library: Library,
        options: ProcessingOptions | None,
        max_retries: int | None,
    ) -> ProcessingResult:
        """Run attempts until one succeeds; ``max_retries=None`` means one bare attempt."""
        options = options or ProcessingOptions()
        started = time.monotonic()
        await self._tracker.start(document.id, document.title)

        with bind_document_context(document.id, library_id=library.id):
            try:
                context = self._resolver.resolve(library, ContextOverrides.from_options(options))
            except Exception as exc:
                self._logger.error("processing_configuration_invalid", error=str(exc))
                await self._tracker.mark_failed(document.id, str(exc))
                raise

            attempt = 0
            try:
                while True:
                    attempt += 1
                    try:
                        result = await self._attempt(
                            document, context, options, attempt, started
                        )
                        break
                    except ConfigurationError as exc:
                        await self._tracker.mark_failed(document.id, str(exc))
                        raise
                    except Exception as exc:
                        if max_retries is None:
                            await self._tracker.mark_failed(document.id, str(exc))
                            raise
                        if attempt > max_retries:
                            self._logger.error(
                                "processing_failed", attempts=attempt, error=str(exc)
                            )
                            await self._tracker.mark_failed(document.id, str(exc))
                            raise PipelineError(
                                message=f"Processing '{document.title}' failed after "
                                f"{attempt} attempts: {exc}"
                            ) from exc
                        failure = exc
                    # Outside the handler so a cancelled wait reaches the guard below.
                    await self._wait_for_retry(document, attempt, failure)
            except asyncio.CancelledError:
                self._logger.warning("processing_cancelled", attempt=attempt)
                await self._tracker.mark_failed(document.id, _CANCELLED_MESSAGE)
                raise

        await self._tracker.mark_completed(
            document.id, result.chapters_count, result.embeddings_count
        )
        return result

    async def _attempt(
        self,
        document: Document,
        context: EmbeddingContext,
        options: ProcessingOptions,
        attempt: int,
        started: float,
    ) -> ProcessingResult:
        self._logger.info("processing_attempt_started", attempt=attempt)
        # Later attempts resume what earlier ones persisted instead of deleting it again.
        outcome = await self._processor.run_phase_one(
            document, context, options, overwrite=options.overwrite and attempt == 1
        )

        enrichment: EnrichmentResult | None = None
        if options.enrichment_requested:
            enrichment = await self._enrich(document, context, options.enrichment_options())

        embeddings_count = (
            await self._repository.count_chunks(document.id)
            if enrichment is not None
            else outcome.embeddings_count
        )
        stats = ProcessingStats(
            chapters_count=outcome.chapters_count,
            embeddings_count=embeddings_count,
            total_characters=outcome.total_characters,
        )
        duration = time.monotonic() - started
        self._logger.info(
            "processing_stats",
            chapters=stats.chapters_count,
            embeddings=stats.embeddings_count,
            total_characters=stats.total_characters,
            average_characters_per_chapter=round(stats.average_characters_per_chapter, 1),
            duration_seconds=round(duration, 2),
            attempts=attempt,
        )
        return ProcessingResult(
            document_id=document.id,
            chapters_count=outcome.chapters_count,
            embeddings_count=embeddings_count,
            embeddings_processed=outcome.embeddings_processed,
            embeddings_failed=outcome.embeddings_failed,
            duration_seconds=duration,
            success=True,
            attempts=attempt,
            resumed=outcome.resumed,
            enrichment=enrichment,
        )

    async def _enrich(
        self,
        document: Document,
        context: EmbeddingContext,
        options: EnrichmentOptions,
    ) -> EnrichmentResult:
        """Phase 2 inside a full run: a missing completion model degrades, never fails."""
        if not context.has_completion:
            message = "No completion model configured; enrichment skipped"
            self._logger.warning("enrichment_unavailable", reason=message)
            return EnrichmentResult(failures=1, errors=[message])
        return await self._processor.run_phase_two(document, context, options)

    async def _wait_for_retry(self, document: Document, attempt: int, exc: Exception) -> None:
        delay = self._config.retry_delay_seconds
        self._logger.warning(
            "processing_retry_scheduled",
            attempt=attempt,
            max_attempts=self._config.max_retries + 1,
            delay_seconds=delay,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        if self._tracker.is_processing(document.id):
            await self._tracker.update_progress(
                document.id,
                self._tracker.get_status(document.id).progress,
                f"Attempt {attempt} failed: {exc}. Retrying in {delay:g}s",
            )
        await asyncio.sleep(delay)
