"""Per-document processing status with callback-based listener notification.

Holds one :class:`~src.models.processing.ProcessingStatus` snapshot per
document and broadcasts every change to listeners registered for that
document.  Snapshots are frozen models swapped whole into a dict, so a
caller polling :meth:`ProcessingStatusTracker.get_status` while a run is
writing progress always sees a complete, consistent snapshot.

State machine::

    NOT_STARTED ──start()──→ PROCESSING ──mark_completed()──→ COMPLETED
                                 │
                                 └──────mark_failed()───────→ FAILED

``start()`` on a document with a terminal status replaces it with a fresh
PROCESSING run.  Listener errors are logged and skipped so a broken
listener never blocks the pipeline.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import structlog

from src.models.processing import ProcessingState, ProcessingStatus
from src.utils.logging import get_logger

_NOT_STARTED_MESSAGE = "Processing not started or already cleaned up"


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)  # noqa: UP017


class ProcessingStatusTracker:
    """Tracks and broadcasts per-document processing status."""

    def __init__(self) -> None:
        self._statuses: dict[str, ProcessingStatus] = {}
        self._listeners: dict[str, list[Callable]] = {}
        self._logger: structlog.BoundLogger = get_logger(__name__)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def start(self, document_id: str, title: str = "") -> ProcessingStatus:
        """Enter PROCESSING, replacing any previous status of the document."""
        now = _utcnow()
        status = ProcessingStatus(
            document_id=document_id,
            title=title,
            state=ProcessingState.PROCESSING,
            progress=0.0,
            message="Processing started",
            started_at=now,
            updated_at=now,
        )
        return await self._publish(status)

    async def update_progress(
        self, document_id: str, progress: float, message: str = ""
    ) -> ProcessingStatus:
        """Record progress (clamped to 0–100) of a running document."""
        current = self._running(document_id, "update_progress")
        if current is None:
            return self.get_status(document_id)
        status = current.model_copy(
            update={
                "progress": max(0.0, min(100.0, progress)),
                "message": message or current.message,
                "updated_at": _utcnow(),
            }
        )
        return await self._publish(status)

    async def mark_completed(
        self, document_id: str, chapters_count: int, embeddings_count: int
    ) -> ProcessingStatus:
        """PROCESSING → COMPLETED with the final counts."""
        current = self._running(document_id, "mark_completed")
        if current is None:
            return self.get_status(document_id)
        now = _utcnow()
        status = current.model_copy(
            update={
                "state": ProcessingState.COMPLETED,
                "progress": 100.0,
                "message": (
                    f"Completed: {chapters_count} chapters, {embeddings_count} embeddings"
                ),
                "chapters_count": chapters_count,
                "embeddings_count": embeddings_count,
                "updated_at": now,
                "completed_at": now,
            }
        )
        return await self._publish(status)

    async def mark_failed(self, document_id: str, error: str) -> ProcessingStatus:
        """PROCESSING → FAILED with the terminal error message."""
        current = self._running(document_id, "mark_failed")
        if current is None:
            return self.get_status(document_id)
        now = _utcnow()
        status = current.model_copy(
            update={
                "state": ProcessingState.FAILED,
                "message": "Processing failed",
                "error_message": error,
                "updated_at": now,
                "completed_at": now,
            }
        )
        return await self._publish(status)

    # ------------------------------------------------------------------
    # Queries and housekeeping
    # ------------------------------------------------------------------

    def get_status(self, document_id: str) -> ProcessingStatus:
        """Return the current snapshot, or a NOT_STARTED placeholder."""
        status = self._statuses.get(document_id)
        if status is None:
            return ProcessingStatus(document_id=document_id, message=_NOT_STARTED_MESSAGE)
        return status

    def is_processing(self, document_id: str) -> bool:
        return self.get_status(document_id).state == ProcessingState.PROCESSING

    def remove(self, document_id: str) -> bool:
        """Forget a document's status and listeners; ``True`` if one existed."""
        self._listeners.pop(document_id, None)
        return self._statuses.pop(document_id, None) is not None

    def cleanup_older_than(self, minutes: float) -> int:
        """Drop terminal statuses last updated more than *minutes* ago."""
        cutoff = _utcnow() - timedelta(minutes=minutes)
        stale = [
            doc_id
            for doc_id, status in self._statuses.items()
            if status.state.is_terminal and status.updated_at < cutoff
        ]
        for doc_id in stale:
            self.remove(doc_id)
        if stale:
            self._logger.info("statuses_cleaned_up", removed=len(stale), minutes=minutes)
        return len(stale)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def register_listener(self, document_id: str, callback: Callable) -> None:
        """Register a sync or async ``callback(status)`` for one document."""
        listeners = self._listeners.setdefault(document_id, [])
        if callback not in listeners:
            listeners.append(callback)

    def unregister_listener(self, document_id: str, callback: Callable) -> None:
        listeners = self._listeners.get(document_id, [])
        if callback in listeners:
            listeners.remove(callback)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _running(self, document_id: str, transition: str) -> ProcessingStatus | None:
        current = self._statuses.get(document_id)
        if current is None or current.state != ProcessingState.PROCESSING:
            self._logger.warning(
                "status_transition_ignored",
                document_id=document_id,
                transition=transition,
                state=(current.state.value if current else ProcessingState.NOT_STARTED.value),
            )
            return None
        return current

    async def _publish(self, status: ProcessingStatus) -> ProcessingStatus:
        self._statuses[status.document_id] = status
        self._logger.debug(
            "processing_status",
            document_id=status.document_id,
            state=status.state.value,
            progress=round(status.progress, 1),
            message=status.message,
        )
        for callback in list(self._listeners.get(status.document_id, [])):
            try:
                result = callback(status)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as exc:
                self._logger.warning(
                    "listener_callback_error",
                    document_id=status.document_id,
                    error=str(exc),
                    callback=getattr(callback, "__name__", repr(callback)),
                )
        return status
