"""Unit tests for ProcessingStatusTracker - state machine, listeners, housekeeping."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.models.processing import ProcessingState, ProcessingStatus
from src.pipeline.status_tracker import ProcessingStatusTracker


class TestTransitions:
    @pytest.mark.asyncio
    async def test_unknown_document_is_not_started(self, tracker: ProcessingStatusTracker) -> None:
        status = tracker.get_status("doc-x")
        assert status.state == ProcessingState.NOT_STARTED
        assert status.message == "Processing not started or already cleaned up"
        assert tracker.is_processing("doc-x") is False

    @pytest.mark.asyncio
    async def test_start_to_completed(self, tracker: ProcessingStatusTracker) -> None:
        started = await tracker.start("doc-1", "Title")
        assert started.state == ProcessingState.PROCESSING
        assert started.progress == 0.0
        assert started.started_at is not None
        assert tracker.is_processing("doc-1")

        done = await tracker.mark_completed("doc-1", chapters_count=3, embeddings_count=7)
        assert done.state == ProcessingState.COMPLETED
        assert done.progress == 100.0
        assert done.chapters_count == 3
        assert done.embeddings_count == 7
        assert done.message == "Completed: 3 chapters, 7 embeddings"
        assert done.completed_at is not None
        assert tracker.get_status("doc-1") == done

    @pytest.mark.asyncio
    async def test_start_to_failed(self, tracker: ProcessingStatusTracker) -> None:
        await tracker.start("doc-1")
        failed = await tracker.mark_failed("doc-1", "provider down")
        assert failed.state == ProcessingState.FAILED
        assert failed.error_message == "provider down"
        assert failed.completed_at is not None

    @pytest.mark.asyncio
    async def test_progress_is_clamped(self, tracker: ProcessingStatusTracker) -> None:
        await tracker.start("doc-1")
        assert (await tracker.update_progress("doc-1", 150.0)).progress == 100.0
        assert (await tracker.update_progress("doc-1", -3.0, "rewinding")).progress == 0.0
        assert tracker.get_status("doc-1").message == "rewinding"

    @pytest.mark.asyncio
    async def test_progress_keeps_previous_message_when_blank(
        self, tracker: ProcessingStatusTracker
    ) -> None:
        await tracker.start("doc-1")
        await tracker.update_progress("doc-1", 10.0, "splitting")
        status = await tracker.update_progress("doc-1", 20.0)
        assert status.message == "splitting"
        assert status.progress == 20.0

    @pytest.mark.asyncio
    async def test_transitions_outside_processing_are_ignored(
        self, tracker: ProcessingStatusTracker
    ) -> None:
        assert (await tracker.mark_completed("doc-1", 1, 1)).state == ProcessingState.NOT_STARTED

        await tracker.start("doc-1")
        completed = await tracker.mark_completed("doc-1", 1, 2)

        assert await tracker.mark_failed("doc-1", "late error") == completed
        assert await tracker.update_progress("doc-1", 5.0) == completed

    @pytest.mark.asyncio
    async def test_restart_replaces_terminal_status(self, tracker: ProcessingStatusTracker) -> None:
        await tracker.start("doc-1")
        await tracker.mark_failed("doc-1", "boom")

        restarted = await tracker.start("doc-1")
        assert restarted.state == ProcessingState.PROCESSING
        assert restarted.error_message is None


class TestListeners:
    @pytest.mark.asyncio
    async def test_sync_and_async_listeners_receive_every_change(
        self, tracker: ProcessingStatusTracker
    ) -> None:
        sync_listener = MagicMock()
        async_listener = AsyncMock()
        tracker.register_listener("doc-1", sync_listener)
        tracker.register_listener("doc-1", async_listener)

        await tracker.start("doc-1")
        await tracker.update_progress("doc-1", 50.0)
        await tracker.mark_completed("doc-1", 1, 1)

        assert sync_listener.call_count == 3
        assert async_listener.await_count == 3
        last: ProcessingStatus = sync_listener.call_args.args[0]
        assert last.state == ProcessingState.COMPLETED

    @pytest.mark.asyncio
    async def test_listeners_are_per_document(self, tracker: ProcessingStatusTracker) -> None:
        listener = MagicMock()
        tracker.register_listener("doc-1", listener)
        await tracker.start("doc-2")
        listener.assert_not_called()

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_block(self, tracker: ProcessingStatusTracker) -> None:
        broken = MagicMock(side_effect=RuntimeError("listener bug"))
        healthy = MagicMock()
        tracker.register_listener("doc-1", broken)
        tracker.register_listener("doc-1", healthy)

        status = await tracker.start("doc-1")

        assert status.state == ProcessingState.PROCESSING
        healthy.assert_called_once_with(status)

    @pytest.mark.asyncio
    async def test_register_is_idempotent_and_unregister(
        self, tracker: ProcessingStatusTracker
    ) -> None:
        listener = MagicMock()
        tracker.register_listener("doc-1", listener)
        tracker.register_listener("doc-1", listener)
        await tracker.start("doc-1")
        assert listener.call_count == 1

        tracker.unregister_listener("doc-1", listener)
        await tracker.update_progress("doc-1", 10.0)
        assert listener.call_count == 1


class TestHousekeeping:
    @pytest.mark.asyncio
    async def test_remove(self, tracker: ProcessingStatusTracker) -> None:
        await tracker.start("doc-1")
        assert tracker.remove("doc-1") is True
        assert tracker.remove("doc-1") is False
        assert tracker.get_status("doc-1").state == ProcessingState.NOT_STARTED

    @pytest.mark.asyncio
    async def test_cleanup_drops_only_old_terminal_statuses(
        self, tracker: ProcessingStatusTracker
    ) -> None:
        await tracker.start("done")
        await tracker.mark_completed("done", 1, 1)
        await tracker.start("running")

        later = datetime.now(tz=timezone.utc) + timedelta(hours=2)  # noqa: UP017
        with patch("src.pipeline.status_tracker._utcnow", return_value=later):
            removed = tracker.cleanup_older_than(minutes=60)

        assert removed == 1
        assert tracker.get_status("done").state == ProcessingState.NOT_STARTED
        assert tracker.is_processing("running")

    @pytest.mark.asyncio
    async def test_cleanup_keeps_recent_statuses(self, tracker: ProcessingStatusTracker) -> None:
        await tracker.start("done")
        await tracker.mark_failed("done", "boom")
        assert tracker.cleanup_older_than(minutes=60) == 0
        assert tracker.get_status("done").state == ProcessingState.FAILED
