# tests/unit/api/test_unit_facade.py - v1
"""Tests for api.facade: the Aggregator entry point."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock

import pytest

from commentrank.api.facade import Aggregator
from commentrank.batch.intake import validate_submission
from commentrank.core.errors import BatchValidationError, StorageError
from commentrank.core.models import PINNED_SCORE
from commentrank.logging.context import get_context, set_batch_context


@pytest.fixture
def aggregator(settings, batch_store, snapshot_store) -> Aggregator:
    return Aggregator(settings, batch_store=batch_store, snapshot_store=snapshot_store)


# ---------------------------------------------------------------------------
# submit
# ---------------------------------------------------------------------------

class TestSubmit:
    @pytest.mark.asyncio
    async def test_stores_batch(self, aggregator, batch_store, make_payload):
        batch_id = await aggregator.submit(make_payload(count=3))

        assert await batch_store.list_ids() == [batch_id]
        record = await batch_store.read(batch_id)
        assert len(record.items) == 3
        assert record.score_map == {"1": 10.0, "2": 20.0, "3": 30.0}
        assert record.system_message == "Rate reply opportunities."

    @pytest.mark.asyncio
    async def test_accepts_validated_submission(self, aggregator, batch_store, make_payload):
        submission = validate_submission(make_payload())
        await aggregator.submit(submission)
        assert len(await batch_store.list_ids()) == 1

    @pytest.mark.asyncio
    async def test_pinned_comment_gets_sentinel(self, aggregator, batch_store, make_payload):
        batch_id = await aggregator.submit(make_payload(count=2, pinned_ids=(1,)))
        record = await batch_store.read(batch_id)
        assert record.score_map["1"] == PINNED_SCORE

    @pytest.mark.asyncio
    async def test_invalid_payload_stores_nothing(self, aggregator, batch_store, make_payload):
        payload = make_payload()
        del payload["systemMessage"]

        with pytest.raises(BatchValidationError, match="systemMessage"):
            await aggregator.submit(payload)
        assert await batch_store.list_ids() == []

    @pytest.mark.asyncio
    async def test_batch_limit_from_settings(self, settings, batch_store, snapshot_store, make_payload):
        small = settings.model_copy(update={"max_batch_items": 2})
        aggregator = Aggregator(small, batch_store=batch_store, snapshot_store=snapshot_store)
        with pytest.raises(BatchValidationError, match="at most 2"):
            await aggregator.submit(make_payload(count=3))

    @pytest.mark.asyncio
    async def test_storage_failure_propagates(self, settings, snapshot_store, make_payload):
        failing = AsyncMock()
        failing.append.side_effect = StorageError("disk full")
        aggregator = Aggregator(settings, batch_store=failing, snapshot_store=snapshot_store)

        with pytest.raises(StorageError, match="disk full"):
            await aggregator.submit(make_payload())

    @pytest.mark.asyncio
    async def test_batch_log_context_scoped_to_submit(self, aggregator, make_payload):
        seen: list[str | None] = []

        class _ContextRecorder(logging.Handler):
            def emit(self, record: logging.LogRecord) -> None:
                seen.append(get_context().batch_id)

        facade_logger = logging.getLogger("commentrank.api.facade")
        recorder = _ContextRecorder(level=logging.INFO)
        facade_logger.addHandler(recorder)
        previous_level = facade_logger.level
        facade_logger.setLevel(logging.INFO)
        try:
            batch_id = await aggregator.submit(make_payload())
        finally:
            facade_logger.removeHandler(recorder)
            facade_logger.setLevel(previous_level)

        assert batch_id in seen
        assert get_context().batch_id is None

    @pytest.mark.asyncio
    async def test_outer_batch_context_restored(self, aggregator, make_payload):
        set_batch_context("outer")
        await aggregator.submit(make_payload())
        assert get_context().batch_id == "outer"

    @pytest.mark.asyncio
    async def test_no_merge_without_worker(self, aggregator, snapshot_store, make_payload):
        await aggregator.submit(make_payload())
        assert await snapshot_store.latest() is None


# ---------------------------------------------------------------------------
# background merges
# ---------------------------------------------------------------------------

class TestBackgroundMerge:
    @pytest.mark.asyncio
    async def test_submit_triggers_merge(self, aggregator, make_payload):
        async with aggregator:
            await aggregator.submit(make_payload(count=3))
            await aggregator.scheduler.wait_idle()

            snapshot = await aggregator.latest_snapshot()
            assert snapshot is not None
            assert [i.final_score for i in snapshot.items] == [30.0, 20.0, 10.0]
        assert not aggregator.scheduler.running

    @pytest.mark.asyncio
    async def test_merge_on_submit_disabled(self, settings, batch_store, snapshot_store, make_payload):
        quiet = settings.model_copy(update={"merge_on_submit": False})
        async with Aggregator(quiet, batch_store=batch_store, snapshot_store=snapshot_store) as agg:
            await agg.submit(make_payload())
            await agg.scheduler.wait_idle()
            assert agg.scheduler.runs_completed == 0
        assert await snapshot_store.latest() is None

    @pytest.mark.asyncio
    async def test_stop_finishes_pending_merge(self, aggregator, snapshot_store, make_payload):
        await aggregator.start()
        await aggregator.submit(make_payload())
        await aggregator.stop()
        assert await snapshot_store.latest() is not None


# ---------------------------------------------------------------------------
# reads and purge
# ---------------------------------------------------------------------------

class TestReads:
    @pytest.mark.asyncio
    async def test_top_without_snapshot(self, aggregator):
        assert await aggregator.top(5) == []
        assert await aggregator.latest_snapshot() is None

    @pytest.mark.asyncio
    async def test_run_merge_then_top(self, aggregator, make_payload):
        await aggregator.submit(make_payload(count=4, pinned_ids=(2,)))
        outcome = await aggregator.run_merge()

        assert outcome.status == "written"
        best = await aggregator.top(2)
        assert [i.id for i in best] == [2, 4]
        assert best[0].final_score == PINNED_SCORE

    @pytest.mark.asyncio
    async def test_run_merge_empty(self, aggregator):
        outcome = await aggregator.run_merge()
        assert outcome.status == "empty"
        assert outcome.snapshot_id is None


class TestPurge:
    @pytest.mark.asyncio
    async def test_purge_clears_everything(self, aggregator, make_payload):
        await aggregator.submit(make_payload())
        await aggregator.run_merge()

        result = await aggregator.purge()

        assert result.ok
        assert result.batches_removed == 1
        assert result.snapshots_removed == 1
        assert await aggregator.top(5) == []

    @pytest.mark.asyncio
    async def test_purge_waits_for_queued_merge(self, aggregator, snapshot_store, make_payload):
        async with aggregator:
            await aggregator.submit(make_payload())
            result = await aggregator.purge()

            assert result.snapshots_removed == 1
            assert await snapshot_store.latest() is None

    @pytest.mark.asyncio
    async def test_purge_empty_is_success(self, aggregator):
        result = await aggregator.purge()
        assert result.ok
        assert (result.batches_removed, result.snapshots_removed) == (0, 0)
