# src/api/facade.py - v1
"""Public API facade: the single entry point for a request gateway.

Usage:
    async with Aggregator(settings) as aggregator:
        batch_id = await aggregator.submit(payload)
        best = await aggregator.top(10)

submit() is the only call that surfaces failures: validation errors and
storage errors propagate to the caller. Merges run in the background and
report only through logs and the snapshots they write.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from commentrank.batch.intake import build_batch_record, validate_submission
from commentrank.batch.models import BatchSubmission
from commentrank.config.settings import Settings
from commentrank.core.errors import StorageError
from commentrank.core.models import MergedItem, MergeOutcome, PurgeResult, Snapshot
from commentrank.logging.context import reset_batch_context, set_batch_context
from commentrank.merge.engine import MergeEngine
from commentrank.merge.scheduler import MergeScheduler
from commentrank.storage.base_batch_store import BaseBatchStore
from commentrank.storage.base_snapshot_store import BaseSnapshotStore
from commentrank.storage.purge import purge_all
from commentrank.storage.store_factory import create_batch_store, create_snapshot_store

logger = logging.getLogger(__name__)


class Aggregator:
    """Submit batches, run merges, read the latest ranking, purge.

    Args:
        settings: Global settings. Loaded from .env if None.
        batch_store: Batch backend. Built from settings if None.
        snapshot_store: Snapshot backend. Built from settings if None.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        batch_store: BaseBatchStore | None = None,
        snapshot_store: BaseSnapshotStore | None = None,
    ) -> None:
        self.settings = settings or Settings()
        self.batch_store = batch_store or create_batch_store(self.settings)
        self.snapshot_store = snapshot_store or create_snapshot_store(self.settings)
        self.engine = MergeEngine(self.batch_store, self.snapshot_store)
        self.scheduler = MergeScheduler(
            self.engine, delay_seconds=self.settings.merge_delay_seconds,
        )

    # --- Lifecycle ---

    async def start(self) -> None:
        """Start the background merge worker."""
        self.scheduler.start()

    async def stop(self) -> None:
        """Let pending merges finish, then stop the worker."""
        await self.scheduler.stop()

    async def __aenter__(self) -> Aggregator:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    # --- Operations ---

    async def submit(self, payload: Mapping[str, Any] | BatchSubmission) -> str:
        """Validate, score-resolve and store a batch, then request a merge.

        Returns:
            The new batch id.

        Raises:
            BatchValidationError: If the payload is malformed. Nothing is stored.
            StorageError: If the batch could not be persisted. It is lost.
        """
        if isinstance(payload, BatchSubmission):
            submission = payload
        else:
            submission = validate_submission(
                payload, max_items=self.settings.max_batch_items,
            )
        record = build_batch_record(submission)

        try:
            batch_id = await self.batch_store.append(record)
        except StorageError:
            logger.error(
                "Failed to persist batch of %d comments; batch dropped",
                len(record.items), exc_info=True,
            )
            raise

        token = set_batch_context(batch_id)
        try:
            logger.info("Accepted batch %s with %d comments", batch_id, len(record.items))
            if self.settings.merge_on_submit:
                if self.scheduler.running:
                    self.scheduler.request()
                else:
                    logger.debug("Merge worker not running; skipping merge request")
        finally:
            reset_batch_context(token)
        return batch_id

    async def run_merge(self) -> MergeOutcome:
        """Run one merge now, in the caller's task."""
        return await self.engine.run()

    async def latest_snapshot(self) -> Snapshot | None:
        """Return the most recent snapshot, or None if none exists."""
        return await self.snapshot_store.latest()

    async def top(self, k: int) -> list[MergedItem]:
        """First ``k`` items of the latest snapshot (empty if there is none)."""
        snapshot = await self.latest_snapshot()
        if snapshot is None:
            return []
        return snapshot.top(k)

    async def purge(self) -> PurgeResult:
        """Delete every batch and snapshot.

        Queued merges finish first so none of them lands a snapshot of the
        purged batches afterwards.
        """
        await self.scheduler.wait_idle()
        return await purge_all(self.batch_store, self.snapshot_store)
