# src/storage/purge.py - v1
"""Reset aggregation state: delete every batch and every snapshot.

Both stores are always attempted. A failure in one is reported next to the
other's count rather than aborting, so a partial purge is never reported as
a full one.
"""

from __future__ import annotations

import logging

from commentrank.core.errors import StorageError
from commentrank.core.models import PurgeResult
from commentrank.storage.base_batch_store import BaseBatchStore
from commentrank.storage.base_snapshot_store import BaseSnapshotStore

logger = logging.getLogger(__name__)


async def purge_all(
    batch_store: BaseBatchStore,
    snapshot_store: BaseSnapshotStore,
) -> PurgeResult:
    """Purge both stores and return what was removed from each."""
    result = PurgeResult()

    try:
        result.batches_removed = await batch_store.purge()
    except StorageError as exc:
        logger.error("Batch purge incomplete: %s", exc)
        result.batches_removed = exc.removed
        result.errors["batches"] = str(exc)

    try:
        result.snapshots_removed = await snapshot_store.purge()
    except StorageError as exc:
        logger.error("Snapshot purge incomplete: %s", exc)
        result.snapshots_removed = exc.removed
        result.errors["snapshots"] = str(exc)

    logger.info(
        "Purge finished: %d batch(es), %d snapshot(s) removed%s",
        result.batches_removed,
        result.snapshots_removed,
        "" if result.ok else " (with errors)",
    )
    return result
