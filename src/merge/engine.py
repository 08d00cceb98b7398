# src/merge/engine.py - v1
"""Merge engine: fold every stored batch into one ranked, deduplicated list.

Passes, in order:
  1. Order batches by (created_at, batch_id) so every run iterates alike
  2. Resolve each item's score from its batch's score map; drop unscored items
  3. Deduplicate on raw content, keeping the strictly higher score
  4. Stable sort by final score, descending
  5. Summarize

merge_batches() is pure; MergeEngine.run() wires it to the stores.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from commentrank.core.errors import EmptyResultError, StorageError
from commentrank.core.models import (
    MergedItem,
    MergeOutcome,
    ScoreRange,
    SnapshotSummary,
    StoredBatch,
)
from commentrank.logging.context import set_merge_context
from commentrank.storage.base_batch_store import BaseBatchStore
from commentrank.storage.base_snapshot_store import BaseSnapshotStore

logger = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Ranked items plus the summary computed from them."""

    items: list[MergedItem]
    summary: SnapshotSummary
    stats: dict[str, int] = field(default_factory=dict)


def order_batches(batches: Iterable[StoredBatch]) -> list[StoredBatch]:
    """Fixed iteration order: oldest batch first, batch id as tie-break."""
    return sorted(batches, key=lambda b: (b.record.created_at, b.batch_id))


def resolve_items(batch: StoredBatch) -> tuple[list[MergedItem], int]:
    """Attach scores to a batch's items.

    Returns:
        (merged items in request order, number of unscored items dropped).
    """
    record = batch.record
    merged: list[MergedItem] = []
    skipped = 0
    for item in record.items:
        score = record.score_for(item)
        if score is None:
            # Partial upstream failure: never scored, never defaulted.
            logger.debug("No score for item id %s in batch %s", item.id, batch.batch_id)
            skipped += 1
            continue
        merged.append(
            MergedItem(
                **item.model_dump(),
                final_score=score,
                source_batch_timestamp=record.created_at,
            )
        )
    return merged, skipped


def deduplicate(items: Iterable[MergedItem]) -> tuple[list[MergedItem], int]:
    """Keep one item per exact content string.

    A later duplicate replaces the kept one only with a strictly higher
    score, and takes over the slot of the first occurrence.

    Returns:
        (unique items in first-seen order, number of duplicates removed).
    """
    best: dict[str, MergedItem] = {}
    removed = 0
    for item in items:
        kept = best.get(item.content)
        if kept is None:
            best[item.content] = item
            continue
        removed += 1
        if item.final_score > kept.final_score:
            best[item.content] = item
    return list(best.values()), removed


def rank(items: list[MergedItem]) -> list[MergedItem]:
    """Sort by final score, highest first. sorted() is stable."""
    return sorted(items, key=lambda i: i.final_score, reverse=True)


def merge_batches(
    batches: Iterable[StoredBatch],
    failed_batches: int = 0,
) -> MergeResult:
    """Merge batches into one ranked list.

    Args:
        batches: Readable stored batches, in any order.
        failed_batches: Records already skipped as unreadable (for the summary).

    Returns:
        MergeResult with ranked items and summary.

    Raises:
        EmptyResultError: If no scored item survives.
    """
    ordered = order_batches(batches)

    resolved: list[MergedItem] = []
    skipped = 0
    for batch in ordered:
        items, dropped = resolve_items(batch)
        resolved.extend(items)
        skipped += dropped

    if not resolved:
        raise EmptyResultError(
            f"No scored items in {len(ordered)} batch(es) "
            f"({skipped} unscored, {failed_batches} unreadable)"
        )

    unique, duplicates = deduplicate(resolved)
    ranked = rank(unique)

    summary = SnapshotSummary(
        total_items=len(ranked),
        processed_batches=len(ordered),
        failed_batches=failed_batches,
        skipped_items=skipped,
        duplicates_removed=duplicates,
        score_range=ScoreRange(
            highest=ranked[0].final_score,
            lowest=ranked[-1].final_score,
        ),
    )
    return MergeResult(
        items=ranked,
        summary=summary,
        stats={
            "resolved_items": len(resolved),
            "unique_items": len(unique),
            "skipped_items": skipped,
            "duplicates_removed": duplicates,
        },
    )


class MergeEngine:
    """Run merges over a batch store and publish snapshots.

    Storage and parse failures are logged and reported in the returned
    MergeOutcome; nothing is raised to the caller.
    """

    def __init__(
        self,
        batch_store: BaseBatchStore,
        snapshot_store: BaseSnapshotStore,
    ) -> None:
        self._batch_store = batch_store
        self._snapshot_store = snapshot_store

    async def run(self) -> MergeOutcome:
        """Execute one merge run."""
        set_merge_context(uuid.uuid4().hex[:8])

        try:
            listing = await self._batch_store.list_all()
        except StorageError as exc:
            logger.error("Cannot enumerate batch store: %s", exc, exc_info=True)
            return MergeOutcome(status="failed", error=str(exc))

        failed = len(listing.failed)
        logger.info(
            "Merging %d batch(es) (%d unreadable)", len(listing.batches), failed,
        )

        try:
            result = merge_batches(listing.batches, failed_batches=failed)
        except EmptyResultError as exc:
            logger.info("Nothing to merge, no snapshot written: %s", exc)
            return MergeOutcome(status="empty", failed_batches=failed)

        try:
            snapshot_id = await self._snapshot_store.write(result.items, result.summary)
        except StorageError as exc:
            logger.error("Snapshot write failed: %s", exc, exc_info=True)
            return MergeOutcome(
                status="failed",
                summary=result.summary,
                failed_batches=failed,
                error=str(exc),
            )

        summary = result.summary
        logger.info(
            "Merge complete: %d items from %d batch(es), scores %.1f..%.1f",
            summary.total_items,
            summary.processed_batches,
            summary.score_range.lowest,
            summary.score_range.highest,
            extra={"data": {"snapshot_id": snapshot_id, **result.stats}},
        )
        return MergeOutcome(
            status="written",
            snapshot_id=snapshot_id,
            summary=summary,
            failed_batches=failed,
        )
