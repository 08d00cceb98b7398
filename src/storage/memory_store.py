# src/storage/memory_store.py - v1
"""In-memory batch and snapshot stores (STORE_BACKEND=memory, and tests).

Entries are kept serialized, exactly as the file stores would write them,
so parsing and malformed-record handling behave the same.
"""

from __future__ import annotations

from commentrank.core.errors import StorageError
from commentrank.core.models import BatchRecord, MergedItem, Snapshot, SnapshotSummary
from commentrank.storage.base_batch_store import BaseBatchStore
from commentrank.storage.base_snapshot_store import BaseSnapshotStore
from commentrank.storage.identity import MonotonicClock, default_clock


class InMemoryBatchStore(BaseBatchStore):
    """Dict-backed batch store."""

    def __init__(self, clock: MonotonicClock | None = None) -> None:
        self._clock = clock or default_clock
        self._entries: dict[str, str] = {}

    async def append(self, record: BatchRecord) -> str:
        _, batch_id = self._clock.new_id()
        while batch_id in self._entries:
            _, batch_id = self._clock.new_id()
        self._entries[batch_id] = self.serialize_record(record)
        return batch_id

    async def read(self, batch_id: str) -> BatchRecord:
        try:
            raw = self._entries[batch_id]
        except KeyError:
            raise StorageError(f"No such batch: {batch_id}") from None
        return self.parse_record(batch_id, raw)

    async def list_ids(self) -> list[str]:
        return sorted(self._entries)

    async def purge(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        return removed

    def put_raw(self, batch_id: str, raw: str) -> None:
        """Store raw content under ``batch_id`` (for importing legacy data)."""
        self._entries[batch_id] = raw


class InMemorySnapshotStore(BaseSnapshotStore):
    """Dict-backed snapshot store."""

    def __init__(self, clock: MonotonicClock | None = None) -> None:
        self._clock = clock or default_clock
        self._entries: dict[str, str] = {}

    async def write(self, items: list[MergedItem], summary: SnapshotSummary) -> str:
        timestamp, snapshot_id = self._clock.new_id()
        while snapshot_id in self._entries:
            timestamp, snapshot_id = self._clock.new_id()
        snapshot = self.build_snapshot(snapshot_id, items, summary, timestamp)
        self._entries[snapshot_id] = self.serialize_snapshot(snapshot)
        return snapshot_id

    async def read(self, snapshot_id: str) -> Snapshot:
        try:
            raw = self._entries[snapshot_id]
        except KeyError:
            raise StorageError(f"No such snapshot: {snapshot_id}") from None
        return self.parse_snapshot(snapshot_id, raw)

    async def list_ids(self) -> list[str]:
        return sorted(self._entries)

    async def purge(self) -> int:
        removed = len(self._entries)
        self._entries.clear()
        return removed
