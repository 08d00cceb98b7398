# src/storage/json_store.py - v1
"""JSON file-backed batch and snapshot stores (default STORE_BACKEND=json).

Each entry is one pretty-printed JSON file. Files are created in exclusive
mode, so an id collision is detected and retried with a fresh id instead of
overwriting an existing entry.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from pathlib import Path

from commentrank.core.errors import StorageError
from commentrank.core.models import BatchRecord, MergedItem, Snapshot, SnapshotSummary
from commentrank.storage import layout
from commentrank.storage.base_batch_store import BaseBatchStore
from commentrank.storage.base_snapshot_store import BaseSnapshotStore
from commentrank.storage.identity import MonotonicClock, default_clock

logger = logging.getLogger(__name__)

# Id collisions need two writers in the same microsecond drawing the same
# random suffix; a handful of retries is plenty.
MAX_CREATE_ATTEMPTS = 5


class _EntryDirectory:
    """Append-only directory of ``{prefix}{id}.json`` files."""

    def __init__(self, root: Path, prefix: str, clock: MonotonicClock) -> None:
        self.root = Path(root).expanduser()
        self.prefix = prefix
        self._clock = clock

    def path(self, entry_id: str) -> Path:
        return layout.entry_path(self.root, self.prefix, entry_id)

    def create(self, render: Callable[[datetime, str], str]) -> str:
        """Write a new entry whose content is ``render(timestamp, entry_id)``."""
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot create directory {self.root}: {exc}") from exc

        for _ in range(MAX_CREATE_ATTEMPTS):
            timestamp, entry_id = self._clock.new_id()
            path = self.path(entry_id)
            try:
                with path.open("x", encoding="utf-8") as fh:
                    fh.write(render(timestamp, entry_id))
            except FileExistsError:
                logger.warning("Id collision on %s, retrying with a new id", path.name)
                continue
            except OSError as exc:
                raise StorageError(f"Failed to write {path}: {exc}") from exc
            return entry_id

        raise StorageError(
            f"Could not allocate a unique id in {self.root} "
            f"after {MAX_CREATE_ATTEMPTS} attempts"
        )

    def read(self, entry_id: str) -> bytes:
        path = self.path(entry_id)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {path}: {exc}") from exc

    def ids(self) -> list[str]:
        try:
            return layout.list_entry_ids(self.root, self.prefix)
        except OSError as exc:
            raise StorageError(f"Cannot list {self.root}: {exc}") from exc

    def purge(self) -> int:
        """Delete every entry file. Keeps going past individual failures."""
        removed = 0
        failures: list[str] = []
        for entry_id in self.ids():
            path = self.path(entry_id)
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as exc:
                failures.append(f"{path.name}: {exc}")
                continue
            removed += 1

        if failures:
            raise StorageError(
                f"Failed to delete {len(failures)} file(s) in {self.root}: "
                + "; ".join(failures),
                removed=removed,
            )
        return removed


class JsonBatchStore(BaseBatchStore):
    """One ``analysis_<id>.json`` file per batch."""

    def __init__(self, batch_dir: Path, clock: MonotonicClock | None = None) -> None:
        self._dir = _EntryDirectory(batch_dir, layout.BATCH_PREFIX, clock or default_clock)

    @property
    def root(self) -> Path:
        return self._dir.root

    async def append(self, record: BatchRecord) -> str:
        payload = self.serialize_record(record)
        batch_id = self._dir.create(lambda _ts, _id: payload)
        logger.info(
            "Stored batch %s (%d items, %d scores)",
            batch_id, len(record.items), len(record.score_map),
        )
        return batch_id

    async def read(self, batch_id: str) -> BatchRecord:
        return self.parse_record(batch_id, self._dir.read(batch_id))

    async def list_ids(self) -> list[str]:
        return self._dir.ids()

    async def purge(self) -> int:
        removed = self._dir.purge()
        logger.info("Purged %d batch file(s) from %s", removed, self._dir.root)
        return removed


class JsonSnapshotStore(BaseSnapshotStore):
    """One ``merged_scores_<id>.json`` file per snapshot."""

    def __init__(self, snapshot_dir: Path, clock: MonotonicClock | None = None) -> None:
        self._dir = _EntryDirectory(
            snapshot_dir, layout.SNAPSHOT_PREFIX, clock or default_clock,
        )

    @property
    def root(self) -> Path:
        return self._dir.root

    async def write(self, items: list[MergedItem], summary: SnapshotSummary) -> str:
        def render(timestamp: datetime, snapshot_id: str) -> str:
            snapshot = self.build_snapshot(snapshot_id, items, summary, timestamp)
            return self.serialize_snapshot(snapshot)

        snapshot_id = self._dir.create(render)
        logger.info("Wrote snapshot %s (%d items)", snapshot_id, len(items))
        return snapshot_id

    async def read(self, snapshot_id: str) -> Snapshot:
        return self.parse_snapshot(snapshot_id, self._dir.read(snapshot_id))

    async def list_ids(self) -> list[str]:
        return self._dir.ids()

    async def purge(self) -> int:
        removed = self._dir.purge()
        logger.info("Purged %d snapshot file(s) from %s", removed, self._dir.root)
        return removed
