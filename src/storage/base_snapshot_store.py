# src/storage/base_snapshot_store.py - v1
"""Abstract snapshot store interface.

Every write creates a new snapshot with a fresh, sortable id; the most
recent one is found by id order.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import ValidationError

from commentrank.core.errors import MalformedRecordError, StorageError
from commentrank.core.models import MergedItem, Snapshot, SnapshotSummary

logger = logging.getLogger(__name__)


class BaseSnapshotStore(ABC):
    """Unified interface for snapshot storage backends."""

    @abstractmethod
    async def write(self, items: list[MergedItem], summary: SnapshotSummary) -> str:
        """Persist a new snapshot and return its id. Never overwrites.

        Raises:
            StorageError: If the snapshot cannot be written.
        """

    @abstractmethod
    async def read(self, snapshot_id: str) -> Snapshot:
        """Read one snapshot.

        Raises:
            MalformedRecordError: If the stored content does not parse.
            StorageError: If the snapshot cannot be read.
        """

    @abstractmethod
    async def list_ids(self) -> list[str]:
        """List snapshot ids (ascending, oldest first)."""

    @abstractmethod
    async def purge(self) -> int:
        """Delete every snapshot and return how many were removed."""

    async def latest(self) -> Snapshot | None:
        """Return the most recent readable snapshot, or None if there is none."""
        for snapshot_id in reversed(await self.list_ids()):
            try:
                return await self.read(snapshot_id)
            except (MalformedRecordError, StorageError) as exc:
                logger.warning("Skipping unreadable snapshot %s: %s", snapshot_id, exc)
        return None

    @staticmethod
    def parse_snapshot(snapshot_id: str, raw: str | bytes) -> Snapshot:
        try:
            return Snapshot.model_validate_json(raw)
        except ValidationError as exc:
            raise MalformedRecordError(
                snapshot_id, f"{exc.error_count()} validation error(s)"
            ) from exc
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(snapshot_id, f"not UTF-8: {exc.reason}") from exc

    @staticmethod
    def build_snapshot(
        snapshot_id: str,
        items: list[MergedItem],
        summary: SnapshotSummary,
        generated_at: datetime,
    ) -> Snapshot:
        return Snapshot(
            snapshot_id=snapshot_id,
            generated_at=generated_at,
            summary=summary,
            items=items,
        )

    @staticmethod
    def serialize_snapshot(snapshot: Snapshot) -> str:
        return snapshot.model_dump_json(by_alias=True, indent=2)
