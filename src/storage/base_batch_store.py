# src/storage/base_batch_store.py - v1
"""Abstract batch store interface.

Batches are write-once: a store appends, enumerates and purges, and never
updates a stored record in place.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from pydantic import ValidationError

from commentrank.core.errors import MalformedRecordError, StorageError
from commentrank.core.models import BatchListing, BatchRecord, StoredBatch

logger = logging.getLogger(__name__)


class BaseBatchStore(ABC):
    """Unified interface for batch storage backends."""

    @abstractmethod
    async def append(self, record: BatchRecord) -> str:
        """Persist a new record and return its batch id.

        Raises:
            StorageError: If the storage medium is unavailable.
        """

    @abstractmethod
    async def read(self, batch_id: str) -> BatchRecord:
        """Read one record.

        Raises:
            MalformedRecordError: If the stored content does not parse.
            StorageError: If the record cannot be read.
        """

    @abstractmethod
    async def list_ids(self) -> list[str]:
        """List stored batch ids (ascending)."""

    @abstractmethod
    async def purge(self) -> int:
        """Delete every record and return how many were removed."""

    async def list_all(self) -> BatchListing:
        """Read every stored record.

        Unreadable or malformed records are skipped and reported in
        ``BatchListing.failed``; the rest are still returned.

        Raises:
            StorageError: If the store itself cannot be enumerated.
        """
        listing = BatchListing()
        for batch_id in await self.list_ids():
            try:
                record = await self.read(batch_id)
            except (MalformedRecordError, StorageError) as exc:
                logger.warning("Skipping batch %s: %s", batch_id, exc)
                listing.failed.append(batch_id)
                continue
            listing.batches.append(StoredBatch(batch_id=batch_id, record=record))
        return listing

    @staticmethod
    def parse_record(batch_id: str, raw: str | bytes) -> BatchRecord:
        """Parse serialized record content."""
        try:
            return BatchRecord.model_validate_json(raw)
        except ValidationError as exc:
            raise MalformedRecordError(
                batch_id, f"{exc.error_count()} validation error(s)"
            ) from exc
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(batch_id, f"not UTF-8: {exc.reason}") from exc

    @staticmethod
    def serialize_record(record: BatchRecord) -> str:
        return record.model_dump_json(by_alias=True, indent=2)
