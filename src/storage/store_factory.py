# src/storage/store_factory.py - v1
"""Factory: instantiate batch and snapshot stores from configuration."""

from __future__ import annotations

from commentrank.config.settings import Settings
from commentrank.storage.base_batch_store import BaseBatchStore
from commentrank.storage.base_snapshot_store import BaseSnapshotStore


def create_batch_store(settings: Settings) -> BaseBatchStore:
    """Create the batch store selected by STORE_BACKEND.

    Raises:
        ValueError: If the backend is not supported.
    """
    if settings.store_backend == "json":
        from commentrank.storage.json_store import JsonBatchStore
        return JsonBatchStore(settings.batch_dir)

    if settings.store_backend == "memory":
        from commentrank.storage.memory_store import InMemoryBatchStore
        return InMemoryBatchStore()

    raise ValueError(f"Unsupported store backend: {settings.store_backend!r}")


def create_snapshot_store(settings: Settings) -> BaseSnapshotStore:
    """Create the snapshot store selected by STORE_BACKEND.

    Raises:
        ValueError: If the backend is not supported.
    """
    if settings.store_backend == "json":
        from commentrank.storage.json_store import JsonSnapshotStore
        return JsonSnapshotStore(settings.snapshot_dir)

    if settings.store_backend == "memory":
        from commentrank.storage.memory_store import InMemorySnapshotStore
        return InMemorySnapshotStore()

    raise ValueError(f"Unsupported store backend: {settings.store_backend!r}")
