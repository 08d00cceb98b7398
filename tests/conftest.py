# tests/conftest.py - v1
"""Shared test fixtures for all unit and integration tests.

Provides item and batch builders, in-memory stores and isolated settings.
No external dependencies; file I/O stays under tmp_path.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from commentrank.config.settings import Settings
from commentrank.core.models import BatchRecord, ScoredItem, StoredBatch
from commentrank.logging.context import clear_context
from commentrank.storage.memory_store import InMemoryBatchStore, InMemorySnapshotStore

BASE_TIME = datetime(2026, 10, 1, 12, 0, 0, tzinfo=timezone.utc)


# === BUILDERS ===


def _make_item(
    item_id: int,
    content: str,
    pinned: bool = False,
    likes: str = "0",
    replies: str = "0",
    days: str = "1",
) -> ScoredItem:
    return ScoredItem(
        id=item_id,
        time_ago_days=days,
        content=content,
        likes=likes,
        replies=replies,
        is_pinned=pinned,
    )


def _make_record(
    entries: list[tuple[int, str, float | None]],
    minutes: int = 0,
) -> BatchRecord:
    """Build a record from (id, content, score) triples; score None = unscored."""
    items = [_make_item(i, c) for i, c, _ in entries]
    scores = {str(i): s for i, _, s in entries if s is not None}
    return BatchRecord(
        created_at=BASE_TIME + timedelta(minutes=minutes),
        items=items,
        score_map=scores,
        system_message="Score these comments.",
        best_comments_count=10,
    )


def _make_batch(
    batch_id: str,
    entries: list[tuple[int, str, float | None]],
    minutes: int = 0,
) -> StoredBatch:
    return StoredBatch(batch_id=batch_id, record=_make_record(entries, minutes))


def _make_payload(count: int = 2, pinned_ids: tuple[int, ...] = ()) -> dict:
    """Gateway-shaped submission with one score per comment."""
    comments = [
        {
            "id": i,
            "t": str(i),
            "c": f"comment number {i}",
            "l": "3",
            "r": "1",
            **({"isPinned": True} if i in pinned_ids else {}),
        }
        for i in range(1, count + 1)
    ]
    return {
        "comments": comments,
        "systemMessage": "Rate reply opportunities.",
        "bestCommentsCount": 5,
        "scores": {str(i): {"finalScore": 10.0 * i} for i in range(1, count + 1)},
    }


# === FIXTURES ===


@pytest.fixture(autouse=True)
def _reset_log_context():
    clear_context()
    yield
    clear_context()


@pytest.fixture
def batch_store() -> InMemoryBatchStore:
    return InMemoryBatchStore()


@pytest.fixture
def snapshot_store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """JSON-backed settings rooted in tmp_path, with no merge delay."""
    return Settings(
        _env_file=None,
        batch_dir=tmp_path / "batches",
        snapshot_dir=tmp_path / "snapshots",
        merge_delay_seconds=0,
    )


@pytest.fixture
def make_item():
    return _make_item


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def make_batch():
    return _make_batch


@pytest.fixture
def make_payload():
    return _make_payload
