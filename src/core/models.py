# src/core/models.py - v1
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
On-disk JSON uses the camelCase aliases, Python code uses the snake_case
attribute names. Records written by the earlier Node service (compact
``t``/``c``/``l``/``r`` keys, ``inputComments``/``analysisResults``) are
accepted on read.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    field_validator,
)

# Ranking override for pinned items: one above the advertised 0-100 range so
# a pinned item outranks any organic score. The merge step never looks at
# ``is_pinned``; it only ever compares this value.
PINNED_SCORE: float = 101.0


def normalize_score_map(raw: Mapping[Any, Any]) -> dict[str, float]:
    """Flatten a scorer payload into ``{str(id): score}``.

    Accepts both ``{"12": {"finalScore": 80}}`` and ``{"12": 80}``.

    Raises:
        ValueError: If an entry carries no usable numeric score, or a NaN or
            infinite one.
    """
    scores: dict[str, float] = {}
    for key, value in raw.items():
        if isinstance(value, Mapping):
            value = value.get("finalScore")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"score for id {key!r} is not a number: {value!r}")
        try:
            score = float(value)
        except OverflowError:
            score = math.inf
        if not math.isfinite(score):
            raise ValueError(f"score for id {key!r} is not finite: {value!r}")
        scores[str(key)] = score
    return scores


class _Record(BaseModel):
    """Base for persisted models: immutable, alias-aware."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)


# === ITEMS ===


class ScoredItem(_Record):
    """One comment as submitted for scoring."""

    id: StrictInt
    time_ago_days: StrictStr = Field(
        alias="timeAgoDays", validation_alias=AliasChoices("timeAgoDays", "t"),
    )
    content: StrictStr = Field(
        alias="content", validation_alias=AliasChoices("content", "c"),
    )
    likes: StrictStr = Field(
        alias="likes", validation_alias=AliasChoices("likes", "likesCount", "l"),
    )
    replies: StrictStr = Field(
        alias="replies",
        validation_alias=AliasChoices("replies", "repliesCount", "r"),
    )
    is_pinned: bool = Field(default=False, alias="isPinned")


class MergedItem(ScoredItem):
    """A scored item resolved against its batch's score map."""

    final_score: float = Field(alias="finalScore")
    source_batch_timestamp: datetime = Field(
        alias="sourceBatchTimestamp",
        validation_alias=AliasChoices("sourceBatchTimestamp", "analysisTimestamp"),
    )


# === BATCHES ===


class BatchRecord(_Record):
    """Immutable result of one scoring pass."""

    created_at: datetime = Field(
        alias="createdAt", validation_alias=AliasChoices("createdAt", "timestamp"),
    )
    items: list[ScoredItem] = Field(
        alias="items", validation_alias=AliasChoices("items", "inputComments"),
    )
    score_map: dict[str, float] = Field(
        default_factory=dict,
        alias="scoreMap",
        validation_alias=AliasChoices("scoreMap", "analysisResults"),
    )
    # Provenance, carried for audit only.
    system_message: str | None = Field(default=None, alias="systemMessage")
    best_comments_count: int | None = Field(default=None, alias="bestCommentsCount")

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, v: datetime) -> datetime:
        # Older files may carry timestamps without an offset; they were UTC.
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("score_map", mode="before")
    @classmethod
    def _flatten_scores(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return normalize_score_map(v)
        return v

    def score_for(self, item: ScoredItem) -> float | None:
        """Return the assigned score for ``item``, or None if it was never scored."""
        return self.score_map.get(str(item.id))


class StoredBatch(BaseModel):
    """A BatchRecord together with its store identity."""

    batch_id: str
    record: BatchRecord


class BatchListing(BaseModel):
    """Result of enumerating a batch store."""

    batches: list[StoredBatch] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


# === SNAPSHOTS ===


class ScoreRange(_Record):
    highest: float
    lowest: float


class SnapshotSummary(_Record):
    """Aggregate statistics for one merge run."""

    total_items: int = Field(alias="totalItems")
    processed_batches: int = Field(alias="processedBatches")
    failed_batches: int = Field(default=0, alias="failedBatches")
    skipped_items: int = Field(default=0, alias="skippedItems")
    duplicates_removed: int = Field(default=0, alias="duplicatesRemoved")
    score_range: ScoreRange = Field(alias="scoreRange")


class Snapshot(_Record):
    """Immutable, ranked output of one merge run."""

    snapshot_id: str = Field(alias="snapshotId")
    generated_at: datetime = Field(alias="generatedAt")
    summary: SnapshotSummary
    items: list[MergedItem] = Field(default_factory=list)

    def top(self, k: int) -> list[MergedItem]:
        """First ``k`` items of the ranking."""
        if k < 0:
            raise ValueError("k must be >= 0")
        return self.items[:k]


# === OUTCOMES ===


class MergeOutcome(BaseModel):
    """What one merge run did."""

    status: Literal["written", "empty", "failed"]
    snapshot_id: str | None = None
    summary: SnapshotSummary | None = None
    failed_batches: int = 0
    error: str | None = None


class PurgeResult(BaseModel):
    """Counts removed from each store, plus any per-store failure."""

    batches_removed: int = 0
    snapshots_removed: int = 0
    errors: dict[str, str] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors
