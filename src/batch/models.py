# src/batch/models.py - v1
"""Submission model: one gateway request carrying comments and their scores."""

from __future__ import annotations

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
    model_validator,
)

from commentrank.core.models import ScoredItem, normalize_score_map

DEFAULT_MAX_BATCH_ITEMS = 50


class BatchSubmission(BaseModel):
    """A validated batch as handed over by the request gateway.

    ``scores`` is the external scorer's output, keyed by item id. Pinned
    items need no entry there.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    comments: list[ScoredItem] = Field(min_length=1)
    system_message: StrictStr = Field(alias="systemMessage", min_length=1)
    best_comments_count: StrictInt = Field(alias="bestCommentsCount", ge=1)
    scores: dict[str, float] = Field(default_factory=dict)

    @field_validator("comments")
    @classmethod
    def _limit_size(cls, v: list[ScoredItem], info: ValidationInfo) -> list[ScoredItem]:
        context = info.context or {}
        max_items = context.get("max_items", DEFAULT_MAX_BATCH_ITEMS)
        if len(v) > max_items:
            raise ValueError(f"at most {max_items} comments per batch, got {len(v)}")
        return v

    @field_validator("scores", mode="before")
    @classmethod
    def _flatten_scores(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return normalize_score_map(v)
        return v

    @model_validator(mode="after")
    def _unique_ids(self) -> BatchSubmission:
        seen: set[int] = set()
        duplicates: set[int] = set()
        for comment in self.comments:
            if comment.id in seen:
                duplicates.add(comment.id)
            seen.add(comment.id)
        if duplicates:
            raise ValueError(f"duplicate comment ids in batch: {sorted(duplicates)}")
        return self
