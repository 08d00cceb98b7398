# src/batch/intake.py - v1
"""Turn a gateway submission into an immutable BatchRecord.

Everything here runs before persistence: a submission that fails
validation never reaches the batch store.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from commentrank.batch.models import DEFAULT_MAX_BATCH_ITEMS, BatchSubmission
from commentrank.core.errors import BatchValidationError
from commentrank.core.models import PINNED_SCORE, BatchRecord, ScoredItem, normalize_score_map

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def _describe(exc: ValidationError) -> str:
    """Compact, caller-facing summary of a pydantic error."""
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "<root>"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)


def validate_submission(
    payload: Mapping[str, Any],
    max_items: int = DEFAULT_MAX_BATCH_ITEMS,
) -> BatchSubmission:
    """Validate a raw submission.

    Raises:
        BatchValidationError: With a descriptive reason on any shape problem.
    """
    if not isinstance(payload, Mapping):
        raise BatchValidationError("Submission must be a JSON object")
    try:
        return BatchSubmission.model_validate(payload, context={"max_items": max_items})
    except ValidationError as exc:
        raise BatchValidationError(f"Invalid submission: {_describe(exc)}") from exc


def parse_score_payload(raw: str) -> dict[str, float]:
    """Parse the scorer's raw reply into ``{str(id): score}``.

    Markdown code fences around the JSON are stripped first.

    Raises:
        BatchValidationError: If the reply is not a JSON object of scores.
    """
    cleaned = _CODE_FENCE.sub("", raw).strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise BatchValidationError(f"Score payload is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise BatchValidationError("Score payload must be a JSON object keyed by id")
    try:
        return normalize_score_map(data)
    except ValueError as exc:
        raise BatchValidationError(str(exc)) from exc


def assign_scores(
    items: list[ScoredItem],
    external_scores: Mapping[str, float],
) -> dict[str, float]:
    """Build a batch's score map.

    Pinned items get PINNED_SCORE whatever the scorer said; other items take
    their external score and stay unscored when it is missing.
    """
    score_map: dict[str, float] = {}
    for item in items:
        key = str(item.id)
        if item.is_pinned:
            score_map[key] = PINNED_SCORE
        elif key in external_scores:
            score_map[key] = float(external_scores[key])

    unknown = set(external_scores) - {str(i.id) for i in items}
    if unknown:
        logger.debug("Ignoring scores for unknown ids: %s", sorted(unknown))
    return score_map


def build_batch_record(
    submission: BatchSubmission,
    created_at: datetime | None = None,
) -> BatchRecord:
    """Create the immutable record for a validated submission."""
    score_map = assign_scores(submission.comments, submission.scores)
    unscored = len(submission.comments) - len(score_map)
    if unscored:
        logger.warning(
            "%d of %d comments have no score and will be left out of merges",
            unscored, len(submission.comments),
        )
    return BatchRecord(
        created_at=created_at or datetime.now(timezone.utc),
        items=list(submission.comments),
        score_map=score_map,
        system_message=submission.system_message,
        best_comments_count=submission.best_comments_count,
    )
