# src/core/errors.py - v1
"""Exception hierarchy for the aggregation engine.

Validation and storage errors reach the caller of a submit. Parse errors
and empty merges are handled inside the merge run and only logged.
"""

from __future__ import annotations


class CommentRankError(Exception):
    """Base class for all engine errors."""


class BatchValidationError(CommentRankError, ValueError):
    """A submitted batch is malformed and was rejected before persistence."""


class StorageError(CommentRankError, OSError):
    """The storage medium is unavailable, unreadable or unwritable.

    Attributes:
        removed: Entries already deleted when a purge failed part-way.
    """

    def __init__(self, message: str, removed: int = 0) -> None:
        super().__init__(message)
        self.removed = removed


class MalformedRecordError(CommentRankError):
    """A stored record could not be parsed."""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"Malformed record {record_id}: {reason}")
        self.record_id = record_id
        self.reason = reason


class EmptyResultError(CommentRankError):
    """A merge found nothing to merge. Never surfaced to facade callers."""
