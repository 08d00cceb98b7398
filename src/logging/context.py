# src/logging/context.py - v1
"""Contextual logging support: attach batch_id and merge_run_id to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per submit or merge run.
_batch_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "batch_id", default=None
)
_merge_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "merge_run_id", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    batch_id: str | None = None
    merge_run_id: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        batch_id=_batch_id.get(),
        merge_run_id=_merge_run_id.get(),
    )


def set_batch_context(batch_id: str) -> contextvars.Token[str | None]:
    """Set batch-level context. Pass the token to reset_batch_context()."""
    return _batch_id.set(batch_id)


def reset_batch_context(token: contextvars.Token[str | None]) -> None:
    """Restore the batch context that was active before set_batch_context()."""
    _batch_id.reset(token)


def set_merge_context(merge_run_id: str) -> None:
    """Set merge-level context (called once per merge run)."""
    _merge_run_id.set(merge_run_id)


def clear_context() -> None:
    """Reset all context variables."""
    _batch_id.set(None)
    _merge_run_id.set(None)
