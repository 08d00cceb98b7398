# src/storage/identity.py - v1
"""Timestamp-derived, collision-free identities for stored entries.

Format: ``yyyymmddThhmmssffffffZ_{hex6}``. The timestamp part sorts
lexicographically in creation order. Within one process the generator
never hands out the same timestamp twice: a stamp that is not strictly
later than the previous one is bumped forward by one microsecond.
"""

from __future__ import annotations

import threading
import uuid
from datetime import datetime, timedelta, timezone

ID_TIME_FORMAT = "%Y%m%dT%H%M%S%fZ"
_ONE_TICK = timedelta(microseconds=1)


def format_entry_id(timestamp: datetime) -> str:
    """Render an id for ``timestamp`` (normalised to UTC)."""
    ts = timestamp.astimezone(timezone.utc)
    return f"{ts.strftime(ID_TIME_FORMAT)}_{uuid.uuid4().hex[:6]}"


class MonotonicClock:
    """UTC clock whose readings strictly increase within the process."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last: datetime | None = None

    def now(self) -> datetime:
        ts = datetime.now(timezone.utc)
        with self._lock:
            if self._last is not None and ts <= self._last:
                ts = self._last + _ONE_TICK
            self._last = ts
        return ts

    def new_id(self) -> tuple[datetime, str]:
        """Return a fresh (timestamp, id) pair."""
        ts = self.now()
        return ts, format_entry_id(ts)


default_clock = MonotonicClock()
