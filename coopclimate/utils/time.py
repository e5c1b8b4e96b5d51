"""Utility functions for time handling.

All timestamps are UTC and timezone-aware. Serialized timestamps are
ISO-8601 strings with an explicit offset (e.g. "+00:00").
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Any, Callable


def utc_now() -> datetime:
    """Return current UTC time as an aware datetime."""
    return datetime.now(timezone.utc)


def iso_now(*, timespec: str | None = None) -> str:
    """Return current UTC time as an ISO8601 string (timezone-aware)."""
    now = utc_now()
    if timespec:
        return now.isoformat(timespec=timespec)
    return now.isoformat()


def coerce_datetime(value: Any) -> datetime | None:
    """
    Coerce value to datetime, returning None on failure.

    Args:
        value: String or datetime to coerce

    Returns:
        Datetime in timezone.utc or None if invalid
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        raw = value.strip()
        if raw.endswith("Z"):
            raw = raw.replace("Z", "+00:00")
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        return parsed.astimezone(timezone.utc)
    return parsed.replace(tzinfo=timezone.utc)


class SimulationClock:
    """
    Clock used for reading timestamps.

    With ``time_scale == 1.0`` this is the wall clock. Larger values make
    simulated time run faster than real time from the moment the clock was
    created, which is useful for demos that want a day of history to roll
    over in minutes.
    """

    def __init__(self, time_scale: float = 1.0, *, wall_clock: Callable[[], datetime] = utc_now) -> None:
        if time_scale <= 0:
            raise ValueError(f"time_scale must be positive, got {time_scale}")
        self.time_scale = time_scale
        self._wall_clock = wall_clock
        self._anchor = wall_clock()
        self._lock = threading.Lock()
        self._last: datetime | None = None

    def now(self) -> datetime:
        wall = self._wall_clock()
        if self.time_scale == 1.0:
            current = wall
        else:
            elapsed = (wall - self._anchor).total_seconds() * self.time_scale
            current = self._anchor + timedelta(seconds=elapsed)
        # never hand out a timestamp older than the previous one
        with self._lock:
            if self._last is not None and current < self._last:
                current = self._last
            self._last = current
        return current

    __call__ = now
