"""
Farm Time Series
================

Bounded, time-ordered buffer of readings for a single farm.

Appends are expected in non-decreasing timestamp order (one tick source per
farm). After every append, entries older than ``latest - retention`` are
evicted from the front, so the buffer never holds more than the retention
window.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from coopclimate.domain.reading import Reading

DEFAULT_RETENTION = timedelta(hours=24)


class TimeSeries:
    """Per-farm rolling window of readings. Not thread-safe; the owner serializes access."""

    def __init__(self, retention: timedelta = DEFAULT_RETENTION) -> None:
        if retention <= timedelta(0):
            raise ValueError(f"retention must be positive, got {retention}")
        self.retention = retention
        self._readings: deque[Reading] = deque()

    def __len__(self) -> int:
        return len(self._readings)

    def append(self, reading: Reading) -> None:
        self._readings.append(reading)
        cutoff = reading.timestamp - self.retention
        while self._readings and self._readings[0].timestamp < cutoff:
            self._readings.popleft()

    def range(self) -> list[Reading]:
        return list(self._readings)

    def current(self) -> Reading | None:
        return self._readings[-1] if self._readings else None

    def clear(self) -> None:
        self._readings.clear()


@dataclass(frozen=True)
class SeriesSnapshot:
    """Read-only view handed to presentation code."""

    readings: list[Reading] = field(default_factory=list)
    current: Reading | None = None
    is_connected: bool = False
    last_update: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "readings": [r.to_dict() for r in self.readings],
            "current": self.current.to_dict() if self.current else None,
            "is_connected": self.is_connected,
            "last_update": self.last_update.isoformat() if self.last_update else None,
        }
