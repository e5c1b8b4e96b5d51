"""
Sensor Reading Value Object
===========================
Immutable value object representing one simulated environmental reading.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from -inf (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


@dataclass(frozen=True)
class Reading:
    """
    A single point-in-time reading for one farm.

    temperature and humidity are integer-rounded at generation time;
    target is the farm's target temperature when the reading was drawn.
    """

    timestamp: datetime
    temperature: int
    humidity: int
    target: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "temperature": self.temperature,
            "humidity": self.humidity,
            "target": self.target,
        }
