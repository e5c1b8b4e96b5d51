"""
Alert Value Object
==================
Transient alert produced when a reading crosses a farm's critical boundary.
Alerts are never stored; they are handed to the notification sink.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from coopclimate.enums import AlertKind, AlertSeverity


@dataclass(frozen=True)
class Alert:
    severity: AlertSeverity
    kind: AlertKind
    temperature: int
    threshold_range: tuple[int, int]
    farm_id: str | None = None
    farm_name: str | None = None
    profile_name: str | None = None
    timestamp: datetime | None = None

    @property
    def is_critical(self) -> bool:
        return self.severity == AlertSeverity.CRITICAL

    @property
    def message(self) -> str:
        low, high = self.threshold_range
        band = f"{low}-{high}°C"
        who = self.profile_name or "this flock"
        if self.kind == AlertKind.COOLING:
            if self.is_critical:
                return f"Temperature {self.temperature}°C is dangerously high for {who} ({band}) - Emergency cooling activated"
            return f"{self.temperature}°C exceeds optimal range for {who} ({band}). Cooling systems engaged."
        if self.is_critical:
            return f"Temperature {self.temperature}°C is dangerously low for {who} ({band}) - Emergency heating activated"
        return f"{self.temperature}°C is below optimal range for {who} ({band}). Heating systems engaged."

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.value,
            "kind": self.kind.value,
            "farm_id": self.farm_id,
            "farm_name": self.farm_name,
            "temperature": self.temperature,
            "threshold_range": list(self.threshold_range),
            "message": self.message,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
        }
