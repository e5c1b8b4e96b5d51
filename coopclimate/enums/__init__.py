"""
Enums Module
============

Enumeration types for CoopClimate. Enums keep farm fields, alert
classifications and event topics type safe across the codebase.
"""

from coopclimate.enums.events import EventType, FarmEvent
from coopclimate.enums.farm import (
    ActuatorField,
    AgeProfileId,
    AlertKind,
    AlertSeverity,
    StoreBackend,
    TemperatureStatus,
)

__all__ = [
    "ActuatorField",
    "AgeProfileId",
    "AlertKind",
    "AlertSeverity",
    "EventType",
    "FarmEvent",
    "StoreBackend",
    "TemperatureStatus",
]
