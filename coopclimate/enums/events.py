from enum import Enum
from typing import TypeAlias


class FarmEvent(str, Enum):
    FARM_ADDED = "farm_added"
    FARM_REMOVED = "farm_removed"
    FARM_RENAMED = "farm_renamed"
    ACTIVE_FARM_CHANGED = "active_farm_changed"
    READING_RECORDED = "reading_recorded"
    ACTUATORS_UPDATED = "actuators_updated"
    CRITICAL_ALERT = "critical_alert"


EventType: TypeAlias = FarmEvent
