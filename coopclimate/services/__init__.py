"""Application services: farm orchestration, notification sinks and wiring."""

from coopclimate.services.farm_service import FarmRuntime, FarmService, FarmStatus
from coopclimate.services.notifications import (
    CompositeNotificationSink,
    EventBusNotificationSink,
    LoggingNotificationSink,
)
from coopclimate.services.protocols import FarmStore, NotificationSink

__all__ = [
    "CompositeNotificationSink",
    "EventBusNotificationSink",
    "FarmRuntime",
    "FarmService",
    "FarmStatus",
    "FarmStore",
    "LoggingNotificationSink",
    "NotificationSink",
]
