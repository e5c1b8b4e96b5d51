"""
Notification sinks for critical alerts.

The farm service calls ``notify`` after releasing the farm lock. Sinks are
fire-and-forget: a failing sink is logged by the composite and never
propagates into the tick path.
"""

from __future__ import annotations

import logging
from typing import Iterable

from coopclimate.domain.alert import Alert
from coopclimate.enums.events import FarmEvent
from coopclimate.schemas.events import AlertPayload
from coopclimate.services.protocols import NotificationSink
from coopclimate.utils.event_bus import EventBus

logger = logging.getLogger(__name__)


class LoggingNotificationSink:
    """Writes each alert as a WARNING log line."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def notify(self, alert: Alert) -> None:
        low, high = alert.threshold_range
        self._log.warning(
            "CRITICAL %s alert for farm '%s' (%s): %s°C outside %s-%s°C",
            alert.kind,
            alert.farm_name,
            alert.farm_id,
            alert.temperature,
            low,
            high,
        )


class EventBusNotificationSink:
    """Publishes each alert as a ``critical_alert`` event."""

    def __init__(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus

    def notify(self, alert: Alert) -> None:
        self._event_bus.publish(
            FarmEvent.CRITICAL_ALERT,
            AlertPayload(
                farm_id=alert.farm_id,
                farm_name=alert.farm_name,
                severity=alert.severity,
                kind=alert.kind,
                temperature=alert.temperature,
                threshold_range=alert.threshold_range,
                message=alert.message,
                timestamp=alert.timestamp.isoformat() if alert.timestamp else None,
            ),
        )


class CompositeNotificationSink:
    """Fans an alert out to several sinks."""

    def __init__(self, sinks: Iterable[NotificationSink]) -> None:
        self._sinks = list(sinks)

    def notify(self, alert: Alert) -> None:
        for sink in self._sinks:
            try:
                sink.notify(alert)
            except Exception:
                logger.error("Notification sink %s failed", type(sink).__name__, exc_info=True)
