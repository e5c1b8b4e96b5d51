import logging
from datetime import datetime, timezone
from unittest.mock import Mock

from coopclimate.domain.alert import Alert
from coopclimate.enums import AlertKind, AlertSeverity, FarmEvent
from coopclimate.services.notifications import (
    CompositeNotificationSink,
    EventBusNotificationSink,
    LoggingNotificationSink,
)
from coopclimate.services.protocols import NotificationSink

ALERT = Alert(
    severity=AlertSeverity.CRITICAL,
    kind=AlertKind.HEATING,
    temperature=28,
    threshold_range=(32, 35),
    farm_id="f1",
    farm_name="Coop1",
    profile_name="Chicks",
    timestamp=datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc),
)


def test_sinks_satisfy_protocol():
    for sink in (LoggingNotificationSink(), EventBusNotificationSink(Mock()), CompositeNotificationSink([])):
        assert isinstance(sink, NotificationSink)


def test_logging_sink_writes_warning(caplog):
    log = logging.getLogger("test.notifications")
    with caplog.at_level(logging.WARNING, logger="test.notifications"):
        LoggingNotificationSink(log).notify(ALERT)

    assert "Coop1" in caplog.text
    assert "32-35" in caplog.text


def test_event_bus_sink_publishes_typed_payload():
    bus = Mock()

    EventBusNotificationSink(bus).notify(ALERT)

    event, payload = bus.publish.call_args.args
    assert event == FarmEvent.CRITICAL_ALERT
    assert payload.farm_id == "f1"
    assert payload.severity == AlertSeverity.CRITICAL
    assert payload.message == ALERT.message
    assert "Emergency heating" in payload.message


def test_composite_sink_isolates_failures(caplog):
    broken = Mock()
    broken.notify.side_effect = RuntimeError("smtp down")
    working = Mock()

    CompositeNotificationSink([broken, working]).notify(ALERT)

    working.notify.assert_called_once_with(ALERT)
    assert "Notification sink Mock failed" in caplog.text
