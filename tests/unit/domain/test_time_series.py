from datetime import datetime, timedelta, timezone

from coopclimate.domain.reading import Reading, round_half_up
from coopclimate.domain.time_series import SeriesSnapshot, TimeSeries

T0 = datetime(2026, 3, 1, tzinfo=timezone.utc)


def _reading(hours: float, temperature: int = 30) -> Reading:
    return Reading(timestamp=T0 + timedelta(hours=hours), temperature=temperature, humidity=60, target=30)


def test_empty_series_has_no_current_reading():
    series = TimeSeries()

    assert series.current() is None
    assert series.range() == []


def test_append_keeps_ascending_order_and_current_is_latest():
    series = TimeSeries()
    for h in range(5):
        series.append(_reading(h, temperature=28 + h))

    assert [r.temperature for r in series.range()] == [28, 29, 30, 31, 32]
    assert series.current().temperature == 32


def test_retention_evicts_readings_older_than_window():
    series = TimeSeries()
    for h in range(0, 49):
        series.append(_reading(h))

    latest = series.current().timestamp
    readings = series.range()
    assert all(r.timestamp >= latest - timedelta(hours=24) for r in readings)
    # the reading exactly 24h old is kept (eviction is strictly older)
    assert readings[0].timestamp == latest - timedelta(hours=24)
    assert len(readings) == 25


def test_retention_with_custom_window():
    series = TimeSeries(retention=timedelta(minutes=30))
    for minute in range(0, 120, 10):
        series.append(Reading(T0 + timedelta(minutes=minute), 30, 60, 30))

    assert len(series) == 4


def test_clear_empties_series():
    series = TimeSeries()
    series.append(_reading(0))
    series.clear()

    assert len(series) == 0
    assert series.current() is None


def test_range_is_a_copy():
    series = TimeSeries()
    series.append(_reading(0))
    series.range().clear()

    assert len(series) == 1


def test_snapshot_to_dict_for_empty_series():
    data = SeriesSnapshot().to_dict()

    assert data == {"readings": [], "current": None, "is_connected": False, "last_update": None}


def test_round_half_up_matches_dashboard_rounding():
    assert round_half_up(2.5) == 3
    assert round_half_up(3.5) == 4
    assert round_half_up(-2.5) == -2
    assert round_half_up(29.49) == 29
