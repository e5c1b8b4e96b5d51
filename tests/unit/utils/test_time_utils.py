from datetime import datetime, timedelta, timezone

import pytest

from coopclimate.utils.time import SimulationClock, coerce_datetime, utc_now


def test_coerce_datetime_parses_z_suffix():
    dt = coerce_datetime("2026-01-01T00:00:00Z")
    assert dt is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.isoformat().endswith("+00:00")


def test_coerce_datetime_parses_offset():
    dt = coerce_datetime("2026-01-01T02:00:00+02:00")
    assert dt is not None
    assert dt.utcoffset() == timedelta(0)
    assert dt.hour == 0


def test_coerce_datetime_treats_naive_as_utc():
    dt = coerce_datetime(datetime(2026, 1, 1))
    assert dt.tzinfo is not None
    assert isinstance(utc_now() - dt, timedelta)


@pytest.mark.parametrize("value", [None, "", "yesterday", 12345])
def test_coerce_datetime_invalid_returns_none(value):
    assert coerce_datetime(value) is None


class _Wall:
    def __init__(self):
        self.current = datetime(2026, 3, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.current


def test_simulation_clock_follows_wall_clock_at_unit_scale():
    wall = _Wall()
    clock = SimulationClock(wall_clock=wall)

    wall.current += timedelta(seconds=10)

    assert clock() == wall.current


def test_simulation_clock_scales_elapsed_time():
    wall = _Wall()
    start = wall.current
    clock = SimulationClock(360, wall_clock=wall)

    wall.current += timedelta(seconds=10)

    assert clock.now() == start + timedelta(hours=1)


def test_simulation_clock_never_goes_backwards():
    wall = _Wall()
    clock = SimulationClock(wall_clock=wall)
    first = clock()

    wall.current -= timedelta(minutes=5)

    assert clock() == first


def test_simulation_clock_rejects_non_positive_scale():
    with pytest.raises(ValueError):
        SimulationClock(0)
