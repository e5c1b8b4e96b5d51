"""
Shared test fixtures for the CoopClimate test suite.

Provides:
- A fixed, manually advanced clock
- Seeded random sources for reproducible simulations
- In-memory FarmStore and a recording notification sink
- A FarmService wired to an unstarted TickScheduler so ticks are driven explicitly

Usage:
    def test_example(farm_service):
        farm = farm_service.add_farm("Coop1", "grower")
        farm_service.tick(farm.id)
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone

import pytest

from coopclimate.domain.alert import Alert
from coopclimate.services.farm_service import FarmService
from coopclimate.workers.tick_scheduler import TickScheduler
from infrastructure.persistence.memory_store import InMemoryFarmStore

# ---------------------------------------------------------------------------
# Logging, keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("coopclimate").setLevel(logging.WARNING)
logging.getLogger("infrastructure").setLevel(logging.WARNING)

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; ``advance`` moves it forward."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current += timedelta(**kwargs)
        return self.current


class RecordingSink:
    """NotificationSink that keeps every alert it receives."""

    def __init__(self) -> None:
        self.alerts: list[Alert] = []

    def notify(self, alert: Alert) -> None:
        self.alerts.append(alert)

    def for_farm(self, farm_id: str) -> list[Alert]:
        return [alert for alert in self.alerts if alert.farm_id == farm_id]


# ========================== Fixtures =======================================


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def rng():
    return random.Random(1234)


@pytest.fixture()
def store():
    return InMemoryFarmStore()


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def scheduler():
    """Unstarted scheduler: jobs register but never fire on their own."""
    sched = TickScheduler(check_interval_seconds=0.01, max_workers=2)
    yield sched
    sched.stop()


@pytest.fixture()
def farm_service(store, sink, scheduler, clock, rng):
    service = FarmService(store, sink, scheduler, clock=clock, rng=rng)
    yield service
    service.shutdown()
