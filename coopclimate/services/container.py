from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable

from coopclimate.config import AppConfig
from coopclimate.enums import StoreBackend
from coopclimate.services.farm_service import FarmService
from coopclimate.services.notifications import (
    CompositeNotificationSink,
    EventBusNotificationSink,
    LoggingNotificationSink,
)
from coopclimate.services.protocols import FarmStore, NotificationSink
from coopclimate.utils.event_bus import EventBus
from coopclimate.utils.time import SimulationClock
from coopclimate.workers.tick_scheduler import TickScheduler
from infrastructure.persistence import DeferredFarmStore, InMemoryFarmStore, JsonFarmStore, SQLiteFarmStore

logger = logging.getLogger(__name__)


def build_store(config: AppConfig) -> FarmStore:
    """Create the configured FarmStore; file-backed stores are wrapped in a write-behind layer."""
    backend = config.backend
    if backend == StoreBackend.MEMORY:
        return InMemoryFarmStore()
    if backend == StoreBackend.SQLITE:
        inner: FarmStore = SQLiteFarmStore(config.database_path)
    else:
        inner = JsonFarmStore(os.path.abspath(config.data_dir))
    return DeferredFarmStore(inner, flush_seconds=config.persistence_flush_seconds)


@dataclass
class ServiceContainer:
    """Aggregate and manage core backend services."""

    config: AppConfig
    event_bus: EventBus
    scheduler: TickScheduler
    store: FarmStore
    notifier: NotificationSink
    farm_service: FarmService
    _started: bool = field(default=False, init=False, repr=False)
    _shutdown_complete: bool = field(default=False, init=False, repr=False)

    @classmethod
    def build(
        cls,
        config: AppConfig,
        *,
        store: FarmStore | None = None,
        clock: Callable[[], datetime] | None = None,
        rng: random.Random | None = None,
        restore: bool = True,
    ) -> "ServiceContainer":
        """Construct the service container with all dependencies.

        Args:
            config: Application configuration
            store: Override the configured FarmStore (tests)
            clock: Override the simulation clock
            rng: Seeded random source for reproducible simulations
            restore: Re-register farms saved in the store
        """
        logger.info("Building ServiceContainer (store=%s)", config.backend)
        event_bus = EventBus(queue_size=config.eventbus_queue_size, worker_count=config.eventbus_worker_count)
        scheduler = TickScheduler(
            check_interval_seconds=config.scheduler_check_interval_seconds,
            max_workers=config.scheduler_max_workers,
        )
        store = store if store is not None else build_store(config)
        notifier = CompositeNotificationSink([LoggingNotificationSink(), EventBusNotificationSink(event_bus)])
        farm_service = FarmService(
            store,
            notifier,
            scheduler,
            event_bus=event_bus,
            clock=clock or SimulationClock(config.time_scale),
            rng=rng,
            tick_interval_seconds=config.tick_interval_seconds,
            seed_history_count=config.seed_history_count,
            seed_step=timedelta(minutes=config.seed_step_minutes),
            retention=timedelta(hours=config.retention_hours),
        )
        container = cls(
            config=config,
            event_bus=event_bus,
            scheduler=scheduler,
            store=store,
            notifier=notifier,
            farm_service=farm_service,
        )
        if restore:
            farm_service.restore()
        return container

    def start(self) -> None:
        """Start per-farm ticking."""
        if self._started:
            return
        self.farm_service.start()
        self._started = True

    def shutdown(self) -> None:
        """Release external resources before process exit."""
        if self._shutdown_complete:
            return
        self._shutdown_complete = True
        self.farm_service.shutdown()
        self.scheduler.stop()
        close = getattr(self.store, "close", None)
        if callable(close):
            close()
        self.event_bus.stop()
        logger.info("ServiceContainer shut down")
