"""
FarmService
===========

Registry and orchestrator for farms. One FarmService owns every Farm, its
ActuatorState, its TimeSeries and its SensorSimulator, keyed by farm id.

Tick path (per farm, per interval)::

    TickScheduler job(farm_id) ──► tick(farm_id)
        simulator.tick(now) ──► on_tick(farm_id, reading)
            series.append(reading)
            evaluate(reading, profile, state)   (auto_mode only)
            apply next state to this farm only
        ──► notify(alert) / publish events      (after the farm lock is released)

Locking:
    * ``_registry_lock`` (RLock) guards the runtime map, insertion order,
      tick job handles and the active farm id.
    * Each FarmRuntime has its own lock guarding that farm's actuator state
      and series. Unrelated farms never contend.
    * Lock order is registry -> farm. Nothing takes the registry lock while
      holding a farm lock.
    * Every farm mutation ends with ``FarmRuntime.commit`` under the farm lock.
      Persistence reads those committed copies and takes no farm lock.

A tick job handle exists if and only if the farm is registered (when a
scheduler is attached). ``remove_farm`` cancels the job, then marks the
runtime closed under its lock, so a tick already in flight is either done
or sees ``closed`` and raises NotFoundError, which the scheduled wrapper
drops.

Persistence goes through the injected FarmStore with detached copies. The
in-memory registry is authoritative; a failing store is logged and the
operation still succeeds.
"""

from __future__ import annotations

import logging
import random
import threading
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Any, Callable

from coopclimate.control_loops.climate_evaluator import banner_alert, classify, evaluate
from coopclimate.domain.age_profile import AgeProfile, lookup_profile
from coopclimate.domain.alert import Alert
from coopclimate.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from coopclimate.domain.farm import ActuatorState, Farm
from coopclimate.domain.reading import Reading
from coopclimate.domain.time_series import DEFAULT_RETENTION, SeriesSnapshot, TimeSeries
from coopclimate.enums import ActuatorField, AgeProfileId, TemperatureStatus
from coopclimate.enums.events import FarmEvent
from coopclimate.schemas.events import (
    ActiveFarmChangedPayload,
    ActuatorsUpdatedPayload,
    FarmPayload,
    FarmRemovedPayload,
    ReadingRecordedPayload,
)
from coopclimate.services.protocols import FarmStore, NotificationSink
from coopclimate.simulation.sensor_simulator import SensorSimulator
from coopclimate.utils.event_bus import EventBus
from coopclimate.utils.time import utc_now
from coopclimate.workers.tick_scheduler import TickScheduler

logger = logging.getLogger(__name__)

TICK_JOB_PREFIX = "farm_tick"


@dataclass
class FarmRuntime:
    """Everything one farm owns. Only touched while holding ``lock``."""

    farm: Farm
    simulator: SensorSimulator
    series: TimeSeries
    lock: threading.Lock = field(default_factory=threading.Lock)
    closed: bool = False
    last_update: datetime | None = None
    saved: Farm | None = None

    def __post_init__(self) -> None:
        self.commit()

    def commit(self) -> None:
        """Caller holds ``lock``. Refresh the copy that persistence reads."""
        self.saved = self.farm.copy()


@dataclass(frozen=True)
class FarmStatus:
    """Passive dashboard state for one farm (the alert panel, never pushed)."""

    farm_id: str
    farm_name: str
    status: TemperatureStatus
    current: Reading | None
    actuator_state: ActuatorState
    alert: Alert | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "farm_id": self.farm_id,
            "farm_name": self.farm_name,
            "status": self.status.value,
            "current": self.current.to_dict() if self.current else None,
            "actuator_state": self.actuator_state.to_dict(),
            "alert": self.alert.to_dict() if self.alert else None,
        }


class FarmService:
    """
    Farm registry / orchestrator.

    Args:
        store: Persistence collaborator for the farm list and active id
        notifier: Receives critical alerts tagged with farm id and name
        scheduler: Drives one interval tick job per farm; ``None`` means ticks
            are only driven explicitly through ``tick`` / ``on_tick``
        event_bus: Optional bus for farm lifecycle and reading events
        clock: Source of "now" for seeds, ticks and timestamps
        rng: Master random source; each farm's simulator gets its own child generator
        tick_interval_seconds: Wall seconds between ticks of one farm
        seed_history_count: Readings seeded for a new farm
        seed_step: Spacing of seeded readings
        retention: Time series retention window
    """

    def __init__(
        self,
        store: FarmStore,
        notifier: NotificationSink,
        scheduler: TickScheduler | None = None,
        *,
        event_bus: EventBus | None = None,
        clock: Callable[[], datetime] = utc_now,
        rng: random.Random | None = None,
        tick_interval_seconds: float = 10.0,
        seed_history_count: int = 24,
        seed_step: timedelta = timedelta(hours=1),
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._scheduler = scheduler
        self._event_bus = event_bus
        self._clock = clock
        self._rng = rng or random.Random()
        self._tick_interval = tick_interval_seconds
        self._seed_count = seed_history_count
        self._seed_step = seed_step
        self._retention = retention

        self._registry_lock = threading.RLock()
        self._runtimes: dict[str, FarmRuntime] = {}
        self._tick_jobs: dict[str, str] = {}
        self._active_farm_id: str | None = None

    # ==================== Internal helpers ====================

    def _build_runtime(self, farm: Farm, now: datetime) -> FarmRuntime:
        simulator = SensorSimulator(
            farm.age_profile.target_temp,
            farm.age_profile.id,
            random.Random(self._rng.getrandbits(64)),
        )
        series = TimeSeries(self._retention)
        for reading in simulator.seed_history(now, self._seed_count, self._seed_step):
            series.append(reading)
        return FarmRuntime(farm=farm, simulator=simulator, series=series)

    def _require_runtime(self, farm_id: str) -> FarmRuntime:
        with self._registry_lock:
            runtime = self._runtimes.get(farm_id)
        if runtime is None:
            raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
        return runtime

    def _schedule_ticks(self, farm_id: str) -> None:
        """Caller holds the registry lock."""
        if self._scheduler is None:
            return
        job_id = f"{TICK_JOB_PREFIX}:{farm_id}"
        self._scheduler.schedule_interval(job_id, self._scheduled_tick, self._tick_interval, args=(farm_id,))
        self._tick_jobs[farm_id] = job_id

    def _cancel_ticks(self, farm_id: str) -> None:
        """Caller holds the registry lock. Idempotent."""
        job_id = self._tick_jobs.pop(farm_id, None)
        if job_id is not None and self._scheduler is not None:
            self._scheduler.cancel(job_id)

    def _scheduled_tick(self, farm_id: str) -> None:
        try:
            self.tick(farm_id)
        except NotFoundError:
            logger.debug("Dropped tick for removed farm %s", farm_id)

    def _snapshot_farms(self) -> list[Farm]:
        """Caller holds the registry lock. Reads committed copies, so no farm lock is taken."""
        return [runtime.saved for runtime in self._runtimes.values()]

    def _persist(self, *, farms: bool = True, active: bool = False) -> None:
        with self._registry_lock:
            try:
                if farms:
                    self._store.save_farms(self._snapshot_farms())
                if active:
                    self._store.save_active_farm_id(self._active_farm_id)
            except PersistenceError as exc:
                logger.error("Failed to persist farm registry: %s", exc, exc_info=True)

    def _publish(self, event: FarmEvent, payload: Any) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(event, payload)

    def _publish_active_changed(self, farm_id: str | None, previous: str | None) -> None:
        if farm_id == previous:
            return
        self._publish(
            FarmEvent.ACTIVE_FARM_CHANGED,
            ActiveFarmChangedPayload(
                farm_id=farm_id, previous_farm_id=previous, timestamp=self._clock().isoformat()
            ),
        )

    @staticmethod
    def _clean_name(name: Any) -> str:
        cleaned = name.strip() if isinstance(name, str) else ""
        if not cleaned:
            raise ValidationError("Farm name must not be empty", detail={"field": "name"})
        return cleaned

    # ==================== Lifecycle ====================

    def add_farm(self, name: str, age_profile: AgeProfile | AgeProfileId | str) -> Farm:
        """
        Create a farm, seed its history, start its ticks and make it active.

        Raises:
            ValidationError: If ``name`` is empty after trimming
            NotFoundError: If ``age_profile`` names no known profile
        """
        cleaned = self._clean_name(name)
        profile = age_profile if isinstance(age_profile, AgeProfile) else lookup_profile(age_profile)

        now = self._clock()
        farm = Farm(
            id=Farm.new_id(),
            name=cleaned,
            age_profile=profile,
            actuator_state=ActuatorState(last_update=now),
            created_at=now,
        )
        runtime = self._build_runtime(farm, now)

        with self._registry_lock:
            self._runtimes[farm.id] = runtime
            self._schedule_ticks(farm.id)
            previous = self._active_farm_id
            self._active_farm_id = farm.id
            self._persist(active=True)
            result = farm.copy()

        logger.info("Added farm '%s' (%s, %s)", farm.name, farm.id, profile.id)
        self._publish(
            FarmEvent.FARM_ADDED,
            FarmPayload(farm_id=farm.id, name=farm.name, age_profile=profile.id, timestamp=now.isoformat()),
        )
        self._publish_active_changed(farm.id, previous)
        return result

    def remove_farm(self, farm_id: str) -> None:
        """
        Stop a farm's ticks and drop it from the registry.

        If it was active, the first remaining farm in insertion order becomes
        active, or none when the registry is empty.

        Raises:
            NotFoundError: If no farm has this id
        """
        with self._registry_lock:
            runtime = self._runtimes.get(farm_id)
            if runtime is None:
                raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
            self._cancel_ticks(farm_id)
            del self._runtimes[farm_id]
            with runtime.lock:
                runtime.closed = True
                runtime.series.clear()
            previous = self._active_farm_id
            if previous == farm_id:
                self._active_farm_id = next(iter(self._runtimes), None)
            self._persist(active=previous != self._active_farm_id)
            active = self._active_farm_id

        logger.info("Removed farm '%s' (%s)", runtime.farm.name, farm_id)
        self._publish(
            FarmEvent.FARM_REMOVED,
            FarmRemovedPayload(farm_id=farm_id, name=runtime.farm.name, timestamp=self._clock().isoformat()),
        )
        self._publish_active_changed(active, previous)

    def set_active(self, farm_id: str) -> None:
        """Make ``farm_id`` the active farm. Raises NotFoundError if unknown."""
        with self._registry_lock:
            if farm_id not in self._runtimes:
                raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
            previous = self._active_farm_id
            self._active_farm_id = farm_id
            if previous != farm_id:
                self._persist(farms=False, active=True)

        if previous != farm_id:
            logger.info("Active farm changed %s -> %s", previous, farm_id)
        self._publish_active_changed(farm_id, previous)

    def rename_farm(self, farm_id: str, name: str) -> Farm:
        """Change a farm's display name. The age profile is immutable."""
        cleaned = self._clean_name(name)
        runtime = self._require_runtime(farm_id)
        with runtime.lock:
            if runtime.closed:
                raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
            runtime.farm.name = cleaned
            runtime.commit()
            result = runtime.farm.copy()
        self._persist()

        logger.info("Renamed farm %s to '%s'", farm_id, cleaned)
        self._publish(
            FarmEvent.FARM_RENAMED,
            FarmPayload(
                farm_id=farm_id,
                name=cleaned,
                age_profile=result.age_profile.id,
                timestamp=self._clock().isoformat(),
            ),
        )
        return result

    def restore(self) -> list[Farm]:
        """
        Re-register every stored farm with a fresh simulator, seeded series and timer.

        Stored actuator state and timestamps are kept. The stored active id is
        restored if it still names a farm, otherwise the first farm (or none)
        becomes active. Farms already registered are left alone.
        """
        stored = self._store.load_farms()
        stored_active = self._store.load_active_farm_id()
        now = self._clock()
        restored: list[Farm] = []

        with self._registry_lock:
            for farm in stored:
                if farm.id in self._runtimes:
                    logger.warning("Skipping duplicate stored farm %s", farm.id)
                    continue
                self._runtimes[farm.id] = self._build_runtime(farm.copy(), now)
                self._schedule_ticks(farm.id)
                restored.append(farm.copy())

            previous = self._active_farm_id
            if stored_active in self._runtimes:
                self._active_farm_id = stored_active
            elif self._active_farm_id not in self._runtimes:
                self._active_farm_id = next(iter(self._runtimes), None)
            if self._active_farm_id != stored_active:
                self._persist(farms=False, active=True)
            active = self._active_farm_id

        logger.info("Restored %d farm(s); active farm %s", len(restored), active)
        self._publish_active_changed(active, previous)
        return restored

    # ==================== Actuators ====================

    def toggle_actuator(self, farm_id: str, actuator_field: ActuatorField | str, value: bool) -> ActuatorState:
        """
        Set one of the eight actuator/override booleans directly.

        Manual toggles always win immediately, even without flipping the
        matching override flag; the next automatic evaluation may change the
        actuator back unless its override is set.

        Raises:
            ValidationError: Unknown field or non-boolean value
            NotFoundError: Unknown farm id
        """
        try:
            parsed = ActuatorField.parse(actuator_field)
        except ValueError:
            raise ValidationError(
                f"Unknown actuator field {actuator_field!r}", detail={"field": str(actuator_field)}
            ) from None
        if not isinstance(value, bool):
            raise ValidationError(f"Actuator value must be a boolean, got {value!r}", detail={"field": parsed.value})

        runtime = self._require_runtime(farm_id)
        now = self._clock()
        with runtime.lock:
            if runtime.closed:
                raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
            runtime.farm.actuator_state.set(parsed, value, at=now)
            runtime.commit()
            state = runtime.farm.actuator_state.copy()
        self._persist()

        logger.info("Farm %s: %s set to %s", farm_id, parsed.value, value)
        self._publish(
            FarmEvent.ACTUATORS_UPDATED,
            ActuatorsUpdatedPayload(
                farm_id=farm_id,
                source="manual",
                actuator_state=state.to_dict(),
                field=parsed.value,
                timestamp=now.isoformat(),
            ),
        )
        return state

    # ==================== Tick path ====================

    def tick(self, farm_id: str, now: datetime | None = None) -> Reading:
        """Draw one reading from this farm's simulator and run ``on_tick`` with it."""
        runtime = self._require_runtime(farm_id)
        with runtime.lock:
            if runtime.closed:
                raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
            reading = runtime.simulator.tick(now or self._clock())
        self.on_tick(farm_id, reading)
        return reading

    def on_tick(self, farm_id: str, reading: Reading) -> Alert | None:
        """
        Apply one reading to one farm.

        Appends to that farm's series; when the farm is in automatic mode,
        evaluates and applies the next actuator state; forwards a critical
        alert (tagged with farm id and name) to the notifier.

        Returns:
            The alert that was forwarded, if any

        Raises:
            NotFoundError: If the farm is unknown or was removed concurrently
        """
        runtime = self._require_runtime(farm_id)
        alert = None
        changed = False
        with runtime.lock:
            if runtime.closed:
                raise NotFoundError(f"Farm {farm_id} not found", detail={"farm_id": farm_id})
            farm = runtime.farm
            runtime.series.append(reading)
            runtime.last_update = reading.timestamp
            if farm.actuator_state.auto_mode:
                result = evaluate(reading, farm.age_profile, farm.actuator_state)
                changed = not result.state.same_outputs(farm.actuator_state)
                farm.actuator_state = result.state
                runtime.commit()
                if result.alert is not None:
                    alert = replace(
                        result.alert,
                        farm_id=farm.id,
                        farm_name=farm.name,
                        profile_name=farm.age_profile.name,
                        timestamp=reading.timestamp,
                    )
            state = farm.actuator_state.copy()

        logger.debug("Farm %s reading %s°C / %s%%", farm_id, reading.temperature, reading.humidity)
        self._publish(
            FarmEvent.READING_RECORDED,
            ReadingRecordedPayload(
                farm_id=farm_id,
                temperature=reading.temperature,
                humidity=reading.humidity,
                target=reading.target,
                timestamp=reading.timestamp.isoformat(),
            ),
        )
        if changed:
            logger.info(
                "Farm %s auto control at %s°C: heater=%s fan=%s mister=%s",
                farm_id,
                reading.temperature,
                state.heater_on,
                state.fan_on,
                state.mister_on,
            )
            self._persist()
            self._publish(
                FarmEvent.ACTUATORS_UPDATED,
                ActuatorsUpdatedPayload(
                    farm_id=farm_id,
                    source="auto",
                    actuator_state=state.to_dict(),
                    timestamp=reading.timestamp.isoformat(),
                ),
            )
        if alert is not None:
            self._notifier.notify(alert)
        return alert

    # ==================== Queries ====================

    def list_farms(self) -> list[Farm]:
        """Detached copies of every farm, in insertion order."""
        with self._registry_lock:
            return [farm.copy() for farm in self._snapshot_farms()]

    def get_farm(self, farm_id: str) -> Farm:
        runtime = self._require_runtime(farm_id)
        with runtime.lock:
            return runtime.farm.copy()

    def get_active_farm_id(self) -> str | None:
        with self._registry_lock:
            return self._active_farm_id

    def get_active_farm(self) -> Farm | None:
        with self._registry_lock:
            runtime = self._runtimes.get(self._active_farm_id) if self._active_farm_id else None
            if runtime is None:
                return None
            with runtime.lock:
                return runtime.farm.copy()

    def get_farm_series(self, farm_id: str) -> SeriesSnapshot:
        """
        Retained readings, latest reading and connection flag for one farm.

        Unknown ids yield an empty, disconnected snapshot rather than an error.
        """
        with self._registry_lock:
            runtime = self._runtimes.get(farm_id)
        if runtime is None:
            return SeriesSnapshot()
        with runtime.lock:
            current = runtime.series.current()
            return SeriesSnapshot(
                readings=runtime.series.range(),
                current=current,
                is_connected=not runtime.closed and current is not None,
                last_update=runtime.last_update,
            )

    def get_farm_status(self, farm_id: str) -> FarmStatus:
        runtime = self._require_runtime(farm_id)
        with runtime.lock:
            current = runtime.series.current()
            profile = runtime.farm.age_profile
            alert = banner_alert(current, profile)
            if alert is not None:
                alert = replace(alert, farm_id=farm_id, farm_name=runtime.farm.name, profile_name=profile.name)
            return FarmStatus(
                farm_id=farm_id,
                farm_name=runtime.farm.name,
                status=classify(current.temperature, profile) if current else TemperatureStatus.UNKNOWN,
                current=current,
                actuator_state=runtime.farm.actuator_state.copy(),
                alert=alert,
            )

    def tick_job_ids(self) -> dict[str, str]:
        with self._registry_lock:
            return dict(self._tick_jobs)

    # ==================== Start / shutdown ====================

    def start(self) -> None:
        """Ensure every registered farm has a tick job and start the scheduler."""
        if self._scheduler is None:
            return
        with self._registry_lock:
            for farm_id in self._runtimes:
                if farm_id not in self._tick_jobs:
                    self._schedule_ticks(farm_id)
        if not self._scheduler.is_running():
            self._scheduler.start()

    def shutdown(self) -> None:
        """Cancel every farm's tick job. Farms stay registered."""
        with self._registry_lock:
            for farm_id in list(self._tick_jobs):
                self._cancel_ticks(farm_id)
        logger.info("FarmService shut down")
