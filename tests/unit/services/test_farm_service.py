"""Tests for FarmService: lifecycle, tick path, isolation, concurrency and persistence wiring."""

import threading
import time
from datetime import timedelta
from unittest.mock import Mock

import pytest

from coopclimate.domain.exceptions import NotFoundError, PersistenceError, ValidationError
from coopclimate.domain.reading import Reading
from coopclimate.enums import ActuatorField, AlertKind, AlertSeverity, FarmEvent, TemperatureStatus
from coopclimate.services.farm_service import FarmService
from infrastructure.persistence.memory_store import InMemoryFarmStore


def _reading(clock, temperature: int, target: int = 30) -> Reading:
    return Reading(timestamp=clock.advance(seconds=10), temperature=temperature, humidity=65, target=target)


# ========================== addFarm ========================================


def test_add_farm_seeds_history_and_becomes_active(farm_service, clock):
    farm = farm_service.add_farm("  Coop1 ", "grower")

    assert farm.name == "Coop1"
    assert farm.age_profile.max_temp == 32
    assert farm.actuator_state.auto_mode is True
    assert farm.created_at == clock.current
    assert farm_service.get_active_farm_id() == farm.id

    series = farm_service.get_farm_series(farm.id)
    assert len(series.readings) == 24
    assert all(r.target == 30 for r in series.readings)
    assert series.current == series.readings[-1]
    assert series.is_connected is True
    assert series.last_update is None


def test_newest_farm_always_becomes_active(farm_service):
    first = farm_service.add_farm("A", "chick")
    second = farm_service.add_farm("B", "adult")

    assert farm_service.get_active_farm().id == second.id
    assert [f.id for f in farm_service.list_farms()] == [first.id, second.id]


@pytest.mark.parametrize("name", ["", "   ", None])
def test_add_farm_rejects_empty_name_without_side_effects(farm_service, store, name):
    with pytest.raises(ValidationError):
        farm_service.add_farm(name, "grower")

    assert farm_service.list_farms() == []
    assert store.save_count == 0


def test_add_farm_unknown_profile(farm_service):
    with pytest.raises(NotFoundError):
        farm_service.add_farm("Coop1", "turkey")


def test_add_farm_schedules_tick_job(farm_service, scheduler):
    farm = farm_service.add_farm("Coop1", "grower")

    job = scheduler.get_job(farm_service.tick_job_ids()[farm.id])
    assert job is not None
    assert job.args == (farm.id,)
    assert job.interval_seconds == 10.0


def test_farm_ids_are_unique(farm_service):
    ids = {farm_service.add_farm(f"Coop{i}", "adult").id for i in range(20)}

    assert len(ids) == 20


# ========================== removeFarm / setActive =========================


def test_removing_active_farm_selects_first_remaining(farm_service):
    x = farm_service.add_farm("X", "grower")
    y = farm_service.add_farm("Y", "grower")
    z = farm_service.add_farm("Z", "grower")
    assert farm_service.get_active_farm_id() == z.id

    farm_service.remove_farm(z.id)
    assert farm_service.get_active_farm_id() == x.id

    farm_service.remove_farm(x.id)
    assert farm_service.get_active_farm_id() == y.id

    farm_service.remove_farm(y.id)
    assert farm_service.get_active_farm_id() is None
    assert farm_service.get_active_farm() is None


def test_removing_inactive_farm_keeps_active(farm_service):
    x = farm_service.add_farm("X", "grower")
    y = farm_service.add_farm("Y", "grower")

    farm_service.remove_farm(x.id)

    assert farm_service.get_active_farm_id() == y.id


def test_remove_cancels_tick_job_and_drops_late_ticks(farm_service, scheduler, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    job_id = farm_service.tick_job_ids()[farm.id]

    farm_service.remove_farm(farm.id)

    assert scheduler.get_job(job_id) is None
    assert farm.id not in farm_service.tick_job_ids()
    with pytest.raises(NotFoundError):
        farm_service.on_tick(farm.id, _reading(clock, 30))
    with pytest.raises(NotFoundError):
        farm_service.tick(farm.id)
    # scheduled wrapper swallows the NotFoundError for a removed farm
    farm_service._scheduled_tick(farm.id)
    assert farm_service.list_farms() == []


def test_remove_unknown_farm_raises(farm_service):
    with pytest.raises(NotFoundError):
        farm_service.remove_farm("missing")


def test_series_for_removed_or_unknown_farm_is_empty_and_disconnected(farm_service):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.remove_farm(farm.id)

    for farm_id in (farm.id, "never-existed"):
        snapshot = farm_service.get_farm_series(farm_id)
        assert snapshot.readings == []
        assert snapshot.current is None
        assert snapshot.is_connected is False


def test_set_active(farm_service, store):
    a = farm_service.add_farm("A", "grower")
    farm_service.add_farm("B", "grower")

    farm_service.set_active(a.id)

    assert farm_service.get_active_farm_id() == a.id
    assert store.load_active_farm_id() == a.id


def test_set_active_unknown_farm_raises(farm_service):
    farm_service.add_farm("A", "grower")

    with pytest.raises(NotFoundError):
        farm_service.set_active("missing")


# ========================== toggleActuator =================================


def test_toggle_sets_field_directly_and_updates_last_update(farm_service, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    clock.advance(minutes=5)

    state = farm_service.toggle_actuator(farm.id, ActuatorField.FAN_ON, True)

    assert state.fan_on is True
    assert state.last_update == clock.current
    assert farm_service.get_farm(farm.id).actuator_state.fan_on is True


def test_toggle_accepts_camel_case_field_names(farm_service):
    farm = farm_service.add_farm("Coop1", "grower")

    farm_service.toggle_actuator(farm.id, "heatOverride", True)

    assert farm_service.get_farm(farm.id).actuator_state.heat_override is True


def test_toggle_rejects_unknown_field_and_non_boolean(farm_service):
    farm = farm_service.add_farm("Coop1", "grower")

    with pytest.raises(ValidationError):
        farm_service.toggle_actuator(farm.id, "lightOn", True)
    with pytest.raises(ValidationError):
        farm_service.toggle_actuator(farm.id, "fan_on", "yes")


def test_toggle_unknown_farm_raises(farm_service):
    with pytest.raises(NotFoundError):
        farm_service.toggle_actuator("missing", "fan_on", True)


def test_manual_toggle_is_overridden_by_next_auto_tick_without_override(farm_service, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.toggle_actuator(farm.id, "fan_on", True)

    farm_service.on_tick(farm.id, _reading(clock, 30))

    assert farm_service.get_farm(farm.id).actuator_state.fan_on is False


# ========================== Tick path ======================================


def test_end_to_end_coop1_scenario(farm_service, sink, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    seeded = farm_service.get_farm_series(farm.id).readings
    assert len(seeded) == 24
    assert {r.target for r in seeded} == {30}

    reading = farm_service.tick(farm.id)
    assert 27 <= reading.temperature <= 33

    # max + 2: cooling without mist, no alert
    assert farm_service.on_tick(farm.id, _reading(clock, 34)) is None
    state = farm_service.get_farm(farm.id).actuator_state
    assert (state.fan_on, state.mister_on, state.heater_on) == (True, False, False)
    assert sink.alerts == []

    # max + 4: emergency mist and a critical cooling alert
    alert = farm_service.on_tick(farm.id, _reading(clock, 36))
    state = farm_service.get_farm(farm.id).actuator_state
    assert state.mister_on is True
    assert alert.severity == AlertSeverity.CRITICAL
    assert alert.kind == AlertKind.COOLING
    assert alert.farm_id == farm.id
    assert alert.farm_name == "Coop1"
    assert sink.alerts == [alert]


def test_grower_at_34_fans_without_mist_or_alert(farm_service, sink, clock):
    farm = farm_service.add_farm("Coop1", "grower")

    farm_service.on_tick(farm.id, _reading(clock, 34))

    state = farm_service.get_farm(farm.id).actuator_state
    assert (state.fan_on, state.mister_on, state.heater_on) == (True, False, False)
    assert sink.alerts == []


def test_boundary_readings_are_in_range(farm_service, sink, clock):
    farm = farm_service.add_farm("Coop1", "grower")

    for temperature in (28, 32):
        farm_service.on_tick(farm.id, _reading(clock, temperature))
        state = farm_service.get_farm(farm.id).actuator_state
        assert not (state.heater_on or state.safety_grill_on or state.fan_on or state.mister_on)

    assert sink.alerts == []


def test_override_immunity_across_many_ticks(farm_service, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.toggle_actuator(farm.id, "heat_override", True)

    for _ in range(50):
        farm_service.on_tick(farm.id, _reading(clock, 20))
        state = farm_service.get_farm(farm.id).actuator_state
        assert state.heater_on is False
        assert state.safety_grill_on is False

    farm_service.toggle_actuator(farm.id, "heater_on", True)
    farm_service.on_tick(farm.id, _reading(clock, 40))
    state = farm_service.get_farm(farm.id).actuator_state
    assert state.heater_on is True
    assert state.safety_grill_on is False


def test_manual_mode_freezes_actuator_state(farm_service, sink, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.toggle_actuator(farm.id, "fan_on", True)
    farm_service.toggle_actuator(farm.id, "auto_mode", False)
    frozen = farm_service.get_farm(farm.id).actuator_state

    for temperature in (10, 20, 30, 40, 50):
        farm_service.on_tick(farm.id, _reading(clock, temperature))

    assert farm_service.get_farm(farm.id).actuator_state == frozen
    assert sink.alerts == []
    assert farm_service.get_farm_series(farm.id).current.temperature == 50


def test_isolation_between_farms(farm_service, sink, clock):
    a = farm_service.add_farm("A", "chick")
    b = farm_service.add_farm("B", "adult")
    b_series = farm_service.get_farm_series(b.id).readings
    b_state = farm_service.get_farm(b.id).actuator_state

    for temperature in (40, 45, 20, 39, 50):
        farm_service.on_tick(a.id, _reading(clock, temperature, target=33))
    for _ in range(10):
        farm_service.tick(a.id)

    assert farm_service.get_farm_series(b.id).readings == b_series
    assert farm_service.get_farm(b.id).actuator_state == b_state
    assert sink.for_farm(b.id) == []
    assert len(sink.for_farm(a.id)) >= 3


def test_tick_records_last_update(farm_service, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    clock.advance(seconds=10)

    reading = farm_service.tick(farm.id)

    snapshot = farm_service.get_farm_series(farm.id)
    assert snapshot.last_update == reading.timestamp == clock.current
    assert snapshot.current == reading


def test_ticks_roll_history_over_retention_window(farm_service, clock):
    farm = farm_service.add_farm("Coop1", "grower")

    for _ in range(30):
        clock.advance(hours=1)
        farm_service.tick(farm.id)

    readings = farm_service.get_farm_series(farm.id).readings
    latest = readings[-1].timestamp
    assert all(r.timestamp >= latest - timedelta(hours=24) for r in readings)
    assert len(readings) == 25


def test_getters_return_detached_copies(farm_service):
    farm = farm_service.add_farm("Coop1", "grower")

    farm_service.get_farm(farm.id).actuator_state.fan_on = True
    farm_service.list_farms()[0].name = "Mutated"
    farm_service.get_farm_series(farm.id).readings.clear()

    assert farm_service.get_farm(farm.id).actuator_state.fan_on is False
    assert farm_service.get_farm(farm.id).name == "Coop1"
    assert len(farm_service.get_farm_series(farm.id).readings) == 24


# ========================== Status / rename ================================


def test_farm_status_reports_passive_warning(farm_service, sink, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.on_tick(farm.id, _reading(clock, 34))

    status = farm_service.get_farm_status(farm.id)

    assert status.status == TemperatureStatus.ABOVE_RANGE
    assert status.alert.severity == AlertSeverity.WARNING
    assert status.alert.farm_name == "Coop1"
    assert sink.alerts == []


def test_farm_status_optimal_has_no_alert(farm_service, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.on_tick(farm.id, _reading(clock, 30))

    status = farm_service.get_farm_status(farm.id)

    assert status.status == TemperatureStatus.OPTIMAL
    assert status.alert is None


def test_rename_farm(farm_service, store):
    farm = farm_service.add_farm("Coop1", "grower")

    renamed = farm_service.rename_farm(farm.id, " Henhouse ")

    assert renamed.name == "Henhouse"
    assert store.load_farms()[0].name == "Henhouse"
    with pytest.raises(ValidationError):
        farm_service.rename_farm(farm.id, " ")
    with pytest.raises(NotFoundError):
        farm_service.rename_farm("missing", "X")


# ========================== Persistence ====================================


def test_mutations_persist_detached_copies(farm_service, store):
    farm = farm_service.add_farm("Coop1", "grower")
    farm_service.toggle_actuator(farm.id, "mist_override", True)

    stored = store.load_farms()
    assert [f.id for f in stored] == [farm.id]
    assert stored[0].actuator_state.mist_override is True
    assert store.load_active_farm_id() == farm.id

    farm_service.remove_farm(farm.id)
    assert store.load_farms() == []
    assert store.load_active_farm_id() is None


def test_auto_tick_stamps_last_update_even_without_output_change(farm_service, store, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    saves = store.save_count

    reading = _reading(clock, 30)
    farm_service.on_tick(farm.id, reading)

    state = farm_service.get_farm(farm.id).actuator_state
    assert state.last_update == reading.timestamp == clock.current
    assert (state.heater_on, state.fan_on, state.mister_on) == (False, False, False)
    assert store.save_count == saves


def test_ticks_persist_only_when_actuators_change(farm_service, store, clock):
    farm = farm_service.add_farm("Coop1", "grower")
    saves = store.save_count

    farm_service.on_tick(farm.id, _reading(clock, 30))
    assert store.save_count == saves

    farm_service.on_tick(farm.id, _reading(clock, 35))
    assert store.save_count == saves + 1


def test_store_failure_is_logged_not_raised(sink, clock, rng, caplog):
    store = Mock()
    store.save_farms.side_effect = PersistenceError("disk full")
    service = FarmService(store, sink, clock=clock, rng=rng)

    farm = service.add_farm("Coop1", "grower")

    assert service.get_farm(farm.id).name == "Coop1"
    assert "Failed to persist farm registry" in caplog.text


def test_restore_reregisters_stored_farms(sink, clock, rng, scheduler):
    original_store = InMemoryFarmStore()
    first = FarmService(original_store, sink, clock=clock, rng=rng)
    a = first.add_farm("A", "chick")
    b = first.add_farm("B", "adult")
    first.toggle_actuator(a.id, "fan_override", True)
    first.set_active(a.id)

    restored_service = FarmService(original_store, sink, scheduler, clock=clock, rng=rng)
    restored = restored_service.restore()

    assert [f.id for f in restored] == [a.id, b.id]
    assert restored_service.get_active_farm_id() == a.id
    restored_a = restored_service.get_farm(a.id)
    assert restored_a.actuator_state.fan_override is True
    assert restored_a.created_at == a.created_at
    assert len(restored_service.get_farm_series(b.id).readings) == 24
    assert set(restored_service.tick_job_ids()) == {a.id, b.id}


def test_restore_falls_back_to_first_farm_when_active_id_is_stale(sink, clock, rng):
    store = InMemoryFarmStore()
    seed = FarmService(store, sink, clock=clock, rng=rng)
    a = seed.add_farm("A", "grower")
    seed.add_farm("B", "grower")
    store.save_active_farm_id("gone")

    service = FarmService(store, sink, clock=clock, rng=rng)
    service.restore()

    assert service.get_active_farm_id() == a.id
    assert store.load_active_farm_id() == a.id


def test_restore_cold_start_is_empty(farm_service):
    assert farm_service.restore() == []
    assert farm_service.get_active_farm_id() is None


# ========================== Concurrency ====================================


def test_toggle_between_ticks_is_never_lost(farm_service):
    farm = farm_service.add_farm("Coop1", "grower")
    stop = threading.Event()
    ticks = []

    def keep_ticking():
        while not stop.is_set():
            ticks.append(farm_service.tick(farm.id))

    ticker = threading.Thread(target=keep_ticking, daemon=True)
    ticker.start()
    try:
        farm_service.toggle_actuator(farm.id, "heat_override", True)
        farm_service.toggle_actuator(farm.id, "heater_on", True)
        seen = len(ticks)
        deadline = time.monotonic() + 2.0
        while len(ticks) < seen + 20 and time.monotonic() < deadline:
            time.sleep(0.001)
    finally:
        stop.set()
        ticker.join(timeout=5)

    assert not ticker.is_alive()
    assert len(ticks) >= seen + 20
    state = farm_service.get_farm(farm.id).actuator_state
    assert state.heat_override is True
    assert state.heater_on is True


def test_tick_on_one_farm_does_not_wait_for_another(farm_service, store, clock):
    a = farm_service.add_farm("A", "grower")
    b = farm_service.add_farm("B", "adult")
    hot = _reading(clock, 35)
    done = threading.Event()

    def tick_a():
        farm_service.on_tick(a.id, hot)
        done.set()

    b_lock = farm_service._runtimes[b.id].lock
    with b_lock:
        worker = threading.Thread(target=tick_a, daemon=True)
        worker.start()
        finished = done.wait(timeout=2.0)
    worker.join(timeout=5)

    assert finished
    stored = {f.id: f for f in store.load_farms()}
    assert stored[a.id].actuator_state.fan_on is True
    assert stored[b.id].actuator_state.fan_on is False


# ========================== Events =========================================


def test_lifecycle_events_are_published(sink, store, clock, rng):
    bus = Mock()
    service = FarmService(store, sink, event_bus=bus, clock=clock, rng=rng)

    farm = service.add_farm("Coop1", "grower")
    service.on_tick(farm.id, _reading(clock, 37))
    service.remove_farm(farm.id)

    events = [call.args[0] for call in bus.publish.call_args_list]
    assert events == [
        FarmEvent.FARM_ADDED,
        FarmEvent.ACTIVE_FARM_CHANGED,
        FarmEvent.READING_RECORDED,
        FarmEvent.ACTUATORS_UPDATED,
        FarmEvent.FARM_REMOVED,
        FarmEvent.ACTIVE_FARM_CHANGED,
    ]
