"""
Climate Evaluator
=================

Pure decision logic mapping (Reading, AgeProfile, ActuatorState) to the next
ActuatorState and an optional critical Alert.

All thresholds apply to the integer-rounded temperature ``t``:

    in range        min <= t <= max   (inclusive both ends)
    needs heating   t < min
    needs cooling   t > max
    emergency mist  needs cooling and t > max + 2
    critical        t > max + 3  or  t < min - 3

Rules run only when ``auto_mode`` is set. An actuator whose override flag is
set is never touched here; heater and safety grill always move together.
Any pass that controls at least one actuator stamps ``last_update`` with the
reading time, whether or not an output changed.

Only critical excursions produce an Alert. Non-critical excursions engage
actuators silently and show up through ``classify`` / ``banner_alert`` as
passive status for dashboards.
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from coopclimate.domain.age_profile import AgeProfile
from coopclimate.domain.alert import Alert
from coopclimate.domain.farm import ActuatorState
from coopclimate.domain.reading import Reading, round_half_up
from coopclimate.enums import AlertKind, AlertSeverity, TemperatureStatus

CRITICAL_MARGIN = 3
MIST_MARGIN = 2


@dataclass(frozen=True)
class Evaluation:
    state: ActuatorState
    alert: Alert | None = None


def evaluate(reading: Reading, profile: AgeProfile, state: ActuatorState) -> Evaluation:
    """
    Compute the next actuator state for one reading.

    Never raises and never mutates ``state``; the returned state is a new
    object. When ``auto_mode`` is off the input state is returned as an
    identical copy and no alert is produced.
    """
    if not state.auto_mode:
        return Evaluation(state=state.copy())

    t = round_half_up(reading.temperature)
    needs_heating = t < profile.min_temp
    needs_cooling = t > profile.max_temp

    updates: dict[str, bool] = {}
    if not state.heat_override:
        updates["heater_on"] = needs_heating
        updates["safety_grill_on"] = needs_heating
    if not state.fan_override:
        updates["fan_on"] = needs_cooling
    if not state.mist_override:
        updates["mister_on"] = needs_cooling and t > profile.max_temp + MIST_MARGIN

    next_state = replace(state, **updates)
    if updates:
        next_state.last_update = reading.timestamp

    alert = None
    # heating wins if both ever held; unreachable while min < max
    if needs_heating and t < profile.min_temp - CRITICAL_MARGIN:
        alert = Alert(AlertSeverity.CRITICAL, AlertKind.HEATING, t, profile.threshold_range)
    elif needs_cooling and t > profile.max_temp + CRITICAL_MARGIN:
        alert = Alert(AlertSeverity.CRITICAL, AlertKind.COOLING, t, profile.threshold_range)

    return Evaluation(state=next_state, alert=alert)


def classify(temperature: float, profile: AgeProfile) -> TemperatureStatus:
    t = round_half_up(temperature)
    if t < profile.min_temp - CRITICAL_MARGIN:
        return TemperatureStatus.CRITICAL_LOW
    if t > profile.max_temp + CRITICAL_MARGIN:
        return TemperatureStatus.CRITICAL_HIGH
    if t < profile.min_temp:
        return TemperatureStatus.BELOW_RANGE
    if t > profile.max_temp:
        return TemperatureStatus.ABOVE_RANGE
    return TemperatureStatus.OPTIMAL


def banner_alert(reading: Reading | None, profile: AgeProfile) -> Alert | None:
    """Passive alert-panel state for the latest reading (never pushed to a sink)."""
    if reading is None:
        return None
    status = classify(reading.temperature, profile)
    t = round_half_up(reading.temperature)
    if status in (TemperatureStatus.CRITICAL_LOW, TemperatureStatus.BELOW_RANGE):
        kind = AlertKind.HEATING
    elif status in (TemperatureStatus.CRITICAL_HIGH, TemperatureStatus.ABOVE_RANGE):
        kind = AlertKind.COOLING
    else:
        return None
    severity = (
        AlertSeverity.CRITICAL
        if status in (TemperatureStatus.CRITICAL_LOW, TemperatureStatus.CRITICAL_HIGH)
        else AlertSeverity.WARNING
    )
    return Alert(severity, kind, t, profile.threshold_range, timestamp=reading.timestamp)
