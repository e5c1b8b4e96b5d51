"""
Domain layer: value objects and aggregates for the farm control core.

No I/O, no threading. Services in ``coopclimate.services`` own instances
of these types and serialize access to them.
"""

from coopclimate.domain.age_profile import AGE_PROFILES, AgeProfile, list_profiles, lookup_profile
from coopclimate.domain.alert import Alert
from coopclimate.domain.exceptions import (
    ConfigurationError,
    CoopClimateError,
    InvariantViolation,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from coopclimate.domain.farm import ActuatorState, Farm
from coopclimate.domain.reading import Reading, round_half_up
from coopclimate.domain.time_series import SeriesSnapshot, TimeSeries

__all__ = [
    "AGE_PROFILES",
    "ActuatorState",
    "AgeProfile",
    "Alert",
    "ConfigurationError",
    "CoopClimateError",
    "Farm",
    "InvariantViolation",
    "NotFoundError",
    "PersistenceError",
    "Reading",
    "SeriesSnapshot",
    "TimeSeries",
    "ValidationError",
    "list_profiles",
    "lookup_profile",
    "round_half_up",
]
