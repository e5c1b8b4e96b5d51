"""
Farm-related Enumerations
=========================

Enums for age profiles, actuator fields, alerts and temperature status.
"""

from enum import Enum


class AgeProfileId(str, Enum):
    """Growth stage identifiers for the built-in age profiles"""

    CHICK = "chick"
    GROWER = "grower"
    ADULT = "adult"

    def __str__(self):
        return self.value


class ActuatorField(str, Enum):
    """The eight boolean fields of an actuator state.

    Values are the attribute names on ``ActuatorState`` so a field can be
    applied with ``setattr`` once it has been parsed into this enum.
    """

    AUTO_MODE = "auto_mode"
    HEATER_ON = "heater_on"
    SAFETY_GRILL_ON = "safety_grill_on"
    FAN_ON = "fan_on"
    MISTER_ON = "mister_on"
    HEAT_OVERRIDE = "heat_override"
    FAN_OVERRIDE = "fan_override"
    MIST_OVERRIDE = "mist_override"

    def __str__(self):
        return self.value

    @classmethod
    def parse(cls, value: "ActuatorField | str") -> "ActuatorField":
        """Accept enum members, snake_case values or their camelCase spelling (``heaterOn``)."""
        if isinstance(value, cls):
            return value
        raw = str(value).strip()
        try:
            return cls(raw)
        except ValueError:
            pass
        snake = "".join(f"_{c.lower()}" if c.isupper() else c for c in raw).lstrip("_")
        return cls(snake)


class AlertSeverity(str, Enum):
    WARNING = "warning"
    CRITICAL = "critical"

    def __str__(self):
        return self.value


class AlertKind(str, Enum):
    HEATING = "heating"
    COOLING = "cooling"

    def __str__(self):
        return self.value


class TemperatureStatus(str, Enum):
    """Passive classification of the latest reading against a farm's band."""

    UNKNOWN = "unknown"
    OPTIMAL = "optimal"
    BELOW_RANGE = "below_range"
    ABOVE_RANGE = "above_range"
    CRITICAL_LOW = "critical_low"
    CRITICAL_HIGH = "critical_high"

    def __str__(self):
        return self.value


class StoreBackend(str, Enum):
    MEMORY = "memory"
    JSON = "json"
    SQLITE = "sqlite"

    def __str__(self):
        return self.value
