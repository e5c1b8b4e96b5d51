"""
Farm Domain Model
=================

A farm is one independently controlled climate zone: a name, a fixed age
profile and exactly one ActuatorState. Changing the age category of a farm
is modeled as removing it and creating a new one, so ``age_profile`` never
changes after construction.

This is a pure domain model. Ownership, locking and scheduling live in
``coopclimate.services.farm_service``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from coopclimate.domain.age_profile import AgeProfile
from coopclimate.domain.exceptions import InvariantViolation
from coopclimate.enums import ActuatorField
from coopclimate.utils.time import utc_now


@dataclass
class ActuatorState:
    """Actuator booleans, manual override flags and the automatic-mode switch.

    heater_on and safety_grill_on move together under automatic control
    (the grill mirrors the lamp) unless heat_override is set.
    """

    auto_mode: bool = True
    heater_on: bool = False
    safety_grill_on: bool = False
    fan_on: bool = False
    mister_on: bool = False
    heat_override: bool = False
    fan_override: bool = False
    mist_override: bool = False
    last_update: datetime = field(default_factory=utc_now)

    def get(self, actuator_field: ActuatorField) -> bool:
        return bool(getattr(self, actuator_field.value))

    def set(self, actuator_field: ActuatorField, value: bool, *, at: datetime | None = None) -> None:
        setattr(self, actuator_field.value, bool(value))
        self.last_update = at or utc_now()

    def copy(self) -> "ActuatorState":
        return replace(self)

    def same_outputs(self, other: "ActuatorState") -> bool:
        """True when every boolean field matches (last_update ignored)."""
        return all(self.get(f) == other.get(f) for f in ActuatorField)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {f.value: self.get(f) for f in ActuatorField}
        data["last_update"] = self.last_update.isoformat()
        return data


@dataclass
class Farm:
    """
    Mutable farm aggregate.

    Attributes:
        id: Unique identifier, generated at creation
        name: Non-empty display name
        age_profile: Profile fixed at creation
        actuator_state: Current actuator/override state
        created_at: Creation timestamp (UTC)
    """

    id: str
    name: str
    age_profile: AgeProfile
    actuator_state: ActuatorState = field(default_factory=ActuatorState)
    created_at: datetime = field(default_factory=utc_now)

    def __post_init__(self):
        self.ensure_invariants()

    @staticmethod
    def new_id() -> str:
        return uuid.uuid4().hex

    def ensure_invariants(self) -> None:
        if not isinstance(self.age_profile, AgeProfile):
            raise InvariantViolation(f"Farm {self.id} has no age profile")
        if not isinstance(self.actuator_state, ActuatorState):
            raise InvariantViolation(f"Farm {self.id} has no actuator state")

    def copy(self) -> "Farm":
        """Detached copy: the actuator state is duplicated, the profile is shared (immutable)."""
        return replace(self, actuator_state=self.actuator_state.copy())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "age_profile": self.age_profile.to_dict(),
            "actuator_state": self.actuator_state.to_dict(),
            "created_at": self.created_at.isoformat(),
        }
