"""
Farm Schemas
============

Pydantic models for persisted farm records and farm API requests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator

from coopclimate.domain.age_profile import lookup_profile
from coopclimate.domain.farm import ActuatorState, Farm
from coopclimate.enums import ActuatorField, AgeProfileId
from coopclimate.utils.time import coerce_datetime


def _utc(value: Any) -> Any:
    parsed = coerce_datetime(value)
    return parsed if parsed is not None else value


UtcDatetime = Annotated[datetime, BeforeValidator(_utc)]


# ============================================================================
# Persisted records
# ============================================================================


class ActuatorStateRecord(BaseModel):
    """Stored form of ActuatorState. Missing booleans fall back to creation defaults."""

    auto_mode: bool = True
    heater_on: bool = False
    safety_grill_on: bool = False
    fan_on: bool = False
    mister_on: bool = False
    heat_override: bool = False
    fan_override: bool = False
    mist_override: bool = False
    last_update: UtcDatetime

    @classmethod
    def from_state(cls, state: ActuatorState) -> "ActuatorStateRecord":
        return cls(**{f.value: state.get(f) for f in ActuatorField}, last_update=state.last_update)

    def to_state(self) -> ActuatorState:
        return ActuatorState(**self.model_dump())


class FarmRecord(BaseModel):
    """One farm as written by a FarmStore: id, name, age profile id, full actuator state, created_at."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    age_profile: AgeProfileId
    actuator_state: ActuatorStateRecord
    created_at: UtcDatetime

    @classmethod
    def from_farm(cls, farm: Farm) -> "FarmRecord":
        return cls(
            id=farm.id,
            name=farm.name,
            age_profile=farm.age_profile.id,
            actuator_state=ActuatorStateRecord.from_state(farm.actuator_state),
            created_at=farm.created_at,
        )

    def to_farm(self) -> Farm:
        return Farm(
            id=self.id,
            name=self.name,
            age_profile=lookup_profile(self.age_profile),
            actuator_state=self.actuator_state.to_state(),
            created_at=self.created_at,
        )


class FarmStoreDocument(BaseModel):
    """Whole-store document used by the JSON backend."""

    farms: list[dict[str, Any]] = Field(default_factory=list)
    active_farm_id: str | None = None


# ============================================================================
# API requests
# ============================================================================


class CreateFarmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    age_profile: AgeProfileId = Field(validation_alias=AliasChoices("age_profile", "ageProfile", "age_group"))

    @field_validator("age_profile", mode="before")
    @classmethod
    def _normalize_profile(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value


class RenameFarmRequest(BaseModel):
    name: str


class ToggleActuatorRequest(BaseModel):
    """Body of ``PATCH /api/farms/<id>/actuators``: ``{"field": "fan_on", "value": true}``."""

    field: ActuatorField
    value: bool = Field(strict=True)

    @field_validator("field", mode="before")
    @classmethod
    def _parse_field(cls, value: Any) -> ActuatorField:
        try:
            return ActuatorField.parse(value)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Unknown actuator field {value!r}") from exc
