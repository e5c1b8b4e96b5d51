from typing import Literal

from pydantic import BaseModel, Field

from coopclimate.enums import AgeProfileId, AlertKind, AlertSeverity

ActuatorSource = Literal["auto", "manual"]


class FarmPayload(BaseModel):
    """Payload for farm_added / farm_renamed events."""

    schema_version: int = Field(default=1)
    farm_id: str
    name: str
    age_profile: AgeProfileId
    timestamp: str


class FarmRemovedPayload(BaseModel):
    schema_version: int = Field(default=1)
    farm_id: str
    name: str
    timestamp: str


class ActiveFarmChangedPayload(BaseModel):
    schema_version: int = Field(default=1)
    farm_id: str | None = None
    previous_farm_id: str | None = None
    timestamp: str


class ReadingRecordedPayload(BaseModel):
    """One simulated reading appended to a farm's series."""

    schema_version: int = Field(default=1)
    farm_id: str
    temperature: int
    humidity: int
    target: int
    timestamp: str


class ActuatorsUpdatedPayload(BaseModel):
    """Actuator state after an automatic change or a manual toggle."""

    schema_version: int = Field(default=1)
    farm_id: str
    source: ActuatorSource
    actuator_state: dict[str, bool | str]
    field: str | None = None  # set for manual toggles
    timestamp: str


class AlertPayload(BaseModel):
    """Critical excursion pushed to subscribers of critical_alert."""

    schema_version: int = Field(default=1)
    farm_id: str | None = None
    farm_name: str | None = None
    severity: AlertSeverity
    kind: AlertKind
    temperature: int
    threshold_range: tuple[int, int]
    message: str
    timestamp: str | None = None
