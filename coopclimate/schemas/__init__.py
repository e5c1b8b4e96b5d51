"""
Pydantic schemas for persisted records, API requests and event payloads.
"""

from coopclimate.schemas.events import (
    ActiveFarmChangedPayload,
    ActuatorsUpdatedPayload,
    AlertPayload,
    FarmPayload,
    FarmRemovedPayload,
    ReadingRecordedPayload,
)
from coopclimate.schemas.farm import (
    ActuatorStateRecord,
    CreateFarmRequest,
    FarmRecord,
    FarmStoreDocument,
    RenameFarmRequest,
    ToggleActuatorRequest,
)

__all__ = [
    "ActiveFarmChangedPayload",
    "ActuatorStateRecord",
    "ActuatorsUpdatedPayload",
    "AlertPayload",
    "CreateFarmRequest",
    "FarmPayload",
    "FarmRecord",
    "FarmRemovedPayload",
    "FarmStoreDocument",
    "ReadingRecordedPayload",
    "RenameFarmRequest",
    "ToggleActuatorRequest",
]
