"""
Farms API
=========

JSON endpoints over the farm registry: age profiles, farm lifecycle,
manual actuator toggles, series and passive status.
"""

from __future__ import annotations

import logging

from flask import Blueprint, Response

from coopclimate.blueprints.api._common import get_farm_service as _service
from coopclimate.blueprints.api._common import parse_body, success
from coopclimate.domain.age_profile import list_profiles
from coopclimate.schemas.farm import CreateFarmRequest, RenameFarmRequest, ToggleActuatorRequest
from coopclimate.utils.http import error_response, safe_route

logger = logging.getLogger("farms_api")

farms_api = Blueprint("farms_api", __name__)


@farms_api.errorhandler(404)
def not_found(error):
    return error_response("Resource not found", 404)


@farms_api.get("/age-profiles")
@safe_route("Failed to list age profiles")
def get_age_profiles() -> Response:
    return success([profile.to_dict() for profile in list_profiles()])


@farms_api.get("/farms")
@safe_route("Failed to list farms")
def list_farms() -> Response:
    service = _service()
    return success(
        {
            "farms": [farm.to_dict() for farm in service.list_farms()],
            "active_farm_id": service.get_active_farm_id(),
        }
    )


@farms_api.post("/farms")
@safe_route("Failed to create farm")
def create_farm() -> Response:
    payload = parse_body(CreateFarmRequest)
    farm = _service().add_farm(payload.name, payload.age_profile)
    return success(farm.to_dict(), 201, message=f"Farm '{farm.name}' created")


@farms_api.get("/farms/active")
@safe_route("Failed to get active farm")
def get_active_farm() -> Response:
    farm = _service().get_active_farm()
    return success(farm.to_dict() if farm else None)


@farms_api.get("/farms/<farm_id>")
@safe_route("Failed to get farm")
def get_farm(farm_id: str) -> Response:
    return success(_service().get_farm(farm_id).to_dict())


@farms_api.patch("/farms/<farm_id>")
@safe_route("Failed to rename farm")
def rename_farm(farm_id: str) -> Response:
    payload = parse_body(RenameFarmRequest)
    return success(_service().rename_farm(farm_id, payload.name).to_dict())


@farms_api.delete("/farms/<farm_id>")
@safe_route("Failed to remove farm")
def remove_farm(farm_id: str) -> Response:
    service = _service()
    service.remove_farm(farm_id)
    return success({"removed": farm_id, "active_farm_id": service.get_active_farm_id()})


@farms_api.post("/farms/<farm_id>/activate")
@safe_route("Failed to activate farm")
def activate_farm(farm_id: str) -> Response:
    service = _service()
    service.set_active(farm_id)
    return success({"active_farm_id": service.get_active_farm_id()})


@farms_api.patch("/farms/<farm_id>/actuators")
@safe_route("Failed to update actuator")
def toggle_actuator(farm_id: str) -> Response:
    payload = parse_body(ToggleActuatorRequest)
    state = _service().toggle_actuator(farm_id, payload.field, payload.value)
    return success(state.to_dict())


@farms_api.get("/farms/<farm_id>/series")
@safe_route("Failed to get farm series")
def get_farm_series(farm_id: str) -> Response:
    return success(_service().get_farm_series(farm_id).to_dict())


@farms_api.get("/farms/<farm_id>/status")
@safe_route("Failed to get farm status")
def get_farm_status(farm_id: str) -> Response:
    return success(_service().get_farm_status(farm_id).to_dict())
