"""
Blueprint Common Utilities
==========================

Shared helpers for API blueprints: container access, request parsing and
response wrappers.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

from flask import current_app, request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from coopclimate.domain.exceptions import ValidationError
from coopclimate.utils.http import success_response

logger = logging.getLogger("api._common")

ModelT = TypeVar("ModelT", bound=BaseModel)


def get_container():
    """
    Get the service container from Flask app config.

    Raises:
        RuntimeError: If container is not configured
    """
    container = current_app.config.get("CONTAINER")
    if not container:
        raise RuntimeError("ServiceContainer not found in app config")
    return container


def get_farm_service():
    return get_container().farm_service


def get_json() -> dict:
    """JSON request body, or an empty dict when absent or malformed."""
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def parse_body(model: type[ModelT]) -> ModelT:
    """Validate the JSON body against ``model``; failures become a 400 ValidationError."""
    try:
        return model.model_validate(get_json())
    except PydanticValidationError as exc:
        errors: list[dict[str, Any]] = [
            {"loc": list(err["loc"]), "msg": err["msg"], "type": err["type"]} for err in exc.errors()
        ]
        raise ValidationError("Invalid request payload", detail={"errors": errors}) from exc


def success(data: dict | list | None = None, status: int = 200, *, message: str | None = None):
    """Flask Response with format: {"ok": true, "data": ..., "error": null}"""
    return success_response(data, status, message=message)
