"""
HTTP response helpers for the JSON API.

Every response uses one envelope::

    {"ok": true,  "data": <payload>, "error": null}
    {"ok": false, "data": null,      "error": {"message": ..., "status": ..., "timestamp": ...}}

``safe_route`` turns CoopClimateError subclasses into their ``http_status``
and hides everything else behind a generic 500.
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable

from flask import Response, jsonify

from coopclimate.domain.exceptions import CoopClimateError
from coopclimate.utils.time import iso_now

_log = logging.getLogger(__name__)

# client-facing text for errors whose real message stays in the server log
_GENERIC_MESSAGES: dict[int, str] = {
    400: "Invalid request",
    404: "Resource not found",
    405: "Method not allowed",
    500: "An internal error occurred",
}


def _envelope(ok: bool, data: Any, error: dict[str, Any] | None, status: int, **extra: Any) -> Response:
    response = jsonify({"ok": ok, "data": data, "error": error, **extra})
    response.status_code = status
    return response


def success_response(data: Any = None, status: int = 200, *, message: str | None = None) -> Response:
    extra = {"message": message} if message is not None else {}
    return _envelope(True, data, None, status, **extra)


def error_response(message: str, status: int = 500, *, details: dict | None = None) -> Response:
    error: dict[str, Any] = {"message": message, "status": status, "timestamp": iso_now()}
    if details:
        error["details"] = details
    return _envelope(False, None, error, status)


def safe_error(exc: BaseException, status: int = 500, *, context: str = "") -> Response:
    """Log ``exc`` with its traceback and answer with a generic message for ``status``."""
    _log.error("API error [%s] %s: %s", status, context, exc, exc_info=exc)
    return error_response(_GENERIC_MESSAGES.get(status, _GENERIC_MESSAGES[500]), status)


def error_for(exc: CoopClimateError, fallback: str) -> Response:
    """Map a domain error to its response: 4xx keep their message, 5xx are masked."""
    status = exc.http_status
    if status >= 500:
        return safe_error(exc, status, context=fallback)
    _log.info("API %s: %s", status, exc)
    return error_response(str(exc) or fallback, status, details=exc.detail or None)


def safe_route(error_message: str = "An internal error occurred") -> Callable:
    """Wrap a route so it always answers with the JSON envelope.

    Usage::

        @farms_api.get("/farms/<farm_id>")
        @safe_route("Failed to get farm")
        def get_farm(farm_id):
            ...
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Response:
            try:
                return fn(*args, **kwargs)
            except CoopClimateError as exc:
                return error_for(exc, error_message)
            except Exception as exc:
                return safe_error(exc, 500, context=error_message)

        return wrapper

    return decorator
