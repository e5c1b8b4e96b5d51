"""Centralized exception hierarchy for CoopClimate.

All domain and service exceptions inherit from :class:`CoopClimateError` so
that callers can catch a single base class when they need a broad safety
net, yet still match on specific subclasses where narrower handling is
appropriate.

The HTTP layer (see ``coopclimate/utils/http.safe_route``) maps these to
status codes through ``http_status``.

Hierarchy
---------
::

    CoopClimateError (base, maps to 500)
    ├── ValidationError       (400, bad input from caller)
    ├── NotFoundError         (404, farm or profile does not exist)
    ├── ConfigurationError    (500, missing / invalid config)
    ├── PersistenceError      (500, store backend failure)
    └── InvariantViolation    (500, construction bug; never recovered)
"""

from __future__ import annotations


class CoopClimateError(Exception):
    """Base exception for all CoopClimate errors.

    Parameters
    ----------
    message:
        Human-readable description.
    detail:
        Optional machine-readable context dict attached to the error for
        structured logging.
    """

    http_status: int = 500

    def __init__(self, message: str = "", *, detail: dict | None = None) -> None:
        super().__init__(message)
        self.detail = detail or {}


class ValidationError(CoopClimateError):
    """Caller supplied invalid input to a mutating operation (HTTP 400)."""

    http_status: int = 400


class NotFoundError(CoopClimateError):
    """Referenced farm or age profile does not exist (HTTP 404)."""

    http_status: int = 404


class ConfigurationError(CoopClimateError):
    """Missing or invalid application configuration."""

    http_status: int = 500


class PersistenceError(CoopClimateError):
    """A farm store backend failed to load or save."""

    http_status: int = 500


class InvariantViolation(CoopClimateError):
    """Internal state broke a construction invariant.

    Signals a programming error, not a runtime condition. Nothing in the
    core catches it.
    """

    http_status: int = 500
