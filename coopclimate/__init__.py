from __future__ import annotations

import atexit
import logging
import threading
from typing import TYPE_CHECKING, Any

from flask import Flask, request
from werkzeug.exceptions import HTTPException

from coopclimate.blueprints.api import farms_api
from coopclimate.config import load_config, setup_logging

if TYPE_CHECKING:
    from coopclimate.services.container import ServiceContainer


def create_app(
    config_overrides: dict[str, Any] | None = None,
    *,
    container: "ServiceContainer" | None = None,
    start_runtime: bool = True,
) -> Flask:
    """
    Application factory.

    Args:
        config_overrides: AppConfig attribute overrides, e.g. ``{"store_backend": "memory"}``
        container: Pre-built container (tests); when given it is used as-is and not started
        start_runtime: Start per-farm ticking for a container built here
    """
    if container is not None:
        config = container.config
    else:
        config = load_config()
        if config_overrides:
            for key, value in config_overrides.items():
                setattr(config, key if hasattr(config, key) else key.lower(), value)
            config.validate()

    setup_logging(debug=config.DEBUG, log_file=config.log_file, to_file=config.log_to_file)

    flask_app = Flask(__name__)
    flask_app.config.update(config.as_flask_config())

    if container is None:
        from coopclimate.services.container import ServiceContainer

        container = ServiceContainer.build(config)
        if start_runtime:
            container.start()

        _shutdown_lock = threading.Lock()

        def _graceful_shutdown(reason: str = "unknown") -> None:
            with _shutdown_lock:
                logging.info("Graceful shutdown initiated (%s)", reason)
                container.shutdown()

        atexit.register(_graceful_shutdown, "atexit")

    flask_app.config["CONTAINER"] = container

    # Global JSON error handler for anything that escapes a route on /api/
    @flask_app.errorhandler(Exception)
    def _handle_unhandled(exc):
        if not request.path.startswith("/api/"):
            if isinstance(exc, HTTPException):
                return exc
            raise exc
        from coopclimate.domain.exceptions import CoopClimateError
        from coopclimate.utils.http import error_for, error_response, safe_error

        if isinstance(exc, HTTPException):
            status = int(exc.code or 500)
            if status >= 500:
                return safe_error(exc, status, context="http-exception")
            return error_response(exc.description or "Request failed", status)

        if isinstance(exc, CoopClimateError):
            return error_for(exc, "Request failed")

        return safe_error(exc, 500, context="unhandled")

    flask_app.register_blueprint(farms_api, url_prefix="/api")
    return flask_app
