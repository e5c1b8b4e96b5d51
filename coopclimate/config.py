"""
Configuration for CoopClimate
=============================
Runtime settings for the farm control core, loaded from ``COOPCLIMATE_*``
environment variables. Sets up the logging configuration as well.
"""

import logging
import os
from contextlib import suppress
from dataclasses import dataclass, field
from typing import Any, Callable

from coopclimate.domain.exceptions import ConfigurationError
from coopclimate.enums import StoreBackend


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "t", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be an integer.") from None


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Environment variable {name} must be a number.") from None


@dataclass
class AppConfig:
    """Runtime configuration loaded from environment variables."""

    environment: str = field(default_factory=lambda: os.getenv("COOPCLIMATE_ENV", "development"))
    DEBUG: bool = field(default_factory=lambda: _env_bool("COOPCLIMATE_DEBUG", False))
    host: str = field(default_factory=lambda: os.getenv("COOPCLIMATE_HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: _env_int("COOPCLIMATE_PORT", 8000))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("COOPCLIMATE_LOG_LEVEL", "INFO"))
    log_file: str = field(default_factory=lambda: os.getenv("COOPCLIMATE_LOG_FILE", "logs/coopclimate.log"))
    log_to_file: bool = field(default_factory=lambda: _env_bool("COOPCLIMATE_LOG_TO_FILE", True))

    # Simulation cadence. One tick produces exactly one reading per farm.
    # time_scale=1.0 keeps reading timestamps on the wall clock; 360 maps a
    # 10 second tick onto one simulated hour.
    tick_interval_seconds: float = field(
        default_factory=lambda: _env_float("COOPCLIMATE_TICK_INTERVAL_SECONDS", 10.0)
    )
    time_scale: float = field(default_factory=lambda: _env_float("COOPCLIMATE_TIME_SCALE", 1.0))
    seed_history_count: int = field(default_factory=lambda: _env_int("COOPCLIMATE_SEED_HISTORY_COUNT", 24))
    seed_step_minutes: int = field(default_factory=lambda: _env_int("COOPCLIMATE_SEED_STEP_MINUTES", 60))
    retention_hours: int = field(default_factory=lambda: _env_int("COOPCLIMATE_RETENTION_HOURS", 24))

    # Persistence
    store_backend: str = field(default_factory=lambda: os.getenv("COOPCLIMATE_STORE", StoreBackend.JSON.value))
    data_dir: str = field(default_factory=lambda: os.getenv("COOPCLIMATE_DATA_DIR", "var"))
    database_path: str = field(
        default_factory=lambda: os.getenv("COOPCLIMATE_DATABASE_PATH", "database/coopclimate.db")
    )
    persistence_flush_seconds: float = field(
        default_factory=lambda: _env_float("COOPCLIMATE_PERSIST_FLUSH_SECONDS", 1.0)
    )

    # Scheduler / EventBus
    scheduler_check_interval_seconds: float = field(
        default_factory=lambda: _env_float("COOPCLIMATE_SCHEDULER_CHECK_INTERVAL", 0.25)
    )
    scheduler_max_workers: int = field(default_factory=lambda: _env_int("COOPCLIMATE_SCHEDULER_WORKERS", 4))
    eventbus_queue_size: int = field(default_factory=lambda: _env_int("COOPCLIMATE_EVENTBUS_QUEUE_SIZE", 1024))
    eventbus_worker_count: int = field(default_factory=lambda: _env_int("COOPCLIMATE_EVENTBUS_WORKER_COUNT", 2))

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self.validate()

    def validate(self) -> None:
        if self.tick_interval_seconds <= 0:
            raise ConfigurationError(f"tick_interval_seconds must be positive, got {self.tick_interval_seconds}")
        if self.time_scale <= 0:
            raise ConfigurationError(f"time_scale must be positive, got {self.time_scale}")
        if self.retention_hours <= 0:
            raise ConfigurationError(f"retention_hours must be positive, got {self.retention_hours}")
        if self.seed_history_count < 0:
            raise ConfigurationError(f"seed_history_count cannot be negative, got {self.seed_history_count}")
        if self.seed_step_minutes <= 0:
            raise ConfigurationError(f"seed_step_minutes must be positive, got {self.seed_step_minutes}")
        try:
            StoreBackend(str(self.store_backend).lower())
        except ValueError:
            valid = ", ".join(b.value for b in StoreBackend)
            raise ConfigurationError(f"Unknown store backend {self.store_backend!r} (expected one of {valid})") from None

    @property
    def backend(self) -> StoreBackend:
        return StoreBackend(str(self.store_backend).lower())

    def as_flask_config(self) -> dict[str, Any]:
        """Render configuration values for Flask application."""
        return {
            "DEBUG": self.DEBUG,
            "ENV": self.environment,
            "JSON_SORT_KEYS": False,
        }


_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_CONSOLE_HANDLER = "coopclimate_console"
_FILE_HANDLER = "coopclimate_file"


def _install_handler(root: logging.Logger, name: str, factory: Callable[[], logging.Handler]) -> bool:
    """Attach the handler called ``name`` once; True if it was new."""
    if any(h.get_name() == name for h in root.handlers):
        return False
    handler = factory()
    handler.set_name(name)
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    root.addHandler(handler)
    return True


def _console_handler() -> logging.Handler:
    import sys

    with suppress(AttributeError, ValueError):
        sys.stdout.reconfigure(encoding="utf-8", errors="replace")
    return logging.StreamHandler(stream=sys.stdout)


def _file_handler(path: str) -> logging.Handler:
    from logging.handlers import RotatingFileHandler

    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    return RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")


def setup_logging(debug: bool = False, *, log_file: str | None = None, to_file: bool = True) -> None:
    """Configure the root logger for the server.

    Safe to call once per ``create_app``: our handlers are matched by name
    and only their level is refreshed on later calls.
    """
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)

    added = _install_handler(root, _CONSOLE_HANDLER, _console_handler)
    if to_file:
        path = log_file or "logs/coopclimate.log"
        added = _install_handler(root, _FILE_HANDLER, lambda: _file_handler(path)) or added

    for handler in root.handlers:
        if handler.get_name() in (_CONSOLE_HANDLER, _FILE_HANDLER):
            handler.setLevel(level)

    if added:
        root.info("Logging initialized at level: %s", logging.getLevelName(level))
    if _env_bool("COOPCLIMATE_SILENCE_WERKZEUG", True):
        logging.getLogger("werkzeug").setLevel(logging.WARNING)


def load_config() -> AppConfig:
    """Helper for callers to load and validate configuration."""
    config = AppConfig()
    if config.log_level.upper() == "DEBUG":
        config.DEBUG = True
    return config
