import pytest

from coopclimate.config import AppConfig, load_config
from coopclimate.domain.exceptions import ConfigurationError
from coopclimate.enums import StoreBackend


def test_defaults():
    config = AppConfig()

    assert config.tick_interval_seconds == 10.0
    assert config.seed_history_count == 24
    assert config.retention_hours == 24
    assert config.backend == StoreBackend.JSON


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("COOPCLIMATE_TICK_INTERVAL_SECONDS", "2.5")
    monkeypatch.setenv("COOPCLIMATE_STORE", "SQLite")
    monkeypatch.setenv("COOPCLIMATE_TIME_SCALE", "360")

    config = AppConfig()

    assert config.tick_interval_seconds == 2.5
    assert config.backend == StoreBackend.SQLITE
    assert config.time_scale == 360.0


def test_non_numeric_environment_value_is_rejected(monkeypatch):
    monkeypatch.setenv("COOPCLIMATE_PORT", "eighty")

    with pytest.raises(ValueError, match="COOPCLIMATE_PORT"):
        AppConfig()


@pytest.mark.parametrize(
    "overrides",
    [
        {"tick_interval_seconds": 0},
        {"time_scale": -1},
        {"retention_hours": 0},
        {"seed_history_count": -1},
        {"seed_step_minutes": 0},
        {"store_backend": "mongo"},
    ],
)
def test_invalid_values_raise_configuration_error(overrides):
    with pytest.raises(ConfigurationError):
        AppConfig(**overrides)


def test_load_config_debug_log_level(monkeypatch):
    monkeypatch.setenv("COOPCLIMATE_LOG_LEVEL", "DEBUG")

    assert load_config().DEBUG is True
