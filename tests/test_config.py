"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from hr_workflow.config import (
    AppConfig,
    LogLevel,
    SimulationBackendType,
    get_config,
    get_development_config,
    get_production_config,
    get_testing_config,
    load_config,
    reset_config,
    validate_config,
)
from hr_workflow.models.core import ValidationExtension


@pytest.fixture(autouse=True)
def fresh_config():
    reset_config()
    yield
    reset_config()


class TestAppConfig:
    """Test cases for AppConfig."""

    def test_defaults(self):
        config = AppConfig()

        assert config.app_name == "HR Workflow Designer"
        assert config.simulation_backend == SimulationBackendType.LOCAL
        assert config.allow_self_loops is True
        assert config.validation_extensions == []
        assert config.get_uvicorn_config()["log_level"] == "info"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HR_WORKFLOW_PORT", "9100")
        monkeypatch.setenv("HR_WORKFLOW_DEBUG", "yes")
        monkeypatch.setenv("HR_WORKFLOW_ALLOW_DUPLICATE_EDGES", "false")
        monkeypatch.setenv("HR_WORKFLOW_VALIDATION_EXTENSIONS", "reachability, cycles")
        monkeypatch.setenv("HR_WORKFLOW_SIMULATION_BACKEND", "http")
        monkeypatch.setenv("HR_WORKFLOW_SIMULATION_URL", "http://simulator.internal:8001")

        config = AppConfig.from_env()

        assert config.port == 9100
        assert config.debug is True
        assert config.allow_duplicate_edges is False
        assert config.validation_extensions == [ValidationExtension.REACHABILITY, ValidationExtension.CYCLES]
        assert config.simulation_backend == SimulationBackendType.HTTP

    def test_http_backend_requires_url(self):
        with pytest.raises(ValidationError):
            AppConfig(simulation_backend=SimulationBackendType.HTTP)

    @pytest.mark.parametrize("field,value", [
        ("port", 0),
        ("simulation_timeout", 0),
        ("simulation_step_seconds", -1),
        ("simulation_latency", -0.5),
        ("validation_extensions", ["spelling"]),
    ])
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            AppConfig(**{field: value})

    def test_get_config_is_cached(self):
        assert get_config() is get_config()

    def test_load_config_from_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("HR_WORKFLOW_APP_NAME", raising=False)
        monkeypatch.delenv("HR_WORKFLOW_LOG_LEVEL", raising=False)
        env_file = tmp_path / "designer.env"
        env_file.write_text("HR_WORKFLOW_APP_NAME=People Ops Designer\nHR_WORKFLOW_LOG_LEVEL=DEBUG\n")

        config = load_config(str(env_file))

        assert config.app_name == "People Ops Designer"
        assert config.log_level == LogLevel.DEBUG
        assert get_config() is config

    def test_validate_config_rejects_unsupported_url(self):
        config = AppConfig(automation_catalog_url="file:///tmp/automations.json")
        with pytest.raises(ValueError):
            validate_config(config)

    def test_validate_config_creates_log_directory(self, tmp_path):
        log_file = tmp_path / "logs" / "designer.log"
        validate_config(AppConfig(log_file=str(log_file)))
        assert log_file.parent.is_dir()

    def test_presets(self):
        assert get_development_config().log_level == LogLevel.DEBUG
        assert get_production_config().structured_logging is True
        assert get_production_config().cors_origins == []
        assert get_testing_config().enable_performance_monitoring is False
