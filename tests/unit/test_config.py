"""
Unit tests for configuration loading.
"""

import json
import pytest
from pydantic import ValidationError as PydanticValidationError

from agent_foreman.utils.config import (
    OrchestratorConfig, SystemConfig, load_config, load_config_from_env, load_config_from_file
)

ENV_NAMES = [
    "DEBUG", "LOG_LEVEL", "JSON_LOGGING", "FOREMAN_WORK_DIR", "FOREMAN_POLL_INTERVAL",
    "FOREMAN_MAINTENANCE_INTERVAL", "FOREMAN_RUNNING_STALL_SECONDS", "FOREMAN_QUEUED_STALL_SECONDS",
    "FOREMAN_VERIFICATION_PENDING_SECONDS", "FOREMAN_MAX_RETRIES", "FOREMAN_MAX_RUN_HISTORY",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)


class TestConfig:
    """Test cases for configuration loading."""

    def test_defaults(self):
        config = OrchestratorConfig()

        assert config.poll_interval_seconds == 5.0
        assert config.maintenance_interval_seconds == 30.0
        assert config.running_stall_seconds == 20 * 60
        assert config.queued_stall_seconds == 60 * 60
        assert config.verification_pending_seconds == 30 * 60
        assert config.heartbeat_interval_seconds == 60
        assert config.run_archive_ttl_seconds == 3600
        assert config.max_run_history == 500
        assert config.default_max_retries == 2

    def test_bounds(self):
        with pytest.raises(PydanticValidationError):
            OrchestratorConfig(poll_interval_seconds=0)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("FOREMAN_WORK_DIR", "/srv/foreman")
        monkeypatch.setenv("FOREMAN_POLL_INTERVAL", "2.5")
        monkeypatch.setenv("FOREMAN_MAX_RETRIES", "4")

        config = load_config_from_env()

        assert config.log_level == "DEBUG"
        assert config.work_dir == "/srv/foreman"
        assert config.orchestrator.poll_interval_seconds == 2.5
        assert config.orchestrator.default_max_retries == 4

    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config_from_file(tmp_path / "absent.json") == SystemConfig()

    def test_invalid_file_gives_defaults(self, tmp_path):
        path = tmp_path / "foreman.json"
        path.write_text("{broken", encoding="utf-8")

        assert load_config_from_file(path) == SystemConfig()

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "foreman.json"
        path.write_text(json.dumps({
            "log_level": "WARNING",
            "orchestrator": {"poll_interval_seconds": 10, "max_run_history": 50},
        }), encoding="utf-8")
        monkeypatch.setenv("FOREMAN_POLL_INTERVAL", "1")

        config = load_config(path)

        assert config.log_level == "WARNING"
        assert config.orchestrator.poll_interval_seconds == 1.0
        assert config.orchestrator.max_run_history == 50
