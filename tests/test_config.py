"""Tests for configuration loading and logging setup."""

import json
import logging
import subprocess
import sys

import pytest

from repo_health.config import HealthConfig
from repo_health.logs import setup_logging


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


class TestHealthConfig:
    """Tests for HealthConfig.load."""

    def test_defaults_without_file(self, config_path) -> None:
        """Test a missing file gives the defaults."""
        config = HealthConfig.load(config_path, environ={})
        assert config.refresh_interval == 300
        assert config.max_repositories == 50
        assert config.item_delay == 0.05
        assert config.theme == "textual-dark"

    def test_reads_file(self, config_path) -> None:
        config_path.write_text(json.dumps({"theme": "nord", "refresh_interval": 60}))
        config = HealthConfig.load(config_path, environ={})
        assert config.theme == "nord"
        assert config.refresh_interval == 60

    def test_unknown_keys_ignored(self, config_path) -> None:
        """Test settings from other versions do not break loading."""
        config_path.write_text(json.dumps({"obsolete": True, "max_repositories": 10}))
        config = HealthConfig.load(config_path, environ={})
        assert config.max_repositories == 10
        assert not hasattr(config, "obsolete")

    def test_invalid_json_falls_back(self, config_path) -> None:
        config_path.write_text("{not json")
        config = HealthConfig.load(config_path, environ={})
        assert config == HealthConfig()

    def test_non_object_root_falls_back(self, config_path) -> None:
        config_path.write_text("[1, 2]")
        assert HealthConfig.load(config_path, environ={}) == HealthConfig()

    def test_environment_overrides_file(self, config_path) -> None:
        """Test REPO_HEALTH_* variables win over the file and are coerced."""
        config_path.write_text(json.dumps({"refresh_interval": 60}))
        environ = {
            "REPO_HEALTH_REFRESH_INTERVAL": "0",
            "REPO_HEALTH_ITEM_DELAY": "0.5",
            "REPO_HEALTH_LOG_FILE": "/tmp/rh.log",
        }
        config = HealthConfig.load(config_path, environ=environ)
        assert config.refresh_interval == 0
        assert config.item_delay == 0.5
        assert config.log_file == "/tmp/rh.log"

    def test_invalid_value_keeps_default(self, config_path) -> None:
        config = HealthConfig.load(config_path, environ={"REPO_HEALTH_MAX_REPOSITORIES": "lots"})
        assert config.max_repositories == 50

    def test_log_path(self, tmp_path) -> None:
        assert HealthConfig(log_file=str(tmp_path / "x.log")).log_path == tmp_path / "x.log"
        assert HealthConfig().log_path.name == "dashboard.log"


class TestSetupLogging:
    """Tests for file logging."""

    def test_writes_to_file(self, tmp_path) -> None:
        log_path = tmp_path / "logs" / "dashboard.log"
        assert setup_logging(log_path, "INFO") == log_path

        logging.getLogger("repo_health.test").info("hello from test")
        for handler in logging.getLogger("repo_health").handlers:
            handler.flush()

        assert "INFO repo_health.test: hello from test" in log_path.read_text()

    def test_replaces_previous_file_handler(self, tmp_path) -> None:
        setup_logging(tmp_path / "a.log")
        setup_logging(tmp_path / "b.log")
        file_handlers = [
            h for h in logging.getLogger("repo_health").handlers
            if isinstance(h, logging.FileHandler)
        ]
        assert len(file_handlers) == 1
        assert file_handlers[0].baseFilename.endswith("b.log")


class TestTokenVariable:
    """Tests for where the token variable name lives."""

    def test_unavailable_message_names_token_variable(self) -> None:
        from repo_health import config
        from repo_health.state import PROVIDER_UNAVAILABLE_MESSAGE

        assert config.TOKEN_ENV_VAR in PROVIDER_UNAVAILABLE_MESSAGE

    def test_state_does_not_import_http_stack(self) -> None:
        """Test the state layer stays importable without the GitHub client."""
        result = subprocess.run(
            [sys.executable, "-c", "import sys, repo_health.state; print('httpx' in sys.modules)"],
            capture_output=True,
            text=True,
            check=True,
        )
        assert result.stdout.strip() == "False"
