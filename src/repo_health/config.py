"""repo-health configuration management.

Settings are read from ~/.repo-health/config.json when it exists, then
overridden by REPO_HEALTH_* environment variables. Nothing is written back.
"""

import json
import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Optional


logger = logging.getLogger(__name__)

# Default configuration values
DEFAULT_THEME = "textual-dark"
DEFAULT_REFRESH_INTERVAL = 300  # seconds, 0 disables auto refresh
DEFAULT_ITEM_DELAY = 0.05
DEFAULT_TICK_INTERVAL = 0.1
DEFAULT_MAX_REPOSITORIES = 50
DEFAULT_PULL_REQUEST_LIMIT = 50
DEFAULT_WORKFLOW_RUN_LIMIT = 10
DEFAULT_LOG_LEVEL = "WARNING"

ENV_PREFIX = "REPO_HEALTH_"

# GitHub credential, read by the provider and named in setup errors
TOKEN_ENV_VAR = "GH_REPO_HEALTHCHECKS_TOKEN"
FALLBACK_TOKEN_ENV_VAR = "GITHUB_TOKEN"


@dataclass
class HealthConfig:
    """repo-health application configuration."""

    # Appearance
    theme: str = DEFAULT_THEME

    # Loading behaviour
    refresh_interval: int = DEFAULT_REFRESH_INTERVAL
    item_delay: float = DEFAULT_ITEM_DELAY
    tick_interval: float = DEFAULT_TICK_INTERVAL

    # Provider limits
    max_repositories: int = DEFAULT_MAX_REPOSITORIES
    pull_request_limit: int = DEFAULT_PULL_REQUEST_LIMIT
    workflow_run_limit: int = DEFAULT_WORKFLOW_RUN_LIMIT

    # Logging
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the config file."""
        return Path.home() / ".repo-health" / "config.json"

    @classmethod
    def get_default_log_path(cls) -> Path:
        return Path.home() / ".repo-health" / "logs" / "dashboard.log"

    @classmethod
    def load(cls, path: Optional[Path] = None, environ: Optional[dict] = None) -> "HealthConfig":
        """Load configuration from file and environment, falling back to defaults."""
        config_path = path or cls.get_config_path()
        data: dict = {}

        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise ValueError("config root must be an object")
            except (json.JSONDecodeError, OSError, ValueError) as e:
                logger.warning("Ignoring invalid config %s: %s", config_path, e)
                data = {}

        # Only use known fields to avoid issues with old config versions
        known_fields = {f.name: f for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_fields}
        filtered.update(cls._from_environ(environ if environ is not None else os.environ))

        config = cls()
        for name, value in filtered.items():
            try:
                setattr(config, name, _coerce(value, getattr(cls, name)))
            except (TypeError, ValueError):
                logger.warning("Ignoring invalid value for %s: %r", name, value)
        return config

    @classmethod
    def _from_environ(cls, environ) -> dict:
        overrides = {}
        for f in fields(cls):
            key = ENV_PREFIX + f.name.upper()
            if key in environ:
                overrides[f.name] = environ[key]
        return overrides

    @property
    def log_path(self) -> Path:
        return Path(self.log_file).expanduser() if self.log_file else self.get_default_log_path()


def _coerce(value, default):
    """Convert a file or environment value to the type of the field's default."""
    if default is None or value is None:
        return value
    if isinstance(default, bool):
        return str(value).lower() in ("1", "true", "yes", "on")
    if isinstance(default, int):
        return int(value)
    if isinstance(default, float):
        return float(value)
    return str(value)


# Available options for settings
AVAILABLE_THEMES = [
    ("textual-dark", "Textual Dark"),
    ("textual-light", "Textual Light"),
    ("nord", "Nord"),
    ("gruvbox", "Gruvbox"),
    ("catppuccin-mocha", "Catppuccin Mocha"),
    ("dracula", "Dracula"),
    ("tokyo-night", "Tokyo Night"),
    ("monokai", "Monokai"),
    ("solarized-light", "Solarized Light"),
]
