"""Logging configuration for the grades engine.

Configuration is read from environment variables (optionally loaded from a
``.env`` file) with defaults that depend on where the engine runs: a
developer shell, the test suite, CI or production.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path


class Environment(Enum):
    """Runtime environment the engine is running in."""

    DEVELOPMENT = "development"
    TESTING = "testing"
    PRODUCTION = "production"
    CI = "ci"


class LogOutput(Enum):
    """Where log records are written."""

    CONSOLE = "console"
    FILE = "file"
    BOTH = "both"


_TRUTHY = ("true", "1", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_module_levels(raw: str) -> dict[str, str]:
    """Parse ``"src.grades.cache=DEBUG,src.database=WARNING"`` into a dict."""
    levels: dict[str, str] = {}
    for item in raw.split(","):
        name, sep, level = item.partition("=")
        if sep and name.strip() and level.strip():
            levels[name.strip()] = level.strip().upper()
    return levels


@dataclass
class LogConfig:
    """Logging configuration container."""

    level: str = "INFO"
    output: LogOutput = LogOutput.CONSOLE

    # JSON lines instead of human readable text on the console
    json_format: bool = False

    # Colourised output through rich (console output only)
    use_rich: bool = True

    # Attach the correlation context to every record
    include_context: bool = True

    log_file: Path | None = None
    max_file_size: int = 10 * 1024 * 1024
    backup_count: int = 5

    # Per-logger overrides, e.g. {"src.grades.cache": "DEBUG"}
    module_levels: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> LogConfig:
        """Build a configuration from the environment.

        Environment variables:
            LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL
            LOG_OUTPUT: console, file or both
            LOG_JSON: emit JSON lines on the console (true/false)
            LOG_RICH: use rich for console output (true/false)
            LOG_FILE: path of the log file for file output
            LOG_MAX_SIZE: rotate the log file after this many bytes
            LOG_BACKUP_COUNT: number of rotated files to keep
            LOG_MODULE_LEVELS: comma separated ``logger=LEVEL`` overrides

        Returns:
            LogConfig for the detected environment with overrides applied
        """
        config = cls.defaults_for(detect_environment())

        if level := os.getenv("LOG_LEVEL"):
            config.level = level.upper()

        if output := os.getenv("LOG_OUTPUT"):
            try:
                config.output = LogOutput(output.lower())
            except ValueError:
                pass

        config.json_format = _env_flag("LOG_JSON", config.json_format)
        config.use_rich = _env_flag("LOG_RICH", config.use_rich)

        if log_file := os.getenv("LOG_FILE"):
            config.log_file = Path(log_file)

        config.max_file_size = _env_int("LOG_MAX_SIZE", config.max_file_size)
        config.backup_count = _env_int("LOG_BACKUP_COUNT", config.backup_count)

        if module_levels := os.getenv("LOG_MODULE_LEVELS"):
            config.module_levels = _parse_module_levels(module_levels)

        return config

    @classmethod
    def defaults_for(cls, env: Environment) -> LogConfig:
        """Return the default configuration for an environment."""
        return replace(_DEFAULTS[env])


_DEFAULTS: dict[Environment, LogConfig] = {
    Environment.PRODUCTION: LogConfig(
        level="INFO", output=LogOutput.BOTH, json_format=True, use_rich=False
    ),
    Environment.CI: LogConfig(level="INFO", use_rich=False),
    Environment.TESTING: LogConfig(level="DEBUG", use_rich=False),
    Environment.DEVELOPMENT: LogConfig(level="DEBUG", use_rich=True),
}


def detect_environment() -> Environment:
    """Detect the current runtime environment.

    ``CI``/``GITHUB_ACTIONS`` win over an explicit ``ENVIRONMENT`` setting;
    a running pytest session counts as testing.
    """
    if os.getenv("CI") or os.getenv("GITHUB_ACTIONS"):
        return Environment.CI

    env_name = os.getenv("ENVIRONMENT", os.getenv("ENV", "")).lower()
    if env_name in ("prod", "production"):
        return Environment.PRODUCTION
    if env_name in ("test", "testing"):
        return Environment.TESTING

    if os.getenv("PYTEST_CURRENT_TEST"):
        return Environment.TESTING

    return Environment.DEVELOPMENT


_config: LogConfig | None = None


def get_config() -> LogConfig:
    """Return the active logging configuration, reading the env on first use."""
    global _config
    if _config is None:
        _config = LogConfig.from_env()
    return _config


def set_config(config: LogConfig) -> None:
    """Replace the active logging configuration."""
    global _config
    _config = config


def reset_config() -> None:
    """Forget the active configuration; the next lookup re-reads the env."""
    global _config
    _config = None
