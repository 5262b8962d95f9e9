from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for older runtimes
    import tomli as tomllib  # type: ignore

from app_config_parser import log_level, parse_app_config
from app_config_schema import (
    AppConfig,
    AppConfigurationError,
    ConsoleSettings,
    LoggingSettings,
    SyncSettings,
    TimerSettings,
)

DEFAULT_CONFIG_FILE = "config.toml"
CONFIG_ENV_VAR = "CYCLE_TIMER_CONFIG_FILE"

__all__ = [
    "AppConfig",
    "AppConfigurationError",
    "ConsoleSettings",
    "LoggingSettings",
    "SyncSettings",
    "TimerSettings",
    "load_app_config",
    "log_level",
    "resolve_config_path",
]


def resolve_config_path(config_path: str | None = None) -> Path:
    env_path = os.getenv(CONFIG_ENV_VAR)
    raw = config_path or env_path or DEFAULT_CONFIG_FILE
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = (Path.cwd() / path).resolve()
    return path


def load_app_config(config_path: str | None = None) -> AppConfig:
    """Load config.toml; without an explicit or env path a missing file means defaults."""
    explicit = config_path is not None or bool(os.getenv(CONFIG_ENV_VAR))
    path = resolve_config_path(config_path)
    if not path.exists():
        if not explicit:
            return AppConfig()
        raise AppConfigurationError(f"Config file not found: {path}")
    if not path.is_file():
        raise AppConfigurationError(f"Config path is not a file: {path}")

    try:
        with open(path, "rb") as fh:
            raw = tomllib.load(fh)
    except Exception as error:
        raise AppConfigurationError(f"Failed to parse config TOML: {error}") from error

    if not isinstance(raw, Mapping):
        raise AppConfigurationError("Root config TOML object must be a table.")

    return parse_app_config(raw, source_file=str(path))
