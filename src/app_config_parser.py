"""Typed parser for config.toml sections into immutable app settings."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from app_config_schema import (
    AppConfig,
    AppConfigurationError,
    ConsoleSettings,
    LoggingSettings,
    SyncSettings,
    TimerSettings,
)

_ALLOWED_ROLES = {"primary", "mirror"}
_ALLOWED_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def parse_app_config(raw: Mapping[str, Any], *, source_file: str) -> AppConfig:
    """Parse raw TOML mappings into strongly typed application settings."""
    return AppConfig(
        timer=_parse_timer_settings(_section(raw, "timer")),
        sync=_parse_sync_settings(_section(raw, "sync")),
        console=_parse_console_settings(_section(raw, "console")),
        logging=_parse_logging_settings(_section(raw, "logging")),
        source_file=source_file,
    )


def _parse_timer_settings(section: Mapping[str, Any]) -> TimerSettings:
    # Non-positive minutes are clamped later by the timer, never rejected here.
    return TimerSettings(
        focus_minutes=_as_int(section.get("focus_minutes", 25), "timer.focus_minutes"),
        short_break_minutes=_as_int(
            section.get("short_break_minutes", 5),
            "timer.short_break_minutes",
        ),
        long_break_minutes=_as_int(
            section.get("long_break_minutes", 20),
            "timer.long_break_minutes",
        ),
        auto_advance=_as_bool(section.get("auto_advance", False), "timer.auto_advance"),
    )


def _parse_sync_settings(section: Mapping[str, Any]) -> SyncSettings:
    throttle_seconds = _as_float(section.get("throttle_seconds", 5.0), "sync.throttle_seconds")
    if throttle_seconds < 0:
        raise AppConfigurationError("sync.throttle_seconds must not be negative.")
    return SyncSettings(
        enabled=_as_bool(section.get("enabled", True), "sync.enabled"),
        role=_as_choice(section.get("role", "primary"), "sync.role", _ALLOWED_ROLES),
        host=_as_str(section.get("host", "127.0.0.1"), "sync.host"),
        port=_as_int(section.get("port", 8766), "sync.port"),
        path=_as_str(section.get("path", "/sync"), "sync.path"),
        peer_url=_as_str(section.get("peer_url", ""), "sync.peer_url"),
        throttle_seconds=throttle_seconds,
        reconnect_delay_seconds=_as_float(
            section.get("reconnect_delay_seconds", 2.0),
            "sync.reconnect_delay_seconds",
        ),
    )


def _parse_console_settings(section: Mapping[str, Any]) -> ConsoleSettings:
    return ConsoleSettings(
        enabled=_as_bool(section.get("enabled", True), "console.enabled"),
    )


def _parse_logging_settings(section: Mapping[str, Any]) -> LoggingSettings:
    level = _as_str(section.get("level", "INFO"), "logging.level").upper()
    if level not in _ALLOWED_LOG_LEVELS:
        allowed = ", ".join(sorted(_ALLOWED_LOG_LEVELS))
        raise AppConfigurationError(f"logging.level must be one of: {allowed}.")
    return LoggingSettings(level=level)


def log_level(settings: LoggingSettings) -> int:
    return logging.getLevelName(settings.level)


def _section(root: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    raw = root.get(name, {})
    if raw is None:
        return {}
    if not isinstance(raw, Mapping):
        raise AppConfigurationError(f"[{name}] must be a table.")
    return raw


def _as_str(value: Any, field: str) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    raise AppConfigurationError(f"{field} must be a string.")


def _as_choice(value: Any, field: str, allowed: set[str]) -> str:
    text = _as_str(value, field).lower()
    if text not in allowed:
        joined = ", ".join(sorted(allowed))
        raise AppConfigurationError(f"{field} must be one of: {joined}.")
    return text


def _as_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "on"):
            return True
        if lowered in ("false", "0", "no", "off"):
            return False
    raise AppConfigurationError(f"{field} must be a boolean.")


def _as_int(value: Any, field: str) -> int:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be an integer.")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be an integer.") from error
    raise AppConfigurationError(f"{field} must be an integer.")


def _as_float(value: Any, field: str) -> float:
    if isinstance(value, bool):
        raise AppConfigurationError(f"{field} must be a float.")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError as error:
            raise AppConfigurationError(f"{field} must be a float.") from error
    raise AppConfigurationError(f"{field} must be a float.")
