"""Immutable configuration schema for runtime, timer, and peer sync settings."""

from __future__ import annotations

from dataclasses import dataclass, field


class AppConfigurationError(Exception):
    """Raised when application configuration fails."""


@dataclass(frozen=True)
class TimerSettings:
    focus_minutes: int = 25
    short_break_minutes: int = 5
    long_break_minutes: int = 20
    auto_advance: bool = False


@dataclass(frozen=True)
class SyncSettings:
    enabled: bool = True
    role: str = "primary"
    host: str = "127.0.0.1"
    port: int = 8766
    path: str = "/sync"
    peer_url: str = ""
    throttle_seconds: float = 5.0
    reconnect_delay_seconds: float = 2.0


@dataclass(frozen=True)
class ConsoleSettings:
    enabled: bool = True


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class AppConfig:
    timer: TimerSettings = field(default_factory=TimerSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    console: ConsoleSettings = field(default_factory=ConsoleSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source_file: str = ""
