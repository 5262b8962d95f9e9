"""Configuration models for the peer snapshot server and client."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlsplit

DEFAULT_SYNC_PATH = "/sync"
HEALTHZ_PATH = "/healthz"


class SyncConfigurationError(Exception):
    """Raised when peer sync configuration is invalid."""


@dataclass(frozen=True)
class SyncServerConfig:
    """Validated websocket server settings for the primary instance."""
    host: str = "127.0.0.1"
    port: int = 8766
    path: str = DEFAULT_SYNC_PATH

    def __post_init__(self) -> None:
        if not self.host.strip():
            raise SyncConfigurationError("sync.host cannot be empty")

        if not 1 <= self.port <= 65535:
            raise SyncConfigurationError(
                f"sync.port must be in [1, 65535], got: {self.port}"
            )

        if not self.path.startswith("/"):
            raise SyncConfigurationError(f"sync.path must start with '/', got: {self.path}")

    @property
    def websocket_path(self) -> str:
        return self.path

    @classmethod
    def from_settings(cls, settings) -> "SyncServerConfig":
        return cls(
            host=settings.host,
            port=settings.port,
            path=settings.path or DEFAULT_SYNC_PATH,
        )


@dataclass(frozen=True)
class SyncClientConfig:
    """Validated websocket client settings for the mirror instance."""
    peer_url: str
    reconnect_delay_seconds: float = 2.0

    def __post_init__(self) -> None:
        parts = urlsplit(self.peer_url)
        if parts.scheme not in ("ws", "wss"):
            raise SyncConfigurationError(
                f"sync.peer_url must be a ws:// or wss:// URL, got: {self.peer_url!r}"
            )
        if not parts.hostname:
            raise SyncConfigurationError(f"sync.peer_url has no host: {self.peer_url!r}")

        if self.reconnect_delay_seconds <= 0:
            raise SyncConfigurationError(
                "sync.reconnect_delay_seconds must be greater than zero"
            )

    @classmethod
    def from_settings(cls, settings) -> "SyncClientConfig":
        peer_url = settings.peer_url.strip() if settings.peer_url else ""
        if not peer_url:
            peer_url = f"ws://{settings.host}:{settings.port}{settings.path or DEFAULT_SYNC_PATH}"
        return cls(
            peer_url=peer_url,
            reconnect_delay_seconds=settings.reconnect_delay_seconds,
        )
