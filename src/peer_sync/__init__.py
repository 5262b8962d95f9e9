"""Peer sync module for pushing timer snapshots between primary and mirror."""

from .client import SyncClient
from .config import SyncClientConfig, SyncConfigurationError, SyncServerConfig
from .server import SyncServer

__all__ = [
    "SyncClient",
    "SyncClientConfig",
    "SyncConfigurationError",
    "SyncServer",
    "SyncServerConfig",
]
