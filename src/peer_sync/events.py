"""Utilities for serializing peer events and remembering the latest context."""

from __future__ import annotations

import json
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from contracts.sync_protocol import STICKY_EVENT_TYPES


def make_event(
    event_type: str,
    *,
    now_fn: Callable[[], datetime] | None = None,
    **payload: Any,
) -> str:
    """Serialize an event payload with type and timestamp for websocket delivery."""
    now = now_fn() if now_fn is not None else datetime.now(timezone.utc)
    return json.dumps(
        {
            "type": event_type,
            "timestamp": now.isoformat(),
            **payload,
        }
    )


def parse_event(raw: str | bytes) -> Optional[Mapping[str, Any]]:
    """Decode a websocket message, returning None for anything but a JSON object."""
    try:
        decoded = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(decoded, dict) or not isinstance(decoded.get("type"), str):
        return None
    return decoded


class LatestEventStore:
    """Thread-safe cache of the last sticky event per type, replayed to new peers."""
    def __init__(self):
        self._events: dict[str, str] = {}
        self._lock = threading.Lock()

    def remember(self, event_type: str, message: str) -> None:
        if event_type not in STICKY_EVENT_TYPES:
            return
        with self._lock:
            self._events[event_type] = message

    def snapshot(self) -> list[str]:
        with self._lock:
            return [self._events[key] for key in sorted(self._events)]
