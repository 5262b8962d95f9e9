"""Peer snapshot wire keys, websocket event types, and command names."""

from __future__ import annotations

# Snapshot payload keys shared by primary and mirror instances
KEY_FOCUS_MINUTES = "focus_minutes"
KEY_SHORT_BREAK_MINUTES = "short_break_minutes"
KEY_LONG_BREAK_MINUTES = "long_break_minutes"
KEY_CURRENT_SESSION = "current_session"
KEY_REMAINING_SECONDS = "remaining_seconds"
KEY_IS_RUNNING = "is_running"
KEY_COMPLETED_FOCUS_SESSIONS = "completed_focus_sessions"
KEY_DID_COMPLETE_CYCLE = "did_complete_cycle"
KEY_UPDATED_AT = "updated_at"

SNAPSHOT_KEYS: tuple[str, ...] = (
    KEY_FOCUS_MINUTES,
    KEY_SHORT_BREAK_MINUTES,
    KEY_LONG_BREAK_MINUTES,
    KEY_CURRENT_SESSION,
    KEY_REMAINING_SECONDS,
    KEY_IS_RUNNING,
    KEY_COMPLETED_FOCUS_SESSIONS,
    KEY_DID_COMPLETE_CYCLE,
    KEY_UPDATED_AT,
)

# Websocket event types
EVENT_HELLO = "hello"
EVENT_CONTEXT = "context"
EVENT_COMMAND = "command"

# Command message fields sent from a mirror to the primary
FIELD_COMMAND = "command"
FIELD_SESSION = "session"
FIELD_CONTEXT = "context"

STICKY_EVENT_TYPES: frozenset[str] = frozenset({EVENT_CONTEXT})
