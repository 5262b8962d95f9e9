"""Session, action, and reason constants used by the cycle timer core."""

from __future__ import annotations

DEFAULT_FOCUS_MINUTES = 25
DEFAULT_SHORT_BREAK_MINUTES = 5
DEFAULT_LONG_BREAK_MINUTES = 20

MIRROR_MAX_FOCUS_MINUTES = 120
MIRROR_MAX_SHORT_BREAK_MINUTES = 60
MIRROR_MAX_LONG_BREAK_MINUTES = 90

FOCUS_SESSIONS_PER_CYCLE = 4
TICK_INTERVAL_SECONDS = 1.0
RUNNING_UPDATE_THROTTLE_SECONDS = 5.0

SESSION_FOCUS = "focus"
SESSION_SHORT_BREAK = "shortBreak"
SESSION_LONG_BREAK = "longBreak"

ROLE_PRIMARY = "primary"
ROLE_MIRROR = "mirror"
ROLES: frozenset[str] = frozenset({ROLE_PRIMARY, ROLE_MIRROR})

ACTION_START = "start"
ACTION_PAUSE = "pause"
ACTION_TOGGLE = "toggle"
ACTION_RESET_SESSION = "reset_session"
ACTION_RESET_CYCLE = "reset_cycle"
ACTION_SKIP = "skip"
ACTION_SKIP_AND_START_NEXT = "skip_and_start_next"
ACTION_SELECT_SESSION = "select_session"
ACTION_START_FOCUS = "start_focus_session"
ACTION_START_BREAK = "start_break_session"

ACTIONS: frozenset[str] = frozenset(
    {
        ACTION_START,
        ACTION_PAUSE,
        ACTION_TOGGLE,
        ACTION_RESET_SESSION,
        ACTION_RESET_CYCLE,
        ACTION_SKIP,
        ACTION_SKIP_AND_START_NEXT,
        ACTION_SELECT_SESSION,
        ACTION_START_FOCUS,
        ACTION_START_BREAK,
    }
)

EVENT_STATE_CHANGED = "state_changed"
EVENT_SESSION_COMPLETED = "session_completed"
EVENT_CYCLE_COMPLETED = "cycle_completed"

REASON_STARTED = "started"
REASON_PAUSED = "paused"
REASON_RESET = "reset"
REASON_CYCLE_RESET = "cycle_reset"
REASON_SKIPPED = "skipped"
REASON_SELECTED = "selected"
REASON_ALREADY_RUNNING = "already_running"
REASON_NOT_RUNNING = "not_running"
REASON_INVALID_SESSION = "invalid_session"
REASON_UNSUPPORTED_ACTION = "unsupported_action"
