"""Status and completion text builders for console and log output."""

from __future__ import annotations

from cycle_timer import SessionKind, TimerSnapshot
from cycle_timer.constants import (
    REASON_ALREADY_RUNNING,
    REASON_INVALID_SESSION,
    REASON_NOT_RUNNING,
    REASON_UNSUPPORTED_ACTION,
)


def status_message(snapshot: TimerSnapshot) -> str:
    """One-line summary of the current session for the console."""
    return (
        f"{snapshot.current_session.title} {snapshot.time_label} "
        f"[{snapshot.status_label}] {snapshot.cycle_position_label}"
    )


def completion_message(completed: SessionKind, snapshot: TimerSnapshot) -> str:
    if snapshot.cycle_complete:
        return "Cycle complete. All 4 Pomodoros done, start again when ready."
    next_title = snapshot.current_session.title
    if snapshot.is_running:
        return f"{completed.title} session complete. {next_title} started."
    return f"{completed.title} session complete. Start your {next_title} or skip ahead."


def rejection_message(action: str, reason: str) -> str:
    if reason == REASON_ALREADY_RUNNING:
        return "Timer is already running."
    if reason == REASON_NOT_RUNNING:
        return "Timer is not running."
    if reason == REASON_INVALID_SESSION:
        return "Unknown session; use focus, shortBreak or longBreak."
    if reason == REASON_UNSUPPORTED_ACTION:
        return f"Unsupported command: {action}"
    return f"Command {action} rejected ({reason})."
