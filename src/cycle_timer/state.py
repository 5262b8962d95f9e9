"""Mutable timer record and the immutable snapshot exposed to observers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .constants import FOCUS_SESSIONS_PER_CYCLE
from .durations import DurationConfig, SessionKind


@dataclass
class TimerState:
    """Single mutable record shared by the clock, tracker, and synchronizer."""
    current_session: SessionKind
    remaining_seconds: int
    is_running: bool = False
    completed_focus_sessions: int = 0
    cycle_complete: bool = False
    session_end_anchor: Optional[float] = None
    session_completion_count: int = 0
    cycle_completion_count: int = 0
    last_completed_session: Optional[SessionKind] = None

    @classmethod
    def initial(cls, durations: DurationConfig) -> "TimerState":
        return cls(
            current_session=SessionKind.FOCUS,
            remaining_seconds=durations.duration_seconds(SessionKind.FOCUS),
        )


@dataclass(frozen=True)
class TimerSnapshot:
    """Immutable view of timer state for publishers and presentation layers."""
    current_session: SessionKind
    remaining_seconds: int
    duration_seconds: int
    is_running: bool
    completed_focus_sessions: int
    cycle_complete: bool
    session_completion_count: int
    cycle_completion_count: int
    last_completed_session: Optional[SessionKind]
    durations: DurationConfig
    auto_advance: bool

    @property
    def time_label(self) -> str:
        minutes, seconds = divmod(max(0, self.remaining_seconds), 60)
        return f"{minutes:02d}:{seconds:02d}"

    @property
    def progress(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        elapsed = self.duration_seconds - self.remaining_seconds
        return max(0.0, min(1.0, elapsed / self.duration_seconds))

    @property
    def remaining_progress(self) -> float:
        if self.duration_seconds <= 0:
            return 0.0
        return max(0.0, min(1.0, self.remaining_seconds / self.duration_seconds))

    @property
    def cycle_position(self) -> int:
        """1-based position of the focus session within the current cycle."""
        if self.cycle_complete or self._is_final_long_break:
            return FOCUS_SESSIONS_PER_CYCLE
        return (self.completed_focus_sessions % FOCUS_SESSIONS_PER_CYCLE) + 1

    @property
    def cycle_position_label(self) -> str:
        if self.cycle_complete:
            return f"All {FOCUS_SESSIONS_PER_CYCLE} Pomodoros complete"
        return f"Pomodoro {self.cycle_position} of {FOCUS_SESSIONS_PER_CYCLE}"

    @property
    def status_label(self) -> str:
        if self.cycle_complete:
            return "Ready to restart"
        return "Running" if self.is_running else "Paused"

    @property
    def _is_final_long_break(self) -> bool:
        return (
            self.current_session is SessionKind.LONG_BREAK
            and is_cycle_boundary(self.completed_focus_sessions)
        )


def is_cycle_boundary(completed_focus_sessions: int) -> bool:
    return (
        completed_focus_sessions > 0
        and completed_focus_sessions % FOCUS_SESSIONS_PER_CYCLE == 0
    )
