"""Completion-driven session advancement through the four-session cycle."""

from __future__ import annotations

import logging
from typing import Optional

from .clock import SessionClock
from .durations import SessionKind
from .state import TimerState, is_cycle_boundary


class CycleTracker:
    """Owns the completed-focus count and the cycle-complete flag."""

    def __init__(
        self,
        state: TimerState,
        clock: SessionClock,
        logger: Optional[logging.Logger] = None,
    ):
        self._state = state
        self._clock = clock
        self._logger = logger or logging.getLogger("cycle_timer.tracker")

    def advance(self, credit_focus: bool) -> bool:
        """Move to the next session; return True when the cycle just completed.

        Skips and natural completions share this transition and differ only in
        ``credit_focus``.
        """
        state = self._state
        if state.current_session is SessionKind.FOCUS:
            if credit_focus:
                state.completed_focus_sessions += 1
            if is_cycle_boundary(state.completed_focus_sessions):
                state.current_session = SessionKind.LONG_BREAK
            else:
                state.current_session = SessionKind.SHORT_BREAK
            state.remaining_seconds = self._clock.session_duration_seconds
            return False

        if (
            credit_focus
            and state.current_session is SessionKind.LONG_BREAK
            and is_cycle_boundary(state.completed_focus_sessions)
        ):
            state.remaining_seconds = 0
            self._logger.info(
                "Cycle complete after %s focus sessions",
                state.completed_focus_sessions,
            )
            return True

        state.current_session = SessionKind.FOCUS
        state.remaining_seconds = self._clock.session_duration_seconds
        return False

    def skip(self) -> None:
        self._clock.stop()
        self._state.cycle_complete = False
        skipped = self._state.current_session
        self.advance(credit_focus=False)
        self._logger.info(
            "Session skipped: %s -> %s",
            skipped.value,
            self._state.current_session.value,
        )

    def reset_cycle(self) -> None:
        self._clock.stop()
        self._state.completed_focus_sessions = 0
        self._state.cycle_complete = False
        self._state.current_session = SessionKind.FOCUS
        self._state.remaining_seconds = self._clock.session_duration_seconds

    def next_break(self) -> SessionKind:
        current = self._state.current_session
        if current.is_break:
            return current
        if is_cycle_boundary(self._state.completed_focus_sessions):
            return SessionKind.LONG_BREAK
        return SessionKind.SHORT_BREAK
