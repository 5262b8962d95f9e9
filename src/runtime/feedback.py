"""Timer listener that reports completions and discrete status changes."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from cycle_timer import TimerEvent
from cycle_timer.constants import (
    EVENT_CYCLE_COMPLETED,
    EVENT_SESSION_COMPLETED,
    EVENT_STATE_CHANGED,
)

from .messages import completion_message, status_message


@dataclass(frozen=True)
class FeedbackDependencies:
    """Dependencies required for reporting timer events."""
    logger: logging.Logger
    output: Optional[Callable[[str], None]] = None


class CompletionFeedback:
    """Logs completion messages; per-second countdown changes stay at debug level."""
    def __init__(self, dependencies: FeedbackDependencies):
        self._dependencies = dependencies
        self._last_discrete: Optional[tuple] = None

    def __call__(self, event: TimerEvent) -> None:
        deps = self._dependencies
        snapshot = event.snapshot

        if event.kind == EVENT_SESSION_COMPLETED and event.completed_session is not None:
            self._emit(completion_message(event.completed_session, snapshot))
            return

        if event.kind == EVENT_CYCLE_COMPLETED:
            deps.logger.info(
                "Cycle %d complete after %d sessions",
                snapshot.cycle_completion_count,
                snapshot.session_completion_count,
            )
            return

        if event.kind != EVENT_STATE_CHANGED:
            return

        discrete = (
            snapshot.current_session,
            snapshot.is_running,
            snapshot.completed_focus_sessions,
            snapshot.cycle_complete,
            snapshot.duration_seconds,
        )
        if discrete == self._last_discrete:
            deps.logger.debug("Countdown %s", snapshot.time_label)
            return
        self._last_discrete = discrete
        deps.logger.info("State: %s", status_message(snapshot))

    def _emit(self, text: str) -> None:
        deps = self._dependencies
        deps.logger.info(text)
        if deps.output is not None:
            deps.output(text)
