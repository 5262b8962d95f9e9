"""Wall-clock anchored countdown for the active session."""

from __future__ import annotations

import functools
import logging
import math
import time
from typing import Callable, Optional

from .durations import DurationConfig, DurationLimits, SessionKind
from .state import TimerState
from .ticks import NullTickSource, TickSource

TickSink = Callable[[int], None]


class SessionClock:
    """Owns remaining time, the running flag, and the session end anchor.

    Remaining time is always derived from ``session_end_anchor - now``; tick
    prompts only trigger a resync and are never counted.
    """

    def __init__(
        self,
        state: TimerState,
        durations: DurationConfig,
        *,
        now_fn: Callable[[], float] = time.time,
        tick_source: Optional[TickSource] = None,
        limits: Optional[DurationLimits] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._state = state
        self._limits = limits
        self._durations = durations.sanitized(limits)
        self._now_fn = now_fn
        self._tick_source: TickSource = tick_source or NullTickSource()
        self._tick_sink: Optional[TickSink] = None
        self._generation = 0
        self._logger = logger or logging.getLogger("cycle_timer.clock")

    @property
    def durations(self) -> DurationConfig:
        return self._durations

    @property
    def limits(self) -> Optional[DurationLimits]:
        return self._limits

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def session_duration_seconds(self) -> int:
        return self._durations.duration_seconds(self._state.current_session)

    @property
    def is_expired(self) -> bool:
        return self._state.is_running and self._state.remaining_seconds == 0

    def now(self) -> float:
        return self._now_fn()

    def bind_tick_sink(self, sink: Optional[TickSink]) -> None:
        self._tick_sink = sink

    def accepts_tick(self, generation: Optional[int]) -> bool:
        if not self._state.is_running:
            return False
        return generation is None or generation == self._generation

    def configure(self, durations: DurationConfig) -> bool:
        """Apply new durations, preserving elapsed time in the current session.

        Returns True when the running session has no time left afterwards, so
        the caller can run the completion path.
        """
        safe = durations.sanitized(self._limits)
        if safe == self._durations:
            return False

        state = self._state
        old_duration = self.session_duration_seconds
        elapsed = max(0, old_duration - state.remaining_seconds)
        self._durations = safe
        if state.cycle_complete:
            state.remaining_seconds = 0
        else:
            state.remaining_seconds = max(0, self.session_duration_seconds - elapsed)
        self._logger.info(
            "Durations updated: focus=%sm short=%sm long=%sm remaining=%ss",
            safe.focus_minutes,
            safe.short_break_minutes,
            safe.long_break_minutes,
            state.remaining_seconds,
        )

        if state.is_running:
            state.session_end_anchor = self.now() + state.remaining_seconds
            return state.remaining_seconds == 0
        return False

    def start(self) -> bool:
        state = self._state
        if state.is_running:
            return False

        state.is_running = True
        state.session_end_anchor = self.now() + state.remaining_seconds
        self._restart_ticks()
        self._logger.info(
            "Session started: session=%s remaining=%ss",
            state.current_session.value,
            state.remaining_seconds,
        )
        return True

    def pause(self) -> bool:
        state = self._state
        if not state.is_running:
            return False

        self.resync()
        self.stop()
        self._logger.info(
            "Session paused: session=%s remaining=%ss",
            state.current_session.value,
            state.remaining_seconds,
        )
        return True

    def stop(self) -> None:
        """Cancel ticking and clear the anchor without touching remaining time."""
        self._generation += 1
        self._tick_source.cancel()
        self._state.is_running = False
        self._state.session_end_anchor = None

    def resync(self) -> int:
        state = self._state
        anchor = state.session_end_anchor
        if anchor is not None:
            seconds_left = int(math.ceil(anchor - self.now()))
            state.remaining_seconds = max(0, min(self.session_duration_seconds, seconds_left))
        return state.remaining_seconds

    def select_session(self, kind: SessionKind) -> None:
        self.stop()
        self._state.cycle_complete = False
        self._state.current_session = kind
        self._state.remaining_seconds = self.session_duration_seconds

    def reset_current_session(self) -> None:
        self.select_session(self._state.current_session)

    def restore(
        self,
        durations: DurationConfig,
        kind: SessionKind,
        remaining_seconds: int,
    ) -> None:
        """Adopt externally supplied durations and position without rebasing."""
        self.stop()
        self._durations = durations.sanitized(self._limits)
        self._state.current_session = kind
        self._state.remaining_seconds = max(
            0,
            min(self.session_duration_seconds, int(remaining_seconds)),
        )

    def _restart_ticks(self) -> None:
        self._generation += 1
        self._tick_source.cancel()
        self._tick_source.start(functools.partial(self._emit_tick, self._generation))

    def _emit_tick(self, generation: int) -> None:
        sink = self._tick_sink
        if sink is not None:
            sink(generation)
