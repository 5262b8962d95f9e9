"""Single cycle timer core shared by the primary and mirror roles."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from .clock import SessionClock, TickSink
from .constants import (
    ACTION_PAUSE,
    ACTION_RESET_CYCLE,
    ACTION_RESET_SESSION,
    ACTION_SELECT_SESSION,
    ACTION_SKIP,
    ACTION_SKIP_AND_START_NEXT,
    ACTION_START,
    ACTION_START_BREAK,
    ACTION_START_FOCUS,
    ACTION_TOGGLE,
    EVENT_CYCLE_COMPLETED,
    EVENT_SESSION_COMPLETED,
    EVENT_STATE_CHANGED,
    REASON_ALREADY_RUNNING,
    REASON_CYCLE_RESET,
    REASON_INVALID_SESSION,
    REASON_NOT_RUNNING,
    REASON_PAUSED,
    REASON_RESET,
    REASON_SELECTED,
    REASON_SKIPPED,
    REASON_STARTED,
    REASON_UNSUPPORTED_ACTION,
    ROLE_MIRROR,
    ROLE_PRIMARY,
    ROLES,
    RUNNING_UPDATE_THROTTLE_SECONDS,
)
from .durations import MIRROR_LIMITS, DurationConfig, SessionKind
from .state import TimerSnapshot, TimerState
from .synchronizer import IncomingUpdate, SnapshotTransport, StateSynchronizer
from .ticks import TickSource
from .tracker import CycleTracker


@dataclass(frozen=True)
class CycleActionResult:
    """Result envelope returned after applying a timer command."""
    action: str
    accepted: bool
    reason: str
    snapshot: TimerSnapshot


@dataclass(frozen=True)
class TimerEvent:
    """Notification delivered to listeners after the timer changes."""
    kind: str
    snapshot: TimerSnapshot
    completed_session: Optional[SessionKind] = None


TimerListener = Callable[[TimerEvent], None]


class CycleTimer:
    """Focus/break cycle timer wiring SessionClock, CycleTracker and StateSynchronizer.

    Every method must be called from the single context that owns the timer;
    tick sources and transports only hand prompts back to that context.
    """

    def __init__(
        self,
        *,
        role: str = ROLE_PRIMARY,
        durations: DurationConfig = DurationConfig.DEFAULT,
        auto_advance: bool = False,
        now_fn: Callable[[], float] = time.time,
        tick_source: Optional[TickSource] = None,
        transport: Optional[SnapshotTransport] = None,
        throttle_interval_seconds: float = RUNNING_UPDATE_THROTTLE_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        if role not in ROLES:
            raise ValueError(f"role must be one of: {', '.join(sorted(ROLES))}")

        self._role = role
        self._auto_advance = bool(auto_advance)
        self._logger = logger or logging.getLogger("cycle_timer")
        self._listeners: list[TimerListener] = []

        limits = MIRROR_LIMITS if role == ROLE_MIRROR else None
        safe_durations = durations.sanitized(limits)
        self._state = TimerState.initial(safe_durations)
        self._clock = SessionClock(
            self._state,
            safe_durations,
            now_fn=now_fn,
            tick_source=tick_source,
            limits=limits,
            logger=self._logger.getChild("clock"),
        )
        self._clock.bind_tick_sink(self.handle_tick)
        self._tracker = CycleTracker(
            self._state,
            self._clock,
            logger=self._logger.getChild("tracker"),
        )
        self._sync = StateSynchronizer(
            self._state,
            self._clock,
            transport=transport,
            now_fn=now_fn,
            throttle_interval_seconds=throttle_interval_seconds,
            logger=self._logger.getChild("sync"),
        )

    @property
    def role(self) -> str:
        return self._role

    @property
    def durations(self) -> DurationConfig:
        return self._clock.durations

    @property
    def auto_advance(self) -> bool:
        return self._auto_advance

    @property
    def synchronizer(self) -> StateSynchronizer:
        return self._sync

    def snapshot(self) -> TimerSnapshot:
        state = self._state
        return TimerSnapshot(
            current_session=state.current_session,
            remaining_seconds=state.remaining_seconds,
            duration_seconds=self._clock.session_duration_seconds,
            is_running=state.is_running,
            completed_focus_sessions=state.completed_focus_sessions,
            cycle_complete=state.cycle_complete,
            session_completion_count=state.session_completion_count,
            cycle_completion_count=state.cycle_completion_count,
            last_completed_session=state.last_completed_session,
            durations=self._clock.durations,
            auto_advance=self._auto_advance,
        )

    def bind_tick_sink(self, sink: Optional[TickSink]) -> None:
        """Route tick prompts somewhere other than ``handle_tick`` (e.g. a queue)."""
        self._clock.bind_tick_sink(sink if sink is not None else self.handle_tick)

    def add_listener(self, listener: TimerListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TimerListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def apply(self, action: str, *, session: Any = None) -> CycleActionResult:
        if action == ACTION_START:
            accepted, reason = self._start()
        elif action == ACTION_PAUSE:
            accepted, reason = self._pause()
        elif action == ACTION_TOGGLE:
            if self._state.is_running:
                accepted, reason = self._pause()
            else:
                accepted, reason = self._start()
        elif action == ACTION_RESET_SESSION:
            self._clock.reset_current_session()
            accepted, reason = True, REASON_RESET
        elif action == ACTION_RESET_CYCLE:
            self._tracker.reset_cycle()
            accepted, reason = True, REASON_CYCLE_RESET
        elif action == ACTION_SKIP:
            self._tracker.skip()
            accepted, reason = True, REASON_SKIPPED
        elif action == ACTION_SKIP_AND_START_NEXT:
            self._tracker.skip()
            self._start()
            accepted, reason = True, REASON_SKIPPED
        elif action == ACTION_SELECT_SESSION:
            kind = SessionKind.parse(session)
            if kind is None:
                accepted, reason = False, REASON_INVALID_SESSION
            else:
                self._clock.select_session(kind)
                accepted, reason = True, REASON_SELECTED
        elif action == ACTION_START_FOCUS:
            self._start_session(SessionKind.FOCUS)
            accepted, reason = True, REASON_STARTED
        elif action == ACTION_START_BREAK:
            self._start_session(self._tracker.next_break())
            accepted, reason = True, REASON_STARTED
        else:
            accepted, reason = False, REASON_UNSUPPORTED_ACTION

        if accepted:
            self._after_change()
        else:
            self._logger.debug("Command rejected: action=%s reason=%s", action, reason)
        return CycleActionResult(
            action=action,
            accepted=accepted,
            reason=reason,
            snapshot=self.snapshot(),
        )

    def start(self) -> CycleActionResult:
        return self.apply(ACTION_START)

    def pause(self) -> CycleActionResult:
        return self.apply(ACTION_PAUSE)

    def toggle(self) -> CycleActionResult:
        return self.apply(ACTION_TOGGLE)

    def reset_session(self) -> CycleActionResult:
        return self.apply(ACTION_RESET_SESSION)

    def reset_cycle(self) -> CycleActionResult:
        return self.apply(ACTION_RESET_CYCLE)

    def skip(self) -> CycleActionResult:
        return self.apply(ACTION_SKIP)

    def skip_and_start_next(self) -> CycleActionResult:
        return self.apply(ACTION_SKIP_AND_START_NEXT)

    def select_session(self, kind: SessionKind) -> CycleActionResult:
        return self.apply(ACTION_SELECT_SESSION, session=kind)

    def start_focus_session(self) -> CycleActionResult:
        return self.apply(ACTION_START_FOCUS)

    def start_break_session(self) -> CycleActionResult:
        return self.apply(ACTION_START_BREAK)

    def update_durations(self, durations: DurationConfig) -> TimerSnapshot:
        previous = self._clock.durations
        expired = self._clock.configure(durations)
        if expired:
            self._complete_session()
        elif self._clock.durations != previous:
            self._after_change()
        return self.snapshot()

    def set_auto_advance(self, enabled: bool) -> None:
        self._auto_advance = bool(enabled)

    def handle_tick(self, generation: Optional[int] = None) -> bool:
        """Resync from the anchor; return True when the session completed."""
        if not self._clock.accepts_tick(generation):
            return False

        before = self._state.remaining_seconds
        self._clock.resync()
        if self._clock.is_expired:
            self._complete_session()
            return True

        if self._state.remaining_seconds != before:
            self._emit(EVENT_STATE_CHANGED)
        self._publish()
        return False

    def sync_after_foreground(self) -> bool:
        if not self._state.is_running:
            return False
        return self.handle_tick()

    def apply_snapshot(
        self,
        payload: Mapping[str, Any],
        *,
        received_at: Optional[float] = None,
    ) -> IncomingUpdate:
        update = self._sync.apply_incoming(payload, received_at=received_at)
        if update.expired:
            self._complete_session()
        elif update.state_applied or update.durations_changed:
            self._emit(EVENT_STATE_CHANGED)
        return update

    def publish(self, force: bool = False) -> bool:
        if self._role != ROLE_PRIMARY:
            return False
        return self._sync.publish(force=force)

    def flush_pending(self) -> bool:
        return self._sync.flush_pending()

    def _start(self) -> tuple[bool, str]:
        if self._state.cycle_complete:
            self._tracker.reset_cycle()
        if not self._clock.start():
            return False, REASON_ALREADY_RUNNING
        return True, REASON_STARTED

    def _pause(self) -> tuple[bool, str]:
        if not self._clock.pause():
            return False, REASON_NOT_RUNNING
        return True, REASON_PAUSED

    def _start_session(self, kind: SessionKind) -> None:
        self._clock.select_session(kind)
        self._clock.start()

    def _complete_session(self) -> None:
        state = self._state
        completed = state.current_session
        self._clock.stop()

        cycle_done = self._tracker.advance(credit_focus=True)
        state.last_completed_session = completed
        if cycle_done:
            state.cycle_complete = True
            state.cycle_completion_count += 1
        state.session_completion_count += 1
        self._logger.info(
            "Session completed: %s -> %s (completed focus sessions=%s)",
            completed.value,
            state.current_session.value,
            state.completed_focus_sessions,
        )

        if self._auto_advance and not cycle_done:
            self._clock.start()

        self._emit(EVENT_SESSION_COMPLETED, completed)
        if cycle_done:
            self._emit(EVENT_CYCLE_COMPLETED, completed)
        self._after_change()

    def _after_change(self) -> None:
        self._emit(EVENT_STATE_CHANGED)
        self._publish()

    def _publish(self) -> None:
        if self._role == ROLE_PRIMARY:
            self._sync.publish()

    def _emit(self, kind: str, completed_session: Optional[SessionKind] = None) -> None:
        if not self._listeners:
            return
        event = TimerEvent(
            kind=kind,
            snapshot=self.snapshot(),
            completed_session=completed_session,
        )
        for listener in tuple(self._listeners):
            try:
                listener(event)
            except Exception as error:
                self._logger.error(
                    "Timer listener failed for %s: %s",
                    kind,
                    error,
                    exc_info=True,
                )
