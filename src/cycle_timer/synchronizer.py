"""Throttled snapshot publishing and latency-compensated snapshot application."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Protocol

from contracts.sync_protocol import (
    KEY_COMPLETED_FOCUS_SESSIONS,
    KEY_CURRENT_SESSION,
    KEY_DID_COMPLETE_CYCLE,
    KEY_FOCUS_MINUTES,
    KEY_IS_RUNNING,
    KEY_LONG_BREAK_MINUTES,
    KEY_REMAINING_SECONDS,
    KEY_SHORT_BREAK_MINUTES,
    KEY_UPDATED_AT,
)

from .clock import SessionClock
from .constants import RUNNING_UPDATE_THROTTLE_SECONDS
from .durations import DurationConfig, SessionKind
from .state import TimerState


class SyncTransportError(Exception):
    """Raised by a transport when a snapshot could not be handed off."""


class SnapshotTransport(Protocol):
    """Delivery channel for outbound snapshot payloads."""

    @property
    def is_active(self) -> bool: ...

    def send(self, payload: dict[str, Any]) -> None: ...


@dataclass(frozen=True)
class SyncSnapshot:
    """Compact copy of timer state sent to a mirrored instance."""
    durations: DurationConfig
    current_session: SessionKind
    remaining_seconds: int
    is_running: bool
    completed_focus_sessions: int
    cycle_complete: bool
    sent_at: float

    def same_state_as(self, other: "SyncSnapshot") -> bool:
        return (
            self.same_discrete_state_as(other)
            and self.remaining_seconds == other.remaining_seconds
        )

    def same_discrete_state_as(self, other: "SyncSnapshot") -> bool:
        """Equal in everything except the ticking remaining time."""
        return (
            self.durations == other.durations
            and self.current_session is other.current_session
            and self.is_running == other.is_running
            and self.completed_focus_sessions == other.completed_focus_sessions
            and self.cycle_complete == other.cycle_complete
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            KEY_FOCUS_MINUTES: self.durations.focus_minutes,
            KEY_SHORT_BREAK_MINUTES: self.durations.short_break_minutes,
            KEY_LONG_BREAK_MINUTES: self.durations.long_break_minutes,
            KEY_CURRENT_SESSION: self.current_session.value,
            KEY_REMAINING_SECONDS: self.remaining_seconds,
            KEY_IS_RUNNING: self.is_running,
            KEY_COMPLETED_FOCUS_SESSIONS: self.completed_focus_sessions,
            KEY_DID_COMPLETE_CYCLE: self.cycle_complete,
            KEY_UPDATED_AT: self.sent_at,
        }

    @classmethod
    def from_state(
        cls,
        state: TimerState,
        durations: DurationConfig,
        sent_at: float,
    ) -> "SyncSnapshot":
        return cls(
            durations=durations.sanitized(),
            current_session=state.current_session,
            remaining_seconds=max(0, state.remaining_seconds),
            is_running=state.is_running,
            completed_focus_sessions=max(0, state.completed_focus_sessions),
            cycle_complete=state.cycle_complete,
            sent_at=sent_at,
        )

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        received_at: float,
    ) -> Optional["SyncSnapshot"]:
        """Parse a complete payload, or return None when any state field is unusable."""
        durations = parse_durations(payload)
        if durations is None:
            return None

        session = SessionKind.parse(payload.get(KEY_CURRENT_SESSION))
        remaining = _int_value(payload.get(KEY_REMAINING_SECONDS))
        is_running = _bool_value(payload.get(KEY_IS_RUNNING))
        completed = _int_value(payload.get(KEY_COMPLETED_FOCUS_SESSIONS))
        cycle_complete = _bool_value(payload.get(KEY_DID_COMPLETE_CYCLE))
        if (
            session is None
            or remaining is None
            or is_running is None
            or completed is None
            or cycle_complete is None
        ):
            return None

        sent_at = _float_value(payload.get(KEY_UPDATED_AT))
        return cls(
            durations=durations,
            current_session=session,
            remaining_seconds=max(0, remaining),
            is_running=is_running,
            completed_focus_sessions=max(0, completed),
            cycle_complete=cycle_complete,
            sent_at=received_at if sent_at is None else sent_at,
        )


@dataclass(frozen=True)
class IncomingUpdate:
    """Outcome of applying one inbound peer payload."""
    durations_applied: bool
    durations_changed: bool
    state_applied: bool
    transfer_delay_seconds: int = 0
    expired: bool = False


class StateSynchronizer:
    """Publishes throttled snapshots and applies snapshots received from a peer."""

    def __init__(
        self,
        state: TimerState,
        clock: SessionClock,
        *,
        transport: Optional[SnapshotTransport] = None,
        now_fn: Callable[[], float] = time.time,
        throttle_interval_seconds: float = RUNNING_UPDATE_THROTTLE_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self._state = state
        self._clock = clock
        self._transport = transport
        self._now_fn = now_fn
        self._throttle_interval_seconds = max(0.0, float(throttle_interval_seconds))
        self._logger = logger or logging.getLogger("cycle_timer.sync")

        self._pending: Optional[SyncSnapshot] = None
        self._last_sent: Optional[SyncSnapshot] = None
        self._last_sent_at: Optional[float] = None
        self._settings_sync_count = 0

    @property
    def pending(self) -> Optional[SyncSnapshot]:
        return self._pending

    @property
    def last_sent(self) -> Optional[SyncSnapshot]:
        return self._last_sent

    @property
    def settings_sync_count(self) -> int:
        """Number of inbound payloads that changed local durations."""
        return self._settings_sync_count

    def attach_transport(self, transport: Optional[SnapshotTransport]) -> None:
        self._transport = transport

    def publish(self, force: bool = False) -> bool:
        """Queue the current state for the peer; return True when it was sent."""
        now = self._now_fn()
        candidate = SyncSnapshot.from_state(self._state, self._clock.durations, now)

        # A pending snapshot is superseded by the current state, never resent.
        if not force and self._pending is None and self._should_throttle(candidate, now):
            return False

        self._pending = candidate
        return self.flush_pending()

    def flush_pending(self) -> bool:
        """Try to hand the pending snapshot to the transport."""
        pending = self._pending
        if pending is None:
            return False

        transport = self._transport
        if transport is None or not transport.is_active:
            self._logger.debug("Snapshot kept pending: transport not active")
            return False

        try:
            transport.send(pending.to_payload())
        except SyncTransportError as error:
            self._logger.warning("Snapshot delivery failed, will retry: %s", error)
            return False

        self._pending = None
        self._last_sent = pending
        self._last_sent_at = self._now_fn()
        self._logger.debug(
            "Snapshot sent: session=%s remaining=%ss running=%s",
            pending.current_session.value,
            pending.remaining_seconds,
            pending.is_running,
        )
        return True

    def apply_incoming(
        self,
        payload: Mapping[str, Any],
        *,
        received_at: Optional[float] = None,
    ) -> IncomingUpdate:
        """Apply a peer payload, compensating for time spent in transit."""
        if not isinstance(payload, Mapping):
            self._logger.warning("Ignoring non-mapping peer payload: %r", type(payload).__name__)
            return IncomingUpdate(False, False, False)

        now = self._now_fn() if received_at is None else received_at
        previous = self._clock.durations
        snapshot = SyncSnapshot.from_payload(payload, received_at=now)
        if snapshot is None:
            durations = merge_durations(payload, previous)
            if durations is None:
                self._logger.warning("Ignoring peer payload without usable fields")
                return IncomingUpdate(False, False, False)
            expired = self._clock.configure(durations)
            changed = self._clock.durations != previous
            if changed:
                self._settings_sync_count += 1
            self._logger.debug("Peer payload carried durations only")
            return IncomingUpdate(True, changed, False, expired=expired)

        transfer_delay = max(0, int(now - snapshot.sent_at))
        remaining = max(0, snapshot.remaining_seconds - transfer_delay)

        self._clock.restore(snapshot.durations, snapshot.current_session, remaining)
        changed = self._clock.durations != previous
        if changed:
            self._settings_sync_count += 1

        state = self._state
        state.completed_focus_sessions = snapshot.completed_focus_sessions
        state.cycle_complete = snapshot.cycle_complete
        if state.cycle_complete:
            state.remaining_seconds = 0
        if snapshot.is_running and not state.cycle_complete and state.remaining_seconds > 0:
            self._clock.start()

        self._logger.debug(
            "Applied peer snapshot: session=%s remaining=%ss delay=%ss running=%s",
            state.current_session.value,
            state.remaining_seconds,
            transfer_delay,
            state.is_running,
        )
        return IncomingUpdate(True, changed, True, transfer_delay_seconds=transfer_delay)

    def _should_throttle(self, candidate: SyncSnapshot, now: float) -> bool:
        last_sent = self._last_sent
        if last_sent is None:
            return False
        if candidate.same_state_as(last_sent):
            return True
        if not (candidate.is_running and candidate.same_discrete_state_as(last_sent)):
            return False
        if self._last_sent_at is None:
            return False
        return now - self._last_sent_at < self._throttle_interval_seconds


def parse_durations(payload: Mapping[str, Any]) -> Optional[DurationConfig]:
    focus = _int_value(payload.get(KEY_FOCUS_MINUTES))
    short_break = _int_value(payload.get(KEY_SHORT_BREAK_MINUTES))
    long_break = _int_value(payload.get(KEY_LONG_BREAK_MINUTES))
    if focus is None or short_break is None or long_break is None:
        return None
    return DurationConfig(
        focus_minutes=focus,
        short_break_minutes=short_break,
        long_break_minutes=long_break,
    ).sanitized()


def merge_durations(
    payload: Mapping[str, Any],
    base: DurationConfig,
) -> Optional[DurationConfig]:
    """Overlay whichever duration fields parse onto ``base``; None if none do."""
    focus = _int_value(payload.get(KEY_FOCUS_MINUTES))
    short_break = _int_value(payload.get(KEY_SHORT_BREAK_MINUTES))
    long_break = _int_value(payload.get(KEY_LONG_BREAK_MINUTES))
    if focus is None and short_break is None and long_break is None:
        return None
    return DurationConfig(
        focus_minutes=base.focus_minutes if focus is None else focus,
        short_break_minutes=base.short_break_minutes if short_break is None else short_break,
        long_break_minutes=base.long_break_minutes if long_break is None else long_break,
    ).sanitized()


def _int_value(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    return None


def _bool_value(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    return None


def _float_value(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return float(value)
    return None
