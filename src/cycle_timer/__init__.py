from .clock import SessionClock
from .constants import ROLE_MIRROR, ROLE_PRIMARY
from .durations import MIRROR_LIMITS, DurationConfig, DurationLimits, SessionKind
from .service import CycleActionResult, CycleTimer, TimerEvent, TimerListener
from .state import TimerSnapshot, TimerState
from .synchronizer import (
    IncomingUpdate,
    SnapshotTransport,
    StateSynchronizer,
    SyncSnapshot,
    SyncTransportError,
)
from .ticks import IntervalTickSource, NullTickSource, TickSource
from .tracker import CycleTracker

__all__ = [
    "CycleActionResult",
    "CycleTimer",
    "CycleTracker",
    "DurationConfig",
    "DurationLimits",
    "IncomingUpdate",
    "IntervalTickSource",
    "MIRROR_LIMITS",
    "NullTickSource",
    "ROLE_MIRROR",
    "ROLE_PRIMARY",
    "SessionClock",
    "SessionKind",
    "SnapshotTransport",
    "StateSynchronizer",
    "SyncSnapshot",
    "SyncTransportError",
    "TickSource",
    "TimerEvent",
    "TimerListener",
    "TimerSnapshot",
    "TimerState",
]
