"""Event dataclasses posted to the runtime queue by ticks, peers, and the console."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from queue import Queue
from typing import Any, Mapping, Optional, Protocol


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TickPrompt:
    """Periodic prompt asking the timer to resync; tagged with the clock generation."""
    generation: int


@dataclass(frozen=True)
class CommandRequested:
    """Local (console) or peer-forwarded user command."""
    command: str
    arguments: tuple[str, ...] = ()
    source: str = "console"


@dataclass(frozen=True)
class SnapshotReceived:
    """Peer snapshot payload together with its local receive time."""
    payload: Mapping[str, Any]
    received_at: float


@dataclass(frozen=True)
class TransportActivated:
    """The peer transport (re)connected; pending snapshots can be retried."""
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ForegroundResumed:
    """The process resumed after being suspended."""
    occurred_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True)
class ShutdownRequested:
    reason: str
    exit_code: int = 0


RuntimeEvent = (
    TickPrompt
    | CommandRequested
    | SnapshotReceived
    | TransportActivated
    | ForegroundResumed
    | ShutdownRequested
)


class EventPublisher(Protocol):
    """Protocol for publishing runtime events."""

    def publish(self, event: RuntimeEvent) -> None: ...


class QueueEventPublisher:
    """Event publisher that pushes events to a queue."""

    def __init__(self, queue: Queue):
        self._queue = queue

    def publish(self, event: RuntimeEvent) -> None:
        self._queue.put(event)

    def publish_tick(self, generation: int) -> None:
        self._queue.put(TickPrompt(generation=generation))

    def publish_peer_command(self, command: str, session: Optional[str]) -> None:
        arguments = (session,) if session else ()
        self._queue.put(CommandRequested(command=command, arguments=arguments, source="peer"))

    def publish_snapshot(self, payload: Mapping[str, Any], received_at: float) -> None:
        self._queue.put(SnapshotReceived(payload=dict(payload), received_at=received_at))

    def publish_activated(self) -> None:
        self._queue.put(TransportActivated())


def event_priority(event: Any) -> int:
    """Ordering key within one loop turn: local commands before peer snapshots."""
    if isinstance(event, CommandRequested):
        return 0
    if isinstance(event, SnapshotReceived):
        return 2
    return 1
