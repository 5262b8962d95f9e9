"""Periodic tick sources that prompt the clock to resynchronize."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional, Protocol

from .constants import TICK_INTERVAL_SECONDS

TickCallback = Callable[[], None]


class TickSource(Protocol):
    """A cancellable, restartable periodic prompt."""

    def start(self, callback: TickCallback) -> None: ...

    def cancel(self) -> None: ...


class NullTickSource:
    """Tick source that never fires; used when the owner polls on its own."""

    def start(self, callback: TickCallback) -> None:
        del callback

    def cancel(self) -> None:
        return None


class IntervalTickSource:
    """Background thread calling ``callback`` roughly every ``interval_seconds``.

    The callback runs on the tick thread, so it must only hand the prompt to the
    owning context (for example by putting an event on a queue).
    """

    def __init__(
        self,
        interval_seconds: float = TICK_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")
        self._interval_seconds = float(interval_seconds)
        self._logger = logger or logging.getLogger("cycle_timer.ticks")
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None
        self._stop_event: Optional[threading.Event] = None

    @property
    def is_active(self) -> bool:
        with self._lock:
            return self._thread is not None and self._thread.is_alive()

    def start(self, callback: TickCallback) -> None:
        with self._lock:
            self._cancel_locked()
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(callback, stop_event),
                daemon=True,
                name="cycle-timer-ticks",
            )
            self._stop_event = stop_event
            self._thread = thread
        thread.start()

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        self._stop_event = None
        self._thread = None

    def _run(self, callback: TickCallback, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._interval_seconds):
            try:
                callback()
            except Exception as error:
                self._logger.error("Tick callback failed: %s", error, exc_info=True)
