"""Runtime orchestration loop for tick prompts, console commands, and peer sync."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from queue import Empty, Queue
from typing import Any, Callable, Optional, Protocol

from cycle_timer import CycleTimer
from cycle_timer.constants import ROLE_PRIMARY

from .commands import RuntimeCommandDispatcher
from .events import (
    CommandRequested,
    ForegroundResumed,
    QueueEventPublisher,
    ShutdownRequested,
    SnapshotReceived,
    TickPrompt,
    TransportActivated,
    event_priority,
)
from .feedback import CompletionFeedback, FeedbackDependencies

POLL_TIMEOUT_SECONDS = 0.25


class ManagedService(Protocol):
    """Background component started before and stopped after the loop."""

    def start(self) -> None: ...

    def stop(self) -> None: ...


@dataclass(frozen=True)
class RuntimeHooks:
    """Injectable lifecycle hooks used by runtime startup and shutdown flow."""
    setup_signal_handlers: Callable[[QueueEventPublisher], None]


@dataclass(frozen=True)
class RuntimeBootstrap:
    """Dependency bundle required to construct the runtime engine."""
    logger: logging.Logger
    timer: CycleTimer
    event_queue: Queue[Any]
    publisher: QueueEventPublisher
    services: tuple[ManagedService, ...] = ()
    forward_command: Optional[Callable[[str, Optional[str]], None]] = None
    output: Optional[Callable[[str], None]] = None
    hooks: Optional[RuntimeHooks] = None


class RuntimeEngine:
    """Single owner of the timer: every mutation happens on the loop thread."""
    def __init__(self, bootstrap: RuntimeBootstrap):
        self._bootstrap = bootstrap
        self._logger = bootstrap.logger
        self._timer = bootstrap.timer
        self._queue = bootstrap.event_queue
        self._dispatcher = RuntimeCommandDispatcher(
            timer=self._timer,
            logger=self._logger,
            forward=bootstrap.forward_command,
        )
        self._feedback = CompletionFeedback(
            FeedbackDependencies(
                logger=logging.getLogger("runtime.feedback"),
                output=bootstrap.output,
            )
        )
        self._timer.add_listener(self._feedback)
        self._started: list[ManagedService] = []

    def run(self) -> int:
        try:
            if self._bootstrap.hooks is not None:
                self._bootstrap.hooks.setup_signal_handlers(self._bootstrap.publisher)

            for service in self._bootstrap.services:
                self._start_service(service)

            if self._timer.role == ROLE_PRIMARY:
                self._timer.publish(force=True)
            self._logger.info("Ready (%s role)", self._timer.role)

            while True:
                for event in self._drain():
                    exit_code = self.handle_event(event)
                    if exit_code is not None:
                        return exit_code

        except KeyboardInterrupt:
            self._logger.info("Shutdown requested by keyboard interrupt.")
            return 0
        except Exception as error:
            self._logger.error("Unexpected error: %s", error, exc_info=True)
            return 1
        finally:
            self._shutdown()

    def _start_service(self, service: ManagedService) -> None:
        name = type(service).__name__
        self._logger.debug("Starting %s", name)
        try:
            service.start()
        except Exception as error:
            # Sync and console are optional; the timer keeps running locally.
            self._logger.error("%s startup failed: %s", name, error)
            self._logger.warning("Continuing without %s.", name)
            return
        self._started.append(service)

    def _drain(self) -> list[Any]:
        """Block for the next event, then take everything already queued."""
        try:
            first = self._queue.get(timeout=POLL_TIMEOUT_SECONDS)
        except Empty:
            return []

        batch = [first]
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        # sorted() is stable, so events of equal priority stay FIFO.
        return sorted(batch, key=event_priority)

    def handle_event(self, event: Any) -> Optional[int]:
        if isinstance(event, TickPrompt):
            self._timer.handle_tick(event.generation)
            return None

        if isinstance(event, CommandRequested):
            message = self._dispatcher.handle(event)
            self._logger.debug("Command %s from %s", event.command, event.source)
            self._say(message)
            return None

        if isinstance(event, SnapshotReceived):
            update = self._timer.apply_snapshot(event.payload, received_at=event.received_at)
            if update.state_applied and update.transfer_delay_seconds:
                self._logger.debug(
                    "Applied peer snapshot with %ss transfer delay",
                    update.transfer_delay_seconds,
                )
            return None

        if isinstance(event, TransportActivated):
            self._logger.info("Peer transport active at %s", event.occurred_at.isoformat())
            self._timer.flush_pending()
            self._timer.publish(force=True)
            return None

        if isinstance(event, ForegroundResumed):
            self._logger.info("Resumed at %s; resyncing", event.occurred_at.isoformat())
            self._timer.sync_after_foreground()
            return None

        if isinstance(event, ShutdownRequested):
            self._logger.info("Shutdown requested: %s", event.reason)
            return event.exit_code

        self._logger.warning("Ignoring unknown event type: %s", type(event).__name__)
        return None

    def _say(self, message: str) -> None:
        output = self._bootstrap.output
        if output is not None:
            output(message)
        else:
            self._logger.info(message)

    def _shutdown(self) -> None:
        self._timer.remove_listener(self._feedback)

        for service in reversed(self._started):
            self._logger.info("Stopping %s...", type(service).__name__)
            try:
                service.stop()
            except Exception as error:
                self._logger.error(
                    "Error stopping %s: %s",
                    type(service).__name__,
                    error,
                    exc_info=True,
                )
        self._started.clear()
