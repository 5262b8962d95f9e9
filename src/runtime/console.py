"""Background stdin reader that turns typed lines into runtime events."""

from __future__ import annotations

import logging
import shlex
import sys
import threading
from typing import Optional, TextIO

from .commands import COMMAND_QUIT
from .events import CommandRequested, EventPublisher, ShutdownRequested

HELP_TEXT = (
    "Commands: start, pause, toggle, skip, next, reset, reset-cycle, "
    "select <focus|shortBreak|longBreak>, focus, break, "
    "durations <focus> <short> <long>, auto on|off, status, sync, quit"
)


def parse_console_line(line: str) -> Optional[CommandRequested | ShutdownRequested]:
    """Split one console line into an event; blank or unparsable lines yield None."""
    try:
        parts = shlex.split(line)
    except ValueError:
        return None
    if not parts:
        return None

    command = parts[0].lower()
    if command in (COMMAND_QUIT, "exit"):
        return ShutdownRequested(reason="console quit")
    return CommandRequested(command=command, arguments=tuple(parts[1:]), source="console")


class ConsoleCommandReader:
    """Reads commands from a text stream on a daemon thread."""

    def __init__(
        self,
        publisher: EventPublisher,
        *,
        stream: Optional[TextIO] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._publisher = publisher
        self._stream = stream
        self._logger = logger or logging.getLogger("runtime.console")
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="console-reader",
        )
        self._thread.start()

    def stop(self) -> None:
        # readline() cannot be interrupted; the daemon thread exits with the process.
        self._stop_event.set()
        self._thread = None

    def _run(self) -> None:
        stream = self._stream or sys.stdin
        self._logger.info(HELP_TEXT)
        while not self._stop_event.is_set():
            try:
                line = stream.readline()
            except (OSError, ValueError) as error:
                self._logger.warning("Console input unavailable: %s", error)
                return
            if line == "":
                self._logger.debug("Console input closed")
                return

            event = parse_console_line(line)
            if event is None:
                continue
            if self._stop_event.is_set():
                return
            self._publisher.publish(event)
