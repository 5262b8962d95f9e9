"""Dispatcher that executes normalized user commands against the cycle timer."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from cycle_timer import CycleTimer, DurationConfig, SyncTransportError
from cycle_timer.constants import (
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
    ACTIONS,
)

from .events import CommandRequested
from .messages import rejection_message, status_message

COMMAND_DURATIONS = "durations"
COMMAND_AUTO = "auto"
COMMAND_STATUS = "status"
COMMAND_SYNC = "sync"
COMMAND_QUIT = "quit"

COMMAND_ALIASES: dict[str, str] = {
    "start": ACTION_START,
    "resume": ACTION_START,
    "pause": ACTION_PAUSE,
    "toggle": ACTION_TOGGLE,
    "reset": ACTION_RESET_SESSION,
    "reset-cycle": ACTION_RESET_CYCLE,
    "skip": ACTION_SKIP,
    "next": ACTION_SKIP_AND_START_NEXT,
    "select": ACTION_SELECT_SESSION,
    "focus": ACTION_START_FOCUS,
    "break": ACTION_START_BREAK,
}

CommandForwarder = Callable[[str, Optional[str]], None]


def resolve_action(command: str) -> Optional[str]:
    name = command.strip().lower()
    if name in COMMAND_ALIASES:
        return COMMAND_ALIASES[name]
    if name in ACTIONS:
        return name
    return None


class RuntimeCommandDispatcher:
    """Routes console and peer commands to timer actions."""
    def __init__(
        self,
        *,
        timer: CycleTimer,
        logger: logging.Logger,
        forward: Optional[CommandForwarder] = None,
    ):
        self._timer = timer
        self._logger = logger
        self._forward = forward

    def handle(self, event: CommandRequested) -> str:
        name = event.command.strip().lower()
        if name == COMMAND_STATUS:
            return status_message(self._timer.snapshot())
        if name == COMMAND_SYNC:
            self._timer.sync_after_foreground()
            return status_message(self._timer.snapshot())
        if name == COMMAND_DURATIONS:
            return self._handle_durations(event.arguments)
        if name == COMMAND_AUTO:
            return self._handle_auto(event.arguments)

        action = resolve_action(name)
        if action is None:
            self._logger.warning("Unsupported command: %s", event.command)
            return rejection_message(event.command, "unsupported_action")

        session = event.arguments[0] if event.arguments else None
        result = self._timer.apply(action, session=session)
        if not result.accepted:
            return rejection_message(action, result.reason)

        if event.source == "console":
            self._forward_to_primary(action, session)
        return status_message(result.snapshot)

    def _handle_durations(self, arguments: tuple[str, ...]) -> str:
        if len(arguments) != 3:
            return "Usage: durations <focus> <short break> <long break> (minutes)"
        # DurationConfig clamps anything unusable to one minute.
        durations = DurationConfig(
            focus_minutes=arguments[0],
            short_break_minutes=arguments[1],
            long_break_minutes=arguments[2],
        )
        snapshot = self._timer.update_durations(durations)
        applied = snapshot.durations
        return (
            f"Durations set to {applied.focus_minutes}/"
            f"{applied.short_break_minutes}/{applied.long_break_minutes} minutes. "
            f"{status_message(snapshot)}"
        )

    def _handle_auto(self, arguments: tuple[str, ...]) -> str:
        value = arguments[0].strip().lower() if arguments else ""
        if value not in ("on", "off"):
            return "Usage: auto on|off"
        self._timer.set_auto_advance(value == "on")
        return f"Auto-advance {value}."

    def _forward_to_primary(self, action: str, session: Optional[str]) -> None:
        if self._forward is None:
            return
        try:
            self._forward(action, session)
        except SyncTransportError as error:
            self._logger.warning("Could not forward %s to primary: %s", action, error)
