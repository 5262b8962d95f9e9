"""Runtime engine exports."""

from .commands import RuntimeCommandDispatcher
from .console import ConsoleCommandReader
from .events import QueueEventPublisher
from .loop import RuntimeBootstrap, RuntimeEngine, RuntimeHooks

__all__ = [
    "ConsoleCommandReader",
    "QueueEventPublisher",
    "RuntimeBootstrap",
    "RuntimeCommandDispatcher",
    "RuntimeEngine",
    "RuntimeHooks",
]
