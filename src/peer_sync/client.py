from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional

import websockets
from websockets.asyncio.client import ClientConnection, connect

from contracts.sync_protocol import (
    EVENT_COMMAND,
    EVENT_CONTEXT,
    FIELD_COMMAND,
    FIELD_CONTEXT,
    FIELD_SESSION,
)
from cycle_timer.synchronizer import SyncTransportError

from .config import SyncClientConfig
from .events import make_event, parse_event

ContextCallback = Callable[[Mapping[str, Any], float], None]


class SyncClient:
    """Threaded asyncio websocket client that receives contexts from the primary."""

    def __init__(
        self,
        config: SyncClientConfig,
        *,
        on_context: ContextCallback,
        on_activated: Optional[Callable[[], None]] = None,
        now_fn: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._on_context = on_context
        self._on_activated = on_activated
        self._now_fn = now_fn
        self._logger = logger or logging.getLogger("peer_sync.client")
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_async: Optional[asyncio.Event] = None
        self._connection: Optional[ClientConnection] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    def start(self) -> None:
        if self.is_running:
            self._logger.warning("Sync client is already running")
            return

        self._thread = threading.Thread(
            target=self._run_loop,
            daemon=True,
            name="sync-client",
        )
        self._thread.start()

    def stop(self, timeout_seconds: float = 5.0) -> None:
        if self._thread is None:
            return

        if self._loop and self._stop_async:
            self._loop.call_soon_threadsafe(self._stop_async.set)

        self._thread.join(timeout=timeout_seconds)
        if self._thread.is_alive():
            self._logger.error(
                "Sync client thread did not stop within %.1fs",
                timeout_seconds,
            )

        self._thread = None
        self._loop = None
        self._stop_async = None

    def send_command(self, command: str, *, session: Optional[str] = None) -> None:
        """Forward a local command to the primary; raises when disconnected."""
        connection = self._connection
        loop = self._loop
        if connection is None or loop is None:
            raise SyncTransportError("not connected to primary")

        payload: dict[str, Any] = {FIELD_COMMAND: command}
        if session:
            payload[FIELD_SESSION] = session
        message = make_event(EVENT_COMMAND, **payload)
        try:
            future = asyncio.run_coroutine_threadsafe(connection.send(message), loop)
        except RuntimeError as error:
            raise SyncTransportError(f"sync client loop unavailable: {error}") from error
        future.add_done_callback(self._log_send_failure)

    def _log_send_failure(self, future) -> None:
        with contextlib.suppress(asyncio.CancelledError):
            error = future.exception()
            if error is not None:
                self._logger.warning("Failed to forward command to primary: %s", error)

    def _run_loop(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._stop_async = asyncio.Event()

        try:
            self._loop.run_until_complete(self._run())
        except Exception as error:  # pragma: no cover - exercised manually
            self._logger.error("Sync client failed: %s", error, exc_info=True)
        finally:
            pending = asyncio.all_tasks(self._loop)
            for task in pending:
                task.cancel()
            with contextlib.suppress(Exception):
                self._loop.run_until_complete(
                    asyncio.gather(*pending, return_exceptions=True)
                )
            self._loop.close()

    async def _run(self) -> None:
        stop_async = self._stop_async
        while not stop_async.is_set():
            try:
                async with connect(self._config.peer_url, logger=self._logger) as websocket:
                    self._connection = websocket
                    self._logger.info("Connected to primary at %s", self._config.peer_url)
                    if self._on_activated is not None:
                        self._on_activated()
                    await self._receive_until_stopped(websocket)
            except (OSError, websockets.exceptions.WebSocketException) as error:
                self._logger.warning("Primary connection unavailable: %s", error)
            finally:
                self._connection = None

            if stop_async.is_set():
                break
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(
                    stop_async.wait(),
                    timeout=self._config.reconnect_delay_seconds,
                )

    async def _receive_until_stopped(self, websocket: ClientConnection) -> None:
        receiver = asyncio.create_task(self._receive(websocket))
        stopper = asyncio.create_task(self._stop_async.wait())
        done, pending = await asyncio.wait(
            {receiver, stopper},
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        if receiver in done:
            # Re-raise connection errors so the reconnect loop logs them.
            receiver.result()

    async def _receive(self, websocket: ClientConnection) -> None:
        async for message in websocket:
            event = parse_event(message)
            if event is None:
                self._logger.debug("Ignoring malformed primary message: %r", message)
                continue
            if event["type"] != EVENT_CONTEXT:
                continue
            context = event.get(FIELD_CONTEXT)
            if not isinstance(context, Mapping):
                self._logger.warning("Ignoring context event without payload")
                continue
            self._on_context(context, self._now_fn())
