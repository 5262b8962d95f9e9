from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

import websockets
from websockets.asyncio.server import ServerConnection
from websockets.datastructures import Headers
from websockets.http11 import Request, Response

from contracts.sync_protocol import (
    EVENT_COMMAND,
    EVENT_CONTEXT,
    EVENT_HELLO,
    FIELD_COMMAND,
    FIELD_CONTEXT,
    FIELD_SESSION,
)
from cycle_timer.synchronizer import SyncTransportError

from .config import HEALTHZ_PATH, SyncServerConfig
from .events import LatestEventStore, make_event, parse_event

CommandCallback = Callable[[str, Optional[str]], None]


class SyncServer:
    """Threaded asyncio websocket server pushing snapshot contexts to mirrors."""

    def __init__(
        self,
        config: SyncServerConfig,
        *,
        on_command: Optional[CommandCallback] = None,
        on_peer_connected: Optional[Callable[[], None]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._config = config
        self._on_command = on_command
        self._on_peer_connected = on_peer_connected
        self._logger = logger or logging.getLogger("peer_sync.server")
        self._thread: Optional[threading.Thread] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._stop_async: Optional[asyncio.Event] = None
        self._started = threading.Event()
        self._startup_error: Optional[Exception] = None
        self._connected_peers: set[ServerConnection] = set()
        self._latest = LatestEventStore()

    @property
    def is_running(self) -> bool:
        return (
            self._thread is not None
            and self._thread.is_alive()
            and self._startup_error is None
        )

    @property
    def is_active(self) -> bool:
        # Contexts are replayed on connect, so a running server accepts sends
        # even before any mirror is attached.
        return self.is_running and self._loop is not None

    def start(self, timeout_seconds: float = 5.0) -> None:
        if self.is_running:
            self._logger.warning("Sync server is already running")
            return

        self._startup_error = None
        self._started.clear()
        self._thread = threading.Thread(
            target=self._run_loop,
            daemon=True,
            name="sync-server",
        )
        self._thread.start()

        if not self._started.wait(timeout_seconds):
            raise RuntimeError(
                f"Sync server did not start within {timeout_seconds:.1f}s"
            )

        if self._startup_error is not None:
            raise RuntimeError(f"Sync server startup failed: {self._startup_error}")

    def stop(self, timeout_seconds: float = 5.0) -> None:
        if self._thread is None:
            return

        if self._loop and self._stop_async:
            self._loop.call_soon_threadsafe(self._stop_async.set)

        self._thread.join(timeout=timeout_seconds)
        if self._thread.is_alive():
            self._logger.error(
                "Sync server thread did not stop within %.1fs",
                timeout_seconds,
            )

        self._thread = None
        self._loop = None
        self._stop_async = None

    def send(self, payload: dict[str, Any]) -> None:
        """Replace the shared context and broadcast it to connected mirrors."""
        loop = self._loop
        if not self.is_running or loop is None:
            raise SyncTransportError("sync server is not running")

        message = make_event(EVENT_CONTEXT, **{FIELD_CONTEXT: payload})
        self._latest.remember(EVENT_CONTEXT, message)
        try:
            future = asyncio.run_coroutine_threadsafe(self._broadcast(message), loop)
        except RuntimeError as error:
            raise SyncTransportError(f"sync server loop unavailable: {error}") from error
        future.add_done_callback(self._consume_future_exception)

    @staticmethod
    def _consume_future_exception(future) -> None:
        with contextlib.suppress(Exception):
            future.result()

    def _run_loop(self) -> None:
        self._loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self._loop)
        self._stop_async = asyncio.Event()

        try:
            self._loop.run_until_complete(self._serve())
        except Exception as error:  # pragma: no cover - exercised manually
            self._startup_error = error
            self._logger.error("Sync server failed: %s", error, exc_info=True)
            self._started.set()
        finally:
            if self._loop is not None:
                pending = asyncio.all_tasks(self._loop)
                for task in pending:
                    task.cancel()
                with contextlib.suppress(Exception):
                    self._loop.run_until_complete(
                        asyncio.gather(*pending, return_exceptions=True)
                    )
                self._loop.close()

    async def _serve(self) -> None:
        async with websockets.serve(
            self._handler,
            host=self._config.host,
            port=self._config.port,
            process_request=self._process_request,
            logger=self._logger,
        ):
            self._logger.info(
                "Sync server listening on ws://%s:%d%s",
                self._config.host,
                self._config.port,
                self._config.websocket_path,
            )
            self._started.set()
            await self._stop_async.wait()
            await self._close_peers()

    async def _handler(self, websocket: ServerConnection) -> None:
        request_path = (
            urlsplit(websocket.request.path).path
            if websocket.request is not None
            else ""
        )
        if request_path != self._config.websocket_path:
            await websocket.close(code=1008, reason="Invalid websocket path")
            return

        self._connected_peers.add(websocket)
        self._logger.info("Mirror connected: %s", websocket.remote_address)
        try:
            await websocket.send(make_event(EVENT_HELLO, role="primary"))
            for message in self._latest.snapshot():
                await websocket.send(message)
            if self._on_peer_connected is not None:
                self._on_peer_connected()
            async for message in websocket:
                self._handle_peer_message(message)
        except websockets.exceptions.ConnectionClosed:
            self._logger.info("Mirror disconnected: %s", websocket.remote_address)
        finally:
            self._connected_peers.discard(websocket)

    def _handle_peer_message(self, raw: str | bytes) -> None:
        event = parse_event(raw)
        if event is None:
            self._logger.debug("Ignoring malformed peer message: %r", raw)
            return
        if event["type"] != EVENT_COMMAND:
            self._logger.debug("Ignoring peer event: %s", event["type"])
            return

        command = event.get(FIELD_COMMAND)
        session = event.get(FIELD_SESSION)
        if not isinstance(command, str) or self._on_command is None:
            return
        self._on_command(command, session if isinstance(session, str) else None)

    async def _process_request(
        self,
        connection: ServerConnection,
        request: Request,
    ) -> Response | None:
        del connection  # Unused in static routing.
        path = urlsplit(request.path).path

        if path == self._config.websocket_path:
            return None

        if path == HEALTHZ_PATH:
            return self._response(
                200,
                "OK",
                b"ok\n",
                "text/plain; charset=utf-8",
            )

        return self._response(
            404,
            "Not Found",
            b"not found\n",
            "text/plain; charset=utf-8",
        )

    def _response(
        self,
        status_code: int,
        reason_phrase: str,
        body: bytes,
        content_type: str,
    ) -> Response:
        headers = Headers()
        headers["Content-Type"] = content_type
        headers["Content-Length"] = str(len(body))
        headers["Cache-Control"] = "no-store"
        return Response(status_code, reason_phrase, headers, body)

    async def _close_peers(self) -> None:
        if not self._connected_peers:
            return

        tasks = [
            peer.close(code=1001, reason="Primary shutting down")
            for peer in tuple(self._connected_peers)
        ]
        await asyncio.gather(*tasks, return_exceptions=True)
        self._connected_peers.clear()

    async def _broadcast(self, message: str) -> None:
        if not self._connected_peers:
            return

        peers = tuple(self._connected_peers)
        disconnected = []
        tasks = [peer.send(message) for peer in peers]
        results = await asyncio.gather(*tasks, return_exceptions=True)
        for peer, result in zip(peers, results):
            if isinstance(result, Exception):
                disconnected.append(peer)
                self._logger.warning("Failed to send context to mirror: %s", result)

        for peer in disconnected:
            self._connected_peers.discard(peer)
