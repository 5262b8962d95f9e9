import logging
import signal
import sys
import time
from queue import Queue
from typing import Any, Optional

from app_config import (
    AppConfig,
    AppConfigurationError,
    load_app_config,
    log_level,
    resolve_config_path,
)
from cycle_timer import CycleTimer, DurationConfig, IntervalTickSource
from cycle_timer.constants import ROLE_MIRROR, ROLE_PRIMARY
from peer_sync import (
    SyncClient,
    SyncClientConfig,
    SyncConfigurationError,
    SyncServer,
    SyncServerConfig,
)
from runtime import (
    ConsoleCommandReader,
    QueueEventPublisher,
    RuntimeBootstrap,
    RuntimeEngine,
    RuntimeHooks,
)
from runtime.events import ForegroundResumed, ShutdownRequested


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger("cycle_timer_app")


def setup_signal_handlers(publisher: QueueEventPublisher) -> None:
    """Turn SIGTERM/SIGINT into shutdown events and SIGCONT into a resync."""

    def shutdown_handler(signum: int, frame) -> None:
        signal_name = signal.Signals(signum).name
        publisher.publish(ShutdownRequested(reason=f"{signal_name} received"))

    def resume_handler(signum: int, frame) -> None:
        publisher.publish(ForegroundResumed())

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)
    if hasattr(signal, "SIGCONT"):
        signal.signal(signal.SIGCONT, resume_handler)


def build_timer(app_config: AppConfig, tick_source: IntervalTickSource) -> CycleTimer:
    settings = app_config.timer
    role = app_config.sync.role if app_config.sync.enabled else ROLE_PRIMARY
    return CycleTimer(
        role=role,
        durations=DurationConfig(
            focus_minutes=settings.focus_minutes,
            short_break_minutes=settings.short_break_minutes,
            long_break_minutes=settings.long_break_minutes,
        ),
        auto_advance=settings.auto_advance,
        tick_source=tick_source,
        throttle_interval_seconds=app_config.sync.throttle_seconds,
        logger=logging.getLogger("cycle_timer"),
    )


def main() -> int:
    """Run the cycle timer until a quit command or signal."""
    logger = setup_logging(level=logging.INFO)

    try:
        config_path = resolve_config_path()
        app_config = load_app_config()
    except AppConfigurationError as error:
        logger.error(f"App configuration error: {error}")
        return 1

    logging.getLogger().setLevel(log_level(app_config.logging))
    if app_config.source_file:
        logger.info("Loaded runtime config: %s", config_path)
    else:
        logger.info("No config file at %s; using defaults", config_path)

    event_queue: Queue[Any] = Queue()
    publisher = QueueEventPublisher(event_queue)

    tick_source = IntervalTickSource(logger=logging.getLogger("cycle_timer.ticks"))
    timer = build_timer(app_config, tick_source)
    timer.bind_tick_sink(publisher.publish_tick)

    services: list[Any] = []
    forward_command = None

    if app_config.sync.enabled:
        try:
            if timer.role == ROLE_MIRROR:
                client = SyncClient(
                    SyncClientConfig.from_settings(app_config.sync),
                    on_context=publisher.publish_snapshot,
                    on_activated=publisher.publish_activated,
                    logger=logging.getLogger("peer_sync.client"),
                )
                services.append(client)
                forward_command = _forwarder(client)
            else:
                server = SyncServer(
                    SyncServerConfig.from_settings(app_config.sync),
                    on_command=publisher.publish_peer_command,
                    on_peer_connected=publisher.publish_activated,
                    logger=logging.getLogger("peer_sync.server"),
                )
                timer.synchronizer.attach_transport(server)
                services.append(server)
        except SyncConfigurationError as error:
            logger.error(f"Sync configuration error: {error}")
            return 1

    if app_config.console.enabled:
        services.append(
            ConsoleCommandReader(publisher, logger=logging.getLogger("runtime.console"))
        )

    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logging.getLogger("runtime"),
            timer=timer,
            event_queue=event_queue,
            publisher=publisher,
            services=tuple(services),
            forward_command=forward_command,
            output=print,
            hooks=RuntimeHooks(setup_signal_handlers=setup_signal_handlers),
        )
    )
    started = time.monotonic()
    exit_code = engine.run()
    logger.info("Stopped after %.0fs", time.monotonic() - started)
    return exit_code


def _forwarder(client: SyncClient):
    def forward(command: str, session: Optional[str]) -> None:
        client.send_command(command, session=session)

    return forward


if __name__ == "__main__":
    sys.exit(main())
