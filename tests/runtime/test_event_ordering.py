import logging
import unittest
from queue import Queue

from cycle_timer import CycleTimer, DurationConfig, SessionKind
from cycle_timer.constants import ROLE_MIRROR
from runtime.events import (
    CommandRequested,
    ForegroundResumed,
    QueueEventPublisher,
    ShutdownRequested,
    SnapshotReceived,
    TickPrompt,
    TransportActivated,
    event_priority,
)
from runtime.loop import RuntimeBootstrap, RuntimeEngine


class _Clock:
    def __init__(self):
        self.current = 5_000.0

    def __call__(self) -> float:
        return self.current


class _Service:
    def __init__(self, fail_start: bool = False):
        self.fail_start = fail_start
        self.started = 0
        self.stopped = 0

    def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("port in use")
        self.started += 1

    def stop(self) -> None:
        self.stopped += 1


def _engine(role: str = "primary", services=()):
    clock = _Clock()
    queue: Queue = Queue()
    timer = CycleTimer(role=role, durations=DurationConfig(1, 1, 2), now_fn=clock)
    messages: list[str] = []
    engine = RuntimeEngine(
        RuntimeBootstrap(
            logger=logging.getLogger("test.runtime"),
            timer=timer,
            event_queue=queue,
            publisher=QueueEventPublisher(queue),
            services=tuple(services),
            output=messages.append,
        )
    )
    return engine, timer, queue, clock, messages


def _snapshot_payload(clock: _Clock, session: str) -> dict:
    return {
        "focus_minutes": 1,
        "short_break_minutes": 1,
        "long_break_minutes": 2,
        "current_session": session,
        "remaining_seconds": 30,
        "is_running": False,
        "completed_focus_sessions": 0,
        "did_complete_cycle": False,
        "updated_at": clock.current,
    }


class EventPriorityTests(unittest.TestCase):
    def test_commands_sort_before_peer_snapshots(self) -> None:
        events = [
            SnapshotReceived(payload={}, received_at=0.0),
            TickPrompt(generation=1),
            CommandRequested(command="skip"),
        ]
        ordered = sorted(events, key=event_priority)
        self.assertIsInstance(ordered[0], CommandRequested)
        self.assertIsInstance(ordered[-1], SnapshotReceived)


class RuntimeEngineTests(unittest.TestCase):
    def test_drain_keeps_fifo_within_same_priority(self) -> None:
        engine, _, queue, clock, _ = _engine()
        queue.put(SnapshotReceived(payload={}, received_at=clock.current))
        queue.put(CommandRequested(command="start"))
        queue.put(TickPrompt(generation=1))
        queue.put(CommandRequested(command="pause"))

        batch = engine._drain()

        self.assertEqual(
            ["start", "pause"],
            [event.command for event in batch[:2]],
        )
        self.assertIsInstance(batch[2], TickPrompt)
        self.assertIsInstance(batch[3], SnapshotReceived)

    def test_drain_returns_empty_batch_when_idle(self) -> None:
        engine, _, _, _, _ = _engine()
        self.assertEqual([], engine._drain())

    def test_snapshot_in_same_batch_wins_over_local_command(self) -> None:
        engine, timer, queue, clock, _ = _engine(role=ROLE_MIRROR)
        queue.put(SnapshotReceived(payload=_snapshot_payload(clock, "longBreak"), received_at=clock.current))
        queue.put(CommandRequested(command="select", arguments=("shortBreak",)))

        for event in engine._drain():
            engine.handle_event(event)

        snapshot = timer.snapshot()
        self.assertIs(SessionKind.LONG_BREAK, snapshot.current_session)
        self.assertEqual(30, snapshot.remaining_seconds)

    def test_tick_prompt_completes_expired_session(self) -> None:
        engine, timer, _, clock, messages = _engine()
        timer.start()
        clock.current += 60

        engine.handle_event(TickPrompt(generation=timer._clock.generation))

        self.assertIs(SessionKind.SHORT_BREAK, timer.snapshot().current_session)
        self.assertIn(
            "Focus session complete. Start your Short Break or skip ahead.",
            messages,
        )

    def test_foreground_resume_resyncs(self) -> None:
        engine, timer, _, clock, _ = _engine()
        timer.start()
        clock.current += 15

        engine.handle_event(ForegroundResumed())

        self.assertEqual(45, timer.snapshot().remaining_seconds)

    def test_transport_activation_flushes_pending(self) -> None:
        engine, timer, _, _, _ = _engine()
        timer.start()
        self.assertIsNotNone(timer.synchronizer.pending)

        sent = []

        class _Transport:
            is_active = True

            def send(self, payload) -> None:
                sent.append(payload)

        timer.synchronizer.attach_transport(_Transport())
        engine.handle_event(TransportActivated())

        self.assertIsNone(timer.synchronizer.pending)
        self.assertTrue(sent[0]["is_running"])

    def test_shutdown_returns_exit_code(self) -> None:
        engine, _, _, _, _ = _engine()
        self.assertEqual(3, engine.handle_event(ShutdownRequested(reason="test", exit_code=3)))

    def test_run_starts_and_stops_services(self) -> None:
        service = _Service()
        broken = _Service(fail_start=True)
        engine, _, queue, _, _ = _engine(services=(service, broken))
        queue.put(ShutdownRequested(reason="test"))

        self.assertEqual(0, engine.run())
        self.assertEqual(1, service.started)
        self.assertEqual(1, service.stopped)
        self.assertEqual(0, broken.stopped)


if __name__ == "__main__":
    unittest.main()
