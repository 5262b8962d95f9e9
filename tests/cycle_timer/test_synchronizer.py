import unittest

from contracts.sync_protocol import SNAPSHOT_KEYS
from cycle_timer import (
    DurationConfig,
    SessionClock,
    SessionKind,
    StateSynchronizer,
    SyncSnapshot,
    TimerState,
)
from timer_fakes import FakeClock, RecordingTickSource, RecordingTransport


def _make_sync(transport=None, durations: DurationConfig = DurationConfig.DEFAULT):
    now = FakeClock()
    state = TimerState.initial(durations)
    clock = SessionClock(state, durations, now_fn=now, tick_source=RecordingTickSource())
    sync = StateSynchronizer(state, clock, transport=transport, now_fn=now)
    return state, clock, sync, now


def _payload(now: float, **overrides):
    payload = {
        "focus_minutes": 25,
        "short_break_minutes": 5,
        "long_break_minutes": 20,
        "current_session": "focus",
        "remaining_seconds": 1500,
        "is_running": False,
        "completed_focus_sessions": 0,
        "did_complete_cycle": False,
        "updated_at": now,
    }
    payload.update(overrides)
    return payload


class PublishThrottleTests(unittest.TestCase):
    def test_first_publish_is_sent_with_wire_keys(self) -> None:
        transport = RecordingTransport()
        _, _, sync, now = _make_sync(transport)

        self.assertTrue(sync.publish())

        self.assertEqual([_payload(now.current)], transport.sent)
        self.assertEqual(set(SNAPSHOT_KEYS), set(transport.sent[0]))

    def test_identical_snapshot_is_suppressed(self) -> None:
        transport = RecordingTransport()
        _, _, sync, now = _make_sync(transport)
        sync.publish()
        now.advance(30)

        self.assertFalse(sync.publish())
        self.assertEqual(1, len(transport.sent))

    def test_force_bypasses_throttle(self) -> None:
        transport = RecordingTransport()
        _, _, sync, _ = _make_sync(transport)
        sync.publish()

        self.assertTrue(sync.publish(force=True))
        self.assertEqual(2, len(transport.sent))

    def test_ticking_only_changes_are_rate_limited(self) -> None:
        transport = RecordingTransport()
        _, clock, sync, now = _make_sync(transport)
        clock.start()
        sync.publish()

        now.advance(1)
        clock.resync()
        self.assertFalse(sync.publish())
        self.assertEqual(1, len(transport.sent))

        now.advance(4)
        clock.resync()
        self.assertTrue(sync.publish())
        self.assertEqual(2, len(transport.sent))
        self.assertEqual(1495, transport.sent[-1]["remaining_seconds"])

    def test_pause_is_sent_immediately(self) -> None:
        transport = RecordingTransport()
        _, clock, sync, now = _make_sync(transport)
        clock.start()
        sync.publish()

        now.advance(1)
        clock.pause()

        self.assertTrue(sync.publish())
        self.assertFalse(transport.sent[-1]["is_running"])

    def test_session_switch_is_sent_immediately(self) -> None:
        transport = RecordingTransport()
        _, clock, sync, _ = _make_sync(transport)
        sync.publish()

        clock.select_session(SessionKind.SHORT_BREAK)

        self.assertTrue(sync.publish())
        self.assertEqual("shortBreak", transport.sent[-1]["current_session"])

    def test_pending_snapshot_is_replaced_by_current_state(self) -> None:
        transport = RecordingTransport()
        _, clock, sync, _ = _make_sync(transport)
        sync.publish()

        transport.fail = True
        clock.start()
        self.assertFalse(sync.publish())
        self.assertTrue(sync.pending.is_running)

        transport.fail = False
        clock.pause()

        self.assertTrue(sync.publish())
        self.assertIsNone(sync.pending)
        self.assertFalse(transport.sent[-1]["is_running"])
        self.assertEqual(1500, transport.sent[-1]["remaining_seconds"])

    def test_failed_send_is_kept_pending_and_retried(self) -> None:
        transport = RecordingTransport(fail=True)
        _, clock, sync, _ = _make_sync(transport)

        self.assertFalse(sync.publish())
        self.assertIsNotNone(sync.pending)
        self.assertIsNone(sync.last_sent)

        transport.fail = False
        self.assertTrue(sync.flush_pending())
        self.assertIsNone(sync.pending)
        self.assertEqual(1, len(transport.sent))

    def test_inactive_transport_keeps_snapshot_pending(self) -> None:
        transport = RecordingTransport(active=False)
        _, _, sync, _ = _make_sync(transport)

        self.assertFalse(sync.publish())
        self.assertIsNotNone(sync.pending)

        transport.active = True
        self.assertTrue(sync.publish())
        self.assertEqual(1, len(transport.sent))

    def test_publish_without_transport_is_retained(self) -> None:
        _, _, sync, _ = _make_sync()
        self.assertFalse(sync.publish())
        self.assertIsNotNone(sync.pending)


class ApplyIncomingTests(unittest.TestCase):
    def test_latency_is_subtracted_from_running_snapshot(self) -> None:
        state, _, sync, now = _make_sync()
        payload = _payload(
            now.current - 7,
            remaining_seconds=100,
            is_running=True,
        )

        update = sync.apply_incoming(payload)

        self.assertTrue(update.state_applied)
        self.assertEqual(7, update.transfer_delay_seconds)
        self.assertEqual(93, state.remaining_seconds)
        self.assertTrue(state.is_running)
        self.assertEqual(now.current + 93, state.session_end_anchor)

    def test_future_timestamps_count_as_zero_delay(self) -> None:
        state, _, sync, now = _make_sync()

        update = sync.apply_incoming(_payload(now.current + 30, remaining_seconds=100))

        self.assertEqual(0, update.transfer_delay_seconds)
        self.assertEqual(100, state.remaining_seconds)

    def test_snapshot_round_trip_reproduces_state(self) -> None:
        source_state, source_clock, source_sync, now = _make_sync(
            RecordingTransport(),
            DurationConfig(30, 10, 15),
        )
        source_clock.select_session(SessionKind.SHORT_BREAK)
        source_state.completed_focus_sessions = 3
        source_state.remaining_seconds = 420
        source_sync.publish(force=True)
        payload = source_sync.last_sent.to_payload()

        mirror_state, mirror_clock, mirror_sync, mirror_now = _make_sync()
        mirror_now.current = now.current
        mirror_sync.apply_incoming(payload)

        self.assertEqual(DurationConfig(30, 10, 15), mirror_clock.durations)
        self.assertIs(SessionKind.SHORT_BREAK, mirror_state.current_session)
        self.assertEqual(420, mirror_state.remaining_seconds)
        self.assertEqual(3, mirror_state.completed_focus_sessions)
        self.assertFalse(mirror_state.is_running)
        self.assertFalse(mirror_state.cycle_complete)

    def test_cycle_complete_snapshot_is_never_started(self) -> None:
        state, _, sync, now = _make_sync()

        sync.apply_incoming(
            _payload(
                now.current,
                current_session="longBreak",
                remaining_seconds=50,
                is_running=True,
                completed_focus_sessions=4,
                did_complete_cycle=True,
            )
        )

        self.assertTrue(state.cycle_complete)
        self.assertFalse(state.is_running)
        self.assertEqual(0, state.remaining_seconds)

    def test_fully_elapsed_snapshot_is_left_paused(self) -> None:
        state, _, sync, now = _make_sync()

        sync.apply_incoming(
            _payload(now.current - 200, remaining_seconds=100, is_running=True)
        )

        self.assertEqual(0, state.remaining_seconds)
        self.assertFalse(state.is_running)

    def test_malformed_state_still_applies_durations(self) -> None:
        state, clock, sync, now = _make_sync()
        payload = _payload(now.current, focus_minutes=50, current_session="nap")

        update = sync.apply_incoming(payload)

        self.assertTrue(update.durations_applied)
        self.assertTrue(update.durations_changed)
        self.assertFalse(update.state_applied)
        self.assertEqual(50, clock.durations.focus_minutes)
        self.assertIs(SessionKind.FOCUS, state.current_session)
        self.assertEqual(3000, state.remaining_seconds)
        self.assertEqual(1, sync.settings_sync_count)

    def test_partial_duration_fields_merge_onto_current_values(self) -> None:
        _, clock, sync, _ = _make_sync()

        update = sync.apply_incoming({"short_break_minutes": 9, "long_break_minutes": "x"})

        self.assertTrue(update.durations_applied)
        self.assertEqual(DurationConfig(25, 9, 20), clock.durations)

    def test_payload_without_usable_fields_is_ignored(self) -> None:
        state, clock, sync, _ = _make_sync()

        update = sync.apply_incoming({"remaining_seconds": "soon"})

        self.assertFalse(update.durations_applied)
        self.assertFalse(update.state_applied)
        self.assertEqual(DurationConfig.DEFAULT, clock.durations)
        self.assertEqual(1500, state.remaining_seconds)

    def test_non_mapping_payload_is_ignored(self) -> None:
        _, _, sync, _ = _make_sync()
        update = sync.apply_incoming(["not", "a", "dict"])  # type: ignore[arg-type]
        self.assertFalse(update.state_applied)

    def test_missing_timestamp_means_no_delay(self) -> None:
        state, _, sync, now = _make_sync()
        payload = _payload(now.current, remaining_seconds=80, is_running=True)
        del payload["updated_at"]

        update = sync.apply_incoming(payload)

        self.assertEqual(0, update.transfer_delay_seconds)
        self.assertEqual(80, state.remaining_seconds)

    def test_boolean_is_not_accepted_as_remaining_seconds(self) -> None:
        snapshot = SyncSnapshot.from_payload(
            _payload(0.0, remaining_seconds=True),
            received_at=0.0,
        )
        self.assertIsNone(snapshot)


if __name__ == "__main__":
    unittest.main()
