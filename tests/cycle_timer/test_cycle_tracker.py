import unittest

from cycle_timer import CycleTracker, DurationConfig, SessionClock, SessionKind, TimerState
from timer_fakes import FakeClock


def _make_tracker():
    state = TimerState.initial(DurationConfig.DEFAULT)
    clock = SessionClock(state, DurationConfig.DEFAULT, now_fn=FakeClock())
    return state, clock, CycleTracker(state, clock)


class CycleTrackerTests(unittest.TestCase):
    def test_four_credited_focus_sessions_follow_cycle_order(self) -> None:
        state, _, tracker = _make_tracker()
        order = [state.current_session]

        for _ in range(7):
            self.assertFalse(tracker.advance(credit_focus=True))
            order.append(state.current_session)

        self.assertEqual(
            [
                SessionKind.FOCUS,
                SessionKind.SHORT_BREAK,
                SessionKind.FOCUS,
                SessionKind.SHORT_BREAK,
                SessionKind.FOCUS,
                SessionKind.SHORT_BREAK,
                SessionKind.FOCUS,
                SessionKind.LONG_BREAK,
            ],
            order,
        )
        self.assertEqual(4, state.completed_focus_sessions)

    def test_completing_cycle_long_break_stays_put(self) -> None:
        state, _, tracker = _make_tracker()
        for _ in range(7):
            tracker.advance(credit_focus=True)

        self.assertTrue(tracker.advance(credit_focus=True))
        self.assertIs(SessionKind.LONG_BREAK, state.current_session)
        self.assertEqual(0, state.remaining_seconds)
        self.assertEqual(4, state.completed_focus_sessions)

    def test_advance_resets_remaining_to_next_full_duration(self) -> None:
        state, _, tracker = _make_tracker()
        state.remaining_seconds = 0

        tracker.advance(credit_focus=True)

        self.assertEqual(300, state.remaining_seconds)

    def test_skip_advances_like_completion_without_credit(self) -> None:
        skipped_state, _, skipped = _make_tracker()
        completed_state, _, completed = _make_tracker()

        skipped.skip()
        completed.advance(credit_focus=True)

        self.assertIs(completed_state.current_session, skipped_state.current_session)
        self.assertEqual(0, skipped_state.completed_focus_sessions)
        self.assertEqual(1, completed_state.completed_focus_sessions)

    def test_skip_stops_running_clock(self) -> None:
        state, clock, tracker = _make_tracker()
        clock.start()

        tracker.skip()

        self.assertFalse(state.is_running)
        self.assertIsNone(state.session_end_anchor)

    def test_skipping_manually_selected_long_break_returns_to_focus(self) -> None:
        state, clock, tracker = _make_tracker()
        clock.select_session(SessionKind.LONG_BREAK)

        tracker.skip()

        self.assertIs(SessionKind.FOCUS, state.current_session)
        self.assertEqual(1500, state.remaining_seconds)

    def test_reset_cycle_clears_progress(self) -> None:
        state, _, tracker = _make_tracker()
        for _ in range(8):
            tracker.advance(credit_focus=True)
        state.cycle_complete = True

        tracker.reset_cycle()

        self.assertEqual(0, state.completed_focus_sessions)
        self.assertFalse(state.cycle_complete)
        self.assertIs(SessionKind.FOCUS, state.current_session)
        self.assertEqual(1500, state.remaining_seconds)

    def test_next_break_depends_on_cycle_position(self) -> None:
        state, _, tracker = _make_tracker()
        self.assertIs(SessionKind.SHORT_BREAK, tracker.next_break())

        state.completed_focus_sessions = 4
        self.assertIs(SessionKind.LONG_BREAK, tracker.next_break())

        state.current_session = SessionKind.SHORT_BREAK
        self.assertIs(SessionKind.SHORT_BREAK, tracker.next_break())


if __name__ == "__main__":
    unittest.main()
