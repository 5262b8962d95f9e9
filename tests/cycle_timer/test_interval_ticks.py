import threading
import unittest

from cycle_timer import IntervalTickSource


class IntervalTickSourceTests(unittest.TestCase):
    def test_fires_until_cancelled(self) -> None:
        fired = threading.Event()
        source = IntervalTickSource(interval_seconds=0.01)

        source.start(fired.set)
        self.assertTrue(fired.wait(timeout=2.0))
        self.assertTrue(source.is_active)

        source.cancel()
        self.assertFalse(source.is_active)

    def test_restart_keeps_single_active_thread(self) -> None:
        second = threading.Event()
        source = IntervalTickSource(interval_seconds=0.01)

        source.start(lambda: None)
        source.start(second.set)

        self.assertTrue(second.wait(timeout=2.0))
        self.assertTrue(source.is_active)
        source.cancel()
        self.assertFalse(source.is_active)

    def test_callback_errors_do_not_stop_ticking(self) -> None:
        calls: list[int] = []
        done = threading.Event()

        def flaky() -> None:
            calls.append(1)
            if len(calls) >= 2:
                done.set()
            raise RuntimeError("boom")

        source = IntervalTickSource(interval_seconds=0.01)
        source.start(flaky)
        self.assertTrue(done.wait(timeout=2.0))
        source.cancel()

    def test_rejects_non_positive_interval(self) -> None:
        with self.assertRaises(ValueError):
            IntervalTickSource(interval_seconds=0)


if __name__ == "__main__":
    unittest.main()
