import unittest
import sys
import os
import time
import threading

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pidpool.control_loop import ControlLoop
from pidpool.pid_controller import PIDController


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


class TestControlLoop(unittest.TestCase):
    def test_tick(self):
        pid = PIDController(2, 0, 0, 0)
        pid.set_setpoint(10)
        applied = []
        loop = ControlLoop(pid, lambda: 4, applied.append)

        self.assertEqual(loop.tick(), 12)
        self.assertEqual(applied, [12])
        self.assertEqual(loop.last_output, 12)
        self.assertEqual(loop.tick_count, 1)

    def test_invalid_rate(self):
        pid = PIDController(1, 0, 0, 0)
        with self.assertRaises(ValueError):
            ControlLoop(pid, lambda: 0, lambda v: None, rate_hz=0)

    def test_start_stop(self):
        pid = PIDController(1, 0, 0, 0)
        pid.set_output_limits(-1, 1)
        pid.set_setpoint(5)
        applied = []
        loop = ControlLoop(pid, lambda: 0, applied.append, rate_hz=200)

        loop.start()
        thread = loop.thread
        loop.start()  # already running
        self.assertIs(loop.thread, thread)
        try:
            self.assertTrue(wait_for(lambda: loop.tick_count >= 3))
        finally:
            loop.stop()

        self.assertFalse(loop.running)
        self.assertIsNone(loop.thread)
        self.assertFalse(thread.is_alive())
        self.assertTrue(all(v == 1 for v in applied))

    def test_callback_errors_are_logged(self):
        pid = PIDController(1, 0, 0, 0)
        calls = {"n": 0}

        def flaky():
            calls["n"] += 1
            # First read seeds the controller in start()
            if calls["n"] == 2:
                raise IOError("sensor read failed")
            return 0.0

        loop = ControlLoop(pid, flaky, lambda v: None, rate_hz=100)
        with self.assertLogs('ControlLoop', level='ERROR') as logs:
            loop.start()
            try:
                self.assertTrue(wait_for(lambda: loop.tick_count >= 1))
            finally:
                loop.stop()

        self.assertEqual(loop.error_count, 1)
        self.assertIn("sensor read failed", logs.output[0])


    def test_first_tick_has_no_derivative_kick(self):
        pid = PIDController(0, 0, 0.1, 0)
        pid.set_setpoint(25)
        applied = []
        loop = ControlLoop(pid, lambda: 25.0, applied.append, rate_hz=50)

        loop.start()
        try:
            self.assertTrue(wait_for(lambda: loop.tick_count >= 3))
        finally:
            loop.stop()

        self.assertEqual(applied[:3], [0.0, 0.0, 0.0])

    def test_start_seeds_controller_with_measurement(self):
        pid = PIDController(1, 1, 1, 0)
        loop = ControlLoop(pid, lambda: 7.5, lambda v: None, rate_hz=1)
        loop.start()
        loop.stop()
        self.assertEqual(pid.get_status()["prev_value"], 7.5)

    def test_restart_at_low_rate_uses_single_thread(self):
        pid = PIDController(1, 0, 0, 0)
        tick_threads = []
        loop = ControlLoop(pid, lambda: 0.0, lambda v: tick_threads.append(threading.get_ident()), rate_hz=0.4)

        loop.start()
        first = loop.thread
        self.assertTrue(wait_for(lambda: loop.tick_count >= 1))

        stopped_at = time.monotonic()
        loop.stop()
        # stop() wakes the sleeping loop instead of waiting out the 2.5s period
        self.assertLess(time.monotonic() - stopped_at, 1.0)
        self.assertFalse(first.is_alive())
        self.assertIsNone(loop.thread)

        loop.start()
        second = loop.thread
        try:
            self.assertTrue(wait_for(lambda: loop.tick_count >= 2))
            time.sleep(0.3)
        finally:
            loop.stop()

        self.assertEqual(loop.tick_count, 2)
        self.assertEqual(tick_threads, [first.ident, second.ident])

    def test_start_refuses_while_old_thread_alive(self):
        pid = PIDController(1, 0, 0, 0)
        release = threading.Event()
        entered = threading.Event()

        def blocking_apply(value):
            entered.set()
            release.wait(5)

        loop = ControlLoop(pid, lambda: 0.0, blocking_apply, rate_hz=50)
        loop.start()
        stuck = loop.thread
        try:
            self.assertTrue(entered.wait(2))
            with self.assertLogs('ControlLoop', level='WARNING'):
                loop.stop()
            self.assertIs(loop.thread, stuck)
            self.assertTrue(stuck.is_alive())

            with self.assertLogs('ControlLoop', level='WARNING'):
                loop.start()
            self.assertIs(loop.thread, stuck)
            self.assertFalse(loop.running)
        finally:
            release.set()
            stuck.join(2)
        self.assertFalse(stuck.is_alive())


if __name__ == '__main__':
    unittest.main()
