import time
import threading
import logging

logger = logging.getLogger("ControlLoop")


class ControlLoop:
    """
    Drives a PIDController from a background thread.
    read_measurement() -> float is sampled each tick and the controller output
    is passed to apply_output(value).
    """
    def __init__(self, controller, read_measurement, apply_output, rate_hz=50):
        if rate_hz <= 0:
            raise ValueError("rate_hz must be positive")
        self.controller = controller
        self.read_measurement = read_measurement
        self.apply_output = apply_output
        self.period = 1.0 / rate_hz

        self.running = False
        self.thread = None
        self.stop_event = None
        self.tick_count = 0
        self.last_output = None
        self.error_count = 0

    def start(self):
        if self.running:
            return
        if self.thread and self.thread.is_alive():
            # Previous thread is stuck in a callback; never run two drivers
            logger.warning("Previous loop thread still running, not restarting")
            return

        # Seed the controller with the live measurement so the first tick
        # sees neither stale elapsed time nor a fake previous value
        self.controller.reset(self.read_measurement())

        self.running = True
        self.stop_event = threading.Event()
        self.thread = threading.Thread(target=self._loop, args=(self.stop_event,), daemon=True)
        self.thread.start()
        logger.info(f"Control loop started at {1.0 / self.period:.1f} Hz")

    def stop(self):
        self.running = False
        if self.stop_event:
            self.stop_event.set()
        if self.thread:
            self.thread.join(timeout=1.0)
            if self.thread.is_alive():
                logger.warning("Loop thread did not exit within 1s")
            else:
                self.thread = None
        logger.info("Control loop stopped")

    def tick(self):
        measured = self.read_measurement()
        output = self.controller.update(measured)
        self.apply_output(output)
        self.last_output = output
        self.tick_count += 1
        return output

    def _loop(self, stop_event):
        while not stop_event.is_set():
            start_t = time.monotonic()
            try:
                self.tick()
            except Exception as e:
                self.error_count += 1
                logger.error(f"Loop error: {e}")
                stop_event.wait(self.period * 10)
                continue

            elapsed = time.monotonic() - start_t
            stop_event.wait(max(0, self.period - elapsed))
