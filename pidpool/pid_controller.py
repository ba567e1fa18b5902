import time
import math
import threading
import logging

logger = logging.getLogger("PIDController")

DEFAULT_INTEGRAL_LIMITS = (-100.0, 100.0)


class InvalidRange(ValueError):
    """Raised when a limit pair has min greater than max."""
    def __init__(self, name, minimum, maximum):
        super().__init__(f"min {name} greater than max {name} ({minimum} > {maximum})")
        self.minimum = minimum
        self.maximum = maximum


def _clamp(value, low, high):
    # NaN fails both comparisons and passes through untouched
    if value > high:
        return high
    elif value < low:
        return low
    return value


class PIDController:
    """
    PID controller with derivative-on-measurement, dead-band and
    integral anti-windup.

    All public methods are serialized by a single lock, so one instance can be
    shared between a control thread and threads that retune it.
    """
    def __init__(self, kp, ki, kd, dead_band=0.0, lock=None, clock=time.monotonic):
        self.lock = lock if lock is not None else threading.Lock()
        self.clock = clock

        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.dead_band = dead_band

        self.output_min = -math.inf
        self.output_max = math.inf
        self.integral_min, self.integral_max = DEFAULT_INTEGRAL_LIMITS

        self.setpoint = 0.0
        self.prev_value = 0.0
        self._integral = 0.0
        self._prev_error = 0.0
        self.last_update = self.clock()

    def set_output_limits(self, minimum, maximum):
        if minimum > maximum:
            raise InvalidRange("output", minimum, maximum)
        with self.lock:
            self.output_min, self.output_max = minimum, maximum
        logger.debug(f"Output limits updated: [{minimum}, {maximum}]")

    def get_output_limits(self):
        with self.lock:
            return self.output_min, self.output_max

    def set_integral_limits(self, minimum, maximum):
        """Set the accumulator bounds and clamp the current integral into them."""
        if minimum > maximum:
            raise InvalidRange("integral", minimum, maximum)
        with self.lock:
            self.integral_min, self.integral_max = minimum, maximum
            self._integral = _clamp(self._integral, minimum, maximum)
        logger.debug(f"Integral limits updated: [{minimum}, {maximum}]")

    def get_integral_limits(self):
        with self.lock:
            return self.integral_min, self.integral_max

    def set_setpoint(self, value):
        with self.lock:
            self.setpoint = value

    def get_setpoint(self):
        with self.lock:
            return self.setpoint

    def set_pid(self, kp, ki, kd):
        with self.lock:
            self.kp, self.ki, self.kd = kp, ki, kd

    def get_pid(self):
        with self.lock:
            return self.kp, self.ki, self.kd

    @property
    def integral(self):
        with self.lock:
            return self._integral

    @property
    def prev_error(self):
        """Error from the last update. Kept for inspection only."""
        with self.lock:
            return self._prev_error

    def update(self, measured_value):
        """Run one step using the time elapsed since the previous call to update()."""
        with self.lock:
            now = self.clock()
            dt = now - self.last_update
            self.last_update = now
            return self._compute(measured_value, dt)

    def update_with_duration(self, measured_value, dt):
        """Run one step with a caller-supplied dt in seconds. last_update is left alone."""
        with self.lock:
            return self._compute(measured_value, dt)

    def _compute(self, measured_value, dt):
        # Caller holds the lock
        error = self.setpoint - measured_value
        if abs(error) < self.dead_band:
            error = 0.0

        self._integral += error * dt
        self._integral = _clamp(self._integral, self.integral_min, self.integral_max)

        # Derivative on measurement, so set point steps don't kick the output
        derivative = 0.0
        if dt > 0:
            derivative = -(measured_value - self.prev_value) / dt
        self.prev_value = measured_value

        output = self.kp * error + self.ki * self._integral + self.kd * derivative
        output = _clamp(output, self.output_min, self.output_max)

        self._prev_error = error
        return output

    def reset(self, measured_value=None):
        """
        Clear history. Gains, limits, set point and dead-band are kept.
        Passing the current measurement seeds prev_value so the next update
        has no derivative spike.
        """
        with self.lock:
            self._integral = 0.0
            self._prev_error = 0.0
            self.prev_value = 0.0 if measured_value is None else measured_value
            self.last_update = self.clock()
        logger.info("Controller state reset")

    def get_status(self):
        with self.lock:
            return {
                "kp": self.kp,
                "ki": self.ki,
                "kd": self.kd,
                "setpoint": self.setpoint,
                "dead_band": self.dead_band,
                "output_limits": (self.output_min, self.output_max),
                "integral_limits": (self.integral_min, self.integral_max),
                "integral": self._integral,
                "prev_value": self.prev_value,
                "prev_error": self._prev_error,
            }
