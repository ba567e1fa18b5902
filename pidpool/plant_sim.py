import numpy as np


class FirstOrderPlant:
    """Simple first-order lag: tau * dx/dt = gain * u - x"""
    def __init__(self, gain=1.0, time_constant=1.0, initial=0.0):
        if time_constant <= 0:
            raise ValueError("time_constant must be positive")
        self.gain = gain
        self.time_constant = time_constant
        self.initial = initial
        self.value = initial

    def step(self, u, dt):
        self.value += (self.gain * u - self.value) / self.time_constant * dt
        return self.value

    def reset(self):
        self.value = self.initial


def simulate_step(controller, plant, setpoint, duration, dt):
    """
    Run a closed-loop step response with a fixed timestep.
    Returns numpy arrays (t, y, u): time, plant output, controller output.
    """
    if dt <= 0:
        raise ValueError("dt must be positive")
    if duration <= 0:
        raise ValueError("duration must be positive")

    controller.set_setpoint(setpoint)
    t = np.arange(0, duration, dt)
    y = np.empty(len(t))
    u = np.empty(len(t))

    for i in range(len(t)):
        u[i] = controller.update_with_duration(plant.value, dt)
        y[i] = plant.step(u[i], dt)

    return t, y, u


def step_metrics(t, y, setpoint, tolerance=0.02, initial=0.0):
    """
    Classic step-response figures.
    tolerance is the settling band as a fraction of the step size.
    """
    t = np.asarray(t, dtype=float)
    y = np.asarray(y, dtype=float)
    if len(y) == 0 or len(t) != len(y):
        raise ValueError("t and y must be non-empty and the same length")
    step = setpoint - initial
    final_error = float(setpoint - y[-1])

    if step == 0:
        return {
            "overshoot": 0.0,
            "rise_time": None,
            "settling_time": None,
            "steady_state_error": final_error
        }

    # Normalise so the step always goes 0 -> 1
    progress = (y - initial) / step
    overshoot = max(0.0, float(progress.max()) - 1.0)

    rise_time = None
    above_10 = np.nonzero(progress >= 0.1)[0]
    above_90 = np.nonzero(progress >= 0.9)[0]
    if len(above_10) and len(above_90):
        rise_time = float(t[above_90[0]] - t[above_10[0]])

    settling_time = None
    outside = np.nonzero(np.abs(progress - 1.0) > tolerance)[0]
    if len(outside) == 0:
        settling_time = float(t[0])
    elif outside[-1] + 1 < len(t):
        settling_time = float(t[outside[-1] + 1])

    return {
        "overshoot": overshoot,
        "rise_time": rise_time,
        "settling_time": settling_time,
        "steady_state_error": final_error
    }
