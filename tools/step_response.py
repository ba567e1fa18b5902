#!/usr/bin/env python3
import sys
import os
import argparse
import logging

# Add project root to path
sys.path.append(os.path.join(os.path.dirname(__file__), '..'))

from pidpool.config import load_config, create_controller
from pidpool.pid_controller import InvalidRange
from pidpool.plant_sim import FirstOrderPlant, simulate_step, step_metrics

CONFIG_PATH = os.path.join(os.path.dirname(__file__), '../config/pid.json')


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Simulate a PID step response against a first-order plant")
    parser.add_argument('--config', default=CONFIG_PATH, help="JSON config path")
    parser.add_argument('--setpoint', type=float, help="Step target (default: config setpoint)")
    parser.add_argument('--duration', type=float, help="Simulated seconds")
    parser.add_argument('--dt', type=float, help="Timestep in seconds")
    parser.add_argument('--plant-gain', type=float)
    parser.add_argument('--time-constant', type=float)
    parser.add_argument('-v', '--verbose', action='store_true')
    return parser.parse_args(argv)


def _fmt(value, unit=''):
    if value is None:
        return "n/a"
    return f"{value:.4f}{unit}"


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(args.config)
    sim = config.get('sim')
    if not isinstance(sim, dict):
        sim = {}

    try:
        pid = create_controller(config)
    except InvalidRange as e:
        print(f"Invalid config: {e}")
        return 1

    setpoint = args.setpoint if args.setpoint is not None else pid.get_setpoint()
    duration = args.duration if args.duration is not None else sim.get('duration_sec', 10.0)
    dt = args.dt if args.dt is not None else sim.get('dt_sec', 0.01)
    gain = args.plant_gain if args.plant_gain is not None else sim.get('plant_gain', 1.0)
    time_constant = args.time_constant if args.time_constant is not None else sim.get('time_constant_sec', 1.0)

    kp, ki, kd = pid.get_pid()
    print("=== PID Step Response ===")
    print(f"Gains: Kp={kp} Ki={ki} Kd={kd} | Setpoint: {setpoint} | {duration}s @ dt={dt}s")

    try:
        plant = FirstOrderPlant(gain=gain, time_constant=time_constant)
        t, y, u = simulate_step(pid, plant, setpoint, duration, dt)
    except ValueError as e:
        print(f"Invalid simulation settings: {e}")
        return 1
    metrics = step_metrics(t, y, setpoint, initial=plant.initial)

    print(f"Overshoot:          {metrics['overshoot'] * 100:.2f}%")
    print(f"Rise time:          {_fmt(metrics['rise_time'], 's')}")
    print(f"Settling time:      {_fmt(metrics['settling_time'], 's')}")
    print(f"Steady-state error: {_fmt(metrics['steady_state_error'])}")
    print(f"Output range:       [{u.min():.4f}, {u.max():.4f}]")
    return 0


if __name__ == '__main__':
    sys.exit(main())
