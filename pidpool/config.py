import os
import json
import copy
import math
import logging

from .pid_controller import PIDController

logger = logging.getLogger("Config")

CONFIG_PATH = 'config/pid.json'

DEFAULT_CONFIG = {
    "pid": {
        "kp": 1.0,
        "ki": 0.0,
        "kd": 0.0,
        "dead_band": 0.0,
        "setpoint": 0.0,
        "output_limits": [None, None],  # null = unbounded
        "integral_limits": [-100.0, 100.0]
    }
}


def load_config(path=CONFIG_PATH):
    """
    Load a JSON config and overlay it on DEFAULT_CONFIG.
    Missing or unreadable files fall back to the defaults.
    """
    config = copy.deepcopy(DEFAULT_CONFIG)
    if not os.path.exists(path):
        logger.warning(f"Config not found at {path}, using defaults.")
        return config

    try:
        with open(path, 'r') as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading config {path}: {e}. Using defaults.")
        return config

    if not isinstance(data, dict):
        logger.error(f"Config {path} is not a JSON object. Using defaults.")
        return config

    for section, values in data.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section].update(values)
        elif section in config:
            logger.warning(f"Ignoring non-object '{section}' section in {path}")
        else:
            config[section] = values
    logger.info(f"Loaded config from {path}")
    return config


def _limits(pair, default_low, default_high):
    low, high = pair if pair else (None, None)
    low = default_low if low is None else float(low)
    high = default_high if high is None else float(high)
    return low, high


def create_controller(config_data=None):
    """Build a PIDController from the 'pid' section of a config dict."""
    conf = dict(DEFAULT_CONFIG['pid'])
    section = config_data.get('pid') if config_data else None
    if isinstance(section, dict):
        conf.update(section)

    pid = PIDController(
        float(conf['kp']), float(conf['ki']), float(conf['kd']),
        dead_band=float(conf['dead_band'])
    )
    # InvalidRange propagates to the caller
    pid.set_output_limits(*_limits(conf.get('output_limits'), -math.inf, math.inf))
    pid.set_integral_limits(*_limits(conf.get('integral_limits'), -100.0, 100.0))
    pid.set_setpoint(float(conf['setpoint']))
    return pid
