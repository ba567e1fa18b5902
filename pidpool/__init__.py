from .pid_controller import PIDController, InvalidRange
from .config import load_config, create_controller
from .control_loop import ControlLoop
from .plant_sim import FirstOrderPlant, simulate_step, step_metrics
