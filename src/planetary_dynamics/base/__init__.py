__all__ = ["DEFAULT_PARAMS", "Simulation", "SimulationClock", "TickReport", "load_params"]

from .clock import SimulationClock
from .config import DEFAULT_PARAMS, load_params
from .simulation import Simulation, TickReport
