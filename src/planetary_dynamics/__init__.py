__all__ = [
    "AdjacencyEdge",
    "BodyId",
    "ConfigurationError",
    "ConvergenceFailure",
    "InfraredTransparency",
    "InvalidId",
    "InvalidOrbitalParameters",
    "InvariantViolation",
    "OrbitalState",
    "PlanetaryDynamicsError",
    "Shielding",
    "Simulation",
    "SimulationClock",
    "Terrain",
    "TickReport",
]

from .adjacency import AdjacencyEdge
from .base import Simulation, SimulationClock, TickReport
from .entity import BodyId
from .errors import (
    ConfigurationError,
    ConvergenceFailure,
    InvalidId,
    InvalidOrbitalParameters,
    InvariantViolation,
    PlanetaryDynamicsError,
)
from .orbits import OrbitalState
from .radiation import InfraredTransparency, Shielding, Terrain
