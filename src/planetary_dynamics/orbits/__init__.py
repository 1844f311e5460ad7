__all__ = [
    "OrbitalState",
    "OrbitalTable",
    "OrbitPropagator",
    "eccentric_anomaly",
    "solve_kepler",
    "true_anomaly",
    "orbital_radius",
    "orbital_period",
    "validate_elements",
]

from .kepler import (
    eccentric_anomaly,
    orbital_period,
    orbital_radius,
    solve_kepler,
    true_anomaly,
)
from .propagator import OrbitPropagator
from .state import OrbitalState, OrbitalTable, validate_elements
