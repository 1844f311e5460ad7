__all__ = [
    "TWO_PI",
    "wrap_angle",
    "body_rotation",
    "orbit_basis",
    "as_value",
]

from .misc import (
    TWO_PI,
    wrap_angle,
    body_rotation,
    orbit_basis,
    as_value,
)
