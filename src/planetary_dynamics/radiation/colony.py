"""
Relative cost of keeping a colony alive on a surface, from its temperature
range, atmospheric pressure and radiation shielding. A cost of 1 is a
shirt-sleeve environment, higher numbers are harsher.
"""

from enum import Enum

import astropy.units as u

COMFORT_LOW = 5 * u.deg_C
COMFORT_HIGH = 30 * u.deg_C
TEMPERATURE_SLOPE = 25 * u.K


class Shielding(Enum):
    SHIELDED = 1.0
    PARTIAL = 2.0
    UNSHIELDED = 4.0

    @property
    def min_cost(self):
        return self.value


def temperature_cost(low, high):
    low = low.to(u.K, equivalencies=u.temperature())
    high = high.to(u.K, equivalencies=u.temperature())
    comfort_low = COMFORT_LOW.to(u.K, equivalencies=u.temperature())
    comfort_high = COMFORT_HIGH.to(u.K, equivalencies=u.temperature())

    too_cold = ((comfort_low - low) / TEMPERATURE_SLOPE).decompose().value
    too_hot = ((high - comfort_high) / TEMPERATURE_SLOPE).decompose().value
    return max(too_cold, too_hot, 0.0) + 1.0


def pressure_cost(pressure):
    atm = pressure.to(u.atm).value
    if atm < 1.0:
        return (1.0 - atm) * 4.0
    return (atm - 1.0) * 0.5 + 1.0


def colony_cost(temperature_range, pressure, shielding):
    """
    Args:
        temperature_range (tuple of astropy Quantity):
            Lowest and highest surface temperature
        pressure (astropy Quantity):
            Surface pressure
        shielding (Shielding):
            How well the surface is shielded from radiation
    Returns:
        float:
            The harshest of the temperature, pressure and shielding costs
    """
    low, high = temperature_range
    return max(
        temperature_cost(low, high),
        pressure_cost(pressure),
        Shielding(shielding).min_cost,
    )
