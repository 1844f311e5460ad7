"""
Atmospheric gases and their greenhouse properties.

Global warming potentials and lifetimes from
https://en.wikipedia.org/wiki/Global_warming_potential#Values
"""

from enum import Enum

import astropy.units as u


class Element(Enum):
    """
    Standard atomic weights in g/mol
    """

    HYDROGEN = 1.008
    HELIUM = 4.0026
    CARBON = 12.011
    NITROGEN = 14.007
    OXYGEN = 15.999

    @property
    def mass(self):
        return self.value * u.g / u.mol


class Gas(Enum):
    """
    Atmospheric gases, each valued by its atoms as (element, count) pairs
    """

    HYDROGEN = ((Element.HYDROGEN, 2),)
    HELIUM = ((Element.HELIUM, 1),)
    NITROGEN = ((Element.NITROGEN, 2),)
    OXYGEN = ((Element.OXYGEN, 2),)
    WATER = ((Element.HYDROGEN, 2), (Element.OXYGEN, 1))
    METHANE = ((Element.CARBON, 1), (Element.HYDROGEN, 4))
    CARBON_DIOXIDE = ((Element.CARBON, 1), (Element.OXYGEN, 2))

    @property
    def molecular_mass(self):
        return sum(element.value * count for element, count in self.value) * u.g / u.mol

    @property
    def co2_equivalence(self):
        """
        Warming relative to the same amount of CO2, 0 for gases that trap
        no heat
        """
        return CO2_EQUIVALENCE.get(self, 0.0)

    @property
    def half_life(self):
        """
        Atmospheric half-life, None for gases that do not break down
        """
        return HALF_LIFE.get(self)

    @property
    def annual_decay_multiplier(self):
        if self.half_life is None:
            return None
        return 0.5 ** (1 * u.yr / self.half_life).decompose().value


CO2_EQUIVALENCE = {
    Gas.CARBON_DIOXIDE: 1.0,
    Gas.METHANE: 84.0,
    Gas.WATER: 0.39,
}

# Methane is broken down by bacteria and by hydroxyl radicals
HALF_LIFE = {
    Gas.METHANE: 12.4 * u.yr,
}


def mean_molecular_mass(composition):
    """
    Amount-weighted mean molecular mass of a gas mix
    Args:
        composition (dict):
            Gas to amount, in any consistent unit
    Returns:
        astropy Quantity
    """
    total = sum(composition.values())
    if not total > 0:
        raise ValueError("composition must contain a positive amount of gas")
    mass = sum(
        gas.molecular_mass.to_value(u.g / u.mol) * amount for gas, amount in composition.items()
    )
    return mass / total * u.g / u.mol


def annual_decay(composition, years=1):
    """
    Composition after the given number of years of breakdown. Gases
    without a half-life are unchanged.
    """
    decayed = {}
    for gas, amount in composition.items():
        multiplier = gas.annual_decay_multiplier
        decayed[gas] = amount if multiplier is None else amount * multiplier**years
    return decayed


def co2_equivalent(composition):
    """
    Total warming of a gas mix expressed as an amount of CO2
    """
    return sum(gas.co2_equivalence * amount for gas, amount in composition.items())
