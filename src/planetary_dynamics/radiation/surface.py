"""
Surface optical properties: albedo, radiative absorption, infrared
transparency and the terrain mix of a surface tile.

Radiative absorption is 1 - albedo, the fraction of incident light a surface
keeps. Reference albedos from https://en.wikipedia.org/wiki/Albedo
"""

from dataclasses import dataclass

import numpy as np

ALBEDO = {
    "snow": 0.8,
    "cloud": 0.5,
    "ice": 0.75,
    "farmland": 0.2,
    "concrete": 0.4,
    "forest": 0.1,
    "water": 0.06,
}

# Bond albedo of a bare rocky surface when nothing else is specified
DEFAULT_GROUND_ALBEDO = 0.3


def _check_fraction(value, name):
    if not np.isfinite(value) or not 0 <= value <= 1:
        raise ValueError(f"{name} must be within [0, 1], got {value}")
    return float(value)


def absorption_from_albedo(albedo):
    return 1.0 - _check_fraction(albedo, "albedo")


def radiative_absorption(surface):
    """
    Absorption of one of the reference surfaces in ALBEDO
    """
    return absorption_from_albedo(ALBEDO[surface])


def check_emissivity(emissivity):
    return _check_fraction(emissivity, "emissivity")


@dataclass(frozen=True)
class InfraredTransparency:
    """
    Fraction of the surface's thermal emission that escapes the atmosphere,
    1 - the fraction reflected back down. 1 means no greenhouse effect.
    """

    value: float

    def __post_init__(self):
        if not np.isfinite(self.value) or not 0 < self.value <= 1:
            raise ValueError(f"infrared transparency must be within (0, 1], got {self.value}")

    def __float__(self):
        return float(self.value)

    def __mul__(self, emission):
        return emission * self.value

    __rmul__ = __mul__


@dataclass(frozen=True)
class Terrain:
    """
    Composition of a surface tile as fractions of its area.

    ocean, mountains and plains partition the tile. The glacier fraction
    covers mountains first, then plains, then ocean.
    """

    ocean: float
    mountains: float
    plains: float
    glacier: float = 0.0

    def __post_init__(self):
        for name in ("ocean", "mountains", "plains", "glacier"):
            _check_fraction(getattr(self, name), name)
        if not np.isclose(self.ocean + self.mountains + self.plains, 1.0):
            raise ValueError(
                "ocean, mountains and plains must add up to 1, got "
                f"{self.ocean + self.mountains + self.plains}"
            )

    @classmethod
    def from_fractions(cls, ocean, mountains, glacier=0.0):
        """
        Args:
            ocean (float):
                Fraction of the tile covered by water
            mountains (float):
                Fraction of the land covered by mountains
            glacier (float):
                Fraction of the tile covered by glacier

        Examples:
            pacific = Terrain.from_fractions(0.97, 0.6)
            arizona = Terrain.from_fractions(0.0, 0.25)
            arctic = Terrain.from_fractions(0.8, 0.5, 0.8)
        """
        ocean = _check_fraction(ocean, "ocean")
        land = 1.0 - ocean
        mountains = _check_fraction(mountains, "mountains") * land
        return cls(ocean=ocean, mountains=mountains, plains=land - mountains, glacier=glacier)

    def absorption(self, ground, clouds=0.0):
        """
        Fraction of incident light absorbed by the tile
        Args:
            ground (float):
                Radiative absorption of bare land
            clouds (float):
                Cloud cover fraction
        Returns:
            float
        """
        ground = _check_fraction(ground, "ground")
        clouds = _check_fraction(clouds, "clouds")

        iceless_ocean = min(1.0 - self.glacier, self.ocean)
        iceless_ground = max(self.plains + self.mountains - self.glacier, 0.0)

        glacier = radiative_absorption("ice") * self.glacier
        ocean = radiative_absorption("water") * iceless_ocean
        land = ground * iceless_ground

        surface = (glacier + ocean + land) * (1.0 - clouds)
        return surface + radiative_absorption("cloud") * clouds
