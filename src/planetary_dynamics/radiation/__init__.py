__all__ = [
    "ALBEDO",
    "Element",
    "Gas",
    "InfraredTransparency",
    "RadiationModel",
    "Shielding",
    "Terrain",
    "TerrainCells",
    "absorption_from_albedo",
    "annual_decay",
    "blackbody_luminosity",
    "co2_equivalent",
    "colony_cost",
    "inverse_square_flux",
    "mean_molecular_mass",
    "neighbour_mean",
    "radiative_absorption",
    "tile_area",
    "tile_count",
    "tile_neighbours",
    "tile_normals",
]

from .atmosphere import Element, Gas, annual_decay, co2_equivalent, mean_molecular_mass
from .colony import Shielding, colony_cost
from .model import (
    RadiationModel,
    TerrainCells,
    blackbody_luminosity,
    inverse_square_flux,
)
from .surface import (
    ALBEDO,
    InfraredTransparency,
    Terrain,
    absorption_from_albedo,
    radiative_absorption,
)
from .tiles import neighbour_mean, tile_area, tile_count, tile_neighbours, tile_normals
