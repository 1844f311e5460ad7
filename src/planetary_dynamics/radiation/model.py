import logging
from dataclasses import dataclass, field

import astropy.constants as const
import astropy.units as u
import numpy as np

from planetary_dynamics.errors import InvalidOrbitalParameters
from planetary_dynamics.radiation.surface import (
    DEFAULT_GROUND_ALBEDO,
    InfraredTransparency,
    Terrain,
    absorption_from_albedo,
    check_emissivity,
)
from planetary_dynamics.radiation.tiles import neighbour_mean, tile_count, tile_normals
from planetary_dynamics.util.misc import TWO_PI, as_value, body_rotation

logger = logging.getLogger(__name__)

FLUX_UNIT = u.W / u.m**2
HEAT_CAPACITY_UNIT = u.J / u.m**2 / u.K
SIGMA_SB = const.sigma_sb.to_value(u.W / u.m**2 / u.K**4)

# Areal heat capacity of the thermally active surface layer, Earth-like
DEFAULT_HEAT_CAPACITY = 1.5e6 * HEAT_CAPACITY_UNIT
# Fraction of a cell's offset from its neighbours' mean kept after one hour
DEFAULT_HEAT_RETENTION = 0.995


def blackbody_luminosity(effective_temperature, radius):
    """
    Stefan-Boltzmann luminosity of a spherical blackbody
    """
    return (
        4 * np.pi * radius**2 * const.sigma_sb * effective_temperature**4
    ).to(u.W)


def inverse_square_flux(luminosity, distance):
    return (luminosity / (4 * np.pi * distance**2)).to(FLUX_UNIT)


def as_kelvin(temperature, name):
    if not isinstance(temperature, u.Quantity):
        raise u.UnitsError(f"{name} must be an astropy Quantity in K, got {temperature!r}")
    value = temperature.to_value(u.K, equivalencies=u.temperature())
    if not np.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a finite absolute temperature, got {temperature}")
    return value


@dataclass
class TerrainCells:
    """
    Surface cells of one body. Energy accumulates in J/m^2 and is only
    cleared through reset_energy. Temperatures are in K.
    """

    normals: np.ndarray = field(default_factory=lambda: np.zeros((0, 3)))
    absorption_coefficient: np.ndarray = field(default_factory=lambda: np.zeros(0))
    absorption: np.ndarray = field(default_factory=lambda: np.zeros(0))
    accumulated_energy: np.ndarray = field(default_factory=lambda: np.zeros(0))
    temperature: np.ndarray = field(default_factory=lambda: np.zeros(0))

    @classmethod
    def build(cls, n, absorption_coefficient, temperature=np.nan):
        coefficient = np.broadcast_to(
            np.asarray(absorption_coefficient, dtype=float), (n,)
        ).copy()
        if np.any(~np.isfinite(coefficient)) or np.any(coefficient < 0) or np.any(
            coefficient > 1
        ):
            raise ValueError("absorption coefficients must be within [0, 1]")
        return cls(
            normals=tile_normals(n),
            absorption_coefficient=coefficient,
            absorption=np.zeros(n),
            accumulated_energy=np.zeros(n),
            temperature=np.full(n, float(temperature)),
        )

    def __len__(self):
        return len(self.absorption_coefficient)

    def reset_energy(self):
        self.accumulated_energy[:] = 0.0


def terrain_coefficients(body_dict):
    """
    Work out the cell count and per-cell absorption coefficients from a
    body_dict. "terrain" may be a single coefficient or Terrain tile shared
    by every cell, or a sequence of either.
    """
    ground = absorption_from_albedo(body_dict.get("ground_albedo", DEFAULT_GROUND_ALBEDO))
    clouds = body_dict.get("clouds", 0.0)
    terrain = body_dict.get("terrain", ground)

    if isinstance(terrain, Terrain):
        coefficients = terrain.absorption(ground, clouds)
        n = None
    elif np.isscalar(terrain):
        coefficients = float(terrain)
        n = None
    else:
        terrain = list(terrain)
        coefficients = [
            tile.absorption(ground, clouds) if isinstance(tile, Terrain) else float(tile)
            for tile in terrain
        ]
        n = len(coefficients)

    if "n_cells" in body_dict:
        requested = int(body_dict["n_cells"])
        if n is not None and requested != n:
            raise ValueError(f"n_cells={requested} but {n} terrain tiles were given")
        n = requested
    elif n is None:
        n = tile_count(body_dict["radius"]) if "radius" in body_dict else 0
    return n, coefficients


class RadiationModel:
    """
    Incident stellar flux per body, absorbed flux and surface temperature
    per terrain cell
    """

    def __init__(self, table) -> None:
        self.table = table
        self.store = store = table.store
        store.register_column("luminosity")
        store.register_column("flux")
        store.register_column("source", dtype=object, default=None)
        store.register_column("cells", dtype=object, default=TerrainCells)
        store.register_column("axial_tilt")
        store.register_column("rotation_period")
        store.register_column("spin")
        store.register_column("emissivity", default=1.0)
        store.register_column("heat_trapping", default=1.0)
        store.register_column(
            "heat_capacity", default=DEFAULT_HEAT_CAPACITY.to_value(HEAT_CAPACITY_UNIT)
        )
        store.register_column("heat_retention", default=DEFAULT_HEAT_RETENTION)

    def insert(self, body_id, body_dict):
        store = self.store
        if "luminosity" in body_dict:
            luminosity = as_value(body_dict["luminosity"], u.W, "luminosity")
        elif "effective_temperature" in body_dict and "radius" in body_dict:
            luminosity = blackbody_luminosity(
                body_dict["effective_temperature"], body_dict["radius"]
            ).value
        else:
            luminosity = 0.0
        if not np.isfinite(luminosity) or luminosity < 0:
            raise InvalidOrbitalParameters(f"luminosity must be >= 0, got {luminosity} W")
        store.set("luminosity", body_id, luminosity)

        n, coefficients = terrain_coefficients(body_dict)
        if "surface_temperature" in body_dict:
            temperature = as_kelvin(body_dict["surface_temperature"], "surface_temperature")
        else:
            temperature = np.nan
        store.set("cells", body_id, TerrainCells.build(n, coefficients, temperature))
        store.set(
            "axial_tilt", body_id, as_value(body_dict.get("axial_tilt", 0 * u.rad), u.rad, "axial_tilt")
        )
        if "rotation_period" in body_dict:
            period = as_value(body_dict["rotation_period"], u.s, "rotation_period")
            if period <= 0:
                raise InvalidOrbitalParameters("rotation_period must be positive")
            store.set("rotation_period", body_id, period)
        store.set("emissivity", body_id, check_emissivity(body_dict.get("emissivity", 1.0)))

        heat_trapping = body_dict.get("heat_trapping", 1.0)
        if not isinstance(heat_trapping, InfraredTransparency):
            heat_trapping = InfraredTransparency(heat_trapping)
        store.set("heat_trapping", body_id, float(heat_trapping))
        heat_capacity = as_value(
            body_dict.get("heat_capacity", DEFAULT_HEAT_CAPACITY), HEAT_CAPACITY_UNIT, "heat_capacity"
        )
        if not heat_capacity > 0:
            raise InvalidOrbitalParameters("heat_capacity must be positive")
        store.set("heat_capacity", body_id, heat_capacity)
        retention = body_dict.get("heat_retention", DEFAULT_HEAT_RETENTION)
        if not 0 < retention <= 1:
            raise InvalidOrbitalParameters(f"heat_retention must be within (0, 1], got {retention}")
        store.set("heat_retention", body_id, retention)

    def find_source(self, body_id):
        """
        Nearest radiating body up the host chain, or None
        """
        luminosity = self.store.column("luminosity")
        for ancestor in self.table.ancestors(body_id):
            if luminosity[self.store.resolve(ancestor)] > 0:
                return ancestor
        return None

    def _illumination(self, slot):
        """
        Light source, incident flux and unit direction towards the source
        for the body in slot. The direction is None when nothing lights it.
        """
        store = self.store
        body_id = store.id_at(slot)
        source = self.find_source(body_id)
        if source is None:
            return None, 0.0, None

        position = store.column("position").data
        source_slot = store.resolve(source)
        offset = position[source_slot] - position[slot]
        distance = np.linalg.norm(offset)
        if distance == 0:
            logger.warning("%r coincides with its light source %r", body_id, source)
            return source, 0.0, None

        luminosity = store.column("luminosity")[source_slot]
        flux = inverse_square_flux(luminosity * u.W, distance * u.m).value
        return source, flux, offset / distance

    def _emission_coefficient(self, slot):
        store = self.store
        return SIGMA_SB * store.column("emissivity")[slot] * store.column("heat_trapping")[slot]

    def seed_temperature(self, body_id):
        """
        Start every cell without a temperature at the one that balances its
        rotation-averaged absorption at the body's current position
        """
        cells = self.cells(body_id)
        unset = np.isnan(cells.temperature)
        if not unset.any():
            return
        slot = self.store.resolve(body_id)
        _, flux, _ = self._illumination(slot)
        coefficient = self._emission_coefficient(slot)
        if coefficient == 0:
            cells.temperature[unset] = 0.0
            return
        absorbed = flux * cells.absorption_coefficient[unset] / 4
        cells.temperature[unset] = (absorbed / coefficient) ** 0.25

    def update(self, dt):
        """
        Recompute incident flux and cell absorption from the committed
        positions, accumulate dt seconds of absorbed energy and step the
        cell temperatures
        """
        store = self.store
        rotation_period = store.column("rotation_period").data
        spin = store.column("spin").data

        for slot in store.alive_slots():
            if rotation_period[slot] > 0:
                spin[slot] = (spin[slot] + TWO_PI * dt / rotation_period[slot]) % TWO_PI

            source, flux, direction = self._illumination(slot)
            store.column("source")[slot] = source
            store.column("flux")[slot] = flux
            cells = store.column("cells")[slot]
            if not len(cells):
                continue

            if direction is None:
                cells.absorption[:] = 0.0
            else:
                rotation = body_rotation(store.column("axial_tilt")[slot], spin[slot])
                cos_incidence = rotation.apply(cells.normals) @ direction
                cells.absorption[:] = (
                    flux * cells.absorption_coefficient * np.clip(cos_incidence, 0.0, None)
                )
            cells.accumulated_energy += cells.absorption * dt
            self._step_temperature(slot, cells, dt)

    def _step_temperature(self, slot, cells, dt):
        """
        Heat each cell by what it absorbs less what it radiates, then relax
        it towards the mean of its neighbours
        """
        store = self.store
        coefficient = self._emission_coefficient(slot)
        gain = dt / store.column("heat_capacity")[slot]
        temperature = cells.temperature

        # Linearised implicit step, stays positive and stable for any dt
        net = cells.absorption - coefficient * temperature**4
        temperature += gain * net / (1.0 + 4.0 * gain * coefficient * temperature**3)

        mixing = 1.0 - store.column("heat_retention")[slot] ** (dt / 3600.0)
        if mixing > 0:
            mean = neighbour_mean(len(temperature)) @ temperature
            temperature += mixing * (mean - temperature)

    def flux(self, body_id):
        return self.store.get("flux", body_id) * FLUX_UNIT

    def cells(self, body_id):
        return self.store.get("cells", body_id)

    def absorption(self, body_id):
        return self.cells(body_id).absorption.copy() * FLUX_UNIT

    def accumulated_energy(self, body_id):
        return self.cells(body_id).accumulated_energy.copy() * u.J / u.m**2

    def temperature(self, body_id):
        return self.cells(body_id).temperature.copy() * u.K

    def equilibrium_temperature(self, body_id):
        """
        Temperature at which each cell would radiate away exactly what it
        currently absorbs, T = (absorbed / (emissivity transparency sigma))^(1/4)
        """
        coefficient = self._emission_coefficient(self.store.resolve(body_id))
        absorbed = self.cells(body_id).absorption
        if coefficient == 0:
            return np.full(absorbed.shape, np.inf) * u.K
        return (absorbed / coefficient) ** 0.25 * u.K
