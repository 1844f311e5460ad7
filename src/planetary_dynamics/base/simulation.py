import logging
from dataclasses import dataclass, field

import astropy.units as u
import numpy as np
import xarray as xr
from tqdm import tqdm

from planetary_dynamics.adjacency import AdjacencyResolver
from planetary_dynamics.base.clock import SimulationClock
from planetary_dynamics.base.config import check_distance, check_duration, load_params
from planetary_dynamics.entity import EntityStore
from planetary_dynamics.errors import InvariantViolation
from planetary_dynamics.orbits import OrbitalTable, OrbitPropagator
from planetary_dynamics.radiation import (
    RadiationModel,
    TerrainCells,
    colony_cost,
    tile_neighbours,
)

logger = logging.getLogger(__name__)


@dataclass
class TickReport:
    """
    Outcome of one tick. Per-body failures are collected here instead of
    interrupting the tick.
    """

    tick: int
    time: u.Quantity
    convergence_failures: list = field(default_factory=list)
    failures: list = field(default_factory=list)
    adjacency_edges: list = field(default_factory=list)

    @property
    def ok(self):
        return not self.failures


class Simulation:
    """
    A planetary system: owns the entity store, the per-body tables, the
    propagation, radiation and adjacency stages and the clock.
    """

    def __init__(self, sim_params=None) -> None:
        self.params = load_params(sim_params)
        self.store = EntityStore()
        self.orbits = OrbitalTable(self.store)
        self.radiation = RadiationModel(self.orbits)
        self.propagator = OrbitPropagator(
            self.orbits,
            tolerance=self.params["tolerance"],
            max_iterations=self.params["max_iterations"],
        )
        self.adjacency = AdjacencyResolver(self.store)
        self.clock = SimulationClock(self.params["dt"])
        self._in_tick = False

    def __len__(self):
        return len(self.store)

    def __contains__(self, body_id):
        return body_id in self.store

    def __repr__(self):
        return f"{type(self).__name__} object, {self.clock}\n{self.to_dataframe()}"

    def bodies(self):
        return self.store.ids()

    def _between_ticks(self):
        if self._in_tick:
            raise InvariantViolation("body lifecycle changes are only allowed between ticks")

    def allocate_body(self, body_dict):
        """
        Register a body
        Args:
            body_dict (dict):
                Body description. Keys:
                name (str), mass (Quantity, required), host (BodyId),
                position (3-vector Quantity, bodies without host only),
                a (Quantity), e (float), inc, W, w, M0 (angle Quantities),
                luminosity (Quantity) or effective_temperature and radius,
                radius (Quantity), axial_tilt (Quantity),
                rotation_period (Quantity), terrain (coefficient, sequence of
                coefficients, or sequence of Terrain), ground_albedo (float),
                clouds (float), n_cells (int), emissivity (float),
                surface_temperature (Quantity), heat_capacity (Quantity per
                area and kelvin), heat_trapping (InfraredTransparency or
                float), heat_retention (float, hourly)
        Returns:
            body_id (BodyId)
        """
        self._between_ticks()
        body_id = self.store.allocate()
        try:
            self.orbits.insert(body_id, body_dict)
            self.radiation.insert(body_id, body_dict)
        except Exception:
            self.store.deallocate(body_id)
            raise
        self.propagator.refresh()
        self.radiation.seed_temperature(body_id)
        logger.info("Allocated %r (%s)", body_id, self.store.get("name", body_id))
        return body_id

    def destroy_body(self, body_id):
        """
        Remove a body. Its satellites move to its own host, or become fixed
        root bodies where they currently are if it had none.
        Raises:
            InvalidId
        """
        self._between_ticks()
        host = self.store.get("host", body_id)
        for child in self.orbits.children(body_id):
            self.orbits.set_host(child, host)
            logger.debug("Reparented %r from %r to %r", child, body_id, host)
        self.store.set("cells", body_id, TerrainCells())
        self.store.deallocate(body_id)
        self.propagator.refresh()
        logger.info("Destroyed %r", body_id)

    def set_host(self, body_id, host):
        self._between_ticks()
        self.orbits.set_host(body_id, host)
        self.propagator.refresh()

    def tick(self, dt=None, threshold=None):
        """
        Advance the system by one step: propagate orbits, then radiation,
        then adjacency. Each stage reads what the previous one committed.
        Args:
            dt (astropy Quantity):
                Step length, defaults to the configured dt
            threshold (astropy Quantity):
                Adjacency distance, defaults to adjacency_threshold. No
                adjacency pass runs when both are None.
        Returns:
            TickReport
        """
        if dt is not None:
            check_duration(dt)
        if threshold is None:
            threshold = self.params["adjacency_threshold"]
        if threshold is not None:
            check_distance(threshold)

        self._in_tick = True
        try:
            dt = self.clock.advance(dt)
            seconds = dt.to_value(u.s)
            failures = self.propagator.advance(seconds)
            self.radiation.update(seconds)
            edges = self.adjacency.resolve(threshold) if threshold is not None else []
        finally:
            self._in_tick = False

        return TickReport(
            tick=self.clock.tick,
            time=self.clock.elapsed.to(u.d),
            convergence_failures=[failure.body_id for failure in failures],
            failures=failures,
            adjacency_edges=edges,
        )

    def run(self, n_ticks, dt=None, threshold=None):
        """
        Tick repeatedly, recording positions, velocities and flux
        Returns:
            ds (xr.Dataset):
                State of every body alive at the start, indexed by time and
                body slot, including the initial state
            reports (list of TickReport)
        """
        ids = self.bodies()
        ds = self.create_dataset(ids, n_ticks + 1)
        self._record(ds, 0, ids)
        reports = []
        for step in tqdm(
            range(1, n_ticks + 1),
            desc="Propagating system",
            delay=0.5,
            disable=not self.params["progress"],
        ):
            reports.append(self.tick(dt, threshold))
            self._record(ds, step, ids)
        return ds, reports

    def create_dataset(self, ids, n_times):
        state_vars = ["x", "y", "z", "vx", "vy", "vz", "flux"]
        coords = {
            "time": np.arange(n_times),
            "body": [body_id.index for body_id in ids],
        }
        data_vars = {
            var: (["time", "body"], np.nan * np.ones((n_times, len(ids))))
            for var in state_vars
        }
        data_vars["elapsed"] = (["time"], np.nan * np.ones(n_times))
        ds = xr.Dataset(data_vars, coords=coords)
        ds = ds.assign_coords(
            name=("body", [self.store.get("name", body_id) for body_id in ids])
        )
        ds["elapsed"].attrs["unit"] = u.d
        for var in state_vars:
            if var in ["x", "y", "z"]:
                ds[var].attrs["unit"] = u.m
            elif var == "flux":
                ds[var].attrs["unit"] = u.W / u.m**2
            else:
                ds[var].attrs["unit"] = u.m / u.s
        return ds

    def _record(self, ds, step, ids):
        ds["elapsed"][step] = self.clock.elapsed.to_value(u.d)
        alive = [i for i, body_id in enumerate(ids) if body_id in self.store]
        slots = [ids[i].index for i in alive]
        position = self.store.column("position").data[slots]
        velocity = self.store.column("velocity").data[slots]
        for j, coord in enumerate(["x", "y", "z"]):
            ds[coord][step, alive] = position[:, j]
        for j, coord in enumerate(["vx", "vy", "vz"]):
            ds[coord][step, alive] = velocity[:, j]
        ds["flux"][step, alive] = self.store.column("flux").data[slots]

    def query_position(self, body_id):
        return self.store.get("position", body_id).copy() * u.m

    def query_velocity(self, body_id):
        return self.store.get("velocity", body_id).copy() * u.m / u.s

    def query_orbital_state(self, body_id):
        return self.orbits.state(body_id)

    def query_flux(self, body_id):
        return self.radiation.flux(body_id)

    def query_terrain_absorption(self, body_id):
        return self.radiation.absorption(body_id)

    def query_accumulated_energy(self, body_id):
        return self.radiation.accumulated_energy(body_id)

    def query_cell_temperatures(self, body_id):
        return self.radiation.temperature(body_id)

    def query_cell_neighbours(self, body_id):
        return tile_neighbours(len(self.radiation.cells(body_id)))

    def query_colony_cost(self, body_id, pressure, shielding):
        """
        Colony cost from the current range of cell temperatures
        """
        temperatures = self.query_cell_temperatures(body_id)
        if not len(temperatures):
            raise ValueError(f"{body_id!r} has no terrain cells")
        return colony_cost((temperatures.min(), temperatures.max()), pressure, shielding)

    def settle_energy(self, body_id):
        """
        Clear a body's accumulated cell energy
        """
        self.radiation.cells(body_id).reset_energy()

    def to_dataframe(self):
        df = self.orbits.to_dataframe()
        df["flux"] = self.store.column("flux").data[self.store.alive_slots()]
        return df
