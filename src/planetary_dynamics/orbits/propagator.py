import logging

import numpy as np

from planetary_dynamics.errors import ConvergenceFailure, InvalidId, InvariantViolation
from planetary_dynamics.orbits.kepler import (
    DEFAULT_MAX_ITERATIONS,
    DEFAULT_TOLERANCE,
    eccentric_anomaly,
    orbital_radius,
    true_anomaly,
)
from planetary_dynamics.util.misc import TWO_PI, orbit_basis, wrap_angle

logger = logging.getLogger(__name__)


class OrbitPropagator:
    """
    Advances mean anomalies and rebuilds absolute positions and velocities
    from the OrbitalTable, one host-forest generation at a time.
    """

    def __init__(
        self, table, tolerance=DEFAULT_TOLERANCE, max_iterations=DEFAULT_MAX_ITERATIONS
    ):
        self.table = table
        self.store = table.store
        self.tolerance = tolerance
        self.max_iterations = max_iterations

    def advance(self, dt):
        """
        Move every orbiting body along its orbit
        Args:
            dt (float):
                Time step in seconds
        Returns:
            failures (list of ConvergenceFailure):
                Bodies whose position could not be updated this step
        """
        store = self.store
        slots = store.alive_slots()
        if len(slots):
            T = store.column("T").data[slots]
            orbiting = slots[T > 0]
            M = store.column("M")
            M.data[orbiting] = wrap_angle(
                M.data[orbiting] + TWO_PI * dt / store.column("T").data[orbiting]
            )
        return self.refresh()

    def refresh(self):
        """
        Recompute absolute positions and velocities from the current mean
        anomalies without moving time forward. Hosts are always finalized
        before their satellites.
        """
        failures = []
        for depth, generation in enumerate(self.table.generations()):
            if depth == 0:
                self._place_roots(generation)
            else:
                failures.extend(self._place_satellites(generation))
        return failures

    def _place_roots(self, slots):
        store = self.store
        store.column("position").data[slots] = store.column("anchor").data[slots]
        store.column("velocity").data[slots] = 0.0

    def _host_slots(self, slots):
        hosts = self.store.column("host").data
        try:
            return np.array([self.store.resolve(hosts[slot]) for slot in slots], dtype=int)
        except InvalidId as err:
            raise InvariantViolation(f"dangling host reference: {err}") from err

    def _place_satellites(self, slots):
        store = self.store
        col = {name: store.column(name).data for name in ("a", "e", "inc", "W", "w", "M", "T")}
        a = col["a"][slots]
        e = col["e"][slots]
        M = col["M"][slots]

        E, converged, iterations, residual = eccentric_anomaly(
            M, e, self.tolerance, self.max_iterations
        )

        failures = []
        for i in np.flatnonzero(~converged):
            failure = ConvergenceFailure(
                float(M[i]),
                float(e[i]),
                int(iterations[i]),
                float(residual[i]),
                body_id=store.id_at(slots[i]),
            )
            logger.warning("%s", failure)
            failures.append(failure)

        ok = slots[converged]
        if not len(ok):
            return failures
        a, e, E = a[converged], e[converged], E[converged]
        A, B = orbit_basis(a, col["W"][ok], col["inc"][ok], col["w"][ok], e)

        cosE = np.cos(E)
        sinE = np.sin(E)
        r_rel = A * (cosE - e) + B * sinE
        n = TWO_PI / col["T"][ok]
        v_rel = (-A * sinE + B * cosE) * (n / (1 - e * cosE))

        hosts = self._host_slots(ok)
        position = store.column("position").data
        velocity = store.column("velocity").data
        position[ok] = position[hosts] + r_rel.T
        velocity[ok] = velocity[hosts] + v_rel.T

        store.column("E").data[ok] = E
        store.column("nu").data[ok] = true_anomaly(E, e)
        store.column("r").data[ok] = orbital_radius(a, e, E)
        return failures
