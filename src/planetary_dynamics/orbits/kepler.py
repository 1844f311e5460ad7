"""
Kepler's equation and the closed-form relations around it.

All functions work on plain radian floats or numpy arrays, quantities are
stripped by the callers before reaching here.
"""

import astropy.constants as const
import astropy.units as u
import numpy as np

from planetary_dynamics.errors import ConvergenceFailure

DEFAULT_TOLERANCE = 1e-9
DEFAULT_MAX_ITERATIONS = 30


def kepler_residual(M, E, e):
    """
    M - (E - e sin E)
    """
    return M - (E - e * np.sin(E))


def eccentric_anomaly(
    M, e, tol=DEFAULT_TOLERANCE, max_iter=DEFAULT_MAX_ITERATIONS
):
    """
    Solve Kepler's equation M = E - e sin(E) with Newton-Raphson, seeded with
    E0 = M. Circular orbits (e == 0) are returned unchanged without iterating.

    Args:
        M (np.array):
            Mean anomalies in radians
        e (np.array):
            Eccentricities, 0 <= e < 1
        tol (float):
            Convergence threshold on |M - (E - e sin E)| in radians
        max_iter (int):
            Maximum number of Newton steps per element

    Returns:
        E (np.array):
            Eccentric anomalies in radians. Unconverged entries hold the last
            iterate.
        converged (np.array):
            Boolean mask of the entries that met the tolerance
        iterations (np.array):
            Newton steps taken per entry
        residual (np.array):
            Final |M - (E - e sin E)| per entry
    """
    M = np.atleast_1d(np.asarray(M, dtype=float))
    e = np.broadcast_to(np.asarray(e, dtype=float), M.shape)

    E = M.copy()
    iterations = np.zeros(M.shape, dtype=int)
    circular = e == 0
    residual = np.abs(kepler_residual(M, E, e))
    active = ~circular & (residual >= tol)

    for _ in range(max_iter):
        if not active.any():
            break
        f = -kepler_residual(M[active], E[active], e[active])
        fprime = 1 - e[active] * np.cos(E[active])
        E[active] = E[active] - f / fprime
        iterations[active] += 1
        residual[active] = np.abs(kepler_residual(M[active], E[active], e[active]))
        active[active] = residual[active] >= tol

    converged = circular | (residual < tol)
    return E, converged, iterations, residual


def solve_kepler(
    M, e, tol=DEFAULT_TOLERANCE, max_iter=DEFAULT_MAX_ITERATIONS, body_id=None
):
    """
    Scalar form of eccentric_anomaly that raises on non-convergence
    Raises:
        ConvergenceFailure:
            The tolerance was not met within max_iter steps
    """
    E, converged, iterations, residual = eccentric_anomaly(M, e, tol, max_iter)
    if not converged[0]:
        raise ConvergenceFailure(
            float(M), float(e), int(iterations[0]), float(residual[0]), body_id
        )
    return float(E[0])


def true_anomaly(E, e):
    """
    True anomaly from eccentric anomaly, in [0, 2pi)
    """
    nu = 2 * np.arctan2(
        np.sqrt(1 + e) * np.sin(E / 2), np.sqrt(1 - e) * np.cos(E / 2)
    )
    return np.mod(nu, 2 * np.pi)


def orbital_radius(a, e, E):
    return a * (1 - e * np.cos(E))


def orbital_period(a, host_mass, body_mass=0 * u.kg):
    """
    Kepler's third law for the two-body problem
    Args:
        a (astropy Quantity):
            Semi-major axis
        host_mass (astropy Quantity):
            Mass of the gravitating parent
        body_mass (astropy Quantity):
            Mass of the orbiting body
    Returns:
        T (astropy Quantity):
            Orbital period in days
    """
    mu = (const.G * (host_mass + body_mass)).decompose()
    return (2 * np.pi * np.sqrt(a**3 / mu)).to(u.d)
