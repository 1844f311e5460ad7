import astropy.units as u

from planetary_dynamics.errors import ConfigurationError
from planetary_dynamics.orbits.kepler import DEFAULT_MAX_ITERATIONS, DEFAULT_TOLERANCE

DEFAULT_PARAMS = {
    "dt": 1 * u.d,
    "tolerance": DEFAULT_TOLERANCE,
    "max_iterations": DEFAULT_MAX_ITERATIONS,
    "adjacency_threshold": None,
    "progress": True,
}


def load_params(sim_params=None):
    """
    Merge user parameters over DEFAULT_PARAMS and validate the result
    Args:
        sim_params (dict):
            Any subset of the DEFAULT_PARAMS keys
    Returns:
        dict
    Raises:
        ConfigurationError
    """
    sim_params = dict(sim_params or {})
    unknown = set(sim_params) - set(DEFAULT_PARAMS)
    if unknown:
        raise ConfigurationError(f"Unknown simulation parameters: {sorted(unknown)}")
    params = {**DEFAULT_PARAMS, **sim_params}

    check_duration(params["dt"], "dt")
    if not params["tolerance"] > 0:
        raise ConfigurationError(f"tolerance must be positive, got {params['tolerance']}")
    if int(params["max_iterations"]) != params["max_iterations"] or params["max_iterations"] < 1:
        raise ConfigurationError(
            f"max_iterations must be a positive integer, got {params['max_iterations']}"
        )
    if params["adjacency_threshold"] is not None:
        check_distance(params["adjacency_threshold"], "adjacency_threshold")
    return params


def _check_positive(value, physical_type, name):
    if not isinstance(value, u.Quantity) or value.unit.physical_type != physical_type:
        raise ConfigurationError(f"{name} must be a {physical_type} Quantity, got {value!r}")
    if not value.value > 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def check_duration(dt, name="dt"):
    return _check_positive(dt, "time", name)


def check_distance(distance, name="threshold"):
    return _check_positive(distance, "length", name)
