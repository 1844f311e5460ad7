import astropy.units as u
import numpy as np
import pytest

from planetary_dynamics import Simulation


@pytest.fixture
def sim():
    return Simulation({"progress": False})


@pytest.fixture
def sun_dict():
    return {
        "name": "Sun",
        "mass": 1 * u.M_sun,
        "radius": 1 * u.R_sun,
        "luminosity": 1 * u.L_sun,
    }


@pytest.fixture
def earth_dict():
    return {
        "name": "Earth",
        "mass": 1 * u.M_earth,
        "radius": 1 * u.R_earth,
        "a": 1 * u.AU,
        "e": 0.0,
        "terrain": 0.7,
    }


@pytest.fixture
def sun_earth(sim, sun_dict, earth_dict):
    sun = sim.allocate_body(sun_dict)
    earth = sim.allocate_body({**earth_dict, "host": sun})
    return sim, sun, earth


@pytest.fixture
def fixed_body(sim):
    """
    Factory for root bodies parked at a fixed position, given in AU
    """

    def make(name, position, mass=1 * u.M_earth):
        position = np.zeros(3) + np.asarray(position, dtype=float)
        return sim.allocate_body(
            {"name": name, "mass": mass, "position": position * u.AU}
        )

    return make
