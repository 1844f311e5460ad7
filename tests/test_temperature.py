"""Tests for per-cell surface temperatures and heat exchange between tiles."""
import astropy.units as u
import numpy as np
import pytest

from planetary_dynamics import InfraredTransparency
from planetary_dynamics.radiation import (
    inverse_square_flux,
    neighbour_mean,
    tile_neighbours,
)
from planetary_dynamics.radiation.model import SIGMA_SB


@pytest.fixture
def isolated(sun_dict, earth_dict, sim):
    """
    Earth that does not exchange heat between tiles
    """
    sun = sim.allocate_body(sun_dict)
    earth = sim.allocate_body({**earth_dict, "host": sun, "heat_retention": 1.0})
    return sim, sun, earth


@pytest.fixture
def insulated(sim):
    """
    Unlit body that neither absorbs nor radiates, so only heat exchange
    between tiles changes its temperatures
    """
    body = sim.allocate_body(
        {
            "mass": 1 * u.M_earth,
            "radius": 1 * u.R_earth,
            "emissivity": 0.0,
            "surface_temperature": 250 * u.K,
        }
    )
    return sim, body


class TestSeeding:

    def test_balance_temperature(self, sun_earth):
        sim, _, earth = sun_earth
        flux = inverse_square_flux(1 * u.L_sun, 1 * u.AU).value
        expected = (flux * 0.7 / (4 * SIGMA_SB)) ** 0.25
        temperature = sim.query_cell_temperatures(earth).to_value(u.K)
        assert len(temperature) == 96
        np.testing.assert_allclose(temperature, expected, rtol=1e-9)
        assert expected == pytest.approx(254.6, abs=0.5)

    def test_given_surface_temperature(self, sim, sun_dict, earth_dict):
        sun = sim.allocate_body(sun_dict)
        earth = sim.allocate_body(
            {**earth_dict, "host": sun, "surface_temperature": 15 * u.deg_C}
        )
        np.testing.assert_allclose(sim.query_cell_temperatures(earth).to_value(u.K), 288.15)

    def test_unlit_body_starts_cold(self, sim):
        body = sim.allocate_body({"mass": 1 * u.kg, "n_cells": 8})
        assert not sim.query_cell_temperatures(body).value.any()

    def test_heat_trapping_raises_balance_temperature(self, sim, sun_dict, earth_dict):
        sun = sim.allocate_body(sun_dict)
        clear = sim.allocate_body({**earth_dict, "host": sun})
        trapped = sim.allocate_body(
            {**earth_dict, "host": sun, "heat_trapping": InfraredTransparency(0.5)}
        )
        ratio = sim.query_cell_temperatures(trapped) / sim.query_cell_temperatures(clear)
        np.testing.assert_allclose(ratio.value, 2**0.25)

    @pytest.mark.parametrize(
        "key, value",
        [
            ("surface_temperature", -1 * u.K),
            ("heat_capacity", 0 * u.J / u.m**2 / u.K),
            ("heat_trapping", 0.0),
            ("heat_trapping", 1.2),
            ("heat_retention", 0.0),
            ("heat_retention", 1.5),
        ],
    )
    def test_invalid_thermal_parameters(self, sim, sun_dict, earth_dict, key, value):
        sun = sim.allocate_body(sun_dict)
        with pytest.raises(ValueError):
            sim.allocate_body({**earth_dict, "host": sun, key: value})
        assert len(sim) == 1

    def test_heat_capacity_needs_units(self, sim):
        with pytest.raises(u.UnitsError):
            sim.allocate_body({"mass": 1 * u.kg, "n_cells": 4, "heat_capacity": 1e6})


class TestTemperatureStep:

    def test_lit_cells_warm_and_dark_cells_cool(self, isolated):
        sim, _, earth = isolated
        before = sim.query_cell_temperatures(earth).to_value(u.K)
        sim.tick()
        after = sim.query_cell_temperatures(earth).to_value(u.K)
        absorption = sim.query_terrain_absorption(earth).value
        emission = SIGMA_SB * before**4
        assert np.all(after[absorption > emission] > before[absorption > emission])
        assert np.all(after[absorption < emission] < before[absorption < emission])
        assert (absorption == 0).any()

    def test_night_side_stays_above_zero(self, isolated):
        sim, _, earth = isolated
        for _ in range(60):
            sim.tick(dt=5 * u.d)
        temperature = sim.query_cell_temperatures(earth).to_value(u.K)
        assert np.all(np.isfinite(temperature))
        assert np.all(temperature > 0)

    def test_lit_cells_approach_equilibrium(self, sim, sun_dict, earth_dict):
        sun = sim.allocate_body(sun_dict)
        earth = sim.allocate_body(
            {
                **earth_dict,
                "host": sun,
                "heat_retention": 1.0,
                "heat_capacity": 1e3 * u.J / u.m**2 / u.K,
            }
        )
        for _ in range(20):
            sim.tick(dt=1 * u.h)
        lit = sim.query_terrain_absorption(earth).value > 100
        assert lit.any()
        np.testing.assert_allclose(
            sim.query_cell_temperatures(earth).value[lit],
            sim.radiation.equilibrium_temperature(earth).value[lit],
            rtol=1e-3,
        )

    def test_heat_trapping_keeps_surface_warmer(self, sim, sun_dict, earth_dict):
        sun = sim.allocate_body(sun_dict)
        clear = sim.allocate_body({**earth_dict, "host": sun})
        trapped = sim.allocate_body({**earth_dict, "host": sun, "heat_trapping": 0.5})
        for _ in range(10):
            sim.tick()
        assert (
            sim.query_cell_temperatures(trapped).mean()
            > sim.query_cell_temperatures(clear).mean()
        )
        lit = sim.query_terrain_absorption(clear).value > 0
        np.testing.assert_allclose(
            sim.radiation.equilibrium_temperature(trapped).value[lit],
            sim.radiation.equilibrium_temperature(clear).value[lit] * 2**0.25,
        )

    def test_energy_unaffected_by_temperature(self, sim, sun_dict, earth_dict):
        sun = sim.allocate_body(sun_dict)
        earth = sim.allocate_body(
            {**earth_dict, "host": sun, "surface_temperature": 400 * u.K}
        )
        sim.tick(dt=2 * u.h)
        np.testing.assert_allclose(
            sim.query_accumulated_energy(earth).value,
            sim.query_terrain_absorption(earth).value * 7200,
            rtol=1e-12,
        )


class TestHeatExchange:

    def test_spread_shrinks(self, insulated):
        sim, body = insulated
        rng = np.random.default_rng(3)
        sim.radiation.cells(body).temperature[:] = rng.uniform(150, 350, 96)
        before = sim.query_cell_temperatures(body).value
        sim.tick()
        after = sim.query_cell_temperatures(body).value
        assert after.std() < before.std()
        assert after.min() >= before.min()
        assert after.max() <= before.max()

    def test_uniform_surface_unchanged(self, insulated):
        sim, body = insulated
        sim.tick()
        np.testing.assert_allclose(sim.query_cell_temperatures(body).value, 250)

    def test_hot_spot_reaches_neighbours_only(self, insulated):
        sim, body = insulated
        temperature = sim.radiation.cells(body).temperature
        temperature[:] = 200.0
        temperature[0] = 400.0
        sim.tick(dt=1 * u.h)
        after = sim.query_cell_temperatures(body).value
        adjacent = list(tile_neighbours(96)[0])
        others = np.setdiff1d(np.arange(1, 96), adjacent)
        assert after[0] < 400
        assert np.all(after[adjacent] > 200)
        np.testing.assert_allclose(after[others], 200)

    def test_full_retention_disables_exchange(self, sim):
        body = sim.allocate_body(
            {
                "mass": 1 * u.kg,
                "n_cells": 24,
                "emissivity": 0.0,
                "surface_temperature": 200 * u.K,
                "heat_retention": 1.0,
            }
        )
        sim.radiation.cells(body).temperature[0] = 400.0
        before = sim.query_cell_temperatures(body).value
        sim.tick()
        np.testing.assert_array_equal(sim.query_cell_temperatures(body).value, before)

    @pytest.mark.parametrize("n", [4, 24, 96])
    def test_neighbour_mean_matrix(self, n):
        weights = neighbour_mean(n)
        np.testing.assert_allclose(weights.sum(axis=1), 1.0)
        for i, adjacent in enumerate(tile_neighbours(n)):
            assert sorted(np.flatnonzero(weights[i])) == list(adjacent)

    def test_neighbour_mean_is_cached(self):
        assert neighbour_mean(24) is neighbour_mean(24)


class TestInfraredTransparency:

    @pytest.mark.parametrize("value", [0.0, -0.1, 1.01, np.nan])
    def test_bounds(self, value):
        with pytest.raises(ValueError):
            InfraredTransparency(value)

    def test_scales_emission(self):
        transparency = InfraredTransparency(0.5)
        assert transparency * 100.0 == pytest.approx(50.0)
        assert 100.0 * transparency == pytest.approx(50.0)
        assert float(InfraredTransparency(1.0)) == 1.0
