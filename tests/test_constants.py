"""
Tests for physical constants and the Schwarzschild radius.
"""

import dataclasses

import numpy as np
import pytest

from infall.constants import (
    Constants,
    schwarzschild_radius,
    G_SI,
    C_SI,
    SOLAR_MASS,
)
from infall.errors import ConfigurationError


class TestSchwarzschildRadius:
    """Tests for rs = 2GM/c^2."""

    def test_ten_solar_masses(self):
        """10 solar masses gives rs ~ 29540 m within 1%."""
        rs = schwarzschild_radius(10 * 1.98847e30, G=6.6743e-11, c=2.99792458e8)
        assert abs(rs - 29540.0) / 29540.0 < 0.01

    def test_linear_in_mass(self):
        rs1 = schwarzschild_radius(SOLAR_MASS)
        rs2 = schwarzschild_radius(2 * SOLAR_MASS)
        assert rs2 == pytest.approx(2 * rs1, rel=1e-14)

    def test_matches_formula(self):
        M = 3.7e31
        assert schwarzschild_radius(M) == pytest.approx(2 * G_SI * M / C_SI**2, rel=1e-14)

    @pytest.mark.parametrize("mass", [0.0, -1.0, np.nan, np.inf])
    def test_invalid_mass(self, mass):
        with pytest.raises(ConfigurationError):
            schwarzschild_radius(mass)

    def test_invalid_constants(self):
        with pytest.raises(ConfigurationError):
            schwarzschild_radius(SOLAR_MASS, G=0.0)
        with pytest.raises(ConfigurationError):
            schwarzschild_radius(SOLAR_MASS, c=-1.0)

    def test_configuration_error_is_value_error(self):
        with pytest.raises(ValueError):
            schwarzschild_radius(-5.0)


class TestConstants:
    """Tests for the Constants dataclass."""

    def test_derived_radius(self):
        const = Constants(mass=SOLAR_MASS)
        assert const.rs == pytest.approx(schwarzschild_radius(SOLAR_MASS))

    def test_from_solar_masses(self):
        const = Constants.from_solar_masses(10.0)
        assert const.mass == pytest.approx(10.0 * SOLAR_MASS)
        assert const.mass_solar == pytest.approx(10.0)
        assert const.rs == pytest.approx(29533.3, rel=1e-4)

    def test_immutable(self):
        const = Constants.from_solar_masses(1.0)
        with pytest.raises(dataclasses.FrozenInstanceError):
            const.mass = 2.0
        with pytest.raises(dataclasses.FrozenInstanceError):
            const.rs = 1.0

    def test_rs_not_constructor_argument(self):
        with pytest.raises(TypeError):
            Constants(mass=SOLAR_MASS, rs=1.0)

    def test_gm(self):
        const = Constants(mass=2.0e30, G=1.0, c=1.0)
        assert const.GM == pytest.approx(2.0e30)
        assert const.rs == pytest.approx(4.0e30)

    def test_invalid_mass_rejected(self):
        with pytest.raises(ConfigurationError):
            Constants(mass=0.0)

    def test_str(self):
        text = str(Constants.from_solar_masses(10.0))
        assert "rs=2.953e+04 m" in text
