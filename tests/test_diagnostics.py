"""
Tests for derived diagnostics: opacity, analytic fall time, population summary.
"""

import numpy as np
import pytest

from infall.bodies import Body, HORIZON, REDSHIFT
from infall.config import VelocityLaw
from infall.diagnostics import (
    opacity_from_dilation,
    proper_fall_time,
    speed_fraction,
    population_summary,
)


class TestOpacity:

    def test_identity_without_cutoff(self):
        d = np.linspace(0.0, 1.0, 11)
        np.testing.assert_allclose(opacity_from_dilation(d, 0.0), d)

    def test_zero_below_cutoff(self):
        assert opacity_from_dilation(0.05, 0.05) == 0.0
        assert opacity_from_dilation(0.01, 0.05) == 0.0
        assert opacity_from_dilation(1.0, 0.05) == pytest.approx(1.0)

    def test_monotonic(self):
        d = np.linspace(0.0, 1.0, 101)
        assert np.all(np.diff(opacity_from_dilation(d, 0.2)) >= 0)


class TestProperFallTime:

    def test_to_horizon(self):
        # (2/3) * (rs/c) * (4**1.5 - 1) = (2/3) * 7
        assert proper_fall_time(4.0, 1.0, 1.0) == pytest.approx(14.0 / 3.0)

    def test_additive(self):
        rs, c = 3e4, 3e8
        whole = proper_fall_time(5 * rs, rs, c)
        parts = proper_fall_time(5 * rs, rs, c, r=2 * rs) + proper_fall_time(2 * rs, rs, c)
        assert whole == pytest.approx(parts)

    def test_zero_distance(self):
        assert proper_fall_time(2.0, 1.0, 1.0, r=2.0) == 0.0


class TestSpeedFraction:

    def test_proper_tends_to_one(self):
        r = np.array([100.0, 10.0, 1.0001])
        f = speed_fraction(r, 1.0, 3.0, VelocityLaw.PROPER)
        assert np.all(np.diff(f) > 0)
        assert f[-1] < 1.0
        assert f[-1] == pytest.approx(1.0, abs=1e-3)

    def test_coordinate_tends_to_zero(self):
        r = np.array([100.0, 10.0, 1.0001])
        f = speed_fraction(r, 1.0, 3.0, "coordinate")
        assert np.all(np.diff(f) < 0)
        assert f[-1] == pytest.approx(0.0, abs=1e-3)


class TestPopulationSummary:

    def test_counts_and_extremes(self):
        rs = 10.0
        bodies = [
            Body(index=0, offset=[0, 0, 0], r=30.0, opacity=0.8, tau=1.0),
            Body(index=1, offset=[0, 0, 0], r=20.0, opacity=0.4, stretch=2.5, tau=2.0),
            Body(index=2, offset=[0, 0, 0], r=10.01, tau=5.0),
            Body(index=3, offset=[0, 0, 0], r=12.0, tau=3.0),
        ]
        bodies[2].kill(HORIZON, tick=7)
        bodies[3].kill(REDSHIFT, tick=6)

        summary = population_summary(bodies, rs)
        assert summary['n_bodies'] == 4
        assert summary['n_alive'] == 2
        assert summary['n_dead'] == 2
        assert summary['death_causes'] == {HORIZON: 1, REDSHIFT: 1}
        assert summary['min_r_rs'] == pytest.approx(1.001)
        assert summary['max_stretch'] == 2.5
        assert summary['mean_opacity_alive'] == pytest.approx(0.6)
        assert summary['max_tau'] == 5.0

    def test_empty(self):
        summary = population_summary([], 1.0)
        assert summary['n_bodies'] == 0
        assert summary['min_r_rs'] is None
        assert summary['mean_opacity_alive'] == 0.0
