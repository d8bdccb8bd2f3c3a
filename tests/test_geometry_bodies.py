"""
Tests for the body lattice, radial frames and the Body record.
"""

import numpy as np
import pytest

from infall.bodies import Body, HORIZON, REDSHIFT
from infall.geometry import lattice_offsets, radial_basis, split_offset


class TestLatticeOffsets:

    @pytest.mark.parametrize("n", [1, 2, 3, 5])
    def test_shape_and_centroid(self, n):
        offsets = lattice_offsets(n, 10.0)
        assert offsets.shape == (n**3, 3)
        np.testing.assert_allclose(offsets.mean(axis=0), 0.0, atol=1e-12)
        assert np.all(np.abs(offsets) < 5.0)

    def test_single_element_at_centre(self):
        np.testing.assert_array_equal(lattice_offsets(1, 1000.0), [[0.0, 0.0, 0.0]])

    def test_cell_centres(self):
        offsets = lattice_offsets(2, 2.0)
        np.testing.assert_allclose(offsets[0], [-0.5, -0.5, -0.5])
        np.testing.assert_allclose(offsets[1], [-0.5, -0.5, 0.5])
        np.testing.assert_allclose(offsets[-1], [0.5, 0.5, 0.5])

    def test_spacing(self):
        offsets = lattice_offsets(4, 8.0)
        xs = np.unique(offsets[:, 0])
        np.testing.assert_allclose(np.diff(xs), 2.0)

    @pytest.mark.parametrize("n, size", [(0, 1.0), (2, 0.0), (2, -1.0)])
    def test_invalid(self, n, size):
        with pytest.raises(ValueError):
            lattice_offsets(n, size)


class TestRadialBasis:

    def test_points_to_origin(self):
        basis = radial_basis(np.array([0.0, 3.0, 4.0]))
        np.testing.assert_allclose(basis[0], [0.0, -0.6, -0.8])
        np.testing.assert_allclose(basis @ basis.T, np.eye(3), atol=1e-12)

    def test_right_handed(self):
        basis = radial_basis(np.array([1.0, -2.0, 0.5]))
        assert np.linalg.det(basis) == pytest.approx(1.0)

    def test_origin_uses_fallback(self):
        basis = radial_basis(np.zeros(3), fallback_axis=(1.0, 0.0, 0.0))
        np.testing.assert_allclose(basis[0], [-1.0, 0.0, 0.0])

    def test_split_offset(self):
        along, lateral = split_offset(np.array([1.0, 2.0, 3.0]), np.array([0.0, 0.0, 1.0]))
        assert along == pytest.approx(3.0)
        np.testing.assert_allclose(lateral, [1.0, 2.0, 0.0])


class TestBody:

    def test_defaults(self):
        body = Body(index=2, offset=[1, 2, 2], r=5e4)
        assert body.r0 == 5e4
        assert body.alive
        assert body.stretch == 1.0
        assert body.offset_magnitude == pytest.approx(3.0)

    def test_offset_immutable(self):
        body = Body(index=0, offset=[1.0, 0.0, 0.0], r=1.0)
        with pytest.raises(ValueError):
            body.offset[0] = 5.0

    @pytest.mark.parametrize("kwargs", [
        {'offset': [1.0, 2.0], 'r': 1.0},
        {'offset': [0, 0, 0], 'r': 0.0},
        {'offset': [0, 0, 0], 'r': np.nan},
        {'offset': [0, 0, 0], 'r': 1.0, 'stretch': 0.5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            Body(index=0, **kwargs)

    def test_kill_is_terminal(self):
        body = Body(index=0, offset=[0, 0, 0], r=1.0, opacity=0.5)
        body.kill(HORIZON, tick=3)
        body.kill(REDSHIFT, tick=9)

        assert not body.alive
        assert body.opacity == 0.0
        assert body.death_cause == HORIZON
        assert body.death_tick == 3

    def test_reinitialize(self):
        body = Body(index=0, offset=[0, 0, 0], r=1.0, tau=4.0, stretch=3.0)
        body.kill(HORIZON, tick=1)
        body.reinitialize(7.0)

        assert body.alive
        assert body.r == body.r0 == 7.0
        assert body.tau == 0.0
        assert body.stretch == 1.0
        assert body.death_cause is None
        assert body.death_tick is None

    def test_str(self):
        text = str(Body(index=1, offset=[0, 0, 0], r=1.2e5))
        assert text.startswith("Body 1: ALIVE r=1.200e+05 m")
