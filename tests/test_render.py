"""
Tests for the physics-to-display mapping.
"""

import numpy as np
import pytest

from infall.bodies import Body, HORIZON
from infall.config import SimConfig
from infall.render import (
    map_to_render,
    radial_display_distance,
    horizon_marker,
)


@pytest.fixture
def cfg():
    return SimConfig(meters_to_units=1e-3)


@pytest.fixture
def const(cfg):
    return cfg.constants()


class TestRadialMapping:

    def test_linear(self, cfg, const):
        r = np.array([1.0, 2.0, 10.0]) * const.rs
        np.testing.assert_allclose(radial_display_distance(r, const, cfg), r * 1e-3)

    def test_compressed_horizon_fixed(self, const):
        cfg = SimConfig(render_mapping="compressed", compression_gain=3.0)
        d = radial_display_distance(const.rs, const, cfg)
        assert d == pytest.approx(const.rs * cfg.meters_to_units)

    def test_compressed_monotonic(self, const):
        cfg = SimConfig(render_mapping="compressed")
        r = const.rs * np.linspace(1.0, 100.0, 1000)
        d = radial_display_distance(r, const, cfg)
        assert np.all(np.diff(d) > 0)

    def test_compressed_formula(self, const):
        cfg = SimConfig(render_mapping="compressed", compression_gain=2.0)
        rs_units = const.rs * cfg.meters_to_units
        d = radial_display_distance(3.0 * const.rs, const, cfg)
        assert d == pytest.approx(rs_units * (1.0 + 2.0 * np.log(3.0)))


class TestMapToRender:

    def test_position_on_axis(self, cfg, const):
        body = Body(index=0, offset=[0, 0, 0], r=3.0 * const.rs)
        state = map_to_render(body, const, cfg)

        np.testing.assert_allclose(state.position, [0.0, 0.0, 3.0 * const.rs * 1e-3])
        np.testing.assert_allclose(state.axis, [0.0, 0.0, -1.0], atol=1e-12)

    def test_lateral_offset_kept(self, cfg, const):
        body = Body(index=0, offset=[100.0, -40.0, 50.0], r=3.0 * const.rs)
        state = map_to_render(body, const, cfg)

        np.testing.assert_allclose(state.position, [0.1, -0.04, 3.0 * const.rs * 1e-3])

    def test_axis_points_to_centre(self, const):
        cfg = SimConfig(infall_axis=(1.0, 1.0, 0.0))
        body = Body(index=0, offset=[10.0, 0.0, 30.0], r=2.0 * const.rs)
        state = map_to_render(body, const, cfg)

        expected = -state.position / np.linalg.norm(state.position)
        np.testing.assert_allclose(state.axis, expected, atol=1e-12)

    def test_scale_volume_preserving(self, cfg, const):
        body = Body(index=0, offset=[0, 0, 0], r=3.0 * const.rs, stretch=4.0)
        state = map_to_render(body, const, cfg)

        np.testing.assert_allclose(state.scale, [4.0, 0.5, 0.5])
        assert np.prod(state.scale) == pytest.approx(1.0)

    def test_basis_orthonormal(self, cfg, const):
        body = Body(index=0, offset=[123.0, -77.0, 5.0], r=1.7 * const.rs)
        basis = map_to_render(body, const, cfg).basis
        np.testing.assert_allclose(basis @ basis.T, np.eye(3), atol=1e-12)
        np.testing.assert_allclose(basis[0], map_to_render(body, const, cfg).axis)

    def test_opacity_and_visibility(self, cfg, const):
        body = Body(index=3, offset=[0, 0, 0], r=3.0 * const.rs, opacity=0.7)
        state = map_to_render(body, const, cfg)
        assert state.index == 3
        assert state.opacity == pytest.approx(0.7)
        assert state.visible

        body.opacity = 0.0
        assert not map_to_render(body, const, cfg).visible

    def test_dead_body_invisible(self, cfg, const):
        body = Body(index=0, offset=[0, 0, 0], r=3.0 * const.rs)
        body.kill(HORIZON, tick=10)
        state = map_to_render(body, const, cfg)
        assert not state.visible
        assert state.opacity == 0.0

    def test_pure(self, cfg, const):
        body = Body(index=0, offset=[1.0, 2.0, 3.0], r=2.5 * const.rs, stretch=2.0, opacity=0.4)
        before = body.state_tuple()
        offset = body.offset.copy()

        first = map_to_render(body, const, cfg)
        second = map_to_render(body, const, cfg)

        assert body.state_tuple() == before
        np.testing.assert_array_equal(body.offset, offset)
        np.testing.assert_array_equal(first.position, second.position)

    def test_read_only(self, cfg, const):
        body = Body(index=0, offset=[0, 0, 0], r=3.0 * const.rs)
        state = map_to_render(body, const, cfg)

        with pytest.raises(ValueError):
            state.position[0] = 0.0
        with pytest.raises(ValueError):
            state.scale[0] = 2.0
        with pytest.raises(AttributeError):
            state.opacity = 1.0


class TestHorizonMarker:

    def test_ring_and_observer(self, cfg, const):
        marker = horizon_marker(const, cfg)
        rs_units = const.rs * 1e-3

        assert marker.inner_radius == pytest.approx(0.98 * rs_units)
        assert marker.outer_radius == pytest.approx(1.02 * rs_units)
        np.testing.assert_allclose(marker.observer_position,
                                   [0.0, 0.0, cfg.observer_radius_rs * rs_units])

    def test_compressed_ring_matches_linear(self, const):
        linear = horizon_marker(const, SimConfig())
        compressed = horizon_marker(const, SimConfig(render_mapping="compressed"))
        assert compressed.inner_radius == pytest.approx(linear.inner_radius)
        assert (np.linalg.norm(compressed.observer_position)
                < np.linalg.norm(linear.observer_position))
