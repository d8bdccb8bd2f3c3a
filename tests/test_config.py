"""
Tests for SimConfig validation.
"""

import numpy as np
import pytest

from infall.config import SimConfig, VelocityLaw, RenderMapping
from infall.errors import ConfigurationError


class TestDefaults:

    def test_defaults_valid(self):
        cfg = SimConfig()
        assert cfg.velocity_law is VelocityLaw.PROPER
        assert cfg.render_mapping is RenderMapping.LINEAR
        assert cfg.n_elements == cfg.subdivisions ** 3

    def test_string_enums(self):
        cfg = SimConfig(velocity_law="coordinate", render_mapping="compressed")
        assert cfg.velocity_law is VelocityLaw.COORDINATE
        assert cfg.render_mapping is RenderMapping.COMPRESSED

    def test_element_size(self):
        cfg = SimConfig(body_size=900.0, subdivisions=3)
        assert cfg.element_size == pytest.approx(300.0)

    def test_axis_normalised(self):
        cfg = SimConfig(infall_axis=(0.0, 3.0, 4.0))
        assert cfg.infall_axis == pytest.approx((0.0, 0.6, 0.8))

    def test_constants(self):
        cfg = SimConfig(mass_solar=10.0)
        assert cfg.constants().rs == pytest.approx(29533.3, rel=1e-4)


class TestInvalid:
    """Configuration errors are fatal at construction."""

    @pytest.mark.parametrize("kwargs", [
        {'mass_solar': 0.0},
        {'mass_solar': -1.0},
        {'body_size': 0.0},
        {'body_size': -10.0},
        {'epsilon': 0.0},
        {'epsilon': -1e-3},
        {'epsilon': 1.0},
        {'step': 0.0},
        {'subdivisions': 0},
        {'subdivisions': 2.5},
        {'start_radius_rs': 1.0},
        {'horizon_floor': 0.0},
        {'tidal_growth': -1.0},
        {'activation_radius_rs': 0.0},
        {'despawn_stretch': 1.0},
        {'visibility_cutoff': 1.0},
        {'visibility_cutoff': -0.1},
        {'cooldown': -1.0},
        {'infall_axis': (0.0, 0.0, 0.0)},
        {'infall_axis': (1.0, 0.0)},
        {'velocity_law': 'newtonian'},
        {'render_mapping': 'cubic'},
        {'G': np.nan},
    ])
    def test_rejected(self, kwargs):
        with pytest.raises(ConfigurationError):
            SimConfig(**kwargs)

    @pytest.mark.parametrize("name", [
        'activation_radius_rs',
        'despawn_stretch',
        'observer_radius_rs',
    ])
    @pytest.mark.parametrize("value", [np.nan, np.inf])
    def test_non_finite_rejected(self, name, value):
        with pytest.raises(ConfigurationError):
            SimConfig(**{name: value})

    @pytest.mark.parametrize("value", [np.nan, np.inf, "four", None])
    def test_subdivisions_not_a_number(self, value):
        with pytest.raises(ConfigurationError):
            SimConfig(subdivisions=value)

    def test_optional_policies_accept_none(self):
        cfg = SimConfig(activation_radius_rs=None, despawn_stretch=None)
        assert cfg.activation_radius_rs is None
        assert cfg.despawn_stretch is None
