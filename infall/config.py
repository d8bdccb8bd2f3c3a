"""Simulation configuration.

A single `SimConfig` dataclass carries every tunable of the engine. It is
supplied once, when a Simulation is constructed, and validated in
`__post_init__`: a bad value raises ConfigurationError and the simulation
never starts.

The configuration also selects between the interchangeable strategies of
the engine:

- velocity law: proper-time (adaptive step) or external-observer
  coordinate time (fixed step)
- stretch policy: unconditional, or only inside an activation radius
- despawn policy: optional hard stretch ceiling
- render mapping: linear or logarithmically compressed

Radii given "in rs" are multiples of the Schwarzschild radius.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple
import numpy as np

from infall.constants import Constants, G_SI, C_SI, SOLAR_MASS
from infall.errors import ConfigurationError


class VelocityLaw(str, Enum):
    """Radial velocity law used by the integrator."""
    PROPER = "proper"           # dr/dtau = -c*sqrt(rs/r)
    COORDINATE = "coordinate"   # dr/dt   = -c*(1 - rs/r)


class RenderMapping(str, Enum):
    """Physics-to-display radial mapping."""
    LINEAR = "linear"
    COMPRESSED = "compressed"


def _parse_enum(enum_cls, value, name):
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(m.value for m in enum_cls)
        raise ConfigurationError(f"{name} must be one of {{{choices}}}, got {value!r}")


@dataclass
class SimConfig:
    """Engine configuration.

    Attributes
    ----------
    mass_solar : float
        Black-hole mass in solar masses (default: 10).
    G, c : float
        Gravitational constant and speed of light (SI defaults).
    body_size : float
        Edge length of the falling body [m].
    subdivisions : int
        Lattice subdivisions per axis; the body is simulated as
        subdivisions**3 independent elements.
    start_radius_rs : float
        Radius of the lattice centre at reset, in rs.
    velocity_law : VelocityLaw
        "proper" or "coordinate".
    epsilon : float
        Adaptive step fraction for the proper-time law,
        dtau = epsilon * r / |dr/dtau|.
    step : float
        Fixed coordinate-time step for the coordinate law [s].
    horizon_floor : float
        Radii are clamped to rs*(1 + horizon_floor); reaching it kills a body.
    tidal_growth : float
        Visual growth constant k in dstretch = a_tidal * k * dt. Tunable,
        not a physical constant.
    activation_radius_rs : float or None
        Stretch accumulates only inside this radius (None: always).
    despawn_stretch : float or None
        Optional hard stretch ceiling; reaching it removes the body.
    visibility_cutoff : float
        Bodies whose time-dilation factor drops below this fade out and die.
    dilation_floor : float
        Floor under 1 - rs/r inside the square root of the dilation factor.
    cooldown : float
        Delay between the last body dying and the population reset [s].
    render_mapping : RenderMapping
        "linear" or "compressed".
    meters_to_units : float
        Display units per metre.
    compression_gain : float
        Gain of the compressed mapping.
    infall_axis : tuple of float
        Direction from the hole centre to the body at reset (normalised).
    observer_radius_rs : float
        Observer distance along the infall axis, in rs.

    Examples
    --------
    >>> cfg = SimConfig(mass_solar=10.0, velocity_law="proper", epsilon=5e-4)
    >>> cfg.velocity_law
    <VelocityLaw.PROPER: 'proper'>
    >>> print(f"{cfg.constants().rs:.0f} m")
    29533 m
    """

    mass_solar: float = 10.0
    G: float = G_SI
    c: float = C_SI

    body_size: float = 1000.0
    subdivisions: int = 4
    start_radius_rs: float = 4.0

    velocity_law: VelocityLaw = VelocityLaw.PROPER
    epsilon: float = 5e-4
    step: float = 1e-6
    horizon_floor: float = 1e-3

    tidal_growth: float = 1e-5
    activation_radius_rs: Optional[float] = None
    despawn_stretch: Optional[float] = None

    visibility_cutoff: float = 0.05
    dilation_floor: float = 1e-12
    cooldown: float = 3.0

    render_mapping: RenderMapping = RenderMapping.LINEAR
    meters_to_units: float = 1e-3
    compression_gain: float = 4.0
    infall_axis: Tuple[float, float, float] = (0.0, 0.0, 1.0)
    observer_radius_rs: float = 50.0

    def __post_init__(self):
        self.velocity_law = _parse_enum(VelocityLaw, self.velocity_law, "velocity_law")
        self.render_mapping = _parse_enum(RenderMapping, self.render_mapping, "render_mapping")

        positive = {
            "mass_solar": self.mass_solar,
            "G": self.G,
            "c": self.c,
            "body_size": self.body_size,
            "epsilon": self.epsilon,
            "step": self.step,
            "horizon_floor": self.horizon_floor,
            "start_radius_rs": self.start_radius_rs,
            "meters_to_units": self.meters_to_units,
            "compression_gain": self.compression_gain,
            "dilation_floor": self.dilation_floor,
        }
        for name, value in positive.items():
            if not np.isfinite(value) or value <= 0:
                raise ConfigurationError(f"{name} must be positive, got {value}")

        if self.epsilon >= 1.0:
            raise ConfigurationError(f"epsilon must be < 1, got {self.epsilon}")
        try:
            n = int(self.subdivisions)
        except (TypeError, ValueError, OverflowError):
            raise ConfigurationError(f"subdivisions must be an integer >= 1, got {self.subdivisions!r}")
        if n != self.subdivisions or n < 1:
            raise ConfigurationError(f"subdivisions must be an integer >= 1, got {self.subdivisions}")
        self.subdivisions = n

        if self.start_radius_rs <= 1.0 + self.horizon_floor:
            raise ConfigurationError(
                f"start_radius_rs={self.start_radius_rs} must lie outside the "
                f"horizon floor 1 + {self.horizon_floor}"
            )
        if self.tidal_growth < 0 or not np.isfinite(self.tidal_growth):
            raise ConfigurationError(f"tidal_growth must be non-negative, got {self.tidal_growth}")
        if self.activation_radius_rs is not None and (
            not np.isfinite(self.activation_radius_rs) or self.activation_radius_rs <= 0
        ):
            raise ConfigurationError(
                f"activation_radius_rs must be positive and finite or None, "
                f"got {self.activation_radius_rs}"
            )
        if self.despawn_stretch is not None and (
            not np.isfinite(self.despawn_stretch) or self.despawn_stretch <= 1.0
        ):
            raise ConfigurationError(
                f"despawn_stretch must be finite and > 1 or None, got {self.despawn_stretch}"
            )
        if not 0.0 <= self.visibility_cutoff < 1.0:
            raise ConfigurationError(
                f"visibility_cutoff must lie in [0, 1), got {self.visibility_cutoff}"
            )
        if self.cooldown < 0 or not np.isfinite(self.cooldown):
            raise ConfigurationError(f"cooldown must be non-negative, got {self.cooldown}")
        if not np.isfinite(self.observer_radius_rs) or self.observer_radius_rs <= 0:
            raise ConfigurationError(
                f"observer_radius_rs must be positive and finite, got {self.observer_radius_rs}"
            )

        axis = np.asarray(self.infall_axis, dtype=float)
        norm = np.linalg.norm(axis) if axis.shape == (3,) else 0.0
        if not np.isfinite(norm) or norm == 0.0:
            raise ConfigurationError(f"infall_axis must be a non-zero 3-vector, got {self.infall_axis}")
        self.infall_axis = tuple(float(a) for a in axis / norm)

    @property
    def element_size(self) -> float:
        """Edge length of one lattice element [m]."""
        return self.body_size / self.subdivisions

    @property
    def n_elements(self) -> int:
        return self.subdivisions ** 3

    def constants(self) -> Constants:
        """Constants derived from this configuration."""
        return Constants(mass=self.mass_solar * SOLAR_MASS, G=self.G, c=self.c)
