"""
Physics-to-display mapping.

map_to_render() turns one body's physical state into the transform an
external renderer draws: a position in display units, an anisotropic
scale, an orientation frame, an opacity and a visibility flag. It is a
pure function: it reads the body and never writes to it, and nothing it
returns is fed back into the physics.

Radial placement strategies:

- linear:      d = r * meters_to_units
- compressed:  d = rs_units * (1 + gain * log1p(r/rs - 1))

The compressed mapping spreads out the region just outside the horizon,
where the interesting part of the fall happens, and squeezes the far field.
Both map r = rs onto the horizon ring.

Elements are placed along the configured infall axis at the mapped radial
distance, displaced sideways by the axis-perpendicular part of their
lattice offset. Scale is (stretch, 1/sqrt(stretch), 1/sqrt(stretch)) in the
local (radial, ortho1, ortho2) frame, approximately volume preserving.
"""

from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray

from infall.bodies import Body
from infall.config import SimConfig, RenderMapping
from infall.constants import Constants
from infall.geometry import radial_basis, split_offset


@dataclass(frozen=True)
class RenderState:
    """Read-only render snapshot of one body.

    Attributes
    ----------
    index : int
        Body index.
    position : ndarray, shape (3,)
        Centre position [display units], hole at the origin.
    scale : ndarray, shape (3,)
        Scale multipliers along (radial, ortho1, ortho2).
    axis : ndarray, shape (3,)
        Unit vector from the body toward the hole centre.
    basis : ndarray, shape (3, 3)
        Rows (radial, ortho1, ortho2); apply `scale` in this frame.
    opacity : float
        Opacity in [0, 1].
    visible : bool
        Whether the renderer should draw the body at all.
    """

    index: int
    position: NDArray[np.float64]
    scale: NDArray[np.float64]
    axis: NDArray[np.float64]
    basis: NDArray[np.float64]
    opacity: float
    visible: bool


@dataclass(frozen=True)
class HorizonMarker:
    """Display geometry of the event horizon ring and the observer position."""

    inner_radius: float
    outer_radius: float
    observer_position: NDArray[np.float64]


def radial_display_distance(r, constants: Constants, config: SimConfig):
    """
    Map physical radius [m] to display distance [display units].

    Examples
    --------
    >>> cfg = SimConfig(meters_to_units=1e-3)
    >>> const = cfg.constants()
    >>> round(float(radial_display_distance(const.rs, const, cfg)), 3)
    29.533
    """
    r = np.asarray(r, dtype=float)
    if config.render_mapping is RenderMapping.LINEAR:
        return r * config.meters_to_units

    rs_units = constants.rs * config.meters_to_units
    x = np.maximum(r / constants.rs - 1.0, 0.0)
    return rs_units * (1.0 + config.compression_gain * np.log1p(x))


def _readonly(array: NDArray[np.float64]) -> NDArray[np.float64]:
    array.flags.writeable = False
    return array


def map_to_render(body: Body, constants: Constants, config: SimConfig) -> RenderState:
    """
    Render snapshot of one body. Does not mutate `body`.

    Parameters
    ----------
    body : Body
        Body to map.
    constants : Constants
        Simulation constants (rs for the compressed mapping).
    config : SimConfig
        Mapping strategy, scale, infall axis.

    Returns
    -------
    RenderState
    """
    axis = np.asarray(config.infall_axis, dtype=np.float64)
    _, lateral = split_offset(body.offset, axis)

    distance = float(radial_display_distance(body.r, constants, config))
    position = axis * distance + lateral * config.meters_to_units

    basis = radial_basis(position, fallback_axis=axis)
    stretch = body.stretch
    compress = 1.0 / np.sqrt(stretch)
    scale = np.array([stretch, compress, compress])

    opacity = float(np.clip(body.opacity, 0.0, 1.0)) if body.alive else 0.0

    return RenderState(
        index=body.index,
        position=_readonly(position),
        scale=_readonly(scale),
        axis=_readonly(basis[0].copy()),
        basis=_readonly(basis),
        opacity=opacity,
        visible=bool(body.alive and opacity > 0.0),
    )


def horizon_marker(constants: Constants, config: SimConfig) -> HorizonMarker:
    """
    Horizon ring (0.98 to 1.02 rs) and observer position in display units.

    The observer stands on the infall axis at observer_radius_rs, mapped
    with the same radial strategy as the bodies.
    """
    rs_units = float(radial_display_distance(constants.rs, constants, config))
    axis = np.asarray(config.infall_axis, dtype=np.float64)
    observer = axis * float(
        radial_display_distance(config.observer_radius_rs * constants.rs, constants, config)
    )
    return HorizonMarker(
        inner_radius=0.98 * rs_units,
        outer_radius=1.02 * rs_units,
        observer_position=_readonly(observer),
    )
