"""
Tidal deformation model ("spaghettification").

The leading-order differential pull across an element of radial extent L
at radius r is

    a_tidal(r) = 2 * G * M / r**3 * L

The stretch factor accumulates from it,

    stretch += a_tidal(r) * k * dt

where k is a visual growth constant (tunable, not a physical law), and is
then clamped to the geometric maximum

    max_stretch(r, L) = max(1, 2 * (r - rs) / L)

which is exactly the stretch at which the nearest stretched face,
r - stretch * L / 2, touches the horizon. Applying the clamp on every tick
is what keeps a stretched element from ever crossing rs geometrically.
"""

from dataclasses import dataclass
import numpy as np

from infall.bodies import Body
from infall.config import SimConfig
from infall.constants import Constants


@dataclass
class TidalResult:
    """Outcome of one tidal update.

    Attributes
    ----------
    acceleration : float
        Tidal acceleration at the new radius [m/s^2].
    active : bool
        Whether stretch accumulated this tick (activation policy).
    clamped : bool
        Whether the geometric clamp limited the stretch.
    face_crossed : bool
        The stretch carried into the tick already put the nearest face
        inside the horizon at the new radius (the clamp had to shrink it).
    ceiling_reached : bool
        The applied stretch reached the despawn ceiling.
    carried_stretch : float
        Stretch the body held before this update.
    """

    acceleration: float
    active: bool
    clamped: bool
    face_crossed: bool
    ceiling_reached: bool
    carried_stretch: float


def tidal_acceleration(r, constants: Constants, size: float):
    """
    Leading-order tidal acceleration 2*G*M/r^3 * size.

    Parameters
    ----------
    r : float or ndarray
        Radius [m].
    constants : Constants
        Simulation constants.
    size : float
        Radial extent of the element [m].

    Returns
    -------
    float or ndarray
        Differential acceleration across the element [m/s^2].
    """
    return 2.0 * constants.GM / np.asarray(r, dtype=float) ** 3 * size


def max_stretch(r, rs: float, size: float):
    """
    Largest stretch that keeps the nearest face outside the horizon.

    max(1, 2 * (r - rs) / size). Non-decreasing in r.

    Examples
    --------
    >>> max_stretch(3.0, 1.0, 1.0)
    4.0
    >>> max_stretch(1.1, 1.0, 1.0)
    1.0
    """
    return np.maximum(1.0, 2.0 * (np.asarray(r, dtype=float) - rs) / size)


def nearest_face(r: float, stretch: float, size: float) -> float:
    """Radius of the stretched face closest to the hole, r - stretch*size/2."""
    return r - stretch * size / 2.0


def stretch_active(r: float, constants: Constants, config: SimConfig) -> bool:
    """Activation policy: always, or only inside activation_radius_rs."""
    if config.activation_radius_rs is None:
        return True
    return r < config.activation_radius_rs * constants.rs


def apply_tidal(body: Body, dt: float, constants: Constants, config: SimConfig) -> TidalResult:
    """
    Accumulate and clamp one body's stretch. Body is modified IN-PLACE.

    Must be called after the integrator has moved the body, with the time
    increment the integrator returned.

    Parameters
    ----------
    body : Body
        Element to deform.
    dt : float
        Time increment of this tick [s].
    constants : Constants
        Simulation constants.
    config : SimConfig
        Growth constant, activation radius, despawn ceiling, element size.

    Returns
    -------
    TidalResult
    """
    size = config.element_size
    rs = constants.rs

    accel = float(tidal_acceleration(body.r, constants, size))
    active = stretch_active(body.r, constants, config)

    previous = body.stretch
    candidate = previous + accel * config.tidal_growth * dt if active else previous
    limit = float(max_stretch(body.r, rs, size))

    body.stretch = max(1.0, min(candidate, limit))

    ceiling = config.despawn_stretch
    return TidalResult(
        acceleration=accel,
        active=active,
        clamped=candidate > limit,
        face_crossed=nearest_face(body.r, previous, size) < rs,
        ceiling_reached=ceiling is not None and body.stretch >= ceiling,
        carried_stretch=previous,
    )
