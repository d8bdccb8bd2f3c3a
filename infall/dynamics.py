"""
Radial integration module for the infall engine.

This module advances one body's radial coordinate r and its clocks for one
display tick. Two interchangeable velocity laws are supported:

Proper-time law (comoving clock, radial free fall from rest at infinity):

    dr/dtau = -c * sqrt(rs / r)

    The speed grows toward c as r -> rs but never reaches it. Integrated
    with an adaptive step

        dtau = epsilon * r / |dr/dtau|

    so every step moves the body by the fraction epsilon of its current
    radius, r <- r * (1 - epsilon). The step shrinks automatically as the
    body approaches the horizon and can never overshoot r = 0.

External-observer law (distant observer's coordinate clock):

    dr/dt = -c * (1 - rs / r)

    The speed goes to zero at the horizon; the body approaches rs only
    asymptotically. Integrated with a fixed coordinate step (explicit Euler).

After every (sub)step r is clamped to the floor rs * (1 + horizon_floor),
so downstream code never sees r <= rs, a zero denominator in 1 - rs/r, or a
negative radius. Reaching the floor is how the lifecycle manager detects
horizon absorption.
"""

import numpy as np
from typing import Optional

from infall.bodies import Body
from infall.config import SimConfig, VelocityLaw
from infall.constants import Constants
from infall.errors import PreconditionError


# ============================================================================
# Velocity laws
# ============================================================================

def velocity_proper(r, rs: float, c: float):
    """
    Radial velocity dr/dtau of the proper-time law.

    Parameters
    ----------
    r : float or ndarray
        Radial coordinate(s) [m], r > 0.
    rs : float
        Schwarzschild radius [m].
    c : float
        Speed of light [m/s].

    Returns
    -------
    float or ndarray
        dr/dtau [m/s], negative (inward). |dr/dtau| < c for all r > rs.

    Examples
    --------
    >>> velocity_proper(4.0, 1.0, 1.0)
    -0.5
    """
    return -c * np.sqrt(rs / r)


def velocity_coordinate(r, rs: float, c: float):
    """
    Radial velocity dr/dt of the external-observer law.

    Returns
    -------
    float or ndarray
        dr/dt [m/s], negative outside the horizon and zero at r = rs.

    Examples
    --------
    >>> velocity_coordinate(2.0, 1.0, 1.0)
    -0.5
    """
    return -c * (1.0 - rs / r)


def time_dilation_factor(r, rs: float, floor: float = 0.0):
    """
    Gravitational time dilation factor sqrt(max(floor, 1 - rs/r)).

    This is the rate of a static clock at r relative to a distant clock.
    It is 1 far away and falls to sqrt(floor) at the horizon.

    Examples
    --------
    >>> round(time_dilation_factor(1.5, 1.0), 4)
    0.5774
    """
    return np.sqrt(np.maximum(floor, 1.0 - rs / np.asarray(r, dtype=float)))


def horizon_floor_radius(constants: Constants, config: SimConfig) -> float:
    """Smallest radius a living body may have, rs * (1 + horizon_floor)."""
    return constants.rs * (1.0 + config.horizon_floor)


def adaptive_step(r: float, rs: float, c: float, epsilon: float) -> float:
    """
    Adaptive proper-time step dtau = epsilon * r / |dr/dtau|.

    Parameters
    ----------
    r : float
        Current radius [m].
    rs : float
        Schwarzschild radius [m].
    c : float
        Speed of light [m/s].
    epsilon : float
        Fraction of r to move per step (typically 5e-4 to 1e-3).

    Returns
    -------
    float
        Step size [s]. Shrinks roughly as r**1.5 near the hole.

    Examples
    --------
    >>> adaptive_step(4.0, 1.0, 1.0, 1e-3)
    0.008
    """
    return epsilon * r / abs(velocity_proper(r, rs, c))


# ============================================================================
# Core integration functions
# ============================================================================

def _check_preconditions(body: Body, elapsed: Optional[float]) -> None:
    if not np.isfinite(body.r) or body.r <= 0:
        raise PreconditionError(
            f"Body {body.index}: integrator entered with invalid radius r={body.r}"
        )
    if elapsed is not None and (not np.isfinite(elapsed) or elapsed < 0):
        raise PreconditionError(
            f"Body {body.index}: integrator entered with invalid elapsed={elapsed}"
        )


def step_proper(body: Body, constants: Constants, config: SimConfig) -> float:
    """
    Single adaptive step of the proper-time law. Body is modified IN-PLACE.

    Updates r, v, tau and the coordinate clock t (t advances by
    dtau / dilation, so the distant clock runs ahead near the horizon).

    Returns
    -------
    dtau : float
        Proper-time step that was taken [s].
    """
    rs, c = constants.rs, constants.c

    v = velocity_proper(body.r, rs, c)
    dtau = config.epsilon * body.r / abs(v)
    dilation = time_dilation_factor(body.r, rs, config.dilation_floor)

    body.r = max(body.r + v * dtau, horizon_floor_radius(constants, config))
    body.v = float(v)
    body.tau += dtau
    body.t += dtau / float(dilation)

    return dtau


def step_coordinate(body: Body, dt: float, constants: Constants, config: SimConfig) -> float:
    """
    Single fixed step of the external-observer law. Body is modified IN-PLACE.

    Updates r, v, the coordinate clock t, and tau (tau advances by
    dt * dilation, so the comoving clock runs slow near the horizon).

    Returns
    -------
    dt : float
        Coordinate-time step that was taken [s].
    """
    rs, c = constants.rs, constants.c

    v = velocity_coordinate(body.r, rs, c)
    dilation = time_dilation_factor(body.r, rs, config.dilation_floor)

    body.r = max(body.r + v * dt, horizon_floor_radius(constants, config))
    body.v = float(v)
    body.t += dt
    body.tau += dt * float(dilation)

    return dt


def advance(
    body: Body,
    elapsed: Optional[float],
    constants: Constants,
    config: SimConfig,
) -> float:
    """
    Advance one body by one tick using the configured velocity law.

    Parameters
    ----------
    body : Body
        Body to integrate. Modified IN-PLACE.
    elapsed : float or None
        Tick duration. The proper-time law always takes exactly one adaptive
        step and only validates it. The coordinate law integrates `elapsed`
        of coordinate time in fixed sub-steps of `config.step` (the last one
        partial); None means one nominal step.
    constants : Constants
        Simulation constants (rs, c).
    config : SimConfig
        Engine configuration (velocity law, epsilon, step, floors).

    Returns
    -------
    float
        Time increment used (dtau or total dt), for the tidal model.

    Raises
    ------
    PreconditionError
        If body.r is non-finite or non-positive, or elapsed is invalid.
        This is a caller defect and is never retried.

    Examples
    --------
    >>> cfg = SimConfig(mass_solar=10.0, epsilon=1e-3)
    >>> const = cfg.constants()
    >>> body = Body(index=0, offset=[0, 0, 0], r=4 * const.rs)
    >>> dtau = advance(body, None, const, cfg)
    >>> body.r / const.rs
    3.996
    """
    _check_preconditions(body, elapsed)

    if config.velocity_law is VelocityLaw.PROPER:
        return step_proper(body, constants, config)

    total = config.step if elapsed is None else float(elapsed)
    remaining = total
    while remaining > 0.0:
        h = min(config.step, remaining)
        step_coordinate(body, h, constants, config)
        remaining -= h
        # guard against float residue leaving a sliver step
        if remaining < 1e-12 * config.step:
            break

    return total
