"""Diagnostics module for the infall engine.

This module provides derived quantities that are not part of the state
machine itself but are needed to read it or to check it:

- Opacity from the gravitational time dilation factor
- Analytic proper time of radial infall from r0 to the horizon
- Speed of the body as a fraction of c under either velocity law
- Population summary (alive/dead counts, death causes, extremes)

Physics reference:
For radial free fall from rest at infinity, dr/dtau = -c*sqrt(rs/r)
integrates to

    tau(r0 -> r) = (2 / 3) * (rs / c) * ((r0/rs)^(3/2) - (r/rs)^(3/2))

which is finite at r = rs: the comoving clock crosses the horizon in finite
proper time, while the distant observer never sees it happen.
"""

from collections import Counter
from typing import Dict, List
import numpy as np

from infall.config import VelocityLaw
from infall.dynamics import velocity_proper, velocity_coordinate


def opacity_from_dilation(dilation, cutoff: float):
    """Map a time-dilation factor to opacity.

    Formula:
        opacity = clip((D - cutoff) / (1 - cutoff), 0, 1)

    Equal to the dilation factor D when cutoff is 0, and reaches 0 exactly
    where the redshift fade-out condition D < cutoff begins.

    Parameters
    ----------
    dilation : float or ndarray
        Time dilation factor(s) in [0, 1].
    cutoff : float
        Visibility cutoff in [0, 1).

    Returns
    -------
    float or ndarray
        Opacity in [0, 1].

    Examples
    --------
    >>> float(opacity_from_dilation(0.5, 0.0))
    0.5
    >>> float(opacity_from_dilation(0.04, 0.05))
    0.0
    """
    return np.clip((np.asarray(dilation, dtype=float) - cutoff) / (1.0 - cutoff), 0.0, 1.0)


def proper_fall_time(r0: float, rs: float, c: float, r: float = None) -> float:
    """Analytic proper time of radial infall from r0 down to r (default: rs).

    Parameters
    ----------
    r0 : float
        Start radius [m], r0 >= r.
    rs : float
        Schwarzschild radius [m].
    c : float
        Speed of light [m/s].
    r : float, optional
        End radius [m] (default: rs).

    Returns
    -------
    float
        Proper time [s].

    Examples
    --------
    >>> proper_fall_time(4.0, 1.0, 1.0)
    4.666666666666666
    """
    if r is None:
        r = rs
    return (2.0 / 3.0) * (rs / c) * ((r0 / rs) ** 1.5 - (r / rs) ** 1.5)


def speed_fraction(r, rs: float, c: float, law: VelocityLaw):
    """Infall speed |dr/d(clock)| / c for the given velocity law.

    Always in [0, 1) outside the horizon. Under the proper-time law it grows
    toward 1 as r -> rs; under the coordinate law it falls back toward 0.
    """
    if VelocityLaw(law) is VelocityLaw.PROPER:
        return np.abs(velocity_proper(r, rs, c)) / c
    return np.abs(velocity_coordinate(r, rs, c)) / c


def population_summary(bodies: List, rs: float) -> Dict:
    """Summary statistics of a body population.

    Parameters
    ----------
    bodies : List[Body]
        Bodies of one simulation.
    rs : float
        Schwarzschild radius [m].

    Returns
    -------
    summary : dict
        - 'n_bodies', 'n_alive', 'n_dead'
        - 'death_causes': count per cause
        - 'min_r_rs': smallest radius in rs (all bodies)
        - 'max_stretch': largest stretch factor
        - 'mean_opacity_alive': mean opacity of living bodies (0 if none)
        - 'max_tau': largest proper time accumulated
    """
    n = len(bodies)
    alive = [b for b in bodies if b.alive]
    causes = Counter(b.death_cause for b in bodies if not b.alive)

    return {
        'n_bodies': n,
        'n_alive': len(alive),
        'n_dead': n - len(alive),
        'death_causes': dict(causes),
        'min_r_rs': min(b.r for b in bodies) / rs if n else None,
        'max_stretch': max(b.stretch for b in bodies) if n else None,
        'mean_opacity_alive': float(np.mean([b.opacity for b in alive])) if alive else 0.0,
        'max_tau': max(b.tau for b in bodies) if n else None,
    }
