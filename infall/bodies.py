"""Body dataclass for the infall engine.

A Body is one element of the lattice that subdivides the falling object.
Each element falls radially and independently (there is no coupling
between elements). It holds:
- Identity (index) and a fixed lattice offset (3D vector, set at creation)
- Radial coordinate r and the proper/coordinate time accumulators tau, t
- Stretch factor (>= 1) visualising tidal deformation
- Opacity in [0, 1], derived from gravitational time dilation
- Alive flag; once it drops, the physical fields freeze until reset

Bodies are plain records stored in a flat list owned by the Simulation and
mutated in place by the integrator and tidal model during a tick.
"""

from dataclasses import dataclass
from typing import Optional
import numpy as np


# Death causes recorded on a body when it leaves the ALIVE state
HORIZON = "horizon"
FACE_CROSSING = "face_crossing"
REDSHIFT = "redshift"
DESPAWN = "despawn"


@dataclass
class Body:
    """One simulated element of the falling body.

    Attributes
    ----------
    index : int
        Position of this element in the simulation's body list.
    offset : np.ndarray
        Lattice offset from the body centre [m], shape (3,). Immutable.
    r : float
        Radial coordinate [m].
    r0 : float
        Radius assigned at the last reset [m].
    tau : float
        Proper time accumulated since the last reset [s].
    t : float
        Coordinate (distant-observer) time accumulated since reset [s].
    v : float
        Radial velocity from the last integration step [m/s], negative inward.
    stretch : float
        Dimensionless radial stretch factor, >= 1.
    opacity : float
        Derived opacity in [0, 1].
    alive : bool
        False once the element has been absorbed or removed.
    death_cause : str or None
        One of HORIZON, FACE_CROSSING, REDSHIFT, DESPAWN once dead.
    death_tick : int or None
        Simulation tick at which the element died.

    Examples
    --------
    >>> body = Body(index=0, offset=[0.0, 0.0, 0.0], r=1.2e5)
    >>> print(body)
    Body 0: ALIVE r=1.200e+05 m, tau=0.000e+00 s, stretch=1.000, opacity=1.000
      offset = [0.000e+00, 0.000e+00, 0.000e+00]
    """

    index: int
    offset: np.ndarray
    r: float
    r0: Optional[float] = None
    tau: float = 0.0
    t: float = 0.0
    v: float = 0.0
    stretch: float = 1.0
    opacity: float = 1.0
    alive: bool = True
    death_cause: Optional[str] = None
    death_tick: Optional[int] = None

    def __post_init__(self):
        """Validate body parameters and freeze the lattice offset."""
        offset = np.array(self.offset, dtype=float)
        if offset.shape != (3,):
            raise ValueError(f"Offset must have shape (3,), got {offset.shape}")
        offset.flags.writeable = False
        self.offset = offset

        if not np.isfinite(self.r) or self.r <= 0:
            raise ValueError(f"Radius r must be positive, got {self.r}")
        if self.r0 is None:
            self.r0 = self.r
        if self.stretch < 1.0:
            raise ValueError(f"Stretch must be >= 1, got {self.stretch}")

    def reinitialize(self, r0: float) -> None:
        """Put the element back into its initial ALIVE state at radius r0."""
        self.r = r0
        self.r0 = r0
        self.tau = 0.0
        self.t = 0.0
        self.v = 0.0
        self.stretch = 1.0
        self.opacity = 1.0
        self.alive = True
        self.death_cause = None
        self.death_tick = None

    def kill(self, cause: str, tick: int) -> None:
        """Transition ALIVE -> DEAD. No effect on an already dead body."""
        if not self.alive:
            return
        self.alive = False
        self.opacity = 0.0
        self.death_cause = cause
        self.death_tick = tick

    @property
    def offset_magnitude(self) -> float:
        return float(np.linalg.norm(self.offset))

    def state_tuple(self) -> tuple:
        """Physical and derived state as a tuple (for comparisons and export)."""
        return (
            self.index, self.r, self.r0, self.tau, self.t, self.v,
            self.stretch, self.opacity, self.alive, self.death_cause, self.death_tick,
        )

    def __str__(self) -> str:
        status = "ALIVE" if self.alive else f"DEAD ({self.death_cause})"
        lines = [
            f"Body {self.index}: {status} r={self.r:.3e} m, tau={self.tau:.3e} s, "
            f"stretch={self.stretch:.3f}, opacity={self.opacity:.3f}"
        ]
        lines.append(
            f"  offset = [{self.offset[0]:.3e}, {self.offset[1]:.3e}, {self.offset[2]:.3e}]"
        )
        return "\n".join(lines)

    def __repr__(self) -> str:
        return (
            f"Body(index={self.index!r}, offset={self.offset!r}, r={self.r!r}, "
            f"tau={self.tau!r}, stretch={self.stretch!r}, alive={self.alive!r})"
        )
