"""Physical constants for the infall engine.

This module defines the immutable set of constants a simulation is built
from: the gravitational constant G, the speed of light c and the black-hole
mass M. The only derived quantity is the Schwarzschild radius

    rs = 2 * G * M / c**2

which is the event-horizon radius of a non-rotating black hole and sets
the length scale for everything else (start radius, horizon floor,
render mapping).
"""

from dataclasses import dataclass, field
import numpy as np

from infall.errors import ConfigurationError

# SI values
G_SI = 6.67430e-11          # m^3 / (kg s^2)
C_SI = 299792458.0          # m / s
SOLAR_MASS = 1.98847e30     # kg


def schwarzschild_radius(mass: float, G: float = G_SI, c: float = C_SI) -> float:
    """Event-horizon radius rs = 2*G*M/c^2.

    Parameters
    ----------
    mass : float
        Black-hole mass [kg].
    G : float, optional
        Gravitational constant (default: SI value).
    c : float, optional
        Speed of light (default: SI value).

    Returns
    -------
    float
        Schwarzschild radius [m].

    Raises
    ------
    ConfigurationError
        If mass, G or c is not a positive finite number.

    Examples
    --------
    >>> rs = schwarzschild_radius(10 * SOLAR_MASS)
    >>> print(f"{rs:.0f} m")
    29533 m
    """
    for name, value in (("mass", mass), ("G", G), ("c", c)):
        if not np.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be positive and finite, got {value}")
    return 2.0 * G * mass / (c * c)


@dataclass(frozen=True)
class Constants:
    """Constants of one simulation, fixed at construction.

    Attributes
    ----------
    mass : float
        Black-hole mass [kg].
    G : float
        Gravitational constant [m^3 kg^-1 s^-2].
    c : float
        Speed of light [m/s].
    rs : float
        Schwarzschild radius [m], derived in __post_init__.

    Examples
    --------
    >>> const = Constants.from_solar_masses(10.0)
    >>> print(const)
    Constants(M=1.988e+31 kg, G=6.674e-11, c=2.998e+08, rs=2.953e+04 m)
    """

    mass: float
    G: float = G_SI
    c: float = C_SI
    rs: float = field(init=False)

    def __post_init__(self):
        # frozen dataclass: derived field goes through object.__setattr__
        object.__setattr__(self, "rs", schwarzschild_radius(self.mass, self.G, self.c))

    @classmethod
    def from_solar_masses(cls, mass_solar: float, G: float = G_SI, c: float = C_SI) -> "Constants":
        """Build constants for a hole of `mass_solar` solar masses."""
        return cls(mass=mass_solar * SOLAR_MASS, G=G, c=c)

    @property
    def mass_solar(self) -> float:
        return self.mass / SOLAR_MASS

    @property
    def GM(self) -> float:
        """Gravitational parameter G*M [m^3/s^2]."""
        return self.G * self.mass

    def __str__(self) -> str:
        return (
            f"Constants(M={self.mass:.3e} kg, G={self.G:.3e}, "
            f"c={self.c:.3e}, rs={self.rs:.3e} m)"
        )
