"""
Default Bodies and Constants
============================

Physical parameters of common central bodies, a standard exponential
atmosphere and a few constants used throughout the package.

Values taken from Vallado, Fundamentals of Astrodynamics, Fifth Edition, 2022,
Appendix D. All quantities are SI (m, m^3/s^2, rad/s).

Bodies are plain configuration objects: force models receive the body they
act for explicitly, there is no global registry.
"""
from dataclasses import dataclass
from typing import Optional

# Dates are seconds elapsed since the J2000 reference epoch
J2000_EPOCH = 0.0

# Standard gravity used to convert specific impulse into mass flow [m/s^2]
G0_STANDARD_GRAVITY = 9.80665

# Default inertial frame label
DEFAULT_FRAME = "EME2000"


@dataclass(frozen=True)
class BodyParams:
    """
    Immutable parameters for a celestial body.

    Attributes
    ----------
    mu : float
        Gravitational parameter [m^3/s^2]
    radius : float
        Equatorial radius [m]
    J2 : float, optional
        J2 zonal harmonic coefficient [dimensionless]
        Required by the J2 perturbation
    rotation_rate : float, optional
        Angular rotation rate [rad/s]
        Required by atmospheric drag
    name : str, optional
        Body identifier
    """
    mu: float
    radius: float
    J2: Optional[float] = None
    rotation_rate: Optional[float] = None
    name: Optional[str] = None

    def __post_init__(self):
        if self.mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {self.mu}")
        if self.radius <= 0:
            raise ValueError(f"Radius must be positive, got {self.radius}")
        if self.J2 is not None and abs(self.J2) > 1:
            raise ValueError(f"J2 coefficient seems unrealistic: {self.J2}")


@dataclass(frozen=True)
class AtmoParams:
    """
    Immutable parameters for exponential atmosphere model.

    The density profile follows: rho(r) = rho0 * exp(-(r - r0)/H)

    Attributes
    ----------
    rho0 : float
        Reference density at reference radius [kg/m^3]
    H : float
        Scale height [m]
    r0 : float
        Reference radius (where rho0 is defined) [m]
    """
    rho0: float
    H: float
    r0: float

    def __post_init__(self):
        if self.rho0 <= 0:
            raise ValueError(f"Reference density must be positive, got {self.rho0}")
        if self.H <= 0:
            raise ValueError(f"Scale height must be positive, got {self.H}")
        if self.r0 <= 0:
            raise ValueError(f"Reference radius must be positive, got {self.r0}")


EARTH = BodyParams(
    mu=3.986004415e14,
    radius=6378136.3,
    J2=1.0826269e-3,
    rotation_rate=7.2921150e-5,
    name='Earth'
)

MOON = BodyParams(
    mu=4.902799e12,
    radius=1738000.0,
    J2=2.027e-4,
    rotation_rate=2.661700e-6,
    name='Moon'
)

MARS = BodyParams(
    mu=4.305e13,
    radius=3397200.0,
    J2=1.964e-3,
    rotation_rate=7.0882181e-5,
    name='Mars'
)

# Standard atmosphere for preliminary LEO analysis
EARTH_STD_ATMO = AtmoParams(
    rho0=1.225,
    H=8500.0,
    r0=6378137.0
)

EARTH_MU = EARTH.mu
