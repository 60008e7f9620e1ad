"""
Integration tolerances derived from a position accuracy.

The absolute tolerance of each orbit parameter is the error induced on it
by a Cartesian error of ``dP`` on each position coordinate and ``dV`` on
each velocity coordinate, mapped through the Jacobian of the parameters
with respect to Cartesian coordinates.
"""

import numpy as np

from .config import config
from .orbital_elements import (AngleType, OrbitalElements, OrbitType,
                               jacobian_wrt_cartesian)


def tolerances(position_accuracy, orbit, orbit_type, angle_type=AngleType.TRUE,
               velocity_accuracy=None):
    """
    Estimate integrator tolerances for a required position accuracy.

    Parameters
    ----------
    position_accuracy : float
        Desired position error dP [m]
    orbit : OrbitalElements
        Reference orbit (any type)
    orbit_type : OrbitType or str
        Type of the parameters that will be integrated
    angle_type : AngleType or str, optional
        Angle type of the integrated parameters (default TRUE)
    velocity_accuracy : float, optional
        Desired velocity error dV [m/s]. Defaults to the Keplerian estimate
        mu * dP / (v * r^2)

    Returns
    -------
    abs_tol : np.ndarray
        7 absolute tolerances (6 orbit parameters then mass)
    rel_tol : np.ndarray
        7 relative tolerances

    Raises
    ------
    SingularJacobianError
        If orbit_type parameters are singular at this orbit
    """
    orbit_type = OrbitalElements._parse_orbit_type(orbit_type)
    angle_type = OrbitalElements._parse_angle_type(angle_type)
    d_p = float(position_accuracy)
    if d_p <= 0:
        raise ValueError(f"Position accuracy must be positive, got {d_p}")

    r = np.linalg.norm(orbit.position)
    v = np.linalg.norm(orbit.velocity)
    if velocity_accuracy is None:
        d_v = orbit.mu * d_p / (v * r * r)
    else:
        d_v = float(velocity_accuracy)

    abs_tol = np.empty(7)
    if orbit_type == OrbitType.CARTESIAN:
        abs_tol[:3] = d_p
        abs_tol[3:6] = d_v
    else:
        jacobian = jacobian_wrt_cartesian(orbit, orbit_type, angle_type)
        d_pv = np.array([d_p, d_p, d_p, d_v, d_v, d_v])
        abs_tol[:6] = np.abs(jacobian) @ d_pv
    abs_tol[6] = config.DEFAULT_MASS_TOLERANCE

    rel_tol = np.full(7, d_p / r)
    return abs_tol, rel_tol
