'''Orbital state representation for the Dromos propagation package
OrbitalElements class definition, orbit/angle types and conversion kernels'''

from enum import Enum
from functools import partial

import jax
import jax.numpy as jnp
import numpy as np

from .config import config
from .defaults import DEFAULT_FRAME, EARTH_MU, J2000_EPOCH
from .errors import HyperbolicOrbitError, SingularJacobianError, validation_error


# define enumerated lists of orbit parameterizations and angle kinds
class OrbitType(Enum):
    CARTESIAN = 'cart'      # [x;y;z;vx;vy;vz]
    KEPLERIAN = 'kep'       # [a;e;i;raan;argp;anomaly]
    CIRCULAR = 'circ'       # [a;ex;ey;i;raan;alpha]
    EQUINOCTIAL = 'equi'    # [a;ex;ey;hx;hy;lambda]


class AngleType(Enum):
    TRUE = 'true'
    MEAN = 'mean'
    ECCENTRIC = 'eccentric'


# column names used by DataFrame exports, keyed by orbit type
COMPONENT_NAMES = {
    OrbitType.CARTESIAN: ('x', 'y', 'z', 'vx', 'vy', 'vz'),
    OrbitType.KEPLERIAN: ('a', 'e', 'i', 'raan', 'argp', 'anomaly'),
    OrbitType.CIRCULAR: ('a', 'ex', 'ey', 'i', 'raan', 'alpha'),
    OrbitType.EQUINOCTIAL: ('a', 'ex', 'ey', 'hx', 'hy', 'lambda'),
}


# ========== ANGLE CONVERSIONS ==========
# Longitude helpers take the eccentricity vector components and work for
# Keplerian anomalies (ex=e, ey=0), circular latitude arguments and
# equinoctial longitudes alike. xp selects numpy or jax.numpy.
def _true_to_eccentric(lv, ex, ey, xp=np):
    epsilon = xp.sqrt(1 - ex * ex - ey * ey)
    cos_lv = xp.cos(lv)
    sin_lv = xp.sin(lv)
    num = ey * cos_lv - ex * sin_lv
    den = epsilon + 1 + ex * cos_lv + ey * sin_lv
    return lv + 2 * xp.arctan(num / den)


def _eccentric_to_true(le, ex, ey, xp=np):
    epsilon = xp.sqrt(1 - ex * ex - ey * ey)
    cos_le = xp.cos(le)
    sin_le = xp.sin(le)
    num = ex * sin_le - ey * cos_le
    den = epsilon + 1 - ex * cos_le - ey * sin_le
    return le + 2 * xp.arctan(num / den)


def _eccentric_to_mean(le, ex, ey, xp=np):
    return le - ex * xp.sin(le) + ey * xp.cos(le)


def _mean_to_eccentric(lm, ex, ey):
    """Solve the generalized Kepler equation with Newton iterations."""
    le = lm + ex * np.sin(lm) - ey * np.cos(lm)
    for _ in range(50):
        cos_le = np.cos(le)
        sin_le = np.sin(le)
        f = le - ex * sin_le + ey * cos_le - lm
        fp = 1 - ex * cos_le - ey * sin_le
        delta = f / fp
        le = le - delta
        if abs(delta) <= 1e-15 * max(1.0, abs(le)):
            break
    return le


def _hyperbolic_true_to_eccentric(nu, e, xp=np):
    return xp.arcsinh(xp.sqrt(e * e - 1) * xp.sin(nu) / (1 + e * xp.cos(nu)))


def _hyperbolic_eccentric_to_true(H, e):
    return 2 * np.arctan(np.sqrt((e + 1) / (e - 1)) * np.tanh(H / 2))


def _hyperbolic_mean_to_eccentric(M, e):
    """Solve M = e sinh(H) - H with Newton iterations."""
    H = np.arcsinh(M / e)
    for _ in range(50):
        f = e * np.sinh(H) - H - M
        fp = e * np.cosh(H) - 1
        delta = f / fp
        H = H - delta
        if abs(delta) <= 1e-15 * max(1.0, abs(H)):
            break
    return H


def _anomaly_from_true(nu, e, angle_type, hyperbolic, xp=np):
    """Convert a true anomaly to the requested angle type."""
    if angle_type == AngleType.TRUE:
        return nu
    if hyperbolic:
        H = _hyperbolic_true_to_eccentric(nu, e, xp)
        if angle_type == AngleType.ECCENTRIC:
            return H
        return e * xp.sinh(H) - H
    E = _true_to_eccentric(nu, e, 0.0, xp)
    if angle_type == AngleType.ECCENTRIC:
        return E
    return _eccentric_to_mean(E, e, 0.0, xp)


def _true_anomaly(anomaly, e, angle_type, hyperbolic):
    """Convert an anomaly of the given angle type to a true anomaly."""
    if angle_type == AngleType.TRUE:
        return anomaly
    if hyperbolic:
        if angle_type == AngleType.MEAN:
            anomaly = _hyperbolic_mean_to_eccentric(anomaly, e)
        return _hyperbolic_eccentric_to_true(anomaly, e)
    if angle_type == AngleType.MEAN:
        anomaly = _mean_to_eccentric(anomaly, e, 0.0)
    return _eccentric_to_true(anomaly, e, 0.0)


def _longitude_from_true(lv, ex, ey, angle_type, xp=np):
    if angle_type == AngleType.TRUE:
        return lv
    le = _true_to_eccentric(lv, ex, ey, xp)
    if angle_type == AngleType.ECCENTRIC:
        return le
    return _eccentric_to_mean(le, ex, ey, xp)


def _eccentric_longitude(longitude, ex, ey, angle_type):
    if angle_type == AngleType.ECCENTRIC:
        return longitude
    if angle_type == AngleType.TRUE:
        return _true_to_eccentric(longitude, ex, ey)
    return _mean_to_eccentric(longitude, ex, ey)


# ========== CARTESIAN -> ELEMENTS (jax kernels) ==========
def _keplerian_from_pv(pv, mu, angle_type, hyperbolic):
    """
    Convert Cartesian state vector to Keplerian elements.
    Uses algorithm from Flores & Fantino, Advances in Space Research, v.75,pp.4910
    """
    rvec = pv[:3]
    vvec = pv[3:]
    r_mag = jnp.linalg.norm(rvec)
    # angular momentum vector h = r x v
    hvec = jnp.cross(rvec, vvec)
    i = jnp.arctan2(jnp.sqrt(hvec[0]**2 + hvec[1]**2), hvec[2])
    raan = jnp.arctan2(hvec[0], -hvec[1])
    # line of nodes and an intermediate vector b in the orbit plane
    nhat = jnp.array([jnp.cos(raan), jnp.sin(raan), 0.0])
    bhat = jnp.cross(hvec / jnp.linalg.norm(hvec), nhat)
    # semimajor axis from energy equation (negative for hyperbolic orbits)
    a = 1.0 / ((2.0 / r_mag) - (jnp.dot(vvec, vvec) / mu))
    evec = jnp.cross(vvec, hvec) / mu - rvec / r_mag
    e = jnp.linalg.norm(evec)
    argp = jnp.arctan2(jnp.dot(evec, bhat), jnp.dot(evec, nhat))
    nu = jnp.arctan2(jnp.dot(rvec, bhat), jnp.dot(rvec, nhat)) - argp
    nu = jnp.arctan2(jnp.sin(nu), jnp.cos(nu))
    anomaly = _anomaly_from_true(nu, e, angle_type, hyperbolic, jnp)
    return jnp.stack([a, e, i, raan, argp, anomaly])


def _equinoctial_from_pv_true(pv, mu):
    """Equinoctial elements with true longitude, prograde formulation."""
    rvec = pv[:3]
    vvec = pv[3:]
    r_mag = jnp.linalg.norm(rvec)
    v2 = jnp.dot(vvec, vvec)
    rv2_over_mu = r_mag * v2 / mu
    a = r_mag / (2 - rv2_over_mu)
    # inclination vector from the unit angular momentum
    w = jnp.cross(rvec, vvec)
    w = w / jnp.linalg.norm(w)
    d = 1.0 / (1 + w[2])
    hx = -d * w[1]
    hy = d * w[0]
    # true longitude
    cos_lv = (rvec[0] - d * rvec[2] * w[0]) / r_mag
    sin_lv = (rvec[1] - d * rvec[2] * w[1]) / r_mag
    lv = jnp.arctan2(sin_lv, cos_lv)
    # eccentricity vector
    e_sin_e = jnp.dot(rvec, vvec) / jnp.sqrt(mu * a)
    e_cos_e = rv2_over_mu - 1
    e2 = e_cos_e * e_cos_e + e_sin_e * e_sin_e
    f = e_cos_e - e2
    g = jnp.sqrt(1 - e2) * e_sin_e
    ex = a * (f * cos_lv + g * sin_lv) / r_mag
    ey = a * (f * sin_lv - g * cos_lv) / r_mag
    return a, ex, ey, hx, hy, lv


def _equinoctial_from_pv(pv, mu, angle_type):
    a, ex, ey, hx, hy, lv = _equinoctial_from_pv_true(pv, mu)
    lam = _longitude_from_true(lv, ex, ey, angle_type, jnp)
    return jnp.stack([a, ex, ey, hx, hy, lam])


def _circular_from_pv(pv, mu, angle_type):
    a, ex, ey, hx, hy, lv = _equinoctial_from_pv_true(pv, mu)
    raan = jnp.arctan2(hy, hx)
    i = 2 * jnp.arctan(jnp.sqrt(hx * hx + hy * hy))
    cos_raan = jnp.cos(raan)
    sin_raan = jnp.sin(raan)
    # eccentricity vector expressed from the ascending node
    ex_c = ex * cos_raan + ey * sin_raan
    ey_c = ey * cos_raan - ex * sin_raan
    alpha_v = lv - raan
    alpha = _longitude_from_true(alpha_v, ex_c, ey_c, angle_type, jnp)
    return jnp.stack([a, ex_c, ey_c, i, raan, alpha])


def _elements_from_pv(pv, mu, orbit_type, angle_type, hyperbolic):
    if orbit_type == OrbitType.CARTESIAN:
        return pv
    if orbit_type == OrbitType.KEPLERIAN:
        return _keplerian_from_pv(pv, mu, angle_type, hyperbolic)
    if orbit_type == OrbitType.CIRCULAR:
        return _circular_from_pv(pv, mu, angle_type)
    return _equinoctial_from_pv(pv, mu, angle_type)


_STATIC_ARGS = ("orbit_type", "angle_type", "hyperbolic")

_elements_from_pv_jit = jax.jit(_elements_from_pv, static_argnames=_STATIC_ARGS)


def _elements_jacobian(pv, mu, orbit_type, angle_type, hyperbolic):
    # d(elements)/d(pv), 6x6
    convert = partial(_elements_from_pv, mu=mu, orbit_type=orbit_type,
                      angle_type=angle_type, hyperbolic=hyperbolic)
    return jax.jacfwd(convert)(pv)


_elements_jacobian_jit = jax.jit(_elements_jacobian, static_argnames=_STATIC_ARGS)


# ========== ELEMENTS -> CARTESIAN (numpy) ==========
def _keplerian_to_pv(elements, mu, angle_type):
    """Convert Keplerian elements to Cartesian state vector."""
    a, e, i, raan, argp, anomaly = elements
    nu = _true_anomaly(anomaly, e, angle_type, e > 1)
    # semi-latus rectum
    p = a * (1 - e**2)
    # position and velocity in perifocal frame
    r_mag = p / (1 + e * np.cos(nu))
    rvec = np.array([r_mag * np.cos(nu), r_mag * np.sin(nu), 0.0])
    vvec = np.array([-np.sqrt(mu / p) * np.sin(nu),
                     np.sqrt(mu / p) * (e + np.cos(nu)), 0.0])
    # rotate from perifocal frame to inertial frame using DCM
    cos_o, sin_o = np.cos(raan), np.sin(raan)
    cos_i, sin_i = np.cos(i), np.sin(i)
    cos_w, sin_w = np.cos(argp), np.sin(argp)
    R3_raan = np.array([[cos_o, -sin_o, 0.0], [sin_o, cos_o, 0.0], [0.0, 0.0, 1.0]])
    R1_i = np.array([[1.0, 0.0, 0.0], [0.0, cos_i, -sin_i], [0.0, sin_i, cos_i]])
    R3_w = np.array([[cos_w, -sin_w, 0.0], [sin_w, cos_w, 0.0], [0.0, 0.0, 1.0]])
    DCM = R3_raan @ R1_i @ R3_w
    return np.concatenate([DCM @ rvec, DCM @ vvec])


def _equinoctial_to_pv(elements, mu, angle_type):
    """
    Convert equinoctial elements to Cartesian state vector.
    Uses the prograde formulation (singularity at i = 180 deg).
    """
    a, ex, ey, hx, hy, lam = elements
    le = _eccentric_longitude(lam, ex, ey, angle_type)
    # inclination related intermediate parameters
    hx2 = hx * hx
    hy2 = hy * hy
    h2p1 = 1 + hx2 + hy2
    # eccentricity related intermediate parameters
    ex2 = ex * ex
    ey2 = ey * ey
    exey = ex * ey
    beta = 1 / (1 + np.sqrt(1 - ex2 - ey2))
    cos_le = np.cos(le)
    sin_le = np.sin(le)
    ex_ce_ey_se = ex * cos_le + ey * sin_le
    # coordinates of position and velocity in the orbital plane
    x = a * ((1 - beta * ey2) * cos_le + beta * exey * sin_le - ex)
    y = a * ((1 - beta * ex2) * sin_le + beta * exey * cos_le - ey)
    factor = np.sqrt(mu / a) / (1 - ex_ce_ey_se)
    xdot = factor * (-sin_le + beta * ey * ex_ce_ey_se)
    ydot = factor * (cos_le - beta * ex * ex_ce_ey_se)
    # orbital plane basis vectors
    u = np.array([1 + hx2 - hy2, 2 * hx * hy, -2 * hy]) / h2p1
    v = np.array([2 * hx * hy, 1 - hx2 + hy2, 2 * hx]) / h2p1
    return np.concatenate([x * u + y * v, xdot * u + ydot * v])


def _circular_to_equinoctial(elements):
    a, ex_c, ey_c, i, raan, alpha = elements
    cos_raan = np.cos(raan)
    sin_raan = np.sin(raan)
    tan_half_i = np.tan(i / 2)
    return np.array([a,
                     ex_c * cos_raan - ey_c * sin_raan,
                     ex_c * sin_raan + ey_c * cos_raan,
                     tan_half_i * cos_raan,
                     tan_half_i * sin_raan,
                     alpha + raan])


def _elements_to_pv(elements, mu, orbit_type, angle_type):
    if orbit_type == OrbitType.CARTESIAN:
        return np.array(elements, dtype=float)
    if orbit_type == OrbitType.KEPLERIAN:
        return _keplerian_to_pv(elements, mu, angle_type)
    if orbit_type == OrbitType.CIRCULAR:
        return _equinoctial_to_pv(_circular_to_equinoctial(elements), mu, angle_type)
    return _equinoctial_to_pv(elements, mu, angle_type)


def _is_hyperbolic_pv(pv, mu):
    r = np.linalg.norm(pv[:3])
    return 0.5 * np.dot(pv[3:], pv[3:]) - mu / r > 0


# ========== KEPLERIAN MOTION ==========
def kepler_rates(elements, orbit_type, angle_type, mu):
    """
    Time derivative of orbit parameters under pure Keplerian motion.

    For all types but Cartesian only the last component (anomaly or
    longitude) moves; the five others have an exactly zero rate.

    Parameters
    ----------
    elements : np.ndarray
        6-element array in the given orbit/angle type
    orbit_type : OrbitType
    angle_type : AngleType
    mu : float
        Central attraction coefficient [m^3/s^2]

    Returns
    -------
    np.ndarray
        6-element derivative array
    """
    rates = np.zeros(6)
    if orbit_type == OrbitType.CARTESIAN:
        r = elements[:3]
        r_mag = np.linalg.norm(r)
        rates[:3] = elements[3:]
        rates[3:] = -mu * r / r_mag**3
        return rates

    a = elements[0]
    if orbit_type == OrbitType.KEPLERIAN:
        e = elements[1]
        e_cos = e * np.cos(elements[5])
        e_sin = e * np.sin(elements[5])
        e2 = e * e
    else:
        ex, ey = elements[1], elements[2]
        e_cos = ex * np.cos(elements[5]) + ey * np.sin(elements[5])
        e_sin = ex * np.sin(elements[5]) - ey * np.cos(elements[5])
        e2 = ex * ex + ey * ey

    n = np.sqrt(mu / abs(a)**3)
    if angle_type == AngleType.MEAN:
        rates[5] = n
    elif e2 > 1:
        # hyperbolic Keplerian anomalies (H for eccentric)
        if angle_type == AngleType.ECCENTRIC:
            e = elements[1]
            rates[5] = n / (e * np.cosh(elements[5]) - 1)
        else:
            rates[5] = n * (1 + e_cos)**2 / (e2 - 1)**1.5
    elif angle_type == AngleType.ECCENTRIC:
        rates[5] = n / (1 - e_cos)
    else:
        rates[5] = n * (1 + e_cos)**2 / (1 - e2)**1.5
    return rates


# ========== ARRAY MAPPING ==========
def to_array(orbit, orbit_type, angle_type=AngleType.TRUE):
    """
    Express an orbit as a 6-element array of the requested type.

    Returns a copy of the stored elements when the orbit already uses the
    requested orbit/angle pair.
    """
    orbit_type = OrbitalElements._parse_orbit_type(orbit_type)
    angle_type = OrbitalElements._parse_angle_type(angle_type)
    if orbit.orbit_type == orbit_type and (
            orbit_type == OrbitType.CARTESIAN or orbit.angle_type == angle_type):
        return np.array(orbit.elements, dtype=float)
    return _pv_to_elements(orbit.pv, orbit.mu, orbit_type, angle_type)


def to_array_with_derivatives(orbit, orbit_type, angle_type=AngleType.TRUE):
    """
    Express an orbit as an array together with its Keplerian rates.

    Returns
    -------
    elements : np.ndarray
        6-element array in the requested orbit/angle type
    rates : np.ndarray
        Time derivative of each component under pure Keplerian motion
    """
    orbit_type = OrbitalElements._parse_orbit_type(orbit_type)
    angle_type = OrbitalElements._parse_angle_type(angle_type)
    elements = to_array(orbit, orbit_type, angle_type)
    return elements, kepler_rates(elements, orbit_type, angle_type, orbit.mu)


def from_array(array, orbit_type, angle_type=AngleType.TRUE, date=J2000_EPOCH,
               frame=DEFAULT_FRAME, mu=EARTH_MU):
    """Build an orbit from a 6-element array without validation."""
    return OrbitalElements(np.array(array[:6], dtype=float), orbit_type,
                           angle_type=angle_type, date=date, frame=frame,
                           mu=mu, validate=False)


def _pv_to_elements(pv, mu, orbit_type, angle_type):
    if orbit_type == OrbitType.CARTESIAN:
        return np.array(pv, dtype=float)
    hyperbolic = bool(_is_hyperbolic_pv(pv, mu))
    if hyperbolic and orbit_type != OrbitType.KEPLERIAN:
        raise HyperbolicOrbitError(
            f"{orbit_type.name.lower()} parameters cannot represent hyperbolic orbits")
    return np.array(_elements_from_pv_jit(
        jnp.asarray(pv), mu, orbit_type=orbit_type,
        angle_type=angle_type, hyperbolic=hyperbolic), dtype=float)


def elements_jacobian(pv, mu, orbit_type, angle_type):
    """
    Raw Jacobian d(elements)/d(position, velocity) without singularity checks.

    Used inside derivative evaluations where the geometry has already been
    accepted once; callers check the result for finiteness.
    """
    if orbit_type == OrbitType.CARTESIAN:
        return np.eye(6)
    hyperbolic = bool(_is_hyperbolic_pv(pv, mu))
    return np.array(_elements_jacobian_jit(
        jnp.asarray(pv), mu, orbit_type=orbit_type,
        angle_type=angle_type, hyperbolic=hyperbolic), dtype=float)


def _check_geometry(orbit, orbit_type):
    """Reject geometries where the parameters of orbit_type are singular."""
    if orbit_type == OrbitType.CARTESIAN:
        return
    pv = orbit.pv
    rvec, vvec = pv[:3], pv[3:]
    hvec = np.cross(rvec, vvec)
    inc = np.arctan2(np.hypot(hvec[0], hvec[1]), hvec[2])
    if orbit_type == OrbitType.KEPLERIAN:
        evec = np.cross(vvec, hvec) / orbit.mu - rvec / np.linalg.norm(rvec)
        if np.linalg.norm(evec) < config.SNAP_TO_CIRCULAR:
            raise SingularJacobianError(
                "Keplerian parameters are singular for circular orbits")
    if orbit_type in (OrbitType.KEPLERIAN, OrbitType.CIRCULAR):
        if inc < config.SNAP_TO_EQUATORIAL or np.pi - inc < config.SNAP_TO_EQUATORIAL:
            raise SingularJacobianError(
                f"{orbit_type.name.lower()} parameters are singular "
                f"for equatorial orbits")
    if orbit_type == OrbitType.EQUINOCTIAL and np.pi - inc < config.SNAP_TO_EQUATORIAL:
        raise SingularJacobianError(
            "equinoctial parameters are singular for retrograde equatorial orbits")


def jacobian_wrt_cartesian(orbit, orbit_type, angle_type=AngleType.TRUE):
    """
    Jacobian of the orbit parameters with respect to Cartesian coordinates.

    The Jacobian is obtained by forward-mode automatic differentiation of
    the Cartesian to orbit parameters conversion.

    Parameters
    ----------
    orbit : OrbitalElements
        Orbit at which the Jacobian is evaluated (any type)
    orbit_type : OrbitType or str
        Parameters the Jacobian is expressed in
    angle_type : AngleType or str, optional
        Angle type of the last component (default TRUE)

    Returns
    -------
    np.ndarray
        6x6 matrix d(elements)/d(x, y, z, vx, vy, vz)

    Raises
    ------
    SingularJacobianError
        If the parameters are singular at this orbit
    HyperbolicOrbitError
        If the orbit is hyperbolic and the type cannot represent it
    """
    orbit_type = OrbitalElements._parse_orbit_type(orbit_type)
    angle_type = OrbitalElements._parse_angle_type(angle_type)
    _check_geometry(orbit, orbit_type)
    if orbit_type != OrbitType.KEPLERIAN and orbit.is_hyperbolic:
        raise HyperbolicOrbitError(
            f"{orbit_type.name.lower()} parameters cannot represent hyperbolic orbits")
    jacobian = elements_jacobian(orbit.pv, orbit.mu, orbit_type, angle_type)
    if not np.all(np.isfinite(jacobian)):
        raise SingularJacobianError(
            f"{orbit_type.name.lower()} Jacobian is not finite for this orbit")
    return jacobian


def jacobian_of_cartesian(orbit, orbit_type, angle_type=AngleType.TRUE):
    """Jacobian d(x, y, z, vx, vy, vz)/d(elements), inverse of jacobian_wrt_cartesian."""
    return np.linalg.inv(jacobian_wrt_cartesian(orbit, orbit_type, angle_type))


# define basic orbital element class
class OrbitalElements:
    """
    Represents an orbit as six parameters of a given type at a given date.

    The Cartesian representation is expressed in the (inertial) frame
    labelled ``frame`` centered on the attracting body. OrbitalElements is
    immutable, build a new instance to change any value.
    """
    # ========== CONSTRUCTION ==========
    def __init__(self, elements=None, orbit_type=None, angle_type=AngleType.TRUE,
                 date=J2000_EPOCH, frame=DEFAULT_FRAME, mu=None,
                 validate=True, **kwargs):
        """
        Create an orbit.

        Can be called in two ways:

        1. Array-based (fast for propagation):
        OrbitalElements([7.0e6, 0.01, 0.5, 0, 0, 0], 'kep', 'mean')

        2. Named parameters (readable for setup):
        OrbitalElements(a=7.0e6, e=0.01, i=0.5, raan=0, argp=0, nu=0)
        OrbitalElements(x=7.0e6, y=1.0e6, z=4.0e6, vx=-500, vy=8000, vz=1000)

        Parameters
        ----------
        elements : array-like, optional
            6-element array of orbit parameters
        orbit_type : OrbitType or str, optional
            Type of parameters, required if using elements array
        angle_type : AngleType or str, optional
            Kind of the angular component (default TRUE, ignored for Cartesian)
        date : float, optional
            Seconds since J2000 (default J2000_EPOCH)
        frame : str, optional
            Inertial frame label (default 'EME2000')
        mu : float, optional
            Central attraction coefficient [m^3/s^2], defaults to Earth's
        validate : bool, optional
            Whether to validate parameters (default True)
        **kwargs : dict
            Named parameters for the appropriate set
            Keplerian (a, e, i, raan, argp, and one of nu, M, E)
            Cartesian (x, y, z, vx, vy, vz)
            Circular (a, ex, ey, i, raan, and one of alpha_v, alpha_m, alpha_e)
            Equinoctial (a, ex, ey, hx, hy, and one of lv, lm, le)
        """
        self._mu = float(mu) if mu is not None else EARTH_MU
        self._date = float(date)
        self._frame = frame

        if elements is not None:
            self._elements = np.array(elements, dtype=float)
            self._orbit_type = self._parse_orbit_type(orbit_type)
            self._angle_type = self._parse_angle_type(angle_type)
        elif kwargs:
            (self._elements, self._orbit_type,
             self._angle_type) = self._from_named_params(kwargs)
        else:
            raise ValueError(
                "Must provide either:\n"
                "  - elements array and orbit_type, or named parameters: \n"
                "  - (a, e, i, raan, argp, nu|M|E) for Keplerian, or\n"
                "  - (x, y, z, vx, vy, vz) for Cartesian, or\n"
                "  - (a, ex, ey, i, raan, alpha_v|alpha_m|alpha_e) for Circular, or\n"
                "  - (a, ex, ey, hx, hy, lv|lm|le) for Equinoctial"
            )
        if self._orbit_type == OrbitType.CARTESIAN:
            # angle type carries no meaning for Cartesian coordinates
            self._angle_type = AngleType.TRUE
        # Ensure immutability of elements array
        self._elements.flags.writeable = False
        self._pv = None
        self._equinoctial = None
        if validate:
            self._validate()

    # alternate constructors bypassing validation
    @classmethod
    def cartesian(cls, elements, date=J2000_EPOCH, frame=DEFAULT_FRAME, mu=None):
        """Create a Cartesian orbit from [x, y, z, vx, vy, vz] without validation."""
        return cls(elements, OrbitType.CARTESIAN, date=date, frame=frame,
                   mu=mu, validate=False)

    @classmethod
    def keplerian(cls, elements, angle_type=AngleType.TRUE, date=J2000_EPOCH,
                  frame=DEFAULT_FRAME, mu=None):
        """Create a Keplerian orbit from [a, e, i, raan, argp, anomaly] without validation."""
        return cls(elements, OrbitType.KEPLERIAN, angle_type, date=date,
                   frame=frame, mu=mu, validate=False)

    @classmethod
    def circular(cls, elements, angle_type=AngleType.TRUE, date=J2000_EPOCH,
                 frame=DEFAULT_FRAME, mu=None):
        """Create a circular orbit from [a, ex, ey, i, raan, alpha] without validation."""
        return cls(elements, OrbitType.CIRCULAR, angle_type, date=date,
                   frame=frame, mu=mu, validate=False)

    @classmethod
    def equinoctial(cls, elements, angle_type=AngleType.TRUE, date=J2000_EPOCH,
                    frame=DEFAULT_FRAME, mu=None):
        """Create an equinoctial orbit from [a, ex, ey, hx, hy, lambda] without validation."""
        return cls(elements, OrbitType.EQUINOCTIAL, angle_type, date=date,
                   frame=frame, mu=mu, validate=False)

    @classmethod
    def from_pv(cls, position, velocity, orbit_type=OrbitType.CARTESIAN,
                angle_type=AngleType.TRUE, date=J2000_EPOCH,
                frame=DEFAULT_FRAME, mu=None):
        """
        Create an orbit of any type from position and velocity vectors.

        Parameters
        ----------
        position, velocity : array-like
            Cartesian position [m] and velocity [m/s]
        orbit_type, angle_type : optional
            Parameters of the returned orbit (default Cartesian)
        """
        mu = EARTH_MU if mu is None else mu
        pv = np.concatenate([np.asarray(position, dtype=float),
                             np.asarray(velocity, dtype=float)])
        orbit_type = cls._parse_orbit_type(orbit_type)
        angle_type = cls._parse_angle_type(angle_type)
        return cls(_pv_to_elements(pv, mu, orbit_type, angle_type), orbit_type,
                   angle_type, date=date, frame=frame, mu=mu)

    # ========== VALIDATION ==========
    def _validate(self):
        """Check that the parameters conform to their claimed type."""
        if self._elements.shape != (6,):
            raise ValueError("Orbital elements must be 6-element vector")
        if not np.all(np.isfinite(self._elements)):
            raise ValueError("Elements contain NaN or Inf")
        if self._mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {self._mu}")

        if self._orbit_type == OrbitType.CARTESIAN:
            if np.linalg.norm(self._elements[:3]) == 0:
                raise ValueError("Cartesian position cannot be the zero vector")
        elif self._orbit_type == OrbitType.KEPLERIAN:
            self._validate_keplerian()
        else:
            a, ex, ey = self._elements[:3]
            if a <= 0 or ex * ex + ey * ey >= 1:
                raise HyperbolicOrbitError(
                    f"{self._orbit_type.name.lower()} parameters require an "
                    f"elliptic orbit, got a={a}, e={np.hypot(ex, ey)}")
            if self._orbit_type == OrbitType.CIRCULAR:
                inc = self._elements[3]
                if inc < 0 or inc > np.pi:
                    validation_error("Inclination out of range")

    def _validate_keplerian(self):
        a, e, i, raan, argp, anomaly = self._elements
        if e < 0:
            raise ValueError(f"Eccentricity must be non-negative, got {e}")
        if e < 1 and a <= 0:
            raise ValueError(f"Elliptic orbit (e={e}) "
                             f"requires positive semi-major axis, got a={a}")
        if e > 1 and a >= 0:
            raise ValueError(f"Hyperbolic orbit (e={e}) "
                             f"requires negative semi-major axis, got a={a}")
        if e == 1:
            raise ValueError("Parabolic orbits cannot be represented")
        if i < 0 or i > np.pi:
            validation_error("Inclination out of range")
        if e > 1 and self._angle_type == AngleType.TRUE:
            if 1 + e * np.cos(anomaly) <= 0:
                raise ValueError(
                    f"True anomaly {anomaly} is beyond the hyperbola asymptotes")

    # ========== ELEMENT TYPE CONVERSIONS ==========
    def convert_to(self, orbit_type, angle_type=None):
        """
        Convert the orbit to a different parameterization.

        Parameters
        ----------
        orbit_type : OrbitType or str
            The desired orbit type ('cart', 'kep', 'circ', 'equi')
        angle_type : AngleType or str, optional
            Desired angle type, defaults to the current one

        Returns
        -------
        OrbitalElements
            New orbit with identical date, frame and mu
        """
        orbit_type = self._parse_orbit_type(orbit_type)
        angle_type = (self._angle_type if angle_type is None
                      else self._parse_angle_type(angle_type))
        if orbit_type == self._orbit_type and (
                orbit_type == OrbitType.CARTESIAN or angle_type == self._angle_type):
            return self.copy()
        converted = _pv_to_elements(self.pv, self._mu, orbit_type, angle_type)
        return OrbitalElements(converted, orbit_type, angle_type, date=self._date,
                               frame=self._frame, mu=self._mu, validate=False)

    # conversion shortcuts for convenience
    def to_cartesian(self):
        """Shortcut for convert_to('cart')"""
        return self.convert_to(OrbitType.CARTESIAN)

    def to_keplerian(self, angle_type=None):
        """Shortcut for convert_to('kep')"""
        return self.convert_to(OrbitType.KEPLERIAN, angle_type)

    def to_circular(self, angle_type=None):
        """Shortcut for convert_to('circ')"""
        return self.convert_to(OrbitType.CIRCULAR, angle_type)

    def to_equinoctial(self, angle_type=None):
        """Shortcut for convert_to('equi')"""
        return self.convert_to(OrbitType.EQUINOCTIAL, angle_type)

    # ========== PROPERTY ACCESS ==========
    @property
    def elements(self):
        """Read-only parameter array"""
        return self._elements

    @property
    def orbit_type(self):
        return self._orbit_type

    @property
    def angle_type(self):
        return self._angle_type

    @property
    def date(self):
        """Seconds since J2000"""
        return self._date

    @property
    def frame(self):
        return self._frame

    @property
    def mu(self):
        """Gravitational parameter [m^3/s^2]"""
        return self._mu

    @property
    def pv(self):
        """Cartesian position and velocity (read-only 6-element array)"""
        if self._pv is None:
            pv = _elements_to_pv(self._elements, self._mu,
                                 self._orbit_type, self._angle_type)
            pv.flags.writeable = False
            self._pv = pv
        return self._pv

    @property
    def position(self):
        """Position vector [m]"""
        return self.pv[:3]

    @property
    def velocity(self):
        """Velocity vector [m/s]"""
        return self.pv[3:]

    def _equinoctial_true(self):
        # cached [a, ex, ey, hx, hy, lv]
        if self._equinoctial is None:
            if (self._orbit_type == OrbitType.EQUINOCTIAL
                    and self._angle_type == AngleType.TRUE):
                self._equinoctial = self._elements
            else:
                self._equinoctial = _pv_to_elements(
                    self.pv, self._mu, OrbitType.EQUINOCTIAL, AngleType.TRUE)
        return self._equinoctial

    @property
    def a(self):
        """Semi-major axis [m] (negative for hyperbolic orbits)"""
        if self._orbit_type == OrbitType.CARTESIAN:
            r = np.linalg.norm(self._elements[:3])
            return 1.0 / (2.0 / r - np.dot(self._elements[3:], self._elements[3:]) / self._mu)
        return self._elements[0]

    @property
    def e(self):
        """Eccentricity"""
        if self._orbit_type == OrbitType.KEPLERIAN:
            return self._elements[1]
        if self._orbit_type in (OrbitType.CIRCULAR, OrbitType.EQUINOCTIAL):
            return np.hypot(self._elements[1], self._elements[2])
        rvec, vvec = self.position, self.velocity
        evec = (np.cross(vvec, np.cross(rvec, vvec)) / self._mu
                - rvec / np.linalg.norm(rvec))
        return np.linalg.norm(evec)

    @property
    def i(self):
        """Inclination [rad]"""
        if self._orbit_type == OrbitType.KEPLERIAN:
            return self._elements[2]
        if self._orbit_type == OrbitType.CIRCULAR:
            return self._elements[3]
        hvec = np.cross(self.position, self.velocity)
        return np.arctan2(np.hypot(hvec[0], hvec[1]), hvec[2])

    @property
    def is_hyperbolic(self):
        return bool(self.a < 0)

    @property
    def ex(self):
        """First component of the equinoctial eccentricity vector"""
        return self._equinoctial_true()[1]

    @property
    def ey(self):
        """Second component of the equinoctial eccentricity vector"""
        return self._equinoctial_true()[2]

    @property
    def hx(self):
        """First component of the inclination vector"""
        return self._equinoctial_true()[3]

    @property
    def hy(self):
        """Second component of the inclination vector"""
        return self._equinoctial_true()[4]

    @property
    def lv(self):
        """True longitude argument [rad]"""
        if self._orbit_type == OrbitType.EQUINOCTIAL:
            a, ex, ey, hx, hy, lam = self._elements
            if self._angle_type == AngleType.MEAN:
                lam = _mean_to_eccentric(lam, ex, ey)
            if self._angle_type != AngleType.TRUE:
                lam = _eccentric_to_true(lam, ex, ey)
            return lam
        return self._equinoctial_true()[5]

    @property
    def le(self):
        """Eccentric longitude argument [rad]"""
        if self._orbit_type == OrbitType.EQUINOCTIAL:
            a, ex, ey, hx, hy, lam = self._elements
            return _eccentric_longitude(lam, ex, ey, self._angle_type)
        return _true_to_eccentric(self.lv, self.ex, self.ey)

    @property
    def lm(self):
        """Mean longitude argument [rad]"""
        if (self._orbit_type == OrbitType.EQUINOCTIAL
                and self._angle_type == AngleType.MEAN):
            return self._elements[5]
        return _eccentric_to_mean(self.le, self.ex, self.ey)

    # ========== ORBITAL PROPERTIES ==========
    def mean_motion(self):
        """
        Calculate Keplerian mean motion (n = sqrt(mu/|a|^3))

        Returns
        -------
        float
            Mean motion [rad/s]
        """
        return np.sqrt(self._mu / abs(self.a)**3)

    def orbital_period(self):
        """
        Calculate orbital period

        Returns period in seconds (only for elliptic orbits)
        """
        if self.is_hyperbolic:
            raise ValueError("Orbital period undefined for hyperbolic orbits")
        return 2 * np.pi / self.mean_motion()

    def specific_energy(self):
        """Calculate specific orbital energy (energy per unit mass)"""
        return -self._mu / (2 * self.a)

    def specific_angular_momentum(self):
        """Calculate specific angular momentum magnitude |r x v|"""
        return np.linalg.norm(np.cross(self.position, self.velocity))

    def kepler_derivatives(self):
        """Rates of the six parameters under pure Keplerian motion."""
        return kepler_rates(self._elements, self._orbit_type,
                            self._angle_type, self._mu)

    # ========== UTILITY METHODS ==========
    def copy(self):
        """Create a copy of the orbit"""
        return OrbitalElements(self._elements.copy(), self._orbit_type,
                               self._angle_type, date=self._date,
                               frame=self._frame, mu=self._mu, validate=False)

    # ========== SPECIAL METHODS ==========
    def __len__(self):
        # Length of element vector (always 6)
        return 6

    def __getitem__(self, key):
        # Allow indexing like orbit[0]
        return self._elements[key]

    def __iter__(self):
        return iter(self._elements)

    def __repr__(self):
        return (f"OrbitalElements({self._elements.tolist()}, {self._orbit_type}, "
                f"{self._angle_type}, date={self._date}, frame='{self._frame}')")

    def __str__(self):
        # Human-readable representation
        if self._orbit_type == OrbitType.KEPLERIAN:
            a, e, i, raan, argp, anomaly = self._elements
            return (f"Keplerian Elements ({self._angle_type.value} anomaly):\n"
                    f"  a     = {a:16.4f} m\n"
                    f"  e     = {e:16.10f}\n"
                    f"  i     = {np.degrees(i):16.8f} deg\n"
                    f"  RAAN  = {np.degrees(raan):16.8f} deg\n"
                    f"  argp  = {np.degrees(argp):16.8f} deg\n"
                    f"  anom  = {np.degrees(anomaly):16.8f} deg")
        if self._orbit_type == OrbitType.CARTESIAN:
            r = self._elements[:3]
            v = self._elements[3:]
            return (f"Cartesian Elements:\n"
                    f"  r = [{r[0]:16.4f}, {r[1]:16.4f}, {r[2]:16.4f}] m\n"
                    f"  v = [{v[0]:12.6f}, {v[1]:12.6f}, {v[2]:12.6f}] m/s")
        names = COMPONENT_NAMES[self._orbit_type]
        title = ("Circular" if self._orbit_type == OrbitType.CIRCULAR
                 else "Equinoctial")
        lines = [f"{title} Elements ({self._angle_type.value} angle):",
                 f"  {names[0]:6s} = {self._elements[0]:16.4f} m"]
        for name, value in zip(names[1:], self._elements[1:]):
            lines.append(f"  {name:6s} = {value:16.10f}")
        return "\n".join(lines)

    def __eq__(self, other):
        # Check equality with tolerance
        if not isinstance(other, OrbitalElements):
            return False
        return (self._orbit_type == other._orbit_type
                and self._angle_type == other._angle_type
                and self._date == other._date
                and self._frame == other._frame
                and np.isclose(self._mu, other._mu)
                and np.allclose(self._elements, other._elements,
                                rtol=config.EQUALITY_RTOL,
                                atol=config.EQUALITY_ATOL))

    def __hash__(self):
        # Hash with rounding to match equality
        rounded = tuple(round(x, config.HASH_DECIMALS) for x in self._elements)
        return hash((self._orbit_type, self._angle_type, self._date, rounded))

    # ========== STATIC METHODS ==========
    @staticmethod
    def _parse_orbit_type(orbit_type):
        """Convert string or enum to OrbitType enum"""
        if isinstance(orbit_type, OrbitType):
            return orbit_type
        elif isinstance(orbit_type, str):
            type_map = {
                'cart': OrbitType.CARTESIAN,
                'cartesian': OrbitType.CARTESIAN,
                'kep': OrbitType.KEPLERIAN,
                'kepler': OrbitType.KEPLERIAN,
                'keplerian': OrbitType.KEPLERIAN,
                'circ': OrbitType.CIRCULAR,
                'circular': OrbitType.CIRCULAR,
                'eq': OrbitType.EQUINOCTIAL,
                'equi': OrbitType.EQUINOCTIAL,
                'equinoctial': OrbitType.EQUINOCTIAL,
            }
            if orbit_type.lower() in type_map:
                return type_map[orbit_type.lower()]
            raise ValueError(f"Unknown orbit type '{orbit_type}'. "
                             f"Use: {list(type_map.keys())}")
        else:
            raise TypeError(f"orbit_type must be OrbitType or str, "
                            f"got {type(orbit_type)}")

    @staticmethod
    def _parse_angle_type(angle_type):
        """Convert string or enum to AngleType enum"""
        if isinstance(angle_type, AngleType):
            return angle_type
        elif isinstance(angle_type, str):
            type_map = {
                'true': AngleType.TRUE,
                'v': AngleType.TRUE,
                'mean': AngleType.MEAN,
                'm': AngleType.MEAN,
                'eccentric': AngleType.ECCENTRIC,
                'ecc': AngleType.ECCENTRIC,
                'e': AngleType.ECCENTRIC,
            }
            if angle_type.lower() in type_map:
                return type_map[angle_type.lower()]
            raise ValueError(f"Unknown angle type '{angle_type}'. "
                             f"Use: {list(type_map.keys())}")
        else:
            raise TypeError(f"angle_type must be AngleType or str, "
                            f"got {type(angle_type)}")

    @staticmethod
    def _from_named_params(kwargs):
        """
        Convert named parameters to elements array and detect types.

        Returns
        -------
        elements : np.ndarray
            6-element array
        orbit_type : OrbitType
        angle_type : AngleType
        """
        anomaly_names = {
            OrbitType.KEPLERIAN: (('nu', AngleType.TRUE), ('M', AngleType.MEAN),
                                  ('E', AngleType.ECCENTRIC)),
            OrbitType.CIRCULAR: (('alpha_v', AngleType.TRUE),
                                 ('alpha_m', AngleType.MEAN),
                                 ('alpha_e', AngleType.ECCENTRIC)),
            OrbitType.EQUINOCTIAL: (('lv', AngleType.TRUE), ('lm', AngleType.MEAN),
                                    ('le', AngleType.ECCENTRIC)),
        }
        base_params = {
            OrbitType.KEPLERIAN: ['a', 'e', 'i', 'raan', 'argp'],
            OrbitType.CIRCULAR: ['a', 'ex', 'ey', 'i', 'raan'],
            OrbitType.EQUINOCTIAL: ['a', 'ex', 'ey', 'hx', 'hy'],
        }

        cart_params = ['x', 'y', 'z', 'vx', 'vy', 'vz']
        if all(k in kwargs for k in cart_params):
            elements = np.array([kwargs[k] for k in cart_params], dtype=float)
            return elements, OrbitType.CARTESIAN, AngleType.TRUE

        for orbit_type, params in base_params.items():
            if not all(k in kwargs for k in params):
                continue
            for name, angle_type in anomaly_names[orbit_type]:
                if name in kwargs:
                    elements = np.array([kwargs[k] for k in params] + [kwargs[name]],
                                        dtype=float)
                    return elements, orbit_type, angle_type

        provided = list(kwargs.keys())
        raise ValueError(
            f"Could not determine orbit type from parameters: {provided}\n"
            f"Keplerian requires: {base_params[OrbitType.KEPLERIAN]} + nu|M|E\n"
            f"Cartesian requires: {cart_params}\n"
            f"Circular requires: {base_params[OrbitType.CIRCULAR]} "
            f"+ alpha_v|alpha_m|alpha_e\n"
            f"Equinoctial requires: {base_params[OrbitType.EQUINOCTIAL]} + lv|lm|le"
        )
