"""
Global Configuration for Dromos Package
=======================================

This module provides package-wide configuration settings that users can modify
to control numerical tolerances, validation behavior, event detection defaults
and the default integration coordinates of new propagators.

Examples
--------
View current configuration:

>>> import dromos
>>> print(dromos.config)

Modify settings:

>>> dromos.config.EQUALITY_RTOL = 1e-14  # Stricter equality checks
>>> dromos.config.DEFAULT_MAX_CHECK = 60.0  # Denser event sampling

Reset to defaults:

>>> dromos.config.reset()

Temporarily modify settings:

>>> with dromos.temp_config(EQUALITY_RTOL=1e-6):
...     # Relaxed tolerance for this block only
...     orbit1 == orbit2

Notes
-----
These settings affect package-wide behavior. Modifying them will impact
all subsequent operations until changed again or reset.
"""

from dataclasses import dataclass
from contextlib import contextmanager
import math


@dataclass
class DromosConfig:
    """
    Global configuration for Dromos package.

    Attributes
    ----------
    EQUALITY_RTOL : float
        Relative tolerance for floating-point equality comparisons.
        Default: 1e-12 (approximately micrometer-level at LEO distances)
    EQUALITY_ATOL : float
        Absolute tolerance for floating-point equality comparisons.
        Default: 1e-14
    SNAP_TO_CIRCULAR : float
        Eccentricity below this threshold is treated as circular (e=0).
        Keplerian Jacobians are singular there.
        Default: 1e-10
    SNAP_TO_EQUATORIAL : float
        Inclination below this threshold (or above pi minus it) is treated
        as equatorial. Keplerian and circular Jacobians are singular for
        prograde equatorial orbits, equinoctial ones for retrograde.
        Default: 1e-10
    STRICT_VALIDATION : bool
        If True, validation failures raise exceptions.
        If False, validation failures issue warnings.
        Default: True
    DEFAULT_MAX_CHECK : float
        Default maximal interval between two g-function evaluations [s].
        Default: 600.0
    DEFAULT_THRESHOLD : float
        Default convergence threshold of event dates [s].
        Default: 1e-6
    DEFAULT_MAX_ITER : int
        Default maximal number of root-finding iterations per event.
        Default: 100
    DEFAULT_MASS_TOLERANCE : float
        Absolute integration tolerance of the mass component [kg].
        Default: 1e-6
    DEFAULT_ORBIT_TYPE : str
        Orbit type used by new numerical propagators.
        Default: 'equinoctial'
    DEFAULT_ANGLE_TYPE : str
        Angle type used by new numerical propagators.
        Default: 'eccentric'
    DEFAULT_PLOT_POINTS : int
        Default number of points for ephemeris sampling and export.
        Default: 1000
    """

    # Numerical tolerance for equality comparisons
    EQUALITY_RTOL: float = 1e-12
    EQUALITY_ATOL: float = 1e-14

    # Singularity thresholds
    SNAP_TO_CIRCULAR: float = 1e-10
    SNAP_TO_EQUATORIAL: float = 1e-10

    # Validation behavior
    STRICT_VALIDATION: bool = True

    # Event detection defaults
    DEFAULT_MAX_CHECK: float = 600.0
    DEFAULT_THRESHOLD: float = 1e-6
    DEFAULT_MAX_ITER: int = 100

    # Propagation defaults
    DEFAULT_MASS_TOLERANCE: float = 1e-6
    DEFAULT_ORBIT_TYPE: str = 'equinoctial'
    DEFAULT_ANGLE_TYPE: str = 'eccentric'

    # Sampling defaults
    DEFAULT_PLOT_POINTS: int = 1000

    @property
    def HASH_DECIMALS(self) -> int:
        """
        Compute hash rounding decimals from equality tolerance.

        The hash rounding must be coarse enough that if two values
        are equal (within EQUALITY_ATOL), they hash to the same value.

        Returns
        -------
        int
            Number of decimal places for hash rounding
        """
        magnitude = -math.floor(math.log10(self.EQUALITY_ATOL))
        return max(magnitude - 2, 0)

    def reset(self):
        """
        Reset all configuration values to package defaults.

        Examples
        --------
        >>> import dromos
        >>> dromos.config.EQUALITY_RTOL = 1e-6  # Modify
        >>> dromos.config.reset()  # Back to defaults
        >>> dromos.config.EQUALITY_RTOL
        1e-12
        """
        defaults = DromosConfig()
        for key in self.__dataclass_fields__:
            setattr(self, key, getattr(defaults, key))

    _SECTIONS = (
        ("Numerical Tolerances", ("EQUALITY_RTOL", "EQUALITY_ATOL", "HASH_DECIMALS")),
        ("Singularity Thresholds", ("SNAP_TO_CIRCULAR", "SNAP_TO_EQUATORIAL")),
        ("Events", ("DEFAULT_MAX_CHECK", "DEFAULT_THRESHOLD", "DEFAULT_MAX_ITER")),
        ("Propagation", ("DEFAULT_MASS_TOLERANCE", "DEFAULT_ORBIT_TYPE",
                         "DEFAULT_ANGLE_TYPE")),
        ("Behavior", ("STRICT_VALIDATION",)),
        ("Sampling", ("DEFAULT_PLOT_POINTS",)),
    )

    def __repr__(self):
        """Configuration values grouped by concern."""
        lines = ["DromosConfig:"]
        for title, keys in self._SECTIONS:
            lines.append(f"  {title}:")
            lines.extend(f"    {key} = {getattr(self, key)!r}" for key in keys)
        return "\n".join(lines)


# Global configuration instance
config = DromosConfig()


@contextmanager
def temp_config(**kwargs):
    """
    Context manager for temporarily modifying configuration values.

    Configuration is automatically restored when the context exits,
    even if an exception occurs.

    Parameters
    ----------
    **kwargs
        Configuration attributes to temporarily modify.

    Examples
    --------
    >>> import dromos
    >>> with dromos.temp_config(DEFAULT_MAX_CHECK=10.0):
    ...     detector = dromos.NodeDetector()
    >>> dromos.config.DEFAULT_MAX_CHECK
    600.0

    Raises
    ------
    AttributeError
        If an invalid configuration attribute is specified.
    """
    unknown = [key for key in kwargs if key not in config.__dataclass_fields__]
    if unknown:
        raise AttributeError(
            f"DromosConfig has no attribute '{unknown[0]}'. "
            f"Valid attributes: {list(config.__dataclass_fields__)}"
        )
    saved = {key: getattr(config, key) for key in kwargs}
    for key, value in kwargs.items():
        setattr(config, key, value)
    try:
        yield config
    finally:
        for key, value in saved.items():
            setattr(config, key, value)
