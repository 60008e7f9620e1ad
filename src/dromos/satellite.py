'''Spacecraft physical properties for force modeling
Satellite class definition'''

from typing import Optional

import numpy as np

from .config import config
from .state import SpacecraftState


class Satellite:
    """
    Physical description of a spacecraft, as needed by drag models.

    The mass given here is the wet mass at the start of a propagation. The
    propagated (decreasing) mass lives in :class:`SpacecraftState`, so drag
    models read the cross section from the satellite and the mass from the
    state.

    Parameters
    ----------
    mass : float
        Initial mass [kg]
    drag_coeff : float
        Dimensionless drag coefficient (typically 2.0-2.5)
    cross_section : float
        Drag reference area [m^2]
    name : str, optional
        Satellite identifier
    """

    def __init__(self, mass: float, drag_coeff: float, cross_section: float,
                 name: Optional[str] = None):
        for label, value in (("Mass", mass), ("Drag coefficient", drag_coeff),
                             ("Cross-sectional area", cross_section)):
            if not value > 0:
                raise ValueError(f"{label} must be positive, got {value}")
        self._mass = float(mass)
        self._drag_coeff = float(drag_coeff)
        self._cross_section = float(cross_section)
        self._name = name

    # ========== PROPERTIES ==========
    @property
    def mass(self) -> float:
        """Initial mass [kg]"""
        return self._mass

    @property
    def drag_coeff(self) -> float:
        return self._drag_coeff

    @property
    def cross_section(self) -> float:
        """Drag reference area [m^2]"""
        return self._cross_section

    @property
    def name(self) -> Optional[str]:
        return self._name

    def ballistic_coefficient(self, mass: Optional[float] = None) -> float:
        """
        Cd * A / m [m^2/kg], with the initial mass unless ``mass`` is given.
        """
        return self._drag_coeff * self._cross_section / (self._mass if mass is None else mass)

    def initial_state(self, orbit, attitude_provider=None) -> SpacecraftState:
        """Spacecraft state flying ``orbit`` with this satellite's mass."""
        attitude = None
        if attitude_provider is not None:
            attitude = attitude_provider.get_attitude(orbit, orbit.date, orbit.frame)
        return SpacecraftState(orbit, attitude=attitude, mass=self._mass)

    # ========== SPECIAL METHODS ==========
    def _values(self):
        return np.array([self._mass, self._drag_coeff, self._cross_section])

    def __repr__(self) -> str:
        label = f"'{self._name}'" if self._name else "unnamed"
        return (f"Satellite({label}, mass={self._mass:.2f} kg, "
                f"Cd={self._drag_coeff:.2f}, A={self._cross_section:.2f} m²)")

    def __eq__(self, other) -> bool:
        if not isinstance(other, Satellite):
            return NotImplemented
        return (self._name == other._name and
                bool(np.allclose(self._values(), other._values(),
                                 rtol=config.EQUALITY_RTOL, atol=config.EQUALITY_ATOL)))

    def __hash__(self) -> int:
        rounded = np.round(self._values(), config.HASH_DECIMALS)
        return hash((tuple(rounded.tolist()), self._name))
