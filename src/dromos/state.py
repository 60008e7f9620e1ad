'''Spacecraft state snapshot used throughout propagation
SpacecraftState class definition'''

from types import MappingProxyType

import numpy as np

from .attitude import InertialAttitude
from .errors import UnknownAdditionalStateError

DEFAULT_MASS = 1000.0  # kg


def _frozen(values):
    array = np.atleast_1d(np.array(values, dtype=float))
    if array.ndim != 1:
        array = array.ravel()
    array.flags.writeable = False
    return array


class SpacecraftState:
    """
    Immutable snapshot of everything propagated at one date.

    Holds an orbit, an attitude, a mass and named additional states (with
    optional additional state derivatives). All components share the orbit
    date. Modifier methods return new instances.

    Parameters
    ----------
    orbit : OrbitalElements
        Orbit at the state date
    attitude : Attitude, optional
        Attitude at the orbit date, defaults to an inertially aligned body
    mass : float, optional
        Spacecraft mass [kg] (default 1000)
    additional_states : dict, optional
        Mapping name -> array-like
    additional_derivatives : dict, optional
        Mapping name -> array-like
    """

    def __init__(self, orbit, attitude=None, mass=DEFAULT_MASS,
                 additional_states=None, additional_derivatives=None):
        if attitude is None:
            attitude = InertialAttitude().get_attitude(orbit, orbit.date, orbit.frame)
        elif attitude.date != orbit.date:
            raise ValueError(
                f"Attitude date {attitude.date} does not match "
                f"orbit date {orbit.date}")
        if not mass > 0:
            raise ValueError(f"Mass must be positive, got {mass}")
        self._orbit = orbit
        self._attitude = attitude
        self._mass = float(mass)
        self._additional = {name: _frozen(value)
                            for name, value in (additional_states or {}).items()}
        self._derivatives = {name: _frozen(value)
                             for name, value in (additional_derivatives or {}).items()}

    def _copy(self, orbit=None, attitude=None, mass=None,
              additional=None, derivatives=None):
        state = SpacecraftState.__new__(SpacecraftState)
        state._orbit = self._orbit if orbit is None else orbit
        state._attitude = self._attitude if attitude is None else attitude
        state._mass = self._mass if mass is None else float(mass)
        state._additional = self._additional if additional is None else additional
        state._derivatives = self._derivatives if derivatives is None else derivatives
        return state

    # ========== PROPERTY ACCESS ==========
    @property
    def orbit(self):
        return self._orbit

    @property
    def attitude(self):
        return self._attitude

    @property
    def mass(self):
        """Spacecraft mass [kg]"""
        return self._mass

    @property
    def date(self):
        """Seconds since J2000"""
        return self._orbit.date

    @property
    def frame(self):
        return self._orbit.frame

    @property
    def mu(self):
        return self._orbit.mu

    @property
    def pv(self):
        """Cartesian position and velocity"""
        return self._orbit.pv

    @property
    def position(self):
        return self._orbit.position

    @property
    def velocity(self):
        return self._orbit.velocity

    @property
    def additional_states(self):
        """Read-only mapping of additional states"""
        return MappingProxyType(self._additional)

    @property
    def additional_derivatives(self):
        """Read-only mapping of additional state derivatives"""
        return MappingProxyType(self._derivatives)

    # ========== ADDITIONAL STATES ==========
    def has_additional_state(self, name):
        return name in self._additional

    def get_additional_state(self, name):
        """
        Get an additional state.

        Raises
        ------
        UnknownAdditionalStateError
            If the state does not carry ``name``
        """
        try:
            return self._additional[name]
        except KeyError:
            raise UnknownAdditionalStateError(name) from None

    def has_additional_state_derivative(self, name):
        return name in self._derivatives

    def get_additional_state_derivative(self, name):
        try:
            return self._derivatives[name]
        except KeyError:
            raise UnknownAdditionalStateError(name) from None

    # ========== MODIFIERS ==========
    def add_additional_state(self, name, value):
        """Return a new state with ``name`` added (or replaced)."""
        additional = dict(self._additional)
        additional[name] = _frozen(value)
        return self._copy(additional=additional)

    def add_additional_state_derivative(self, name, value):
        """Return a new state with the derivative of ``name`` added (or replaced)."""
        derivatives = dict(self._derivatives)
        derivatives[name] = _frozen(value)
        return self._copy(derivatives=derivatives)

    def with_mass(self, mass):
        if not mass > 0:
            raise ValueError(f"Mass must be positive, got {mass}")
        return self._copy(mass=mass)

    def with_orbit(self, orbit, attitude=None):
        """Return a new state flying ``orbit``, keeping mass and additional states."""
        if attitude is None:
            attitude = self._attitude.with_date(orbit.date)
        elif attitude.date != orbit.date:
            raise ValueError(
                f"Attitude date {attitude.date} does not match "
                f"orbit date {orbit.date}")
        return self._copy(orbit=orbit, attitude=attitude)

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        names = ", ".join(self._additional) or "none"
        return (f"SpacecraftState(date={self.date}, orbit_type={self._orbit.orbit_type.name}, "
                f"mass={self._mass:.3f} kg, additional=[{names}])")
