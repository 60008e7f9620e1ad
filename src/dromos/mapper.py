'''Mapping between spacecraft states and flat integration vectors
StateMapper class definition'''

import numpy as np

from .errors import DimensionMismatchError
from .orbital_elements import from_array, to_array
from .state import SpacecraftState

MAIN_DIMENSION = 7  # 6 orbit parameters then mass


class StateMapper:
    """
    Frozen layout of the integration vector for one propagation.

    The vector holds the 6 orbit parameters of the chosen orbit/angle type,
    the mass, then each integrated additional block in order. Integration
    time is counted from ``reference_date``.

    Parameters
    ----------
    reference_date : float
        Date of integration time 0
    mu : float
        Central attraction coefficient of the integrated orbits
    orbit_type : OrbitType
    angle_type : AngleType
    frame : str
        Frame of the integrated orbits
    attitude_provider : AttitudeProvider
        Attitude law used when rebuilding states
    integrated_blocks : sequence of (str, int), optional
        Names and dimensions of the integrated additional states
    """

    def __init__(self, reference_date, mu, orbit_type, angle_type, frame,
                 attitude_provider, integrated_blocks=()):
        self._reference_date = float(reference_date)
        self._mu = float(mu)
        self._orbit_type = orbit_type
        self._angle_type = angle_type
        self._frame = frame
        self._attitude_provider = attitude_provider
        self._blocks = []
        offset = MAIN_DIMENSION
        for name, dimension in integrated_blocks:
            self._blocks.append((name, offset, int(dimension)))
            offset += int(dimension)
        self._dimension = offset

    @property
    def dimension(self):
        return self._dimension

    @property
    def reference_date(self):
        return self._reference_date

    @property
    def mu(self):
        return self._mu

    @property
    def orbit_type(self):
        return self._orbit_type

    @property
    def angle_type(self):
        return self._angle_type

    @property
    def blocks(self):
        """(name, offset, dimension) of each integrated additional block"""
        return list(self._blocks)

    def to_time(self, date):
        return date - self._reference_date

    def to_date(self, t):
        return self._reference_date + t

    def map_state_to_array(self, state):
        """
        Flatten a state.

        Raises
        ------
        UnknownAdditionalStateError
            If the state lacks an integrated block
        DimensionMismatchError
            If a block has the wrong size
        """
        y = np.empty(self._dimension)
        y[:6] = to_array(state.orbit, self._orbit_type, self._angle_type)
        y[6] = state.mass
        for name, offset, dimension in self._blocks:
            value = state.get_additional_state(name)
            if value.size != dimension:
                raise DimensionMismatchError(dimension, 1, value.size, 1)
            y[offset:offset + dimension] = value
        return y

    def map_array_to_state(self, date, y, ydot=None):
        """Rebuild a state from an integration vector (and optionally its derivative)."""
        orbit = from_array(y[:6], self._orbit_type, self._angle_type, date=date,
                           frame=self._frame, mu=self._mu)
        attitude = self._attitude_provider.get_attitude(orbit, orbit.date, self._frame)
        additional = {name: y[offset:offset + dimension]
                      for name, offset, dimension in self._blocks}
        derivatives = None
        if ydot is not None:
            derivatives = {name: ydot[offset:offset + dimension]
                           for name, offset, dimension in self._blocks}
        return SpacecraftState(orbit, attitude=attitude, mass=y[6],
                               additional_states=additional,
                               additional_derivatives=derivatives)
