'''Bounded propagators replaying recorded integration steps
EphemerisGenerator and Ephemeris class definitions'''

import bisect
import copy
import logging
from typing import Optional, Union

import numpy as np
import pandas as pd

from .config import config
from .errors import (EphemerisAfterRangeError, EphemerisBeforeRangeError,
                     EphemerisNotAvailableError, NonResettableStateError)
from .events import Action, EventState
from .propagator import AbstractPropagator, PropagatorStatus
from .sampling import StepHandler

logger = logging.getLogger(__name__)


class EphemerisGenerator(StepHandler):
    """
    Records the steps of a propagator's runs.

    Obtained from ``NumericalPropagator.get_ephemeris_generator()``. Each
    propagation restarts the recording; ``get_generated_ephemeris()``
    returns an independent snapshot of the last run.
    """

    def __init__(self, propagator):
        self._propagator = propagator
        self._steps = None
        self._initial_state = None
        self._final_state = None
        self._providers = None

    def init(self, initial_state, target):
        self._steps = []
        self._initial_state = initial_state
        self._final_state = None
        self._providers = None

    def handle_step(self, interpolator):
        self._steps.append(interpolator)

    def finish(self, final_state):
        self._final_state = final_state
        self._providers = [copy.copy(provider)
                           for provider in self._propagator._all_state_providers()]

    def get_generated_ephemeris(self):
        """
        Ephemeris of the last completed propagation.

        Raises
        ------
        EphemerisNotAvailableError
            If no propagation was recorded yet, or if the last one had
            a zero span
        """
        if self._final_state is None:
            raise EphemerisNotAvailableError("No propagation has been recorded yet")
        if not self._steps:
            raise EphemerisNotAvailableError(
                f"The last propagation recorded no step (zero span at {self._final_state.date})")
        ephemeris = Ephemeris(self._steps, self._initial_state, self._providers,
                              self._propagator.attitude_provider)
        logger.debug("Generated ephemeris over [%s, %s] with %d steps",
                     ephemeris.min_date, ephemeris.max_date, len(self._steps))
        return ephemeris


class Ephemeris(AbstractPropagator):
    """
    Propagator bounded to the span of recorded steps.

    States are interpolated with the dense output of the recorded steps,
    forward or backward, anywhere in [min_date, max_date]. Event detectors
    and step handlers work as for numerical propagators, but states cannot
    be reset.

    Parameters
    ----------
    steps : list of StepInterpolator
        Contiguous recorded steps
    initial_state : SpacecraftState
        State at the start of the recorded run
    providers : list of AdditionalStateProvider, optional
        Additional state providers (copies owned by this ephemeris)
    attitude_provider : AttitudeProvider, optional
    """

    # ========== CONSTRUCTION ==========
    def __init__(self, steps, initial_state, providers=(), attitude_provider=None):
        super().__init__(attitude_provider)
        if not steps:
            raise ValueError("An ephemeris needs at least one step")
        steps = [step.with_updater(self.update_additional_states) for step in steps]
        steps.sort(key=lambda step: min(step.previous_date, step.current_date))
        self._steps = steps
        self._lower_dates = [min(step.previous_date, step.current_date) for step in steps]
        self._min_date = self._lower_dates[0]
        self._max_date = max(max(step.previous_date, step.current_date) for step in steps)
        self._state_providers = list(providers)
        self._initial_state = initial_state
        self._status = PropagatorStatus.INITIALIZED

    # ========== PROPERTY ACCESS ==========
    @property
    def min_date(self):
        return self._min_date

    @property
    def max_date(self):
        return self._max_date

    @property
    def duration(self):
        """Ephemeris span [s]"""
        return self._max_date - self._min_date

    def set_initial_state(self, state):
        raise NonResettableStateError("The initial state of an ephemeris cannot be reset")

    def reset_initial_state(self, state):
        raise NonResettableStateError("The initial state of an ephemeris cannot be reset")

    # ========== INTERPOLATION ==========
    def _check_date(self, date):
        if date < self._min_date:
            raise EphemerisBeforeRangeError(date, self._min_date, self._max_date)
        if date > self._max_date:
            raise EphemerisAfterRangeError(date, self._min_date, self._max_date)

    def contains_date(self, date):
        return self._min_date <= date <= self._max_date

    def _step_at(self, date):
        self._check_date(date)
        index = max(bisect.bisect_right(self._lower_dates, date) - 1, 0)
        return self._steps[index]

    def state_at(self, date, orbit_type=None, angle_type=None):
        """
        State at a date of the ephemeris span.

        Parameters
        ----------
        date : float
            Seconds since J2000
        orbit_type : OrbitType or str, optional
            Convert the orbit to this type (default: integrated type)
        angle_type : AngleType or str, optional
            Angle type used with ``orbit_type``

        Raises
        ------
        EphemerisBeforeRangeError, EphemerisAfterRangeError
            If the date is outside [min_date, max_date]
        """
        date = float(date)
        state = self._step_at(date).interpolated_state(date)
        if orbit_type is not None:
            orbit = state.orbit.convert_to(orbit_type, angle_type)
            state = state.with_orbit(orbit, state.attitude)
        return state

    def evaluate(self, dates: Union[float, np.ndarray, list], orbit_type=None,
                 angle_type=None):
        """
        Evaluate the ephemeris at one or more dates.

        Returns
        -------
        SpacecraftState or list of SpacecraftState
            A single state if ``dates`` is scalar
        """
        if np.isscalar(dates):
            return self.state_at(dates, orbit_type, angle_type)
        return [self.state_at(date, orbit_type, angle_type)
                for date in np.asarray(dates, dtype=float)]

    def sample(self, n_points: int = 100, orbit_type=None, angle_type=None):
        """Uniformly sample the ephemeris span."""
        if n_points < 2:
            raise ValueError("n_points must be at least 2, use .state_at()")
        dates = np.linspace(self._min_date, self._max_date, n_points)
        return self.evaluate(dates, orbit_type, angle_type)

    def get_dates(self, n_points: int = 100) -> np.ndarray:
        """Uniform date array spanning the ephemeris."""
        return np.linspace(self._min_date, self._max_date, n_points)

    def to_dataframe(self, dates: Optional[np.ndarray] = None,
                     n_points: Optional[int] = None) -> pd.DataFrame:
        """
        Export the ephemeris to a pandas DataFrame.

        Parameters
        ----------
        dates : array-like, optional
            Dates to evaluate, uniform sampling if omitted
        n_points : int, optional
            Number of uniform samples (default ``config.DEFAULT_PLOT_POINTS``)

        Returns
        -------
        pd.DataFrame
            Columns date, x, y, z, vx, vy, vz and mass
        """
        if dates is None:
            n_points = config.DEFAULT_PLOT_POINTS if n_points is None else n_points
            dates = self.get_dates(n_points)
        else:
            dates = np.asarray(dates, dtype=float)
        states = [self.state_at(date) for date in dates]
        pv = np.array([state.pv for state in states]).reshape(-1, 6)
        data = {
            'date': dates,
            'x': pv[:, 0],
            'y': pv[:, 1],
            'z': pv[:, 2],
            'vx': pv[:, 3],
            'vy': pv[:, 4],
            'vz': pv[:, 5],
            'mass': [state.mass for state in states],
        }
        return pd.DataFrame(data)

    # ========== PROPAGATION ==========
    def _pieces(self, start, target):
        lower, upper = min(start, target), max(start, target)
        pieces = []
        for step, step_lower in zip(self._steps, self._lower_dates):
            step_upper = max(step.previous_date, step.current_date)
            a, b = max(step_lower, lower), min(step_upper, upper)
            if b > a:
                pieces.append((step, a, b))
        if target >= start:
            return [step.restricted_to(a, b) for step, a, b in pieces]
        return [step.restricted_to(b, a) for step, a, b in reversed(pieces)]

    def _propagate(self, start, target):
        self._check_date(start)
        self._check_date(target)
        self._status = PropagatorStatus.PROPAGATING
        try:
            final_state = self._replay(start, target)
        except Exception:
            self._status = PropagatorStatus.FAILED
            raise
        self._status = PropagatorStatus.COMPLETED
        return final_state

    def _replay(self, start, target):
        state = self.state_at(start)
        event_states = [EventState(detector) for detector in self._event_detectors]
        for event_state in event_states:
            event_state.init(state, target)
        handlers = list(self._step_handlers)
        for handler in handlers:
            handler.init(state, target)

        final_state = state
        for piece in self._pieces(start, target):
            current = piece
            while True:
                action, end_state = self._accept_step(current, event_states, handlers)
                final_state = end_state
                if action is None:
                    break
                if action == Action.STOP:
                    for handler in handlers:
                        handler.finish(end_state)
                    return end_state
                if action == Action.RESET_STATE:
                    raise NonResettableStateError(
                        "Ephemeris states cannot be reset by event handlers")
                for event_state in event_states:
                    event_state.reset_begin(end_state)
                if end_state.date == current.current_date:
                    break
                current = current.restricted_to(end_state.date, current.current_date)

        for handler in handlers:
            handler.finish(final_state)
        return final_state

    # ========== SPECIAL METHODS ==========
    def __repr__(self):
        return (f"Ephemeris(min_date={self._min_date}, max_date={self._max_date}, "
                f"steps={len(self._steps)})")

    def __call__(self, date, orbit_type=None, angle_type=None):
        """Syntactic sugar for .state_at(date)."""
        return self.state_at(date, orbit_type, angle_type)
