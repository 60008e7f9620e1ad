"""
Step interpolators and step handlers.

A :class:`StepInterpolator` gives access to states anywhere inside one
accepted integration step through the dense output of the solver. Step
handlers receive one interpolator per accepted step (or per piece of step
between events). :class:`StepNormalizer` turns variable steps into a fixed
step grid for :class:`FixedStepHandler` implementations.
"""

import math
from abc import ABC, abstractmethod


class StepInterpolator:
    """
    Dense access to the states of one accepted step.

    Parameters
    ----------
    mapper : StateMapper
        Layout of the integration vector
    dense : callable
        Dense output ``dense(t) -> y`` valid over the whole step
    previous_date, current_date : float
        Bounds of the (possibly restricted) step
    updater : callable, optional
        Function adding the additional states of providers to a state
    previous_y, current_y : np.ndarray, optional
        Exact vectors at the bounds, used instead of the dense output there
    """

    def __init__(self, mapper, dense, previous_date, current_date, updater=None,
                 previous_y=None, current_y=None):
        self._mapper = mapper
        self._dense = dense
        self._previous_date = float(previous_date)
        self._current_date = float(current_date)
        self._updater = updater
        self._previous_y = previous_y
        self._current_y = current_y
        self._previous_state = None
        self._current_state = None

    @property
    def mapper(self):
        return self._mapper

    @property
    def previous_date(self):
        return self._previous_date

    @property
    def current_date(self):
        return self._current_date

    @property
    def is_forward(self):
        return self._current_date >= self._previous_date

    def raw_state(self, date):
        """Integration vector at ``date``."""
        if date == self._previous_date and self._previous_y is not None:
            return self._previous_y
        if date == self._current_date and self._current_y is not None:
            return self._current_y
        return self._dense(self._mapper.to_time(date))

    def interpolated_state(self, date):
        """Spacecraft state at ``date``, with provider states added."""
        state = self._mapper.map_array_to_state(date, self.raw_state(date))
        if self._updater is not None:
            state = self._updater(state)
        return state

    @property
    def previous_state(self):
        if self._previous_state is None:
            self._previous_state = self.interpolated_state(self._previous_date)
        return self._previous_state

    @property
    def current_state(self):
        if self._current_state is None:
            self._current_state = self.interpolated_state(self._current_date)
        return self._current_state

    def restricted_to(self, previous_date, current_date):
        """Interpolator over a sub-interval, sharing the same dense output."""
        previous_y = self.raw_state(previous_date) if previous_date in (
            self._previous_date, self._current_date) else None
        current_y = self.raw_state(current_date) if current_date in (
            self._previous_date, self._current_date) else None
        return StepInterpolator(self._mapper, self._dense, previous_date, current_date,
                                self._updater, previous_y, current_y)

    def with_updater(self, updater):
        """Same step with another additional states updater."""
        return StepInterpolator(self._mapper, self._dense, self._previous_date,
                                self._current_date, updater, self._previous_y,
                                self._current_y)

    def __repr__(self):
        return (f"StepInterpolator(previous_date={self._previous_date}, "
                f"current_date={self._current_date})")


class StepHandler(ABC):
    """Receives each accepted step of a propagation."""

    def init(self, initial_state, target):
        """Called at propagation start."""

    @abstractmethod
    def handle_step(self, interpolator):
        """Called with the interpolator of each accepted step."""

    def finish(self, final_state):
        """Called at propagation end."""


class FixedStepHandler(ABC):
    """Receives states on a fixed step grid (see StepNormalizer)."""

    def init(self, initial_state, target, step):
        """Called at propagation start."""

    @abstractmethod
    def handle_step(self, state):
        """Called with the state at each grid date."""

    def finish(self, final_state):
        """Called at propagation end."""


class StepNormalizer(StepHandler):
    """
    Adapter feeding a FixedStepHandler with states at ``t0 + k * step``.

    Both bounds are included: the initial state is the first grid point and
    the final state is emitted even when it is not on the grid.

    Parameters
    ----------
    step : float
        Grid step [s], positive (the sign follows the propagation)
    handler : FixedStepHandler
        Wrapped handler
    """

    def __init__(self, step, handler):
        if not step > 0:
            raise ValueError(f"Fixed step must be positive, got {step}")
        self._step = float(step)
        self._handler = handler
        self._t0 = None
        self._h = self._step
        self._k = 0
        self._last_date = None

    @property
    def step(self):
        return self._step

    @property
    def handler(self):
        return self._handler

    def init(self, initial_state, target):
        forward = target >= initial_state.date
        self._t0 = initial_state.date
        self._h = self._step if forward else -self._step
        self._k = 0
        self._last_date = None
        self._handler.init(initial_state, target, self._step)

    def handle_step(self, interpolator):
        direction = 1.0 if self._h > 0 else -1.0
        previous = interpolator.previous_date
        current = interpolator.current_date
        while True:
            date = self._t0 + self._k * self._h
            if (date - current) * direction > 0:
                break
            if (date - previous) * direction >= 0:
                self._emit(interpolator.interpolated_state(date))
            self._k += 1

    def _emit(self, state):
        self._last_date = state.date
        self._handler.handle_step(state)

    def finish(self, final_state):
        tolerance = 1.0e-9 * max(1.0, abs(self._h))
        if self._last_date is None or not math.isclose(
                self._last_date, final_state.date, rel_tol=0.0, abs_tol=tolerance):
            self._emit(final_state)
        self._handler.finish(final_state)
