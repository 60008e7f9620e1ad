"""
Lock-step propagation of several spacecraft.

Each propagator runs in its own thread and samples its trajectory on a
common fixed step grid. A barrier makes all threads reach a grid date
before the multi-satellite handler sees the states at that date.
"""

import logging
import math
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor

from .sampling import FixedStepHandler

logger = logging.getLogger(__name__)


class MultiSatStepHandler(ABC):
    """Receives the synchronized states of all propagators."""

    def init(self, initial_states, target):
        """Called with the states at the first grid date."""

    @abstractmethod
    def handle_step(self, states):
        """Called with the list of states (one per propagator) at each grid date."""

    def finish(self, final_states):
        """Called at the end of the parallel propagation."""


class _GridCollector(FixedStepHandler):

    def __init__(self, index, dates, states, barrier, tolerance):
        self._index = index
        self._dates = dates
        self._states = states
        self._barrier = barrier
        self._tolerance = tolerance
        self._next = 0

    def init(self, initial_state, target, step):
        self._next = 0

    def handle_step(self, state):
        if self._next >= len(self._dates):
            return
        if abs(state.date - self._dates[self._next]) > self._tolerance:
            return
        self._states[self._index] = state
        self._next += 1
        self._barrier.wait()


class PropagatorsParallelizer:
    """
    Propagate several propagators together with a common fixed step.

    Parameters
    ----------
    propagators : list of AbstractPropagator
        Independent propagators (no shared force models or handlers)
    step : float
        Grid step [s]
    handler : MultiSatStepHandler
        Receives the list of states at each grid date, both bounds included

    If a propagator fails, the others are interrupted and its exception is
    re-raised. If a propagator stops early on an event, the others are
    interrupted and the last synchronized states are returned.
    """

    def __init__(self, propagators, step, handler):
        if not propagators:
            raise ValueError("At least one propagator is required")
        if not step > 0:
            raise ValueError(f"Step must be positive, got {step}")
        self._propagators = list(propagators)
        self._step = float(step)
        self._handler = handler
        self._synchronized = None

    @property
    def propagators(self):
        return list(self._propagators)

    def _grid(self, start, target, tolerance):
        h = self._step if target >= start else -self._step
        direction = 1.0 if h > 0 else -1.0
        dates = []
        k = 0
        while (start + k * h - target) * direction <= 0:
            dates.append(start + k * h)
            k += 1
        if not math.isclose(dates[-1], target, rel_tol=0.0, abs_tol=tolerance):
            dates.append(target)
        return dates

    def propagate(self, start, target):
        """
        Propagate all propagators from ``start`` to ``target``.

        Returns
        -------
        list of SpacecraftState
            Final states, one per propagator
        """
        start, target = float(start), float(target)
        n = len(self._propagators)
        tolerance = 1.0e-9 * max(1.0, self._step)
        dates = self._grid(start, target, tolerance)
        current = [None] * n
        self._synchronized = None

        def dispatch():
            states = list(current)
            if self._synchronized is None:
                self._handler.init(states, target)
            self._synchronized = states
            self._handler.handle_step(states)

        barrier = threading.Barrier(n, action=dispatch)
        collectors = [_GridCollector(i, dates, current, barrier, tolerance)
                      for i in range(n)]
        logger.debug("Parallel propagation of %d propagators over %d grid dates",
                     n, len(dates))

        with ThreadPoolExecutor(max_workers=n) as executor:
            futures = [executor.submit(self._run, propagator, collector, barrier,
                                       start, target)
                       for propagator, collector in zip(self._propagators, collectors)]
            outcomes = []
            for future in futures:
                error = future.exception()
                outcomes.append(future.result() if error is None else error)

        for outcome in outcomes:
            if (isinstance(outcome, Exception)
                    and not isinstance(outcome, threading.BrokenBarrierError)):
                raise outcome

        if any(isinstance(outcome, Exception) for outcome in outcomes):
            logger.debug("Parallel propagation interrupted, returning last "
                         "synchronized states")
            final_states = self._synchronized
        else:
            final_states = outcomes
        self._handler.finish(final_states)
        return final_states

    def _run(self, propagator, collector, barrier, start, target):
        normalizer = propagator.add_fixed_step_handler(self._step, collector)
        try:
            final_state = propagator.propagate(start, target)
        except Exception:
            barrier.abort()
            raise
        finally:
            propagator.remove_step_handler(normalizer)
        if final_state.date != target:
            barrier.abort()
        return final_state
