"""
Event detection and handling.

An event detector defines a switching function ``g(state)`` whose sign
changes mark events. During propagation an :class:`EventState` per
detector samples ``g`` inside each accepted step (at most ``max_check``
apart), brackets sign changes and refines the root with
:func:`scipy.optimize.brentq`. The detector handler then decides what the
propagator does next (:class:`Action`).
"""

import bisect
import copy
import logging
import math
from abc import ABC, abstractmethod
from enum import Enum
from typing import NamedTuple

from scipy.optimize import brentq

from .config import config
from .defaults import EARTH
from .errors import EventConvergenceError

logger = logging.getLogger(__name__)


class Action(Enum):
    """What the propagator does after an event."""
    CONTINUE = "continue"
    STOP = "stop"
    RESET_STATE = "reset_state"
    RESET_DERIVATIVES = "reset_derivatives"


# ========== HANDLERS ==========
class EventHandler(ABC):
    """Reaction of a detector to its events."""

    def init(self, initial_state, target, detector):
        """Called at propagation start."""

    @abstractmethod
    def event_occurred(self, state, detector, increasing):
        """
        Handle an event.

        Parameters
        ----------
        state : SpacecraftState
            State at the event date
        detector : EventDetector
            Detector that triggered
        increasing : bool
            True if g switches from negative to positive

        Returns
        -------
        Action
        """

    def reset_state(self, detector, old_state):
        """New state after a RESET_STATE action (default: unchanged)."""
        return old_state


class ContinueOnEvent(EventHandler):
    def event_occurred(self, state, detector, increasing):
        return Action.CONTINUE


class StopOnEvent(EventHandler):
    def event_occurred(self, state, detector, increasing):
        return Action.STOP


class StopOnIncreasing(EventHandler):
    """Stop on increasing events, continue on decreasing ones."""

    def event_occurred(self, state, detector, increasing):
        return Action.STOP if increasing else Action.CONTINUE


class StopOnDecreasing(EventHandler):
    """Stop on decreasing events, continue on increasing ones."""

    def event_occurred(self, state, detector, increasing):
        return Action.CONTINUE if increasing else Action.STOP


class RecordedEvent(NamedTuple):
    state: object
    increasing: bool
    detector: object


class RecordAndContinue(EventHandler):
    """Record every event and continue propagation."""

    def __init__(self):
        self._events = []

    @property
    def events(self):
        """Recorded events in occurrence order"""
        return list(self._events)

    def clear(self):
        self._events = []

    def event_occurred(self, state, detector, increasing):
        self._events.append(RecordedEvent(state, increasing, detector))
        return Action.CONTINUE


# ========== DETECTORS ==========
class EventDetector(ABC):
    """
    Base class of event detectors.

    Parameters
    ----------
    max_check : float, optional
        Maximal interval between two g evaluations [s]
    threshold : float, optional
        Convergence threshold of the event date [s]
    max_iter : int, optional
        Maximal number of root-finding iterations
    handler : EventHandler, optional
        Event handler (default StopOnEvent)

    Defaults of the numerical settings come from ``dromos.config``.
    """

    def __init__(self, max_check=None, threshold=None, max_iter=None, handler=None):
        self._max_check = config.DEFAULT_MAX_CHECK if max_check is None else float(max_check)
        self._threshold = config.DEFAULT_THRESHOLD if threshold is None else float(threshold)
        self._max_iter = config.DEFAULT_MAX_ITER if max_iter is None else int(max_iter)
        if self._max_check <= 0:
            raise ValueError(f"max_check must be positive, got {self._max_check}")
        if self._threshold <= 0:
            raise ValueError(f"threshold must be positive, got {self._threshold}")
        if self._max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {self._max_iter}")
        self._handler = StopOnEvent() if handler is None else handler

    @abstractmethod
    def g(self, state):
        """Switching function, events are its sign changes."""

    def init(self, state, target):
        self._handler.init(state, target, self)

    @property
    def max_check(self):
        return self._max_check

    @property
    def threshold(self):
        return self._threshold

    @property
    def max_iter(self):
        return self._max_iter

    @property
    def handler(self):
        return self._handler

    def event_occurred(self, state, increasing):
        return self._handler.event_occurred(state, self, increasing)

    def reset_state(self, state):
        return self._handler.reset_state(self, state)

    # ========== FLUENT COPIES ==========
    def _with(self, **attributes):
        detector = copy.copy(self)
        for name, value in attributes.items():
            setattr(detector, name, value)
        return detector

    def with_handler(self, handler):
        return self._with(_handler=handler)

    def with_max_check(self, max_check):
        if max_check <= 0:
            raise ValueError(f"max_check must be positive, got {max_check}")
        return self._with(_max_check=float(max_check))

    def with_threshold(self, threshold):
        if threshold <= 0:
            raise ValueError(f"threshold must be positive, got {threshold}")
        return self._with(_threshold=float(threshold))

    def with_max_iter(self, max_iter):
        if max_iter < 1:
            raise ValueError(f"max_iter must be at least 1, got {max_iter}")
        return self._with(_max_iter=int(max_iter))

    def __repr__(self):
        return (f"{type(self).__name__}(max_check={self.max_check}, "
                f"threshold={self.threshold}, handler={type(self._handler).__name__})")


class DateDetector(EventDetector):
    """
    Detector of one or several dates.

    With dates d_0 < d_1 < ... the switching function is
    ``(t - d_k) * (-1)**k`` where d_k is the date nearest to t, so it is
    continuous and changes sign once at each date. The effective max check
    never exceeds half the smallest gap between two dates.
    """

    def __init__(self, *dates, max_check=1.0e10, threshold=None, max_iter=None,
                 handler=None):
        super().__init__(max_check, threshold, max_iter, handler)
        self._dates = sorted(float(date) for date in dates)

    @property
    def dates(self):
        return list(self._dates)

    def add_event_date(self, date):
        """Add a date to detect (returns self)."""
        bisect.insort(self._dates, float(date))
        return self

    def _with(self, **attributes):
        detector = super()._with(**attributes)
        detector._dates = list(self._dates)
        return detector

    @property
    def max_check(self):
        if len(self._dates) < 2:
            return self._max_check
        min_gap = min(b - a for a, b in zip(self._dates[:-1], self._dates[1:]))
        if min_gap > 0:
            return min(self._max_check, 0.5 * min_gap)
        return self._max_check

    def g(self, state):
        if not self._dates:
            return -1.0
        t = state.date
        k = bisect.bisect_left(self._dates, t)
        if k == len(self._dates):
            k -= 1
        elif k > 0 and t - self._dates[k - 1] < self._dates[k] - t:
            k -= 1
        sign = -1.0 if k % 2 else 1.0
        return (t - self._dates[k]) * sign


class ApsideDetector(EventDetector):
    """
    Apsides detector, g = r . v.

    Increasing events are periapsis passes, decreasing ones apoapsis passes.
    """

    def __init__(self, max_check=None, threshold=None, max_iter=None, handler=None):
        super().__init__(max_check, threshold, max_iter,
                         StopOnIncreasing() if handler is None else handler)

    def g(self, state):
        pv = state.pv
        return float(pv[0] * pv[3] + pv[1] * pv[4] + pv[2] * pv[5])


class NodeDetector(EventDetector):
    """
    Equatorial plane crossings of the state frame, g = z.

    Increasing events are ascending nodes.
    """

    def g(self, state):
        return float(state.position[2])


class AltitudeDetector(EventDetector):
    """
    Altitude crossings above a spherical body, g = |r| - R - h.

    Parameters
    ----------
    altitude : float
        Threshold altitude [m]
    body : BodyParams, optional
        Central body providing the radius (default EARTH)
    """

    def __init__(self, altitude, body=EARTH, max_check=None, threshold=None,
                 max_iter=None, handler=None):
        super().__init__(max_check, threshold, max_iter, handler)
        self._altitude = float(altitude)
        self._body = body

    @property
    def altitude(self):
        return self._altitude

    def g(self, state):
        r = math.sqrt(sum(c * c for c in state.position))
        return r - self._body.radius - self._altitude


class FunctionalDetector(EventDetector):
    """Detector with a user provided switching function ``function(state)``."""

    def __init__(self, function, max_check=None, threshold=None, max_iter=None,
                 handler=None):
        super().__init__(max_check, threshold, max_iter, handler)
        self._function = function

    def g(self, state):
        return float(self._function(state))


class EventSlopeFilter(EventDetector):
    """
    Wrapper passing only one kind of events to the wrapped detector's handler.

    Parameters
    ----------
    detector : EventDetector
        Wrapped detector
    increasing : bool, optional
        If True only increasing events reach the handler, otherwise only
        decreasing ones (default True)

    Filtered out events are ignored and propagation continues.
    """

    def __init__(self, detector, increasing=True):
        super().__init__(detector.max_check, detector.threshold, detector.max_iter,
                         detector.handler)
        self._detector = detector
        self._increasing = bool(increasing)

    @property
    def detector(self):
        return self._detector

    def init(self, state, target):
        self._detector.init(state, target)

    def g(self, state):
        return self._detector.g(state)

    def event_occurred(self, state, increasing):
        if increasing != self._increasing:
            return Action.CONTINUE
        return self._detector.event_occurred(state, increasing)

    def reset_state(self, state):
        return self._detector.reset_state(state)


# ========== EVENT ENGINE ==========
class EventState:
    """
    Per-run bookkeeping of one detector.

    Tracks the date and sign of g at the last checked date, locates events
    inside accepted steps and applies the detector handler.
    """

    def __init__(self, detector):
        self._detector = detector
        self._t0 = None
        self._g0 = None
        self._g0_positive = True
        self._needs_start_sample = False
        self._last_event_time = None
        self._pending = False
        self._event_time = math.nan
        self._increasing = True

    @property
    def detector(self):
        return self._detector

    @property
    def event_date(self):
        """Date of the pending event (nan if none)"""
        return self._event_time

    @property
    def is_pending(self):
        return self._pending

    def init(self, state, target):
        """Prepare for a new propagation starting at ``state``."""
        self._detector.init(state, target)
        self._last_event_time = None
        self.reset_begin(state)
        if self._g0 == 0.0:
            # a zero at the start date does not count as an event
            self._needs_start_sample = True
            self._last_event_time = self._t0

    def reset_begin(self, state):
        """Restart checking from ``state``, after a reset or at start."""
        if self._last_event_time is not None and self._last_event_time == state.date:
            # sign already set by do_event
            self._t0 = state.date
            self._g0 = self._detector.g(state)
            self._needs_start_sample = False
            self._pending = False
            self._event_time = math.nan
            return
        self._t0 = state.date
        self._g0 = self._detector.g(state)
        if self._g0 != 0.0:
            self._g0_positive = self._g0 > 0
        self._needs_start_sample = False
        self._pending = False
        self._event_time = math.nan

    def _g_at(self, interpolator, date):
        return self._detector.g(interpolator.interpolated_state(date))

    def evaluate_step(self, interpolator):
        """
        Look for the first event of this detector in an accepted step.

        Parameters
        ----------
        interpolator : StepInterpolator
            Accepted step, possibly restricted after earlier events

        Returns
        -------
        bool
            True if an event occurs before the end of the step
        """
        forward = interpolator.is_forward
        direction = 1.0 if forward else -1.0
        threshold = self._detector.threshold
        self._pending = False
        self._event_time = math.nan

        if self._needs_start_sample:
            sample = self._g_at(interpolator, self._t0 + 0.5 * threshold * direction)
            if sample != 0.0:
                self._g0_positive = sample > 0
            self._needs_start_sample = False

        t1 = interpolator.current_date
        dt = t1 - self._t0
        if abs(dt) < threshold:
            return False

        n = max(1, int(math.ceil(abs(dt) / self._detector.max_check)))
        h = dt / n
        ta, ga = self._t0, self._g0
        for i in range(1, n + 1):
            tb = t1 if i == n else self._t0 + i * h
            gb = self._g_at(interpolator, tb)
            if gb == 0.0 or (gb > 0) != self._g0_positive:
                root = self._find_root(interpolator, ta, ga, tb, gb, direction)
                if root is not None:
                    self._pending = True
                    self._event_time = root
                    self._increasing = not self._g0_positive
                    return True
                if gb != 0.0:
                    self._g0_positive = gb > 0
            ta, ga = tb, gb
        return False

    def _find_root(self, interpolator, ta, ga, tb, gb, direction):
        threshold = self._detector.threshold
        if ga == 0.0:
            if (self._last_event_time is None
                    or abs(ta - self._last_event_time) > threshold):
                return ta
            ta = ta + threshold * direction
            if (tb - ta) * direction <= 0:
                return None
            ga = self._g_at(interpolator, ta)
            if ga == 0.0 or (ga > 0) != self._g0_positive:
                # crossing already consumed by the last event
                return None
        if gb == 0.0:
            return tb
        if (ga > 0) == (gb > 0):
            return None

        def g_of(t):
            return self._g_at(interpolator, t)

        lower, upper = (ta, tb) if ta < tb else (tb, ta)
        try:
            root = brentq(g_of, lower, upper, xtol=threshold,
                          maxiter=self._detector.max_iter)
        except RuntimeError as error:
            raise EventConvergenceError(
                f"{type(self._detector).__name__} root not found in "
                f"[{lower}, {upper}] within {self._detector.max_iter} iterations"
            ) from error
        if (self._last_event_time is not None
                and abs(root - self._last_event_time) <= threshold):
            return None
        return root

    def do_event(self, state):
        """
        Apply the handler to the pending event.

        Returns
        -------
        action : Action
        state : SpacecraftState
            State to continue from (reset state for RESET_STATE)
        """
        increasing = self._increasing
        action = self._detector.event_occurred(state, increasing)
        logger.debug("%s event at %s (increasing=%s): %s",
                     type(self._detector).__name__, state.date, increasing, action.name)
        new_state = state
        if action == Action.RESET_STATE:
            new_state = self._detector.reset_state(state)
        self._pending = False
        self._event_time = math.nan
        self._t0 = state.date
        self._g0 = self._detector.g(state)
        self._g0_positive = increasing
        self._last_event_time = state.date
        return action, new_state

    def step_accepted(self, state):
        """Move the checking origin to the end of a fully processed step."""
        self._t0 = state.date
        self._g0 = self._detector.g(state)
        if self._g0 != 0.0:
            self._g0_positive = self._g0 > 0
