"""
Finite burn maneuvers.

A :class:`ConstantThrustManeuver` applies a constant thrust along a body
frame direction while its :class:`DateBasedManeuverTriggers` say the
engine fires. The firing status only changes in the handlers of the
trigger start/stop date detectors, so the dynamics seen by the integrator
are smooth inside every integration leg.
"""

import logging

import numpy as np

from .defaults import G0_STANDARD_GRAVITY
from .events import Action, DateDetector, EventHandler
from .forces import ForceModel
from .parameters import ParameterDriver

logger = logging.getLogger(__name__)


class DateBasedManeuverTriggers:
    """
    Start and stop dates of a maneuver.

    Four linked drivers describe the firing window: ``<name>_START``,
    ``<name>_STOP``, ``<name>_MEDIAN`` and ``<name>_DURATION``. Changing
    start or stop keeps the other bound fixed; changing the median shifts
    both bounds; changing the duration keeps the median fixed.

    Parameters
    ----------
    name : str
        Maneuver name, prefix of the driver names
    start_date : float
        Firing start [s since J2000]
    duration : float
        Firing duration [s], must be positive
    """

    START = "_START"
    STOP = "_STOP"
    MEDIAN = "_MEDIAN"
    DURATION = "_DURATION"

    def __init__(self, name, start_date, duration):
        if duration <= 0:
            raise ValueError(f"Maneuver duration must be positive, got {duration}")
        self._name = name
        start_date = float(start_date)
        stop_date = start_date + float(duration)
        self._start = ParameterDriver(name + self.START, start_date, scale=1.0)
        self._stop = ParameterDriver(name + self.STOP, stop_date, scale=1.0)
        self._median = ParameterDriver(name + self.MEDIAN, 0.5 * (start_date + stop_date),
                                       scale=1.0)
        self._duration = ParameterDriver(name + self.DURATION, float(duration), scale=1.0)
        self._start.add_observer(self._bound_changed)
        self._stop.add_observer(self._bound_changed)
        self._median.add_observer(self._median_changed)
        self._duration.add_observer(self._duration_changed)
        self._listeners = []
        self._firing = False
        self._forward = True

    # ========== LINKED DRIVERS ==========
    def _bound_changed(self, driver, previous):
        start, stop = self._start.value, self._stop.value
        self._median.set_value_silently(0.5 * (start + stop))
        self._duration.set_value_silently(stop - start)

    def _median_changed(self, driver, previous):
        half = 0.5 * self._duration.value
        self._start.set_value_silently(self._median.value - half)
        self._stop.set_value_silently(self._median.value + half)

    def _duration_changed(self, driver, previous):
        half = 0.5 * self._duration.value
        self._start.set_value_silently(self._median.value - half)
        self._stop.set_value_silently(self._median.value + half)

    # ========== PROPERTY ACCESS ==========
    @property
    def name(self):
        return self._name

    @property
    def start_driver(self):
        return self._start

    @property
    def stop_driver(self):
        return self._stop

    @property
    def median_driver(self):
        return self._median

    @property
    def duration_driver(self):
        return self._duration

    @property
    def start_date(self):
        return self._start.value

    @property
    def stop_date(self):
        return self._stop.value

    @property
    def parameter_drivers(self):
        return [self._start, self._stop, self._median, self._duration]

    @property
    def is_firing(self):
        """Firing status at the last processed event or propagation start"""
        return self._firing

    @property
    def is_forward(self):
        return self._forward

    # ========== LISTENERS ==========
    def add_listener(self, listener):
        """Register an object with a ``maneuver_triggered(state, start)`` method."""
        self._listeners.append(listener)

    def remove_listener(self, listener):
        self._listeners.remove(listener)

    # ========== PROPAGATION HOOKS ==========
    def init(self, state, target):
        t0 = state.date
        self._forward = target >= t0
        start, stop = self.start_date, self.stop_date
        if self._forward:
            self._firing = start <= t0 < stop
        else:
            self._firing = start < t0 <= stop

    def event_detectors(self):
        """Fresh start and stop detectors for the current driver values."""
        return [
            DateDetector(self.start_date, handler=_TriggerHandler(self, True)),
            DateDetector(self.stop_date, handler=_TriggerHandler(self, False)),
        ]

    def _triggered(self, state, start):
        self._firing = start == self._forward
        logger.debug("Maneuver %s %s at %s", self._name,
                     "start" if start else "stop", state.date)
        for listener in list(self._listeners):
            listener.maneuver_triggered(state, start)

    def __repr__(self):
        return (f"DateBasedManeuverTriggers('{self._name}', start={self.start_date}, "
                f"stop={self.stop_date})")


class _TriggerHandler(EventHandler):

    def __init__(self, triggers, start):
        self._triggers = triggers
        self._start = start

    def event_occurred(self, state, detector, increasing):
        self._triggers._triggered(state, self._start)
        return Action.RESET_DERIVATIVES


class ConstantThrustManeuver(ForceModel):
    """
    Constant thrust along a fixed body frame direction.

    Parameters
    ----------
    triggers : DateBasedManeuverTriggers
        Firing window
    thrust : float
        Thrust level [N]
    isp : float
        Specific impulse [s]
    direction : array-like
        Thrust direction in the spacecraft body frame (normalized here)
    name : str, optional
        Prefix of the driver names (defaults to the triggers name)

    Drivers are ``<name>_THRUST`` [N] and ``<name>_FLOW_RATE`` [kg/s],
    the flow rate reference being ``-thrust / (isp * g0)``.
    """

    THRUST = "_THRUST"
    FLOW_RATE = "_FLOW_RATE"

    def __init__(self, triggers, thrust, isp, direction, name=None):
        if thrust <= 0:
            raise ValueError(f"Thrust must be positive, got {thrust}")
        if isp <= 0:
            raise ValueError(f"Specific impulse must be positive, got {isp}")
        direction = np.array(direction, dtype=float)
        norm = np.linalg.norm(direction)
        if direction.shape != (3,) or norm == 0:
            raise ValueError(f"Invalid thrust direction {direction}")
        self._triggers = triggers
        self._name = triggers.name if name is None else name
        self._isp = float(isp)
        self._direction = direction / norm
        self._direction.flags.writeable = False
        self._thrust = ParameterDriver(self._name + self.THRUST, thrust,
                                       scale=thrust, min_value=0.0)
        flow_rate = -thrust / (self._isp * G0_STANDARD_GRAVITY)
        self._flow_rate = ParameterDriver(self._name + self.FLOW_RATE, flow_rate,
                                          scale=abs(flow_rate), max_value=0.0)

    @property
    def name(self):
        return self._name

    @property
    def triggers(self):
        return self._triggers

    @property
    def isp(self):
        return self._isp

    @property
    def direction(self):
        """Unit thrust direction in body frame"""
        return self._direction

    @property
    def parameter_drivers(self):
        return [self._thrust, self._flow_rate]

    def init(self, state, target):
        self._triggers.init(state, target)

    def event_detectors(self):
        return self._triggers.event_detectors()

    def thrust_acceleration(self, state, parameters=None):
        """Acceleration the engine produces when firing [m/s^2]."""
        thrust = self._thrust.value if parameters is None else parameters[0]
        return thrust / state.mass * state.attitude.to_inertial(self._direction)

    def acceleration(self, state, parameters=None):
        if not self._triggers.is_firing:
            return np.zeros(3)
        return self.thrust_acceleration(state, parameters)

    def mass_rate(self, state, parameters=None):
        if not self._triggers.is_firing:
            return 0.0
        return self._flow_rate.value if parameters is None else parameters[1]

    def acceleration_derivatives(self, state, parameters=None):
        dadp = np.zeros((3, 2))
        if not self._triggers.is_firing:
            return np.zeros(3), np.zeros((3, 3)), np.zeros((3, 3)), dadp
        inertial_direction = state.attitude.to_inertial(self._direction)
        dadp[:, 0] = inertial_direction / state.mass
        acceleration = self.thrust_acceleration(state, parameters)
        return acceleration, np.zeros((3, 3)), np.zeros((3, 3)), dadp

    def __repr__(self):
        return (f"ConstantThrustManeuver('{self._name}', thrust={self._thrust.value} N, "
                f"isp={self._isp} s)")
