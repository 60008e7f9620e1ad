"""
Common propagator machinery.

:class:`AbstractPropagator` holds what numerical propagators and
ephemerides share: the initial state, the status state machine, event
detectors, step handlers, additional state providers and the processing
of accepted steps (event location, handler calls and step handler feeding).
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum

from .attitude import InertialAttitude
from .errors import DuplicateNameError, NotInitializedError, PropagationStateError
from .events import Action
from .sampling import StepNormalizer

logger = logging.getLogger(__name__)


class PropagatorStatus(Enum):
    UNCONFIGURED = "unconfigured"
    INITIALIZED = "initialized"
    PROPAGATING = "propagating"
    COMPLETED = "completed"
    FAILED = "failed"


class AdditionalStateProvider(ABC):
    """Computes an additional state from the other components of a state."""

    @property
    @abstractmethod
    def name(self):
        """Name of the provided additional state"""

    def init(self, initial_state, target):
        """Called at propagation start."""

    @abstractmethod
    def get_additional_state(self, state):
        """Value of the additional state for ``state``."""


class AdditionalDerivativesProvider(ABC):
    """Time derivative of an integrated additional state."""

    @property
    @abstractmethod
    def name(self):
        """Name of the integrated additional state"""

    @property
    @abstractmethod
    def dimension(self):
        """Number of components of the integrated additional state"""

    def init(self, initial_state, target):
        """Called at propagation start."""

    @abstractmethod
    def derivatives(self, state):
        """Derivative of the additional state at ``state``."""


class AbstractPropagator(ABC):
    """
    Base class of propagators.

    Parameters
    ----------
    attitude_provider : AttitudeProvider, optional
        Attitude law of the propagated states (default InertialAttitude)
    """

    def __init__(self, attitude_provider=None):
        self._attitude_provider = (InertialAttitude() if attitude_provider is None
                                   else attitude_provider)
        self._status = PropagatorStatus.UNCONFIGURED
        self._initial_state = None
        self._event_detectors = []
        self._step_handlers = []
        self._state_providers = []
        self._derivatives_providers = []

    # ========== PROPERTY ACCESS ==========
    @property
    def status(self):
        return self._status

    @property
    def attitude_provider(self):
        return self._attitude_provider

    def _check_not_propagating(self, operation):
        if self._status == PropagatorStatus.PROPAGATING:
            raise PropagationStateError(f"Cannot {operation} during propagation")

    # ========== EVENTS AND STEP HANDLERS ==========
    def add_event_detector(self, detector):
        self._check_not_propagating("add an event detector")
        self._event_detectors.append(detector)

    @property
    def event_detectors(self):
        return list(self._event_detectors)

    def clear_event_detectors(self):
        self._check_not_propagating("remove event detectors")
        self._event_detectors = []

    def add_step_handler(self, handler):
        self._check_not_propagating("add a step handler")
        self._step_handlers.append(handler)
        return handler

    def add_fixed_step_handler(self, step, handler):
        """
        Register a FixedStepHandler called every ``step`` seconds.

        Returns
        -------
        StepNormalizer
            The registered adapter, to pass to ``remove_step_handler``
        """
        return self.add_step_handler(StepNormalizer(step, handler))

    def remove_step_handler(self, handler):
        self._check_not_propagating("remove a step handler")
        self._step_handlers.remove(handler)

    @property
    def step_handlers(self):
        return list(self._step_handlers)

    def clear_step_handlers(self):
        self._check_not_propagating("remove step handlers")
        self._step_handlers = []

    # ========== ADDITIONAL STATES ==========
    def _managed_names(self):
        return ([provider.name for provider in self._state_providers]
                + [provider.name for provider in self._derivatives_providers])

    def _check_name_available(self, name):
        if name in self._managed_names():
            raise DuplicateNameError(name)

    def add_additional_state_provider(self, provider):
        """
        Register an additional state provider.

        Raises
        ------
        DuplicateNameError
            If a provider (of any kind) already uses the name
        PropagationStateError
            If called during propagation
        """
        self._check_not_propagating("add an additional state provider")
        self._check_name_available(provider.name)
        self._state_providers.append(provider)

    @property
    def additional_state_providers(self):
        return list(self._state_providers)

    def is_additional_state_managed(self, name):
        return name in self._managed_names()

    @property
    def managed_additional_states(self):
        return self._managed_names()

    def _all_state_providers(self):
        return self._state_providers

    def update_additional_states(self, state):
        """Add the states of all providers, in registration order."""
        for provider in self._all_state_providers():
            state = state.add_additional_state(provider.name,
                                               provider.get_additional_state(state))
        return state

    # ========== INITIAL STATE ==========
    def set_initial_state(self, state):
        self._check_not_propagating("set the initial state")
        self._initial_state = state
        self._status = PropagatorStatus.INITIALIZED

    def reset_initial_state(self, state):
        self.set_initial_state(state)

    def get_initial_state(self):
        """
        Raises
        ------
        NotInitializedError
            If no initial state was set
        """
        if self._initial_state is None:
            raise NotInitializedError("Initial state has not been set")
        return self._initial_state

    @property
    def initial_state(self):
        return self.get_initial_state()

    # ========== PROPAGATION ==========
    def propagate(self, start_or_target, target=None):
        """
        Propagate to a target date.

        ``propagate(target)`` starts from the initial state date,
        ``propagate(start, target)`` first moves to ``start`` without
        calling step handlers or user events.

        Returns
        -------
        SpacecraftState
            State at the target date, or at the date of a STOP event
        """
        initial = self.get_initial_state()
        if target is None:
            start, target = initial.date, float(start_or_target)
        else:
            start, target = float(start_or_target), float(target)
        logger.debug("%s propagation from %s to %s", type(self).__name__, start, target)
        return self._propagate(start, target)

    @abstractmethod
    def _propagate(self, start, target):
        """Propagation from ``start`` to ``target``."""

    def _accept_step(self, interpolator, event_states, handlers):
        """
        Process one accepted step.

        Events are handled in chronological order. Step handlers receive the
        pieces of step between events, and the whole remaining step after
        the last one.

        Returns
        -------
        action : Action or None
            STOP, RESET_STATE or RESET_DERIVATIVES if an event interrupted
            the step, None if the whole step was accepted
        state : SpacecraftState
            Event (or reset) state, or the state at the end of the step
        """
        current = interpolator
        forward = current.is_forward
        occurring = [es for es in event_states if es.evaluate_step(current)]
        while occurring:
            if forward:
                earliest = min(occurring, key=lambda es: es.event_date)
            else:
                earliest = max(occurring, key=lambda es: es.event_date)
            event_date = earliest.event_date
            if event_date != current.previous_date:
                piece = current.restricted_to(current.previous_date, event_date)
                for handler in handlers:
                    handler.handle_step(piece)
            event_state = current.interpolated_state(event_date)
            action, new_state = earliest.do_event(event_state)
            if action == Action.STOP:
                return action, event_state
            if action in (Action.RESET_STATE, Action.RESET_DERIVATIVES):
                return action, new_state
            current = current.restricted_to(event_date, current.current_date)
            occurring = [es for es in event_states if es.evaluate_step(current)]

        if current.current_date != current.previous_date:
            for handler in handlers:
                handler.handle_step(current)
        end_state = current.current_state
        for es in event_states:
            es.step_accepted(end_state)
        return None, end_state
