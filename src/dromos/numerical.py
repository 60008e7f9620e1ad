"""
Numerical propagator.

Integrates the orbit (in a chosen orbit/angle type), the mass and any
integrated additional states with an adaptive step integrator. Force model
accelerations enter the orbit parameters through the Gauss form of the
equations of motion: dY/dt = Kepler rates + dY/dv . a.
"""

import logging

import numpy as np

from .config import config
from .errors import (DuplicateNameError, IntegrationError, UnsupportedParameterError)
from .ephemeris import EphemerisGenerator
from .events import Action, EventState
from .jacobians import (Duration, IntegrableJacobianColumnGenerator, MatricesHarvester,
                        MedianDate, StateTransitionMatrixGenerator, TriggerDate)
from .maneuvers import ConstantThrustManeuver
from .mapper import StateMapper
from .orbital_elements import OrbitalElements, OrbitType, elements_jacobian, kepler_rates
from .propagator import AbstractPropagator, PropagatorStatus
from .sampling import StepInterpolator

logger = logging.getLogger(__name__)


class NumericalPropagator(AbstractPropagator):
    """
    Propagator integrating the equations of motion numerically.

    Parameters
    ----------
    integrator : AdaptiveStepIntegrator
        Integrator settings
    orbit_type : OrbitType or str, optional
        Integrated orbit parameters (default from ``config.DEFAULT_ORBIT_TYPE``)
    angle_type : AngleType or str, optional
        Integrated anomaly or longitude type (default from
        ``config.DEFAULT_ANGLE_TYPE``)
    attitude_provider : AttitudeProvider, optional
        Attitude law (default InertialAttitude)

    Examples
    --------
    >>> integrator = DormandPrince853Integrator(0.001, 300.0, abs_tol, rel_tol)
    >>> propagator = NumericalPropagator(integrator)
    >>> propagator.set_initial_state(SpacecraftState(orbit, mass=1000.0))
    >>> final_state = propagator.propagate(orbit.date + 3600.0)
    """

    def __init__(self, integrator, orbit_type=None, angle_type=None,
                 attitude_provider=None):
        super().__init__(attitude_provider)
        self._integrator = integrator
        self._orbit_type = OrbitalElements._parse_orbit_type(
            config.DEFAULT_ORBIT_TYPE if orbit_type is None else orbit_type)
        self._angle_type = OrbitalElements._parse_angle_type(
            config.DEFAULT_ANGLE_TYPE if angle_type is None else angle_type)
        self._mu = None
        self._force_models = []
        self._ephemeris_generators = []
        self._harvester = None
        self._matrices_derivatives = []
        self._matrices_states = []
        self._trigger_listeners = []
        self._calls = 0

    # ========== PROPERTY ACCESS ==========
    @property
    def integrator(self):
        return self._integrator

    @property
    def orbit_type(self):
        return self._orbit_type

    @property
    def angle_type(self):
        return self._angle_type

    @property
    def mu(self):
        """Central attraction coefficient, defaults to the initial orbit one"""
        if self._mu is not None:
            return self._mu
        if self._initial_state is not None:
            return self._initial_state.mu
        return None

    @property
    def force_models(self):
        return list(self._force_models)

    def get_calls(self):
        """Number of derivatives evaluations of the last propagation."""
        return self._calls

    # ========== CONFIGURATION ==========
    def set_orbit_type(self, orbit_type):
        self._check_not_propagating("change the orbit type")
        self._orbit_type = OrbitalElements._parse_orbit_type(orbit_type)

    def set_angle_type(self, angle_type):
        self._check_not_propagating("change the angle type")
        self._angle_type = OrbitalElements._parse_angle_type(angle_type)

    def set_mu(self, mu):
        self._check_not_propagating("change the central attraction")
        if mu <= 0:
            raise ValueError(f"Gravitational parameter must be positive, got {mu}")
        self._mu = float(mu)

    def add_force_model(self, model):
        """
        Add a force model.

        Raises
        ------
        DuplicateNameError
            If one of its parameter drivers has the name of an existing one
        """
        self._check_not_propagating("add a force model")
        existing = {driver.name for _, driver in self._all_drivers()}
        for driver in self._model_drivers(model):
            if driver.name in existing:
                raise DuplicateNameError(driver.name, kind="parameter driver")
            existing.add(driver.name)
        self._force_models.append(model)

    def remove_force_models(self):
        self._check_not_propagating("remove force models")
        self._force_models = []

    def add_additional_derivatives_provider(self, provider):
        """
        Register an integrated additional state.

        Raises
        ------
        DuplicateNameError
            If a provider (of any kind) already uses the name
        PropagationStateError
            If called during propagation
        """
        self._check_not_propagating("add an additional derivatives provider")
        self._check_name_available(provider.name)
        if provider.dimension < 1:
            raise ValueError(f"Provider {provider.name} has dimension {provider.dimension}")
        self._derivatives_providers.append(provider)

    @property
    def additional_derivatives_providers(self):
        return list(self._derivatives_providers)

    def _managed_names(self):
        names = super()._managed_names()
        if self._harvester is not None:
            names = names + [self._harvester.stm_name] + self.selected_parameter_names()
        return names

    def _all_state_providers(self):
        return self._matrices_states + self._state_providers

    def get_ephemeris_generator(self):
        """Generator recording the steps of every later propagation."""
        generator = EphemerisGenerator(self)
        self._ephemeris_generators.append(generator)
        return generator

    # ========== PARAMETERS ==========
    @staticmethod
    def _model_drivers(model):
        drivers = list(model.parameter_drivers)
        if isinstance(model, ConstantThrustManeuver):
            drivers.extend(model.triggers.parameter_drivers)
        return drivers

    def _all_drivers(self):
        for model in self._force_models:
            for driver in self._model_drivers(model):
                yield model, driver

    def select_parameters(self, *names):
        """
        Select parameters for Jacobian computation.

        Raises
        ------
        UnsupportedParameterError
            If a name matches no force model or trigger driver
        """
        drivers = {driver.name: driver for _, driver in self._all_drivers()}
        for name in names:
            if name not in drivers:
                raise UnsupportedParameterError(name, drivers)
        for name in names:
            drivers[name].selected = True

    def selected_parameter_names(self):
        """Names of the selected drivers, in Jacobian column order."""
        return [driver.name for _, driver in self._all_drivers() if driver.selected]

    def integrated_parameter_names(self):
        """Selected drivers whose Jacobian column is integrated."""
        return [driver.name for model in self._force_models
                for driver in model.parameter_drivers if driver.selected]

    # ========== MATRICES ==========
    def setup_matrices_computation(self, stm_name, initial_stm=None,
                                   initial_jacobian_columns=None):
        """
        Set up state transition matrix and parameter Jacobian computation.

        Parameters
        ----------
        stm_name : str
            Name of the additional state holding the STM
        initial_stm : array-like, optional
            6x6 initial matrix dY/dY0 (default identity)
        initial_jacobian_columns : array-like, optional
            6xn initial columns dY/dp (default zeros)

        Returns
        -------
        MatricesHarvester

        Raises
        ------
        DimensionMismatchError
            If a seed matrix has the wrong shape
        DuplicateNameError
            If ``stm_name`` is already used by a provider
        """
        self._check_not_propagating("set up matrices computation")
        if not stm_name:
            raise ValueError("State transition matrix name cannot be empty")
        if stm_name in super()._managed_names():
            raise DuplicateNameError(stm_name)
        if initial_stm is None:
            initial_stm = np.eye(6)
        else:
            initial_stm = MatricesHarvester.check_seed(initial_stm, 6, 6)
        if initial_jacobian_columns is not None:
            initial_jacobian_columns = MatricesHarvester.check_seed(
                initial_jacobian_columns, 6, None)
        harvester = MatricesHarvester(self, stm_name, initial_stm, initial_jacobian_columns)
        if self._initial_state is not None:
            self._initial_state = harvester.set_reference_state(self._initial_state)
        self._harvester = harvester
        return harvester

    def _build_matrices_providers(self, mu):
        for triggers, listener in self._trigger_listeners:
            triggers.remove_listener(listener)
        self._trigger_listeners = []
        self._matrices_derivatives = []
        self._matrices_states = []
        if self._harvester is None:
            return
        stm_name = self._harvester.stm_name
        stm_generator = StateTransitionMatrixGenerator(stm_name, self._force_models, mu)
        self._matrices_derivatives.append(stm_generator)
        for model in self._force_models:
            for driver in model.parameter_drivers:
                if driver.selected:
                    self._matrices_derivatives.append(
                        IntegrableJacobianColumnGenerator(stm_generator, driver.name))
            if isinstance(model, ConstantThrustManeuver):
                self._build_trigger_providers(stm_name, model)

    def _build_trigger_providers(self, stm_name, maneuver):
        triggers = maneuver.triggers
        for driver in triggers.parameter_drivers:
            if not driver.selected:
                continue
            if driver is triggers.start_driver:
                provider = TriggerDate(stm_name, driver.name, True, maneuver)
                listeners = [provider]
            elif driver is triggers.stop_driver:
                provider = TriggerDate(stm_name, driver.name, False, maneuver)
                listeners = [provider]
            else:
                start = TriggerDate(stm_name, triggers.start_driver.name, True, maneuver)
                stop = TriggerDate(stm_name, triggers.stop_driver.name, False, maneuver)
                combination = MedianDate if driver is triggers.median_driver else Duration
                provider = combination(driver.name, start, stop)
                listeners = [start, stop]
            for listener in listeners:
                triggers.add_listener(listener)
                self._trigger_listeners.append((triggers, listener))
            self._matrices_states.append(provider)

    # ========== PROPAGATION ==========
    def _propagate(self, start, target):
        state = self.get_initial_state()
        if start != state.date:
            # silent leg: no user events, step handlers or ephemeris
            state = self._run(state, start, silent=True)
        return self._run(state, target, silent=False)

    def _run(self, initial_state, target, silent):
        self._status = PropagatorStatus.PROPAGATING
        try:
            final_state = self._integrate(initial_state, target, silent)
        except Exception:
            self._status = PropagatorStatus.FAILED
            raise
        self._initial_state = final_state
        self._status = PropagatorStatus.COMPLETED
        return final_state

    def _integrate(self, initial_state, target, silent):
        if self._harvester is not None:
            initial_state = self._harvester.seed(initial_state)
        mu = self._mu if self._mu is not None else initial_state.mu
        self._build_matrices_providers(mu)
        derivatives_providers = self._matrices_derivatives + self._derivatives_providers

        for model in self._force_models:
            model.init(initial_state, target)
        for provider in derivatives_providers + self._all_state_providers():
            provider.init(initial_state, target)

        detectors = [detector for model in self._force_models
                     for detector in model.event_detectors()]
        handlers = []
        if not silent:
            detectors.extend(self._event_detectors)
            handlers = self._step_handlers + self._ephemeris_generators

        if target == initial_state.date:
            state = self.update_additional_states(initial_state)
            for handler in handlers:
                handler.init(state, target)
            for handler in handlers:
                handler.finish(state)
            return state

        mapper = StateMapper(initial_state.date, mu, self._orbit_type, self._angle_type,
                             initial_state.frame, self._attitude_provider,
                             [(provider.name, provider.dimension)
                              for provider in derivatives_providers])
        y = mapper.map_state_to_array(initial_state)
        state = self.update_additional_states(initial_state)

        event_states = [EventState(detector) for detector in detectors]
        for event_state in event_states:
            event_state.init(state, target)
        for handler in handlers:
            handler.init(state, target)

        self._calls = 0
        derivatives = self._derivatives_function(mapper, derivatives_providers)
        logger.debug("Integrating %d components from %s to %s (%s, %s)",
                     mapper.dimension, state.date, target,
                     self._orbit_type.name, self._angle_type.name)

        final_state = None
        leg_start = state.date
        while final_state is None:
            solver = self._integrator.solver(derivatives, mapper.to_time(leg_start), y,
                                             mapper.to_time(target))
            previous_date = leg_start
            while True:
                previous_y = solver.y.copy()
                self._integrator.step(solver)
                finished = solver.status == "finished"
                current_date = target if finished else mapper.to_date(solver.t)
                interpolator = StepInterpolator(mapper, solver.dense_output(),
                                                previous_date, current_date,
                                                self.update_additional_states,
                                                previous_y, solver.y.copy())
                action, end_state = self._accept_step(interpolator, event_states, handlers)
                if action == Action.STOP:
                    final_state = end_state
                    break
                if action is not None:
                    logger.debug("Restarting integration at %s after %s",
                                 end_state.date, action.name)
                    for event_state in event_states:
                        event_state.reset_begin(end_state)
                    if end_state.date == target:
                        final_state = end_state
                    else:
                        leg_start = end_state.date
                        y = mapper.map_state_to_array(end_state)
                    break
                if finished:
                    final_state = end_state
                    break
                previous_date = current_date

        final_state = self._with_derivatives(final_state, mapper, derivatives)
        for handler in handlers:
            handler.finish(final_state)
        logger.debug("Propagation ended at %s after %d derivatives evaluations",
                     final_state.date, self._calls)
        return final_state

    def _with_derivatives(self, state, mapper, derivatives):
        if not mapper.blocks:
            return state
        ydot = derivatives(mapper.to_time(state.date), mapper.map_state_to_array(state))
        for name, offset, dimension in mapper.blocks:
            state = state.add_additional_state_derivative(name,
                                                          ydot[offset:offset + dimension])
        return state

    def _derivatives_function(self, mapper, providers):
        orbit_type = mapper.orbit_type
        angle_type = mapper.angle_type
        mu = mapper.mu
        force_models = list(self._force_models)
        blocks = list(zip(providers, mapper.blocks))

        def derivatives(t, y):
            self._calls += 1
            state = mapper.map_array_to_state(mapper.to_date(t), y)
            ydot = np.empty(mapper.dimension)
            rates = kepler_rates(y[:6], orbit_type, angle_type, mu)
            mass_rate = 0.0
            if force_models:
                acceleration = np.zeros(3)
                for model in force_models:
                    acceleration += model.acceleration(state)
                    mass_rate += model.mass_rate(state)
                if orbit_type == OrbitType.CARTESIAN:
                    rates[3:] += acceleration
                else:
                    jacobian = elements_jacobian(state.pv, mu, orbit_type, angle_type)
                    rates += jacobian[:, 3:] @ acceleration
            if not np.all(np.isfinite(rates)):
                raise IntegrationError(
                    f"Non-finite {orbit_type.name.lower()} derivatives at "
                    f"{state.date}, the parameters may be singular for this orbit")
            ydot[:6] = rates
            ydot[6] = mass_rate
            for provider, (_, offset, dimension) in blocks:
                ydot[offset:offset + dimension] = provider.derivatives(state)
            return ydot

        return derivatives

    def __repr__(self):
        return (f"NumericalPropagator({self._integrator!r}, "
                f"orbit_type={self._orbit_type.name}, angle_type={self._angle_type.name}, "
                f"force_models={len(self._force_models)}, status={self._status.name})")
