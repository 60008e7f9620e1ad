"""
State transition matrix and parameter Jacobians.

The variational equations are integrated alongside the orbit as additional
states, in Cartesian coordinates:

* ``StateTransitionMatrixGenerator`` integrates dC(t)/dY0 (36 values,
  row-major) where C is the Cartesian position/velocity and Y0 the initial
  orbit parameters of the propagator;
* ``IntegrableJacobianColumnGenerator`` integrates dC(t)/dp for one
  selected force model parameter;
* ``TriggerDate`` gives dC(t)/dt_trigger in closed form for the start or
  stop date of a maneuver, ``MedianDate`` and ``Duration`` combine them.

:class:`MatricesHarvester` converts the Cartesian blocks into the
propagator orbit/angle type: dY/dY0 = J(t) dC/dY0 with
J = d(parameters)/d(Cartesian).
"""

import copy
import logging

import numpy as np

from .errors import DimensionMismatchError
from .orbital_elements import OrbitType, jacobian_of_cartesian, jacobian_wrt_cartesian
from .propagator import AdditionalDerivativesProvider, AdditionalStateProvider

logger = logging.getLogger(__name__)

STM_SIZE = 36


class StateTransitionMatrixGenerator(AdditionalDerivativesProvider):
    """
    Derivative of the Cartesian state transition matrix, dPhi/dt = A Phi.

    A = [[0, I], [da/dr, da/dv]] includes the central attraction and the
    partial derivatives of every force model. Listeners (the Jacobian column
    generators) receive the matrix A and the acceleration partials with
    respect to the selected parameters computed in the same evaluation.

    Parameters
    ----------
    stm_name : str
        Name of the integrated additional state
    force_models : list of ForceModel
        Force models of the propagator
    mu : float
        Central attraction coefficient
    """

    def __init__(self, stm_name, force_models, mu):
        self._name = stm_name
        self._force_models = force_models
        self._mu = float(mu)
        self._listeners = []

    @property
    def name(self):
        return self._name

    @property
    def dimension(self):
        return STM_SIZE

    def add_listener(self, listener):
        """Register an object with a ``partials_computed(state, A, dadp)`` method."""
        self._listeners.append(listener)

    def system_matrix(self, state):
        """
        Linearized dynamics at ``state``.

        Returns
        -------
        A : np.ndarray
            6x6 matrix d(Cartesian rate)/d(Cartesian)
        dadp : dict
            Selected parameter name -> 3-element acceleration partial
        """
        position = np.asarray(state.position)
        r = np.linalg.norm(position)
        r_hat = position / r
        dadr = -self._mu / r**3 * (np.eye(3) - 3.0 * np.outer(r_hat, r_hat))
        dadv = np.zeros((3, 3))
        dadp = {}
        for model in self._force_models:
            _, model_dadr, model_dadv, model_dadp = model.acceleration_derivatives(state)
            dadr = dadr + model_dadr
            dadv = dadv + model_dadv
            for j, driver in enumerate(model.parameter_drivers):
                if driver.selected:
                    dadp[driver.name] = model_dadp[:, j]
        a_matrix = np.zeros((6, 6))
        a_matrix[:3, 3:] = np.eye(3)
        a_matrix[3:, :3] = dadr
        a_matrix[3:, 3:] = dadv
        return a_matrix, dadp

    def derivatives(self, state):
        a_matrix, dadp = self.system_matrix(state)
        for listener in self._listeners:
            listener.partials_computed(state, a_matrix, dadp)
        phi = state.get_additional_state(self._name).reshape(6, 6)
        return (a_matrix @ phi).ravel()


class IntegrableJacobianColumnGenerator(AdditionalDerivativesProvider):
    """
    Derivative of dC/dp for one force model parameter: A c + [0; da/dp].

    Must be evaluated after the StateTransitionMatrixGenerator it listens
    to, in the same derivatives computation.
    """

    def __init__(self, stm_generator, column_name):
        self._name = column_name
        self._a_matrix = None
        self._dadp = np.zeros(3)
        stm_generator.add_listener(self)

    @property
    def name(self):
        return self._name

    @property
    def dimension(self):
        return 6

    def partials_computed(self, state, a_matrix, dadp):
        self._a_matrix = a_matrix
        self._dadp = dadp.get(self._name, np.zeros(3))

    def derivatives(self, state):
        column = state.get_additional_state(self._name)
        rate = self._a_matrix @ column
        rate[3:] += self._dadp
        return rate


class TriggerDate(AdditionalStateProvider):
    """
    Closed-form Jacobian column with respect to a maneuver start or stop date.

    When the trigger fires the provider stores the STM at the trigger and
    the velocity jump c caused by a later trigger date:

    * start: c = -a_thrust (a later start removes thrust),
    * stop: c = +a_thrust (a later stop adds thrust),

    both multiplied by the propagation direction sign. After the trigger
    the column is Phi(t) Phi(t_trigger)^-1 c, before it the column is zero.

    Parameters
    ----------
    stm_name : str
        Name of the integrated STM
    driver_name : str
        Name of the provided column (the trigger date driver name)
    start : bool
        True for the start date, False for the stop date
    maneuver : ConstantThrustManeuver
        Maneuver providing the thrust acceleration
    """

    def __init__(self, stm_name, driver_name, start, maneuver):
        self._stm_name = stm_name
        self._name = driver_name
        self._start = bool(start)
        self._maneuver = maneuver
        self._forward = True
        self._trigger_date = None
        self._phi_inverse = None
        self._jump = None

    @property
    def name(self):
        return self._name

    @property
    def trigger_date(self):
        """Date the trigger fired during the last propagation (None if it did not)"""
        return self._trigger_date

    def init(self, initial_state, target):
        self._forward = target >= initial_state.date
        self._trigger_date = None
        self._phi_inverse = None
        self._jump = None

    def maneuver_triggered(self, state, start):
        if start != self._start:
            return
        phi = state.get_additional_state(self._stm_name).reshape(6, 6)
        thrust = self._maneuver.thrust_acceleration(state)
        sign = 1.0 if self._forward else -1.0
        jump = np.zeros(6)
        jump[3:] = (-thrust if self._start else thrust) * sign
        # reassign, never mutate: ephemerides hold shallow copies
        self._trigger_date = state.date
        self._phi_inverse = np.linalg.inv(phi)
        self._jump = jump
        logger.debug("Trigger %s stored at %s", self._name, state.date)

    def column(self, state):
        direction = 1.0 if self._forward else -1.0
        if self._trigger_date is None or (state.date - self._trigger_date) * direction < 0:
            return np.zeros(6)
        phi = state.get_additional_state(self._stm_name).reshape(6, 6)
        return phi @ (self._phi_inverse @ self._jump)

    def get_additional_state(self, state):
        return self.column(state)


class MedianDate(AdditionalStateProvider):
    """Column with respect to the median date: start column + stop column."""

    def __init__(self, driver_name, start_trigger, stop_trigger):
        self._name = driver_name
        self._start_trigger = start_trigger
        self._stop_trigger = stop_trigger

    @property
    def name(self):
        return self._name

    @property
    def triggers(self):
        return [self._start_trigger, self._stop_trigger]

    def __copy__(self):
        duplicate = type(self).__new__(type(self))
        duplicate.__dict__.update(self.__dict__)
        duplicate._start_trigger = copy.copy(self._start_trigger)
        duplicate._stop_trigger = copy.copy(self._stop_trigger)
        return duplicate

    def init(self, initial_state, target):
        self._start_trigger.init(initial_state, target)
        self._stop_trigger.init(initial_state, target)

    def get_additional_state(self, state):
        return self._start_trigger.column(state) + self._stop_trigger.column(state)


class Duration(MedianDate):
    """Column with respect to the duration: (stop column - start column) / 2."""

    def get_additional_state(self, state):
        return 0.5 * (self._stop_trigger.column(state) - self._start_trigger.column(state))


class MatricesHarvester:
    """
    Extracts the STM and parameter Jacobian from propagated states.

    Parameters
    ----------
    propagator : NumericalPropagator
        Propagator the matrices are computed by
    stm_name : str
        Name of the integrated STM
    initial_stm : np.ndarray
        6x6 seed dY/dY0 at the reference state
    initial_jacobian_columns : np.ndarray or None
        6xn seed dY/dp for the first n selected parameters
    """

    def __init__(self, propagator, stm_name, initial_stm, initial_jacobian_columns):
        self._propagator = propagator
        self._stm_name = stm_name
        self._initial_stm = initial_stm
        self._initial_columns = initial_jacobian_columns
        self._reference_state = None

    @property
    def stm_name(self):
        return self._stm_name

    @property
    def reference_state(self):
        return self._reference_state

    def _cartesian_jacobian(self, orbit):
        """d(propagator parameters)/d(Cartesian) at ``orbit``."""
        if self._propagator.orbit_type == OrbitType.CARTESIAN:
            return np.eye(6)
        return jacobian_wrt_cartesian(orbit, self._propagator.orbit_type,
                                      self._propagator.angle_type)

    def _cartesian_seed_basis(self, orbit):
        if self._propagator.orbit_type == OrbitType.CARTESIAN:
            return np.eye(6)
        return jacobian_of_cartesian(orbit, self._propagator.orbit_type,
                                     self._propagator.angle_type)

    def set_reference_state(self, state):
        """
        Use ``state`` as the epoch of the matrices and seed it.

        Returns
        -------
        SpacecraftState
            ``state`` with the Cartesian STM (and integrated columns) added
        """
        self._reference_state = state
        return self.seed(state, force=True)

    def seed(self, state, force=False):
        """
        Add the missing matrices blocks to ``state`` (all of them if ``force``).

        The STM seed is dC/dY at ``state`` times ``initial_stm``. Columns
        take the matching column of ``initial_jacobian_columns`` mapped the
        same way, or zeros. Trigger date columns are not integrated and
        need no seed.

        Raises
        ------
        DimensionMismatchError
            If ``initial_jacobian_columns`` does not have one column per
            selected parameter (checked at set up only once a parameter is
            selected)
        """
        names = self.get_jacobians_columns_names()
        if self._initial_columns is not None and (names or not force):
            if self._initial_columns.shape[1] != len(names):
                raise DimensionMismatchError(6, len(names), *self._initial_columns.shape)
        basis = None
        if force or not state.has_additional_state(self._stm_name):
            basis = self._cartesian_seed_basis(state.orbit)
            state = state.add_additional_state(
                self._stm_name, (basis @ self._initial_stm).ravel())
        integrated = set(self._propagator.integrated_parameter_names())
        for j, name in enumerate(names):
            if name not in integrated or (state.has_additional_state(name) and not force):
                continue
            if self._initial_columns is not None:
                if basis is None:
                    basis = self._cartesian_seed_basis(state.orbit)
                column = basis @ self._initial_columns[:, j]
            else:
                column = np.zeros(6)
            state = state.add_additional_state(name, column)
        return state

    def get_jacobians_columns_names(self):
        """Names of the selected parameters, in column order."""
        return self._propagator.selected_parameter_names()

    def get_state_transition_matrix(self, state):
        """
        dY/dY0 at ``state`` in the propagator orbit/angle type.

        Returns None if ``state`` does not carry the matrix yet.
        """
        if not state.has_additional_state(self._stm_name):
            return None
        phi = state.get_additional_state(self._stm_name).reshape(6, 6)
        return self._cartesian_jacobian(state.orbit) @ phi

    def get_parameters_jacobian(self, state):
        """
        dY/dp at ``state`` for the selected parameters (6xn).

        Returns None if no parameter is selected or ``state`` does not carry
        the columns yet.
        """
        names = self.get_jacobians_columns_names()
        if not names or not all(state.has_additional_state(name) for name in names):
            return None
        columns = np.column_stack([state.get_additional_state(name) for name in names])
        return self._cartesian_jacobian(state.orbit) @ columns

    @staticmethod
    def check_seed(matrix, rows, columns):
        """Validate a seed matrix shape (columns None means any)."""
        matrix = np.asarray(matrix, dtype=float)
        if matrix.ndim != 2:
            shape = matrix.shape + (1,) * (2 - matrix.ndim)
            raise DimensionMismatchError(rows, columns if columns is not None else 0,
                                         shape[0], shape[1])
        if matrix.shape[0] != rows or (columns is not None and matrix.shape[1] != columns):
            raise DimensionMismatchError(rows, columns if columns is not None
                                         else matrix.shape[1],
                                         matrix.shape[0], matrix.shape[1])
        return matrix
