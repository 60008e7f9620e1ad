"""
Adaptive step integrators.

Thin configuration wrappers around SciPy's step-wise explicit Runge-Kutta
solvers. Propagators drive the solver one accepted step at a time and use
the dense output of each step for events and step handlers.
"""

import logging

import numpy as np
from scipy.integrate import DOP853, RK45

from .errors import IntegrationError, StepSizeTooSmallError

logger = logging.getLogger(__name__)


class AdaptiveStepIntegrator:
    """
    Adaptive step size integrator settings.

    Parameters
    ----------
    min_step : float
        Minimal step size [s], a smaller step needed before the end of the
        integration interval raises StepSizeTooSmallError
    max_step : float
        Maximal step size [s]
    abs_tol : float or array-like
        Absolute tolerance, scalar or one value per main component
    rel_tol : float or array-like
        Relative tolerance, scalar or one value per main component
    initial_step : float, optional
        First trial step size [s], estimated by SciPy if omitted

    Only the main components (orbit and mass) take part in step size
    control; additional integrated components get an infinite absolute
    tolerance.
    """

    name = None
    _solver_class = None

    def __init__(self, min_step, max_step, abs_tol, rel_tol, initial_step=None):
        if min_step < 0 or max_step <= 0 or min_step > max_step:
            raise ValueError(f"Invalid step bounds [{min_step}, {max_step}]")
        self._min_step = float(min_step)
        self._max_step = float(max_step)
        self._abs_tol = np.atleast_1d(np.array(abs_tol, dtype=float))
        self._rel_tol = np.atleast_1d(np.array(rel_tol, dtype=float))
        if np.any(self._abs_tol <= 0) or np.any(self._rel_tol < 0):
            raise ValueError("Tolerances must be positive")
        self._initial_step = None if initial_step is None else float(initial_step)

    @property
    def min_step(self):
        return self._min_step

    @property
    def max_step(self):
        return self._max_step

    @property
    def abs_tol(self):
        return self._abs_tol.copy()

    @property
    def rel_tol(self):
        return self._rel_tol.copy()

    @property
    def initial_step(self):
        return self._initial_step

    def _main_tolerance(self, tolerance, n_main):
        if tolerance.size == 1:
            return np.full(n_main, tolerance[0])
        if tolerance.size < n_main:
            raise ValueError(f"Expected {n_main} tolerances, got {tolerance.size}")
        return tolerance[:n_main]

    def solver(self, fun, t0, y0, t_bound, n_main=7):
        """
        Create a SciPy solver for one integration leg.

        Parameters
        ----------
        fun : callable
            Right hand side ``fun(t, y)``
        t0, t_bound : float
            Leg start and end times
        y0 : np.ndarray
            Initial vector
        n_main : int, optional
            Number of components under error control (default 7)

        Returns
        -------
        scipy.integrate.OdeSolver
        """
        y0 = np.asarray(y0, dtype=float)
        atol = np.full(y0.size, np.inf)
        atol[:n_main] = self._main_tolerance(self._abs_tol, n_main)
        rtol = float(np.min(self._main_tolerance(self._rel_tol, n_main)))
        first_step = None
        if self._initial_step is not None and t_bound != t0:
            first_step = min(self._initial_step, abs(t_bound - t0))
        logger.debug("Starting %s leg [%s, %s] with %d components",
                     self.name, t0, t_bound, y0.size)
        return self._solver_class(fun, t0, y0, t_bound, max_step=self._max_step,
                                  rtol=rtol, atol=atol, first_step=first_step)

    def step(self, solver):
        """
        Perform one accepted step.

        Raises
        ------
        StepSizeTooSmallError
            If the solver failed or the accepted step is below ``min_step``
            before reaching the end of the leg
        IntegrationError
            If the new vector is not finite
        """
        t_previous = solver.t
        message = solver.step()
        if solver.status == "failed":
            raise StepSizeTooSmallError(
                f"{self.name} failed at t = {t_previous}: {message}")
        if not np.all(np.isfinite(solver.y)):
            raise IntegrationError(f"Non-finite state at t = {solver.t}")
        if solver.t != solver.t_bound and abs(solver.t - t_previous) < self._min_step:
            raise StepSizeTooSmallError(
                f"Step size {abs(solver.t - t_previous)} s below minimal step "
                f"{self._min_step} s at t = {solver.t}")

    def __repr__(self):
        return (f"{type(self).__name__}(min_step={self._min_step}, "
                f"max_step={self._max_step}, initial_step={self._initial_step})")


class DormandPrince853Integrator(AdaptiveStepIntegrator):
    """Dormand-Prince 8(5,3) integrator with 7th order dense output."""
    name = "Dormand-Prince 8 (5, 3)"
    _solver_class = DOP853


class DormandPrince54Integrator(AdaptiveStepIntegrator):
    """Dormand-Prince 5(4) integrator with 4th order dense output."""
    name = "Dormand-Prince 5(4)"
    _solver_class = RK45
