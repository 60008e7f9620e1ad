"""
Force models.

A force model contributes a perturbing acceleration (and possibly a mass
rate) on top of the central Keplerian attraction integrated by the
propagator. Models with physical parameters expose them through
:class:`~dromos.parameters.ParameterDriver` instances so the variational
equations can be extended with the corresponding Jacobian columns.

Accelerations of :class:`JaxForceModel` subclasses are written once against
``jax.numpy``; values come from the jitted kernel and partial derivatives
from its forward-mode Jacobian.
"""

import logging
from abc import ABC, abstractmethod

import jax
import jax.numpy as jnp
import numpy as np

from .defaults import AtmoParams, BodyParams, EARTH, EARTH_STD_ATMO
from .parameters import ParameterDriver

logger = logging.getLogger(__name__)


class ForceModel(ABC):
    """Interface of perturbing force models."""

    def init(self, state, target):
        """Called once at propagation start with the initial state and target date."""

    @property
    def parameter_drivers(self):
        """Drivers of the model parameters, in the order of ``parameters()``"""
        return []

    def parameters(self):
        """Current values of the parameter drivers."""
        return np.array([driver.value for driver in self.parameter_drivers], dtype=float)

    @abstractmethod
    def acceleration(self, state, parameters=None):
        """
        Perturbing acceleration in the state frame [m/s^2].

        Parameters
        ----------
        state : SpacecraftState
            Current state
        parameters : array-like, optional
            Parameter values, defaults to the driver values
        """

    def mass_rate(self, state, parameters=None):
        """Mass derivative [kg/s] (default 0)."""
        return 0.0

    @abstractmethod
    def acceleration_derivatives(self, state, parameters=None):
        """
        Acceleration with its partial derivatives.

        Returns
        -------
        acceleration : np.ndarray
            3-element acceleration
        dadr : np.ndarray
            3x3 partials with respect to position
        dadv : np.ndarray
            3x3 partials with respect to velocity
        dadp : np.ndarray
            3xn partials with respect to the n parameter drivers
        """

    def event_detectors(self):
        """Detectors that must be active whenever this model is used."""
        return []

    @property
    def depends_on_position_only(self):
        return False


class JaxForceModel(ForceModel):
    """
    Force model whose acceleration is a ``jax.numpy`` kernel.

    Subclasses implement ``_kernel(position, velocity, mass, params)``. The
    kernel is compiled lazily on first use, together with its Jacobian with
    respect to position, velocity and parameters.
    """

    def __init__(self):
        self._acc_jit = None
        self._jac_jit = None

    @abstractmethod
    def _kernel(self, position, velocity, mass, params):
        """Acceleration as a jax expression."""

    def _compile(self):
        argnums = (0, 1, 3) if self.parameter_drivers else (0, 1)
        self._acc_jit = jax.jit(self._kernel)
        self._jac_jit = jax.jit(jax.jacfwd(self._kernel, argnums=argnums))
        logger.debug("Compiled %s acceleration kernel", type(self).__name__)

    def _arguments(self, state, parameters):
        if parameters is None:
            parameters = self.parameters()
        return (jnp.asarray(state.position), jnp.asarray(state.velocity),
                state.mass, jnp.asarray(parameters, dtype=float))

    def acceleration(self, state, parameters=None):
        if self._acc_jit is None:
            self._compile()
        return np.array(self._acc_jit(*self._arguments(state, parameters)))

    def acceleration_derivatives(self, state, parameters=None):
        if self._acc_jit is None:
            self._compile()
        arguments = self._arguments(state, parameters)
        acceleration = np.array(self._acc_jit(*arguments))
        partials = self._jac_jit(*arguments)
        dadr = np.array(partials[0])
        dadv = np.array(partials[1])
        if len(partials) > 2:
            dadp = np.array(partials[2])
        else:
            dadp = np.zeros((3, 0))
        return acceleration, dadr, dadv, dadp


class J2Perturbation(JaxForceModel):
    """
    Oblateness (J2 zonal harmonic) perturbation.

    Parameters
    ----------
    body : BodyParams, optional
        Central body, must define ``J2`` (default EARTH)
    """

    def __init__(self, body: BodyParams = EARTH):
        super().__init__()
        if body.J2 is None:
            raise ValueError(f"Body {body.name} does not define J2")
        self._body = body
        self._j2_driver = ParameterDriver("J2", body.J2, scale=abs(body.J2) or 1.0)

    @property
    def body(self):
        return self._body

    @property
    def parameter_drivers(self):
        return [self._j2_driver]

    @property
    def depends_on_position_only(self):
        return True

    def _kernel(self, position, velocity, mass, params):
        x, y, z = position[0], position[1], position[2]
        r = jnp.sqrt(x**2 + y**2 + z**2)
        # Common factor: (3/2) * J2 * mu * R^2 / r^5
        factor = 1.5 * params[0] * self._body.mu * self._body.radius**2 / r**5
        z2_r2 = z**2 / r**2
        return factor * jnp.stack([x * (5.0 * z2_r2 - 1.0),
                                   y * (5.0 * z2_r2 - 1.0),
                                   z * (5.0 * z2_r2 - 3.0)])

    def __repr__(self):
        return f"J2Perturbation(body={self._body.name}, J2={self._j2_driver.value})"


class ExponentialDrag(JaxForceModel):
    """
    Atmospheric drag with an exponential density profile.

    The atmosphere co-rotates with the central body about the frame z axis.

    Parameters
    ----------
    body : BodyParams
        Central body, must define ``rotation_rate``
    atmosphere : AtmoParams
        Exponential atmosphere parameters
    satellite : Satellite
        Provides the drag coefficient (reference of the driver) and area
    """

    DRAG_COEFFICIENT = "drag coefficient"

    def __init__(self, body: BodyParams = EARTH, atmosphere: AtmoParams = EARTH_STD_ATMO,
                 satellite=None):
        super().__init__()
        if body.rotation_rate is None:
            raise ValueError(f"Body {body.name} does not define a rotation rate")
        if satellite is None:
            raise ValueError("Drag requires a satellite")
        self._body = body
        self._atmosphere = atmosphere
        self._satellite = satellite
        self._cd_driver = ParameterDriver(self.DRAG_COEFFICIENT, satellite.drag_coeff,
                                          scale=1.0, min_value=0.0)

    @property
    def parameter_drivers(self):
        return [self._cd_driver]

    def density(self, position):
        """Atmospheric density [kg/m^3] at a position."""
        r = np.linalg.norm(position)
        atm = self._atmosphere
        return atm.rho0 * np.exp(-(r - atm.r0) / atm.H)

    def _kernel(self, position, velocity, mass, params):
        atm = self._atmosphere
        omega = self._body.rotation_rate
        r = jnp.sqrt(jnp.sum(position**2))
        # rho(r) = rho0 * exp(-(r - r0)/H)
        rho = atm.rho0 * jnp.exp(-(r - atm.r0) / atm.H)
        # v_rel = v - omega x r, rotation about z
        v_rel = jnp.stack([velocity[0] + omega * position[1],
                           velocity[1] - omega * position[0],
                           velocity[2]])
        v_rel_mag = jnp.sqrt(jnp.sum(v_rel**2))
        drag_factor = -0.5 * rho * params[0] * self._satellite.cross_section / mass * v_rel_mag
        return drag_factor * v_rel

    def __repr__(self):
        return (f"ExponentialDrag(body={self._body.name}, "
                f"Cd={self._cd_driver.value}, A={self._satellite.cross_section})")
