"""
Dromos: Numerical Orbit Propagation

A Python package for numerical spacecraft orbit propagation with event
detection, ephemeris generation, state transition matrices and parameter
Jacobians (including closed-form maneuver trigger date sensitivities), and
lock-step multi-satellite propagation.
"""

# Orbit parameter Jacobians need double precision
import jax
jax.config.update("jax_enable_x64", True)

# Configuration and errors
from .config import config, temp_config
from .errors import (
    DromosError, ConfigurationError, NotInitializedError, DuplicateNameError,
    DimensionMismatchError, UnsupportedParameterError, PropagationStateError,
    UnknownAdditionalStateError, OrbitError, HyperbolicOrbitError,
    SingularJacobianError, OutOfRangeError, EphemerisBeforeRangeError,
    EphemerisAfterRangeError, EphemerisNotAvailableError, NonResettableStateError,
    IntegrationError, EventConvergenceError, StepSizeTooSmallError,
)

# Orbit and state representation
from .defaults import (BodyParams, AtmoParams, EARTH, MOON, MARS, EARTH_STD_ATMO,
                       J2000_EPOCH, G0_STANDARD_GRAVITY, DEFAULT_FRAME)
from .orbital_elements import (OrbitalElements, OrbitalElements as OE, OrbitType,
                               AngleType, to_array, from_array, to_array_with_derivatives,
                               jacobian_wrt_cartesian, jacobian_of_cartesian)
from .tolerances import tolerances
from .attitude import Attitude, AttitudeProvider, InertialAttitude, FixedAttitude
from .state import SpacecraftState
from .satellite import Satellite, Satellite as Sat
from .parameters import ParameterDriver

# Dynamics
from .forces import ForceModel, JaxForceModel, J2Perturbation, ExponentialDrag
from .maneuvers import DateBasedManeuverTriggers, ConstantThrustManeuver
from .integrators import (AdaptiveStepIntegrator, DormandPrince853Integrator,
                          DormandPrince54Integrator)

# Propagation
from .sampling import StepInterpolator, StepHandler, FixedStepHandler, StepNormalizer
from .events import (Action, EventHandler, ContinueOnEvent, StopOnEvent,
                     StopOnIncreasing, StopOnDecreasing, RecordAndContinue,
                     RecordedEvent, EventDetector, DateDetector, ApsideDetector,
                     NodeDetector, AltitudeDetector, FunctionalDetector,
                     EventSlopeFilter)
from .propagator import (PropagatorStatus, AbstractPropagator, AdditionalStateProvider,
                         AdditionalDerivativesProvider)
from .numerical import NumericalPropagator
from .ephemeris import Ephemeris, EphemerisGenerator
from .jacobians import MatricesHarvester
from .parallel import PropagatorsParallelizer, MultiSatStepHandler

# Package metadata
__version__ = "0.1.0"

# Define what gets imported with "from dromos import *"
__all__ = [
    # Configuration
    "config",
    "temp_config",
    # Errors
    "DromosError",
    "ConfigurationError",
    "NotInitializedError",
    "DuplicateNameError",
    "DimensionMismatchError",
    "UnsupportedParameterError",
    "PropagationStateError",
    "UnknownAdditionalStateError",
    "OrbitError",
    "HyperbolicOrbitError",
    "SingularJacobianError",
    "OutOfRangeError",
    "EphemerisBeforeRangeError",
    "EphemerisAfterRangeError",
    "EphemerisNotAvailableError",
    "NonResettableStateError",
    "IntegrationError",
    "EventConvergenceError",
    "StepSizeTooSmallError",
    # Orbits and states
    "OrbitalElements",
    "OrbitType",
    "AngleType",
    "to_array",
    "from_array",
    "to_array_with_derivatives",
    "jacobian_wrt_cartesian",
    "jacobian_of_cartesian",
    "tolerances",
    "Attitude",
    "AttitudeProvider",
    "InertialAttitude",
    "FixedAttitude",
    "SpacecraftState",
    "Satellite",
    "ParameterDriver",
    "BodyParams",
    "AtmoParams",
    # Dynamics
    "ForceModel",
    "JaxForceModel",
    "J2Perturbation",
    "ExponentialDrag",
    "DateBasedManeuverTriggers",
    "ConstantThrustManeuver",
    "AdaptiveStepIntegrator",
    "DormandPrince853Integrator",
    "DormandPrince54Integrator",
    # Propagation
    "StepInterpolator",
    "StepHandler",
    "FixedStepHandler",
    "StepNormalizer",
    "Action",
    "EventHandler",
    "ContinueOnEvent",
    "StopOnEvent",
    "StopOnIncreasing",
    "StopOnDecreasing",
    "RecordAndContinue",
    "RecordedEvent",
    "EventDetector",
    "DateDetector",
    "ApsideDetector",
    "NodeDetector",
    "AltitudeDetector",
    "FunctionalDetector",
    "EventSlopeFilter",
    "PropagatorStatus",
    "AbstractPropagator",
    "AdditionalStateProvider",
    "AdditionalDerivativesProvider",
    "NumericalPropagator",
    "Ephemeris",
    "EphemerisGenerator",
    "MatricesHarvester",
    "PropagatorsParallelizer",
    "MultiSatStepHandler",
    # Abbreviations
    "OE",
    "Sat",
    # Constants
    "EARTH",
    "MOON",
    "MARS",
    "EARTH_STD_ATMO",
    "J2000_EPOCH",
    "G0_STANDARD_GRAVITY",
    "DEFAULT_FRAME",
]
