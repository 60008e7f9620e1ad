"""
Shared fixtures for the Dromos test suite.
"""

import numpy as np
import pytest

from dromos import (
    EARTH, AdditionalDerivativesProvider, AdditionalStateProvider,
    DormandPrince853Integrator, NumericalPropagator, OrbitalElements, SpacecraftState,
    config, tolerances,
)

MU = EARTH.mu
POSITION = np.array([7.0e6, 1.0e6, 4.0e6])
VELOCITY = np.array([-500.0, 8000.0, 1000.0])


@pytest.fixture(autouse=True)
def reset_config():
    """Every test starts from the default configuration."""
    config.reset()
    yield
    config.reset()


@pytest.fixture
def cartesian_orbit():
    """Inclined, slightly eccentric LEO orbit at J2000."""
    return OrbitalElements.from_pv(POSITION, VELOCITY, mu=MU)


@pytest.fixture
def keplerian_orbit():
    """Moderately eccentric inclined orbit given by Keplerian elements."""
    return OrbitalElements(a=7.5e6, e=0.05, i=np.radians(35.0), raan=np.radians(40.0),
                           argp=np.radians(60.0), nu=np.radians(20.0), mu=MU)


@pytest.fixture
def initial_state(cartesian_orbit):
    return SpacecraftState(cartesian_orbit, mass=1000.0)


def make_integrator(orbit, orbit_type='equi', angle_type='eccentric',
                    position_accuracy=1.0e-3, min_step=1.0e-3, max_step=300.0):
    """DOP853 integrator with tolerances for the given integration coordinates."""
    abs_tol, rel_tol = tolerances(position_accuracy, orbit, orbit_type, angle_type)
    return DormandPrince853Integrator(min_step, max_step, abs_tol, rel_tol)


def make_propagator(state, orbit_type='equi', angle_type='eccentric', **kwargs):
    """Numerical propagator initialized with ``state``."""
    integrator = make_integrator(state.orbit, orbit_type, angle_type, **kwargs)
    propagator = NumericalPropagator(integrator, orbit_type, angle_type)
    propagator.set_initial_state(state)
    return propagator


@pytest.fixture
def integrator_factory():
    return make_integrator


@pytest.fixture
def propagator_factory():
    return make_propagator


class LinearProvider(AdditionalDerivativesProvider):
    """Integrated state growing at a constant rate."""

    def __init__(self, rate=1.0, name="linear"):
        self._rate = rate
        self._name = name

    @property
    def name(self):
        return self._name

    @property
    def dimension(self):
        return 1

    def derivatives(self, state):
        return np.array([self._rate])


class RadiusProvider(AdditionalStateProvider):
    """Distance to the central body."""

    @property
    def name(self):
        return "radius"

    def get_additional_state(self, state):
        return np.linalg.norm(state.position)

