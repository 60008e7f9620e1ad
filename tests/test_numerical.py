"""
Test suite for NumericalPropagator.

Tests cover:
1. Keplerian motion in every integrated orbit type
2. Configuration errors and status state machine
3. Additional state and derivatives providers
4. Step handlers and fixed step sampling
5. Perturbed propagation (J2, thrust)
"""

import numpy as np
import pytest

from dromos import (
    ConstantThrustManeuver, DateBasedManeuverTriggers, DormandPrince54Integrator,
    DormandPrince853Integrator, DuplicateNameError, FixedStepHandler, J2Perturbation,
    NotInitializedError, NumericalPropagator, OrbitalElements, OrbitType, PropagationStateError,
    PropagatorStatus, SpacecraftState, StepHandler, StepSizeTooSmallError,
    UnknownAdditionalStateError, to_array,
)

from conftest import (MU, LinearProvider, RadiusProvider, make_integrator,
                      make_propagator)


def wrap(angle):
    return (angle + np.pi) % (2 * np.pi) - np.pi


class DateRecorder(StepHandler):

    def __init__(self):
        self.initial_date = None
        self.steps = []
        self.final_date = None

    def init(self, initial_state, target):
        self.initial_date = initial_state.date
        self.steps = []

    def handle_step(self, interpolator):
        self.steps.append((interpolator.previous_date, interpolator.current_date))

    def finish(self, final_state):
        self.final_date = final_state.date


class GridRecorder(FixedStepHandler):

    def __init__(self):
        self.dates = []
        self.finished = False

    def handle_step(self, state):
        self.dates.append(state.date)

    def finish(self, final_state):
        self.finished = True


# =============================================================================
# Test Keplerian Motion
# =============================================================================

class TestKeplerianMotion:
    """Propagation without force models follows the two-body solution."""

    def test_equinoctial_forward_and_backward(self, keplerian_orbit):
        """Only the mean longitude moves, at the mean motion."""
        state = SpacecraftState(keplerian_orbit, mass=1000.0)
        propagator = make_propagator(state, 'equi', 'eccentric')
        reference = to_array(keplerian_orbit, 'equi', 'mean')
        n = keplerian_orbit.mean_motion()

        back = propagator.propagate(-60.0)
        final = propagator.propagate(3200.0)

        assert back.date == -60.0
        assert final.date == 3200.0
        elements = to_array(final.orbit, 'equi', 'mean')
        assert np.isclose(elements[0], reference[0], rtol=1e-10, atol=0)
        assert np.allclose(elements[1:5], reference[1:5], rtol=0, atol=1e-10)
        assert abs(wrap(elements[5] - (reference[5] + n * 3200.0))) < 2e-9
        assert final.mass == 1000.0

    @pytest.mark.parametrize("orbit_type, angle_type", [
        ('cart', 'true'), ('kep', 'true'), ('kep', 'mean'), ('circ', 'eccentric'),
        ('equi', 'true'), ('equi', 'mean')])
    def test_every_orbit_type(self, keplerian_orbit, orbit_type, angle_type):
        """All integration coordinates give the analytical two-body position."""
        state = SpacecraftState(keplerian_orbit)
        propagator = make_propagator(state, orbit_type, angle_type)
        final = propagator.propagate(2000.0)

        mean = to_array(keplerian_orbit, 'kep', 'mean')
        mean[5] += keplerian_orbit.mean_motion() * 2000.0
        expected = OrbitalElements(mean, 'kep', 'mean', date=2000.0, mu=MU)

        assert final.orbit.orbit_type == OrbitType(propagator.orbit_type)
        assert np.allclose(final.position, expected.position, rtol=0, atol=0.05)
        assert np.allclose(final.velocity, expected.velocity, rtol=0, atol=5e-5)

    def test_dormand_prince_54(self, keplerian_orbit):
        integrator = DormandPrince54Integrator(1e-3, 60.0, 1e-3, 1e-12)
        propagator = NumericalPropagator(integrator, 'kep', 'mean')
        propagator.set_initial_state(SpacecraftState(keplerian_orbit))

        final = propagator.propagate(600.0)

        assert np.isclose(final.orbit.a, keplerian_orbit.a, rtol=1e-12)
        assert propagator.get_calls() > 0

    def test_no_op_propagation(self, initial_state):
        """Propagating to the initial date returns the initial state."""
        propagator = make_propagator(initial_state)
        final = propagator.propagate(initial_state.date)

        assert final.date == initial_state.date
        assert np.array_equal(final.pv, initial_state.pv)
        assert final.mass == initial_state.mass
        assert propagator.status == PropagatorStatus.COMPLETED

    def test_final_state_becomes_initial_state(self, initial_state):
        propagator = make_propagator(initial_state)
        final = propagator.propagate(120.0)

        assert propagator.initial_state is final
        assert propagator.initial_state.date == 120.0

    def test_mu_override(self, initial_state):
        propagator = make_propagator(initial_state)
        propagator.set_mu(MU)

        assert propagator.mu == MU
        with pytest.raises(ValueError, match="must be positive"):
            propagator.set_mu(0.0)


# =============================================================================
# Test Configuration Errors
# =============================================================================

class TestConfiguration:
    """Status state machine and configuration errors."""

    def test_status_transitions(self, initial_state):
        integrator = make_integrator(initial_state.orbit)
        propagator = NumericalPropagator(integrator)

        assert propagator.status == PropagatorStatus.UNCONFIGURED
        propagator.set_initial_state(initial_state)
        assert propagator.status == PropagatorStatus.INITIALIZED
        propagator.propagate(10.0)
        assert propagator.status == PropagatorStatus.COMPLETED

    def test_not_initialized(self, cartesian_orbit):
        propagator = NumericalPropagator(make_integrator(cartesian_orbit))

        with pytest.raises(NotInitializedError):
            propagator.propagate(100.0)
        with pytest.raises(NotInitializedError):
            propagator.get_initial_state()

    def test_duplicate_provider_name(self, initial_state):
        """Integrated and non-integrated providers share one name space."""
        propagator = make_propagator(initial_state)
        propagator.add_additional_derivatives_provider(LinearProvider())

        with pytest.raises(DuplicateNameError) as info:
            propagator.add_additional_state_provider(LinearProvider())
        assert info.value.name == "linear"
        with pytest.raises(DuplicateNameError):
            propagator.add_additional_derivatives_provider(LinearProvider())

    def test_duplicate_parameter_driver(self, initial_state):
        propagator = make_propagator(initial_state)
        propagator.add_force_model(J2Perturbation())

        with pytest.raises(DuplicateNameError, match="J2"):
            propagator.add_force_model(J2Perturbation())

    def test_reconfiguration_during_propagation(self, initial_state):
        """Step handlers cannot reconfigure the propagator that calls them."""
        propagator = make_propagator(initial_state)

        class Reconfigurer(StepHandler):
            def handle_step(self, interpolator):
                propagator.set_orbit_type('cart')

        propagator.add_step_handler(Reconfigurer())

        with pytest.raises(PropagationStateError, match="during propagation"):
            propagator.propagate(100.0)
        assert propagator.status == PropagatorStatus.FAILED

    def test_handler_error_aborts_propagation(self, initial_state):
        propagator = make_propagator(initial_state)

        class Failing(StepHandler):
            def handle_step(self, interpolator):
                raise RuntimeError("handler failure")

        propagator.add_step_handler(Failing())

        with pytest.raises(RuntimeError, match="handler failure"):
            propagator.propagate(100.0)
        assert propagator.status == PropagatorStatus.FAILED

    def test_step_size_too_small(self, initial_state):
        integrator = DormandPrince853Integrator(100.0, 300.0, 1e-12, 1e-14)
        propagator = NumericalPropagator(integrator, 'cart')
        propagator.set_initial_state(initial_state)

        with pytest.raises(StepSizeTooSmallError):
            propagator.propagate(1000.0)

    def test_invalid_integrator_settings(self):
        with pytest.raises(ValueError, match="Invalid step bounds"):
            DormandPrince853Integrator(10.0, 1.0, 1e-3, 1e-10)
        with pytest.raises(ValueError, match="Tolerances must be positive"):
            DormandPrince853Integrator(1e-3, 10.0, 0.0, 1e-10)

    def test_repr(self, initial_state):
        propagator = make_propagator(initial_state)

        assert "EQUINOCTIAL" in repr(propagator)
        assert "INITIALIZED" in repr(propagator)


# =============================================================================
# Test Additional States
# =============================================================================

class TestAdditionalStates:
    """Integrated and computed additional states."""

    def test_integrated_state(self, initial_state):
        propagator = make_propagator(initial_state.add_additional_state("linear", [2.0]))
        propagator.add_additional_derivatives_provider(LinearProvider(rate=0.5))

        final = propagator.propagate(400.0)

        assert np.isclose(final.get_additional_state("linear")[0], 202.0, rtol=1e-10)
        assert np.array_equal(final.get_additional_state_derivative("linear"), [0.5])
        assert propagator.is_additional_state_managed("linear")

    def test_integrated_state_backward(self, initial_state):
        propagator = make_propagator(initial_state.add_additional_state("linear", [0.0]))
        propagator.add_additional_derivatives_provider(LinearProvider())

        final = propagator.propagate(-300.0)

        assert np.isclose(final.get_additional_state("linear")[0], -300.0, rtol=1e-10)

    def test_missing_initial_value(self, initial_state):
        propagator = make_propagator(initial_state)
        propagator.add_additional_derivatives_provider(LinearProvider())

        with pytest.raises(UnknownAdditionalStateError):
            propagator.propagate(100.0)

    def test_zero_dimension_rejected(self, initial_state):
        class EmptyProvider(LinearProvider):
            @property
            def dimension(self):
                return 0

        propagator = make_propagator(initial_state)

        with pytest.raises(ValueError, match="dimension 0"):
            propagator.add_additional_derivatives_provider(EmptyProvider())

    def test_computed_state(self, initial_state):
        propagator = make_propagator(initial_state)
        propagator.add_additional_state_provider(RadiusProvider())

        final = propagator.propagate(300.0)

        assert np.isclose(final.get_additional_state("radius")[0],
                          np.linalg.norm(final.position), rtol=1e-15)
        assert propagator.managed_additional_states == ["radius"]

    def test_computed_state_seen_by_handlers(self, initial_state):
        propagator = make_propagator(initial_state)
        propagator.add_additional_state_provider(RadiusProvider())
        seen = []

        class Checker(StepHandler):
            def handle_step(self, interpolator):
                seen.append(interpolator.current_state.has_additional_state("radius"))

        propagator.add_step_handler(Checker())
        propagator.propagate(300.0)

        assert seen and all(seen)


# =============================================================================
# Test Step Handlers
# =============================================================================

class TestStepHandlers:
    """Variable and fixed step handlers."""

    def test_steps_cover_interval(self, initial_state):
        propagator = make_propagator(initial_state, max_step=60.0)
        recorder = propagator.add_step_handler(DateRecorder())

        propagator.propagate(500.0)

        assert recorder.initial_date == 0.0
        assert recorder.final_date == 500.0
        assert recorder.steps[0][0] == 0.0
        assert recorder.steps[-1][1] == 500.0
        for (_, end), (begin, _) in zip(recorder.steps[:-1], recorder.steps[1:]):
            assert end == begin
        assert len(recorder.steps) >= 9

    def test_fixed_step_grid(self, initial_state):
        """Grid dates from the start, both bounds included."""
        propagator = make_propagator(initial_state)
        grid = GridRecorder()
        propagator.add_fixed_step_handler(60.0, grid)

        propagator.propagate(250.0)

        assert np.allclose(grid.dates, [0.0, 60.0, 120.0, 180.0, 240.0, 250.0])
        assert grid.finished

    def test_fixed_step_grid_backward(self, initial_state):
        propagator = make_propagator(initial_state)
        grid = GridRecorder()
        propagator.add_fixed_step_handler(100.0, grid)

        propagator.propagate(-300.0)

        assert np.allclose(grid.dates, [0.0, -100.0, -200.0, -300.0])

    def test_remove_step_handler(self, initial_state):
        propagator = make_propagator(initial_state)
        grid = GridRecorder()
        normalizer = propagator.add_fixed_step_handler(60.0, grid)
        propagator.remove_step_handler(normalizer)

        propagator.propagate(120.0)

        assert grid.dates == []
        assert propagator.step_handlers == []

    def test_invalid_fixed_step(self, initial_state):
        propagator = make_propagator(initial_state)

        with pytest.raises(ValueError, match="Fixed step must be positive"):
            propagator.add_fixed_step_handler(0.0, GridRecorder())

    def test_zero_span_run(self, initial_state):
        """Handlers are initialized and finished even without any step."""
        propagator = make_propagator(initial_state)
        recorder = propagator.add_step_handler(DateRecorder())
        grid = GridRecorder()
        propagator.add_fixed_step_handler(60.0, grid)

        final = propagator.propagate(0.0)

        assert final.date == 0.0
        assert recorder.initial_date == 0.0
        assert recorder.final_date == 0.0
        assert recorder.steps == []
        assert grid.dates == [0.0]
        assert grid.finished

    def test_two_dates_skip_first_leg(self, initial_state):
        """propagate(start, target) calls handlers on the second leg only."""
        propagator = make_propagator(initial_state)
        recorder = propagator.add_step_handler(DateRecorder())

        final = propagator.propagate(100.0, 200.0)

        assert final.date == 200.0
        assert recorder.initial_date == 100.0
        assert recorder.steps[0][0] == 100.0


# =============================================================================
# Test Perturbed Propagation
# =============================================================================

class TestPerturbedPropagation:
    """Force models through the Gauss equations."""

    def test_j2_cartesian_and_equinoctial_agree(self, initial_state):
        finals = []
        for orbit_type in ('cart', 'equi'):
            propagator = make_propagator(initial_state, orbit_type)
            propagator.add_force_model(J2Perturbation())
            finals.append(propagator.propagate(3000.0))

        assert np.allclose(finals[0].position, finals[1].position, rtol=0, atol=0.5)

    def test_j2_changes_the_orbit(self, initial_state):
        kepler = make_propagator(initial_state).propagate(3000.0)
        propagator = make_propagator(initial_state)
        propagator.add_force_model(J2Perturbation())
        perturbed = propagator.propagate(3000.0)

        assert np.linalg.norm(perturbed.position - kepler.position) > 100.0

    def test_thrust_consumes_mass(self, initial_state):
        triggers = DateBasedManeuverTriggers("BURN", 100.0, 200.0)
        maneuver = ConstantThrustManeuver(triggers, thrust=10.0, isp=300.0,
                                          direction=[0.0, 1.0, 0.0])
        propagator = make_propagator(initial_state)
        propagator.add_force_model(maneuver)

        final = propagator.propagate(1000.0)

        flow_rate = maneuver.parameter_drivers[1].value
        assert np.isclose(final.mass, 1000.0 + 200.0 * flow_rate, rtol=1e-9)
        assert not triggers.is_firing

    def test_thrust_raises_energy(self, initial_state):
        """Thrust along the velocity raises the semi-major axis."""
        orbit = initial_state.orbit
        direction = orbit.velocity / np.linalg.norm(orbit.velocity)
        triggers = DateBasedManeuverTriggers("BURN", 0.0, 60.0)
        maneuver = ConstantThrustManeuver(triggers, 10.0, 300.0, direction)
        propagator = make_propagator(initial_state)
        propagator.add_force_model(maneuver)

        final = propagator.propagate(120.0)

        assert final.orbit.a > orbit.a

    def test_short_burn_velocity_increment(self, initial_state):
        """A short burn adds F/m dt along the thrust direction."""
        triggers = DateBasedManeuverTriggers("burn", 100.0, 50.0)
        maneuver = ConstantThrustManeuver(triggers, 5.0, 3000.0, [0.0, 0.0, 1.0])
        kepler = make_propagator(initial_state, 'cart').propagate(150.0)
        propagator = make_propagator(initial_state, 'cart')
        propagator.add_force_model(maneuver)

        final = propagator.propagate(150.0)

        delta_v = final.velocity - kepler.velocity
        assert np.isclose(delta_v[2], 5.0 * 50.0 / 1000.0, rtol=1e-2)
        assert final.mass < 1000.0
