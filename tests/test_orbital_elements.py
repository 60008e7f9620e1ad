"""
Test suite for orbit representation and conversions.

Tests cover:
1. Roundtrip conversions for every orbit type and angle type pair
2. Array mapping (to_array / from_array) and Keplerian rates
3. Jacobians with respect to Cartesian coordinates
4. Singular and hyperbolic geometries
5. Special methods (__eq__, __hash__, __getitem__)
"""

import itertools

import numpy as np
import pytest

from dromos import (
    AngleType, HyperbolicOrbitError, OrbitalElements, OrbitType,
    SingularJacobianError, from_array, jacobian_of_cartesian,
    jacobian_wrt_cartesian, to_array, to_array_with_derivatives,
)

from conftest import MU, POSITION, VELOCITY

# Position round trips are limited by the magnitude of the position (~8e6 m)
POSITION_ATOL = 1e-6   # m
VELOCITY_ATOL = 1e-9   # m/s

TYPE_PAIRS = list(itertools.product(
    [OrbitType.CARTESIAN, OrbitType.KEPLERIAN, OrbitType.CIRCULAR, OrbitType.EQUINOCTIAL],
    [AngleType.TRUE, AngleType.MEAN, AngleType.ECCENTRIC]))


def assert_same_pv(orbit, other):
    assert np.allclose(orbit.position, other.position, rtol=0, atol=POSITION_ATOL)
    assert np.allclose(orbit.velocity, other.velocity, rtol=0, atol=VELOCITY_ATOL)


# =============================================================================
# Test Roundtrip Conversions
# =============================================================================

class TestRoundtripConversions:
    """Conversions are self-consistent (A->B->A gives A)."""

    @pytest.mark.parametrize("orbit_type, angle_type", TYPE_PAIRS)
    def test_array_roundtrip(self, cartesian_orbit, orbit_type, angle_type):
        """orbit -> array -> orbit preserves position and velocity."""
        array = to_array(cartesian_orbit, orbit_type, angle_type)
        rebuilt = from_array(array, orbit_type, angle_type, date=cartesian_orbit.date,
                             mu=MU)

        assert array.shape == (6,)
        assert_same_pv(rebuilt, cartesian_orbit)

    @pytest.mark.parametrize("orbit_type, angle_type", TYPE_PAIRS)
    def test_array_roundtrip_same_pair_exact(self, keplerian_orbit, orbit_type, angle_type):
        """array -> orbit -> array is exact for the same orbit/angle pair."""
        array = to_array(keplerian_orbit, orbit_type, angle_type)
        rebuilt = from_array(array, orbit_type, angle_type, mu=MU)

        assert np.array_equal(to_array(rebuilt, orbit_type, angle_type), array)

    @pytest.mark.parametrize("orbit_type, angle_type", TYPE_PAIRS)
    def test_array_is_writable_copy(self, cartesian_orbit, orbit_type, angle_type):
        array = to_array(cartesian_orbit, orbit_type, angle_type)
        reference = array[5]
        array[5] += 1.0

        assert to_array(cartesian_orbit, orbit_type, angle_type)[5] == reference

    def test_jacobian_is_writable(self, cartesian_orbit):
        jacobian = jacobian_wrt_cartesian(cartesian_orbit, 'equi', 'mean')
        jacobian[0, 0] = 0.0

        assert jacobian[0, 0] == 0.0

    @pytest.mark.parametrize("orbit_type, angle_type", TYPE_PAIRS)
    def test_convert_to_and_back(self, keplerian_orbit, orbit_type, angle_type):
        """convert_to() keeps date, frame and mu and the physical state."""
        converted = keplerian_orbit.convert_to(orbit_type, angle_type)
        back = converted.to_keplerian(AngleType.TRUE)

        assert converted.orbit_type == orbit_type
        assert converted.date == keplerian_orbit.date
        assert converted.frame == keplerian_orbit.frame
        assert converted.mu == keplerian_orbit.mu
        assert np.allclose(back.elements[:5], keplerian_orbit.elements[:5],
                           rtol=1e-10, atol=1e-12)
        assert_same_pv(back, keplerian_orbit)

    def test_cartesian_ignores_angle_type(self, cartesian_orbit):
        """The angle type of Cartesian orbits is always TRUE."""
        orbit = OrbitalElements(cartesian_orbit.elements, 'cart', angle_type='mean')

        assert orbit.angle_type == AngleType.TRUE
        assert np.array_equal(to_array(orbit, 'cart', 'eccentric'), orbit.elements)

    def test_hyperbolic_keplerian_roundtrip(self):
        """Hyperbolic orbits round trip through Keplerian parameters."""
        orbit = OrbitalElements.from_pv(POSITION, 1.6 * VELOCITY, mu=MU)
        assert orbit.is_hyperbolic

        for angle_type in AngleType:
            array = to_array(orbit, OrbitType.KEPLERIAN, angle_type)
            rebuilt = from_array(array, OrbitType.KEPLERIAN, angle_type, mu=MU)
            assert array[0] < 0
            assert array[1] > 1
            assert_same_pv(rebuilt, orbit)


class TestNamedConstruction:
    """Construction from named parameters and string types."""

    def test_keplerian_named(self):
        orbit = OrbitalElements(a=7.0e6, e=0.01, i=0.5, raan=0.1, argp=0.2, M=0.3)

        assert orbit.orbit_type == OrbitType.KEPLERIAN
        assert orbit.angle_type == AngleType.MEAN
        assert np.allclose(orbit.elements, [7.0e6, 0.01, 0.5, 0.1, 0.2, 0.3])

    def test_equinoctial_named(self):
        orbit = OrbitalElements(a=7.0e6, ex=0.01, ey=0.0, hx=0.1, hy=0.0, le=1.0)

        assert orbit.orbit_type == OrbitType.EQUINOCTIAL
        assert orbit.angle_type == AngleType.ECCENTRIC

    def test_string_types(self):
        orbit = OrbitalElements([7.0e6, 0.01, 0.5, 0.1, 0.2, 0.3], 'kep', 'mean')

        assert orbit.orbit_type == OrbitType.KEPLERIAN
        assert orbit.angle_type == AngleType.MEAN

    def test_unknown_type_rejected(self):
        with pytest.raises(ValueError, match="Unknown orbit type"):
            OrbitalElements([7.0e6, 0.01, 0.5, 0.1, 0.2, 0.3], 'delaunay')

    def test_missing_parameters_rejected(self):
        with pytest.raises(ValueError, match="Must provide"):
            OrbitalElements()

    def test_elements_are_read_only(self, keplerian_orbit):
        with pytest.raises(ValueError):
            keplerian_orbit.elements[0] = 1.0


class TestHyperbolic:
    """Circular and equinoctial parameters cannot represent hyperbolas."""

    @pytest.mark.parametrize("orbit_type", [OrbitType.CIRCULAR, OrbitType.EQUINOCTIAL])
    def test_conversion_raises(self, orbit_type):
        orbit = OrbitalElements.from_pv(POSITION, 1.6 * VELOCITY, mu=MU)

        with pytest.raises(HyperbolicOrbitError):
            orbit.convert_to(orbit_type)

    def test_hyperbolic_equinoctial_construction_raises(self):
        with pytest.raises(HyperbolicOrbitError):
            OrbitalElements([-7.0e6, 1.2, 0.0, 0.1, 0.1, 0.0], 'equi')

    def test_orbital_period_undefined(self):
        orbit = OrbitalElements.from_pv(POSITION, 1.6 * VELOCITY, mu=MU)

        with pytest.raises(ValueError, match="undefined for hyperbolic"):
            orbit.orbital_period()


# =============================================================================
# Test Keplerian Rates
# =============================================================================

class TestKeplerRates:
    """Time derivatives under pure Keplerian motion."""

    @pytest.mark.parametrize("orbit_type", [OrbitType.KEPLERIAN, OrbitType.CIRCULAR,
                                            OrbitType.EQUINOCTIAL])
    def test_only_angle_moves(self, keplerian_orbit, orbit_type):
        """Only the anomaly or longitude has a non-zero Keplerian rate."""
        _, rates = to_array_with_derivatives(keplerian_orbit, orbit_type, AngleType.TRUE)

        assert np.all(rates[:5] == 0.0)
        assert rates[5] > 0

    @pytest.mark.parametrize("orbit_type", [OrbitType.KEPLERIAN, OrbitType.CIRCULAR,
                                            OrbitType.EQUINOCTIAL])
    def test_mean_angle_rate_is_mean_motion(self, keplerian_orbit, orbit_type):
        _, rates = to_array_with_derivatives(keplerian_orbit, orbit_type, AngleType.MEAN)

        assert np.isclose(rates[5], keplerian_orbit.mean_motion(), rtol=1e-14)

    @pytest.mark.parametrize("angle_type", [AngleType.TRUE, AngleType.ECCENTRIC])
    def test_rate_matches_finite_difference(self, keplerian_orbit, angle_type):
        """Angle rate agrees with the mean motion mapped through the angle conversion."""
        mean = keplerian_orbit.convert_to('kep', 'mean')
        dt = 1.0
        shifted = OrbitalElements(mean.elements + np.array([0, 0, 0, 0, 0,
                                                             mean.mean_motion() * dt]),
                                  'kep', 'mean', mu=MU)
        before = to_array(mean, 'kep', angle_type)[5]
        after = to_array(shifted, 'kep', angle_type)[5]
        _, rates = to_array_with_derivatives(mean, 'kep', angle_type)

        assert np.isclose((after - before) / dt, rates[5], rtol=1e-4)

    def test_cartesian_rates(self, cartesian_orbit):
        """Cartesian rates are velocity and central acceleration."""
        _, rates = to_array_with_derivatives(cartesian_orbit, OrbitType.CARTESIAN)
        r = np.linalg.norm(POSITION)

        assert np.allclose(rates[:3], VELOCITY)
        assert np.allclose(rates[3:], -MU * POSITION / r**3)


# =============================================================================
# Test Jacobians
# =============================================================================

class TestJacobians:
    """Jacobians of orbit parameters with respect to Cartesian coordinates."""

    @pytest.mark.parametrize("orbit_type, angle_type", TYPE_PAIRS)
    def test_inverse(self, keplerian_orbit, orbit_type, angle_type):
        """jacobian_of_cartesian is the inverse of jacobian_wrt_cartesian."""
        jacobian = jacobian_wrt_cartesian(keplerian_orbit, orbit_type, angle_type)
        inverse = jacobian_of_cartesian(keplerian_orbit, orbit_type, angle_type)
        r = np.linalg.norm(keplerian_orbit.position)
        v = np.linalg.norm(keplerian_orbit.velocity)
        cartesian_scales = np.array([r, r, r, v, v, v])
        if orbit_type == OrbitType.CARTESIAN:
            element_scales = cartesian_scales
        else:
            element_scales = np.array([keplerian_orbit.a, 1.0, 1.0, 1.0, 1.0, 1.0])

        # rows and columns scaled to O(1)
        scaled = jacobian * cartesian_scales[None, :] / element_scales[:, None]
        scaled_inverse = inverse * element_scales[None, :] / cartesian_scales[:, None]

        assert jacobian.shape == (6, 6)
        assert np.allclose(scaled @ scaled_inverse, np.eye(6), rtol=0, atol=1e-9)

    @pytest.mark.parametrize("orbit_type, angle_type", TYPE_PAIRS)
    def test_matches_finite_differences(self, cartesian_orbit, orbit_type, angle_type):
        """Automatic differentiation agrees with central differences."""
        jacobian = jacobian_wrt_cartesian(cartesian_orbit, orbit_type, angle_type)
        steps = [1.0, 1.0, 1.0, 1.0e-3, 1.0e-3, 1.0e-3]
        pv = np.array(cartesian_orbit.pv)

        for j, h in enumerate(steps):
            plus, minus = pv.copy(), pv.copy()
            plus[j] += h
            minus[j] -= h
            column = (to_array(OrbitalElements.cartesian(plus, mu=MU), orbit_type, angle_type)
                      - to_array(OrbitalElements.cartesian(minus, mu=MU), orbit_type,
                                 angle_type)) / (2 * h)
            error = np.linalg.norm(column - jacobian[:, j])
            assert error <= 1e-6 * np.linalg.norm(jacobian[:, j]) + 1e-15

    def test_cartesian_is_identity(self, keplerian_orbit):
        assert np.array_equal(jacobian_wrt_cartesian(keplerian_orbit, 'cart'), np.eye(6))

    def test_circular_keplerian_singular(self):
        orbit = OrbitalElements(a=7.0e6, e=0.0, i=0.5, raan=0.1, argp=0.0, nu=0.3)

        with pytest.raises(SingularJacobianError, match="Keplerian"):
            jacobian_wrt_cartesian(orbit, OrbitType.KEPLERIAN)

    @pytest.mark.parametrize("orbit_type", [OrbitType.KEPLERIAN, OrbitType.CIRCULAR])
    def test_equatorial_singular(self, orbit_type):
        orbit = OrbitalElements(a=7.0e6, e=0.01, i=0.0, raan=0.0, argp=0.2, nu=0.3)

        with pytest.raises(SingularJacobianError, match=orbit_type.name.lower()):
            jacobian_wrt_cartesian(orbit, orbit_type)

    def test_equatorial_equinoctial_regular(self):
        """Equinoctial parameters stay regular for prograde equatorial orbits."""
        orbit = OrbitalElements(a=7.0e6, e=0.01, i=0.0, raan=0.0, argp=0.2, nu=0.3)

        assert np.all(np.isfinite(jacobian_wrt_cartesian(orbit, OrbitType.EQUINOCTIAL)))

    def test_retrograde_equatorial_equinoctial_singular(self):
        orbit = OrbitalElements(a=7.0e6, e=0.01, i=np.pi, raan=0.0, argp=0.2, nu=0.3)

        with pytest.raises(SingularJacobianError, match="equinoctial"):
            jacobian_wrt_cartesian(orbit, OrbitType.EQUINOCTIAL)


# =============================================================================
# Test Orbital Properties
# =============================================================================

class TestOrbitalProperties:
    """Derived quantities agree across representations."""

    @pytest.mark.parametrize("orbit_type", ['cart', 'kep', 'circ', 'equi'])
    def test_semi_major_axis(self, keplerian_orbit, orbit_type):
        converted = keplerian_orbit.convert_to(orbit_type)

        assert np.isclose(converted.a, 7.5e6, rtol=1e-12)

    @pytest.mark.parametrize("orbit_type", ['cart', 'kep', 'circ', 'equi'])
    def test_eccentricity_and_inclination(self, keplerian_orbit, orbit_type):
        converted = keplerian_orbit.convert_to(orbit_type)

        assert np.isclose(converted.e, 0.05, rtol=1e-10)
        assert np.isclose(converted.i, np.radians(35.0), rtol=1e-12)

    def test_period_and_mean_motion(self, keplerian_orbit):
        n = np.sqrt(MU / 7.5e6**3)

        assert np.isclose(keplerian_orbit.mean_motion(), n, rtol=1e-14)
        assert np.isclose(keplerian_orbit.orbital_period(), 2 * np.pi / n, rtol=1e-14)

    def test_specific_energy(self, cartesian_orbit):
        r = np.linalg.norm(POSITION)
        energy = 0.5 * np.dot(VELOCITY, VELOCITY) - MU / r

        assert np.isclose(cartesian_orbit.specific_energy(), energy, rtol=1e-12)

    def test_longitudes_consistent(self, keplerian_orbit):
        """Mean, eccentric and true longitudes satisfy Kepler's equation."""
        ex, ey = keplerian_orbit.ex, keplerian_orbit.ey
        le, lm = keplerian_orbit.le, keplerian_orbit.lm

        assert np.isclose(lm, le - ex * np.sin(le) + ey * np.cos(le), atol=1e-13)
        equi = keplerian_orbit.to_equinoctial(AngleType.TRUE)
        assert np.isclose(equi.elements[5], keplerian_orbit.lv, atol=1e-13)


# =============================================================================
# Test Special Methods
# =============================================================================

class TestSpecialMethods:
    """Tests for special methods (__eq__, __hash__, __getitem__, __iter__)."""

    @pytest.fixture
    def orbit_a(self):
        """Reference orbit."""
        return OrbitalElements([7.0e6, 0.01, np.deg2rad(28.5), 0.0, 0.0, 0.0],
                               OrbitType.KEPLERIAN, validate=False, mu=MU)

    @pytest.fixture
    def orbit_b(self):
        """Identical orbit (different instance)."""
        return OrbitalElements([7.0e6, 0.01, np.deg2rad(28.5), 0.0, 0.0, 0.0],
                               OrbitType.KEPLERIAN, validate=False, mu=MU)

    @pytest.fixture
    def orbit_different(self):
        """Different orbit."""
        return OrbitalElements([8.0e6, 0.02, np.deg2rad(45.0), 0.0, 0.0, 0.0],
                               OrbitType.KEPLERIAN, validate=False, mu=MU)

    def test_eq_identical_orbits(self, orbit_a, orbit_b):
        assert orbit_a == orbit_b
        assert orbit_b == orbit_a

    def test_eq_different_orbits(self, orbit_a, orbit_different):
        assert orbit_a != orbit_different

    def test_eq_different_dates(self, orbit_a):
        later = OrbitalElements(orbit_a.elements, 'kep', date=60.0, mu=MU)

        assert orbit_a != later

    def test_eq_different_element_types(self, orbit_a):
        """Same orbit in different representations is not equal."""
        assert orbit_a != orbit_a.to_cartesian()

    def test_hash_usable_in_set(self, orbit_a, orbit_b, orbit_different):
        orbit_set = {orbit_a, orbit_b, orbit_different}

        assert len(orbit_set) == 2

    def test_indexing_and_iteration(self, orbit_a):
        assert orbit_a[0] == 7.0e6
        assert len(orbit_a) == 6
        assert list(orbit_a) == list(orbit_a.elements)
