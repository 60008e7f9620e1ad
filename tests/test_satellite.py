"""
Test suite for Satellite class.

Tests cover:
- Valid construction patterns
- Parameter validation
- Property access and immutability
- Initial state creation
- Special methods (__repr__, __eq__, __hash__)
"""

import numpy as np
import pytest
from scipy.spatial.transform import Rotation

from dromos import FixedAttitude, Satellite, SpacecraftState


@pytest.fixture
def satellite():
    return Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0, name="TestSat")


class TestConstruction:
    """Test valid Satellite construction patterns."""

    def test_basic_construction(self):
        """Satellite can be constructed with valid parameters."""
        sat = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)

        assert sat.mass == 500.0
        assert sat.drag_coeff == 2.2
        assert sat.cross_section == 5.0
        assert sat.name is None

    def test_construction_with_name(self, satellite):
        """Satellite can be constructed with optional name."""
        assert satellite.name == "TestSat"

    def test_values_stored_as_float(self):
        """Integer inputs are stored as floats."""
        sat = Satellite(mass=500, drag_coeff=2, cross_section=5)

        assert isinstance(sat.mass, float)
        assert isinstance(sat.drag_coeff, float)
        assert isinstance(sat.cross_section, float)


    def test_ballistic_coefficient(self, satellite):
        assert satellite.ballistic_coefficient() == pytest.approx(2.2 * 5.0 / 500.0)
        assert satellite.ballistic_coefficient(250.0) == pytest.approx(2.2 * 5.0 / 250.0)


class TestValidation:
    """Test parameter validation."""

    @pytest.mark.parametrize("mass", [-100.0, 0.0])
    def test_non_positive_mass_rejected(self, mass):
        with pytest.raises(ValueError, match="Mass must be positive"):
            Satellite(mass=mass, drag_coeff=2.2, cross_section=5.0)

    @pytest.mark.parametrize("drag_coeff", [-2.2, 0.0])
    def test_non_positive_drag_coeff_rejected(self, drag_coeff):
        with pytest.raises(ValueError, match="Drag coefficient must be positive"):
            Satellite(mass=500.0, drag_coeff=drag_coeff, cross_section=5.0)

    @pytest.mark.parametrize("cross_section", [-5.0, 0.0])
    def test_non_positive_cross_section_rejected(self, cross_section):
        with pytest.raises(ValueError, match="Cross-sectional area must be positive"):
            Satellite(mass=500.0, drag_coeff=2.2, cross_section=cross_section)


class TestImmutability:
    """Test that Satellite is immutable after construction."""

    def test_properties_are_read_only(self, satellite):
        """Cannot assign to properties."""
        with pytest.raises(AttributeError):
            satellite.mass = 600.0

        with pytest.raises(AttributeError):
            satellite.drag_coeff = 2.5

        with pytest.raises(AttributeError):
            satellite.cross_section = 6.0

        with pytest.raises(AttributeError):
            satellite.name = "NewName"


class TestInitialState:
    """Spacecraft states built from a satellite."""

    def test_initial_state_uses_satellite_mass(self, satellite, cartesian_orbit):
        state = satellite.initial_state(cartesian_orbit)

        assert isinstance(state, SpacecraftState)
        assert state.mass == 500.0
        assert state.date == cartesian_orbit.date
        assert np.array_equal(state.pv, cartesian_orbit.pv)

    def test_initial_state_with_attitude_provider(self, satellite, cartesian_orbit):
        rotation = Rotation.from_euler('z', 90.0, degrees=True)
        state = satellite.initial_state(cartesian_orbit, FixedAttitude(rotation))

        assert state.attitude.date == cartesian_orbit.date
        assert np.allclose(state.attitude.to_inertial([1.0, 0.0, 0.0]),
                           [0.0, -1.0, 0.0], atol=1e-15)


# =============================================================================
# Test Special Methods
# =============================================================================

class TestSpecialMethods:
    """Test special methods (__repr__, __eq__, __hash__)."""

    def test_repr_with_name(self, satellite):
        """__repr__() works for named satellite."""
        repr_str = repr(satellite)

        assert "TestSat" in repr_str
        assert "500" in repr_str
        assert "2.20" in repr_str

    def test_repr_without_name(self):
        """__repr__() works for unnamed satellite."""
        sat = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)

        assert "unnamed" in repr(sat).lower()

    def test_equal_satellites_compare_equal(self):
        sat1 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)
        sat2 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)

        assert sat1 == sat2

    def test_different_satellites_not_equal(self):
        sat1 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)
        sat2 = Satellite(mass=600.0, drag_coeff=2.2, cross_section=5.0)

        assert sat1 != sat2

    def test_equality_uses_tolerances(self):
        """Nearly equal floats are considered equal."""
        sat1 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)
        sat2 = Satellite(mass=500.0 + 1e-13, drag_coeff=2.2, cross_section=5.0)

        assert sat1 == sat2

    def test_different_names_not_equal(self):
        sat1 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0, name="Sat1")
        sat2 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0, name="Sat2")

        assert sat1 != sat2

    def test_equality_with_non_satellite(self, satellite):
        """Comparing with non-Satellite returns NotImplemented."""
        assert satellite.__eq__("not a satellite") is NotImplemented

    def test_equal_satellites_same_hash(self):
        sat1 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)
        sat2 = Satellite(mass=500.0, drag_coeff=2.2, cross_section=5.0)

        assert hash(sat1) == hash(sat2)
        assert len({sat1, sat2}) == 1
