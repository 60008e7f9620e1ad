"""
Test suite for the global configuration.

Tests cover:
- Default values and reset
- temp_config context manager
- Configuration driven defaults (events, propagators, validation)
"""

import warnings

import pytest

from dromos import (
    DormandPrince853Integrator, NodeDetector, NumericalPropagator, OrbitalElements,
    OrbitType, AngleType, config, temp_config,
)


class TestDefaults:
    """Default values and reset."""

    def test_default_values(self):
        assert config.EQUALITY_RTOL == 1e-12
        assert config.DEFAULT_MAX_CHECK == 600.0
        assert config.DEFAULT_THRESHOLD == 1e-6
        assert config.DEFAULT_MAX_ITER == 100
        assert config.DEFAULT_ORBIT_TYPE == 'equinoctial'
        assert config.DEFAULT_ANGLE_TYPE == 'eccentric'

    def test_reset_restores_defaults(self):
        config.DEFAULT_MAX_CHECK = 1.0
        config.STRICT_VALIDATION = False
        config.reset()

        assert config.DEFAULT_MAX_CHECK == 600.0
        assert config.STRICT_VALIDATION is True

    def test_hash_decimals_follow_equality_tolerance(self):
        config.EQUALITY_ATOL = 1e-8

        assert config.HASH_DECIMALS == 6

    def test_repr_lists_sections(self):
        text = repr(config)

        assert "DromosConfig" in text
        assert "DEFAULT_MAX_CHECK" in text
        assert "DEFAULT_ORBIT_TYPE" in text


class TestTempConfig:
    """Temporary configuration changes."""

    def test_values_restored(self):
        with temp_config(DEFAULT_MAX_CHECK=10.0, DEFAULT_THRESHOLD=1e-3):
            assert config.DEFAULT_MAX_CHECK == 10.0
            assert config.DEFAULT_THRESHOLD == 1e-3

        assert config.DEFAULT_MAX_CHECK == 600.0
        assert config.DEFAULT_THRESHOLD == 1e-6

    def test_values_restored_after_exception(self):
        with pytest.raises(RuntimeError):
            with temp_config(DEFAULT_MAX_ITER=5):
                raise RuntimeError("boom")

        assert config.DEFAULT_MAX_ITER == 100

    def test_unknown_attribute_rejected(self):
        with pytest.raises(AttributeError, match="no attribute 'NOT_A_SETTING'"):
            with temp_config(DEFAULT_MAX_ITER=5, NOT_A_SETTING=1):
                pass

        assert config.DEFAULT_MAX_ITER == 100


class TestConfiguredBehavior:
    """Objects read their defaults from the configuration at creation."""

    def test_detector_defaults(self):
        with temp_config(DEFAULT_MAX_CHECK=30.0, DEFAULT_THRESHOLD=1e-4,
                         DEFAULT_MAX_ITER=20):
            detector = NodeDetector()

        assert detector.max_check == 30.0
        assert detector.threshold == 1e-4
        assert detector.max_iter == 20

    def test_propagator_default_types(self):
        integrator = DormandPrince853Integrator(1e-3, 300.0, 1e-3, 1e-10)
        with temp_config(DEFAULT_ORBIT_TYPE='cartesian', DEFAULT_ANGLE_TYPE='mean'):
            propagator = NumericalPropagator(integrator)

        assert propagator.orbit_type == OrbitType.CARTESIAN
        assert propagator.angle_type == AngleType.MEAN

    def test_relaxed_validation_warns(self):
        """Out of range inclinations warn instead of raising when relaxed."""
        with temp_config(STRICT_VALIDATION=False):
            with warnings.catch_warnings(record=True) as caught:
                warnings.simplefilter("always")
                OrbitalElements([7.0e6, 0.01, 4.0, 0.0, 0.0, 0.0], 'kep')

        assert any("Inclination out of range" in str(w.message) for w in caught)

    def test_strict_validation_raises(self):
        with pytest.raises(ValueError, match="Inclination out of range"):
            OrbitalElements([7.0e6, 0.01, 4.0, 0.0, 0.0, 0.0], 'kep')
