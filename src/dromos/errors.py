"""
Exception hierarchy for the Dromos package.

Every exception raised on purpose by the package derives from
:class:`DromosError`. Each one also derives from the closest builtin
exception so that callers catching ``ValueError`` or ``RuntimeError``
keep working.
"""

import warnings

from .config import config


class DromosError(Exception):
    """Base class of all package specific errors."""


# ========== CONFIGURATION ERRORS ==========
class ConfigurationError(DromosError, ValueError):
    """A propagator or one of its collaborators is misconfigured."""


class NotInitializedError(ConfigurationError):
    """Propagation was requested before an initial state was set."""


class DuplicateNameError(ConfigurationError):
    """A provider or parameter name is already in use."""

    def __init__(self, name, kind="additional state"):
        self.name = name
        self.kind = kind
        super().__init__(f"{kind} name '{name}' is already registered")


class DimensionMismatchError(ConfigurationError):
    """A seed matrix does not have the expected shape."""

    def __init__(self, expected_rows, expected_columns, rows, columns):
        self.expected_rows = expected_rows
        self.expected_columns = expected_columns
        self.rows = rows
        self.columns = columns
        super().__init__(
            f"dimension mismatch: expected {expected_rows}x{expected_columns} "
            f"matrix, got {rows}x{columns}"
        )


class UnsupportedParameterError(ConfigurationError):
    """A parameter name is not known to any force model or trigger."""

    def __init__(self, name, supported=()):
        self.name = name
        self.supported = tuple(supported)
        super().__init__(
            f"unsupported parameter name '{name}', "
            f"supported names: {list(self.supported)}"
        )


class PropagationStateError(ConfigurationError):
    """The propagator cannot be reconfigured in its current status."""


class UnknownAdditionalStateError(DromosError, KeyError):
    """An additional state was requested that the state does not carry."""

    def __init__(self, name):
        self.name = name
        super().__init__(f"unknown additional state '{name}'")

    def __str__(self):
        return self.args[0]


# ========== ORBIT ERRORS ==========
class OrbitError(DromosError, ValueError):
    """An orbit cannot be represented or converted."""


class HyperbolicOrbitError(OrbitError):
    """Circular and equinoctial parameters cannot describe hyperbolic orbits."""


class SingularJacobianError(OrbitError, ArithmeticError):
    """The Jacobian of an orbit type is singular for the given geometry."""


def validation_error(message, error_class=OrbitError):
    """
    Raise ``error_class`` or warn, depending on ``config.STRICT_VALIDATION``.

    Used for checks an advanced user may want to relax, such as an
    inclination slightly outside [0, pi] after a conversion.
    """
    if config.STRICT_VALIDATION:
        raise error_class(message)
    warnings.warn(message, UserWarning, stacklevel=3)


# ========== EPHEMERIS ERRORS ==========
class OutOfRangeError(DromosError, ValueError):
    """A date lies outside the span covered by an ephemeris."""

    def __init__(self, date, min_date, max_date, message):
        self.date = date
        self.min_date = min_date
        self.max_date = max_date
        super().__init__(message)


class EphemerisBeforeRangeError(OutOfRangeError):
    """The requested date precedes the first date of the ephemeris."""

    def __init__(self, date, min_date, max_date):
        super().__init__(
            date, min_date, max_date,
            f"date {date} is before ephemeris range [{min_date}, {max_date}] "
            f"by {min_date - date} s"
        )


class EphemerisAfterRangeError(OutOfRangeError):
    """The requested date follows the last date of the ephemeris."""

    def __init__(self, date, min_date, max_date):
        super().__init__(
            date, min_date, max_date,
            f"date {date} is after ephemeris range [{min_date}, {max_date}] "
            f"by {date - max_date} s"
        )


class EphemerisNotAvailableError(DromosError, RuntimeError):
    """No propagation has been recorded by an ephemeris generator yet."""


class NonResettableStateError(DromosError, RuntimeError):
    """The initial state of an ephemeris cannot be reset."""


# ========== INTEGRATION ERRORS ==========
class IntegrationError(DromosError, RuntimeError):
    """Numerical integration failed."""


class EventConvergenceError(IntegrationError):
    """An event root could not be located within the allowed iterations."""


class StepSizeTooSmallError(IntegrationError):
    """The integrator needed a step smaller than its minimal step."""
