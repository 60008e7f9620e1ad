"""
Parameter drivers.

A parameter driver exposes one scalar model parameter (thrust level, drag
coefficient, maneuver date...) under a unique name so that it can be
selected for partial derivatives computation or changed between runs.
"""

import math


class ParameterDriver:
    """
    Named scalar parameter with bounds and selection status.

    Parameters
    ----------
    name : str
        Unique parameter name
    reference_value : float
        Reference value, also the initial value
    scale : float, optional
        Scaling factor used by normalized values (default 1.0)
    min_value, max_value : float, optional
        Bounds, values set outside are clamped
    """

    def __init__(self, name, reference_value, scale=1.0,
                 min_value=-math.inf, max_value=math.inf):
        if scale == 0:
            raise ValueError(f"Scale of parameter '{name}' cannot be zero")
        if min_value > max_value:
            raise ValueError(f"Bounds of parameter '{name}' are inverted: "
                             f"[{min_value}, {max_value}]")
        self._name = name
        self._reference = float(reference_value)
        self._scale = float(scale)
        self._min = float(min_value)
        self._max = float(max_value)
        self._value = min(max(self._reference, self._min), self._max)
        self._selected = False
        self._observers = []

    @property
    def name(self):
        return self._name

    @property
    def reference_value(self):
        return self._reference

    @property
    def scale(self):
        return self._scale

    @property
    def min_value(self):
        return self._min

    @property
    def max_value(self):
        return self._max

    @property
    def value(self):
        return self._value

    @value.setter
    def value(self, new_value):
        previous = self._value
        self._value = min(max(float(new_value), self._min), self._max)
        if self._value != previous:
            for observer in list(self._observers):
                observer(self, previous)

    @property
    def normalized_value(self):
        return (self._value - self._reference) / self._scale

    @normalized_value.setter
    def normalized_value(self, normalized):
        self.value = self._reference + self._scale * normalized

    @property
    def selected(self):
        """Whether partial derivatives with respect to this parameter are computed"""
        return self._selected

    @selected.setter
    def selected(self, selected):
        self._selected = bool(selected)

    def add_observer(self, observer):
        """Register ``observer(driver, previous_value)`` called on value changes."""
        self._observers.append(observer)

    def set_value_silently(self, new_value):
        """Set the value without notifying observers (used by linked drivers)."""
        self._value = min(max(float(new_value), self._min), self._max)

    def __repr__(self):
        flag = ", selected" if self._selected else ""
        return f"ParameterDriver('{self._name}', value={self._value}{flag})"
