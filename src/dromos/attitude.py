"""
Attitude representation and simple attitude providers.

Attitudes map the inertial frame of the orbit to the spacecraft body
frame. Rotations use :class:`scipy.spatial.transform.Rotation`.
"""

from abc import ABC, abstractmethod

import numpy as np
from scipy.spatial.transform import Rotation


class Attitude:
    """
    Orientation of the spacecraft body frame at a date.

    Parameters
    ----------
    date : float
        Seconds since J2000
    frame : str
        Reference (inertial) frame label
    rotation : scipy.spatial.transform.Rotation
        Rotation from reference frame to body frame
    spin : array-like, optional
        Angular velocity of the body frame in body coordinates [rad/s]
    """

    def __init__(self, date, frame, rotation, spin=None):
        self._date = float(date)
        self._frame = frame
        self._rotation = rotation
        spin = np.zeros(3) if spin is None else np.array(spin, dtype=float)
        spin.flags.writeable = False
        self._spin = spin

    @property
    def date(self):
        return self._date

    @property
    def frame(self):
        return self._frame

    @property
    def rotation(self):
        return self._rotation

    @property
    def spin(self):
        return self._spin

    def to_inertial(self, body_vector):
        """Express a body frame vector in the reference frame."""
        return self._rotation.inv().apply(np.array(body_vector, dtype=float))

    def with_date(self, date):
        """Same orientation stamped with another date."""
        return Attitude(date, self._frame, self._rotation, self._spin)

    def __repr__(self):
        return (f"Attitude(date={self._date}, frame='{self._frame}', "
                f"quaternion={self._rotation.as_quat().tolist()})")


class AttitudeProvider(ABC):
    """Interface of attitude laws."""

    @abstractmethod
    def get_attitude(self, orbit, date, frame):
        """Attitude of the spacecraft flying ``orbit`` at ``date``."""


class InertialAttitude(AttitudeProvider):
    """Body frame aligned with the reference frame."""

    _IDENTITY = Rotation.identity()

    def get_attitude(self, orbit, date, frame):
        return Attitude(date, frame, self._IDENTITY)


class FixedAttitude(AttitudeProvider):
    """Constant orientation with respect to the reference frame."""

    def __init__(self, rotation):
        self._rotation = rotation

    @property
    def rotation(self):
        return self._rotation

    def get_attitude(self, orbit, date, frame):
        return Attitude(date, frame, self._rotation)
