"""
Gravity removal for gyrolinear.

Removes the gravity component from accelerometer readings to obtain
linear (motion-only) acceleration, i.e. tilt compensation.

The gravity vector in the device frame depends only on pitch and roll.
Azimuth (heading) rotates about the gravity axis and drops out.
"""

import math
from typing import Sequence, Tuple

from .config import GRAVITY_EARTH


def gravity_components(
    pitch: float,
    roll: float,
    gravity: float = GRAVITY_EARTH
) -> Tuple[float, float, float]:
    """
    Project gravity onto the device axes.

    Args:
        pitch: Rotation about device X (radians)
        roll: Rotation about device Y (radians)
        gravity: Gravity magnitude (m/s²)

    Returns:
        (g_x, g_y, g_z) in m/s². A flat device gives (0, 0, g).
    """
    cos_pitch = math.cos(pitch)

    g_x = -gravity * cos_pitch * math.sin(roll)
    g_y = -gravity * math.sin(pitch)
    g_z = gravity * cos_pitch * math.cos(roll)

    return (g_x, g_y, g_z)


class GravityRemover:
    """
    Remove gravity component from accelerometer to get linear acceleration.

    Uses the orientation from the gyroscope-integrated rotation matrix to
    determine the gravity direction in the device frame, then subtracts it
    from the (smoothed) accelerometer reading.

    Usage:
        remover = GravityRemover()
        a_lin_x, a_lin_y, a_lin_z = remover.remove_gravity((ax, ay, az), pitch, roll)
    """

    def __init__(self, gravity: float = GRAVITY_EARTH):
        """
        Initialize gravity remover.

        Args:
            gravity: Local gravity magnitude (default standard gravity, m/s²)
        """
        self.gravity = gravity

        # Cache for diagnostics
        self._last_gravity_vector = (0.0, 0.0, self.gravity)
        self._last_linear_accel = (0.0, 0.0, 0.0)

    def remove_gravity(
        self,
        acceleration: Sequence[float],
        pitch: float,
        roll: float
    ) -> Tuple[float, float, float]:
        """
        Compute linear acceleration by removing the gravity projection.

        Args:
            acceleration: Accelerometer reading (ax, ay, az) in m/s²
            pitch, roll: Current orientation (radians)

        Returns:
            Tuple of (a_lin_x, a_lin_y, a_lin_z) in m/s²
        """
        ax, ay, az = acceleration
        g_x, g_y, g_z = gravity_components(pitch, roll, self.gravity)

        self._last_gravity_vector = (g_x, g_y, g_z)

        linear = (ax - g_x, ay - g_y, az - g_z)
        self._last_linear_accel = linear

        return linear

    def reset(self):
        self._last_gravity_vector = (0.0, 0.0, self.gravity)
        self._last_linear_accel = (0.0, 0.0, 0.0)

    def get_gravity_vector(self) -> Tuple[float, float, float]:
        """Return last computed gravity vector in device frame."""
        return self._last_gravity_vector

    def get_linear_accel(self) -> Tuple[float, float, float]:
        """Return last computed (unsmoothed) linear acceleration."""
        return self._last_linear_accel

    def get_linear_accel_magnitude(self) -> float:
        ax, ay, az = self._last_linear_accel
        return math.sqrt(ax*ax + ay*ay + az*az)
