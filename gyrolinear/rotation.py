"""
Rotation algebra for gyrolinear.

Rotation matrices are 3x3 numpy arrays (row-major, orthonormal, det = +1).
They map a vector from device coordinates to world coordinates, where the
world frame has X pointing East, Y pointing magnetic North and Z pointing
up, away from the ground. The identity matrix means the device lies flat,
screen up, with its top edge pointing North.

Quaternions are (x, y, z, w) tuples with the scalar part last.

Orientation angles follow the same convention:
    - azimuth: rotation about -Z (heading), in (-pi, pi]
    - pitch: rotation about X, in [-pi/2, pi/2]
    - roll: rotation about Y, in (-pi, pi]
"""

import math
from typing import NamedTuple, Sequence, Tuple

import numpy as np

from .errors import OrientationLockFailure


Vector3 = Tuple[float, float, float]
Quaternion = Tuple[float, float, float, float]


class OrientationAngles(NamedTuple):
    """Azimuth, pitch and roll in radians, derived from a rotation matrix."""
    azimuth: float
    pitch: float
    roll: float


# Free fall below 10% of g gives no usable "down" direction
FREE_FALL_GRAVITY_SQUARED = (0.1 * 9.80665) ** 2

# Minimum |E x A| for a usable "east" direction (device near magnetic pole)
MIN_EAST_NORM = 0.1


def identity_matrix() -> np.ndarray:
    return np.eye(3, dtype=np.float64)


def matrix_multiply(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Return a x b for two 3x3 matrices."""
    return np.asarray(a, dtype=np.float64) @ np.asarray(b, dtype=np.float64)


def quaternion_from_angular_velocity(
    omega: Sequence[float],
    dt: float,
    epsilon: float = 1e-9
) -> Quaternion:
    """
    Integrate one gyroscope sample into a unit quaternion.

    The angular velocity vector gives the rotation axis (after normalization)
    and its magnitude times dt gives the angle. Magnitudes at or below
    epsilon are a null rotation: the axis stays unnormalized and the angle
    is effectively zero, so the result is the identity quaternion.

    Args:
        omega: Angular velocity (rad/s) about the device axes
        dt: Elapsed time (s)
        epsilon: Magnitude below which the axis is not normalized

    Returns:
        (x, y, z, w) delta rotation quaternion
    """
    axis_x, axis_y, axis_z = (float(v) for v in omega)

    magnitude = math.sqrt(axis_x * axis_x + axis_y * axis_y + axis_z * axis_z)

    if magnitude > epsilon:
        axis_x /= magnitude
        axis_y /= magnitude
        axis_z /= magnitude

    theta_over_two = magnitude * dt / 2.0
    sin_theta_over_two = math.sin(theta_over_two)
    cos_theta_over_two = math.cos(theta_over_two)

    return (
        sin_theta_over_two * axis_x,
        sin_theta_over_two * axis_y,
        sin_theta_over_two * axis_z,
        cos_theta_over_two,
    )


def quaternion_from_axis_angle(axis: Sequence[float], angle: float) -> Quaternion:
    """Unit quaternion for a right-handed rotation of `angle` about `axis`."""
    x, y, z = (float(v) for v in axis)
    norm = math.sqrt(x * x + y * y + z * z)
    if norm == 0.0:
        raise ValueError("rotation axis must be non-zero")
    s = math.sin(angle / 2.0) / norm
    return (x * s, y * s, z * s, math.cos(angle / 2.0))


def rotation_matrix_from_quaternion(q: Sequence[float]) -> np.ndarray:
    """
    Convert an (x, y, z, w) unit quaternion to a 3x3 rotation matrix.

    Args:
        q: Quaternion with scalar part last

    Returns:
        3x3 rotation matrix
    """
    q1, q2, q3, q0 = (float(v) for v in q)

    sq_q1 = 2.0 * q1 * q1
    sq_q2 = 2.0 * q2 * q2
    sq_q3 = 2.0 * q3 * q3
    q1_q2 = 2.0 * q1 * q2
    q3_q0 = 2.0 * q3 * q0
    q1_q3 = 2.0 * q1 * q3
    q2_q0 = 2.0 * q2 * q0
    q2_q3 = 2.0 * q2 * q3
    q1_q0 = 2.0 * q1 * q0

    return np.array([
        [1.0 - sq_q2 - sq_q3, q1_q2 - q3_q0, q1_q3 + q2_q0],
        [q1_q2 + q3_q0, 1.0 - sq_q1 - sq_q3, q2_q3 - q1_q0],
        [q1_q3 - q2_q0, q2_q3 + q1_q0, 1.0 - sq_q1 - sq_q2],
    ], dtype=np.float64)


def delta_rotation_matrix(
    omega: Sequence[float],
    dt: float,
    epsilon: float = 1e-9
) -> np.ndarray:
    """Rotation matrix for one gyroscope integration step."""
    return rotation_matrix_from_quaternion(
        quaternion_from_angular_velocity(omega, dt, epsilon)
    )


def orientation_angles(matrix: np.ndarray) -> OrientationAngles:
    """
    Extract azimuth, pitch and roll from a rotation matrix.

    Args:
        matrix: 3x3 device-to-world rotation matrix

    Returns:
        OrientationAngles in radians
    """
    r = np.asarray(matrix, dtype=np.float64)
    azimuth = math.atan2(r[0, 1], r[1, 1])
    pitch = math.asin(max(-1.0, min(1.0, -r[2, 1])))
    roll = math.atan2(-r[2, 0], r[2, 2])
    return OrientationAngles(azimuth, pitch, roll)


def rotation_matrix_from_gravity_and_magnetic(
    gravity: Sequence[float],
    magnetic: Sequence[float]
) -> np.ndarray:
    """
    Build the device-to-world rotation from gravity and geomagnetic vectors.

    Gravity (as reported by the sensor, pointing up when the device is at
    rest) gives the world Z row. East is the normalized cross product of the
    magnetic field with gravity, and North completes the right-handed basis
    as gravity x east. Only the component of the magnetic field orthogonal
    to gravity contributes, so magnetic inclination does not matter.

    Args:
        gravity: Gravity vector in device coordinates (m/s²)
        magnetic: Magnetic field in device coordinates (any unit)

    Returns:
        3x3 rotation matrix with rows (east, north, up)

    Raises:
        OrientationLockFailure: gravity too small (free fall) or magnetic
            field (nearly) parallel to gravity
    """
    a = np.asarray(gravity, dtype=np.float64)
    e = np.asarray(magnetic, dtype=np.float64)

    norm_sq_a = float(a @ a)
    if norm_sq_a < FREE_FALL_GRAVITY_SQUARED:
        raise OrientationLockFailure(
            f"gravity vector too small for a lock: |g|^2 = {norm_sq_a:.4f}"
        )

    h = np.cross(e, a)
    norm_h = float(np.linalg.norm(h))
    if norm_h < MIN_EAST_NORM:
        raise OrientationLockFailure(
            f"magnetic field nearly parallel to gravity: |E x A| = {norm_h:.4f}"
        )

    h /= norm_h
    a = a / math.sqrt(norm_sq_a)
    m = np.cross(a, h)

    return np.vstack((h, m, a))


def is_orthonormal(matrix: np.ndarray, tolerance: float = 1e-4) -> bool:
    """Check R @ R.T == I and det(R) == +1 within tolerance."""
    r = np.asarray(matrix, dtype=np.float64)
    if r.shape != (3, 3):
        return False
    if not np.allclose(r @ r.T, np.eye(3), atol=tolerance):
        return False
    return abs(float(np.linalg.det(r)) - 1.0) <= tolerance


def _alternate_mounting_matrix() -> np.ndarray:
    # +90 degrees about X first, then -90 degrees about Y
    x_rotation = rotation_matrix_from_quaternion(
        quaternion_from_axis_angle((1.0, 0.0, 0.0), math.pi / 2.0)
    )
    y_rotation = rotation_matrix_from_quaternion(
        quaternion_from_axis_angle((0.0, 1.0, 0.0), -math.pi / 2.0)
    )
    # Entries are exactly 0 or +-1; drop the trig residue
    return np.rint(y_rotation @ x_rotation)


# Device held in landscape with the sensors facing along the camera (-Z) axis
ALTERNATE_MOUNTING_MATRIX = _alternate_mounting_matrix()


def remap_alternate_mounting(values: Sequence[float]) -> Vector3:
    """
    Rotate a raw device-frame sample into the alternate mounting frame.

    Maps (x, y, z) to (-y, -z, x).
    """
    out = ALTERNATE_MOUNTING_MATRIX @ np.asarray(values, dtype=np.float64)
    return (float(out[0]), float(out[1]), float(out[2]))
