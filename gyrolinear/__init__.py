"""
gyrolinear: gyroscope-based linear acceleration

This package removes gravity from accelerometer readings using an attitude
tracked by the gyroscope:
- MeanFilter: sliding-window smoothing per channel
- Sensor channels: gyroscope, acceleration, gravity, magnetic field
- InitialOrientationEstimator: one-shot attitude from gravity + magnetometer
- LinearAccelerationEstimator: gyro integration + tilt compensation
- GravityRemover: analytic gravity projection from pitch/roll

Usage:
    from gyrolinear import LinearAccelerationEstimator, SimulatedDevice

    device = SimulatedDevice()
    engine = LinearAccelerationEstimator.from_backend(device)
    engine.register_listener(on_linear_acceleration)
    engine.start()

    # In main loop (or from the platform sensor callbacks):
    device.step(0.01)
"""

from .config import FusionConfig, DEFAULT_FUSION_CONFIG, GRAVITY_EARTH, NS2S
from .errors import (
    GyroLinearError,
    InvalidConfiguration,
    OrientationLockFailure,
    ReentrantCallbackError,
)
from .mean_filter import MeanFilter
from .rotation import (
    OrientationAngles,
    ALTERNATE_MOUNTING_MATRIX,
    delta_rotation_matrix,
    identity_matrix,
    is_orthonormal,
    matrix_multiply,
    orientation_angles,
    quaternion_from_angular_velocity,
    remap_alternate_mounting,
    rotation_matrix_from_gravity_and_magnetic,
    rotation_matrix_from_quaternion,
)
from .gravity import GravityRemover, gravity_components
from .sensors import (
    SensorBackend,
    SensorChannel,
    ListenerRegistry,
    GyroscopeSensor,
    AccelerationSensor,
    GravitySensor,
    MagneticSensor,
)
from .orientation import InitialOrientationEstimator, STATE_ACCUMULATING, STATE_LOCKED
from .fusion import LinearAccelerationEstimator
from .simulation import SimulatedDevice

__all__ = [
    # Config
    'FusionConfig',
    'DEFAULT_FUSION_CONFIG',
    'GRAVITY_EARTH',
    'NS2S',

    # Errors
    'GyroLinearError',
    'InvalidConfiguration',
    'OrientationLockFailure',
    'ReentrantCallbackError',

    # Filters
    'MeanFilter',

    # Rotation math
    'OrientationAngles',
    'ALTERNATE_MOUNTING_MATRIX',
    'delta_rotation_matrix',
    'identity_matrix',
    'is_orthonormal',
    'matrix_multiply',
    'orientation_angles',
    'quaternion_from_angular_velocity',
    'remap_alternate_mounting',
    'rotation_matrix_from_gravity_and_magnetic',
    'rotation_matrix_from_quaternion',

    # Gravity
    'GravityRemover',
    'gravity_components',

    # Sensors
    'SensorBackend',
    'SensorChannel',
    'ListenerRegistry',
    'GyroscopeSensor',
    'AccelerationSensor',
    'GravitySensor',
    'MagneticSensor',

    # Orientation
    'InitialOrientationEstimator',
    'STATE_ACCUMULATING',
    'STATE_LOCKED',

    # Fusion
    'LinearAccelerationEstimator',

    # Simulation
    'SimulatedDevice',
]

__version__ = '1.0.0'
