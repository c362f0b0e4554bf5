"""
Gyroscope linear acceleration for gyrolinear.

Fuses the gyroscope with a one-time absolute orientation to track the
device attitude, projects gravity onto the device axes from that attitude
and subtracts it from the smoothed accelerometer signal.

    gravity + magnetic --(once)--> initial rotation
    gyroscope ------------------> R = R x dR (body frame) -> pitch, roll
    accelerometer --> mean filter --> minus gravity projection
                  --> mean filter --> listeners

The engine has two latches, giving three phases:
    - unseeded: no initial orientation yet, gyro samples are dropped
    - seeded: the first gyro sample seeds R from the initial rotation and
      records its timestamp, without integrating or emitting
    - running: every gyro sample integrates one step and emits one output

All callbacks for one engine must arrive on a single execution context
(one thread or one event loop). A callback that re-enters the engine while
it is dispatching raises ReentrantCallbackError.
"""

import logging
from contextlib import contextmanager
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import NS2S, FusionConfig
from .errors import ReentrantCallbackError
from .gravity import GravityRemover
from .mean_filter import MeanFilter
from .orientation import InitialOrientationEstimator
from .rotation import (
    OrientationAngles,
    Vector3,
    delta_rotation_matrix,
    identity_matrix,
    matrix_multiply,
    orientation_angles,
)
from .sensors import (
    AccelerationSensor,
    GravitySensor,
    GyroscopeSensor,
    Listener,
    ListenerRegistry,
    MagneticSensor,
    SensorBackend,
)

logger = logging.getLogger(__name__)


class LinearAccelerationEstimator:
    """
    Gravity-compensated acceleration from gyroscope attitude tracking.

    Usage:
        engine = LinearAccelerationEstimator.from_backend(backend)
        engine.register_listener(lambda values, t: print(values))
        engine.start()
        ...
        engine.stop()
    """

    def __init__(
        self,
        gyroscope: GyroscopeSensor,
        acceleration: AccelerationSensor,
        gravity: GravitySensor,
        magnetic: MagneticSensor,
        config: Optional[FusionConfig] = None
    ):
        """
        Initialize engine. Nothing is subscribed until start().

        Args:
            gyroscope: Angular velocity channel (rad/s)
            acceleration: Raw accelerometer channel (m/s²)
            gravity: Gravity reference channel, used for the initial lock
            magnetic: Magnetic field channel, used for the initial lock
            config: Fusion parameters (validated here)
        """
        self.config = (config or FusionConfig()).validate()

        self.gyroscope_sensor = gyroscope
        self.acceleration_sensor = acceleration
        self.gravity_sensor = gravity
        self.magnetic_sensor = magnetic

        self.estimator = InitialOrientationEstimator(
            gravity, magnetic,
            on_locked=self.on_initial_orientation,
            config=self.config
        )
        self.gravity_remover = GravityRemover(self.config.gravity)

        self._mf_acceleration = MeanFilter(self.config.mean_filter_window)
        self._mf_linear_acceleration = MeanFilter(self.config.mean_filter_window)

        self._listeners = ListenerRegistry()
        self._dispatching = False
        self._running = False

        self.set_alternate_mounting_mode(self.config.alternate_mounting)
        self._reset_state()

    @classmethod
    def from_backend(
        cls,
        backend: SensorBackend,
        config: Optional[FusionConfig] = None
    ) -> "LinearAccelerationEstimator":
        """Create the four channels on one backend and wire an engine to them."""
        return cls(
            GyroscopeSensor(backend),
            AccelerationSensor(backend),
            GravitySensor(backend),
            MagneticSensor(backend),
            config=config
        )

    # ----------------------- Control surface -----------------------

    def start(self):
        """Arm the bootstrap and subscribe to all four channels."""
        if self._running:
            return
        self._reset_state()
        try:
            self.estimator.start()
            self.gyroscope_sensor.register_listener(self.on_angular_velocity)
            self.acceleration_sensor.register_listener(self.on_acceleration)
        except Exception:
            # Release whatever was subscribed before the failure
            self.stop()
            raise
        self._running = True
        logger.info("Linear acceleration engine started")

    def stop(self):
        """Unsubscribe from all channels and reset to the initial state."""
        self.gyroscope_sensor.remove_listener(self.on_angular_velocity)
        self.acceleration_sensor.remove_listener(self.on_acceleration)
        self.estimator.stop()
        self._reset_state()
        if self._running:
            logger.info("Linear acceleration engine stopped")
        self._running = False

    def restart(self):
        """Drop the current attitude and bootstrap again."""
        self.stop()
        self.start()

    def set_alternate_mounting_mode(self, enabled: bool):
        """Apply (or stop applying) the fixed axis remap on every channel."""
        for channel in (self.gyroscope_sensor, self.acceleration_sensor, self.gravity_sensor, self.magnetic_sensor):
            channel.set_alternate_mounting_mode(enabled)

    def register_listener(self, listener: Listener):
        self._listeners.add(listener)

    def remove_listener(self, listener: Listener):
        self._listeners.remove(listener)

    @property
    def is_running(self) -> bool:
        return self._running

    # ----------------------- Sensor callbacks -----------------------

    def on_initial_orientation(self, rotation_matrix: np.ndarray):
        """Seed from the estimator's one-shot rotation."""
        self.initial_rotation_matrix = np.array(rotation_matrix, dtype=np.float64)
        self.has_initial_orientation = True

    def on_acceleration(self, values: Vector3, timestamp: int):
        with self._serialized():
            self._acceleration = self._mf_acceleration.filter(values)

    def on_angular_velocity(self, values: Vector3, timestamp: int):
        with self._serialized():
            # Bootstrap window: wait for the gravity/magnetic lock
            if not self.has_initial_orientation:
                return

            if not self.state_initialized:
                self.current_rotation_matrix = matrix_multiply(
                    identity_matrix(), self.initial_rotation_matrix
                )
                self.state_initialized = True
                self.previous_timestamp = int(timestamp)
                return

            if timestamp < self.previous_timestamp:
                logger.warning(
                    "Dropping out-of-order gyroscope sample (%d < %d)",
                    timestamp, self.previous_timestamp
                )
                return

            linear = self._integrate(values, (timestamp - self.previous_timestamp) * NS2S)
            self.previous_timestamp = int(timestamp)

            self._listeners.notify(linear, self.previous_timestamp)

    # ----------------------- Internal methods -----------------------

    def _integrate(self, omega: Sequence[float], dt: float) -> Vector3:
        """One gyro step: rotate, project gravity, compensate, smooth."""
        delta = delta_rotation_matrix(omega, dt, self.config.epsilon)

        # Right-multiply: the increment is expressed in the body frame
        self.current_rotation_matrix = matrix_multiply(self.current_rotation_matrix, delta)

        angles = orientation_angles(self.current_rotation_matrix)
        linear = self.gravity_remover.remove_gravity(
            self._acceleration, angles.pitch, angles.roll
        )
        logger.debug("gravity components %s", self.gravity_remover.get_gravity_vector())

        self._linear_acceleration = self._mf_linear_acceleration.filter(linear)
        return self._linear_acceleration

    @contextmanager
    def _serialized(self):
        if self._dispatching:
            raise ReentrantCallbackError(
                "sensor callback re-entered the engine; callbacks must be serialized"
            )
        self._dispatching = True
        try:
            yield
        finally:
            self._dispatching = False

    def _reset_state(self):
        self.has_initial_orientation = False
        self.state_initialized = False
        self.previous_timestamp = 0

        self.initial_rotation_matrix = identity_matrix()
        self.current_rotation_matrix = identity_matrix()

        self._acceleration: Vector3 = (0.0, 0.0, 0.0)
        self._linear_acceleration: Vector3 = (0.0, 0.0, 0.0)

        self._mf_acceleration.reset()
        self._mf_linear_acceleration.reset()
        self.gravity_remover.reset()

    # ----------------------- Diagnostics -----------------------

    def get_rotation_matrix(self) -> np.ndarray:
        return self.current_rotation_matrix.copy()

    def get_orientation(self) -> OrientationAngles:
        """Azimuth, pitch, roll (radians), recomputed from the rotation matrix."""
        return orientation_angles(self.current_rotation_matrix)

    def get_gravity_vector(self) -> Tuple[float, float, float]:
        return self.gravity_remover.get_gravity_vector()

    def get_linear_acceleration(self) -> Vector3:
        return self._linear_acceleration

    def get_acceleration(self) -> Vector3:
        """Smoothed raw acceleration (gravity included)."""
        return self._acceleration
