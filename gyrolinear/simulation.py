"""
Simulated IMU for gyrolinear.

Stands in for the platform sensor stack when no hardware is attached (the
WebSocket host and tests). The device has a true attitude that evolves with
a constant body-frame angular rate; every step it produces the readings a
real gyroscope, accelerometer, gravity sensor and magnetometer would report
in device coordinates, plus optional Gaussian noise.
"""

import logging
from typing import Dict, Optional, Sequence

import numpy as np

from .config import GRAVITY_EARTH
from .rotation import delta_rotation_matrix, identity_matrix
from .sensors import (
    TYPE_ACCELEROMETER,
    TYPE_GRAVITY,
    TYPE_GYROSCOPE,
    TYPE_MAGNETIC_FIELD,
    SensorBackend,
    SensorChannel,
)

logger = logging.getLogger(__name__)

# World field pointing North and down (uT), typical mid-latitude values
DEFAULT_MAGNETIC_FIELD = (0.0, 22.0, -42.0)


class SimulatedDevice(SensorBackend):
    """
    Sensor backend driven by a synthetic device.

    Usage:
        device = SimulatedDevice(angular_velocity=(0.0, 0.0, 0.1))
        engine = LinearAccelerationEstimator.from_backend(device)
        engine.start()
        for _ in range(500):
            device.step(0.01)
    """

    def __init__(
        self,
        attitude: Optional[np.ndarray] = None,
        angular_velocity: Sequence[float] = (0.0, 0.0, 0.0),
        linear_acceleration: Sequence[float] = (0.0, 0.0, 0.0),
        magnetic_field: Sequence[float] = DEFAULT_MAGNETIC_FIELD,
        gravity: float = GRAVITY_EARTH,
        noise_std: Optional[Dict[str, float]] = None,
        seed: Optional[int] = None
    ):
        """
        Initialize simulated device.

        Args:
            attitude: Initial device-to-world rotation (default: flat, facing North)
            angular_velocity: Constant body-frame rate (rad/s)
            linear_acceleration: Constant world-frame acceleration (m/s²)
            magnetic_field: World-frame magnetic field (uT)
            gravity: Gravity magnitude (m/s²)
            noise_std: Per sensor type standard deviation, e.g. {"gyroscope": 0.01}
            seed: Random seed for reproducible noise
        """
        self.attitude = identity_matrix() if attitude is None else np.array(attitude, dtype=np.float64)
        self.angular_velocity = np.asarray(angular_velocity, dtype=np.float64)
        self.linear_acceleration = np.asarray(linear_acceleration, dtype=np.float64)
        self.magnetic_field = np.asarray(magnetic_field, dtype=np.float64)
        self.gravity = float(gravity)
        self.noise_std = dict(noise_std or {})

        self._rng = np.random.default_rng(seed)
        self._channels: list = []
        self.timestamp_ns = 0

    def enable(self, channel: SensorChannel):
        if channel not in self._channels:
            self._channels.append(channel)
            logger.debug("simulated %s enabled", channel.sensor_type)

    def disable(self, channel: SensorChannel):
        if channel in self._channels:
            self._channels.remove(channel)
            logger.debug("simulated %s disabled", channel.sensor_type)

    @property
    def enabled_channels(self) -> list:
        return list(self._channels)

    def reading(self, sensor_type: str) -> np.ndarray:
        """Noise-free device-frame reading for one sensor type."""
        world_to_device = self.attitude.T
        up = np.array([0.0, 0.0, self.gravity])

        if sensor_type == TYPE_GYROSCOPE:
            return self.angular_velocity.copy()
        if sensor_type == TYPE_GRAVITY:
            return world_to_device @ up
        if sensor_type == TYPE_ACCELEROMETER:
            return world_to_device @ (up + self.linear_acceleration)
        if sensor_type == TYPE_MAGNETIC_FIELD:
            return world_to_device @ self.magnetic_field
        raise ValueError(f"unknown sensor type: {sensor_type}")

    def step(self, dt: float) -> int:
        """
        Advance the device by dt seconds and publish one sample per enabled channel.

        Returns:
            Timestamp (ns) of the published samples
        """
        self.attitude = self.attitude @ delta_rotation_matrix(self.angular_velocity, dt)
        self.timestamp_ns += int(round(dt * 1e9))

        # Channels may disable each other while publishing
        for channel in list(self._channels):
            if channel not in self._channels:
                continue
            values = self.reading(channel.sensor_type)
            std = self.noise_std.get(channel.sensor_type, 0.0)
            if std > 0.0:
                values = values + self._rng.normal(0.0, std, size=3)
            channel.on_sensor_changed(values, self.timestamp_ns)

        return self.timestamp_ns
