"""
Initial orientation for gyrolinear.

The gyroscope only measures relative rotation. Before it can be integrated
the device needs an absolute starting attitude, which comes from the
(smoothed) gravity and magnetic field vectors. This is done once: after
the lock the estimator stops listening to both channels.

States:
    ACCUMULATING -> LOCKED

The transition depends only on the two sample counters and on whether the
basis can be built, not on which channel delivered the triggering sample.
"""

import logging
from typing import Callable, Optional

import numpy as np

from .config import FusionConfig
from .errors import OrientationLockFailure
from .mean_filter import MeanFilter
from .rotation import Vector3, rotation_matrix_from_gravity_and_magnetic
from .sensors import GravitySensor, MagneticSensor

logger = logging.getLogger(__name__)

STATE_ACCUMULATING = "ACCUMULATING"
STATE_LOCKED = "LOCKED"


class InitialOrientationEstimator:
    """
    One-shot device-to-world rotation from gravity and magnetic field.

    Each channel is smoothed by its own MeanFilter and counted. Once both
    counters exceed min_sample_count, every new sample (from either channel)
    attempts the lock until it succeeds. A failed attempt (free fall,
    magnetic field parallel to gravity) is not an error; the estimator just
    waits for the next sample.

    Usage:
        estimator = InitialOrientationEstimator(gravity_sensor, magnetic_sensor,
                                                on_locked=engine.on_initial_orientation)
        estimator.start()
    """

    def __init__(
        self,
        gravity_sensor: GravitySensor,
        magnetic_sensor: MagneticSensor,
        on_locked: Optional[Callable[[np.ndarray], None]] = None,
        config: Optional[FusionConfig] = None
    ):
        """
        Initialize estimator.

        Args:
            gravity_sensor: Gravity reference channel
            magnetic_sensor: Magnetic field channel
            on_locked: Called once with the rotation matrix on success
            config: Filter window and minimum sample count
        """
        self.config = (config or FusionConfig()).validate()
        self.gravity_sensor = gravity_sensor
        self.magnetic_sensor = magnetic_sensor
        self.on_locked = on_locked

        self._mf_gravity = MeanFilter(self.config.mean_filter_window)
        self._mf_magnetic = MeanFilter(self.config.mean_filter_window)

        self.state = STATE_ACCUMULATING
        self.rotation_matrix: Optional[np.ndarray] = None

        self.gravity: Vector3 = (0.0, 0.0, 0.0)
        self.magnetic: Vector3 = (0.0, 0.0, 0.0)
        self.gravity_sample_count = 0
        self.magnetic_sample_count = 0
        self.lock_attempts = 0

    @property
    def has_initial_orientation(self) -> bool:
        return self.state == STATE_LOCKED

    def start(self):
        """Re-arm and subscribe to both channels."""
        self.reset()
        self.gravity_sensor.register_listener(self.on_gravity)
        self.magnetic_sensor.register_listener(self.on_magnetic)

    def stop(self):
        """Unsubscribe from both channels and clear all state."""
        self._unsubscribe()
        self.reset()

    def reset(self):
        self._mf_gravity.reset()
        self._mf_magnetic.reset()
        self.state = STATE_ACCUMULATING
        self.rotation_matrix = None
        self.gravity = (0.0, 0.0, 0.0)
        self.magnetic = (0.0, 0.0, 0.0)
        self.gravity_sample_count = 0
        self.magnetic_sample_count = 0
        self.lock_attempts = 0

    def on_gravity(self, values: Vector3, timestamp: int):
        if self.state == STATE_LOCKED:
            return
        self.gravity = self._mf_gravity.filter(values)
        self.gravity_sample_count += 1
        self._try_lock()

    def on_magnetic(self, values: Vector3, timestamp: int):
        if self.state == STATE_LOCKED:
            return
        self.magnetic = self._mf_magnetic.filter(values)
        self.magnetic_sample_count += 1
        self._try_lock()

    def _ready(self) -> bool:
        minimum = self.config.min_sample_count
        return (self.gravity_sample_count > minimum
                and self.magnetic_sample_count > minimum)

    def _try_lock(self):
        if not self._ready():
            return

        self.lock_attempts += 1
        try:
            matrix = rotation_matrix_from_gravity_and_magnetic(self.gravity, self.magnetic)
        except OrientationLockFailure as e:
            logger.debug("Orientation lock attempt %d failed: %s", self.lock_attempts, e)
            return

        self.rotation_matrix = matrix
        self.state = STATE_LOCKED
        self._unsubscribe()

        logger.info(
            "Initial orientation locked after %d gravity / %d magnetic samples",
            self.gravity_sample_count, self.magnetic_sample_count
        )

        if self.on_locked is not None:
            self.on_locked(matrix.copy())

    def _unsubscribe(self):
        self.gravity_sensor.remove_listener(self.on_gravity)
        self.magnetic_sensor.remove_listener(self.on_magnetic)
