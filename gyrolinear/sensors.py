"""
Sensor channels for gyrolinear.

Each channel wraps one hardware measurement stream (angular velocity,
acceleration, gravity, magnetic field) and fans every sample out to its
registered listeners. A channel keeps its hardware subscription enabled
exactly while it has at least one listener.

A listener is any callable taking (values, timestamp_ns), where values is
an (x, y, z) tuple of floats. Bound methods work as listeners and compare
equal across attribute lookups, so registering `obj.on_sample` twice is a
no-op.
"""

import logging
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

from .rotation import Vector3, remap_alternate_mounting

logger = logging.getLogger(__name__)

Listener = Callable[[Vector3, int], None]

TYPE_GYROSCOPE = "gyroscope"
TYPE_ACCELEROMETER = "accelerometer"
TYPE_GRAVITY = "gravity"
TYPE_MAGNETIC_FIELD = "magnetic_field"


class ListenerRegistry:
    """
    Ordered set of listeners.

    Adding a registered listener and removing an absent one are no-ops.
    Iteration walks a snapshot, so listeners may unregister themselves
    (or others) while being notified.
    """

    def __init__(self):
        self._listeners: List[Listener] = []

    def add(self, listener: Listener) -> bool:
        """Register listener; return True if it was not already present."""
        if listener in self._listeners:
            return False
        self._listeners.append(listener)
        return True

    def remove(self, listener: Listener) -> bool:
        """Unregister listener; return True if it was present."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    def notify(self, values: Vector3, timestamp: int):
        for listener in list(self._listeners):
            listener(values, timestamp)

    def clear(self):
        self._listeners.clear()

    def __contains__(self, listener) -> bool:
        return listener in self._listeners

    def __len__(self) -> int:
        return len(self._listeners)

    def __iter__(self) -> Iterator[Listener]:
        return iter(list(self._listeners))


class SensorBackend:
    """
    Hardware subscription interface.

    A backend delivers raw samples by calling channel.on_sensor_changed()
    for every channel it has been asked to enable. Channels call enable()
    when their first listener arrives and disable() when the last leaves.
    """

    def enable(self, channel: "SensorChannel"):
        raise NotImplementedError

    def disable(self, channel: "SensorChannel"):
        raise NotImplementedError


class SensorChannel:
    """
    One hardware measurement stream with listener fan-out.

    On every raw sample the values are copied, optionally remapped for the
    alternate mounting, and published with the source timestamp to every
    listener in registration order. Nothing is buffered between samples.

    Usage:
        gyro = GyroscopeSensor(backend)
        gyro.register_listener(engine.on_angular_velocity)
        ...
        gyro.remove_listener(engine.on_angular_velocity)  # disables hardware
    """

    sensor_type = "generic"

    def __init__(self, backend: SensorBackend, alternate_mounting: bool = False):
        """
        Initialize channel.

        Args:
            backend: Hardware subscription provider
            alternate_mounting: Apply the fixed axis remap to every sample
        """
        self.backend = backend
        self.alternate_mounting = bool(alternate_mounting)

        self._listeners = ListenerRegistry()
        self._enabled = False

        # Last published sample, for diagnostics
        self._values: Optional[Vector3] = None
        self._timestamp = 0

    def register_listener(self, listener: Listener):
        """Add a listener, enabling the hardware on the first one."""
        if not self._listeners.add(listener):
            return
        if len(self._listeners) == 1 and not self._enabled:
            try:
                self.backend.enable(self)
            except Exception:
                self._listeners.remove(listener)
                raise
            self._enabled = True
            logger.info("%s subscription enabled", self.sensor_type)

    def remove_listener(self, listener: Listener):
        """Remove a listener, disabling the hardware when none remain."""
        if not self._listeners.remove(listener):
            return
        if len(self._listeners) == 0 and self._enabled:
            self.backend.disable(self)
            self._enabled = False
            logger.info("%s subscription disabled", self.sensor_type)

    def set_alternate_mounting_mode(self, enabled: bool):
        self.alternate_mounting = bool(enabled)

    def on_sensor_changed(self, values: Sequence[float], timestamp: int):
        """
        Hardware callback: publish one raw sample.

        Args:
            values: Raw (x, y, z) reading in device coordinates
            timestamp: Source clock timestamp (ns)
        """
        x, y, z = values[0], values[1], values[2]
        sample: Vector3 = (float(x), float(y), float(z))

        if self.alternate_mounting:
            sample = remap_alternate_mounting(sample)

        self._values = sample
        self._timestamp = int(timestamp)

        self._listeners.notify(sample, self._timestamp)

    def on_accuracy_changed(self, accuracy: int):
        """Hardware accuracy notification; not used by the pipeline."""
        logger.debug("%s accuracy changed to %s", self.sensor_type, accuracy)

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def has_listener(self, listener: Listener) -> bool:
        return listener in self._listeners

    def get_last_sample(self) -> Tuple[Optional[Vector3], int]:
        """Return (values, timestamp) of the last published sample."""
        return self._values, self._timestamp

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(listeners={len(self._listeners)}, "
                f"enabled={self._enabled}, alternate_mounting={self.alternate_mounting})")


class GyroscopeSensor(SensorChannel):
    """Angular velocity about the device axes (rad/s)."""
    sensor_type = TYPE_GYROSCOPE


class AccelerationSensor(SensorChannel):
    """Raw accelerometer output including gravity (m/s²)."""
    sensor_type = TYPE_ACCELEROMETER


class GravitySensor(SensorChannel):
    """Platform gravity estimate in the device frame (m/s²)."""
    sensor_type = TYPE_GRAVITY


class MagneticSensor(SensorChannel):
    """Geomagnetic field in the device frame (uT or raw units)."""
    sensor_type = TYPE_MAGNETIC_FIELD
