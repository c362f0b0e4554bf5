import pytest

from gyrolinear import (
    AccelerationSensor,
    FusionConfig,
    GravitySensor,
    GyroscopeSensor,
    LinearAccelerationEstimator,
    MagneticSensor,
    SensorBackend,
)

GRAVITY_REFERENCE = (0.0, 0.0, 9.81)
MAGNETIC_REFERENCE = (20.0, 0.0, -40.0)

# 100 ms
STEP_NS = 100_000_000


class RecordingBackend(SensorBackend):
    """Counts hardware subscription changes per channel."""

    def __init__(self):
        self.enabled = []
        self.enable_calls = []
        self.disable_calls = []

    def enable(self, channel):
        self.enable_calls.append(channel)
        self.enabled.append(channel)

    def disable(self, channel):
        self.disable_calls.append(channel)
        self.enabled.remove(channel)


class FlakyBackend(SensorBackend):
    """Backend whose enable() fails once for each listed sensor type."""

    def __init__(self, *failing):
        self.failing = set(failing)
        self.enabled = []

    def enable(self, channel):
        if channel.sensor_type in self.failing:
            self.failing.discard(channel.sensor_type)
            raise OSError(f"{channel.sensor_type} unavailable")
        self.enabled.append(channel)

    def disable(self, channel):
        self.enabled.remove(channel)


class Collector:
    """Engine/channel listener that keeps every (values, timestamp) pair."""

    def __init__(self):
        self.samples = []

    def __call__(self, values, timestamp):
        self.samples.append((values, timestamp))

    def __len__(self):
        return len(self.samples)


@pytest.fixture
def backend():
    return RecordingBackend()


@pytest.fixture
def flaky_backend():
    return FlakyBackend


@pytest.fixture
def config():
    return FusionConfig()


@pytest.fixture
def engine(backend, config):
    return LinearAccelerationEstimator(
        GyroscopeSensor(backend),
        AccelerationSensor(backend),
        GravitySensor(backend),
        MagneticSensor(backend),
        config=config,
    )


@pytest.fixture
def collector():
    return Collector()


@pytest.fixture
def lock_orientation():
    """Feed gravity/magnetic samples until the engine's estimator locks."""

    def _lock(engine, count=31, gravity=GRAVITY_REFERENCE, magnetic=MAGNETIC_REFERENCE):
        for i in range(count):
            engine.gravity_sensor.on_sensor_changed(gravity, i * STEP_NS)
            engine.magnetic_sensor.on_sensor_changed(magnetic, i * STEP_NS)
        return engine

    return _lock


@pytest.fixture
def running_engine(engine, collector, lock_orientation):
    """Engine that is seeded, initialized (at t=0) and has a collector attached."""
    engine.register_listener(collector)
    engine.start()
    engine.acceleration_sensor.on_sensor_changed(GRAVITY_REFERENCE, 0)
    lock_orientation(engine)
    engine.gyroscope_sensor.on_sensor_changed((0.0, 0.0, 0.0), 0)
    assert engine.state_initialized
    return engine
