"""Configuration for the gyroscope linear acceleration pipeline."""

import os
from dataclasses import dataclass, replace

from .errors import InvalidConfiguration


# Standard Earth gravity (m/s²)
GRAVITY_EARTH = 9.80665

# Nanoseconds to seconds
NS2S = 1.0 / 1_000_000_000.0

_TRUTHY = ("1", "true", "yes")


@dataclass(frozen=True)
class FusionConfig:
    """
    Tunable parameters of the fusion engine.

    Attributes:
        mean_filter_window: Samples averaged by every moving-average filter
        min_sample_count: Gravity and magnetic samples required (each) before
                          the initial orientation is attempted
        gravity: Gravity magnitude projected onto the device axes (m/s²)
        epsilon: Angular speed below which a gyro step is a null rotation
        alternate_mounting: Start channels with the fixed axis remap active
    """
    mean_filter_window: int = 10
    min_sample_count: int = 30
    gravity: float = GRAVITY_EARTH
    epsilon: float = 1e-9
    alternate_mounting: bool = False

    def validate(self) -> "FusionConfig":
        """Raise InvalidConfiguration if any value is out of range."""
        if int(self.mean_filter_window) <= 0:
            raise InvalidConfiguration(
                f"mean_filter_window must be positive, got {self.mean_filter_window}"
            )
        if int(self.min_sample_count) < 0:
            raise InvalidConfiguration(
                f"min_sample_count must be >= 0, got {self.min_sample_count}"
            )
        if not self.gravity > 0.0:
            raise InvalidConfiguration(f"gravity must be positive, got {self.gravity}")
        if not self.epsilon > 0.0:
            raise InvalidConfiguration(f"epsilon must be positive, got {self.epsilon}")
        return self

    def with_alternate_mounting(self, enabled: bool) -> "FusionConfig":
        return replace(self, alternate_mounting=bool(enabled))

    @classmethod
    def from_env(cls, environ=None) -> "FusionConfig":
        """
        Build a config from GYROLINEAR_* environment variables.

        Unset variables fall back to the dataclass defaults. Values that do
        not parse raise InvalidConfiguration.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        try:
            config = cls(
                mean_filter_window=int(env.get(
                    "GYROLINEAR_MEAN_FILTER_WINDOW", defaults.mean_filter_window)),
                min_sample_count=int(env.get(
                    "GYROLINEAR_MIN_SAMPLE_COUNT", defaults.min_sample_count)),
                gravity=float(env.get("GYROLINEAR_GRAVITY", defaults.gravity)),
                epsilon=float(env.get("GYROLINEAR_EPSILON", defaults.epsilon)),
                alternate_mounting=str(env.get(
                    "GYROLINEAR_ALTERNATE_MOUNTING", "0")).strip().lower() in _TRUTHY,
            )
        except ValueError as e:
            raise InvalidConfiguration(f"bad GYROLINEAR_* environment value: {e}") from e
        return config.validate()


DEFAULT_FUSION_CONFIG = FusionConfig()
