"""
Moving-average smoothing for gyrolinear.

Every raw channel (acceleration, gravity, magnetic field) and the fused
linear acceleration output pass through their own MeanFilter before use.
The filter is a boxcar average over the last N samples with a running sum.
Updates are amortized O(1): the history is only scanned once per lap, when
the running sum is rebuilt.
"""

from typing import Optional, Sequence, Tuple

import numpy as np

from .errors import InvalidConfiguration


class MeanFilter:
    """
    Sliding-window arithmetic mean over a fixed-width vector signal.

    Keeps one circular history per axis. While the window is filling up the
    output is the mean of the samples seen so far; once full, the oldest
    sample is evicted before the newest is admitted.

    The running sum is rebuilt from the history once per lap and that mean is
    clipped to the held range. An axis whose every held sample is identical
    returns that value exactly, tracked by a per-axis run counter.

    Usage:
        mf = MeanFilter(window_size=10)
        ax, ay, az = mf.filter((ax, ay, az))
    """

    def __init__(self, window_size: int = 10, width: int = 3):
        """
        Initialize mean filter.

        Args:
            window_size: Number of samples averaged (must be > 0)
            width: Number of axes per sample (3 for Vector3 channels)
        """
        self.width = int(width)
        self.window_size = 0
        self._history: Optional[np.ndarray] = None
        self._sum: Optional[np.ndarray] = None
        self._last: Optional[np.ndarray] = None
        self._run: Optional[np.ndarray] = None
        self._index = 0
        self._count = 0

        self.configure(window_size)

    def configure(self, window_size: int):
        """
        Set the window size and clear the history.

        Raises:
            InvalidConfiguration: if window_size <= 0
        """
        window_size = int(window_size)
        if window_size <= 0:
            raise InvalidConfiguration(f"window size must be positive, got {window_size}")

        self.window_size = window_size
        self._history = np.zeros((window_size, self.width), dtype=np.float64)
        self._sum = np.zeros(self.width, dtype=np.float64)
        # Trailing run of identical values per axis
        self._last = np.full(self.width, np.nan)
        self._run = np.zeros(self.width, dtype=np.int64)
        self._index = 0
        self._count = 0

    def filter(self, sample: Sequence[float]) -> Tuple[float, ...]:
        """
        Admit one sample and return the current mean.

        Args:
            sample: One value per axis

        Returns:
            Tuple with the mean of every sample currently held, per axis
        """
        values = np.array(sample, dtype=np.float64)
        if values.shape != (self.width,):
            raise ValueError(f"expected {self.width} values, got shape {values.shape}")

        if self._count == self.window_size:
            # Evict oldest
            self._sum -= self._history[self._index]
        else:
            self._count += 1

        self._history[self._index] = values
        self._sum += values
        self._index = (self._index + 1) % self.window_size

        self._run = np.where(values == self._last, self._run + 1, 1)
        self._last = values

        mean = self._sum / self._count

        if self._index == 0:
            # Re-sum once per lap so subtract/add roundoff cannot accumulate
            self._sum = self._history.sum(axis=0)
            mean = np.clip(
                self._sum / self._count,
                self._history.min(axis=0),
                self._history.max(axis=0)
            )

        # An axis whose whole window holds one value averages to exactly that value
        mean = np.where(self._run >= self._count, values, mean)
        return tuple(float(v) for v in mean)

    def reset(self):
        """Drop the history, keeping the window size."""
        self.configure(self.window_size)

    def __len__(self) -> int:
        return self._count

    def get_history(self) -> np.ndarray:
        """Return held samples, oldest first (copy)."""
        if self._count < self.window_size:
            return self._history[:self._count].copy()
        return np.roll(self._history, -self._index, axis=0)
