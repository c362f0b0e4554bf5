"""
Exception types for gyrolinear.

InvalidConfiguration and ReentrantCallbackError propagate to the host.
OrientationLockFailure is raised by the basis builder and always handled by
the initial orientation estimator, which keeps accumulating samples and
retries.
"""


class GyroLinearError(Exception):
    """Base class for all gyrolinear errors."""


class InvalidConfiguration(GyroLinearError, ValueError):
    """A filter window, sample count or physical constant is out of range."""


class OrientationLockFailure(GyroLinearError):
    """Gravity and magnetic vectors cannot form an orthonormal basis."""


class ReentrantCallbackError(GyroLinearError, RuntimeError):
    """A sensor callback re-entered an engine that is still dispatching."""
