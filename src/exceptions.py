"""
exceptions.py
-------------
Typed failures raised by the analytics core.

Every check runs before any computation starts, so callers never get a
partial result or a silent NaN / inf back.
"""


class AnalyticsError(ValueError):
    """Base class for input / configuration failures."""


class InvalidInput(AnalyticsError):
    """Bad instrument or portfolio parameters."""


class InvalidConfiguration(AnalyticsError):
    """Bad simulation or sampler parameters."""


class SimulationCancelled(RuntimeError):
    """The caller's cancellation flag was set while a simulation was running."""
