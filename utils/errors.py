"""
# errors.py - v1.1760000000
# Created: Monday, October 5, 2026
Error taxonomy for the mask refinement engine.

Only ConfigError is allowed to cross the public refine() boundary. Geometry
problems are reported as GeometryWarning records in the result diagnostics,
and metric failures are recovered with neutral fallback values.
"""

import numpy as np


class MaskRefinementError(Exception):
    """Base class for all refinement engine errors"""


class ConfigError(MaskRefinementError, ValueError):
    """
    Invalid numeric parameter or malformed input that makes the call meaningless
    (non-positive kernel size, kernel larger than the image, bad connectivity,
    polygon without any points). Always fatal.
    """


class MetricComputationFailure(MaskRefinementError):
    """Raised by an individual metric when it cannot be computed from the inputs"""


class RefinementWarning(UserWarning):
    """
    Non-fatal problem reported in the diagnostics list of a refinement result.

    Instances are not raised; they are collected so callers can inspect what
    was skipped or degraded.
    """

    def __init__(self, message, polygon_name=None, stage=None):
        super().__init__(message)
        self.polygon_name = polygon_name
        self.stage = stage

    def __str__(self):
        prefix = f"[{self.stage}] " if self.stage else ""
        return f"{prefix}{self.args[0]}"


class GeometryWarning(RefinementWarning):
    """Degenerate polygon: too few points or a self-intersecting boundary"""


class StageDegradedWarning(RefinementWarning):
    """A stage failed unexpectedly and passed its input through unchanged"""


def require_positive_int(name, value, maximum=None):
    """
    Validate an integer parameter

    Args:
        name: Parameter name used in the error message
        value: Value to check
        maximum: Optional inclusive upper bound

    Returns:
        The value as an int

    Raises:
        ConfigError: If the value is not a positive integer within bounds
    """
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"{name} must be an integer, got {value!r}")
    elif not isinstance(value, (int, np.integer)):
        raise ConfigError(f"{name} must be an integer, got {value!r}")
    value = int(value)
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigError(f"{name} must be at most {maximum}, got {value}")
    return value


def require_positive_number(name, value):
    """Validate a strictly positive float parameter"""
    if isinstance(value, bool) or not isinstance(value, (int, float, np.integer, np.floating)):
        raise ConfigError(f"{name} must be a number, got {value!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return float(value)
