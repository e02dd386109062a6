import math
from typing import Any


class GuardianError(Exception):
    """Base class for reputation engine errors."""
    pass


class UnknownActivityTypeError(GuardianError, ValueError):
    """Raised for an activity type with no entry in the points table."""
    pass


class UnknownOutcomeTypeError(GuardianError, ValueError):
    """Raised for an outcome type with no impact weight."""
    pass


class UnknownBadgeError(GuardianError, ValueError):
    """Raised for a badge id that is not in the catalog."""
    pass


class InvalidStatsError(GuardianError, ValueError):
    """Raised when a count or total is negative, NaN or not a number."""
    pass


def require_count(name: str, value: Any) -> int:
    """Validate a non-negative integer counter and return it."""
    if isinstance(value, bool) or not isinstance(value, int):
        if isinstance(value, float) and math.isnan(value):
            raise InvalidStatsError(f"{name} must be a number, got NaN")
        raise InvalidStatsError(f"{name} must be an integer, got {value!r}")
    if value < 0:
        raise InvalidStatsError(f"{name} must be >= 0, got {value}")
    return value
