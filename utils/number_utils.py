"""
Numeric helpers shared by the scoring engines.

Collaborator rows arrive as JSON, so quantities may be strings, None or
garbage. Everything funnels through to_number() and defaults to zero.
"""

import math
from typing import Any


def to_number(value: Any) -> float:
    """Parse a value as a finite float, or 0.0 when it is not one."""
    if isinstance(value, bool):
        return float(value)
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return 0.0
    return parsed if math.isfinite(parsed) else 0.0


def non_negative(value: Any) -> float:
    """to_number() floored at zero."""
    return max(to_number(value), 0.0)


def clamp(value: float, low: float, high: float) -> float:
    """Bound value to [low, high]."""
    return max(low, min(high, value))


def round_half_up(value: float) -> int:
    """
    Round to the nearest integer with .5 going up.

    Python's round() is banker's rounding (round(2.5) == 2); every score in
    the engine rounds .5 upward instead.
    """
    return int(math.floor(value + 0.5))


def clamp_limit(value: Any, default: int, low: int, high: int) -> int:
    """
    Resolve a caller-supplied limit.

    Missing, non-numeric or non-positive values fall back to the default;
    the result is always clamped to [low, high].
    """
    parsed = to_number(value)
    if parsed <= 0:
        parsed = default
    return int(clamp(int(parsed), low, high))
