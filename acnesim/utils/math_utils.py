"""
Mathematical utility functions for the acne progression engine.

Used by the rate deriver and integrator for clamping, smoothing and
progress calculations.
"""

from typing import Union

Number = Union[int, float]


def clamp(value: Number, min_val: Number, max_val: Number) -> Number:
    """
    Constrain a value to a range.

    Args:
        value: The value to clamp
        min_val: Minimum allowed value
        max_val: Maximum allowed value

    Returns:
        The clamped value

    Example:
        >>> clamp(120.0, 0.0, 100.0)
        100.0
        >>> clamp(-3.0, 0.0, 100.0)
        0.0
        >>> clamp(42.0, 0.0, 100.0)
        42.0
    """
    return max(min_val, min(max_val, value))


def clamp_level(value: float) -> float:
    """Constrain a biological level to the 0-100 scale."""
    return clamp(value, 0.0, 100.0)


def exp_smooth(current: float, target: float, factor: float) -> float:
    """
    Exponential smoothing towards a target (first-order low-pass filter).

    This is the filter applied to the medication level every tick, so the
    effective medication ramps smoothly after a slider change.

    Args:
        current: Current value
        target: Target value to move towards
        factor: Smoothing factor (0.0-1.0, lower = slower smoothing)

    Returns:
        New smoothed value

    Example:
        >>> exp_smooth(0.0, 1000.0, 0.01)
        10.0
        >>> exp_smooth(10.0, 1000.0, 0.01)
        19.9
    """
    return current + (target - current) * factor


def ratio_percent(value: float, reference: float) -> float:
    """
    Express a value as a percentage of a reference value.

    Returns 0 when the reference is 0.

    Example:
        >>> ratio_percent(30.0, 60.0)
        50.0
    """
    if reference == 0:
        return 0.0
    return (value / reference) * 100.0
