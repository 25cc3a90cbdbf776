"""
Utility functions for the acne progression engine.
"""

from .math_utils import clamp, clamp_level, exp_smooth, ratio_percent
from .validators import (
    ValidationError,
    InvalidStageError,
    validate_range,
    validate_in_set,
)

__all__ = [
    'clamp',
    'clamp_level',
    'exp_smooth',
    'ratio_percent',
    'ValidationError',
    'InvalidStageError',
    'validate_range',
    'validate_in_set',
]
