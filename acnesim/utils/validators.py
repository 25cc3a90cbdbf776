"""
Input checks shared by the config loader and the engine.

Every check returns the value it was given so calls can be nested:

    validate_range(validate_number(raw, "progression_accelerator"), 0.1, 10.0,
                   "progression_accelerator")

The engine catches ValidationError and logs it; the loader rewraps it as
ConfigError with the offending file and JSON path.
"""

import math
from typing import Any, Iterable, Optional


class ValidationError(Exception):
    """A value failed a check. `field` names the offending setting."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.message = message
        self.field = field
        text = message if field is None else f"{field}: {message}"
        super().__init__(text)


class InvalidStageError(ValidationError):
    """Stage identifier outside the eight lesion stages."""

    def __init__(self, stage: Any, field: str = "stage"):
        self.stage = stage
        super().__init__(f"unknown stage '{stage}'", field)


CONTROL_MIN = 0
CONTROL_MAX = 1000

VALID_PARAMETERS = frozenset((
    'sebum', 'bacteria', 'medication', 'inflammation',
    'healing', 'temperature', 'humidity', 'friction',
))
VALID_LOG_LEVELS = frozenset(('trace', 'debug', 'info', 'warning', 'error', 'none'))


def validate_number(value: Any, field: str = "value") -> float:
    """Accept finite ints and floats; bools, numeric strings, NaN and infinities are rejected."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"expected a number, got {type(value).__name__}", field)
    if not math.isfinite(value):
        raise ValidationError(f"expected a finite number, got {value}", field)
    return value


def validate_range(value: float, min_val: float, max_val: float,
                   field: str = "value") -> float:
    """Inclusive bounds check."""
    if value < min_val or value > max_val:
        raise ValidationError(f"{value} is outside [{min_val}, {max_val}]", field)
    return value


def validate_positive(value: float, field: str = "value",
                      allow_zero: bool = True) -> float:
    """
    Lower-bound check at zero.

    Intervals such as the periodic log interval may be zero (disabled);
    tick sizes may not.
    """
    too_small = value < 0 if allow_zero else value <= 0
    if too_small:
        bound = ">= 0" if allow_zero else "> 0"
        raise ValidationError(f"{value} is not {bound}", field)
    return value


def validate_in_set(value: Any, valid_values: Iterable[Any],
                    field: str = "value") -> Any:
    """Membership check; the message lists the accepted values."""
    choices = sorted(valid_values, key=str)
    if value in choices:
        return value
    listed = ', '.join(str(c) for c in choices)
    raise ValidationError(f"'{value}' is not one of: {listed}", field)


def validate_parameter_name(name: str, field: str = "parameter") -> str:
    """One of the eight control parameter names."""
    return validate_in_set(name, VALID_PARAMETERS, field)


def validate_control_value(value: Any, field: str = "value") -> float:
    """A number on the 0-1000 control scale."""
    return validate_range(validate_number(value, field), CONTROL_MIN, CONTROL_MAX, field)
