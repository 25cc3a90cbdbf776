"""
State management for the acne progression engine.

This module defines the runtime state containers: the user-controlled
parameters, the rates derived from them each tick, and the simulated
biological levels. Configuration (which is static) lives in
acnesim.config.
"""

from dataclasses import dataclass, fields
from typing import Dict, Any, Tuple

from ..utils.math_utils import clamp, clamp_level


PARAM_MIN = 0
PARAM_MAX = 1000

PARAMETER_NAMES: Tuple[str, ...] = (
    'sebum', 'bacteria', 'medication', 'inflammation',
    'healing', 'temperature', 'humidity', 'friction',
)


def clamp_param(value: float) -> int:
    """Clamp a control value to the 0-1000 slider scale."""
    return int(round(clamp(value, PARAM_MIN, PARAM_MAX)))


# =============================================================================
# Control Parameters
# =============================================================================

@dataclass
class ControlParameters:
    """
    The eight slider values set by the UI collaborator.

    These represent user intent, so they survive engine resets.
    """
    sebum: int = 500
    bacteria: int = 200
    medication: int = 0
    inflammation: int = 500
    healing: int = 500
    temperature: int = 500
    humidity: int = 500
    friction: int = 0

    def __post_init__(self):
        for name in PARAMETER_NAMES:
            setattr(self, name, clamp_param(getattr(self, name)))

    def set(self, name: str, value: float) -> int:
        """
        Clamp and store a parameter.

        Returns:
            The stored value
        """
        if name not in PARAMETER_NAMES:
            raise KeyError(name)
        stored = clamp_param(value)
        setattr(self, name, stored)
        return stored

    def get(self, name: str) -> int:
        """Get a parameter value by name."""
        if name not in PARAMETER_NAMES:
            raise KeyError(name)
        return getattr(self, name)

    def update(self, **kwargs) -> None:
        """Set several parameters at once."""
        for name, value in kwargs.items():
            self.set(name, value)

    def copy(self) -> 'ControlParameters':
        return ControlParameters(**self.to_dict())

    def to_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in PARAMETER_NAMES}


# =============================================================================
# Derived Rates
# =============================================================================

@dataclass
class DerivedRates:
    """Rates recomputed from the control parameters at the start of a tick."""
    sebum_rate: float = 0.05
    bacteria_growth_rate: float = 0.05
    baseline_inflammation: float = 0.0
    humidity_effect: float = 1.0

    def to_dict(self) -> Dict[str, float]:
        return {
            'sebum_rate': self.sebum_rate,
            'bacteria_growth_rate': self.bacteria_growth_rate,
            'baseline_inflammation': self.baseline_inflammation,
            'humidity_effect': self.humidity_effect,
        }


# =============================================================================
# Biological Levels
# =============================================================================

INITIAL_SEBUM_LEVEL = 20.0


@dataclass
class BiologicalLevels:
    """
    The simulated organism state.

    Every level is on a 0-100 scale. medication is the low-pass filtered
    medication slider; it is clamped like the others, so it saturates at
    100 for slider values above 100.
    """
    sebum: float = INITIAL_SEBUM_LEVEL
    bacteria: float = 0.0
    inflammation: float = 0.0
    neutrophils: float = 0.0
    pus: float = 0.0
    medication: float = 0.0
    healing_progress: float = 0.0

    def clamp(self) -> None:
        """Clamp every biological level into its valid range."""
        self.sebum = clamp_level(self.sebum)
        self.bacteria = clamp_level(self.bacteria)
        self.inflammation = clamp_level(self.inflammation)
        self.neutrophils = clamp_level(self.neutrophils)
        self.pus = clamp_level(self.pus)
        self.medication = clamp_level(self.medication)
        self.healing_progress = clamp_level(self.healing_progress)

    def reset(self) -> None:
        """Reset levels to construction-time values."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def copy(self) -> 'BiologicalLevels':
        return BiologicalLevels(**{f.name: getattr(self, f.name) for f in fields(self)})

    def to_dict(self) -> Dict[str, float]:
        return {
            'sebum': self.sebum,
            'bacteria': self.bacteria,
            'inflammation': self.inflammation,
            'neutrophils': self.neutrophils,
            'pus': self.pus,
            'medication': self.medication,
            'healing_progress': self.healing_progress,
        }


# =============================================================================
# Snapshot
# =============================================================================

@dataclass
class StateSnapshot:
    """
    Public state handed to observers after every tick.

    Field names follow the renderer's vocabulary.
    """
    simulation_time: float
    tick: int
    stage: str
    sebum_level: float
    bacteria_level: float
    inflammation_level: float
    neutrophil_level: float
    pus_level: float
    medication_level: float
    healing_progress: float
    stage_progress: float
    progression_accelerator: float

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
