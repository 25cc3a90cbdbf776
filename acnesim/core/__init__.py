"""
Core engine components for the acne progression engine.
"""

from .stages import Stage, StageThresholds, StageInfo, STAGE_THRESHOLDS
from .state import ControlParameters, DerivedRates, BiologicalLevels, StateSnapshot
from .rates import RateDeriver
from .integrator import StateIntegrator, IntegrationResult
from .stage_machine import StageMachine, StageChange, ChangeCause
from .clock import SimulationClock

__all__ = [
    'Stage',
    'StageThresholds',
    'StageInfo',
    'STAGE_THRESHOLDS',
    'ControlParameters',
    'DerivedRates',
    'BiologicalLevels',
    'StateSnapshot',
    'RateDeriver',
    'StateIntegrator',
    'IntegrationResult',
    'StageMachine',
    'StageChange',
    'ChangeCause',
    'SimulationClock',
]
