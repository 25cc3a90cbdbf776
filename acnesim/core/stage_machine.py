"""
Stage machine for the acne progression engine.

Holds the current stage, evaluates the automatic transition table once
per tick and implements the manual operations used by direct UI action
(set, advance, skip, reset). Every stage change is described by a
StageChange record so observers and loggers see a uniform event stream.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Any, Union
from enum import Enum

from .state import BiologicalLevels
from .stages import (
    Stage,
    StageInfo,
    StageThresholds,
    STAGE_THRESHOLDS,
    FORWARD_PATH,
    TERMINAL_STAGES,
    next_stage,
)


class ChangeCause(Enum):
    """Why a stage change happened."""
    THRESHOLD = "threshold"                     # Transition table rule
    HEALING_RESOLUTION = "healing_resolution"   # Cleared during healing integration
    MANUAL_SET = "manual_set"
    MANUAL_ADVANCE = "manual_advance"
    SKIP = "skip"
    RESET = "reset"


@dataclass
class StageChange:
    """A single stage change."""
    timestamp: float
    from_stage: Stage
    to_stage: Stage
    cause: ChangeCause

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'from_stage': self.from_stage.value,
            'to_stage': self.to_stage.value,
            'cause': self.cause.value,
        }


# Fraction of the governing threshold a level is seeded to by set_stage
STAGE_SEED_FRACTION = 0.8

# Representative levels per destination stage used by skip_to_next_stage.
# Keys are BiologicalLevels fields; callables receive the thresholds.
SKIP_PRESETS: Dict[Stage, Dict[str, Any]] = {
    # Microcomedone deep in the follicle
    Stage.COMEDONE: {
        'sebum': lambda t: t.sebum + 0.1,
        'bacteria': 15.0,
        'inflammation': 5.0,
    },
    # Visible plug with initial immune response
    Stage.PAPULE: {
        'sebum': 85.0,
        'bacteria': lambda t: t.bacteria + 0.1,
        'inflammation': lambda t: t.inflammation + 0.1,
        'neutrophils': 20.0,
    },
    # Inflammation extends from surface into dermis, pus begins forming
    Stage.PUSTULE: {
        'sebum': 90.0,
        'bacteria': 75.0,
        'inflammation': 70.0,
        'neutrophils': 60.0,
        'pus': lambda t: t.pus + 0.1,
    },
    # Peak neutrophil activity under a visible head
    Stage.RUPTURE: {
        'sebum': 85.0,
        'bacteria': 85.0,
        'inflammation': 85.0,
        'neutrophils': 90.0,
        'pus': lambda t: t.rupture + 0.1,
    },
    # Follicle contents spread into the dermis
    Stage.HEALING: {
        'sebum': 40.0,
        'bacteria': 95.0,
        'inflammation': 100.0,
        'neutrophils': 100.0,
        'pus': 60.0,
        'healing_progress': lambda t: t.healing + 0.1,
    },
    # Inflammation subsiding from the dermis upward
    Stage.RESOLVED: {
        'sebum': 30.0,
        'bacteria': 30.0,
        'inflammation': 40.0,
        'neutrophils': 30.0,
        'pus': 10.0,
        'healing_progress': lambda t: t.resolved + 0.1,
    },
}

# Post-inflammatory changes applied when skipping while already resolved
RESOLVED_AFTERMATH = {
    'sebum': 20.0,
    'bacteria': 10.0,
    'inflammation': 15.0,
    'neutrophils': 5.0,
    'pus': 0.0,
    'healing_progress': 100.0,
}


class StageMachine:
    """
    Owns the current stage and the rules for changing it.

    Example:
        >>> machine = StageMachine()
        >>> levels = BiologicalLevels()
        >>> machine.advance(levels, timestamp=0.0).to_stage
        <Stage.COMEDONE: 'comedone'>
        >>> levels.sebum
        70.0
    """

    def __init__(self, thresholds: StageThresholds = STAGE_THRESHOLDS):
        self.thresholds = thresholds
        self.stage = Stage.INCUBATION

    # =========================================================================
    # Automatic Transitions
    # =========================================================================

    def check_transition(self, levels: BiologicalLevels,
                         timestamp: float) -> Optional[StageChange]:
        """
        Evaluate the rules reachable from the current stage (single hop).

        Returns:
            StageChange if the stage changed, None otherwise
        """
        destination = next_stage(self.stage, levels, self.thresholds)
        if destination == self.stage:
            return None
        return self._change(destination, ChangeCause.THRESHOLD, timestamp)

    def resolve_from_healing(self, timestamp: float) -> Optional[StageChange]:
        """Record the healing -> resolved promotion made during integration."""
        if self.stage != Stage.HEALING:
            return None
        return self._change(Stage.RESOLVED, ChangeCause.HEALING_RESOLUTION, timestamp)

    # =========================================================================
    # Manual Operations
    # =========================================================================

    def set_stage(self, stage: Union[Stage, str], levels: BiologicalLevels,
                  timestamp: float) -> StageChange:
        """
        Assign a stage directly and seed levels for it.

        Raises:
            InvalidStageError: If the stage is unknown (nothing is mutated)
        """
        target = Stage.parse(stage)
        change = self._change(target, ChangeCause.MANUAL_SET, timestamp)
        self.reset_stage_progress(levels)
        return change

    def reset_stage_progress(self, levels: BiologicalLevels) -> None:
        """
        Seed levels to a fraction of the current stage's governing threshold.

        Deterministic for a given stage, so repeated calls are idempotent.
        """
        t = self.thresholds
        f = STAGE_SEED_FRACTION
        stage = self.stage

        if stage == Stage.INCUBATION:
            levels.bacteria = 0.0
            levels.inflammation = 0.0
        elif stage == Stage.COMEDONE:
            levels.bacteria = t.bacteria * f
            levels.inflammation = t.inflammation * f
        elif stage == Stage.PAPULE:
            levels.inflammation = t.inflammation * f
            levels.pus = 0.0
        elif stage == Stage.PUSTULE:
            levels.pus = t.pus * f
        elif stage == Stage.RUPTURE:
            levels.pus = t.rupture * f
            levels.healing_progress = 0.0
        elif stage == Stage.HEALING:
            levels.healing_progress = t.healing * f
        elif stage == Stage.WORSENING:
            levels.bacteria = t.bacteria * f
            levels.inflammation = t.inflammation * f
        elif stage == Stage.RESOLVED:
            levels.healing_progress = 100.0

        levels.clamp()

    def advance(self, levels: BiologicalLevels,
                timestamp: float) -> Optional[StageChange]:
        """
        Move one step along the cyclic forward path.

        Forces the minimum qualifying level for the destination. Advancing
        from RESOLVED wraps to a fresh INCUBATION. WORSENING is off the
        forward path, so advancing from it does nothing.

        Returns:
            StageChange, or None when the current stage has no successor
        """
        destination = FORWARD_PATH.get(self.stage)
        if destination is None:
            return None

        t = self.thresholds

        if destination == Stage.COMEDONE:
            levels.sebum = t.sebum
        elif destination == Stage.PAPULE:
            levels.inflammation = t.inflammation
            levels.bacteria = max(levels.bacteria, t.bacteria + 5)
        elif destination == Stage.PUSTULE:
            levels.pus = t.pus
        elif destination == Stage.RUPTURE:
            levels.pus = t.rupture
            levels.healing_progress = 0.0
        elif destination == Stage.HEALING:
            levels.healing_progress = t.healing
        elif destination == Stage.RESOLVED:
            levels.healing_progress = t.resolved
            levels.inflammation = 0.0
            levels.pus = 0.0
        elif destination == Stage.INCUBATION:
            self._reset_levels(levels)

        levels.clamp()
        return self._change(destination, ChangeCause.MANUAL_ADVANCE, timestamp)

    def skip(self, levels: BiologicalLevels,
             timestamp: float) -> Optional[StageChange]:
        """
        Jump to the next stage with anatomically representative levels.

        While RESOLVED the stage is kept and post-inflammatory levels are
        applied instead. WORSENING cannot be skipped.

        Returns:
            StageChange if the stage changed, None otherwise
        """
        if self.stage == Stage.RESOLVED:
            self._apply_preset(levels, RESOLVED_AFTERMATH)
            return None

        if self.stage == Stage.WORSENING:
            return None

        destination = FORWARD_PATH[self.stage]
        self._apply_preset(levels, SKIP_PRESETS[destination])
        return self._change(destination, ChangeCause.SKIP, timestamp)

    def reset(self, levels: BiologicalLevels,
              timestamp: float = 0.0) -> Optional[StageChange]:
        """Return to INCUBATION with construction-time levels."""
        levels.reset()
        if self.stage == Stage.INCUBATION:
            return None
        return self._change(Stage.INCUBATION, ChangeCause.RESET, timestamp)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def is_terminal(self) -> bool:
        """Whether no automatic transition can leave the current stage."""
        return self.stage in TERMINAL_STAGES

    def stage_info(self) -> StageInfo:
        return StageInfo.for_stage(self.stage)

    # =========================================================================
    # Internals
    # =========================================================================

    def _change(self, destination: Stage, cause: ChangeCause,
                timestamp: float) -> StageChange:
        change = StageChange(
            timestamp=timestamp,
            from_stage=self.stage,
            to_stage=destination,
            cause=cause,
        )
        self.stage = destination
        return change

    def _apply_preset(self, levels: BiologicalLevels, preset: Dict[str, Any]) -> None:
        for name, value in preset.items():
            setattr(levels, name, value(self.thresholds) if callable(value) else value)
        levels.clamp()

    @staticmethod
    def _reset_levels(levels: BiologicalLevels) -> None:
        # Wrapping keeps the smoothed medication level; it follows the slider
        medication = levels.medication
        levels.reset()
        levels.medication = medication
