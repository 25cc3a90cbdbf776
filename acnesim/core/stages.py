"""
Lesion stages and stage-transition thresholds.

Defines the closed set of clinical stages, the immutable thresholds that
gate automatic transitions, the explicit transition table and the
presentation helpers (stage progress, anatomical stage info) a renderer
keys off.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple, Union, TYPE_CHECKING
from enum import Enum

from ..utils.math_utils import clamp, ratio_percent
from ..utils.validators import InvalidStageError

if TYPE_CHECKING:
    from .state import BiologicalLevels


class Stage(Enum):
    """Clinical stages of an acne lesion."""
    INCUBATION = "incubation"   # Follicle filling with sebum
    COMEDONE = "comedone"       # Plugged follicle
    PAPULE = "papule"           # Red inflamed bump
    PUSTULE = "pustule"         # Pus-filled head
    RUPTURE = "rupture"         # Follicle wall breaks
    HEALING = "healing"         # Inflammation subsiding
    WORSENING = "worsening"     # Failed healing, terminal branch
    RESOLVED = "resolved"       # Healed, terminal until reset

    @classmethod
    def parse(cls, value: Union['Stage', str]) -> 'Stage':
        """
        Convert a stage name (or Stage) into a Stage.

        Raises:
            InvalidStageError: If the value names no known stage
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise InvalidStageError(value)

    @property
    def display_name(self) -> str:
        """Capitalised name for display."""
        return format_stage_name(self)


def format_stage_name(stage: Union[Stage, str]) -> str:
    """
    Format a stage for display.

    Example:
        >>> format_stage_name(Stage.PAPULE)
        'Papule'
    """
    name = stage.value if isinstance(stage, Stage) else str(stage)
    return ' '.join(word.capitalize() for word in name.split('_'))


@dataclass(frozen=True)
class StageThresholds:
    """Fixed levels that gate automatic stage transitions."""
    sebum: float = 70.0         # Sebum level to form a comedone
    bacteria: float = 60.0      # Bacteria level to trigger inflammation
    inflammation: float = 40.0  # Inflammation level to form a papule
    pus: float = 70.0           # Pus level to form a pustule
    rupture: float = 90.0       # Pus level that ruptures the follicle
    healing: float = 30.0       # Healing progress to enter healing
    resolved: float = 80.0      # Healing progress to consider resolved


STAGE_THRESHOLDS = StageThresholds()


# Canonical forward path used by manual advance (cyclic)
FORWARD_PATH: Dict[Stage, Stage] = {
    Stage.INCUBATION: Stage.COMEDONE,
    Stage.COMEDONE: Stage.PAPULE,
    Stage.PAPULE: Stage.PUSTULE,
    Stage.PUSTULE: Stage.RUPTURE,
    Stage.RUPTURE: Stage.HEALING,
    Stage.HEALING: Stage.RESOLVED,
    Stage.RESOLVED: Stage.INCUBATION,
}

TERMINAL_STAGES = frozenset({Stage.WORSENING, Stage.RESOLVED})


# =============================================================================
# Transition Table
# =============================================================================

Predicate = Callable[['BiologicalLevels', StageThresholds], bool]


def _incubation_to_comedone(levels, t):
    return (levels.bacteria > t.bacteria and
            levels.inflammation > t.inflammation)


def _comedone_to_papule(levels, t):
    return levels.inflammation > t.inflammation


def _papule_to_pustule(levels, t):
    return levels.pus > t.pus


def _pustule_to_rupture(levels, t):
    return levels.pus > t.rupture


def _rupture_to_healing(levels, t):
    return levels.healing_progress > t.healing


def _rupture_to_worsening(levels, t):
    # Inflammation is compared against the bacteria threshold here, not the
    # inflammation threshold. Kept as observed; pending product clarification.
    return (levels.bacteria > t.bacteria or
            levels.inflammation > t.bacteria)


def _healing_to_resolved(levels, t):
    return levels.healing_progress >= t.resolved


# Rules are evaluated in order; the first matching rule wins.
TRANSITION_TABLE: Dict[Stage, List[Tuple[Predicate, Stage]]] = {
    Stage.INCUBATION: [(_incubation_to_comedone, Stage.COMEDONE)],
    Stage.COMEDONE: [(_comedone_to_papule, Stage.PAPULE)],
    Stage.PAPULE: [(_papule_to_pustule, Stage.PUSTULE)],
    Stage.PUSTULE: [(_pustule_to_rupture, Stage.RUPTURE)],
    Stage.RUPTURE: [
        (_rupture_to_healing, Stage.HEALING),
        (_rupture_to_worsening, Stage.WORSENING),
    ],
    Stage.HEALING: [(_healing_to_resolved, Stage.RESOLVED)],
    Stage.WORSENING: [],
    Stage.RESOLVED: [],
}


def next_stage(stage: Stage, levels: 'BiologicalLevels',
               thresholds: StageThresholds = STAGE_THRESHOLDS) -> Stage:
    """
    Evaluate the transition rules reachable from a stage.

    Returns:
        The destination stage, or the same stage if no rule matches
    """
    for predicate, destination in TRANSITION_TABLE[stage]:
        if predicate(levels, thresholds):
            return destination
    return stage


# =============================================================================
# Presentation Helpers
# =============================================================================

@dataclass(frozen=True)
class StageInfo:
    """Anatomical description of a stage for the renderer."""
    stage: Stage
    is_deep: bool
    is_surface: bool
    has_visible_head: bool
    has_deep_inflammation: bool

    @classmethod
    def for_stage(cls, stage: Stage) -> 'StageInfo':
        return cls(
            stage=stage,
            is_deep=stage in (Stage.RUPTURE, Stage.HEALING),
            is_surface=stage in (Stage.COMEDONE, Stage.PAPULE, Stage.PUSTULE),
            has_visible_head=stage in (Stage.COMEDONE, Stage.PUSTULE),
            has_deep_inflammation=stage in (Stage.PAPULE, Stage.PUSTULE, Stage.RUPTURE),
        )

    def to_dict(self) -> Dict[str, object]:
        return {
            'stage': self.stage.value,
            'is_deep': self.is_deep,
            'is_surface': self.is_surface,
            'has_visible_head': self.has_visible_head,
            'has_deep_inflammation': self.has_deep_inflammation,
        }


def stage_progress(stage: Stage, levels: 'BiologicalLevels',
                   thresholds: StageThresholds = STAGE_THRESHOLDS) -> float:
    """
    Percentage (0-100) of the way from the current stage to the next.

    For rupture this is the larger of healing progress and worsening risk;
    for worsening it reflects how severe the condition is.
    """
    t = thresholds

    if stage == Stage.INCUBATION:
        progress = max(ratio_percent(levels.bacteria, t.bacteria),
                       ratio_percent(levels.inflammation, t.inflammation))
    elif stage == Stage.COMEDONE:
        progress = ratio_percent(levels.inflammation, t.inflammation)
    elif stage == Stage.PAPULE:
        progress = ratio_percent(levels.pus, t.pus)
    elif stage == Stage.PUSTULE:
        progress = ratio_percent(levels.pus, t.rupture)
    elif stage == Stage.RUPTURE:
        progress = max(ratio_percent(levels.healing_progress, t.healing),
                       ratio_percent(levels.bacteria, t.bacteria),
                       ratio_percent(levels.inflammation, t.bacteria))
    elif stage == Stage.HEALING:
        progress = ratio_percent(levels.healing_progress, t.resolved)
    elif stage == Stage.WORSENING:
        progress = min(ratio_percent(levels.bacteria, t.bacteria),
                       ratio_percent(levels.inflammation, t.inflammation))
    else:
        progress = 100.0

    return clamp(progress, 0.0, 100.0)
