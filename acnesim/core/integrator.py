"""
Biological state integration for the acne progression engine.

Advances the biological levels by one tick. The update order matters:
each quantity depends on the ones updated before it in the same tick
(sebum -> bacteria -> inflammation/neutrophils -> pus -> healing).
"""

from dataclasses import dataclass
from typing import Optional

from .state import ControlParameters, DerivedRates, BiologicalLevels
from .stages import Stage, StageThresholds, STAGE_THRESHOLDS


BACTERIA_BOOTSTRAP = 2.0        # Seeding multiplier while no bacteria present
INFLAMMATION_FLOOR = 30.0       # Bacteria below this cause no inflammation
INFLAMMATION_SPAN = 40.0
NEUTROPHIL_GAIN = 2.0
PUS_NEUTROPHIL_MIN = 10.0
PUS_SCALE = 80.0
NEUTROPHIL_CLEARANCE = 1.2
PUS_CLEARANCE = 0.8
RESOLVE_INFLAMMATION_MAX = 10.0
RESOLVE_PUS_MAX = 5.0

INFLAMING_STAGES = (Stage.COMEDONE, Stage.PAPULE)
PUS_STAGES = (Stage.PAPULE, Stage.PUSTULE)
HEALING_STAGES = (Stage.HEALING, Stage.RESOLVED)


@dataclass
class IntegrationResult:
    """Outcome of one integration step."""
    stage: Stage
    healing_resolved: bool = False
    inflammation_delta: float = 0.0
    healing_delta: float = 0.0


class StateIntegrator:
    """
    Advances biological levels using derived rates and the current stage.

    The healing step may promote HEALING to RESOLVED directly when
    inflammation and pus have cleared. That promotion is the one place a
    level update changes the stage outside the stage machine; it is
    reported through IntegrationResult.healing_resolved.

    Example:
        >>> integrator = StateIntegrator()
        >>> result = integrator.step(levels, params, rates, Stage.PAPULE, dt=1.0)
        >>> result.stage
        <Stage.PAPULE: 'papule'>
    """

    def __init__(self, thresholds: StageThresholds = STAGE_THRESHOLDS,
                 incubation_bacteria_growth: bool = True):
        """
        Initialize the integrator.

        Args:
            thresholds: Stage thresholds
            incubation_bacteria_growth: Whether bacteria may seed and grow
                while the lesion is still incubating
        """
        self.thresholds = thresholds
        self.incubation_bacteria_growth = incubation_bacteria_growth

    def step(self, levels: BiologicalLevels, params: ControlParameters,
             rates: DerivedRates, stage: Stage, dt: float,
             accelerator: float = 1.0) -> IntegrationResult:
        """
        Integrate one tick in place.

        Args:
            levels: Levels to mutate
            params: Control parameters for this tick
            rates: Rates derived for this tick
            stage: Current stage
            dt: Elapsed simulated hours
            accelerator: Global progression multiplier

        Returns:
            IntegrationResult with the (possibly promoted) stage
        """
        result = IntegrationResult(stage=stage)

        self._update_sebum(levels, params, rates, dt)
        self._update_bacteria(levels, params, rates, stage, dt)
        result.inflammation_delta = self._update_inflammation(
            levels, params, stage, dt, accelerator)
        self._update_pus(levels, stage, dt, accelerator)

        if stage in HEALING_STAGES:
            result.healing_delta = self._update_healing(levels, params, dt)
            if stage == Stage.HEALING and self._healing_cleared(levels):
                result.stage = Stage.RESOLVED
                result.healing_resolved = True

        return result

    # =========================================================================
    # Steps
    # =========================================================================

    def _update_sebum(self, levels: BiologicalLevels, params: ControlParameters,
                      rates: DerivedRates, dt: float) -> None:
        levels.sebum += rates.sebum_rate * (params.sebum / 500) * dt
        levels.clamp()

    def _update_bacteria(self, levels: BiologicalLevels, params: ControlParameters,
                         rates: DerivedRates, stage: Stage, dt: float) -> None:
        if stage == Stage.INCUBATION and not self.incubation_bacteria_growth:
            return

        if levels.bacteria > 0:
            levels.bacteria += levels.bacteria * rates.bacteria_growth_rate * dt
        else:
            levels.bacteria += params.bacteria / 100 * dt * BACTERIA_BOOTSTRAP
        levels.clamp()

        if params.medication > 0:
            levels.bacteria -= (params.medication / 10000) * dt
            levels.clamp()

    def _update_inflammation(self, levels: BiologicalLevels, params: ControlParameters,
                             stage: Stage, dt: float, accelerator: float) -> float:
        if not (levels.bacteria > self.thresholds.bacteria or stage in INFLAMING_STAGES):
            return 0.0

        rate = (((max(levels.bacteria, INFLAMMATION_FLOOR) - INFLAMMATION_FLOOR)
                 / INFLAMMATION_SPAN)
                * (params.inflammation / 500) * dt * accelerator)
        levels.inflammation += rate

        # Neutrophils are recruited once inflammation is half way to a papule
        if levels.inflammation > self.thresholds.inflammation / 2:
            levels.neutrophils += rate * NEUTROPHIL_GAIN

        levels.clamp()
        return rate

    def _update_pus(self, levels: BiologicalLevels, stage: Stage,
                    dt: float, accelerator: float) -> None:
        if levels.neutrophils > PUS_NEUTROPHIL_MIN and stage in PUS_STAGES:
            levels.pus += (levels.neutrophils / PUS_SCALE) * dt * accelerator
            levels.clamp()

    def _update_healing(self, levels: BiologicalLevels, params: ControlParameters,
                        dt: float) -> float:
        healing_rate = (params.healing / 500) * dt

        levels.inflammation -= healing_rate
        levels.neutrophils -= healing_rate * NEUTROPHIL_CLEARANCE
        levels.pus -= healing_rate * PUS_CLEARANCE
        levels.healing_progress += healing_rate
        levels.clamp()

        return healing_rate

    @staticmethod
    def _healing_cleared(levels: BiologicalLevels) -> bool:
        return (levels.inflammation < RESOLVE_INFLAMMATION_MAX and
                levels.pus < RESOLVE_PUS_MAX)
