"""
Main acne progression engine.

AcneSimulation is the top-level class that integrates all components:
- Configuration loading
- Control parameters (the Parameter Store)
- Rate derivation
- State integration
- The stage machine
- Observer callbacks for an external renderer

A renderer or UI layer is handed one engine instance and calls it
directly; nothing here is process-global, so several engines can run
side by side.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Any, Callable, Union
import math

from .core.stages import Stage, StageInfo, StageThresholds, STAGE_THRESHOLDS, stage_progress
from .core.state import (
    ControlParameters,
    DerivedRates,
    BiologicalLevels,
    StateSnapshot,
    PARAMETER_NAMES,
    PARAM_MIN,
    PARAM_MAX,
)
from .core.rates import RateDeriver
from .core.integrator import StateIntegrator
from .core.stage_machine import StageMachine, StageChange
from .core.clock import SimulationClock
from .config.models import AcneSimConfig, ParameterPreset
from .output.debug_logger import DebugLogger, LogLevel
from .utils.math_utils import clamp
from .utils.validators import ValidationError, InvalidStageError, validate_number


MIN_ACCELERATOR = 0.1
MAX_ACCELERATOR = 10.0


@dataclass
class EngineStats:
    """Engine runtime statistics."""
    total_ticks: int = 0
    stage_changes: int = 0
    manual_operations: int = 0
    clamped_inputs: int = 0
    rejected_inputs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_ticks': self.total_ticks,
            'stage_changes': self.stage_changes,
            'manual_operations': self.manual_operations,
            'clamped_inputs': self.clamped_inputs,
            'rejected_inputs': self.rejected_inputs,
        }


class AcneSimulation:
    """
    Acne lesion progression engine.

    Provides a single interface for:
    - Running simulation ticks
    - Setting the eight control parameters
    - Manual stage control (set, advance, skip, reset)
    - Inspecting the biological state

    Example:
        >>> engine = AcneSimulation()
        >>> engine.set_sebum_param(800)
        >>> engine.on_stage_change(lambda change, snapshot: print(change.to_stage))
        >>>
        >>> while running:
        ...     engine.update()
        ...     render(engine.get_state())
    """

    def __init__(self,
                 config: Optional[AcneSimConfig] = None,
                 config_path: Optional[str] = None,
                 logger: Optional[DebugLogger] = None,
                 thresholds: StageThresholds = STAGE_THRESHOLDS):
        """
        Initialize the engine.

        Args:
            config: Pre-loaded AcneSimConfig object
            config_path: Path to config directory (loads from JSON)
            logger: Debug logger (default: in-memory logger at the configured level)
            thresholds: Stage thresholds

        Raises:
            ConfigError: If config_path is given and the files are invalid
        """
        if config is not None:
            self.config = config
        elif config_path is not None:
            from .config import load_config
            self.config = load_config(config_path)
        else:
            self.config = AcneSimConfig()

        engine_config = self.config.engine

        self.logger = logger or DebugLogger(level=LogLevel.from_name(engine_config.log_level))
        self.thresholds = thresholds

        # Parameter Store
        self._params = ControlParameters()

        # Biological state
        self._levels = BiologicalLevels()
        self._rates = DerivedRates()

        # Subsystems
        self.deriver = RateDeriver()
        self.integrator = StateIntegrator(
            thresholds=thresholds,
            incubation_bacteria_growth=engine_config.incubation_bacteria_growth,
        )
        self.machine = StageMachine(thresholds=thresholds)
        self.clock = SimulationClock(tick_hours=engine_config.tick_hours)

        self._accelerator: float = clamp(engine_config.progression_accelerator,
                                         MIN_ACCELERATOR, MAX_ACCELERATOR)
        self._log_interval: float = engine_config.log_interval_hours
        self._next_log_time: float = self._log_interval

        # Statistics
        self.stats = EngineStats()

        # Observer callbacks
        self._tick_callbacks: List[Callable] = []
        self._stage_callbacks: List[Callable] = []

    # =========================================================================
    # Parameter Store
    # =========================================================================

    def set_param(self, name: str, value: float) -> Optional[int]:
        """
        Set a control parameter, clamped to 0-1000.

        Takes effect at the next update(). Unknown names and non-numeric
        values are logged and ignored.

        Args:
            name: One of the eight parameter names
            value: New value on the 0-1000 slider scale

        Returns:
            The stored value, or None if the input was rejected
        """
        if name not in PARAMETER_NAMES:
            self.stats.rejected_inputs += 1
            self.logger.error("param", f"Unknown parameter '{name}'",
                              self.simulation_time)
            return None

        try:
            validate_number(value, name)
        except ValidationError as e:
            self.stats.rejected_inputs += 1
            self.logger.error("param", str(e), self.simulation_time)
            return None

        stored = self._params.set(name, value)
        clamped = not PARAM_MIN <= value <= PARAM_MAX
        if clamped:
            self.stats.clamped_inputs += 1
        self.logger.log_param_change(self.simulation_time, name, value, stored, clamped)
        return stored

    def get_param(self, name: str) -> Optional[int]:
        """Get a control parameter value (None for unknown names)."""
        if name not in PARAMETER_NAMES:
            self.logger.error("param", f"Unknown parameter '{name}'",
                              self.simulation_time)
            return None
        return self._params.get(name)

    def set_sebum_param(self, value: float) -> Optional[int]:
        """Sebum production slider."""
        return self.set_param('sebum', value)

    def set_bacteria_param(self, value: float) -> Optional[int]:
        """Bacterial load slider."""
        return self.set_param('bacteria', value)

    def set_medication_param(self, value: float) -> Optional[int]:
        """Medication slider."""
        return self.set_param('medication', value)

    def set_inflammation_param(self, value: float) -> Optional[int]:
        """Inflammatory response slider."""
        return self.set_param('inflammation', value)

    def set_healing_param(self, value: float) -> Optional[int]:
        """Healing speed slider."""
        return self.set_param('healing', value)

    def set_temperature_param(self, value: float) -> Optional[int]:
        """Temperature slider."""
        return self.set_param('temperature', value)

    def set_humidity_param(self, value: float) -> Optional[int]:
        """Humidity slider."""
        return self.set_param('humidity', value)

    def set_friction_param(self, value: float) -> Optional[int]:
        """Friction slider."""
        return self.set_param('friction', value)

    def apply_preset(self, preset: Union[str, ParameterPreset]) -> bool:
        """
        Apply a parameter preset by ID or object.

        Returns:
            True if applied, False if the preset ID is unknown
        """
        if isinstance(preset, str):
            found = self.config.get_preset(preset)
            if found is None:
                self.stats.rejected_inputs += 1
                self.logger.error("param", f"Unknown preset '{preset}'",
                                  self.simulation_time)
                return False
            preset = found

        for name, value in preset.parameters.items():
            self.set_param(name, value)
        if preset.progression_accelerator is not None:
            self.set_progression_accelerator(preset.progression_accelerator)

        self.logger.info("param", f"Applied preset '{preset.id}'", self.simulation_time)
        return True

    def set_progression_accelerator(self, value: float) -> float:
        """
        Set the global progression multiplier, clamped to 0.1-10.

        Returns:
            The stored multiplier (unchanged if the value was rejected)
        """
        try:
            validate_number(value, "progression_accelerator")
        except ValidationError as e:
            self.stats.rejected_inputs += 1
            self.logger.error("param", str(e), self.simulation_time)
            return self._accelerator

        stored = clamp(value, MIN_ACCELERATOR, MAX_ACCELERATOR)
        if stored != value:
            self.stats.clamped_inputs += 1
            self.logger.debug("param", "Clamped progression accelerator",
                              self.simulation_time, requested=value, stored=stored)
        self._accelerator = stored
        self.logger.info("param", f"Progression accelerator set to: {stored:.1f}x",
                         self.simulation_time)
        return stored

    # =========================================================================
    # Main Tick
    # =========================================================================

    def update(self, dt: Optional[float] = None) -> None:
        """
        Run one simulation tick.

        Derives rates, integrates the biological levels, checks for a
        stage transition and notifies observers, in that order.

        Args:
            dt: Simulated hours to advance (default: configured tick size
                times the clock speed). Negative values are treated as 0;
                non-numeric or non-finite values are rejected and the
                tick is skipped. Does nothing while the clock is paused.
        """
        if dt is not None:
            try:
                validate_number(dt, "dt")
            except ValidationError as e:
                self.stats.rejected_inputs += 1
                self.logger.error("engine", f"Tick ignored: {e}", self.simulation_time)
                return

        if dt is not None and dt < 0:
            self.logger.debug("engine", "Negative dt treated as 0",
                              self.simulation_time, dt=dt)
            dt = 0.0

        if self.clock.paused:
            return

        self.logger.tick_start()

        step = self.clock.step_hours if dt is None else dt
        now = self.clock.tick(step)
        self.stats.total_ticks += 1

        # 1. Rates
        self._rates = self.deriver.derive(self._params, self._levels, self._accelerator)

        # 2. Integration
        result = self.integrator.step(
            self._levels, self._params, self._rates,
            self.machine.stage, step, self._accelerator,
        )

        # 3. Stage machine (the healing promotion replaces the table check)
        if result.healing_resolved:
            change = self.machine.resolve_from_healing(now)
        else:
            change = self.machine.check_transition(self._levels, now)

        if change is not None:
            self._emit_stage_change(change)

        self.logger.log_tick(now, self.machine.stage.value,
                             self._levels.sebum, self._levels.bacteria,
                             self._levels.inflammation, self._levels.pus)
        self._log_periodic_state()
        self.logger.tick_end()

        if self._tick_callbacks:
            snapshot = self.snapshot()
            for callback in self._tick_callbacks:
                callback(snapshot)

    def run_for(self, hours: float, dt: Optional[float] = None) -> int:
        """
        Run ticks until the given simulated hours have elapsed.

        Returns:
            Number of ticks run
        """
        step = self.clock.step_hours if dt is None else dt
        try:
            validate_number(hours, "hours")
            validate_number(step, "dt")
        except ValidationError as e:
            self.stats.rejected_inputs += 1
            self.logger.error("engine", f"Run ignored: {e}", self.simulation_time)
            return 0
        if step <= 0:
            return 0

        ticks = int(math.ceil(hours / step - 1e-9))
        for _ in range(ticks):
            self.update(step)
        return ticks

    def _log_periodic_state(self) -> None:
        if self._log_interval <= 0:
            return

        now = self.simulation_time
        if now < self._next_log_time:
            return

        self.logger.log_periodic_state(now, self.machine.stage.value, {
            'sebum': self._levels.sebum,
            'bacteria': self._levels.bacteria,
            'inflammation': self._levels.inflammation,
            'neutrophils': self._levels.neutrophils,
            'pus': self._levels.pus,
        })
        self._next_log_time = (math.floor(now / self._log_interval) + 1) * self._log_interval

    # =========================================================================
    # Manual Stage Control
    # =========================================================================

    def set_stage(self, stage: Union[Stage, str]) -> bool:
        """
        Jump directly to a stage and seed levels for it.

        Args:
            stage: Stage or stage name

        Returns:
            True if set, False if the stage was rejected (state unchanged)
        """
        try:
            change = self.machine.set_stage(stage, self._levels, self.simulation_time)
        except InvalidStageError as e:
            self.stats.rejected_inputs += 1
            self.logger.error("stage", f"Invalid stage: {e.stage}", self.simulation_time)
            return False

        self.stats.manual_operations += 1
        self._emit_stage_change(change)
        return True

    def reset_stage_progress(self) -> None:
        """Re-seed levels for the current stage."""
        self.machine.reset_stage_progress(self._levels)

    def advance_to_next_stage(self) -> Optional[Stage]:
        """
        Force the next stage along the cyclic forward path.

        Returns:
            The new stage, or None if the current stage has no successor
        """
        change = self.machine.advance(self._levels, self.simulation_time)
        if change is None:
            self.logger.warning("stage", f"No manual advance from {self.simulation_stage.value}",
                                self.simulation_time)
            return None

        self.stats.manual_operations += 1
        self._emit_stage_change(change)
        return change.to_stage

    def skip_to_next_stage(self) -> StageInfo:
        """
        Skip to the next stage with representative levels.

        Returns:
            StageInfo for the (possibly unchanged) current stage
        """
        change = self.machine.skip(self._levels, self.simulation_time)
        self.stats.manual_operations += 1

        if change is not None:
            self._emit_stage_change(change)
        elif self.simulation_stage == Stage.RESOLVED:
            self.logger.info("stage", "Skip: applied post-inflammatory changes",
                             self.simulation_time)
        else:
            self.logger.warning("stage", f"Cannot skip from {self.simulation_stage.value}",
                                self.simulation_time)

        return self.stage_info()

    def reset(self) -> None:
        """
        Reset the biological state, stage and time.

        Control parameters and the progression accelerator are kept.
        """
        change = self.machine.reset(self._levels, self.simulation_time)
        self.stats.manual_operations += 1
        if change is not None:
            self._emit_stage_change(change)

        self._rates = DerivedRates()
        self.clock.reset()
        self._next_log_time = self._log_interval
        self.logger.info("engine", "Simulation reset to initial state", 0.0)

    def _emit_stage_change(self, change: StageChange) -> None:
        self.stats.stage_changes += 1
        self.logger.log_stage_change(change.timestamp, change.from_stage.value,
                                     change.to_stage.value, change.cause.value)

        if self._stage_callbacks:
            snapshot = self.snapshot()
            for callback in self._stage_callbacks:
                callback(change, snapshot)

    # =========================================================================
    # Callbacks
    # =========================================================================

    def on_tick(self, callback: Callable) -> None:
        """
        Register a tick callback.

        The callback receives a StateSnapshot after every update().
        """
        self._tick_callbacks.append(callback)

    def on_stage_change(self, callback: Callable) -> None:
        """
        Register a stage change callback.

        The callback receives (StageChange, StateSnapshot).
        """
        self._stage_callbacks.append(callback)

    def remove_callback(self, callback: Callable) -> None:
        """Remove a tick or stage change callback."""
        if callback in self._tick_callbacks:
            self._tick_callbacks.remove(callback)
        if callback in self._stage_callbacks:
            self._stage_callbacks.remove(callback)

    # =========================================================================
    # State Inspection
    # =========================================================================

    @property
    def simulation_time(self) -> float:
        """Elapsed simulated hours."""
        return self.clock.simulation_time

    @property
    def simulation_stage(self) -> Stage:
        return self.machine.stage

    @property
    def progression_accelerator(self) -> float:
        return self._accelerator

    @property
    def params(self) -> ControlParameters:
        """A copy of the control parameters."""
        return self._params.copy()

    @property
    def levels(self) -> BiologicalLevels:
        """A copy of the biological levels."""
        return self._levels.copy()

    @property
    def derived_rates(self) -> DerivedRates:
        """Rates derived on the last tick."""
        return self._rates

    @property
    def current_sebum_level(self) -> float:
        return self._levels.sebum

    @property
    def current_bacteria_level(self) -> float:
        return self._levels.bacteria

    @property
    def current_inflammation_level(self) -> float:
        return self._levels.inflammation

    @property
    def current_neutrophil_level(self) -> float:
        return self._levels.neutrophils

    @property
    def current_pus_level(self) -> float:
        return self._levels.pus

    @property
    def current_medication_level(self) -> float:
        return self._levels.medication

    @property
    def healing_progress(self) -> float:
        return self._levels.healing_progress

    def stage_progress(self) -> float:
        """Percentage (0-100) of the way to the next stage."""
        return stage_progress(self.machine.stage, self._levels, self.thresholds)

    def stage_info(self) -> StageInfo:
        """Anatomical description of the current stage."""
        return self.machine.stage_info()

    def snapshot(self) -> StateSnapshot:
        """Get the public state handed to renderers."""
        return StateSnapshot(
            simulation_time=self.simulation_time,
            tick=self.clock.tick_count,
            stage=self.machine.stage.value,
            sebum_level=self._levels.sebum,
            bacteria_level=self._levels.bacteria,
            inflammation_level=self._levels.inflammation,
            neutrophil_level=self._levels.neutrophils,
            pus_level=self._levels.pus,
            medication_level=self._levels.medication,
            healing_progress=self._levels.healing_progress,
            stage_progress=self.stage_progress(),
            progression_accelerator=self._accelerator,
        )

    def get_state(self) -> Dict[str, Any]:
        """Get complete engine state for inspection/logging."""
        return {
            'simulation_time': self.simulation_time,
            'formatted_time': self.clock.format_time(),
            'stage': self.machine.stage.value,
            'stage_progress': self.stage_progress(),
            'stage_info': self.stage_info().to_dict(),
            'levels': self._levels.to_dict(),
            'params': self._params.to_dict(),
            'rates': self._rates.to_dict(),
            'progression_accelerator': self._accelerator,
            'stats': self.stats.to_dict(),
        }

    def __repr__(self) -> str:
        return (f"AcneSimulation(time={self.simulation_time:.2f}h, "
                f"stage={self.machine.stage.value}, "
                f"bacteria={self._levels.bacteria:.1f}, "
                f"inflammation={self._levels.inflammation:.1f})")
