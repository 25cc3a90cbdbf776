"""
Simulation runner for the acne progression engine.

Provides a high-level interface for running headless simulations with:
- Configurable scenarios
- Time progression
- Parameter and stage changes
- Output logging
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Callable, Tuple
import json
import csv
import io
import math

from .core.stages import Stage, format_stage_name
from .output.event_logger import StageEventLogger
from .output.level_logger import LevelLogger


SCENARIO_ACTIONS = (
    "set_param", "set_stage", "advance", "skip", "reset",
    "set_accelerator", "set_speed", "apply_preset",
)


@dataclass
class ScenarioStep:
    """An action applied to the engine at a simulated hour."""
    time: float  # Simulated hours at which this step occurs
    action: str  # One of SCENARIO_ACTIONS
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SimulationConfig:
    """Settings for one headless lesion run."""
    duration: float = 120.0                 # Total simulated hours
    tick_hours: Optional[float] = None      # None = engine config tick size
    speed: float = 1.0

    # Initial state
    initial_preset: Optional[str] = None
    initial_params: Dict[str, float] = field(default_factory=dict)
    progression_accelerator: Optional[float] = None
    initial_stage: Optional[str] = None

    # Stop as soon as this stage is entered
    stop_at_stage: Optional[str] = None

    # Manual operations scheduled by simulated hour
    scenario: List[ScenarioStep] = field(default_factory=list)

    # Logging
    log_levels: bool = True
    sample_interval: Optional[float] = None  # Level sampling (hours); None = engine config


class SimulationRunner:
    """
    Runs acne progression simulations with scenarios and logging.

    Example:
        >>> runner = SimulationRunner()
        >>> runner.configure(duration=200.0, tick_hours=0.1)
        >>> runner.add_step(48.0, "set_param", {"name": "medication", "value": 1000})
        >>> results = runner.run()
        >>> print(results.summary())
    """

    def __init__(self, config_path: Optional[str] = None,
                 config: Optional[Any] = None,
                 logger: Optional[Any] = None):
        """
        Initialize the runner.

        Args:
            config_path: Path to config directory
            config: Pre-loaded AcneSimConfig object
            logger: DebugLogger handed to the engine
        """
        self.config_path = config_path
        self.engine_config = config
        self.logger = logger

        self.sim_config = SimulationConfig()
        self._engine = None

        # Results
        self._stage_logger = StageEventLogger()
        self._level_logger = LevelLogger()
        self._step_log: List[Dict] = []

    @property
    def engine(self):
        """Engine used by the last (or current) run."""
        return self._engine

    def configure(self, **kwargs) -> 'SimulationRunner':
        """
        Override SimulationConfig fields; unknown keys are ignored.

        Returns self for chaining.
        """
        for key, value in kwargs.items():
            if hasattr(self.sim_config, key):
                setattr(self.sim_config, key, value)
        return self

    def add_step(self, time: float, action: str, params: Dict[str, Any] = None) -> 'SimulationRunner':
        """
        Add a scenario step.

        Args:
            time: Simulated hour at which the step occurs
            action: Action type
            params: Action parameters

        Returns self for chaining.

        Raises:
            ValueError: If the action is unknown
        """
        if action not in SCENARIO_ACTIONS:
            raise ValueError(f"Unknown scenario action: {action}")
        step = ScenarioStep(time=time, action=action, params=params or {})
        self.sim_config.scenario.append(step)
        return self

    def set_scenario(self, steps: List[Tuple[float, str, Dict]]) -> 'SimulationRunner':
        """
        Set the full scenario.

        Args:
            steps: List of (time, action, params) tuples
        """
        self.sim_config.scenario = []
        for t, a, p in steps:
            self.add_step(t, a, p)
        return self

    def run(self, progress_callback: Optional[Callable] = None) -> 'SimulationResults':
        """
        Run the simulation.

        Args:
            progress_callback: Optional callback(current_time, total_time)

        Returns:
            SimulationResults object

        Raises:
            ValueError: If the tick size is not a positive finite number
        """
        from .engine import AcneSimulation

        self._engine = AcneSimulation(
            config=self.engine_config,
            config_path=self.config_path,
            logger=self.logger,
        )
        engine = self._engine
        cfg = self.sim_config

        if cfg.tick_hours is not None:
            engine.clock.tick_hours = cfg.tick_hours
        engine.clock.set_speed(cfg.speed)

        step_hours = engine.clock.step_hours
        if not (math.isfinite(step_hours) and step_hours > 0):
            raise ValueError(f"Tick size must be positive, got {step_hours}")

        sample_interval = cfg.sample_interval
        if sample_interval is None:
            sample_interval = engine.config.engine.sample_interval_hours

        # Clear logs
        self._stage_logger = StageEventLogger()
        self._level_logger = LevelLogger(sample_interval=sample_interval)
        self._step_log = []

        engine.on_stage_change(self._stage_logger.log_change)
        if cfg.log_levels:
            engine.on_tick(self._level_logger.log_snapshot)

        # Initial state
        if cfg.initial_preset:
            engine.apply_preset(cfg.initial_preset)
        for name, value in cfg.initial_params.items():
            engine.set_param(name, value)
        if cfg.progression_accelerator is not None:
            engine.set_progression_accelerator(cfg.progression_accelerator)
        if cfg.initial_stage:
            engine.set_stage(cfg.initial_stage)

        stop_stage = Stage.parse(cfg.stop_at_stage) if cfg.stop_at_stage else None

        # Sort scenario by time
        scenario = sorted(cfg.scenario, key=lambda s: s.time)
        scenario_index = 0

        stopped_early = False
        duration = cfg.duration

        # Runner time is tracked separately; a scenario reset rewinds the engine clock
        current_time = 0.0

        while current_time < duration - 1e-9:
            # Process scenario steps
            while scenario_index < len(scenario) and scenario[scenario_index].time <= current_time:
                self._execute_step(scenario[scenario_index], current_time)
                scenario_index += 1

            step_hours = engine.clock.step_hours
            engine.update(step_hours)
            current_time += step_hours

            if progress_callback:
                progress_callback(current_time, duration)

            if stop_stage is not None and engine.simulation_stage == stop_stage:
                stopped_early = True
                break

        return SimulationResults(
            stage_events=[e.to_dict() for e in self._stage_logger.get_all()],
            level_log=[r.to_dict() for r in self._level_logger.get_all()],
            step_log=self._step_log,
            final_state=engine.get_state(),
            stats=engine.stats.to_dict(),
            config=cfg,
            stopped_early=stopped_early,
        )

    def _execute_step(self, step: ScenarioStep, current_time: float) -> None:
        """Execute a scenario step."""
        engine = self._engine
        action = step.action
        params = step.params

        if action == "set_param":
            engine.set_param(params.get("name", ""), params.get("value", 0))
        elif action == "set_stage":
            engine.set_stage(params.get("stage", ""))
        elif action == "advance":
            engine.advance_to_next_stage()
        elif action == "skip":
            engine.skip_to_next_stage()
        elif action == "reset":
            engine.reset()
        elif action == "set_accelerator":
            engine.set_progression_accelerator(params.get("value", 1.0))
        elif action == "set_speed":
            engine.clock.set_speed(params.get("value", 1.0))
        elif action == "apply_preset":
            engine.apply_preset(params.get("preset", ""))

        # Log the step
        self._step_log.append({
            'time': current_time,
            'action': action,
            'params': params,
        })

    @property
    def stage_logger(self) -> StageEventLogger:
        return self._stage_logger

    @property
    def level_logger(self) -> LevelLogger:
        return self._level_logger


@dataclass
class SimulationResults:
    """Everything collected during one run."""
    stage_events: List[Dict]
    level_log: List[Dict]
    step_log: List[Dict]
    final_state: Dict[str, Any]
    stats: Dict[str, Any]
    config: SimulationConfig
    stopped_early: bool = False

    @property
    def final_stage(self) -> str:
        return self.final_state['stage']

    @property
    def stage_path(self) -> List[str]:
        """Stages visited in order, starting with the initial stage."""
        if not self.stage_events:
            return [self.final_stage]
        return [self.stage_events[0]['from_stage']] + [e['to_stage'] for e in self.stage_events]

    def summary(self) -> str:
        """Final levels, counters and the stage-change history."""
        levels = self.final_state['levels']
        lines = [
            "=" * 60,
            "SIMULATION RESULTS",
            "=" * 60,
            "",
            f"Duration: {self.config.duration:.1f}h",
            f"Elapsed: {self.final_state['formatted_time']}",
            f"Stopped early: {'yes' if self.stopped_early else 'no'}",
            "",
            "--- Statistics ---",
            f"Total ticks: {self.stats['total_ticks']}",
            f"Stage changes: {self.stats['stage_changes']}",
            f"Manual operations: {self.stats['manual_operations']}",
            f"Clamped inputs: {self.stats['clamped_inputs']}",
            f"Rejected inputs: {self.stats['rejected_inputs']}",
            "",
            "--- Final State ---",
            f"Current Stage: {format_stage_name(self.final_stage)}",
            f"Stage progress: {self.final_state['stage_progress']:.0f}%",
            f"Sebum: {levels['sebum']:.1f}",
            f"Bacteria: {levels['bacteria']:.1f}",
            f"Inflammation: {levels['inflammation']:.1f}",
            f"Neutrophils: {levels['neutrophils']:.1f}",
            f"Pus: {levels['pus']:.1f}",
            f"Healing: {levels['healing_progress']:.1f}",
            "",
            "--- Stage Changes ---",
        ]

        for event in self.stage_events:
            lines.append(f"  {event['timestamp']:8.2f}h  {event['from_stage']} -> "
                         f"{event['to_stage']} ({event['cause']})")

        lines.append("")
        lines.append("=" * 60)

        return "\n".join(lines)

    def stage_events_to_csv(self) -> str:
        """Export stage events to CSV string."""
        if not self.stage_events:
            return ""

        output = io.StringIO()
        fieldnames = StageEventLogger.CSV_COLUMNS
        writer = csv.DictWriter(output, fieldnames=fieldnames, extrasaction='ignore')
        writer.writeheader()
        writer.writerows(self.stage_events)
        return output.getvalue()

    def levels_to_csv(self) -> str:
        """Export the level timeline to CSV string."""
        if not self.level_log:
            return ""

        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=LevelLogger.CSV_COLUMNS,
                                extrasaction='ignore')
        writer.writeheader()
        writer.writerows(self.level_log)
        return output.getvalue()

    def to_json(self) -> str:
        """Events, timeline, steps, final state and stats as JSON."""
        return json.dumps({
            'stage_events': self.stage_events,
            'level_log': self.level_log,
            'step_log': self.step_log,
            'final_state': self.final_state,
            'stats': self.stats,
            'stopped_early': self.stopped_early,
        }, indent=2)


def run_demo(config_path: Optional[str] = None, duration: float = 240.0,
             tick_hours: float = 0.1) -> SimulationResults:
    """
    Run a sample lesion from incubation through treatment.

    The scenario exercises:
    - Natural progression from incubation
    - A manual skip to the pustule stage and a forced rupture
    - Treatment with medication and a faster healing response
    """
    runner = SimulationRunner(config_path=config_path)

    runner.configure(
        duration=duration,
        tick_hours=tick_hours,
        sample_interval=1.0,
    )

    # Let the lesion progress naturally, then push it along
    runner.add_step(100.0, "skip", {})
    runner.add_step(110.0, "advance", {})

    # Start treatment
    runner.add_step(120.0, "set_param", {"name": "medication", "value": 800})
    runner.add_step(120.0, "set_param", {"name": "healing", "value": 900})
    runner.add_step(130.0, "set_stage", {"stage": "healing"})

    def progress(current, total):
        if int(current * 10) % 100 == 0:
            print(f"  Progress: {current:.0f}/{total:.0f}h", end="\r")

    print(f"Running demo simulation ({duration:.0f}h)...")
    results = runner.run(progress_callback=progress)
    print()

    return results
