"""
Simulation clock for the acne progression engine.

Tracks simulated time in hours, the tick count and the speed multiplier
applied by interactive drivers.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..utils.math_utils import clamp


DEFAULT_TICK_HOURS = 1.0 / 60.0     # One simulated minute per tick
MIN_SPEED = 0.1
MAX_SPEED = 10.0
HOURS_PER_DAY = 24.0


@dataclass
class SimulationClock:
    """
    Manages simulated time.

    Attributes:
        simulation_time: Total elapsed simulated hours
        tick_hours: Simulated hours per tick at speed 1.0
        speed: Multiplier applied to tick_hours (0.1-10)

    Example:
        >>> clock = SimulationClock(tick_hours=1.0)
        >>> clock.tick()
        1.0
        >>> clock.format_time()
        '1 hours (0.0 days)'
    """

    simulation_time: float = 0.0
    tick_hours: float = DEFAULT_TICK_HOURS
    speed: float = 1.0

    _tick_count: int = 0
    _paused: bool = False

    @property
    def tick_count(self) -> int:
        """Updates applied since the last reset."""
        return self._tick_count

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def step_hours(self) -> float:
        """Simulated hours covered by one tick at the current speed."""
        return self.tick_hours * self.speed

    @property
    def days(self) -> float:
        return self.simulation_time / HOURS_PER_DAY

    def tick(self, dt: Optional[float] = None) -> float:
        """
        Advance the clock by one tick.

        Args:
            dt: Hours to advance (default: step_hours)

        Returns:
            The new simulation time
        """
        if self._paused:
            return self.simulation_time

        self._tick_count += 1
        self.simulation_time += self.step_hours if dt is None else max(0.0, dt)
        return self.simulation_time

    def set_speed(self, speed: float) -> float:
        """
        Set the speed multiplier, clamped to 0.1-10.

        Returns:
            The stored speed
        """
        self.speed = clamp(speed, MIN_SPEED, MAX_SPEED)
        return self.speed

    def pause(self) -> None:
        """Pause the clock."""
        self._paused = True

    def resume(self) -> None:
        """Resume the clock."""
        self._paused = False

    def reset(self) -> None:
        """Reset elapsed time and tick count; speed is kept."""
        self.simulation_time = 0.0
        self._tick_count = 0
        self._paused = False

    def get_state(self) -> Dict:
        """Plain-dict state for saving a run."""
        return {
            'simulation_time': self.simulation_time,
            'tick_hours': self.tick_hours,
            'speed': self.speed,
            'tick_count': self._tick_count,
            'paused': self._paused,
        }

    def set_state(self, state: Dict) -> None:
        """Inverse of get_state()."""
        self.simulation_time = state.get('simulation_time', 0.0)
        self.tick_hours = state.get('tick_hours', DEFAULT_TICK_HOURS)
        self.speed = state.get('speed', 1.0)
        self._tick_count = state.get('tick_count', 0)
        self._paused = state.get('paused', False)

    def format_time(self) -> str:
        """Format elapsed time as whole hours and days."""
        return f"{int(self.simulation_time)} hours ({self.days:.1f} days)"

    def __repr__(self) -> str:
        return (f"SimulationClock(time={self.simulation_time:.2f}h, "
                f"ticks={self._tick_count}, speed={self.speed:.1f}x)")
