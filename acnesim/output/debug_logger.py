"""
Debug logging for the acne progression engine.

Entries are structured (simulated time, level, category, message, data),
kept in a bounded in-memory buffer and optionally echoed to a stream.
The engine writes to these categories:

- engine: resets, negative dt, the periodic state line, per-tick traces
- stage: transitions, rejected stages, impossible advance/skip
- param: parameter changes, clamping, presets, accelerator
- runner: headless simulation driver
"""

from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, TextIO, Callable, Union
from enum import Enum
import json
import sys
import time


class LogLevel(Enum):
    """Log levels for filtering output."""
    TRACE = 0    # Every tick
    DEBUG = 1    # Clamped inputs and other recoverable oddities
    INFO = 2     # Stage changes, periodic state
    WARNING = 3  # Ignored manual operations
    ERROR = 4    # Rejected inputs
    NONE = 5     # No logging

    @classmethod
    def from_name(cls, name: Union[str, 'LogLevel']) -> 'LogLevel':
        """Look up a level by case-insensitive name."""
        if isinstance(name, cls):
            return name
        return cls[str(name).upper()]


ANSI_RESET = '\033[0m'

LEVEL_COLORS = {
    LogLevel.TRACE: '\033[90m',
    LogLevel.DEBUG: '\033[37m',
    LogLevel.INFO: '\033[32m',
    LogLevel.WARNING: '\033[33m',
    LogLevel.ERROR: '\033[31m',
}

# Stage changes stand out in a scrolling console
HIGHLIGHT_CATEGORIES = {'stage': '\033[1;35m'}


@dataclass
class LogEntry:
    """A single log entry."""
    timestamp: float
    level: LogLevel
    category: str
    message: str
    data: Dict[str, Any] = field(default_factory=dict)

    def format(self, include_data: bool = True, colors: bool = False) -> str:
        """
        Render the entry as one line.

        Example:
            >>> LogEntry(83.0, LogLevel.INFO, "stage", "incubation -> comedone").format()
            '[   83.00h] INFO  stage        incubation -> comedone'
        """
        level = self.level.name.ljust(5)
        category = self.category[:12].ljust(12)
        if colors:
            level = f"{LEVEL_COLORS.get(self.level, '')}{level}{ANSI_RESET}"
            highlight = HIGHLIGHT_CATEGORIES.get(self.category)
            if highlight:
                category = f"{highlight}{category}{ANSI_RESET}"

        line = f"[{self.timestamp:8.2f}h] {level} {category} {self.message}"
        if include_data and self.data:
            line += " (" + ", ".join(f"{k}={v}" for k, v in self.data.items()) + ")"
        return line

    def to_dict(self) -> Dict[str, Any]:
        return {
            'timestamp': self.timestamp,
            'level': self.level.name,
            'category': self.category,
            'message': self.message,
            'data': self.data,
        }


class TickTimer:
    """Wall-clock duration of recent engine ticks."""

    def __init__(self, window: int = 1000):
        self._durations = deque(maxlen=window)
        self._started: Optional[float] = None

    def start(self) -> None:
        self._started = time.perf_counter()

    def stop(self) -> float:
        """Close the current tick; returns its duration in milliseconds."""
        if self._started is None:
            return 0.0
        duration = (time.perf_counter() - self._started) * 1000
        self._durations.append(duration)
        self._started = None
        return duration

    def stats(self) -> Dict[str, float]:
        if not self._durations:
            return {'avg_ms': 0.0, 'min_ms': 0.0, 'max_ms': 0.0, 'samples': 0}
        return {
            'avg_ms': sum(self._durations) / len(self._durations),
            'min_ms': min(self._durations),
            'max_ms': max(self._durations),
            'samples': len(self._durations),
        }

    def clear(self) -> None:
        self._durations.clear()
        self._started = None


class DebugLogger:
    """
    Debug logger for the acne progression engine.

    Example:
        >>> logger = DebugLogger(level=LogLevel.DEBUG)
        >>> engine = AcneSimulation(logger=logger)
        >>> engine.set_sebum_param(1200)
        1000
        >>> logger.search("Clamped")[0].data
        {'requested': 1200, 'stored': 1000}
        >>> logger.set_category_filter(["stage"])
        >>> logger.write_log("engine.log")
    """

    def __init__(self,
                 level: LogLevel = LogLevel.INFO,
                 output: Optional[TextIO] = None,
                 use_colors: bool = True,
                 max_entries: int = 10000):
        """
        Initialize the debug logger.

        Args:
            level: Minimum log level to record
            output: Stream to echo entries to (None = memory only)
            use_colors: Use ANSI colors when echoing
            max_entries: Oldest entries are dropped beyond this
        """
        self.level = level
        self.output = output
        self.use_colors = use_colors

        self._entries = deque(maxlen=max_entries)
        self._categories: Optional[set] = None
        self._callbacks: List[Callable] = []
        self._timer = TickTimer()

    @property
    def max_entries(self) -> int:
        return self._entries.maxlen

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def set_category_filter(self, categories: Optional[List[str]]) -> None:
        """Only record the given categories (None records everything)."""
        self._categories = None if categories is None else set(categories)

    def add_callback(self, callback: Callable) -> None:
        """Call callback(entry) for every recorded entry."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def is_enabled(self, level: LogLevel) -> bool:
        """Whether entries at this level would be recorded."""
        return self.level != LogLevel.NONE and level.value >= self.level.value

    # =========================================================================
    # Logging Methods
    # =========================================================================

    def log(self, level: LogLevel, category: str, message: str,
            timestamp: float = 0.0, **data) -> Optional[LogEntry]:
        """
        Record an entry.

        Args:
            level: Log level
            category: engine, stage, param or runner
            message: Human-readable message
            timestamp: Simulated hours
            **data: Structured fields

        Returns:
            The LogEntry, or None if filtered out
        """
        if not self.is_enabled(level):
            return None
        if self._categories is not None and category not in self._categories:
            return None

        entry = LogEntry(timestamp, level, category, message, data)
        self._entries.append(entry)

        if self.output is not None:
            self.output.write(entry.format(colors=self.use_colors) + "\n")
            self.output.flush()

        for callback in self._callbacks:
            callback(entry)

        return entry

    def trace(self, category: str, message: str, timestamp: float = 0.0, **data) -> Optional[LogEntry]:
        return self.log(LogLevel.TRACE, category, message, timestamp, **data)

    def debug(self, category: str, message: str, timestamp: float = 0.0, **data) -> Optional[LogEntry]:
        return self.log(LogLevel.DEBUG, category, message, timestamp, **data)

    def info(self, category: str, message: str, timestamp: float = 0.0, **data) -> Optional[LogEntry]:
        return self.log(LogLevel.INFO, category, message, timestamp, **data)

    def warning(self, category: str, message: str, timestamp: float = 0.0, **data) -> Optional[LogEntry]:
        return self.log(LogLevel.WARNING, category, message, timestamp, **data)

    def error(self, category: str, message: str, timestamp: float = 0.0, **data) -> Optional[LogEntry]:
        return self.log(LogLevel.ERROR, category, message, timestamp, **data)

    # =========================================================================
    # Engine Events
    # =========================================================================

    def log_tick(self, timestamp: float, stage: str, sebum: float,
                 bacteria: float, inflammation: float, pus: float) -> None:
        # Formatting every tick is wasted work unless TRACE is on
        if not self.is_enabled(LogLevel.TRACE):
            return
        self.trace("engine", "Tick", timestamp, stage=stage,
                   sebum=f"{sebum:.1f}", bacteria=f"{bacteria:.1f}",
                   inflammation=f"{inflammation:.1f}", pus=f"{pus:.1f}")

    def log_stage_change(self, timestamp: float, from_stage: str,
                         to_stage: str, cause: str) -> None:
        self.info("stage", f"{from_stage} -> {to_stage}", timestamp, cause=cause)

    def log_periodic_state(self, timestamp: float, stage: str,
                           levels: Dict[str, float]) -> None:
        """The 'Time: ..h, Stage: ..' line written every log interval."""
        self.info("engine", f"Time: {timestamp:.1f}h, Stage: {stage}", timestamp,
                  **{name: f"{value:.1f}" for name, value in levels.items()})

    def log_param_change(self, timestamp: float, name: str,
                         requested: Any, stored: int,
                         clamped: Optional[bool] = None) -> None:
        """Clamped values are DEBUG, plain sets (rounding included) are TRACE."""
        if clamped is None:
            clamped = stored != requested
        if clamped:
            self.debug("param", f"Clamped {name}", timestamp,
                       requested=requested, stored=stored)
        else:
            self.trace("param", f"Set {name}", timestamp, value=stored)

    def tick_start(self) -> None:
        self._timer.start()

    def tick_end(self) -> float:
        """Returns the tick duration in milliseconds."""
        return self._timer.stop()

    def get_performance_stats(self) -> Dict[str, float]:
        return self._timer.stats()

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_entries(self, level: Optional[LogLevel] = None,
                    category: Optional[str] = None,
                    count: Optional[int] = None) -> List[LogEntry]:
        """
        Get entries, optionally filtered.

        Args:
            level: Minimum level
            category: Exact category
            count: Keep only the most recent N
        """
        entries = [
            e for e in self._entries
            if (level is None or e.level.value >= level.value)
            and (category is None or e.category == category)
        ]
        return entries[-count:] if count else entries

    def get_recent(self, count: int = 20) -> List[LogEntry]:
        return self.get_entries(count=count)

    def get_errors(self) -> List[LogEntry]:
        return [e for e in self._entries if e.level == LogLevel.ERROR]

    def get_by_category(self, category: str) -> List[LogEntry]:
        return self.get_entries(category=category)

    def search(self, text: str) -> List[LogEntry]:
        """Entries whose message contains text (case-insensitive)."""
        needle = text.lower()
        return [e for e in self._entries if needle in e.message.lower()]

    # =========================================================================
    # Export Methods
    # =========================================================================

    def to_text(self, include_data: bool = True) -> str:
        return "\n".join(e.format(include_data) for e in self._entries)

    def to_json(self, pretty: bool = False) -> str:
        return json.dumps([e.to_dict() for e in self._entries],
                          indent=2 if pretty else None)

    def write_log(self, filepath: str, format: str = "text") -> int:
        """
        Write the buffered entries to a file.

        Args:
            filepath: Output file path
            format: "text" or "json"

        Returns:
            Number of entries written
        """
        content = self.to_json(pretty=True) if format == "json" else self.to_text()
        with open(filepath, 'w') as f:
            f.write(content)
        return len(self._entries)

    def get_summary(self) -> str:
        """Entry counts by level and category plus tick timing."""
        by_level = Counter(e.level.name for e in self._entries)
        by_category = Counter(e.category for e in self._entries)

        lines = ["Debug Log Summary", "=" * 40,
                 f"Total entries: {len(self._entries)}", "", "By level:"]
        lines += [f"  {name}: {by_level[name]}"
                  for name in (lvl.name for lvl in LogLevel) if by_level[name]]
        lines += ["", "By category:"]
        lines += [f"  {name}: {count}" for name, count in by_category.most_common()]

        perf = self.get_performance_stats()
        if perf['samples']:
            lines += ["", "Tick timing:",
                      f"  Avg: {perf['avg_ms']:.3f}ms over {perf['samples']} ticks",
                      f"  Max: {perf['max_ms']:.3f}ms"]

        return "\n".join(lines)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @property
    def count(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        """Drop all entries and timing samples."""
        self._entries.clear()
        self._timer.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"DebugLogger(entries={len(self._entries)}, level={self.level.name})"


def create_console_logger(level: LogLevel = LogLevel.INFO,
                          use_colors: bool = True) -> DebugLogger:
    """Logger that echoes to stdout."""
    return DebugLogger(level=level, output=sys.stdout, use_colors=use_colors)


def create_file_logger(filepath: str,
                       level: LogLevel = LogLevel.DEBUG) -> DebugLogger:
    """Logger that echoes plain lines to a file."""
    return DebugLogger(level=level, output=open(filepath, 'w'), use_colors=False)
