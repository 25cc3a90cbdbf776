"""
Stage event logging for the acne progression engine.

Captures every stage change for analysis and replay.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
import csv
import io
import json


@dataclass
class StageEventRecord:
    """
    A single recorded stage change.

    Attributes:
        timestamp: Simulation time (hours) of the change
        from_stage: Stage before the change
        to_stage: Stage after the change
        cause: Why it changed (threshold, skip, manual_set, ...)
        levels: Biological levels right after the change
    """
    timestamp: float
    from_stage: str
    to_stage: str
    cause: str
    levels: Dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            'timestamp': self.timestamp,
            'from_stage': self.from_stage,
            'to_stage': self.to_stage,
            'cause': self.cause,
        }
        data.update(self.levels)
        return data

    def to_csv_row(self) -> Dict[str, Any]:
        """Row for CSV_COLUMNS."""
        return self.to_dict()


class StageEventLogger:
    """
    Logs and stores stage changes.

    Can be registered directly as an engine stage-change callback.

    Example:
        >>> logger = StageEventLogger()
        >>> engine.on_stage_change(logger.log_change)
        >>> engine.advance_to_next_stage()
        >>> logger.get_by_cause("manual_advance")[0].to_stage
        'comedone'

    Callbacks receive (change, snapshot), matching log_change.
    """

    LEVEL_COLUMNS = [
        'sebum_level', 'bacteria_level', 'inflammation_level',
        'neutrophil_level', 'pus_level', 'medication_level', 'healing_progress',
    ]

    # CSV column order
    CSV_COLUMNS = ['timestamp', 'from_stage', 'to_stage', 'cause'] + LEVEL_COLUMNS

    def __init__(self, max_events: int = 10000):
        """
        Initialize the logger.

        Args:
            max_events: Maximum events to store (oldest removed when exceeded)
        """
        self.max_events = max_events
        self._events: List[StageEventRecord] = []
        self._stats = {
            'total_logged': 0,
            'by_cause': {},
            'by_stage': {},
        }

    def log_change(self, change: Any, snapshot: Any = None) -> StageEventRecord:
        """
        Log a StageChange.

        Args:
            change: StageChange from the stage machine
            snapshot: StateSnapshot taken right after the change

        Returns:
            The created StageEventRecord
        """
        levels = {}
        if snapshot is not None:
            levels = {name: getattr(snapshot, name) for name in self.LEVEL_COLUMNS}

        return self.log_raw(
            timestamp=change.timestamp,
            from_stage=change.from_stage.value,
            to_stage=change.to_stage.value,
            cause=change.cause.value,
            levels=levels,
        )

    def log_raw(self, timestamp: float, from_stage: str, to_stage: str,
                cause: str, levels: Optional[Dict[str, float]] = None) -> StageEventRecord:
        """Log a stage change from raw values."""
        record = StageEventRecord(
            timestamp=timestamp,
            from_stage=from_stage,
            to_stage=to_stage,
            cause=cause,
            levels=dict(levels or {}),
        )

        self._events.append(record)
        if len(self._events) > self.max_events:
            self._events = self._events[-self.max_events:]

        self._stats['total_logged'] += 1
        self._stats['by_cause'][cause] = self._stats['by_cause'].get(cause, 0) + 1
        self._stats['by_stage'][to_stage] = self._stats['by_stage'].get(to_stage, 0) + 1

        return record

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_all(self) -> List[StageEventRecord]:
        return list(self._events)

    def get_recent(self, count: int = 10) -> List[StageEventRecord]:
        """The last `count` stage changes."""
        return self._events[-count:]

    def get_by_cause(self, cause: str) -> List[StageEventRecord]:
        """Get events with a specific cause."""
        return [e for e in self._events if e.cause == cause]

    def get_entries_into(self, stage: str) -> List[StageEventRecord]:
        """Get events that entered a stage."""
        return [e for e in self._events if e.to_stage == stage]

    def get_in_range(self, start_time: float, end_time: float) -> List[StageEventRecord]:
        """Changes with start_time <= timestamp <= end_time (hours)."""
        return [e for e in self._events if start_time <= e.timestamp <= end_time]

    def get_stage_path(self) -> List[str]:
        """Get the sequence of stages visited, starting with the first origin."""
        if not self._events:
            return []
        return [self._events[0].from_stage] + [e.to_stage for e in self._events]

    def first_entry_time(self, stage: str) -> Optional[float]:
        """Time the given stage was first entered, or None."""
        for event in self._events:
            if event.to_stage == stage:
                return event.timestamp
        return None

    # =========================================================================
    # Statistics
    # =========================================================================

    @property
    def count(self) -> int:
        return len(self._events)

    @property
    def total_logged(self) -> int:
        """Changes seen since the last reset, including dropped ones."""
        return self._stats['total_logged']

    def get_stats(self) -> Dict[str, Any]:
        """Totals and a count per cause."""
        return {
            'stored_events': len(self._events),
            'total_logged': self._stats['total_logged'],
            'by_cause': dict(self._stats['by_cause']),
            'by_stage': dict(self._stats['by_stage']),
        }

    # =========================================================================
    # Export Methods
    # =========================================================================

    def to_csv(self, include_header: bool = True) -> str:
        """
        Export events to CSV string.

        Args:
            include_header: Whether to include column headers

        Returns:
            CSV formatted string
        """
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=self.CSV_COLUMNS,
                                extrasaction='ignore')

        if include_header:
            writer.writeheader()

        for event in self._events:
            writer.writerow(event.to_csv_row())

        return output.getvalue()

    def write_csv(self, filepath: str) -> int:
        """Write events to CSV file; returns the number written."""
        with open(filepath, 'w', newline='') as f:
            f.write(self.to_csv())
        return len(self._events)

    def to_json(self, pretty: bool = False) -> str:
        """Export events to JSON string."""
        data = [e.to_dict() for e in self._events]
        if pretty:
            return json.dumps(data, indent=2)
        return json.dumps(data)

    def write_json(self, filepath: str, pretty: bool = True) -> int:
        """Write events to JSON file; returns the number written."""
        with open(filepath, 'w') as f:
            f.write(self.to_json(pretty=pretty))
        return len(self._events)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def clear(self) -> None:
        """Drop stored events; totals survive."""
        self._events.clear()

    def reset(self) -> None:
        """Drop events and totals."""
        self._events.clear()
        self._stats = {
            'total_logged': 0,
            'by_cause': {},
            'by_stage': {},
        }

    def __len__(self) -> int:
        return len(self._events)

    def __repr__(self) -> str:
        return f"StageEventLogger(stored={len(self._events)}, total={self._stats['total_logged']})"
