"""
Level timeline logging for the acne progression engine.

Samples the biological levels over simulated time for analysis and
plotting.
"""

from dataclasses import dataclass, fields
from typing import Dict, List, Optional, Any
import csv
import io
import json


LEVEL_NAMES = [
    'sebum_level', 'bacteria_level', 'inflammation_level', 'neutrophil_level',
    'pus_level', 'medication_level', 'healing_progress',
]


@dataclass
class LevelRecord:
    """A single sample of the biological state."""
    timestamp: float
    stage: str = ""
    stage_progress: float = 0.0

    sebum_level: float = 0.0
    bacteria_level: float = 0.0
    inflammation_level: float = 0.0
    neutrophil_level: float = 0.0
    pus_level: float = 0.0
    medication_level: float = 0.0
    healing_progress: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def to_csv_row(self) -> Dict[str, Any]:
        """Convert to CSV row."""
        return self.to_dict()


class LevelLogger:
    """
    Logs biological levels at a fixed simulated-time interval.

    Features:
    - Time-series level recording
    - Running min/max/average per level
    - CSV/JSON export

    Example:
        >>> logger = LevelLogger(sample_interval=1.0)
        >>> engine.on_tick(logger.log_snapshot)
        >>> for _ in range(600):
        ...     engine.update()
        >>> logger.get_level_stats()['bacteria_level']['max']
    """

    # CSV column order
    CSV_COLUMNS = ['timestamp', 'stage', 'stage_progress'] + LEVEL_NAMES

    def __init__(self, sample_interval: float = 1.0, max_records: int = 10000):
        """
        Initialize the level logger.

        Args:
            sample_interval: Minimum simulated hours between samples (0 = log everything)
            max_records: Maximum records to store
        """
        self.sample_interval = sample_interval
        self.max_records = max_records

        self._records: List[LevelRecord] = []
        self._last_sample_time: float = -float('inf')

        # Running statistics
        self._total_samples: int = 0
        self._sums: Dict[str, float] = {name: 0.0 for name in LEVEL_NAMES}
        self._mins: Dict[str, float] = {name: float('inf') for name in LEVEL_NAMES}
        self._maxs: Dict[str, float] = {name: float('-inf') for name in LEVEL_NAMES}

    def log_snapshot(self, snapshot: Any) -> Optional[LevelRecord]:
        """
        Log a StateSnapshot.

        Returns:
            LevelRecord if logged, None if skipped due to interval
        """
        timestamp = snapshot.simulation_time
        # A rewound clock (engine reset) always samples
        if 0 <= timestamp - self._last_sample_time < self.sample_interval:
            return None

        record = LevelRecord(
            timestamp=timestamp,
            stage=snapshot.stage,
            stage_progress=snapshot.stage_progress,
            **{name: getattr(snapshot, name) for name in LEVEL_NAMES},
        )
        return self._store(record)

    def log_raw(self, timestamp: float, stage: str = "", **levels) -> LevelRecord:
        """Log levels from raw values (unlisted levels are 0)."""
        record = LevelRecord(timestamp=timestamp, stage=stage, **levels)
        return self._store(record)

    def _store(self, record: LevelRecord) -> LevelRecord:
        self._last_sample_time = record.timestamp

        self._records.append(record)
        if len(self._records) > self.max_records:
            self._records = self._records[-self.max_records:]

        for name in LEVEL_NAMES:
            value = getattr(record, name)
            self._sums[name] += value
            self._mins[name] = min(self._mins[name], value)
            self._maxs[name] = max(self._maxs[name], value)
        self._total_samples += 1

        return record

    # =========================================================================
    # Query Methods
    # =========================================================================

    def get_all(self) -> List[LevelRecord]:
        return list(self._records)

    def get_recent(self, count: int = 10) -> List[LevelRecord]:
        """The last `count` samples."""
        return self._records[-count:]

    def get_in_range(self, start_time: float, end_time: float) -> List[LevelRecord]:
        """Samples taken between start_time and end_time (hours, inclusive)."""
        return [r for r in self._records if start_time <= r.timestamp <= end_time]

    def get_timeline(self, level: str) -> List[tuple]:
        """Get (timestamp, value) pairs for one level."""
        if level not in LEVEL_NAMES:
            raise KeyError(level)
        return [(r.timestamp, getattr(r, level)) for r in self._records]

    # =========================================================================
    # Statistics
    # =========================================================================

    @property
    def count(self) -> int:
        return len(self._records)

    def get_level_stats(self) -> Dict[str, Dict[str, float]]:
        """Get min/max/average for every level."""
        if self._total_samples == 0:
            return {name: {'min': 0.0, 'max': 0.0, 'average': 0.0} for name in LEVEL_NAMES}

        return {
            name: {
                'min': self._mins[name],
                'max': self._maxs[name],
                'average': self._sums[name] / self._total_samples,
            }
            for name in LEVEL_NAMES
        }

    def get_stats(self) -> Dict[str, Any]:
        """Sample counts plus per-level min/max/average."""
        return {
            'total_samples': self._total_samples,
            'stored_samples': len(self._records),
            'levels': self.get_level_stats(),
        }

    # =========================================================================
    # Export Methods
    # =========================================================================

    def to_csv(self, include_header: bool = True) -> str:
        """Timeline as CSV text."""
        output = io.StringIO()
        writer = csv.DictWriter(output, fieldnames=self.CSV_COLUMNS,
                                extrasaction='ignore')

        if include_header:
            writer.writeheader()

        for record in self._records:
            writer.writerow(record.to_csv_row())

        return output.getvalue()

    def write_csv(self, filepath: str) -> int:
        """Write the timeline CSV; returns the row count."""
        with open(filepath, 'w', newline='') as f:
            f.write(self.to_csv())
        return len(self._records)

    def to_json(self, pretty: bool = False) -> str:
        """Timeline as a JSON array."""
        data = [r.to_dict() for r in self._records]
        if pretty:
            return json.dumps(data, indent=2)
        return json.dumps(data)

    def write_json(self, filepath: str, pretty: bool = True) -> int:
        """Write the timeline JSON; returns the record count."""
        with open(filepath, 'w') as f:
            f.write(self.to_json(pretty=pretty))
        return len(self._records)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def clear(self) -> None:
        """Drop stored samples; min/max/average survive."""
        self._records.clear()

    def reset(self) -> None:
        """Drop samples and statistics; the next snapshot is always sampled."""
        self._records.clear()
        self._last_sample_time = -float('inf')
        self._total_samples = 0
        self._sums = {name: 0.0 for name in LEVEL_NAMES}
        self._mins = {name: float('inf') for name in LEVEL_NAMES}
        self._maxs = {name: float('-inf') for name in LEVEL_NAMES}

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"LevelLogger(samples={self._total_samples}, stored={len(self._records)})"
