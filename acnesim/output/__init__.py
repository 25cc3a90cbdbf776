"""
Output and logging for the acne progression engine.

Provides logging and export capabilities:
- StageEventLogger: Logs every stage change with its cause
- LevelLogger: Samples biological levels over time
- DebugLogger: Detailed debugging output for development
"""

from .event_logger import StageEventLogger, StageEventRecord
from .level_logger import LevelLogger, LevelRecord
from .debug_logger import (
    DebugLogger,
    LogLevel,
    LogEntry,
    create_console_logger,
    create_file_logger,
)

__all__ = [
    'StageEventLogger',
    'StageEventRecord',
    'LevelLogger',
    'LevelRecord',
    'DebugLogger',
    'LogLevel',
    'LogEntry',
    'create_console_logger',
    'create_file_logger',
]
