"""
Utilities package for SQL Log Replay.

Exports shared helpers for logging and profiling. Keep this package
lightweight and free of replay-specific logic.
"""

from sql_log_replay.utils.logging import configure_logging, get_logger
from sql_log_replay.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
