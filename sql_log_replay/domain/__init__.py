"""
Domain package for SQL Log Replay.

Exports the capture-file schema, the extracted log entry and the replay
outcome. Keep this package focused on data definitions.
"""

from sql_log_replay.domain.models import CaptureEnvelope, JsonPayload, LogEntry, ReplayOutcome

__all__ = [
    "CaptureEnvelope",
    "JsonPayload",
    "LogEntry",
    "ReplayOutcome",
]
