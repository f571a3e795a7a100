"""
Domain models for SQL Log Replay.

``CaptureEnvelope`` mirrors the minimal shape of one element of a capture
file; ``LogEntry`` is the extracted, immutable record handed to the
executor; ``ReplayOutcome`` is the aggregate result of one run.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, StrictStr

from sql_log_replay.errors import QueryError


class JsonPayload(BaseModel):
    message: StrictStr = Field(..., description="Free-text log message.")

    model_config = ConfigDict(extra="ignore", frozen=True)


class CaptureEnvelope(BaseModel):
    """
    One element of a capture file. Keys other than ``jsonPayload`` are ignored.
    """

    json_payload: JsonPayload = Field(..., alias="jsonPayload")

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)


class LogEntry(BaseModel):
    """
    A capture record with its extracted statement.

    ``statement`` is empty when the message holds no recognizable SQL; such
    entries are still replayed and fail at the database.
    """

    raw_message: str = Field(..., description="Original log message.")
    statement: str = Field("", description="SQL isolated from the message.")

    model_config = ConfigDict(frozen=True)

    @property
    def has_statement(self) -> bool:
        return bool(self.statement)


@dataclass(frozen=True)
class ReplayOutcome:
    """
    Aggregate result of a replay run.

    ``succeeded`` is the true number of units that returned without error.
    ``success_count`` is the reported figure: it drops to 0 as soon as any
    unit failed.
    """

    total_count: int
    succeeded: int
    failures: Tuple[QueryError, ...] = field(default_factory=tuple)
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def success_count(self) -> int:
        return self.succeeded if self.ok else 0

    @property
    def failure_count(self) -> int:
        return len(self.failures)

    @property
    def first_error(self) -> Optional[QueryError]:
        return self.failures[0] if self.failures else None


__all__ = ["JsonPayload", "CaptureEnvelope", "LogEntry", "ReplayOutcome"]
