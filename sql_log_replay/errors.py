"""
Error taxonomy for SQL Log Replay.

Every failure the tool reports derives from ``ReplayError``. Each subclass
carries a stable ``code`` (used in structured logs) and the process
``exit_code`` the CLI terminates with.

Pre-flight errors (``ConfigError``, ``CaptureIOError``, ``CaptureDecodeError``,
``ConnectError``) abort a run before any statement executes. ``QueryError``
is raised per unit of work, collected by the executor, and the first one
becomes the run's terminal error.
"""

from __future__ import annotations


class ReplayError(Exception):
    code: str = "replay_error"
    exit_code: int = 1


class ConfigError(ReplayError):
    code = "config_error"
    exit_code = 2


class CaptureIOError(ReplayError):
    """The capture file could not be read."""

    code = "capture_io_error"


class CaptureDecodeError(ReplayError):
    """The capture file is not a JSON array of log envelopes."""

    code = "capture_decode_error"


class ConnectError(ReplayError):
    """The pool could not be built or the database is unreachable."""

    code = "connect_error"


class QueryError(ReplayError):
    """
    A single replayed statement failed.

    Attributes
    ----------
    statement : str
        The statement text exactly as submitted.
    cause : BaseException
        The driver or pool error that was raised.
    elapsed_ms : int
        Milliseconds spent in the unit before the failure surfaced.
    """

    code = "query_error"

    def __init__(self, statement: str, cause: BaseException, elapsed_ms: int) -> None:
        super().__init__(str(cause))
        self.statement = statement
        self.cause = cause
        self.elapsed_ms = elapsed_ms


__all__ = [
    "ReplayError",
    "ConfigError",
    "CaptureIOError",
    "CaptureDecodeError",
    "ConnectError",
    "QueryError",
]
