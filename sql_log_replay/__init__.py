"""
SQL Log Replay - replay SQL harvested from JSON log captures against PostgreSQL.

The package extracts the statement embedded in each log message of a capture
file and executes every statement concurrently through a bounded psycopg
connection pool, reporting how many succeeded and how long the run took:

- Extraction of SQL from free-text log payloads
- A lazily-filled, size-capped connection pool
- Fan-out execution with per-statement timing and failure diagnostics
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sql_log_replay.config import Settings, get_settings
from sql_log_replay.domain.models import LogEntry, ReplayOutcome
from sql_log_replay.errors import (
    CaptureDecodeError,
    CaptureIOError,
    ConfigError,
    ConnectError,
    QueryError,
    ReplayError,
)
from sql_log_replay.executor import ReplayExecutor, run_replay
from sql_log_replay.extractor import extract, extract_statement, parse_capture
from sql_log_replay.infrastructure.db_factory import PoolConfig, build_dsn, open_pool
from sql_log_replay.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Extraction
    "LogEntry",
    "extract",
    "extract_statement",
    "parse_capture",
    # Pool
    "PoolConfig",
    "build_dsn",
    "open_pool",
    # Execution
    "ReplayExecutor",
    "ReplayOutcome",
    "run_replay",
    # Errors
    "ReplayError",
    "ConfigError",
    "CaptureIOError",
    "CaptureDecodeError",
    "ConnectError",
    "QueryError",
    # Logging
    "configure_logging",
    "get_logger",
]
