"""
Infrastructure package for SQL Log Replay.

Centralizes database connectivity concerns (DSN building, the shared replay
pool, the pre-flight ping). Keep this layer focused on I/O and resource
management, decoupled from extraction and execution logic.
"""

from sql_log_replay.infrastructure.db_factory import (
    PoolConfig,
    build_dsn,
    open_pool,
    verify_connection,
)

__all__ = [
    "PoolConfig",
    "build_dsn",
    "open_pool",
    "verify_connection",
]
