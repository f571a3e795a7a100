"""
Database connection factory for SQL Log Replay.

Builds the single shared psycopg pool that every replay unit borrows from,
plus a pre-flight connectivity check. The pool is created lazily
(``min_size=0``): physical connections are opened on demand, up to
``max_open_connections``, and callers beyond that cap queue inside the pool.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Type, Union

import psycopg
from psycopg import Connection
from psycopg.conninfo import conninfo_to_dict, make_conninfo
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from sql_log_replay.errors import ConfigError, ConnectError
from sql_log_replay.utils.logging import get_logger

log = get_logger(__name__)

DEFAULT_MAX_OPEN_CONNECTIONS = 70
DEFAULT_MAX_IDLE_CONNECTIONS = int(0.1 * 80)
DEFAULT_MAX_LIFETIME_SECONDS = 30.0
DEFAULT_MAX_IDLE_TIME_SECONDS = 15.0

POOL_NAME = "sql-log-replay"


@dataclass(frozen=True)
class PoolConfig:
    """
    Fixed sizing and recycling parameters applied when the pool is opened.

    Attributes
    ----------
    max_open_connections : int
        Hard cap on simultaneously open physical connections.
    max_idle_connections : int
        Idle connections the pool is sized to keep; never above the cap.
    max_lifetime_seconds : float
        Age after which a connection is recycled.
    max_idle_time_seconds : float
        Idle time after which a surplus connection is closed.
    """

    max_open_connections: int = DEFAULT_MAX_OPEN_CONNECTIONS
    max_idle_connections: int = DEFAULT_MAX_IDLE_CONNECTIONS
    max_lifetime_seconds: float = DEFAULT_MAX_LIFETIME_SECONDS
    max_idle_time_seconds: float = DEFAULT_MAX_IDLE_TIME_SECONDS

    def __post_init__(self) -> None:
        if self.max_open_connections < 1:
            raise ConfigError("max open connections must be at least 1")
        if not 0 <= self.max_idle_connections <= self.max_open_connections:
            raise ConfigError(
                f"max idle connections ({self.max_idle_connections}) must be between 0 "
                f"and max open connections ({self.max_open_connections})"
            )
        if self.max_lifetime_seconds <= 0 or self.max_idle_time_seconds <= 0:
            raise ConfigError("connection lifetime and idle time must be positive")


def build_dsn(
    host: str,
    port: Union[int, str],
    user: str,
    password: str,
    dbname: str,
    sslmode: str = "disable",
) -> str:
    """
    Compose a libpq keyword/value conninfo string, quoting values as needed.
    """
    try:
        return make_conninfo(
            host=host,
            port=str(port),
            user=user,
            dbname=dbname,
            password=password,
            sslmode=sslmode,
        )
    except psycopg.ProgrammingError as exc:
        raise ConfigError(f"invalid connection parameters: {exc}") from exc


def redact_dsn(dsn: str) -> str:
    """Render a conninfo string with the password masked, for logs."""
    try:
        params = conninfo_to_dict(dsn)
    except psycopg.ProgrammingError:
        return "<invalid dsn>"
    if params.get("password"):
        params["password"] = "***"
    return " ".join(f"{key}={value}" for key, value in params.items())


def open_pool(
    dsn: str,
    config: Optional[PoolConfig] = None,
    *,
    acquire_timeout: float = 30.0,
    connection_class: Type[Connection[Any]] = Connection,
) -> ConnectionPool:
    """
    Open the shared replay pool.

    Parameters
    ----------
    dsn : str
        Target database conninfo.
    config : PoolConfig, optional
        Sizing and recycling parameters; defaults apply when omitted.
    acquire_timeout : float
        Seconds a caller may wait for a free connection before the pool
        raises ``PoolTimeout``.
    connection_class : type
        Connection class the pool instantiates; overridable for
        instrumentation.

    Returns
    -------
    ConnectionPool
        An open pool holding no connections yet.

    Raises
    ------
    ConnectError
        If the pool cannot be constructed or started.
    """
    config = config or PoolConfig()
    kwargs: Dict[str, Any] = {"autocommit": True}
    try:
        pool = ConnectionPool(
            conninfo=dsn,
            connection_class=connection_class,
            kwargs=kwargs,
            min_size=0,
            max_size=config.max_open_connections,
            max_lifetime=config.max_lifetime_seconds,
            max_idle=config.max_idle_time_seconds,
            timeout=acquire_timeout,
            name=POOL_NAME,
            open=True,
        )
    except (psycopg.Error, ValueError) as exc:
        raise ConnectError(f"cannot open connection pool: {exc}") from exc

    log.info(
        "Pool opened",
        extra={
            "dsn": redact_dsn(dsn),
            "max_open": config.max_open_connections,
            "max_idle": config.max_idle_connections,
            "max_lifetime_s": config.max_lifetime_seconds,
            "max_idle_time_s": config.max_idle_time_seconds,
        },
    )
    return pool


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: str, connect_timeout: int = 10) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection
    errors. Used for the pre-flight check only; replayed statements always go
    through the pool.
    """
    return psycopg.connect(dsn, connect_timeout=connect_timeout, autocommit=True)


def verify_connection(dsn: str, connect_timeout: int = 10) -> None:
    """
    Ping the target database before any statement is replayed.

    Raises
    ------
    ConnectError
        If the database stays unreachable after all retry attempts or
        rejects the credentials.
    """
    try:
        with get_sync_connection(dsn, connect_timeout=connect_timeout) as conn:
            conn.execute("SELECT 1")
    except psycopg.Error as exc:
        raise ConnectError(f"database unreachable ({redact_dsn(dsn)}): {exc}") from exc
    log.info("Database reachable", extra={"dsn": redact_dsn(dsn)})


__all__ = [
    "DEFAULT_MAX_IDLE_CONNECTIONS",
    "DEFAULT_MAX_IDLE_TIME_SECONDS",
    "DEFAULT_MAX_LIFETIME_SECONDS",
    "DEFAULT_MAX_OPEN_CONNECTIONS",
    "PoolConfig",
    "build_dsn",
    "get_sync_connection",
    "open_pool",
    "redact_dsn",
    "verify_connection",
]
