"""
Pytest configuration for SQL Log Replay.

Provides fixtures for:
- Isolated settings (no ambient DB_* variables or .env file)
- Writing capture files
- A fake connection pool that records concurrency and can fail statements
- Database connection details for integration tests
"""

from __future__ import annotations

import io
import json
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional

import psycopg
import pytest
from psycopg import pq
from rich.console import Console

from sql_log_replay.config import Settings, get_settings

_SETTINGS_ENV_VARS = (
    "DB_HOST",
    "DB_PORT",
    "DB_USER",
    "DB_PASSWORD",
    "DB_NAME",
    "DB_SSLMODE",
    "DB_CONNECT_TIMEOUT_SECONDS",
    "SQL_FILE",
    "POOL_MAX_OPEN",
    "POOL_MAX_IDLE",
    "POOL_MAX_LIFETIME_SECONDS",
    "POOL_MAX_IDLE_TIME_SECONDS",
    "POOL_ACQUIRE_TIMEOUT_SECONDS",
    "REPLAY_WORKERS",
    "REPLAY_VERIFY_CONNECTION",
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
)


class FakeCursor:
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool
        self.pgresult: Optional[SimpleNamespace] = None

    def execute(self, statement: str) -> None:
        self._pool.record(statement)
        if self._pool.encoding:
            statement.encode(self._pool.encoding)
        if self._pool.delay:
            time.sleep(self._pool.delay)
        if statement in self._pool.failing:
            raise psycopg.errors.SyntaxError(f'syntax error at or near "{statement}"')
        status = pq.ExecStatus.EMPTY_QUERY if not statement.strip() else pq.ExecStatus.TUPLES_OK
        self.pgresult = SimpleNamespace(status=status)

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc_info) -> bool:
        return False


class FakeConnection:
    def __init__(self, pool: "FakePool") -> None:
        self._pool = pool

    def cursor(self) -> FakeCursor:
        return FakeCursor(self._pool)


class FakePool:
    """
    Stand-in for ``psycopg_pool.ConnectionPool``.

    Hands out at most ``max_size`` connections at once, blocking other
    callers, and tracks the peak number checked out simultaneously.
    """

    def __init__(
        self,
        max_size: int = 4,
        failing: Iterable[str] = (),
        delay: float = 0.0,
        encoding: Optional[str] = None,
    ) -> None:
        self.max_size = max_size
        self.encoding = encoding
        self.failing = frozenset(failing)
        self.delay = delay
        self.executed: List[str] = []
        self.timeouts: List[Optional[float]] = []
        self.active = 0
        self.peak_active = 0
        self.closed = False
        self._slots = threading.BoundedSemaphore(max_size)
        self._lock = threading.Lock()

    def record(self, statement: str) -> None:
        with self._lock:
            self.executed.append(statement)

    @contextmanager
    def connection(self, timeout: Optional[float] = None) -> Iterator[FakeConnection]:
        self._slots.acquire()
        with self._lock:
            self.timeouts.append(timeout)
            self.active += 1
            self.peak_active = max(self.peak_active, self.active)
        try:
            yield FakeConnection(self)
        finally:
            with self._lock:
                self.active -= 1
            self._slots.release()

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_pool_factory() -> Callable[..., FakePool]:
    return FakePool


@pytest.fixture
def report_console() -> Console:
    """A rich console writing into memory; read it back with ``.file.getvalue()``."""
    return Console(file=io.StringIO(), width=200, color_system=None)


@pytest.fixture
def clean_env(monkeypatch, tmp_path: Path) -> Path:
    """
    Strip settings-related environment variables and move away from any .env.
    """
    for name in _SETTINGS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield tmp_path
    get_settings.cache_clear()


@pytest.fixture
def write_capture(tmp_path: Path) -> Callable[..., Path]:
    """
    Factory writing a capture file.

    Pass a list of messages to get well-formed envelopes, or ``raw=`` to
    write arbitrary content.
    """

    def _write(
        messages: Optional[List[str]] = None,
        raw: Optional[str] = None,
        name: str = "capture.json",
    ) -> Path:
        path = tmp_path / name
        if raw is not None:
            path.write_text(raw, encoding="utf-8")
        else:
            envelopes: List[Dict[str, Any]] = [
                {"jsonPayload": {"message": message}} for message in messages or []
            ]
            path.write_text(json.dumps(envelopes), encoding="utf-8")
        return path

    return _write


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture for integration tests.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "postgres"),
        db_sslmode=os.getenv("DB_SSLMODE", "disable"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return test_settings.dsn()


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;")
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def require_db(db_connection_available: bool) -> None:
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")
