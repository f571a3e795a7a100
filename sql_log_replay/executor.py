"""
Concurrent replay of extracted statements through a shared connection pool.

Every entry becomes one independent unit of work on a thread pool. A unit
borrows a connection from the pool only for the duration of its query, so
database-level parallelism is capped by the pool's maximum size while
surplus units queue inside the pool.

Per run, the only shared mutable state is a success counter (guarded by a
lock held just for the increment) and a bounded error queue sized to the
number of entries, so no unit ever blocks on reporting a failure.

Usage:
    from sql_log_replay.executor import run_replay

    outcome = run_replay(entries, pool)
    if not outcome.ok:
        raise outcome.first_error
"""

from __future__ import annotations

import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor, wait
from typing import Any, Optional, Protocol, Sequence, Tuple

import psycopg
from psycopg import pq
from rich.console import Console

from sql_log_replay.domain.models import LogEntry, ReplayOutcome
from sql_log_replay.errors import QueryError
from sql_log_replay.infrastructure.db_factory import DEFAULT_MAX_OPEN_CONNECTIONS
from sql_log_replay.reporter import print_failure
from sql_log_replay.utils.logging import get_logger

log = get_logger(__name__)


class PooledHandle(Protocol):
    """
    The slice of ``psycopg_pool.ConnectionPool`` the executor relies on.
    """

    def connection(self, timeout: Optional[float] = None) -> Any: ...


class _ReplayRun:
    """Counters and failures collected while one run is in flight."""

    def __init__(self, capacity: int) -> None:
        self._lock = threading.Lock()
        self._succeeded = 0
        self._errors: "queue.Queue[QueryError]" = queue.Queue(maxsize=max(capacity, 1))

    @property
    def succeeded(self) -> int:
        return self._succeeded

    def record_success(self) -> None:
        with self._lock:
            self._succeeded += 1

    def record_failure(self, error: QueryError) -> None:
        self._errors.put_nowait(error)

    def drain(self) -> Tuple[QueryError, ...]:
        failures = []
        while True:
            try:
                failures.append(self._errors.get_nowait())
            except queue.Empty:
                return tuple(failures)


class ReplayExecutor:
    """
    Fan out statements over a thread pool, one unit per entry.

    Parameters
    ----------
    pool : PooledHandle
        Shared, thread-safe pool every unit borrows a connection from.
    workers : int, optional
        Worker threads; defaults to the pool's maximum size so no thread sits
        waiting for a connection it can never get.
    console : rich.console.Console, optional
        Destination of per-failure diagnostic blocks (stdout by default).
    acquire_timeout : float, optional
        Override of the pool's own wait limit for a free connection.
    """

    def __init__(
        self,
        pool: PooledHandle,
        *,
        workers: Optional[int] = None,
        console: Optional[Console] = None,
        acquire_timeout: Optional[float] = None,
    ) -> None:
        self._pool = pool
        self.workers = workers or getattr(pool, "max_size", None) or DEFAULT_MAX_OPEN_CONNECTIONS
        self._console = console or Console()
        self._acquire_timeout = acquire_timeout

    def _execute(self, statement: str) -> None:
        with self._pool.connection(timeout=self._acquire_timeout) as conn:
            with conn.cursor() as cur:
                cur.execute(statement)
                result = cur.pgresult
                # psycopg accepts an empty query silently; the server still
                # answered with EmptyQueryResponse, so report it as a failure.
                if result is not None and result.status == pq.ExecStatus.EMPTY_QUERY:
                    raise psycopg.ProgrammingError("can't execute an empty query")

    def _execute_unit(self, statement: str, run: _ReplayRun, started: float) -> None:
        # ``started`` is the submission time: queueing for a worker thread or a
        # pooled connection counts towards the unit's elapsed time.
        try:
            self._execute(statement)
        except (psycopg.Error, UnicodeEncodeError) as exc:
            # psycopg encodes the query client-side and raises UnicodeEncodeError
            # when the server encoding cannot represent it.
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            error = QueryError(statement, exc, elapsed_ms)
            print_failure(self._console, error)
            log.debug(
                "Statement failed",
                extra={"error_type": type(exc).__name__, "elapsed_ms": elapsed_ms},
            )
            run.record_failure(error)
            return
        run.record_success()

    def run(self, entries: Sequence[LogEntry]) -> ReplayOutcome:
        """
        Replay every entry and block until all units have finished.

        Returns
        -------
        ReplayOutcome
            ``success_count`` is 0 if any unit failed; ``succeeded`` keeps
            the true tally and ``failures`` every collected ``QueryError``.

        Raises
        ------
        Exception
            Any non-database error escaping a unit is re-raised once every
            unit has completed.
        """
        run = _ReplayRun(capacity=len(entries))
        log.info(
            "[REPLAY START]",
            extra={"statements": len(entries), "workers": self.workers},
        )

        start = time.perf_counter()
        if entries:
            with ThreadPoolExecutor(
                max_workers=self.workers, thread_name_prefix="replay-unit"
            ) as executor:
                futures = [
                    executor.submit(self._execute_unit, entry.statement, run, time.perf_counter())
                    for entry in entries
                ]
                wait(futures)
            for future in futures:
                future.result()
        duration = time.perf_counter() - start

        outcome = ReplayOutcome(
            total_count=len(entries),
            succeeded=run.succeeded,
            failures=run.drain(),
            duration_seconds=duration,
        )
        log.info(
            "[REPLAY COMPLETE]",
            extra={
                "statements": outcome.total_count,
                "succeeded": outcome.succeeded,
                "failed": outcome.failure_count,
                "duration_ms": int(duration * 1000),
            },
        )
        return outcome


def run_replay(
    entries: Sequence[LogEntry],
    pool: PooledHandle,
    *,
    workers: Optional[int] = None,
    console: Optional[Console] = None,
    acquire_timeout: Optional[float] = None,
) -> ReplayOutcome:
    """
    Replay ``entries`` concurrently through ``pool``.

    Convenience wrapper around ``ReplayExecutor(...).run(entries)``.
    """
    executor = ReplayExecutor(
        pool, workers=workers, console=console, acquire_timeout=acquire_timeout
    )
    return executor.run(entries)


__all__ = ["PooledHandle", "ReplayExecutor", "run_replay"]
