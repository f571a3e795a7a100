from __future__ import annotations

from typing import Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table

from sql_log_replay.domain.models import LogEntry, ReplayOutcome
from sql_log_replay.errors import QueryError

_RULE = "-" * 56
_BANNER = "*" * 40


def format_failure(error: QueryError) -> str:
    """
    Render the diagnostic block printed for one failed statement.
    """
    return "\n".join(
        [
            _RULE,
            f"Query error: {error.statement}",
            str(error.cause),
            f"The total time taken before failure is {error.elapsed_ms} milliseconds.",
            _RULE,
        ]
    )


def print_failure(console: Console, error: QueryError) -> None:
    """
    Print a failure block in a single write so concurrent units never interleave.

    Markup and highlighting are off: SQL routinely contains ``[`` and the text
    must appear exactly as replayed.
    """
    console.print(format_failure(error), markup=False, highlight=False, soft_wrap=True)


def print_summary(
    console: Console,
    outcome: ReplayOutcome,
    elapsed_ms: int,
    peak_rss_bytes: Optional[int] = None,
) -> None:
    """
    Render the end-of-run summary.

    The headline reports ``success_count`` (zero when any statement failed);
    the table underneath breaks the run down by what actually happened.
    """
    console.print(_BANNER, markup=False, highlight=False)
    console.print(
        f"{outcome.success_count} successful requests out of {outcome.total_count} requests.",
        markup=False,
        highlight=False,
    )
    console.print(_BANNER, markup=False, highlight=False)
    console.print(f"timeconsuming: {elapsed_ms} milliseconds", markup=False, highlight=False)

    table = Table(title="SQL Log Replay Summary", box=box.ROUNDED)
    table.add_column("Statements", justify="right", style="magenta")
    table.add_column("Succeeded", justify="right", style="green")
    table.add_column("Failed", justify="right", style="red")
    table.add_column("Elapsed (ms)", justify="right", style="cyan")
    table.add_column("Peak Memory (MB)", justify="right", style="yellow")

    mem_str = "N/A"
    if peak_rss_bytes:
        mem_str = f"{peak_rss_bytes / (1024 * 1024):.2f}"

    table.add_row(
        f"{outcome.total_count:,}",
        f"{outcome.succeeded:,}",
        f"{outcome.failure_count:,}",
        f"{elapsed_ms:,}",
        mem_str,
    )
    console.print(table)


def print_statements(console: Console, entries: Sequence[LogEntry]) -> None:
    """
    List extracted statements, one numbered line each, for dry runs.
    """
    if not entries:
        console.print("No entries in capture.", style="yellow")
        return

    width = len(str(len(entries)))
    for index, entry in enumerate(entries, 1):
        statement = entry.statement if entry.has_statement else "<no statement>"
        console.print(f"{index:>{width}}. {statement}", markup=False, highlight=False, soft_wrap=True)

    missing = sum(1 for entry in entries if not entry.has_statement)
    console.print(
        f"{len(entries)} entries, {missing} without a statement.", markup=False, highlight=False
    )


__all__ = ["format_failure", "print_failure", "print_statements", "print_summary"]
