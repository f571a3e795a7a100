"""
Synthetic capture generator for SQL Log Replay.

Writes a deterministic JSON log capture mixing messages that embed SQL
statements with noise messages that embed none, in the same envelope shape
as exported structured logs.
"""

from __future__ import annotations

import json
import random
import sys
import time
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, List

import typer

app = typer.Typer(help="Generate a synthetic JSON log capture for replay smoke tests.")

_STATEMENTS = [
    "SELECT 1",
    "SELECT now()",
    "select count(*) from pg_catalog.pg_class",
    "SELECT relname FROM pg_catalog.pg_class WHERE relkind = 'r' LIMIT 5",
    "WITH RECURSIVE t(n) AS (SELECT 1 UNION ALL SELECT n + 1 FROM t WHERE n < 10) "
    "SELECT sum(n) FROM t",
]

_PREFIXES = [
    "query executed",
    "slow query detected",
    "statement:",
    "db.query duration=12ms\n",
]

_NOISE = [
    "health check ok",
    "cache miss for key user:42",
    "request completed status=200",
]


def _generate_envelopes(rows: int, noise_ratio: float, seed: int) -> List[Dict[str, Any]]:
    rng = random.Random(seed)
    start = datetime(2024, 1, 1, tzinfo=UTC)
    envelopes: List[Dict[str, Any]] = []
    for i in range(rows):
        if rng.random() < noise_ratio:
            message = rng.choice(_NOISE)
        else:
            message = f"{rng.choice(_PREFIXES)} {rng.choice(_STATEMENTS)}"
        envelopes.append(
            {
                "insertId": f"{seed:04d}-{i:08d}",
                "severity": "INFO",
                "timestamp": (start + timedelta(milliseconds=37 * i)).isoformat(),
                "jsonPayload": {"message": message},
            }
        )
    return envelopes


def _write_capture(path: Path, rows: int, noise_ratio: float, seed: int) -> int:
    envelopes = _generate_envelopes(rows, noise_ratio=noise_ratio, seed=seed)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(envelopes, f, indent=2)
    return len(envelopes)


@app.command()
def main(
    output: Path = typer.Option(
        Path("capture.json"),
        "--output",
        "-o",
        help="Capture file to write.",
    ),
    rows: int = typer.Option(
        1_000,
        "--rows",
        "-r",
        min=0,
        help="Number of log envelopes to generate.",
    ),
    noise_ratio: float = typer.Option(
        0.0,
        "--noise-ratio",
        min=0.0,
        max=1.0,
        help="Fraction of messages carrying no SQL (these fail when replayed).",
    ),
    seed: int = typer.Option(
        42,
        "--seed",
        help="Deterministic RNG seed.",
    ),
) -> None:
    """
    Generate a capture file suitable for `sql-log-replay run --sql-file`.
    """
    start = time.perf_counter()
    written = _write_capture(output, rows=rows, noise_ratio=noise_ratio, seed=seed)
    duration = time.perf_counter() - start
    typer.echo(f"Wrote {written:,} envelopes -> {output} in {duration:.2f}s (seed={seed})")


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)
