from __future__ import annotations

import sys
from typing import NoReturn, Optional

import typer
from rich.console import Console

from sql_log_replay.config import Settings, get_settings, require_connection_fields
from sql_log_replay.errors import ReplayError
from sql_log_replay.executor import run_replay
from sql_log_replay.extractor import extract
from sql_log_replay.infrastructure.db_factory import open_pool, redact_dsn, verify_connection
from sql_log_replay.reporter import print_statements, print_summary
from sql_log_replay.utils.logging import configure_logging, get_logger
from sql_log_replay.utils.profiler import profile_block

app = typer.Typer(help="Replay SQL statements harvested from JSON log captures.")

log = get_logger(__name__)


def _env_file_option():
    return typer.Option(None, "--env-file", help="Env file to load settings from (default: .env).")


def _fail(error: ReplayError) -> NoReturn:
    typer.echo(f"Error: {error}", err=True)
    raise typer.Exit(code=error.exit_code)


def _load_settings(env_file: Optional[str], **overrides) -> Settings:
    settings = get_settings(env_file).with_overrides(**overrides)
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    return settings


@app.command()
def info(env_file: Optional[str] = _env_file_option()) -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings(env_file)
    try:
        pool = settings.pool_config()
    except ReplayError as exc:
        _fail(exc)
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} "
        f"password={'***' if settings.db_password else '<unset>'} "
        f"sslmode={settings.db_sslmode} | sql_file={settings.sql_file or '<unset>'}"
    )
    typer.echo(
        f"pool max_open={pool.max_open_connections} max_idle={pool.max_idle_connections} "
        f"max_lifetime={pool.max_lifetime_seconds:g}s max_idle_time={pool.max_idle_time_seconds:g}s "
        f"| workers={settings.replay_workers or pool.max_open_connections}"
    )


@app.command("extract")
def extract_command(
    sql_file: Optional[str] = typer.Option(
        None, "--sql-file", "--sql_file", "-f", help="JSON log capture to read."
    ),
    env_file: Optional[str] = _env_file_option(),
) -> None:
    """
    Print the statements extracted from a capture without touching a database.
    """
    settings = _load_settings(env_file, sql_file=sql_file)
    if not settings.sql_file:
        typer.echo("Error: Missing sql file", err=True)
        raise typer.Exit(code=2)

    try:
        entries = extract(settings.sql_file)
    except ReplayError as exc:
        _fail(exc)
    print_statements(Console(), entries)


@app.command()
def run(
    host: Optional[str] = typer.Option(None, "--host", help="Database host name."),
    port: Optional[int] = typer.Option(None, "--port", help="Database port."),
    user: Optional[str] = typer.Option(None, "--user", help="Database user name."),
    password: Optional[str] = typer.Option(None, "--password", help="Database password."),
    dbname: Optional[str] = typer.Option(None, "--dbname", help="Database name."),
    sslmode: Optional[str] = typer.Option(None, "--sslmode", help="Database sslmode."),
    sql_file: Optional[str] = typer.Option(
        None, "--sql-file", "--sql_file", "-f", help="JSON log capture to replay."
    ),
    workers: Optional[int] = typer.Option(
        None, "--workers", "-w", min=1, help="Worker threads (default: pool max size)."
    ),
    ping: Optional[bool] = typer.Option(
        None, "--ping/--no-ping", help="Check the database is reachable before replaying."
    ),
    json_logs: Optional[bool] = typer.Option(
        None, "--json-logs/--text-logs", help="Emit logs as JSON on stderr."
    ),
    env_file: Optional[str] = _env_file_option(),
) -> None:
    """
    Extract statements from a capture and replay them concurrently.
    """
    settings = _load_settings(
        env_file,
        db_host=host,
        db_port=port,
        db_user=user,
        db_password=password,
        db_name=dbname,
        db_sslmode=sslmode,
        sql_file=sql_file,
        replay_workers=workers,
        replay_verify_connection=ping,
        log_json=json_logs,
    )
    console = Console()

    try:
        require_connection_fields(settings)
        pool_config = settings.pool_config()
        dsn = settings.dsn()
        entries = extract(settings.sql_file)
    except ReplayError as exc:
        _fail(exc)

    with profile_block("replay") as stats:
        try:
            if settings.replay_verify_connection:
                verify_connection(dsn, connect_timeout=settings.db_connect_timeout_seconds)
            pool = open_pool(
                dsn, pool_config, acquire_timeout=settings.pool_acquire_timeout_seconds
            )
        except ReplayError as exc:
            _fail(exc)

        try:
            outcome = run_replay(
                entries, pool, workers=settings.replay_workers, console=console
            )
        finally:
            pool.close()

    print_summary(console, outcome, stats.elapsed_ms, stats.peak_rss_bytes)

    if not outcome.ok:
        log.error(
            "Replay finished with failures",
            extra={
                "dsn": redact_dsn(dsn),
                "failed": outcome.failure_count,
                "succeeded": outcome.succeeded,
            },
        )
        typer.echo(f"Error: {outcome.first_error}", err=True)
        raise typer.Exit(code=outcome.first_error.exit_code)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
