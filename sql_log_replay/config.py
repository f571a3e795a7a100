"""
Configuration settings for SQL Log Replay.

Uses Pydantic Settings to load environment variables (and an optional env
file) for the target database, the capture file, pool sizing and logging.
Command-line flags override these values through ``Settings.with_overrides``.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from sql_log_replay.errors import ConfigError
from sql_log_replay.infrastructure.db_factory import (
    DEFAULT_MAX_IDLE_CONNECTIONS,
    DEFAULT_MAX_IDLE_TIME_SECONDS,
    DEFAULT_MAX_LIFETIME_SECONDS,
    DEFAULT_MAX_OPEN_CONNECTIONS,
    PoolConfig,
    build_dsn,
)


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("", alias="DB_USER")
    db_password: str = Field("", alias="DB_PASSWORD")
    db_name: str = Field("", alias="DB_NAME")
    db_sslmode: str = Field("disable", alias="DB_SSLMODE")
    db_connect_timeout_seconds: int = Field(10, alias="DB_CONNECT_TIMEOUT_SECONDS")

    # Capture
    sql_file: str = Field("", alias="SQL_FILE")

    # Pool
    pool_max_open: int = Field(DEFAULT_MAX_OPEN_CONNECTIONS, alias="POOL_MAX_OPEN")
    pool_max_idle: int = Field(DEFAULT_MAX_IDLE_CONNECTIONS, alias="POOL_MAX_IDLE")
    pool_max_lifetime_seconds: float = Field(
        DEFAULT_MAX_LIFETIME_SECONDS, alias="POOL_MAX_LIFETIME_SECONDS"
    )
    pool_max_idle_time_seconds: float = Field(
        DEFAULT_MAX_IDLE_TIME_SECONDS, alias="POOL_MAX_IDLE_TIME_SECONDS"
    )
    pool_acquire_timeout_seconds: float = Field(30.0, alias="POOL_ACQUIRE_TIMEOUT_SECONDS")

    # Replay
    replay_workers: Optional[int] = Field(None, alias="REPLAY_WORKERS")
    replay_verify_connection: bool = Field(True, alias="REPLAY_VERIFY_CONNECTION")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    def with_overrides(self, **values: Any) -> "Settings":
        """
        Return a copy with the given field values applied.

        ``None`` values are skipped so unset CLI flags fall back to the
        environment.
        """
        update = {key: value for key, value in values.items() if value is not None}
        return self.model_copy(update=update)

    def pool_config(self) -> PoolConfig:
        return PoolConfig(
            max_open_connections=self.pool_max_open,
            max_idle_connections=self.pool_max_idle,
            max_lifetime_seconds=self.pool_max_lifetime_seconds,
            max_idle_time_seconds=self.pool_max_idle_time_seconds,
        )

    def dsn(self) -> str:
        return build_dsn(
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            password=self.db_password,
            dbname=self.db_name,
            sslmode=self.db_sslmode,
        )


def require_connection_fields(settings: Settings) -> None:
    """
    Fail fast when a mandatory value is missing.

    Checked in a fixed order so the first missing field is the one reported.
    """
    if not settings.db_user:
        raise ConfigError("Missing user name")
    if not settings.db_password:
        raise ConfigError("Missing password")
    if not settings.db_name:
        raise ConfigError("Missing database name")
    if not settings.sql_file:
        raise ConfigError("Missing sql file")


@lru_cache(maxsize=4)
def get_settings(env_file: Optional[str] = None) -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.

    ``env_file`` replaces the default ``.env`` lookup when given.
    """
    if env_file is None:
        return Settings()
    return Settings(_env_file=env_file)


__all__ = ["Settings", "get_settings", "require_connection_fields"]
