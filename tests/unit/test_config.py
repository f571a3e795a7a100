from __future__ import annotations

import pytest

from sql_log_replay.config import Settings, get_settings, require_connection_fields
from sql_log_replay.errors import ConfigError
from sql_log_replay.infrastructure.db_factory import PoolConfig


def test_get_settings_defaults(clean_env):
    settings = get_settings()

    assert settings.db_host == "localhost"
    assert settings.db_port == 5432
    assert settings.db_sslmode == "disable"
    assert settings.db_user == ""
    assert settings.sql_file == ""
    assert settings.replay_workers is None
    assert settings.replay_verify_connection is True
    assert settings.pool_config() == PoolConfig(
        max_open_connections=70,
        max_idle_connections=8,
        max_lifetime_seconds=30.0,
        max_idle_time_seconds=15.0,
    )


def test_settings_read_environment(clean_env, monkeypatch):
    monkeypatch.setenv("DB_USER", "replayer")
    monkeypatch.setenv("POOL_MAX_OPEN", "5")
    monkeypatch.setenv("POOL_MAX_IDLE", "2")
    monkeypatch.setenv("LOG_JSON", "true")

    settings = get_settings()

    assert settings.db_user == "replayer"
    assert settings.pool_config().max_open_connections == 5
    assert settings.log_json is True


def test_settings_read_env_file(clean_env):
    env_file = clean_env / "replay.env"
    env_file.write_text("DB_NAME=staging\nSQL_FILE=capture.json\n", encoding="utf-8")

    settings = get_settings(str(env_file))

    assert settings.db_name == "staging"
    assert settings.sql_file == "capture.json"


def test_with_overrides_skips_unset_values(clean_env, monkeypatch):
    monkeypatch.setenv("DB_HOST", "db.internal")
    settings = get_settings().with_overrides(db_host=None, db_user="cli-user", db_port=6543)

    assert settings.db_host == "db.internal"
    assert settings.db_user == "cli-user"
    assert settings.db_port == 6543


@pytest.mark.parametrize(
    "fields, message",
    [
        ({}, "Missing user name"),
        ({"db_user": "u"}, "Missing password"),
        ({"db_user": "u", "db_password": "p"}, "Missing database name"),
        ({"db_user": "u", "db_password": "p", "db_name": "d"}, "Missing sql file"),
    ],
)
def test_require_connection_fields_reports_first_missing(clean_env, fields, message):
    settings = Settings().with_overrides(**fields)

    with pytest.raises(ConfigError, match=message) as excinfo:
        require_connection_fields(settings)
    assert excinfo.value.exit_code == 2


def test_require_connection_fields_accepts_complete_settings(clean_env):
    settings = Settings().with_overrides(
        db_user="u", db_password="p", db_name="d", sql_file="capture.json"
    )
    require_connection_fields(settings)


def test_dsn_carries_connection_fields(clean_env):
    settings = Settings().with_overrides(
        db_host="db", db_port=6543, db_user="u", db_password="p w", db_name="d"
    )

    dsn = settings.dsn()

    assert "host=db" in dsn
    assert "port=6543" in dsn
    assert "dbname=d" in dsn
    assert "password='p w'" in dsn
    assert "sslmode=disable" in dsn


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_open_connections": 0},
        {"max_open_connections": 4, "max_idle_connections": 5},
        {"max_idle_connections": -1},
        {"max_lifetime_seconds": 0},
        {"max_idle_time_seconds": -1.0},
    ],
)
def test_pool_config_rejects_inconsistent_limits(kwargs):
    with pytest.raises(ConfigError):
        PoolConfig(**kwargs)


def test_invalid_pool_settings_surface_as_config_error(clean_env, monkeypatch):
    monkeypatch.setenv("POOL_MAX_OPEN", "2")
    monkeypatch.setenv("POOL_MAX_IDLE", "3")

    with pytest.raises(ConfigError):
        get_settings().pool_config()
