from pathlib import Path

import pytest
from _pytest.monkeypatch import MonkeyPatch
from pydantic import ValidationError

from active_record import MissingConnectionError, registry
from active_record.config import ConnectionSettings, DatabaseSettings, PoolSettings
from active_record.storages.sqlalchemy import Database, build_url


@pytest.fixture(autouse=True)
def empty_registry(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(registry, "_instance", None)


def test_create_instance_registers_database(tmp_path: Path) -> None:
    database = registry.create_instance({"driver": "sqlite", "connection": str(tmp_path / "app.db")})

    assert registry.get_instance() is database
    assert database.client == "sqlite+aiosqlite"
    assert database.url.database == str(tmp_path / "app.db")


def test_create_instance_accepts_settings(tmp_path: Path) -> None:
    settings = DatabaseSettings(connection=str(tmp_path / "app.db"), echo=True)

    database = registry.create_instance(settings)

    assert database.settings is settings
    assert database.engine.sync_engine.echo is True


def test_missing_connection_is_reported_immediately() -> None:
    with pytest.raises(MissingConnectionError):
        registry.create_instance({"driver": "sqlite"})

    assert registry.get_instance() is None


def test_unknown_driver_is_rejected() -> None:
    with pytest.raises(ValidationError):
        registry.create_instance({"driver": "oracle", "connection": "app"})


def test_set_instance_requires_database() -> None:
    with pytest.raises(TypeError):
        registry.set_instance(object())


@pytest.mark.asyncio
async def test_close_instance_disposes_and_clears(tmp_path: Path) -> None:
    registry.create_instance({"connection": str(tmp_path / "app.db")})

    await registry.close_instance()

    assert registry.get_instance() is None


@pytest.mark.parametrize(
    "settings, expected",
    [
        (DatabaseSettings(connection="app.db"), "sqlite+aiosqlite:///app.db"),
        (
            DatabaseSettings(
                driver="postgres",
                connection=ConnectionSettings(host="db", port=5433, user="app", password="s3cret", database="main"),
            ),
            "postgresql+asyncpg://app:s3cret@db:5433/main",
        ),
        (
            DatabaseSettings(driver="mysql", connection={"host": "db", "user": "root", "database": "main"}),
            "mysql+aiomysql://root@db/main",
        ),
        (DatabaseSettings(driver="postgres", connection="postgresql+asyncpg://u@h/d"), "postgresql+asyncpg://u@h/d"),
        (DatabaseSettings(driver="postgres", connection="postgresql://u:p@h/db"), "postgresql+asyncpg://u:p@h/db"),
        (DatabaseSettings(connection="sqlite:///x.db"), "sqlite+aiosqlite:///x.db"),
        (DatabaseSettings(driver="mysql", connection="mysql://root@db/main"), "mysql+aiomysql://root@db/main"),
    ],
)
def test_build_url(settings: DatabaseSettings, expected: str) -> None:
    assert build_url(settings).render_as_string(hide_password=False) == expected


def test_database_accepts_plain_sqlite_url(tmp_path: Path) -> None:
    database = Database(DatabaseSettings(connection=f"sqlite:///{tmp_path / 'app.db'}"))

    assert database.engine.url.drivername == "sqlite+aiosqlite"


def test_pool_settings_only_pass_what_is_set() -> None:
    assert PoolSettings().engine_options() == {}
    assert PoolSettings(size=5, timeout=2.5, pre_ping=True).engine_options() == {
        "pool_size": 5,
        "pool_timeout": 2.5,
        "pool_pre_ping": True,
    }


def test_settings_load_from_environment(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setenv("DB_DRIVER", "postgres")
    monkeypatch.setenv("DB_ECHO", "true")
    monkeypatch.setenv("DB_POOL__SIZE", "7")

    settings = DatabaseSettings()

    assert settings.driver == "postgres"
    assert settings.echo is True
    assert settings.pool.size == 7


def test_database_exposes_table_builders(tmp_path: Path) -> None:
    database = Database(DatabaseSettings(connection=str(tmp_path / "app.db")))

    builder = database.table("users")
    query = database.query("users")

    assert builder.table_name == "users"
    assert query.model is None
    assert query.builder.table_name == "users"
