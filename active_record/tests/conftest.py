from pathlib import Path

import pytest
from _pytest.config.argparsing import Parser
from _pytest.fixtures import SubRequest
from _pytest.monkeypatch import MonkeyPatch

from active_record import registry
from active_record.config import DatabaseSettings
from active_record.storages.sqlalchemy import Database


def pytest_addoption(parser: Parser) -> None:
    parser.addoption("--database-url", action="store", default=None)


@pytest.fixture()
def database_settings(request: SubRequest, tmp_path: Path) -> DatabaseSettings:
    connection_url = request.config.getoption("--database-url")
    if connection_url:
        return DatabaseSettings(connection=connection_url)
    return DatabaseSettings(driver="sqlite", connection=str(tmp_path / "active_record.db"))


@pytest.fixture()
def database(database_settings: DatabaseSettings, monkeypatch: MonkeyPatch) -> Database:
    monkeypatch.setattr(registry, "_instance", None)
    return registry.set_instance(Database(database_settings))
