import logging
from typing import TYPE_CHECKING, Any, Dict

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from active_record.config import ConnectionSettings, DatabaseSettings
from active_record.errors import MissingConnectionError
from active_record.storages.sqlalchemy.builder import TableBuilder

if TYPE_CHECKING:
    from active_record.query import QueryProxy


logger = logging.getLogger(__name__)

driver_mappings = {"sqlite": "sqlite+aiosqlite", "postgres": "postgresql+asyncpg", "mysql": "mysql+aiomysql"}


def build_url(settings: DatabaseSettings) -> URL:
    client = driver_mappings[settings.driver]
    connection = settings.connection
    if isinstance(connection, ConnectionSettings):
        return URL.create(
            client,
            username=connection.user,
            password=connection.password,
            host=connection.host,
            port=connection.port,
            database=connection.database,
        )
    if "://" in connection:
        url = make_url(connection)
        # a plain scheme such as postgresql:// would load a sync DBAPI, the configured driver decides
        if "+" not in url.drivername:
            url = url.set(drivername=client)
        return url
    # a bare string is a file for SQLite, a local database name otherwise
    return URL.create(client, database=connection)


class Database:
    def __init__(self, settings: DatabaseSettings) -> None:
        if not settings.connection:
            raise MissingConnectionError()
        self.settings = settings
        self.client = driver_mappings[settings.driver]
        self.url = build_url(settings)
        self.engine: AsyncEngine = create_async_engine(self.url, **self._engine_options())
        logger.debug("Created %s engine for %s", self.client, self.url.render_as_string(hide_password=True))

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.settings.echo}
        options.update(self.settings.pool.engine_options())
        return options

    def table(self, name: str) -> TableBuilder:
        return TableBuilder(self.engine, name)

    def query(self, name: str) -> "QueryProxy":
        from active_record.query import QueryProxy

        return QueryProxy(self).table(name)

    async def dispose(self) -> None:
        await self.engine.dispose()
        logger.info("Disposed %s engine", self.client)


__all__ = ["Database", "TableBuilder", "build_url", "driver_mappings"]
