import logging
from typing import Any, Mapping, Optional, Union

from active_record.config import DatabaseSettings, get_settings
from active_record.storages.sqlalchemy import Database


logger = logging.getLogger(__name__)

# TODO: hold the active database in a contextvar so concurrent tasks and tests can each bind their own
_instance: Optional[Database] = None


def create_instance(config: Optional[Union[DatabaseSettings, Mapping[str, Any]]] = None) -> Database:
    if config is None:
        settings = get_settings()
    elif isinstance(config, DatabaseSettings):
        settings = config
    else:
        settings = DatabaseSettings(**config)
    return set_instance(Database(settings))


def set_instance(database: Database) -> Database:
    global _instance
    if not isinstance(database, Database):
        raise TypeError("An instance of Database needs to be used.")
    _instance = database
    logger.info("Registered %s database instance", database.client)
    return database


def get_instance() -> Optional[Database]:
    return _instance


async def close_instance() -> None:
    global _instance
    if _instance is not None:
        await _instance.dispose()
    _instance = None
