from active_record.config import DatabaseSettings
from active_record.errors import MassAssignmentError, MissingConnectionError, ModelNotFoundError, ORMError, QueryError
from active_record.model import Model
from active_record.query import QueryProxy
from active_record.registry import close_instance, create_instance, get_instance, set_instance
from active_record.storages.sqlalchemy import Database


# TODO: relations (has_one / has_many) on top of QueryProxy, eager loading needs a second query per relation

__all__ = [
    "Database",
    "DatabaseSettings",
    "MassAssignmentError",
    "MissingConnectionError",
    "Model",
    "ModelNotFoundError",
    "ORMError",
    "QueryError",
    "QueryProxy",
    "close_instance",
    "create_instance",
    "get_instance",
    "set_instance",
]
