import uuid
import typing
from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    Numeric,
    String,
    Uuid,
    column,
)
from sqlalchemy.sql.elements import ColumnClause


mapping = {
    bool: Boolean,
    int: Integer,
    float: Float,
    Decimal: Numeric,
    str: String,
    bytes: LargeBinary,
    datetime: DateTime(timezone=True),
    date: Date,
    uuid.UUID: Uuid,
    dict: JSON,
    list: JSON,
}


def convert(arg: typing.Type) -> typing.Any:
    for klass in arg.__mro__:
        try:
            return mapping[klass]
        except KeyError:
            continue
    return None


def typed_column(name: str, value: typing.Any) -> ColumnClause:
    """Column bound with a type guessed from a sample value, untyped for None or unknown types."""
    if value is None:
        return column(name)
    return column(name, convert(type(value)))
