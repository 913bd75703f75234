import re
import typing
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from functools import singledispatch

_ZULU = re.compile(r"[zZ]$")
_UTC_OFFSET = re.compile(r"(\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?[+-]\d{2})(\d{2})$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@singledispatch
def to_datetime(argument: typing.Any) -> typing.Any:
    raise TypeError(f"Can not convert {type(argument).__name__} to datetime")


@to_datetime.register(datetime)
def _(argument: datetime) -> datetime:
    return argument


@to_datetime.register(date)
def _(argument: date) -> datetime:
    return datetime.combine(argument, time.min)


@to_datetime.register(str)
def _(argument: str) -> datetime:
    # SQLite hands back whatever was stored, usually "YYYY-MM-DD HH:MM:SS[.ffffff]"
    # fromisoformat before 3.11 accepts neither a "Z" suffix nor a "+HHMM" offset
    return datetime.fromisoformat(_UTC_OFFSET.sub(r"\1:\2", _ZULU.sub("+00:00", argument.strip())))


@to_datetime.register(int)
@to_datetime.register(float)
def _(argument: typing.Union[int, float]) -> datetime:
    return datetime.fromtimestamp(argument, tz=timezone.utc)


@singledispatch
def to_primitive(argument: typing.Any) -> typing.Any:
    return argument


@to_primitive.register(uuid.UUID)
@to_primitive.register(Decimal)
def _(argument: typing.Union[uuid.UUID, Decimal]) -> str:
    return str(argument)


@to_primitive.register(date)
def _(argument: date) -> str:
    return argument.isoformat()


@to_primitive.register(bytes)
def _(argument: bytes) -> str:
    return argument.decode("utf-8", errors="replace")
