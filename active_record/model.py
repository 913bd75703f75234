import asyncio
import json
import logging
import typing
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional, Sequence, Type, TypeVar, Union

from active_record import registry
from active_record.errors import MassAssignmentError, MissingConnectionError, ModelNotFoundError
from active_record.options import ModelOptions, resolve
from active_record.query import QueryProxy
from active_record.types import to_datetime, to_primitive, utcnow

if TYPE_CHECKING:
    from active_record.storages.sqlalchemy import Database


logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound="Model")
Props = Mapping[str, Any]


def _json_default(value: Any) -> Any:
    primitive = to_primitive(value)
    if primitive is value:
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
    return primitive


class ModelMeta(type):
    def __new__(mcs, name: str, bases: tuple, namespace: dict) -> typing.Type:
        cls = super().__new__(mcs, name, bases, namespace)
        cls._meta = resolve(cls, getattr(cls, "_meta", None))
        cls._with_trashed = False
        return cls


class Model(metaclass=ModelMeta):
    """Active record base class, one instance per table row.

    Configuration lives on an inner ``Meta`` class::

        class User(Model):
            class Meta:
                fillable = ["name", "email"]
                hidden = ["password"]

            def set_email(self, value):
                return value.lower()

    Columns are read and written as attributes. A method named ``get_<column>``
    or ``set_<column>`` transforms the value on read or write. Columns shadowed
    by a method or property of the class are reachable with ``model["column"]``.
    """

    _meta: ModelOptions
    _with_trashed: bool

    def __init__(self, props: Optional[Props] = None, fresh: bool = True) -> None:
        self.database()
        props = dict(props or {})
        self._fresh = fresh
        self._original: Dict[str, Any] = {} if fresh else props
        self._props: Dict[str, Any] = dict(self._original)
        # stored rows are taken as they are, only new input goes through guarding and setters
        if fresh:
            self.fill(props)

    @classmethod
    def database(cls) -> "Database":
        database = cls._meta.database or registry.get_instance()
        if database is None:
            raise MissingConnectionError("Connection instance is missing.")
        return database

    @classmethod
    def _new_query(cls, with_trashed: bool = False) -> QueryProxy:
        query = QueryProxy(cls.database()).set_model(cls)
        if cls._meta.soft_deletes and not with_trashed:
            return query.where_null(cls._meta.deleted_at)
        return query

    @classmethod
    def query(cls) -> QueryProxy:
        with_trashed, cls._with_trashed = cls._with_trashed, False
        return cls._new_query(with_trashed)

    @classmethod
    def with_trashed(cls: Type[ModelType]) -> Type[ModelType]:
        cls._with_trashed = True
        return cls

    @classmethod
    def all(cls) -> QueryProxy:
        return cls.query()

    @classmethod
    def first(cls) -> QueryProxy:
        return cls.all().first()

    @classmethod
    def where(cls, *args: Any, **criteria: Any) -> QueryProxy:
        return cls.all().where(*args, **criteria)

    @classmethod
    def find(cls, key: Any) -> QueryProxy:
        if isinstance(key, Mapping):
            return cls.where(key).first()
        return cls.where(cls._meta.primary_key, key).first()

    @classmethod
    async def create(
        cls: Type[ModelType], props: Union[None, Props, Sequence[Props]] = None
    ) -> Union[ModelType, typing.List[ModelType]]:
        if isinstance(props, (list, tuple)):
            return await cls.create_many(props)
        model = cls(props)
        return await model.save()

    @classmethod
    async def create_many(cls: Type[ModelType], rows: Sequence[Props] = ()) -> typing.List[ModelType]:
        # no transaction: inserts that finished before a failure stay in place
        return list(await asyncio.gather(*(cls.create(props) for props in rows)))

    @property
    def original(self) -> Dict[str, Any]:
        return dict(self._original)

    @property
    def props(self) -> Dict[str, Any]:
        return dict(self._props)

    @property
    def is_fresh(self) -> bool:
        return self._fresh

    @property
    def exists(self) -> bool:
        return not self._fresh

    @property
    def trashed(self) -> bool:
        return self._meta.soft_deletes and self._props.get(self._meta.deleted_at) is not None

    def __getattr__(self, key: str) -> Any:
        if key.startswith("_"):
            raise AttributeError(key)
        if key in self.__dict__.get("_props", {}) or key in self._meta.getters:
            return self._read(key)
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {key!r}")

    def __setattr__(self, key: str, value: Any) -> None:
        if key.startswith("_") or hasattr(type(self), key):
            super().__setattr__(key, value)
        else:
            self._write(key, value)

    def __getitem__(self, key: str) -> Any:
        if key not in self._props and key not in self._meta.getters:
            raise KeyError(key)
        return self._read(key)

    def __setitem__(self, key: str, value: Any) -> None:
        self._write(key, value)

    def __contains__(self, key: str) -> bool:
        return key in self._props

    def _read(self, key: str) -> Any:
        value = self._props.get(key)
        if value is not None and self._meta.is_timestamp(key):
            value = to_datetime(value)
        getter = self._meta.getters.get(key)
        if getter is not None:
            return getter(self, value)
        return value

    def _write(self, key: str, value: Any) -> None:
        setter = self._meta.setters.get(key)
        self._props[key] = setter(self, value) if setter is not None else value

    def is_fillable(self, key: str) -> bool:
        if self._fresh and key == self._meta.primary_key:
            return False
        return self._meta.is_fillable(key)

    def fill(self: ModelType, props: Props) -> ModelType:
        for key, value in props.items():
            if self.is_fillable(key):
                self._write(key, value)
            elif self._fresh and self._meta.totally_guarded:
                raise MassAssignmentError(key)
        return self

    def dirty(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self._props.items()
            if key not in self._original or self._original[key] != value
        }

    def is_dirty(self, *keys: str) -> bool:
        changes = self.dirty()
        if not keys:
            return bool(changes)
        return any(key in changes for key in keys)

    def new_query(self) -> QueryProxy:
        return QueryProxy(self.database()).set_model(type(self))

    def _key_query(self) -> QueryProxy:
        primary_key = self._meta.primary_key
        return self.new_query().where(primary_key, self._original.get(primary_key, self._props.get(primary_key)))

    async def save(self: ModelType) -> ModelType:
        changes = self.dirty()
        if self._fresh:
            await self._perform_insert(changes)
        else:
            await self._perform_update(changes)
        return self

    async def update(self: ModelType, props: Optional[Props] = None) -> ModelType:
        if props:
            self.fill(props)
        return await self.save()

    async def _perform_insert(self, changes: Dict[str, Any]) -> None:
        meta = self._meta
        fields: Dict[str, Any] = {}
        if meta.timestamps:
            now = utcnow()
            fields = {meta.created_at: now, meta.updated_at: now}
        fields.update(changes)

        keys = await self.new_query().insert(fields, returning=meta.primary_key)
        self._original = {meta.primary_key: keys[0], **fields}
        self._props = dict(self._original)
        self._fresh = False
        logger.debug("Inserted %s %s=%r", type(self).__name__, meta.primary_key, self._original[meta.primary_key])

    async def _perform_update(self, changes: Dict[str, Any]) -> None:
        meta = self._meta
        fields: Dict[str, Any] = {meta.updated_at: utcnow()} if meta.timestamps else {}
        fields.update(changes)
        if not fields:
            return

        affected = await self._key_query().update(fields)
        if not affected:
            raise ModelNotFoundError(type(self).__name__)
        self._original.update(fields)
        self._props.update(fields)
        logger.debug("Updated %s %s=%r: %s", type(self).__name__, meta.primary_key, self._key(), sorted(fields))

    def _key(self) -> Any:
        return self._props.get(self._meta.primary_key)

    async def destroy(self) -> None:
        if self._meta.soft_deletes:
            await self._perform_update({self._meta.deleted_at: utcnow()})
        else:
            await self.force_delete()

    async def restore(self: ModelType) -> ModelType:
        await self._perform_update({self._meta.deleted_at: None})
        return self

    async def force_delete(self) -> None:
        affected = await self._key_query().delete()
        if not affected:
            raise ModelNotFoundError(type(self).__name__)
        logger.debug("Deleted %s %s=%r", type(self).__name__, self._meta.primary_key, self._key())

    def to_dict(self) -> Dict[str, Any]:
        hidden = self._meta.hidden
        result = {key: self._read(key) for key in self._props if key not in hidden}
        for name in self._meta.append:
            result[name] = getattr(self, name)
        return result

    def to_json(self, **kwargs: Any) -> str:
        return json.dumps(self.to_dict(), default=_json_default, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._meta.primary_key}={self._key()!r}>"
