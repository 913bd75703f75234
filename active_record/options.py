import re
import typing
from typing import Any, Callable, Dict, Optional, Tuple, Type

import attr
import inflection


CREATED_AT = "created_at"
UPDATED_AT = "updated_at"
DELETED_AT = "deleted_at"
WILDCARD = "*"

Hook = Callable[[Any, Any], Any]

_HOOK_NAME = re.compile(r"^(get|set)_(?!_)(\w+)$")


def _as_tuple(value: typing.Union[None, str, typing.Iterable[str]]) -> Tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def default_table_name(model_name: str) -> str:
    return inflection.pluralize(inflection.underscore(model_name))


@attr.s(auto_attribs=True, frozen=True)
class ModelOptions:
    table: str
    primary_key: str = "id"
    timestamps: bool = True
    created_at: str = CREATED_AT
    updated_at: str = UPDATED_AT
    deleted_at: str = DELETED_AT
    soft_deletes: bool = True
    fillable: Tuple[str, ...] = attr.ib(default=(), converter=_as_tuple)
    guarded: Tuple[str, ...] = attr.ib(default=(WILDCARD,), converter=_as_tuple)
    unguarded: bool = False
    hidden: Tuple[str, ...] = attr.ib(default=(), converter=_as_tuple)
    append: Tuple[str, ...] = attr.ib(default=(), converter=_as_tuple)
    database: Optional[Any] = attr.ib(default=None, eq=False, repr=False)
    getters: Dict[str, Hook] = attr.ib(factory=dict, eq=False, repr=False)
    setters: Dict[str, Hook] = attr.ib(factory=dict, eq=False, repr=False)

    @property
    def timestamp_columns(self) -> Tuple[str, str, str]:
        return self.created_at, self.updated_at, self.deleted_at

    @property
    def totally_guarded(self) -> bool:
        return not self.unguarded and not self.fillable and self.guarded == (WILDCARD,)

    def is_timestamp(self, key: str) -> bool:
        return self.timestamps and key in self.timestamp_columns

    def is_guarded(self, key: str) -> bool:
        return key in self.guarded or WILDCARD in self.guarded

    def is_fillable(self, key: str) -> bool:
        if self.unguarded:
            return True
        if key in self.fillable:
            return True
        if self.is_guarded(key):
            return False
        return not self.fillable


# Options a model may set on its inner ``Meta`` class, all inherited by subclasses except ``table``
CONFIGURABLE = tuple(
    field.name for field in attr.fields(ModelOptions) if field.name not in ("table", "getters", "setters")
)


def discover_hooks(model_cls: Type) -> Tuple[Dict[str, Hook], Dict[str, Hook]]:
    """Collect ``get_<column>`` / ``set_<column>`` methods, subclasses overriding their bases."""
    getters: Dict[str, Hook] = {}
    setters: Dict[str, Hook] = {}
    for klass in reversed(model_cls.__mro__):
        for name, value in vars(klass).items():
            match = _HOOK_NAME.match(name)
            if not match or not callable(value):
                continue
            kind, column = match.groups()
            (getters if kind == "get" else setters)[column] = value
    return getters, setters


def resolve(model_cls: Type, parent: Optional[ModelOptions] = None) -> ModelOptions:
    meta = model_cls.__dict__.get("Meta")
    values: Dict[str, Any] = {}
    if parent is not None:
        values = {name: getattr(parent, name) for name in CONFIGURABLE}

    table = None
    if meta is not None:
        unknown = {name for name in vars(meta) if not name.startswith("__")} - set(CONFIGURABLE) - {"table"}
        if unknown:
            raise TypeError(f"Unknown Meta options on {model_cls.__name__} - {', '.join(sorted(unknown))}")
        values.update({name: getattr(meta, name) for name in CONFIGURABLE if hasattr(meta, name)})
        table = getattr(meta, "table", None)

    getters, setters = discover_hooks(model_cls)
    return ModelOptions(
        table=table or default_table_name(model_cls.__name__), getters=getters, setters=setters, **values
    )
