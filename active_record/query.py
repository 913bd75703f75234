from typing import TYPE_CHECKING, Any, Generator, Iterable, Mapping, Optional, Type

from active_record.errors import ModelNotFoundError, QueryError
from active_record.storages.sqlalchemy.builder import TableBuilder, Values

if TYPE_CHECKING:
    from active_record.model import Model
    from active_record.storages.sqlalchemy import Database


class QueryProxy:
    """Fluent wrapper around a ``TableBuilder`` that turns rows into models.

    Table selection (``table``, ``from_``, ``into``, ``set_model``) is handled by
    the proxy itself; every other chaining call is delegated to the builder and
    returns the proxy.
    """

    def __init__(self, database: "Database") -> None:
        self._database = database
        self._builder: Optional[TableBuilder] = None
        self._model: Optional[Type["Model"]] = None

    @property
    def model(self) -> Optional[Type["Model"]]:
        return self._model

    @property
    def builder(self) -> TableBuilder:
        if self._builder is None:
            raise QueryError("No table selected")
        return self._builder

    def set_model(self, model: Type["Model"]) -> "QueryProxy":
        self._model = model
        return self.table(model._meta.table)

    def table(self, name: str) -> "QueryProxy":
        self._builder = self._database.table(name)
        return self

    from_ = table
    into = table

    def _chain(self, builder: TableBuilder) -> "QueryProxy":
        self._builder = builder
        return self

    def where(self, *args: Any, **criteria: Any) -> "QueryProxy":
        return self._chain(self.builder.where(*args, **criteria))

    def where_not(self, *args: Any, **criteria: Any) -> "QueryProxy":
        return self._chain(self.builder.where_not(*args, **criteria))

    def where_in(self, name: str, values: Iterable[Any]) -> "QueryProxy":
        return self._chain(self.builder.where_in(name, values))

    def where_null(self, name: str) -> "QueryProxy":
        return self._chain(self.builder.where_null(name))

    def where_not_null(self, name: str) -> "QueryProxy":
        return self._chain(self.builder.where_not_null(name))

    def select(self, *columns: str) -> "QueryProxy":
        return self._chain(self.builder.select(*columns))

    def order_by(self, name: str, direction: str = "asc") -> "QueryProxy":
        return self._chain(self.builder.order_by(name, direction))

    def limit(self, limit: int) -> "QueryProxy":
        return self._chain(self.builder.limit(limit))

    def offset(self, offset: int) -> "QueryProxy":
        return self._chain(self.builder.offset(offset))

    def first(self) -> "QueryProxy":
        return self._chain(self.builder.first())

    def count(self) -> "QueryProxy":
        return self._chain(self.builder.count())

    def insert(self, values: Values, returning: Optional[str] = None) -> "QueryProxy":
        return self._chain(self.builder.insert(values, returning))

    def update(self, values: Mapping[str, Any]) -> "QueryProxy":
        return self._chain(self.builder.update(values))

    def delete(self) -> "QueryProxy":
        return self._chain(self.builder.delete())

    def _to_model(self, result: Any) -> Any:
        if isinstance(result, list):
            return [self._to_model(row) for row in result]
        if isinstance(result, Mapping):
            return self._model(result, fresh=False)
        return result

    async def execute(self) -> Any:
        builder = self.builder
        result = await builder
        if self._model is None:
            return result
        if builder.single and not result:
            raise ModelNotFoundError(self._model.__name__)
        return self._to_model(result)

    def __await__(self) -> Generator[Any, None, Any]:
        return self.execute().__await__()

    def __repr__(self) -> str:
        target = self._model.__name__ if self._model else None
        table = self._builder.table_name if self._builder else None
        return f"<QueryProxy table={table!r} model={target}>"
