import enum
import logging
import operator
import typing
from typing import Any, Callable, Dict, Generator, List, Mapping, Optional, Sequence, Tuple, Union

import attr
import sqlalchemy as sa
from sqlalchemy.engine import CursorResult, Dialect
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy.sql import Executable
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.expression import TableClause

from active_record.errors import QueryError
from active_record.storages.sqlalchemy import native_type_to_column


logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Values = Union[Mapping[str, Any], Sequence[Mapping[str, Any]]]


class Operation(enum.Enum):
    SELECT = "select"
    COUNT = "count"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


operators: Dict[str, Callable[[sa.ColumnClause, Any], ColumnElement]] = {
    "=": operator.eq,
    "!=": operator.ne,
    "<>": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "like": lambda col, value: col.like(value),
    "not like": lambda col, value: col.not_like(value),
    "ilike": lambda col, value: col.ilike(value),
    "in": lambda col, value: col.in_(value),
    "not in": lambda col, value: col.not_in(value),
    "is": lambda col, value: col.is_(value),
    "is not": lambda col, value: col.is_not(value),
}


def _equals(name: str, value: Any) -> ColumnElement:
    col = sa.column(name)
    if value is None:
        return col.is_(None)
    return col == value


@attr.s(auto_attribs=True, frozen=True, eq=False)
class TableBuilder:
    """Chainable statement builder bound to one table.

    Every chaining method returns a new builder. Awaiting the builder runs the
    statement in its own transaction and resolves to:

    * a list of row dicts for a select, or a single row dict / ``None`` after ``first()``,
    * an integer for ``count()``,
    * a list of generated keys for an insert with ``returning``, the affected row count otherwise.
    """

    engine: AsyncEngine
    table_name: str
    operation: Operation = Operation.SELECT
    criteria: Tuple[ColumnElement, ...] = ()
    columns: Tuple[str, ...] = ()
    ordering: Tuple[ColumnElement, ...] = ()
    row_limit: Optional[int] = None
    row_offset: Optional[int] = None
    single: bool = False
    values: Tuple[Row, ...] = ()
    returning: Optional[str] = None

    def _where(self, *clauses: ColumnElement) -> "TableBuilder":
        return attr.evolve(self, criteria=self.criteria + clauses)

    def where(self, *args: Any, **criteria: Any) -> "TableBuilder":
        if len(args) == 1 and isinstance(args[0], Mapping):
            criteria = {**args[0], **criteria}
        elif len(args) == 2:
            return self._where(_equals(*args))._where(*(_equals(k, v) for k, v in criteria.items()))
        elif len(args) == 3:
            name, op, value = args
            try:
                clause = operators[op.lower()](sa.column(name), value)
            except KeyError:
                raise QueryError(f"Unsupported operator - {op}")
            return self._where(clause)._where(*(_equals(k, v) for k, v in criteria.items()))
        elif args:
            raise QueryError(f"Unsupported where arguments - {args!r}")
        return self._where(*(_equals(name, value) for name, value in criteria.items()))

    def where_not(self, *args: Any, **criteria: Any) -> "TableBuilder":
        negated = self.where(*args, **criteria)
        added = negated.criteria[len(self.criteria) :]
        if not added:
            return self
        return self._where(sa.not_(sa.and_(*added)))

    def where_in(self, name: str, values: typing.Iterable[Any]) -> "TableBuilder":
        return self._where(sa.column(name).in_(list(values)))

    def where_null(self, name: str) -> "TableBuilder":
        return self._where(sa.column(name).is_(None))

    def where_not_null(self, name: str) -> "TableBuilder":
        return self._where(sa.column(name).is_not(None))

    def select(self, *columns: str) -> "TableBuilder":
        return attr.evolve(self, columns=self.columns + columns)

    def order_by(self, name: str, direction: str = "asc") -> "TableBuilder":
        if direction.lower() not in ("asc", "desc"):
            raise QueryError(f"Unsupported order direction - {direction}")
        col = sa.column(name)
        return attr.evolve(self, ordering=self.ordering + (col.desc() if direction.lower() == "desc" else col.asc(),))

    def limit(self, limit: int) -> "TableBuilder":
        return attr.evolve(self, row_limit=limit)

    def offset(self, offset: int) -> "TableBuilder":
        return attr.evolve(self, row_offset=offset)

    def first(self) -> "TableBuilder":
        return attr.evolve(self, operation=Operation.SELECT, single=True, row_limit=1)

    def count(self) -> "TableBuilder":
        return attr.evolve(self, operation=Operation.COUNT, single=False)

    def insert(self, values: Values, returning: Optional[str] = None) -> "TableBuilder":
        rows = (dict(values),) if isinstance(values, Mapping) else tuple(dict(row) for row in values)
        return attr.evolve(self, operation=Operation.INSERT, values=rows, returning=returning, single=False)

    def update(self, values: Mapping[str, Any]) -> "TableBuilder":
        if not values:
            raise QueryError("Empty update")
        return attr.evolve(self, operation=Operation.UPDATE, values=(dict(values),), single=False)

    def delete(self) -> "TableBuilder":
        return attr.evolve(self, operation=Operation.DELETE, single=False)

    def _table(self, rows: Sequence[Row] = ()) -> TableClause:
        samples: Dict[str, Any] = {}
        for row in rows:
            for name, value in row.items():
                if samples.get(name) is None:
                    samples[name] = value
        return sa.table(
            self.table_name, *(native_type_to_column.typed_column(name, value) for name, value in samples.items())
        )

    def to_statement(self, dialect: Optional[Dialect] = None) -> Executable:
        if self.operation is Operation.INSERT:
            statement = sa.insert(self._table(self.values))
            if len(self.values) == 1 and self.values[0]:
                statement = statement.values(self.values[0])
            elif len(self.values) > 1:
                statement = statement.values(list(self.values))
            if self.returning and (dialect is None or dialect.insert_returning):
                statement = statement.returning(sa.column(self.returning))
            return statement

        if self.operation is Operation.UPDATE:
            statement = sa.update(self._table(self.values)).values(self.values[0])
            return statement.where(*self.criteria) if self.criteria else statement

        if self.operation is Operation.DELETE:
            statement = sa.delete(self._table())
            return statement.where(*self.criteria) if self.criteria else statement

        if self.operation is Operation.COUNT:
            statement = sa.select(sa.func.count()).select_from(self._table())
        else:
            selected = [sa.column(name) for name in self.columns] or [sa.text("*")]
            statement = sa.select(*selected).select_from(self._table())
        if self.criteria:
            statement = statement.where(*self.criteria)
        if self.ordering and self.operation is Operation.SELECT:
            statement = statement.order_by(*self.ordering)
        if self.row_limit is not None and self.operation is Operation.SELECT:
            statement = statement.limit(self.row_limit)
        if self.row_offset is not None and self.operation is Operation.SELECT:
            statement = statement.offset(self.row_offset)
        return statement

    def _collect(self, result: CursorResult) -> Any:
        if self.operation is Operation.SELECT:
            rows: List[Row] = [dict(row._mapping) for row in result]
            if self.single:
                return rows[0] if rows else None
            return rows

        if self.operation is Operation.COUNT:
            return result.scalar_one()

        if self.operation is Operation.INSERT and self.returning:
            if result.returns_rows:
                return list(result.scalars())
            return [result.lastrowid]

        return result.rowcount

    async def execute(self) -> Any:
        async with self.engine.begin() as connection:
            statement = self.to_statement(connection.dialect)
            logger.debug("Executing %s on %s", self.operation.value, self.table_name)
            result = await connection.execute(statement)
            return self._collect(result)

    def __await__(self) -> Generator[Any, None, Any]:
        return self.execute().__await__()
