"""Chainable query builder over the collection tables.

The builder accumulates one operation (select, insert, update or delete),
its predicates, ordering and range, and runs them in a single transaction
on ``execute()``. Failures never raise out of ``execute()``: they are
returned as ``QueryResult.error``.

Example:
    result = await (
        client.table("eco_zones")
        .select("*", count="exact")
        .eq("status", "Published")
        .order("created_at", ascending=False)
        .range(0, 9)
        .execute()
    )
"""

import uuid
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Literal

from sqlalchemy import ColumnElement, Table, delete, false, func, insert, or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from opsdesk.core.filters import AnyOf, Clause, FilterOperator, Predicate
from opsdesk.core.logging import get_logger
from opsdesk.domain.entities.query_result import QueryError, QueryResult

logger = get_logger(__name__)

Operation = Literal["select", "insert", "update", "delete"]


class QueryCompileError(Exception):
    """Raised while compiling a query that references unknown columns."""

    def __init__(self, message: str, code: str) -> None:
        self.code = code
        super().__init__(message)


class QueryBuilder:
    """Builds and executes one query against a collection table.

    Args:
        session_factory: Factory for async sessions.
        table: SQLAlchemy table the query targets, or None if the name is unknown.
        table_name: Requested table name (used in error messages).
        primary_key: Name of the identifier column.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        table: Table | None,
        table_name: str,
        primary_key: str = "id",
    ) -> None:
        self._session_factory = session_factory
        self._table = table
        self._table_name = table_name
        self._primary_key = primary_key
        self._operation: Operation = "select"
        self._columns: tuple[str, ...] = ()
        self._count: str | None = None
        self._rows: list[dict[str, Any]] = []
        self._patch: dict[str, Any] = {}
        self._clauses: list[Clause] = []
        self._order: list[tuple[str, bool]] = []
        self._range: tuple[int, int] | None = None
        self._limit: int | None = None
        self._single = False

    # Operations

    def select(self, columns: str = "*", count: str | None = None) -> "QueryBuilder":
        """Select rows.

        Args:
            columns: "*" or a comma-separated column list.
            count: "exact" to also count all rows matching the predicates.
        """
        self._operation = "select"
        if columns.strip() != "*":
            self._columns = tuple(c.strip() for c in columns.split(",") if c.strip())
        self._count = count
        return self

    def insert(self, rows: Mapping[str, Any] | Sequence[Mapping[str, Any]]) -> "QueryBuilder":
        """Insert one or more rows; rows without an id get a generated one."""
        self._operation = "insert"
        if isinstance(rows, Mapping):
            rows = [rows]
        self._rows = [dict(row) for row in rows]
        return self

    def update(self, patch: Mapping[str, Any]) -> "QueryBuilder":
        self._operation = "update"
        self._patch = dict(patch)
        return self

    def delete(self) -> "QueryBuilder":
        self._operation = "delete"
        return self

    # Predicates

    def _where(self, operator: FilterOperator, column: str, value: Any) -> "QueryBuilder":
        self._clauses.append(Predicate(operator, column, value))
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(FilterOperator.EQ, column, value)

    def neq(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(FilterOperator.NEQ, column, value)

    def gt(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(FilterOperator.GT, column, value)

    def gte(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(FilterOperator.GTE, column, value)

    def lt(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(FilterOperator.LT, column, value)

    def lte(self, column: str, value: Any) -> "QueryBuilder":
        return self._where(FilterOperator.LTE, column, value)

    def like(self, column: str, pattern: str) -> "QueryBuilder":
        return self._where(FilterOperator.LIKE, column, pattern)

    def ilike(self, column: str, pattern: str) -> "QueryBuilder":
        return self._where(FilterOperator.ILIKE, column, pattern)

    def in_(self, column: str, values: Iterable[Any]) -> "QueryBuilder":
        return self._where(FilterOperator.IN, column, list(values))

    def or_(self, predicates: Iterable[Predicate]) -> "QueryBuilder":
        """Add a group of predicates combined with OR."""
        self._clauses.append(AnyOf(tuple(predicates)))
        return self

    # Shaping

    def order(self, column: str, ascending: bool = True) -> "QueryBuilder":
        self._order.append((column, ascending))
        return self

    def range(self, start: int, end: int) -> "QueryBuilder":
        """Restrict to rows start..end (0-based, inclusive)."""
        if start < 0 or end < start:
            raise ValueError(f"Invalid range {start}..{end}")
        self._range = (start, end)
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._limit = count
        return self

    def single(self) -> "QueryBuilder":
        """Return one row (or None) instead of a list; more than one row is an error."""
        self._single = True
        return self

    # Compilation

    def _column(self, name: str) -> ColumnElement[Any]:
        assert self._table is not None
        try:
            return self._table.c[name]
        except KeyError:
            raise QueryCompileError(
                f"column '{name}' does not exist on '{self._table_name}'",
                code="undefined_column",
            ) from None

    def _compile_predicate(self, predicate: Predicate) -> ColumnElement[bool]:
        column = self._column(predicate.field)
        value = predicate.value
        operator = predicate.operator

        if operator is FilterOperator.EQ:
            return column.is_(None) if value is None else column == value
        if operator is FilterOperator.NEQ:
            return column.is_not(None) if value is None else column != value
        if operator is FilterOperator.GT:
            return column > value
        if operator is FilterOperator.GTE:
            return column >= value
        if operator is FilterOperator.LT:
            return column < value
        if operator is FilterOperator.LTE:
            return column <= value
        if operator is FilterOperator.LIKE:
            return column.like(value)
        if operator is FilterOperator.ILIKE:
            return column.ilike(value)
        if operator is FilterOperator.IN:
            values = list(value)
            return column.in_(values) if values else false()

        raise QueryCompileError(f"Unknown operator: {operator}", code="invalid_operator")

    def _compile_where(self) -> list[ColumnElement[bool]]:
        conditions: list[ColumnElement[bool]] = []
        for clause in self._clauses:
            if isinstance(clause, AnyOf):
                parts = [self._compile_predicate(p) for p in clause.predicates]
                conditions.append(or_(*parts) if parts else false())
            else:
                conditions.append(self._compile_predicate(clause))
        return conditions

    def _selected_columns(self) -> list[Any]:
        assert self._table is not None
        if not self._columns:
            return list(self._table.c)
        return [self._column(name) for name in self._columns]

    # Execution

    async def execute(self) -> QueryResult:
        """Run the query.

        Returns:
            QueryResult with rows as dicts, or with ``error`` set.
        """
        if self._table is None:
            return QueryResult(
                error=QueryError(
                    f"relation '{self._table_name}' does not exist",
                    code="undefined_table",
                )
            )

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    if self._operation == "insert":
                        result = await self._execute_insert(session)
                    elif self._operation == "update":
                        result = await self._execute_update(session)
                    elif self._operation == "delete":
                        result = await self._execute_delete(session)
                    else:
                        result = await self._execute_select(session)
        except QueryCompileError as e:
            logger.info(
                "Query rejected",
                table_name=self._table_name,
                operation=self._operation,
                error=str(e),
            )
            return QueryResult(error=QueryError(str(e), code=e.code))
        except SQLAlchemyError as e:
            message = str(getattr(e, "orig", None) or e)
            logger.error(
                "Query failed",
                table_name=self._table_name,
                operation=self._operation,
                error=message,
                exc_type=type(e).__name__,
            )
            return QueryResult(error=QueryError(message, code=type(e).__name__))

        if self._single:
            return self._to_single(result)
        return result

    async def _execute_select(self, session: AsyncSession) -> QueryResult:
        conditions = self._compile_where()
        statement = select(*self._selected_columns()).where(*conditions)

        for column, ascending in self._order:
            col = self._column(column)
            statement = statement.order_by(col.asc() if ascending else col.desc())

        if self._range is not None:
            start, end = self._range
            statement = statement.offset(start).limit(end - start + 1)
        elif self._limit is not None:
            statement = statement.limit(self._limit)

        rows = (await session.execute(statement)).fetchall()
        data = [dict(row._mapping) for row in rows]

        count = None
        if self._count == "exact":
            count_statement = (
                select(func.count()).select_from(self._table).where(*conditions)
            )
            count = (await session.execute(count_statement)).scalar_one()

        logger.debug(
            "Select executed",
            table_name=self._table_name,
            returned=len(data),
            count=count,
        )
        return QueryResult(data=data, count=count)

    async def _execute_insert(self, session: AsyncSession) -> QueryResult:

        assert self._table is not None
        inserted: list[dict[str, Any]] = []
        for row in self._rows:
            values = dict(row)
            if not values.get(self._primary_key):
                values[self._primary_key] = str(uuid.uuid4())
            for name in values:
                self._column(name)
            statement = insert(self._table).values(**values).returning(*self._table.c)
            result = await session.execute(statement)
            inserted.extend(dict(r._mapping) for r in result.fetchall())

        logger.debug("Insert executed", table_name=self._table_name, inserted=len(inserted))
        return QueryResult(data=inserted, count=len(inserted))

    async def _execute_update(self, session: AsyncSession) -> QueryResult:
        assert self._table is not None
        for name in self._patch:
            self._column(name)
        statement = (
            update(self._table)
            .where(*self._compile_where())
            .values(**self._patch)
            .returning(*self._table.c)
        )
        rows = (await session.execute(statement)).fetchall()
        data = [dict(row._mapping) for row in rows]

        logger.debug("Update executed", table_name=self._table_name, affected=len(data))
        return QueryResult(data=data, count=len(data))

    async def _execute_delete(self, session: AsyncSession) -> QueryResult:
        assert self._table is not None
        statement = (
            delete(self._table)
            .where(*self._compile_where())
            .returning(*self._table.c)
        )
        rows = (await session.execute(statement)).fetchall()
        data = [dict(row._mapping) for row in rows]

        logger.debug("Delete executed", table_name=self._table_name, affected=len(data))
        return QueryResult(data=data, count=len(data))

    def _to_single(self, result: QueryResult) -> QueryResult:
        rows = result.data or []
        if len(rows) > 1:
            return QueryResult(
                error=QueryError(
                    f"Expected a single row from '{self._table_name}', got {len(rows)}",
                    code="multiple_rows",
                )
            )
        return QueryResult(data=rows[0] if rows else None, count=result.count)
