"""Result types returned by the query executor boundary."""

from dataclasses import dataclass
from typing import Any


@dataclass(slots=True)
class QueryError:
    """Failure reported by the store.

    Attributes:
        message: Underlying error message.
        code: Store-specific error code, if any.
    """

    message: str
    code: str | None = None


@dataclass(slots=True)
class QueryResult:
    """Outcome of one executed query.

    Attributes:
        data: Rows (list of dicts), a single row for ``single()`` queries, or None.
        error: Set when the store reported a failure.
        count: Exact number of rows matching the predicates, when requested.
    """

    data: Any = None
    error: QueryError | None = None
    count: int | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
