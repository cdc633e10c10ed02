"""In-memory view held by a CRUD controller."""

from dataclasses import dataclass, field
from typing import Any

from opsdesk.domain.entities.pagination import Pagination

Record = dict[str, Any]


@dataclass
class ControllerState:
    """State rendered by UI callers.

    Attributes:
        records: Records from the last successful list, reconciled by mutations.
        loading: Whether an operation is in flight.
        error: Error recorded by the last failed operation.
        total: Number of records matching the last list's filters.
        last_filters: Filters of the last list call, replayed by refresh.
        last_pagination: Pagination of the last list call, replayed by refresh.
        listed: Whether a list call has run, so writes know to refresh.
        refresh_error: Error from the refresh that followed a successful write.
        item_errors: Per-record failures of the last bulk update, keyed by id.
    """

    records: list[Record] = field(default_factory=list)
    loading: bool = False
    error: Exception | None = None
    total: int = 0
    last_filters: dict[str, Any] | None = None
    last_pagination: Pagination | None = None
    listed: bool = False
    refresh_error: Exception | None = None
    item_errors: dict[str, Exception] = field(default_factory=dict)
