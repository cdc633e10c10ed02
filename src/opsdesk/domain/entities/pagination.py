"""Pagination request and range bounds."""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

SortOrder = Literal["asc", "desc"]


@dataclass(frozen=True)
class Pagination:
    """Page request with optional sort.

    ``page`` is 1-based. Without ``sort_by`` the controller sorts by the
    creation timestamp, descending.
    """

    page: int = 1
    page_size: int = 20
    sort_by: str | None = None
    sort_order: SortOrder | None = None

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")
        if self.sort_order not in (None, "asc", "desc"):
            raise ValueError("sort_order must be 'asc' or 'desc'")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def bounds(self) -> tuple[int, int]:
        """Inclusive (start, end) row range for this page."""
        return self.offset, self.offset + self.page_size - 1

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Pagination":
        """Build from a UI-shaped mapping (``pageSize``, ``sortBy``, ``sortOrder``).

        Snake-case keys are accepted too.
        """
        return cls(
            page=int(data.get("page", 1)),
            page_size=int(data.get("pageSize", data.get("page_size", 20))),
            sort_by=data.get("sortBy", data.get("sort_by")),
            sort_order=data.get("sortOrder", data.get("sort_order")),
        )

    @classmethod
    def coerce(cls, value: "Pagination | Mapping[str, Any] | None") -> "Pagination | None":
        if value is None or isinstance(value, Pagination):
            return value
        return cls.from_mapping(value)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the UI-shaped mapping."""
        result: dict[str, Any] = {"page": self.page, "pageSize": self.page_size}
        if self.sort_by is not None:
            result["sortBy"] = self.sort_by
        if self.sort_order is not None:
            result["sortOrder"] = self.sort_order
        return result
