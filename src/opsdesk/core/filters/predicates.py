"""Predicate nodes emitted by the filter translator."""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class FilterOperator(str, Enum):
    """Filter operator vocabulary accepted from UI call sites."""

    EQ = "eq"
    NEQ = "neq"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    LIKE = "like"
    ILIKE = "ilike"
    IN = "in"

    @property
    def method_name(self) -> str:
        """Name of the query builder method implementing this operator."""
        # `in` is a keyword, the builder exposes it as `in_`
        return "in_" if self is FilterOperator.IN else self.value

    @classmethod
    def parse(cls, value: Any) -> "FilterOperator | None":
        """Return the operator for a raw value, or None if it is not in the vocabulary."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Predicate:
    """A single column predicate."""

    operator: FilterOperator
    field: str
    value: Any


@dataclass(frozen=True)
class AnyOf:
    """A group of predicates combined with OR."""

    predicates: tuple[Predicate, ...]


Clause = Predicate | AnyOf
