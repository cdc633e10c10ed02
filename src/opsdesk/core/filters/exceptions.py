"""Exceptions for filter translation."""

from typing import Any


class FilterError(Exception):
    """Base class for all filter-related errors."""
    pass


class UnsupportedFilterOperatorError(FilterError):
    """Raised when a structured filter names an operator outside the vocabulary."""

    def __init__(self, field: str, operator: Any):
        self.field = field
        self.operator = operator
        if operator is None:
            message = f"Filter on '{field}' is missing an operator"
        else:
            message = f"Unsupported filter operator '{operator}' on '{field}'"
        super().__init__(message)
