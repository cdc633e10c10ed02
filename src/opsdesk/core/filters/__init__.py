"""Filter grammar API."""

from .exceptions import FilterError, UnsupportedFilterOperatorError
from .predicates import AnyOf, Clause, FilterOperator, Predicate
from .translator import DEFAULT_SEARCH_FIELDS, FilterTranslator, apply_clause

__all__ = [
    "AnyOf",
    "Clause",
    "DEFAULT_SEARCH_FIELDS",
    "FilterError",
    "FilterOperator",
    "FilterTranslator",
    "Predicate",
    "UnsupportedFilterOperatorError",
    "apply_clause",
]
