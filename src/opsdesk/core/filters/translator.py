"""Filter translation.

Turns a declarative filter mapping (field -> literal, or field ->
{"operator": ..., "value": ...}) into an ordered list of predicate clauses
and applies them to a chainable query builder.
"""

from collections.abc import Mapping, Sequence
from typing import Any, Literal

from .exceptions import UnsupportedFilterOperatorError
from .predicates import AnyOf, Clause, FilterOperator, Predicate

DEFAULT_SEARCH_FIELDS = ("name", "title", "description")


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value == "")


class FilterTranslator:
    """Compiles filter maps to predicate clauses.

    Clause order follows the order of the filter mapping, with the search
    clause (if any) emitted last.
    """

    EQUALITY_FIELDS = frozenset({"status", "type", "category"})
    SEARCH_KEY = "search"
    DATE_FROM_KEY = "dateFrom"
    DATE_TO_KEY = "dateTo"

    def __init__(
        self,
        search_fields: Sequence[str] = DEFAULT_SEARCH_FIELDS,
        timestamp_field: str = "created_at",
        search_mode: Literal["any", "first"] = "any",
    ) -> None:
        self.search_fields = tuple(search_fields)
        self.timestamp_field = timestamp_field
        self.search_mode = search_mode

    def translate(self, filters: Mapping[str, Any] | None) -> list[Clause]:
        """Translate a filter mapping into predicate clauses.

        Args:
            filters: Filter map, may be None.

        Returns:
            Ordered list of clauses.

        Raises:
            UnsupportedFilterOperatorError: If a structured filter names an
                unknown operator or none at all.
        """
        if not filters:
            return []

        clauses: list[Clause] = []
        for key, value in filters.items():
            if key == self.SEARCH_KEY or _is_blank(value):
                continue

            if key in self.EQUALITY_FIELDS:
                if isinstance(value, Mapping):
                    value = self._structured_value(value)
                clauses.append(Predicate(FilterOperator.EQ, key, value))
            elif key == self.DATE_FROM_KEY:
                clauses.append(Predicate(FilterOperator.GTE, self.timestamp_field, value))
            elif key == self.DATE_TO_KEY:
                clauses.append(Predicate(FilterOperator.LTE, self.timestamp_field, value))
            elif isinstance(value, Mapping):
                clauses.append(self._structured_predicate(key, value))
            elif isinstance(value, (list, tuple, set, frozenset)):
                clauses.append(Predicate(FilterOperator.IN, key, list(value)))
            else:
                clauses.append(Predicate(FilterOperator.EQ, key, value))

        search_clause = self._search_clause(filters.get(self.SEARCH_KEY))
        if search_clause is not None:
            clauses.append(search_clause)

        return clauses

    def apply(self, query: Any, filters: Mapping[str, Any] | None) -> Any:
        """Translate filters and chain the resulting predicates onto a query."""
        for clause in self.translate(filters):
            query = apply_clause(query, clause)
        return query

    @staticmethod
    def _structured_value(value: Mapping[str, Any]) -> Any:
        # "val" is accepted for call sites written against the older shape
        return value["value"] if "value" in value else value.get("val")

    def _structured_predicate(self, field: str, value: Mapping[str, Any]) -> Predicate:
        raw_operator = value.get("operator")
        operator = FilterOperator.parse(raw_operator)
        if operator is None:
            raise UnsupportedFilterOperatorError(field, raw_operator)

        operand = self._structured_value(value)
        if operator is FilterOperator.IN and not isinstance(operand, (list, tuple, set, frozenset)):
            operand = [operand]
        elif operator is FilterOperator.IN:
            operand = list(operand)
        return Predicate(operator, field, operand)

    def _search_clause(self, term: Any) -> Clause | None:
        if _is_blank(term) or not self.search_fields:
            return None

        pattern = f"%{term}%"
        if self.search_mode == "first":
            return Predicate(FilterOperator.ILIKE, self.search_fields[0], pattern)

        predicates = tuple(
            Predicate(FilterOperator.ILIKE, field, pattern) for field in self.search_fields
        )
        if len(predicates) == 1:
            return predicates[0]
        return AnyOf(predicates)


def apply_clause(query: Any, clause: Clause) -> Any:
    """Chain one clause onto a query builder."""
    if isinstance(clause, AnyOf):
        return query.or_(list(clause.predicates))
    method = getattr(query, clause.operator.method_name)
    return method(clause.field, clause.value)
