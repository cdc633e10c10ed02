"""Domain entities for opsdesk.

Entities are plain value types with no dependencies on infrastructure.
"""

from opsdesk.domain.entities.collection import (
    Collection,
    Subject,
    resolve_collection,
    resolve_subject,
)
from opsdesk.domain.entities.controller_state import ControllerState, Record
from opsdesk.domain.entities.pagination import Pagination
from opsdesk.domain.entities.query_result import QueryError, QueryResult
from opsdesk.domain.entities.tenant_context import TenantContext, UserSegment

__all__ = [
    "Collection",
    "ControllerState",
    "Pagination",
    "QueryError",
    "QueryResult",
    "Record",
    "Subject",
    "TenantContext",
    "UserSegment",
    "resolve_collection",
    "resolve_subject",
]
