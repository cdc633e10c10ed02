"""Typed errors raised and recorded by the data-access layer.

Controllers never let these escape to UI callers: they are stored on the
controller state and returned as falsy results. The HTTP layer maps them to
status codes.
"""

from opsdesk.core.filters.exceptions import UnsupportedFilterOperatorError


class DataAccessError(Exception):
    """Base class for all data-access errors.

    Args:
        message: Human-readable error message.
        collection: Collection the failed operation targeted, if known.
    """

    def __init__(self, message: str, collection: str | None = None) -> None:
        self.message = message
        self.collection = collection
        super().__init__(message)


class PermissionDeniedError(DataAccessError):
    """The caller's ability does not allow the action on the subject."""

    def __init__(self, action: str, subject: str, collection: str | None = None) -> None:
        self.action = action
        self.subject = subject
        super().__init__(
            f"You don't have permission to {action} {subject.lower()}s",
            collection=collection,
        )


class TenantUnresolvedError(DataAccessError):
    """A non-internal caller targeted an organization-scoped collection
    without a resolvable organization id."""

    def __init__(self, collection: str) -> None:
        super().__init__(
            f"No organization context available for '{collection}'",
            collection=collection,
        )


class TransportError(DataAccessError):
    """The store reported a failure (network, constraint, malformed predicate)."""

    def __init__(
        self, message: str, code: str | None = None, collection: str | None = None
    ) -> None:
        self.code = code
        super().__init__(message, collection=collection)


class NotFoundError(DataAccessError):
    """A record lookup by id matched nothing."""

    def __init__(self, collection: str, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(
            f"Record '{record_id}' not found in '{collection}'",
            collection=collection,
        )


class UnmappedCollectionError(DataAccessError):
    """A collection name has no entry in the collection registry."""

    def __init__(self, collection: str) -> None:
        super().__init__(f"Unknown collection '{collection}'", collection=collection)


__all__ = [
    "DataAccessError",
    "NotFoundError",
    "PermissionDeniedError",
    "TenantUnresolvedError",
    "TransportError",
    "UnmappedCollectionError",
    "UnsupportedFilterOperatorError",
]
