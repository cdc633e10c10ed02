"""Pydantic schemas for API request and response validation."""

from opsdesk.infrastructure.api.schemas.record_schemas import (
    BulkCreateRequest,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkItemError,
    BulkRecordsResponse,
    BulkUpdateItem,
    BulkUpdateRequest,
    ErrorResponse,
    RecordListResponse,
    RecordResponse,
)

__all__ = [
    "BulkCreateRequest",
    "BulkDeleteRequest",
    "BulkDeleteResponse",
    "BulkItemError",
    "BulkRecordsResponse",
    "BulkUpdateItem",
    "BulkUpdateRequest",
    "ErrorResponse",
    "RecordListResponse",
    "RecordResponse",
]
