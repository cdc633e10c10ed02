"""Pydantic schemas for record endpoints."""

from typing import Any

from pydantic import BaseModel, Field


class RecordResponse(BaseModel):
    """Response for a created, updated or retrieved record.

    Contains the common record columns plus the collection's own fields.
    """

    id: str = Field(..., description="Record ID (UUID)")
    organization_id: str | None = Field(None, description="Owning organization ID")
    created_by: str | None = Field(None, description="User ID who created the record")
    created_at: str | None = Field(None, description="ISO 8601 timestamp when record was created")
    updated_at: str | None = Field(None, description="ISO 8601 timestamp when record was last updated")

    # Collection-specific fields are passed through as extra attributes
    model_config = {"extra": "allow"}

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "RecordResponse":
        return cls(**record)


class RecordListResponse(BaseModel):
    """Response for listing records."""

    items: list[RecordResponse] = Field(..., description="Records on the requested page")
    total: int = Field(..., description="Total number of records matching the filters")
    page: int = Field(..., description="1-based page number")
    page_size: int = Field(..., alias="pageSize", description="Page size")

    model_config = {"populate_by_name": True}


class BulkCreateRequest(BaseModel):
    """Request body for creating several records."""

    items: list[dict[str, Any]] = Field(..., min_length=1, description="Records to create")


class BulkUpdateItem(BaseModel):
    id: str = Field(..., description="Record ID")
    data: dict[str, Any] = Field(default_factory=dict, description="Fields to update")


class BulkUpdateRequest(BaseModel):
    """Request body for updating several records."""

    items: list[BulkUpdateItem] = Field(..., min_length=1)


class BulkDeleteRequest(BaseModel):
    """Request body for deleting several records."""

    ids: list[str] = Field(..., min_length=1, description="Record IDs to delete")


class BulkItemError(BaseModel):
    """Failure of one item in a bulk update."""

    id: str = Field(..., description="Record ID")
    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")


class BulkRecordsResponse(BaseModel):
    """Records affected by a bulk create or update."""

    items: list[RecordResponse]
    count: int
    errors: list[BulkItemError] = Field(
        default_factory=list, description="Items that failed while others were applied"
    )


class BulkDeleteResponse(BaseModel):
    success: bool
    requested: int


class ErrorResponse(BaseModel):
    """Error body returned for failed data-access calls."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Human-readable error message")
    collection: str | None = Field(None, description="Collection the call targeted")
