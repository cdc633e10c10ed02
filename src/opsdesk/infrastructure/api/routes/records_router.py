"""Records API routes.

Exposes a CRUD controller per request for the collection named in the path.
Errors recorded by the controller are raised and turned into responses by
the application's data-access exception handlers.
"""

import json
from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, status

from opsdesk.core.config import get_settings
from opsdesk.core.logging import LoggingContext, get_logger
from opsdesk.domain.entities.pagination import Pagination
from opsdesk.domain.exceptions import NotFoundError
from opsdesk.domain.services import CRUDController
from opsdesk.infrastructure.api.dependencies import Controller
from opsdesk.infrastructure.api.schemas import (
    BulkCreateRequest,
    BulkDeleteRequest,
    BulkDeleteResponse,
    BulkItemError,
    BulkRecordsResponse,
    BulkUpdateRequest,
    ErrorResponse,
    RecordListResponse,
    RecordResponse,
)

logger = get_logger(__name__)

router = APIRouter()

ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Invalid filter"},
    401: {"description": "Missing caller identity"},
    403: {"model": ErrorResponse, "description": "Permission denied or tenant unresolved"},
    404: {"model": ErrorResponse, "description": "Collection or record not found"},
    502: {"model": ErrorResponse, "description": "Store failure"},
}


def _raise_if_failed(controller: CRUDController) -> None:
    if controller.error is not None:
        raise controller.error


def _parse_filter_param(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid filter JSON: {e.msg}",
        ) from e
    if not isinstance(parsed, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Filter must be a JSON object",
        )
    return parsed


@router.get(
    "/{collection}/records",
    response_model=RecordListResponse,
    response_model_by_alias=True,
    responses=ERROR_RESPONSES,
)
async def list_records(
    collection: str,
    controller: Controller,
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, alias="pageSize", ge=1),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_order: str | None = Query(None, alias="sortOrder", pattern="^(asc|desc)$"),
    search: str | None = Query(None),
    record_status: str | None = Query(None, alias="status"),
    record_type: str | None = Query(None, alias="type"),
    category: str | None = Query(None),
    date_from: str | None = Query(None, alias="dateFrom"),
    date_to: str | None = Query(None, alias="dateTo"),
    filter: str | None = Query(None, description="JSON object of structured filters"),
) -> RecordListResponse:
    """List one page of records visible to the caller.

    Simple filters come from query parameters; structured filters
    (``{"field": {"operator": "gte", "value": 100}}``) come from the
    ``filter`` parameter as JSON.
    """
    settings = get_settings()
    size = min(page_size or settings.default_page_size, settings.max_page_size)
    pagination = Pagination(page=page, page_size=size, sort_by=sort_by, sort_order=sort_order)

    filters = _parse_filter_param(filter)
    filters.update(
        {
            "status": record_status,
            "type": record_type,
            "category": category,
            "dateFrom": date_from,
            "dateTo": date_to,
            "search": search,
        }
    )

    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        await controller.list_records(filters, pagination)
        _raise_if_failed(controller)

    return RecordListResponse(
        items=[RecordResponse.from_record(r) for r in controller.data],
        total=controller.total,
        page=pagination.page,
        page_size=pagination.page_size,
    )


@router.post(
    "/{collection}/records/bulk",
    status_code=status.HTTP_201_CREATED,
    response_model=BulkRecordsResponse,
    responses=ERROR_RESPONSES,
)
async def bulk_create_records(
    collection: str,
    body: BulkCreateRequest,
    controller: Controller,
) -> BulkRecordsResponse:
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        created = await controller.bulk_create(body.items)
        if not created:
            _raise_if_failed(controller)

    return BulkRecordsResponse(
        items=[RecordResponse.from_record(r) for r in created],
        count=len(created),
    )


@router.patch(
    "/{collection}/records/bulk",
    response_model=BulkRecordsResponse,
    responses=ERROR_RESPONSES,
)
async def bulk_update_records(
    collection: str,
    body: BulkUpdateRequest,
    controller: Controller,
) -> BulkRecordsResponse:
    """Update several records.

    Items that match no visible record are skipped. Each item commits on
    its own, so when some items fail after others were applied the applied
    records are returned with the failures listed under ``errors``. The
    request fails only when nothing was updated.
    """
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        updated = await controller.bulk_update(
            [{"id": item.id, "data": item.data} for item in body.items]
        )
        if not updated:
            _raise_if_failed(controller)

    return BulkRecordsResponse(
        items=[RecordResponse.from_record(r) for r in updated],
        count=len(updated),
        errors=[
            BulkItemError(id=record_id, error=type(exc).__name__, message=str(exc))
            for record_id, exc in controller.state.item_errors.items()
        ],
    )


@router.delete(
    "/{collection}/records/bulk",
    response_model=BulkDeleteResponse,
    responses=ERROR_RESPONSES,
)
async def bulk_delete_records(
    collection: str,
    body: BulkDeleteRequest,
    controller: Controller,
) -> BulkDeleteResponse:
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        success = await controller.bulk_remove(body.ids)
        _raise_if_failed(controller)

    return BulkDeleteResponse(success=success, requested=len(body.ids))


@router.get(
    "/{collection}/records/{record_id}",
    response_model=RecordResponse,
    responses=ERROR_RESPONSES,
)
async def get_record(
    collection: str,
    record_id: str,
    controller: Controller,
) -> RecordResponse:
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        record = await controller.get_by_id(record_id)
        _raise_if_failed(controller)
        if record is None:
            raise NotFoundError(controller.table_name, record_id)

    return RecordResponse.from_record(record)


@router.post(
    "/{collection}/records",
    status_code=status.HTTP_201_CREATED,
    response_model=RecordResponse,
    responses=ERROR_RESPONSES,
)
async def create_record(
    collection: str,
    data: dict[str, Any],
    controller: Controller,
) -> RecordResponse:
    """Create a record.

    The organization, creator and timestamps are stamped from the caller's
    identity; values supplied for them in the body are overwritten.
    """
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        created = await controller.create(data)
        if created is None:
            _raise_if_failed(controller)
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Record was not created",
            )

    return RecordResponse.from_record(created)


@router.patch(
    "/{collection}/records/{record_id}",
    response_model=RecordResponse,
    responses=ERROR_RESPONSES,
)
async def update_record(
    collection: str,
    record_id: str,
    data: dict[str, Any],
    controller: Controller,
) -> RecordResponse:
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        updated = await controller.update(record_id, data)
        _raise_if_failed(controller)
        if updated is None:
            raise NotFoundError(controller.table_name, record_id)

    return RecordResponse.from_record(updated)


@router.delete(
    "/{collection}/records/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
)
async def delete_record(
    collection: str,
    record_id: str,
    controller: Controller,
) -> Response:
    with LoggingContext(collection=controller.table_name, user_id=controller.tenant.user_id):
        deleted = await controller.remove(record_id)
        _raise_if_failed(controller)
        if not deleted:
            raise NotFoundError(controller.table_name, record_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)
