"""FastAPI dependencies for caller identity and controller construction.

Authentication happens upstream: the gateway forwards the caller's identity
in ``X-User-Id``, ``X-Organization-Id``, ``X-User-Segment`` and
``X-User-Role`` headers.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from opsdesk.core.config import get_settings
from opsdesk.core.logging import get_logger
from opsdesk.domain.entities.tenant_context import TenantContext
from opsdesk.domain.exceptions import UnmappedCollectionError
from opsdesk.domain.services import Ability, CRUDController, build_ability
from opsdesk.infrastructure.persistence.database import get_db_manager
from opsdesk.infrastructure.persistence.store_client import StoreClient

logger = get_logger(__name__)


async def get_tenant_context(
    x_user_segment: Annotated[str | None, Header()] = None,
    x_organization_id: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
    x_user_role: Annotated[str | None, Header()] = None,
) -> TenantContext:
    """Build the caller's tenant context from gateway headers.

    Raises:
        HTTPException: 401 if the segment header is missing.
    """
    if not x_user_segment:
        logger.info("Request rejected: missing X-User-Segment header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Segment header",
        )

    return TenantContext(
        user_segment=x_user_segment.strip().lower(),
        organization_id=x_organization_id,
        user_id=x_user_id,
        role=x_user_role.strip().lower() if x_user_role else None,
    )


Tenant = Annotated[TenantContext, Depends(get_tenant_context)]


async def get_ability(tenant: Tenant) -> Ability:
    return build_ability(tenant.role, tenant.user_segment, tenant.organization_id)


async def get_store_client() -> StoreClient:
    """Store client bound to the application's session factory."""
    return StoreClient(get_db_manager().session_factory)


async def get_controller(
    collection: str,
    tenant: Tenant,
    ability: Annotated[Ability, Depends(get_ability)],
    client: Annotated[StoreClient, Depends(get_store_client)],
) -> CRUDController:
    """Build a controller for the collection named in the path.

    Raises:
        HTTPException: 404 if the collection is not registered.
    """
    try:
        return CRUDController(client, collection, tenant, ability, settings=get_settings())
    except UnmappedCollectionError as e:
        logger.info("Unknown collection requested", collection=collection)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=e.message) from e


Controller = Annotated[CRUDController, Depends(get_controller)]
