"""Tenant scoping policy.

Decides per call whether a query or write is confined to the caller's
organization:

- internal callers are never filtered, but their inserts still carry their
  organization id when they have one;
- other callers on organization-scoped collections are filtered on reads,
  updates and deletes, and their organization id is stamped on inserts;
- other callers on organization-scoped collections without an organization
  id are rejected (strict mode) or served unscoped with a warning.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from opsdesk.core.config import Settings
from opsdesk.core.logging import get_logger
from opsdesk.domain.entities.collection import Collection
from opsdesk.domain.entities.tenant_context import TenantContext
from opsdesk.domain.exceptions import TenantUnresolvedError

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScopeDecision:
    """Outcome of the scoping policy for one call.

    Attributes:
        organization_id: Organization to filter by, or None for no filter.
        degraded: True when a filter should apply but no organization id exists.
    """

    organization_id: str | None = None
    degraded: bool = False

    @property
    def applies(self) -> bool:
        return self.organization_id is not None


class TenantScopePolicy:
    """Organization scoping rules for reads and writes.

    Args:
        internal_segment: Segment exempt from scoping.
        org_field: Record field holding the owning organization.
        strict: Reject unresolvable scopes instead of degrading.
    """

    def __init__(
        self,
        internal_segment: str = "internal",
        org_field: str = "organization_id",
        strict: bool = True,
    ) -> None:
        self.internal_segment = internal_segment
        self.org_field = org_field
        self.strict = strict

    @classmethod
    def from_settings(cls, settings: Settings) -> "TenantScopePolicy":
        return cls(
            internal_segment=settings.internal_segment,
            org_field=settings.org_field,
            strict=settings.strict_tenant_scope,
        )

    def decide(self, tenant: TenantContext, collection: Collection) -> ScopeDecision:
        """Decide the organization filter for a read, update or delete.

        Raises:
            TenantUnresolvedError: In strict mode, when a non-internal caller
                without an organization targets a scoped collection.
        """
        if tenant.is_internal(self.internal_segment):
            return ScopeDecision()

        if not collection.organization_scoped:
            return ScopeDecision()

        if tenant.organization_id:
            return ScopeDecision(organization_id=tenant.organization_id)

        if self.strict:
            logger.warning(
                "Rejecting unscoped access to organization-scoped collection",
                collection=collection.value,
                user_segment=tenant.user_segment,
                user_id=tenant.user_id,
            )
            raise TenantUnresolvedError(collection.value)

        logger.warning(
            "No organization id for scoped collection, serving unscoped results",
            collection=collection.value,
            user_segment=tenant.user_segment,
            user_id=tenant.user_id,
        )
        return ScopeDecision(degraded=True)

    def apply(self, query: Any, decision: ScopeDecision) -> Any:
        """Chain the organization filter onto a query when the decision requires it."""
        if decision.applies:
            return query.eq(self.org_field, decision.organization_id)
        return query

    def scope(self, query: Any, tenant: TenantContext, collection: Collection) -> Any:
        return self.apply(query, self.decide(tenant, collection))

    def stamp_insert(
        self, tenant: TenantContext, collection: Collection, row: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Return a copy of an insert row carrying the caller's organization.

        Raises:
            TenantUnresolvedError: Same condition as ``decide``.
        """
        stamped = dict(row)
        if tenant.is_internal(self.internal_segment):
            if tenant.organization_id:
                stamped[self.org_field] = tenant.organization_id
            return stamped

        decision = self.decide(tenant, collection)
        if decision.applies:
            stamped[self.org_field] = decision.organization_id
        return stamped

    def sanitize_patch(
        self, tenant: TenantContext, collection: Collection, patch: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Drop organization reassignment from patches by scoped callers."""
        cleaned = dict(patch)
        if not tenant.is_internal(self.internal_segment) and collection.organization_scoped:
            cleaned.pop(self.org_field, None)
        return cleaned
