"""Domain services: capability evaluation, tenant scoping and the CRUD controller."""

from opsdesk.domain.services.ability import (
    Ability,
    AbilityBuilder,
    AbilityRule,
    Action,
    Role,
    build_ability,
)
from opsdesk.domain.services.crud_controller import CRUDController
from opsdesk.domain.services.tenant_scope import ScopeDecision, TenantScopePolicy

__all__ = [
    "Ability",
    "AbilityBuilder",
    "AbilityRule",
    "Action",
    "CRUDController",
    "Role",
    "ScopeDecision",
    "TenantScopePolicy",
    "build_ability",
]
