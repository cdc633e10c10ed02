"""Caller tenant context.

Carried explicitly into every controller instead of being read from
process-wide state.
"""

from dataclasses import dataclass
from enum import Enum


class UserSegment(str, Enum):
    """Known caller segments."""

    INTERNAL = "internal"
    PARTNER = "partner"
    CUSTOMER = "customer"
    ADVISOR = "advisor"


@dataclass(frozen=True)
class TenantContext:
    """Identity facts the data-access layer needs about the caller.

    Attributes:
        user_segment: Caller classification (e.g. "internal", "partner").
        organization_id: Caller's organization, if resolved.
        user_id: Caller's user id, stamped as ``created_by`` on inserts.
        role: Caller's normalized role, used to build the ability.
    """

    user_segment: str
    organization_id: str | None = None
    user_id: str | None = None
    role: str | None = None

    def __post_init__(self) -> None:
        # Normalize blank identifiers coming from headers
        if self.organization_id == "":
            object.__setattr__(self, "organization_id", None)
        if self.user_id == "":
            object.__setattr__(self, "user_id", None)

    def is_internal(self, internal_segment: str = UserSegment.INTERNAL.value) -> bool:
        """Check whether the caller belongs to the segment exempt from scoping."""
        return self.user_segment == internal_segment
