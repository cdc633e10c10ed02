"""Capability evaluation.

An ``Ability`` answers ``can(action, subject)`` from an ordered list of
rules. Later rules take precedence over earlier ones, ``manage`` matches
every action and ``all`` matches every subject. Nothing matching means
access is denied.

``build_ability`` derives the rule list for a caller from their role and
segment.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from opsdesk.core.logging import get_logger
from opsdesk.domain.entities.collection import Subject
from opsdesk.domain.entities.tenant_context import UserSegment

logger = get_logger(__name__)


class Action(str, Enum):
    """Canonical action vocabulary."""

    MANAGE = "manage"
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    PUBLISH = "publish"
    ARCHIVE = "archive"
    FLAG = "flag"


class Role(str, Enum):
    """Normalized caller roles."""

    ADMIN = "admin"
    EDITOR = "editor"
    APPROVER = "approver"
    VIEWER = "viewer"


MANAGE = Action.MANAGE.value
ALL = Subject.ALL.value

CRUD_SUBJECTS: tuple[str, ...] = (
    Subject.SERVICE.value,
    Subject.CONTENT.value,
    Subject.BUSINESS.value,
    Subject.ZONE.value,
    Subject.GROWTH_AREA.value,
)
REVIEW_SUBJECTS: tuple[str, ...] = (Subject.CONTENT.value, Subject.SERVICE.value)


def _value(item: Any) -> str:
    return item.value if isinstance(item, Enum) else str(item)


@dataclass(frozen=True)
class AbilityRule:
    """One permission rule.

    Attributes:
        action: Action name, or "manage" for every action.
        subject: Subject name, or "all" for every subject.
        conditions: Record-level conditions (e.g. organization ownership).
        inverted: True for a "cannot" rule.
    """

    action: str
    subject: str
    conditions: dict[str, Any] | None = None
    inverted: bool = False

    def matches(self, action: str, subject: str) -> bool:
        if self.action != action and self.action != MANAGE:
            return False
        if self.subject != subject and self.subject != ALL:
            return False
        # Checks against a subject type have no record to test conditions on:
        # conditional grants still apply, conditional denials do not.
        if self.conditions and self.inverted:
            return False
        return True


class Ability:
    """Capability evaluator over an ordered rule list.

    Args:
        rules: Rules in definition order.
        ready: False while the caller's rules are still being resolved.
    """

    def __init__(self, rules: Iterable[AbilityRule] = (), ready: bool = True) -> None:
        self._rules: tuple[AbilityRule, ...] = tuple(rules)
        self._ready = ready

    @classmethod
    def loading(cls) -> "Ability":
        """Ability placeholder used until the caller's rules are available."""
        return cls((), ready=False)

    @property
    def rules(self) -> Sequence[AbilityRule]:
        return self._rules

    @property
    def rules_ready(self) -> bool:
        return self._ready

    def relevant_rule(self, action: Any, subject: Any) -> AbilityRule | None:
        """Return the rule deciding (action, subject), if any."""
        action, subject = _value(action), _value(subject)
        for rule in reversed(self._rules):
            if rule.matches(action, subject):
                return rule
        return None

    def can(self, action: Any, subject: Any) -> bool:
        """Check whether the caller may perform an action on a subject type."""
        rule = self.relevant_rule(action, subject)
        return rule is not None and not rule.inverted

    def cannot(self, action: Any, subject: Any) -> bool:
        return not self.can(action, subject)


class AbilityBuilder:
    """Accumulates can/cannot rules in definition order."""

    def __init__(self) -> None:
        self._rules: list[AbilityRule] = []

    def can(
        self,
        action: Any,
        subjects: Any,
        conditions: dict[str, Any] | None = None,
    ) -> None:
        self._add(action, subjects, conditions, inverted=False)

    def cannot(
        self,
        action: Any,
        subjects: Any,
        conditions: dict[str, Any] | None = None,
    ) -> None:
        self._add(action, subjects, conditions, inverted=True)

    def _add(self, action: Any, subjects: Any, conditions: dict[str, Any] | None, inverted: bool) -> None:
        if isinstance(subjects, (str, Enum)):
            subjects = [subjects]
        for subject in subjects:
            self._rules.append(
                AbilityRule(_value(action), _value(subject), conditions, inverted)
            )

    def build(self) -> Ability:
        return Ability(self._rules)


def build_ability(
    role: str | None,
    user_segment: str | None,
    organization_id: str | None = None,
) -> Ability:
    """Build the ability for a caller.

    Callers without a recognised segment or role get an ability that
    denies everything.

    Args:
        role: Normalized role (admin, editor, approver, viewer).
        user_segment: Caller segment (internal, partner, customer, advisor).
        organization_id: Caller's organization, used in ownership conditions.

    Returns:
        Ability for the caller.
    """
    builder = AbilityBuilder()

    valid_segments = {segment.value for segment in UserSegment}
    if not user_segment or user_segment not in valid_segments:
        logger.warning(
            "Access denied: invalid user segment",
            user_segment=user_segment,
            role=role,
        )
        builder.cannot(MANAGE, ALL)
        return builder.build()

    try:
        role_enum = Role(role)
    except ValueError:
        logger.warning("Access denied: unknown role", role=role, user_segment=user_segment)
        builder.cannot(MANAGE, ALL)
        return builder.build()

    internal = user_segment == UserSegment.INTERNAL.value
    partner = user_segment == UserSegment.PARTNER.value
    owned = {"organization_id": organization_id}
    conditions = None if internal else owned

    if role_enum is Role.ADMIN:
        builder.can(MANAGE, ALL)
        if partner:
            builder.can(Action.CREATE, CRUD_SUBJECTS, conditions)
            builder.can(Action.READ, CRUD_SUBJECTS)
            builder.can(Action.UPDATE, CRUD_SUBJECTS, conditions)
            builder.can(Action.APPROVE, REVIEW_SUBJECTS, conditions)
            builder.can(Action.ARCHIVE, REVIEW_SUBJECTS, conditions)
            builder.cannot(Action.PUBLISH, REVIEW_SUBJECTS)
            builder.can(Action.READ, Subject.CONTENT)
        elif internal:
            builder.can(Action.APPROVE, REVIEW_SUBJECTS)
            builder.can(Action.PUBLISH, REVIEW_SUBJECTS)
            builder.can(Action.ARCHIVE, REVIEW_SUBJECTS)
            builder.can(Action.DELETE, REVIEW_SUBJECTS)

    elif role_enum is Role.EDITOR:
        builder.can(Action.CREATE, CRUD_SUBJECTS, owned)
        builder.can(Action.READ, CRUD_SUBJECTS)
        builder.can(Action.UPDATE, CRUD_SUBJECTS, conditions)
        builder.can(Action.PUBLISH, Subject.CONTENT, conditions)
        builder.cannot(Action.DELETE, ALL)
        builder.cannot(Action.APPROVE, ALL)

    elif role_enum is Role.APPROVER:
        builder.can(Action.READ, ALL)
        builder.can(Action.APPROVE, REVIEW_SUBJECTS, conditions)
        if internal:
            builder.can(Action.PUBLISH, REVIEW_SUBJECTS)
            builder.can(Action.CREATE, CRUD_SUBJECTS, owned)
            builder.can(Action.UPDATE, CRUD_SUBJECTS)
        elif partner:
            builder.cannot(Action.PUBLISH, REVIEW_SUBJECTS)
            builder.can(Action.CREATE, CRUD_SUBJECTS, owned)
            builder.can(Action.UPDATE, CRUD_SUBJECTS, owned)

    elif role_enum is Role.VIEWER:
        builder.can(Action.READ, ALL)
        for action in (
            Action.CREATE,
            Action.UPDATE,
            Action.DELETE,
            Action.APPROVE,
            Action.PUBLISH,
            Action.ARCHIVE,
            Action.FLAG,
        ):
            builder.cannot(action, ALL)

    # Only internal callers may flag content and services for review
    if internal:
        builder.can(Action.FLAG, REVIEW_SUBJECTS)
    else:
        builder.cannot(Action.FLAG, REVIEW_SUBJECTS)

    return builder.build()
