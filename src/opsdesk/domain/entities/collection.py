"""Collection registry.

Maps every physical record collection to the permission subject its rules
are authored against, and records the per-collection data-access facts
(organization scoping, search fields). The registry is exhaustive: names
outside it are rejected rather than inheriting another subject's rules.
"""

from enum import Enum

from opsdesk.domain.exceptions import UnmappedCollectionError


class Subject(str, Enum):
    """Permission subjects."""

    SERVICE = "Service"
    CONTENT = "Content"
    BUSINESS = "Business"
    ZONE = "Zone"
    GROWTH_AREA = "GrowthArea"
    USER = "User"
    ORGANIZATION = "Organization"
    ALL = "all"


class Collection(str, Enum):
    """Known record collections.

    Attributes:
        subject: Permission subject the collection maps to.
        organization_scoped: Whether reads and writes are confined to the
            caller's organization for non-internal callers.
        search_fields: Fields the reserved ``search`` filter matches against.
    """

    SERVICES = "mktplc_services"
    CONTENTS = "cnt_contents"
    BUSINESS_DIRECTORY = "eco_business_directory"
    ZONES = "eco_zones"
    GROWTH_AREAS = "eco_growth_areas"

    @property
    def subject(self) -> Subject:
        return _SUBJECTS[self]

    @property
    def organization_scoped(self) -> bool:
        return self is not Collection.ZONES

    @property
    def search_fields(self) -> tuple[str, ...]:
        if self in (Collection.CONTENTS, Collection.SERVICES):
            return ("title", "description")
        return ("name", "description")


_SUBJECTS: dict[Collection, Subject] = {
    Collection.SERVICES: Subject.SERVICE,
    Collection.CONTENTS: Subject.CONTENT,
    Collection.BUSINESS_DIRECTORY: Subject.BUSINESS,
    Collection.ZONES: Subject.ZONE,
    Collection.GROWTH_AREAS: Subject.GROWTH_AREA,
}

# Module names used by console navigation
_ALIASES: dict[str, Collection] = {
    "services": Collection.SERVICES,
    "contents": Collection.CONTENTS,
    "business_directory": Collection.BUSINESS_DIRECTORY,
    "zones": Collection.ZONES,
    "growth_areas": Collection.GROWTH_AREAS,
}


def resolve_collection(name: "str | Collection") -> Collection:
    """Resolve a table name or module alias to a registered collection.

    Args:
        name: Physical table name, module alias or Collection member.

    Returns:
        The matching Collection.

    Raises:
        UnmappedCollectionError: If the name is not registered.
    """
    if isinstance(name, Collection):
        return name
    try:
        return Collection(name)
    except ValueError:
        pass
    if name in _ALIASES:
        return _ALIASES[name]
    raise UnmappedCollectionError(str(name))


def resolve_subject(name: "str | Collection") -> Subject:
    """Resolve a collection name to its permission subject."""
    return resolve_collection(name).subject
