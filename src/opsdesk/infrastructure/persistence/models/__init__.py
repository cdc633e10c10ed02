"""SQLAlchemy models for the opsdesk collection tables.

All models inherit from the Base class defined in database.py and are
automatically created on application startup in development mode.
"""

from opsdesk.infrastructure.persistence.models.business import BusinessModel
from opsdesk.infrastructure.persistence.models.content import ContentModel
from opsdesk.infrastructure.persistence.models.growth_area import GrowthAreaModel
from opsdesk.infrastructure.persistence.models.record_columns import RecordColumnsMixin
from opsdesk.infrastructure.persistence.models.service import ServiceModel
from opsdesk.infrastructure.persistence.models.zone import ZoneModel

__all__ = [
    "BusinessModel",
    "ContentModel",
    "GrowthAreaModel",
    "RecordColumnsMixin",
    "ServiceModel",
    "ZoneModel",
]
