"""SQLAlchemy model for economic zones.

Zones are shared reference data and are not owned by an organization's
callers, so reads are never confined to one organization.
"""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.models.record_columns import RecordColumnsMixin


class ZoneModel(RecordColumnsMixin, Base):
    """Economic zone."""

    __tablename__ = "eco_zones"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    region: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size: Mapped[str | None] = mapped_column(String(32), nullable=True)
    industries: Mapped[list | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<ZoneModel(id={self.id}, name={self.name})>"
