"""SQLAlchemy model for growth areas."""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.models.record_columns import RecordColumnsMixin


class GrowthAreaModel(RecordColumnsMixin, Base):
    __tablename__ = "eco_growth_areas"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<GrowthAreaModel(id={self.id}, name={self.name})>"
