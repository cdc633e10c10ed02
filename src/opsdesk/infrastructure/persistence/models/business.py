"""SQLAlchemy model for the business directory."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.models.record_columns import RecordColumnsMixin


class BusinessModel(RecordColumnsMixin, Base):
    """Business listed in the ecosystem directory."""

    __tablename__ = "eco_business_directory"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    industry: Mapped[str | None] = mapped_column(String(128), nullable=True)
    size: Mapped[str | None] = mapped_column(String(32), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(String(64), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    website: Mapped[str | None] = mapped_column(String(512), nullable=True)

    def __repr__(self) -> str:
        return f"<BusinessModel(id={self.id}, name={self.name})>"
