"""SQLAlchemy model for marketplace services."""

from sqlalchemy import Float, String
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.models.record_columns import RecordColumnsMixin


class ServiceModel(RecordColumnsMixin, Base):
    """Service offered by a partner on the marketplace.

    Attributes:
        title: Service title.
        partner: Name of the providing partner.
        fee: Service fee, None for free services.
    """

    __tablename__ = "mktplc_services"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    partner: Mapped[str | None] = mapped_column(String(255), nullable=True)
    fee: Mapped[float | None] = mapped_column(Float, nullable=True)

    def __repr__(self) -> str:
        return f"<ServiceModel(id={self.id}, title={self.title})>"
