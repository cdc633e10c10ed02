"""SQLAlchemy model for published content."""

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from opsdesk.infrastructure.persistence.database import Base
from opsdesk.infrastructure.persistence.models.record_columns import RecordColumnsMixin


class ContentModel(RecordColumnsMixin, Base):
    """Article, guide or announcement going through editorial review."""

    __tablename__ = "cnt_contents"

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<ContentModel(id={self.id}, title={self.title})>"
