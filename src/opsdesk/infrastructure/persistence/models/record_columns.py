"""Columns shared by every collection table."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column


class RecordColumnsMixin:
    """Identity, ownership, audit and workflow columns.

    Timestamps are ISO-8601 strings so lexical order matches chronological
    order and ``dateFrom``/``dateTo`` filters compare correctly.

    Attributes:
        id: Primary key (UUID string).
        organization_id: Owning organization, None for unowned records.
        created_by: User who created the record.
        created_at: ISO timestamp of creation.
        updated_at: ISO timestamp of the last update.
        status: Workflow status (e.g. Draft, Published).
        type: Record type.
        category: Record category.
        description: Free-text description.
    """

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        comment="Record ID (UUID)",
    )
    organization_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        index=True,
        comment="Owning organization ID",
    )
    created_by: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        comment="User ID of the creator",
    )
    created_at: Mapped[str | None] = mapped_column(String(40), nullable=True, index=True)
    updated_at: Mapped[str | None] = mapped_column(String(40), nullable=True)
    status: Mapped[str | None] = mapped_column(String(32), nullable=True, index=True)
    type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    category: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
