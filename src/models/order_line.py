from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Numeric, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.models.application import Application


class OrderLine(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Requested article inside an application. Never modified after creation."""

    __tablename__ = "order_lines"

    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    article_code: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    requested_units: Mapped[int] = mapped_column(Integer, nullable=False)
    requested_term: Mapped[str | None] = mapped_column(String(100))
    requested_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))

    application: Mapped[Application] = relationship(
        "Application", back_populates="order_lines", lazy="noload"
    )

    __table_args__ = (
        UniqueConstraint("application_id", "article_code", name="uq_order_lines_application_article"),
        CheckConstraint("requested_units > 0", name="requested_units_positive"),
        Index("ix_order_lines_application_id", "application_id"),
    )
