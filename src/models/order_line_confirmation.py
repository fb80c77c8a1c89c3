from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.models.application import Application
    from src.models.order_line import OrderLine


class OrderLineConfirmation(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Supplier commitment covering part (or all) of one order line."""

    __tablename__ = "order_line_confirmations"

    order_line_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("order_lines.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    # Copied from the order line so allocation sums group without a join
    article_code: Mapped[str] = mapped_column(String(50), nullable=False)
    confirmed_units: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    confirmed_term: Mapped[str] = mapped_column(String(100), nullable=False)
    confirmed_price: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)

    application: Mapped[Application] = relationship(
        "Application", back_populates="confirmations", lazy="noload"
    )
    order_line: Mapped[OrderLine] = relationship("OrderLine", lazy="noload")

    __table_args__ = (
        CheckConstraint("confirmed_units > 0", name="confirmed_units_positive"),
        CheckConstraint("confirmed_price > 0", name="confirmed_price_positive"),
        CheckConstraint("confirmed_term <> ''", name="confirmed_term_present"),
        Index("ix_order_line_confirmations_application_article", "application_id", "article_code"),
        Index("ix_order_line_confirmations_order_line_id", "order_line_id"),
    )
