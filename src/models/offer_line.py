from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.models.offer import Offer


class OfferLine(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Requested material inside an offer.

    The requested side is fixed at creation; only the ``confirmed_*`` columns
    (the supplier's proposal) change afterwards.
    """

    __tablename__ = "offer_lines"

    offer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
    )
    material_code: Mapped[str] = mapped_column(String(50), nullable=False)
    material_description: Mapped[str] = mapped_column(String(500), nullable=False)
    requested_units: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    reference_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))

    confirmed_units: Mapped[Decimal | None] = mapped_column(Numeric(12, 3))
    confirmed_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 4))
    confirmed_term: Mapped[str | None] = mapped_column(String(100))

    offer: Mapped[Offer] = relationship("Offer", back_populates="lines", lazy="noload")

    __table_args__ = (
        CheckConstraint("requested_units > 0", name="requested_units_positive"),
        CheckConstraint(
            "confirmed_units IS NULL OR confirmed_units > 0", name="confirmed_units_positive"
        ),
        CheckConstraint(
            "confirmed_price IS NULL OR confirmed_price > 0", name="confirmed_price_positive"
        ),
        Index("ix_offer_lines_offer_id", "offer_id"),
    )
