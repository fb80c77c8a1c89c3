from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import OfferStatus

if TYPE_CHECKING:
    from src.models.offer_line import OfferLine
    from src.models.offer_transition import OfferTransition


class Offer(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "offers"

    offer_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    minimum_units: Mapped[int] = mapped_column(Integer, nullable=False)
    deadline: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    status: Mapped[OfferStatus] = mapped_column(
        nullable=False, default=OfferStatus.OPEN, server_default="OPEN"
    )
    # Supplier whose proposal moved the offer to APPLIED
    applied_supplier_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("suppliers.id", ondelete="SET NULL"),
    )
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    lines: Mapped[list[OfferLine]] = relationship(
        "OfferLine",
        back_populates="offer",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="OfferLine.material_code",
    )
    transitions: Mapped[list[OfferTransition]] = relationship(
        "OfferTransition", back_populates="offer", lazy="noload", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("minimum_units > 0", name="minimum_units_positive"),
        Index("ix_offers_status", "status"),
    )
