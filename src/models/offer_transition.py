from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, UUIDPrimaryKeyMixin
from src.models.enums import OfferStatus, OfferTransitionType

if TYPE_CHECKING:
    from src.models.offer import Offer


class OfferTransition(UUIDPrimaryKeyMixin, Base):
    """Immutable audit log for offer state transitions. No updated_at column."""

    __tablename__ = "offer_transitions"

    offer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_status: Mapped[OfferStatus] = mapped_column(nullable=False)
    to_status: Mapped[OfferStatus] = mapped_column(nullable=False)
    transition_type: Mapped[OfferTransitionType] = mapped_column(nullable=False)
    # Identity lives with the external provider, so no FK here
    triggered_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))
    supplier_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))
    reason: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    offer: Mapped[Offer] = relationship("Offer", back_populates="transitions", lazy="noload")

    __table_args__ = (
        Index("ix_offer_transitions_offer_id", "offer_id"),
    )
