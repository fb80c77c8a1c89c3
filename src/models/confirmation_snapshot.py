from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, JSONType, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from src.models.application import Application


class ConfirmationSnapshot(UUIDPrimaryKeyMixin, Base):
    """Immutable record of the terms an application was confirmed with.

    Written once per PENDING -> CONFIRMED transition and never updated; a later
    demotion leaves existing snapshots in place.
    """

    __tablename__ = "confirmation_snapshots"

    application_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("applications.id", ondelete="RESTRICT"),
        nullable=False,
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    offer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))
    units: Mapped[int] = mapped_column(Integer, nullable=False)
    term: Mapped[str] = mapped_column(String(100), nullable=False)
    price_euros: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    # Order-line confirmations in force at the moment of confirmation
    lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    confirmed_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))
    confirmed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    application: Mapped[Application] = relationship(
        "Application", back_populates="snapshots", lazy="noload"
    )

    __table_args__ = (
        Index("ix_confirmation_snapshots_application_id", "application_id"),
    )
