from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from src.models.enums import ApplicationStatus

if TYPE_CHECKING:
    from src.models.confirmation_snapshot import ConfirmationSnapshot
    from src.models.offer import Offer
    from src.models.order_line import OrderLine
    from src.models.order_line_confirmation import OrderLineConfirmation
    from src.models.supplier import Supplier


class Application(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """A supplier's order: headline terms plus optional itemized order lines."""

    __tablename__ = "applications"

    order_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    offer_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("offers.id", ondelete="SET NULL"),
    )
    supplier_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("suppliers.id", ondelete="RESTRICT"),
        nullable=False,
    )
    units: Mapped[int] = mapped_column(Integer, nullable=False)
    term: Mapped[str] = mapped_column(String(100), nullable=False)
    price_euros: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    status: Mapped[ApplicationStatus] = mapped_column(
        nullable=False, default=ApplicationStatus.PENDING, server_default="PENDING"
    )
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True))

    offer: Mapped[Offer | None] = relationship("Offer", lazy="noload")
    supplier: Mapped[Supplier] = relationship("Supplier", lazy="noload")
    order_lines: Mapped[list[OrderLine]] = relationship(
        "OrderLine",
        back_populates="application",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="OrderLine.article_code",
    )
    confirmations: Mapped[list[OrderLineConfirmation]] = relationship(
        "OrderLineConfirmation",
        back_populates="application",
        lazy="noload",
        cascade="all, delete-orphan",
    )
    snapshots: Mapped[list[ConfirmationSnapshot]] = relationship(
        "ConfirmationSnapshot", back_populates="application", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("units > 0", name="units_positive"),
        CheckConstraint("price_euros > 0", name="price_positive"),
        # CONFIRMED exactly when verified_at is stamped
        CheckConstraint(
            "(status = 'CONFIRMED' AND verified_at IS NOT NULL) "
            "OR (status = 'PENDING' AND verified_at IS NULL)",
            name="status_matches_verified_at",
        ),
        Index("ix_applications_supplier_id", "supplier_id"),
        Index("ix_applications_offer_id", "offer_id"),
        Index("ix_applications_status", "status"),
    )
