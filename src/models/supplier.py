from __future__ import annotations

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Supplier(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Supplier company. Users and logos live with the identity/storage provider."""

    __tablename__ = "suppliers"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    supplier_code: Mapped[str | None] = mapped_column(String(50), unique=True)
    family: Mapped[str] = mapped_column(String(100), nullable=False, server_default="")
    contact_email: Mapped[str | None] = mapped_column(String(255))

    __table_args__ = (
        Index("ix_suppliers_name", "name"),
    )
