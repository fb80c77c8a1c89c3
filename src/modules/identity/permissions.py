"""Ownership checks applied at every write entry point."""

import uuid

from src.exceptions import ForbiddenException
from src.modules.identity.auth import ActingUser


def require_admin(actor: ActingUser) -> None:
    """Raise ForbiddenException unless the actor is procurement staff."""
    if not actor.is_admin:
        raise ForbiddenException("This action requires an admin user")


def require_supplier(actor: ActingUser) -> uuid.UUID:
    """Return the actor's supplier id, or raise if the actor is not a supplier."""
    if actor.supplier_id is None:
        raise ForbiddenException("This action requires a supplier user")
    return actor.supplier_id


def ensure_supplier_access(actor: ActingUser, supplier_id: uuid.UUID | None) -> None:
    """Admins may act on any supplier's records; suppliers only on their own."""
    if actor.is_admin:
        return
    if actor.supplier_id is None or actor.supplier_id != supplier_id:
        raise ForbiddenException("You can only modify your own supplier records")
