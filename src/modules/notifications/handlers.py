"""Email notifications for offer and order events.

Registered with the EventHandlerRegistry at import time and run by the outbox
worker after the originating transaction has committed.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.orm import Session

from src.config import settings
from src.database.engine import sync_engine
from src.exceptions import NotificationException
from src.models.supplier import Supplier
from src.modules.application.constants import (
    EVENT_APPLICATION_CONFIRMED,
    EVENT_APPLICATION_CREATED,
)
from src.modules.events.handlers import EventHandlerRegistry
from src.modules.notifications import templates
from src.modules.notifications.email_client import EmailClient
from src.modules.offer.constants import (
    EVENT_OFFER_ACCEPTED,
    EVENT_OFFER_APPLIED,
    EVENT_OFFER_REJECTED,
)

logger = logging.getLogger(__name__)


def _load_supplier(supplier_id: str | None) -> Supplier | None:
    if not supplier_id:
        return None
    with Session(sync_engine) as session:
        return session.get(Supplier, uuid.UUID(supplier_id))


def _send(to: str | None, subject: str, html: str) -> None:
    if not settings.notifications_enabled:
        logger.debug("Notifications disabled; skipping '%s'", subject)
        return
    if not to:
        raise NotificationException(f"No recipient configured for '{subject}'")
    with EmailClient() as client:
        client.send([to], subject, html)


@EventHandlerRegistry.on(EVENT_APPLICATION_CREATED)
def notify_order_generated(payload: dict) -> None:
    """Tell the supplier a new order was generated for them."""
    supplier = _load_supplier(payload.get("supplier_id"))
    subject, html = templates.order_generated(payload)
    _send(supplier.contact_email if supplier else None, subject, html)


@EventHandlerRegistry.on(EVENT_OFFER_APPLIED)
def notify_offer_applied(payload: dict) -> None:
    """Tell procurement staff a supplier sent its proposal."""
    supplier = _load_supplier(payload.get("supplier_id"))
    subject, html = templates.offer_applied(payload, supplier.name if supplier else "Proveedor")
    _send(settings.staff_notification_email, subject, html)


@EventHandlerRegistry.on(EVENT_OFFER_ACCEPTED, EVENT_OFFER_REJECTED)
def notify_offer_reviewed(payload: dict) -> None:
    """Tell the supplier whether its proposal was accepted or rejected."""
    supplier = _load_supplier(payload.get("supplier_id"))
    subject, html = templates.offer_reviewed(payload)
    _send(supplier.contact_email if supplier else None, subject, html)


@EventHandlerRegistry.on(EVENT_APPLICATION_CONFIRMED)
def notify_order_confirmed(payload: dict) -> None:
    """Tell procurement staff an order was verified."""
    supplier = _load_supplier(payload.get("supplier_id"))
    subject, html = templates.order_confirmed(payload, supplier.name if supplier else "Proveedor")
    _send(settings.staff_notification_email, subject, html)
