# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from src.models.application import Application
from src.models.confirmation_snapshot import ConfirmationSnapshot
from src.models.enums import (
    ApplicationEvent,
    ApplicationStatus,
    EventStatus,
    OfferStatus,
    OfferTransitionType,
    UserRole,
)
from src.models.event_outbox import EventOutbox
from src.models.offer import Offer
from src.models.offer_line import OfferLine
from src.models.offer_transition import OfferTransition
from src.models.order_line import OrderLine
from src.models.order_line_confirmation import OrderLineConfirmation
from src.models.processed_event import ProcessedEvent
from src.models.supplier import Supplier

__all__ = [
    "Application",
    "ApplicationEvent",
    "ApplicationStatus",
    "ConfirmationSnapshot",
    "EventOutbox",
    "EventStatus",
    "Offer",
    "OfferLine",
    "OfferStatus",
    "OfferTransition",
    "OfferTransitionType",
    "OrderLine",
    "OrderLineConfirmation",
    "ProcessedEvent",
    "Supplier",
    "UserRole",
]
