"""Pure offer status transitions.

Every (status, transition) pair has a defined outcome: the next status, or an
``InvalidTransitionException``. Nothing here touches the database.
"""

from __future__ import annotations

from src.exceptions import InvalidTransitionException
from src.models.enums import OfferStatus, OfferTransitionType
from src.modules.offer.constants import EDITABLE_STATUSES, VALID_TRANSITIONS


def next_offer_status(current: OfferStatus, transition: OfferTransitionType) -> OfferStatus:
    """Return the status reached by applying ``transition`` to ``current``."""
    allowed = VALID_TRANSITIONS.get(current, {})
    if transition not in allowed:
        raise InvalidTransitionException(
            f"Cannot perform '{transition.value}' from status '{current.value}'. "
            f"Allowed transitions: {[t.value for t in allowed]}",
            details=[{"field": "status", "message": current.value}],
        )
    return allowed[transition]


def ensure_lines_editable(current: OfferStatus) -> None:
    """Raise unless confirmed line values may still be written."""
    if current not in EDITABLE_STATUSES:
        raise InvalidTransitionException(
            f"Offer is '{current.value}'; its lines are read-only",
            details=[{"field": "status", "message": current.value}],
        )
