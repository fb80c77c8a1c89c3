"""Offer state machine transitions, event types, and editable states."""

from __future__ import annotations

from src.models.enums import OfferStatus, OfferTransitionType

# Valid transitions: from_status -> {transition_type -> to_status}
# Statuses missing from a row accept no transition at all.
VALID_TRANSITIONS: dict[OfferStatus, dict[OfferTransitionType, OfferStatus]] = {
    OfferStatus.OPEN: {
        OfferTransitionType.SEND: OfferStatus.APPLIED,
    },
    OfferStatus.APPLIED: {
        OfferTransitionType.ACCEPT: OfferStatus.ACCEPTED,
        OfferTransitionType.REJECT: OfferStatus.REJECTED,
    },
    OfferStatus.ACCEPTED: {},
    OfferStatus.REJECTED: {},
}

# Transitions decided by procurement staff rather than the supplier
REVIEW_TRANSITIONS: set[OfferTransitionType] = {
    OfferTransitionType.ACCEPT,
    OfferTransitionType.REJECT,
}

# Event type strings for the outbox
OFFER_AGGREGATE = "offer"
EVENT_OFFER_APPLIED = "offer.applied"
EVENT_OFFER_ACCEPTED = "offer.accepted"
EVENT_OFFER_REJECTED = "offer.rejected"

TRANSITION_EVENTS: dict[OfferTransitionType, str] = {
    OfferTransitionType.SEND: EVENT_OFFER_APPLIED,
    OfferTransitionType.ACCEPT: EVENT_OFFER_ACCEPTED,
    OfferTransitionType.REJECT: EVENT_OFFER_REJECTED,
}

# Statuses where confirmed line values can still be saved as a draft
EDITABLE_STATUSES: set[OfferStatus] = {
    OfferStatus.OPEN,
    OfferStatus.APPLIED,
}

OFFER_NUMBER_PREFIX = "OF"
