import enum


class UserRole(str, enum.Enum):
    ADMIN = "ADMIN"
    SUPPLIER = "SUPPLIER"


# ── Offers ───────────────────────────────────────────────────────────────


class OfferStatus(str, enum.Enum):
    OPEN = "OPEN"
    APPLIED = "APPLIED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class OfferTransitionType(str, enum.Enum):
    SEND = "SEND"
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"


# ── Applications / Orders ────────────────────────────────────────────────


class ApplicationStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"


class ApplicationEvent(str, enum.Enum):
    VERIFY = "VERIFY"
    EDIT_TERMS = "EDIT_TERMS"
    EDIT_CONFIRMATIONS = "EDIT_CONFIRMATIONS"


# ── Event outbox ─────────────────────────────────────────────────────────


class EventStatus(str, enum.Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
