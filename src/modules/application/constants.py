"""Application (order) state machine transitions and event types."""

from __future__ import annotations

from src.models.enums import ApplicationEvent, ApplicationStatus

# from_status -> {event -> to_status}. Edit events only move the status when
# the edit actually changed something; see state_machine.next_application_status.
VALID_TRANSITIONS: dict[ApplicationStatus, dict[ApplicationEvent, ApplicationStatus]] = {
    ApplicationStatus.PENDING: {
        ApplicationEvent.VERIFY: ApplicationStatus.CONFIRMED,
        ApplicationEvent.EDIT_TERMS: ApplicationStatus.PENDING,
        ApplicationEvent.EDIT_CONFIRMATIONS: ApplicationStatus.PENDING,
    },
    ApplicationStatus.CONFIRMED: {
        ApplicationEvent.EDIT_TERMS: ApplicationStatus.PENDING,
        ApplicationEvent.EDIT_CONFIRMATIONS: ApplicationStatus.PENDING,
    },
}

# Event type strings for the outbox
APPLICATION_AGGREGATE = "application"
EVENT_APPLICATION_CREATED = "application.created"
EVENT_APPLICATION_CONFIRMED = "application.confirmed"
EVENT_APPLICATION_REOPENED = "application.reopened"

ORDER_NUMBER_PREFIX = "ORD"
