"""Celery tasks for event outbox processing."""

from celery_app import celery
from src.config import settings
from src.modules.events.outbox_processor import OutboxProcessor
from src.modules.notifications import handlers as _notification_handlers  # noqa: F401  (registers handlers)


@celery.task(name="src.modules.events.tasks.process_outbox")
def process_outbox():
    """Deliver a batch of pending outbox events to the notification handlers."""
    processor = OutboxProcessor()
    return processor.process_batch(batch_size=settings.event_outbox_batch_size)


@celery.task(name="src.modules.events.tasks.cleanup_processed_events")
def cleanup_processed_events():
    """Delete expired processed_events and old completed outbox entries."""
    processor = OutboxProcessor()
    return processor.cleanup_expired()
