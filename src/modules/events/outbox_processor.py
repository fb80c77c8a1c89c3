"""OutboxProcessor: synchronous batch processor for Celery workers."""

import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session

from src.database.engine import sync_engine
from src.exceptions import NotificationException
from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox
from src.models.processed_event import ProcessedEvent
from src.modules.events.handlers import EventHandlerRegistry

logger = logging.getLogger(__name__)

PROCESSED_EVENT_TTL = timedelta(days=7)
COMPLETED_EVENT_RETENTION = timedelta(days=30)


class OutboxProcessor:
    """Delivers committed outbox events to their handlers.

    Uses SELECT ... FOR UPDATE SKIP LOCKED for safe multi-worker concurrency
    and the processed_events table for idempotency. A failing handler only
    bumps the event's retry counter; the offer or application that produced
    the event is never touched from here.
    """

    def __init__(self, engine: Engine | None = None) -> None:
        self.engine = engine or sync_engine

    def process_batch(self, batch_size: int = 50) -> dict:
        """Process a batch of pending events.

        Returns dict with 'processed' and 'failed' counts.
        """
        processed_count = 0
        failed_count = 0

        with Session(self.engine) as session:
            pending = (
                session.execute(
                    select(EventOutbox)
                    .where(EventOutbox.status == EventStatus.PENDING)
                    .order_by(EventOutbox.created_at.asc())
                    .limit(batch_size)
                    .with_for_update(skip_locked=True)
                )
                .scalars()
                .all()
            )
            # Detach plain values up front; rollbacks below expire the ORM rows
            work = [(event.id, event.event_type, dict(event.payload or {})) for event in pending]

            for event_id, event_type, payload in work:
                try:
                    self._deliver(session, event_id, event_type, payload)
                    session.commit()
                    processed_count += 1
                except Exception as exc:
                    session.rollback()
                    if isinstance(exc, NotificationException):
                        logger.warning("Event %s (%s) not delivered: %s", event_id, event_type, exc)
                    else:
                        logger.exception("Failed to process event %s (type=%s)", event_id, event_type)
                    self._record_failure(session, event_id, str(exc))
                    session.commit()
                    failed_count += 1

        return {"processed": processed_count, "failed": failed_count}

    def _deliver(self, session: Session, event_id, event_type: str, payload: dict) -> None:
        event = session.get(EventOutbox, event_id)
        already_processed = session.execute(
            select(ProcessedEvent.id).where(ProcessedEvent.event_id == event_id).limit(1)
        ).first()
        if already_processed is None:
            results = EventHandlerRegistry.dispatch(event_type, payload)
            handler_errors = [r for r in results if r["status"] == "error"]
            if handler_errors:
                raise NotificationException(
                    "; ".join(f"{r['handler']}: {r['error']}" for r in handler_errors)
                )
            session.add(
                ProcessedEvent(
                    event_id=event_id,
                    event_type=event_type,
                    handler_name=",".join(r["handler"] for r in results) or "no_handlers",
                    expires_at=datetime.now(UTC) + PROCESSED_EVENT_TTL,
                )
            )
        event.status = EventStatus.COMPLETED
        event.processed_at = datetime.now(UTC)

    @staticmethod
    def _record_failure(session: Session, event_id, error: str) -> None:
        """Increment retry_count; park the event as FAILED once max_retries is hit."""
        event = session.get(EventOutbox, event_id)
        if event is None:
            return
        event.retry_count += 1
        event.last_error = error
        event.status = (
            EventStatus.FAILED if event.retry_count >= event.max_retries else EventStatus.PENDING
        )

    def cleanup_expired(self) -> int:
        """Delete expired processed_events and old completed outbox events.

        Returns total number of rows deleted.
        """
        now = datetime.now(UTC)
        with Session(self.engine) as session:
            total_deleted = session.execute(
                delete(ProcessedEvent).where(ProcessedEvent.expires_at < now)
            ).rowcount
            total_deleted += session.execute(
                delete(EventOutbox).where(
                    EventOutbox.status == EventStatus.COMPLETED,
                    EventOutbox.processed_at < now - COMPLETED_EVENT_RETENTION,
                )
            ).rowcount
            session.commit()

        logger.info("Cleaned up %d expired event records", total_deleted)
        return total_deleted
