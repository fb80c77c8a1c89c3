"""OutboxService: records domain events inside the caller's transaction."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.enums import EventStatus
from src.models.event_outbox import EventOutbox


class OutboxService:
    """Writes outbox rows next to the state change that produced them.

    Nothing is sent from here. Delivery happens after commit in the Celery
    outbox worker, so notifications can neither block nor undo a transition.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
        schema_version: int = 1,
    ) -> EventOutbox:
        """Create a new event in the outbox with PENDING status."""
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status=EventStatus.PENDING,
            schema_version=schema_version,
        )
        self.session.add(event)
        await self.session.flush()
        return event

    async def events_for_aggregate(
        self, aggregate_type: str, aggregate_id: str
    ) -> list[EventOutbox]:
        """All events recorded for one offer or application, oldest first."""
        statement = (
            select(EventOutbox)
            .where(
                EventOutbox.aggregate_type == aggregate_type,
                EventOutbox.aggregate_id == aggregate_id,
            )
            .order_by(EventOutbox.created_at.asc())
        )
        result = await self.session.execute(statement)
        return list(result.scalars().all())
