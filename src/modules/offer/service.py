"""Offer lifecycle service: creation, draft line saves, send, staff review."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.database.session import atomic
from src.exceptions import NotFoundException, ValidationException
from src.models.enums import OfferStatus, OfferTransitionType
from src.models.offer import Offer
from src.models.offer_line import OfferLine
from src.models.offer_transition import OfferTransition
from src.modules.events.outbox_service import OutboxService
from src.modules.identity.auth import ActingUser
from src.modules.identity.permissions import ensure_supplier_access, require_admin, require_supplier
from src.modules.offer.constants import (
    OFFER_AGGREGATE,
    OFFER_NUMBER_PREFIX,
    REVIEW_TRANSITIONS,
    TRANSITION_EVENTS,
)
from src.modules.offer.state_machine import ensure_lines_editable, next_offer_status
from src.modules.offer.validation import (
    LineValues,
    OfferLineInput,
    check_ready_to_send,
    merge_line_inputs,
)

logger = logging.getLogger(__name__)


class OfferService:
    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Reference number generation
    # ------------------------------------------------------------------

    async def _generate_offer_number(self) -> str:
        """Generate OF-YYYY-NNNNN using a DB sequence."""
        result = await self.db.execute(text("SELECT nextval('offer_number_seq')"))
        seq_val = result.scalar()
        year = datetime.now(UTC).year
        return f"{OFFER_NUMBER_PREFIX}-{year}-{seq_val:05d}"

    # ------------------------------------------------------------------
    # CRUD
    # ------------------------------------------------------------------

    async def create_offer(
        self,
        actor: ActingUser,
        description: str,
        minimum_units: int,
        deadline: datetime | None = None,
        lines: Sequence[dict] = (),
    ) -> Offer:
        """Create a new offer in OPEN status with its requested lines."""
        require_admin(actor)
        if minimum_units <= 0:
            raise ValidationException(
                "Minimum units must be greater than zero",
                details=[{"field": "minimum_units", "message": "must be greater than zero"}],
            )
        bad_lines = [line["material_code"] for line in lines if line["requested_units"] <= 0]
        if bad_lines:
            raise ValidationException(
                "Requested units must be greater than zero",
                details=[
                    {"field": f"lines[{code}].requested_units", "message": "must be greater than zero"}
                    for code in bad_lines
                ],
            )

        offer = Offer(
            offer_number=await self._generate_offer_number(),
            description=description,
            minimum_units=minimum_units,
            deadline=deadline,
            status=OfferStatus.OPEN,
        )
        for line in lines:
            offer.lines.append(
                OfferLine(
                    material_code=line["material_code"],
                    material_description=line["material_description"],
                    requested_units=line["requested_units"],
                    deadline=line.get("deadline"),
                    reference_price=line.get("reference_price"),
                )
            )

        async with atomic(self.db, "create offer"):
            self.db.add(offer)
        logger.info("Created offer %s (%s) with %d lines", offer.id, offer.offer_number, len(lines))
        return offer

    async def get_offer(self, offer_id: uuid.UUID) -> Offer:
        """Get an offer with its lines. Raises NotFoundException if not found."""
        result = await self.db.execute(
            select(Offer).options(selectinload(Offer.lines)).where(Offer.id == offer_id)
        )
        offer = result.scalar_one_or_none()
        if offer is None:
            raise NotFoundException(f"Offer {offer_id} not found")
        return offer

    async def _lock_offer(self, offer_id: uuid.UUID) -> Offer:
        """Load an offer and its lines under a row lock for the current transaction."""
        result = await self.db.execute(
            select(Offer)
            .options(selectinload(Offer.lines))
            .where(Offer.id == offer_id)
            .with_for_update()
        )
        offer = result.scalar_one_or_none()
        if offer is None:
            raise NotFoundException(f"Offer {offer_id} not found")
        return offer

    # ------------------------------------------------------------------
    # Supplier proposal
    # ------------------------------------------------------------------

    async def save_offer_lines(
        self,
        actor: ActingUser,
        offer_id: uuid.UUID,
        line_inputs: Sequence[OfferLineInput],
    ) -> Offer:
        """Save confirmed line values without changing the offer status.

        Allowed while the offer is not terminal. Once applied, only the
        supplier who sent it (or staff) may change the values.
        """
        offer = await self._lock_offer(offer_id)
        ensure_lines_editable(offer.status)
        if offer.status == OfferStatus.APPLIED:
            ensure_supplier_access(actor, offer.applied_supplier_id)

        values = merge_line_inputs(offer.lines, line_inputs)
        async with atomic(self.db, "save offer lines"):
            self._apply_line_values(offer, values)

        logger.debug("Saved draft values for %d lines on offer %s", len(line_inputs), offer_id)
        return offer

    async def send_offer(
        self,
        actor: ActingUser,
        offer_id: uuid.UUID,
        line_inputs: Sequence[OfferLineInput] = (),
    ) -> Offer:
        """OPEN -> APPLIED: persist every line's confirmed values and the status together."""
        supplier_id = require_supplier(actor)
        offer = await self._lock_offer(offer_id)
        new_status = next_offer_status(offer.status, OfferTransitionType.SEND)

        values = merge_line_inputs(offer.lines, line_inputs)
        check_ready_to_send(values)

        old_status = offer.status
        async with atomic(self.db, "send offer"):
            self._apply_line_values(offer, values)
            offer.status = new_status
            offer.applied_supplier_id = supplier_id
            offer.applied_at = datetime.now(UTC)
            await self._record_transition(
                offer,
                old_status,
                OfferTransitionType.SEND,
                actor,
                supplier_id=supplier_id,
                extra_payload={
                    "lines": [
                        {
                            "material_code": value.material_code,
                            "confirmed_units": str(value.confirmed_units),
                            "confirmed_price": str(value.confirmed_price),
                            "confirmed_term": value.confirmed_term,
                        }
                        for value in values
                    ],
                },
            )

        logger.info("Offer %s sent by supplier %s", offer.offer_number, supplier_id)
        return offer

    # ------------------------------------------------------------------
    # Staff review
    # ------------------------------------------------------------------

    async def review_offer(
        self,
        actor: ActingUser,
        offer_id: uuid.UUID,
        decision: OfferTransitionType,
        reason: str | None = None,
    ) -> Offer:
        """APPLIED -> ACCEPTED | REJECTED. Both outcomes are terminal."""
        require_admin(actor)
        if decision not in REVIEW_TRANSITIONS:
            raise ValidationException(
                f"'{decision.value}' is not a review decision",
                details=[{"field": "decision", "message": "must be ACCEPT or REJECT"}],
            )

        offer = await self._lock_offer(offer_id)
        old_status = offer.status
        new_status = next_offer_status(old_status, decision)

        async with atomic(self.db, "review offer"):
            offer.status = new_status
            await self._record_transition(
                offer,
                old_status,
                decision,
                actor,
                supplier_id=offer.applied_supplier_id,
                reason=reason,
            )

        logger.info(
            "Offer %s transitioned %s -> %s via %s",
            offer.offer_number, old_status.value, new_status.value, decision.value,
        )
        return offer

    async def get_transitions(self, offer_id: uuid.UUID) -> list[OfferTransition]:
        """Audit history of an offer, oldest first."""
        result = await self.db.execute(
            select(OfferTransition)
            .where(OfferTransition.offer_id == offer_id)
            .order_by(OfferTransition.created_at.asc())
        )
        return list(result.scalars().all())

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _apply_line_values(offer: Offer, values: Sequence[LineValues]) -> None:
        by_id = {value.line_id: value for value in values}
        for line in offer.lines:
            value = by_id[line.id]
            line.confirmed_units = value.confirmed_units
            line.confirmed_price = value.confirmed_price
            line.confirmed_term = value.confirmed_term

    async def _record_transition(
        self,
        offer: Offer,
        old_status: OfferStatus,
        transition_type: OfferTransitionType,
        actor: ActingUser,
        supplier_id: uuid.UUID | None = None,
        reason: str | None = None,
        extra_payload: dict | None = None,
    ) -> None:
        """Write the audit row and the outbox event for one transition."""
        self.db.add(
            OfferTransition(
                offer_id=offer.id,
                from_status=old_status,
                to_status=offer.status,
                transition_type=transition_type,
                triggered_by=actor.id,
                supplier_id=supplier_id,
                reason=reason,
            )
        )
        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=TRANSITION_EVENTS[transition_type],
            aggregate_type=OFFER_AGGREGATE,
            aggregate_id=str(offer.id),
            payload={
                "offer_id": str(offer.id),
                "offer_number": offer.offer_number,
                "description": offer.description,
                "from_status": old_status.value,
                "to_status": offer.status.value,
                "supplier_id": str(supplier_id) if supplier_id else None,
                "triggered_by": str(actor.id),
                "reason": reason,
                **(extra_payload or {}),
            },
        )
