"""Application (order) lifecycle service.

Covers order generation, verification, demote-on-edit of headline terms and
the confirmation write path. Each public write runs inside the request
transaction and flushes its rows through ``atomic`` as one unit.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.database.session import atomic
from src.exceptions import NotFoundException, ValidationException
from src.models.application import Application
from src.models.confirmation_snapshot import ConfirmationSnapshot
from src.models.enums import ApplicationEvent, ApplicationStatus
from src.models.offer import Offer
from src.models.order_line import OrderLine
from src.models.order_line_confirmation import OrderLineConfirmation
from src.models.supplier import Supplier
from src.modules.application.allocation import (
    ArticleAllocation,
    CandidateConfirmation,
    summarize_allocation,
)
from src.modules.application.constants import (
    APPLICATION_AGGREGATE,
    EVENT_APPLICATION_CONFIRMED,
    EVENT_APPLICATION_CREATED,
    EVENT_APPLICATION_REOPENED,
    ORDER_NUMBER_PREFIX,
)
from src.modules.application.ledger import ConfirmationDiff, ConfirmationLedger
from src.modules.application.state_machine import (
    next_application_status,
    parse_terms,
    terms_changed,
)
from src.modules.events.outbox_service import OutboxService
from src.modules.identity.auth import ActingUser
from src.modules.identity.permissions import ensure_supplier_access

logger = logging.getLogger(__name__)


class ApplicationService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.ledger = ConfirmationLedger(db)

    # ------------------------------------------------------------------
    # Reference number generation
    # ------------------------------------------------------------------

    async def _generate_order_number(self) -> str:
        """Generate ORD-YYYY-NNNNNN using a DB sequence."""
        result = await self.db.execute(text("SELECT nextval('order_number_seq')"))
        seq_val = result.scalar()
        year = datetime.now(UTC).year
        return f"{ORDER_NUMBER_PREFIX}-{year}-{seq_val:06d}"

    # ------------------------------------------------------------------
    # Order generation and reads
    # ------------------------------------------------------------------

    async def create_application(
        self,
        actor: ActingUser,
        supplier_id: uuid.UUID,
        units: int,
        term: str,
        price_euros: Decimal,
        offer_id: uuid.UUID | None = None,
        order_lines: Sequence[dict] = (),
    ) -> Application:
        """Generate an order in PENDING status, optionally itemized per article."""
        ensure_supplier_access(actor, supplier_id)
        terms = parse_terms(units, term, price_euros)

        supplier = await self.db.get(Supplier, supplier_id)
        if supplier is None:
            raise NotFoundException(f"Supplier {supplier_id} not found")
        offer = None
        if offer_id is not None:
            offer = await self.db.get(Offer, offer_id)
            if offer is None:
                raise NotFoundException(f"Offer {offer_id} not found")

        _check_order_lines(order_lines)

        application = Application(
            order_number=await self._generate_order_number(),
            offer_id=offer_id,
            supplier_id=supplier_id,
            units=terms.units,
            term=terms.term,
            price_euros=terms.price_euros,
            status=ApplicationStatus.PENDING,
            created_by=actor.id,
        )
        for line in order_lines:
            application.order_lines.append(
                OrderLine(
                    article_code=line["article_code"],
                    description=line["description"],
                    requested_units=line["requested_units"],
                    requested_term=line.get("requested_term"),
                    requested_price=line.get("requested_price"),
                )
            )

        async with atomic(self.db, "create application"):
            self.db.add(application)
            await self.db.flush()
            await self._publish(
                application,
                EVENT_APPLICATION_CREATED,
                {
                    "offer_number": offer.offer_number if offer else None,
                    "offer_description": offer.description if offer else None,
                    "supplier_name": supplier.name,
                    "line_count": len(order_lines),
                },
            )

        logger.info(
            "Created application %s for supplier %s (%d order lines)",
            application.order_number, supplier_id, len(order_lines),
        )
        return application

    async def get_application(self, application_id: uuid.UUID) -> Application:
        """Get an application with its order lines. Raises NotFoundException if not found."""
        result = await self.db.execute(
            select(Application)
            .options(selectinload(Application.order_lines))
            .where(Application.id == application_id)
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundException(f"Application {application_id} not found")
        return application

    async def _lock_application(self, application_id: uuid.UUID) -> Application:
        """Load an application under a row lock; serializes writes to its confirmations."""
        result = await self.db.execute(
            select(Application)
            .options(selectinload(Application.order_lines))
            .where(Application.id == application_id)
            .with_for_update()
        )
        application = result.scalar_one_or_none()
        if application is None:
            raise NotFoundException(f"Application {application_id} not found")
        return application

    async def get_order_lines(self, application_id: uuid.UUID) -> list[OrderLine]:
        application = await self.get_application(application_id)
        return list(application.order_lines)

    async def get_confirmations(self, application_id: uuid.UUID) -> list[OrderLineConfirmation]:
        await self.get_application(application_id)
        return await self.ledger.load_confirmations(application_id)

    async def list_snapshots(self, application_id: uuid.UUID) -> list[ConfirmationSnapshot]:
        await self.get_application(application_id)
        return await self.ledger.list_snapshots(application_id)

    async def allocation_summary(self, application_id: uuid.UUID) -> list[ArticleAllocation]:
        """Requested vs confirmed units per article, with the 100% flag."""
        application = await self.get_application(application_id)
        confirmations = await self.ledger.load_confirmations(application_id)
        return summarize_allocation(application.order_lines, confirmations)

    # ------------------------------------------------------------------
    # Headline terms
    # ------------------------------------------------------------------

    async def verify_application(
        self,
        actor: ActingUser,
        application_id: uuid.UUID,
        units: int | None = None,
        term: str | None = None,
        price_euros: Decimal | None = None,
    ) -> Application:
        """PENDING -> CONFIRMED with the (possibly corrected) terms and a snapshot."""
        application = await self._lock_application(application_id)
        ensure_supplier_access(actor, application.supplier_id)
        new_status = next_application_status(application.status, ApplicationEvent.VERIFY)
        terms = parse_terms(
            application.units if units is None else units,
            application.term if term is None else term,
            application.price_euros if price_euros is None else price_euros,
        )

        async with atomic(self.db, "verify application"):
            application.units = terms.units
            application.term = terms.term
            application.price_euros = terms.price_euros
            application.status = new_status
            application.verified_at = datetime.now(UTC)
            await self.ledger.write_snapshot(application, confirmed_by=actor.id)
            await self._publish(application, EVENT_APPLICATION_CONFIRMED)

        logger.info("Application %s verified by %s", application.order_number, actor.id)
        return application

    async def update_terms(
        self,
        actor: ActingUser,
        application_id: uuid.UUID,
        units: int,
        term: str,
        price_euros: Decimal,
    ) -> Application:
        """Save new units/term/price; a real change on a CONFIRMED application demotes it."""
        application = await self._lock_application(application_id)
        ensure_supplier_access(actor, application.supplier_id)
        terms = parse_terms(units, term, price_euros)

        changed = terms_changed(application, terms)
        if not changed:
            return application

        new_status = next_application_status(
            application.status, ApplicationEvent.EDIT_TERMS, changed=changed
        )
        async with atomic(self.db, "update application terms"):
            application.units = terms.units
            application.term = terms.term
            application.price_euros = terms.price_euros
            await self._move_to(application, new_status, reason="terms edited")
        return application

    # ------------------------------------------------------------------
    # Order-line confirmations
    # ------------------------------------------------------------------

    async def save_confirmations(
        self,
        actor: ActingUser,
        application_id: uuid.UUID,
        candidates: Sequence[CandidateConfirmation],
    ) -> ConfirmationDiff:
        """Replace the application's confirmation set with ``candidates``.

        The whole batch is validated first; any problem rejects it with zero
        writes. A changed set on a CONFIRMED application demotes it to
        PENDING in the same flush.
        """
        application = await self._lock_application(application_id)
        ensure_supplier_access(actor, application.supplier_id)
        return await self._save_candidate_set(application, candidates, "save confirmations")

    async def confirm_all(self, actor: ActingUser, application_id: uuid.UUID) -> ConfirmationDiff:
        """Confirm every order line exactly as requested."""
        application = await self._lock_application(application_id)
        ensure_supplier_access(actor, application.supplier_id)
        _ensure_order_lines(application)
        existing = await self.ledger.load_confirmations(application.id)
        candidates = ConfirmationLedger.confirm_all_candidates(application.order_lines, existing)
        return await self._save_candidate_set(
            application, candidates, "confirm all order lines", existing=existing
        )

    async def _save_candidate_set(
        self,
        application: Application,
        candidates: Sequence[CandidateConfirmation],
        operation: str,
        existing: Sequence[OrderLineConfirmation] | None = None,
    ) -> ConfirmationDiff:
        _ensure_order_lines(application)

        diff = await self.ledger.prepare(
            application, application.order_lines, candidates, existing=existing
        )
        if not diff.changed:
            return diff

        new_status = next_application_status(
            application.status, ApplicationEvent.EDIT_CONFIRMATIONS, changed=True
        )
        async with atomic(self.db, operation):
            await self.ledger.apply(diff)
            await self._move_to(application, new_status, reason="confirmations edited")

        logger.info(
            "Saved confirmations for %s (%d deleted, %d updated, %d inserted)",
            application.order_number,
            len(diff.to_delete), len(diff.to_update), len(diff.to_insert),
        )
        return diff

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _move_to(
        self, application: Application, new_status: ApplicationStatus, reason: str
    ) -> None:
        """Apply a status change, keeping verified_at consistent with the status."""
        if new_status == application.status:
            return
        old_status = application.status
        application.status = new_status
        if new_status == ApplicationStatus.PENDING:
            application.verified_at = None
            await self._publish(application, EVENT_APPLICATION_REOPENED, {"reason": reason})
        logger.info(
            "Application %s transitioned %s -> %s (%s)",
            application.order_number, old_status.value, new_status.value, reason,
        )

    async def _publish(
        self, application: Application, event_type: str, extra: dict | None = None
    ) -> None:
        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=event_type,
            aggregate_type=APPLICATION_AGGREGATE,
            aggregate_id=str(application.id),
            payload={
                "application_id": str(application.id),
                "order_number": application.order_number,
                "supplier_id": str(application.supplier_id),
                "offer_id": str(application.offer_id) if application.offer_id else None,
                "units": application.units,
                "term": application.term,
                "price_euros": str(application.price_euros),
                "status": application.status.value,
                **(extra or {}),
            },
        )


def _check_order_lines(order_lines: Sequence[dict]) -> None:
    errors = []
    seen: set[str] = set()
    for index, line in enumerate(order_lines):
        code = line["article_code"]
        if code in seen:
            errors.append({"field": f"order_lines[{index}].article_code", "message": f"duplicate article {code}"})
        seen.add(code)
        if line["requested_units"] <= 0:
            errors.append({"field": f"order_lines[{index}].requested_units", "message": "must be greater than zero"})
    if errors:
        raise ValidationException("Order lines are invalid", details=errors)


def _ensure_order_lines(application: Application) -> None:
    if not application.order_lines:
        raise ValidationException(
            f"Application {application.order_number} has no order lines to confirm"
        )
