"""ConfirmationLedger: reconciles stored confirmations and writes snapshots."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import ValidationException
from src.models.application import Application
from src.models.confirmation_snapshot import ConfirmationSnapshot
from src.models.order_line import OrderLine
from src.models.order_line_confirmation import OrderLineConfirmation
from src.modules.application.allocation import (
    CandidateConfirmation,
    ValidConfirmation,
    validate_allocation,
)

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationDiff:
    """Rows to delete, update and insert to turn the stored set into the new one."""

    application_id: uuid.UUID
    to_delete: list[OrderLineConfirmation] = field(default_factory=list)
    to_update: list[tuple[OrderLineConfirmation, ValidConfirmation]] = field(default_factory=list)
    to_insert: list[ValidConfirmation] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.to_delete or self.to_update or self.to_insert)


class ConfirmationLedger:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def load_confirmations(self, application_id: uuid.UUID) -> list[OrderLineConfirmation]:
        result = await self.db.execute(
            select(OrderLineConfirmation)
            .where(OrderLineConfirmation.application_id == application_id)
            .order_by(OrderLineConfirmation.article_code, OrderLineConfirmation.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    def confirm_all_candidates(
        order_lines: Sequence[OrderLine],
        existing: Sequence[OrderLineConfirmation] = (),
        today: date | None = None,
    ) -> list[CandidateConfirmation]:
        """One confirmation per order line, taken verbatim from what was requested.

        A missing requested term becomes today's date. When a line already has
        exactly one stored confirmation, that row is reused so an unchanged
        line is not deleted and re-inserted. The result still goes through
        allocation checks like any other batch.
        """
        fallback_term = (today or datetime.now(UTC).date()).isoformat()
        stored: dict[uuid.UUID, list[OrderLineConfirmation]] = defaultdict(list)
        for row in existing:
            stored[row.order_line_id].append(row)

        candidates = []
        for line in order_lines:
            rows = stored.get(line.id, [])
            candidates.append(
                CandidateConfirmation(
                    order_line_id=line.id,
                    confirmed_units=line.requested_units,
                    confirmed_term=line.requested_term or fallback_term,
                    confirmed_price=line.requested_price,
                    id=rows[0].id if len(rows) == 1 else None,
                )
            )
        return candidates

    @staticmethod
    def diff_confirmations(
        application_id: uuid.UUID,
        existing: Sequence[OrderLineConfirmation],
        confirmations: Sequence[ValidConfirmation],
    ) -> ConfirmationDiff:
        """Match the new set against stored rows by id."""
        stored = {row.id: row for row in existing}
        diff = ConfirmationDiff(application_id=application_id)
        kept: set[uuid.UUID] = set()

        for confirmation in confirmations:
            if confirmation.id is None:
                diff.to_insert.append(confirmation)
                continue
            row = stored.get(confirmation.id)
            if row is None or confirmation.id in kept:
                raise ValidationException(
                    f"Confirmation {confirmation.id} does not belong to this order",
                    details=[{"field": "confirmations.id", "message": str(confirmation.id)}],
                )
            kept.add(confirmation.id)
            if _differs(row, confirmation):
                diff.to_update.append((row, confirmation))

        diff.to_delete = [row for row in existing if row.id not in kept]
        return diff

    async def prepare(
        self,
        application: Application,
        order_lines: Sequence[OrderLine],
        candidates: Sequence[CandidateConfirmation],
        existing: Sequence[OrderLineConfirmation] | None = None,
    ) -> ConfirmationDiff:
        """Validate the batch and work out the changes. Performs no writes.

        ``existing`` is loaded when the caller has not already done so.

        Raises ``AllocationRejectedException`` with every problem found.
        """
        result = validate_allocation(order_lines, candidates)
        if not result.ok:
            logger.debug(
                "Rejected confirmation batch for %s: %d problem(s)",
                application.order_number, len(result.errors),
            )
        result.raise_for_errors()

        if existing is None:
            existing = await self.load_confirmations(application.id)
        return self.diff_confirmations(application.id, existing, result.confirmations)

    async def apply(self, diff: ConfirmationDiff) -> None:
        """Stage deletes, updates and inserts. The caller flushes them as one unit."""
        for row in diff.to_delete:
            await self.db.delete(row)
        for row, confirmation in diff.to_update:
            row.order_line_id = confirmation.order_line_id
            row.article_code = confirmation.article_code
            row.confirmed_units = confirmation.confirmed_units
            row.confirmed_term = confirmation.confirmed_term
            row.confirmed_price = confirmation.confirmed_price
        for confirmation in diff.to_insert:
            self.db.add(
                OrderLineConfirmation(
                    application_id=diff.application_id,
                    order_line_id=confirmation.order_line_id,
                    article_code=confirmation.article_code,
                    confirmed_units=confirmation.confirmed_units,
                    confirmed_term=confirmation.confirmed_term,
                    confirmed_price=confirmation.confirmed_price,
                )
            )
        logger.debug(
            "Confirmation diff for %s: %d deleted, %d updated, %d inserted",
            diff.application_id, len(diff.to_delete), len(diff.to_update), len(diff.to_insert),
        )

    async def write_snapshot(
        self,
        application: Application,
        confirmed_by: uuid.UUID | None,
    ) -> ConfirmationSnapshot:
        """Record the terms the application is being confirmed with. Never updated afterwards."""
        confirmations = await self.load_confirmations(application.id)
        snapshot = ConfirmationSnapshot(
            application_id=application.id,
            supplier_id=application.supplier_id,
            offer_id=application.offer_id,
            units=application.units,
            term=application.term,
            price_euros=application.price_euros,
            lines=[
                {
                    "order_line_id": str(row.order_line_id),
                    "article_code": row.article_code,
                    "confirmed_units": str(row.confirmed_units),
                    "confirmed_term": row.confirmed_term,
                    "confirmed_price": str(row.confirmed_price),
                }
                for row in confirmations
            ],
            confirmed_by=confirmed_by,
            confirmed_at=application.verified_at or datetime.now(UTC),
        )
        self.db.add(snapshot)
        return snapshot

    async def list_snapshots(self, application_id: uuid.UUID) -> list[ConfirmationSnapshot]:
        result = await self.db.execute(
            select(ConfirmationSnapshot)
            .where(ConfirmationSnapshot.application_id == application_id)
            .order_by(ConfirmationSnapshot.confirmed_at.asc())
        )
        return list(result.scalars().all())


def _differs(row: OrderLineConfirmation, confirmation: ValidConfirmation) -> bool:
    return (
        row.order_line_id != confirmation.order_line_id
        or row.confirmed_units != confirmation.confirmed_units
        or row.confirmed_term != confirmation.confirmed_term
        or row.confirmed_price != confirmation.confirmed_price
    )
