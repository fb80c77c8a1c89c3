"""Unit tests for OfferService: drafts, send and review."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from src.exceptions import (
    ForbiddenException,
    InvalidTransitionException,
    NotFoundException,
    ValidationException,
)
from src.models.enums import OfferStatus, OfferTransitionType
from src.models.event_outbox import EventOutbox
from src.models.offer_transition import OfferTransition
from src.modules.offer.service import OfferService
from src.modules.offer.validation import OfferLineInput

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def offer_service(mock_db):
    return OfferService(mock_db)


def _make_line(code="MAT-1", requested=100, units=None, price=None, term=None):
    line = MagicMock()
    line.id = uuid.uuid4()
    line.material_code = code
    line.requested_units = requested
    line.confirmed_units = units
    line.confirmed_price = price
    line.confirmed_term = term
    return line


def _make_offer(status=OfferStatus.OPEN, lines=None, applied_supplier_id=None):
    offer = MagicMock()
    offer.id = uuid.uuid4()
    offer.offer_number = "OF-2026-00001"
    offer.description = "Envases de vidrio 75cl"
    offer.status = status
    offer.applied_supplier_id = applied_supplier_id
    offer.applied_at = None
    offer.lines = lines if lines is not None else [_make_line()]
    offer.created_at = datetime.now(UTC)
    return offer


def _make_scalar_result(value):
    """Create a mock result that returns a scalar value."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalar.return_value = value
    scalars_mock = MagicMock()
    scalars_mock.all.return_value = [value] if value else []
    result.scalars.return_value = scalars_mock
    return result


def _added(mock_db, model):
    return [call.args[0] for call in mock_db.add.call_args_list if isinstance(call.args[0], model)]


# ---------------------------------------------------------------------------
# Create / get
# ---------------------------------------------------------------------------


class TestCreateOffer:
    @pytest.mark.asyncio
    async def test_create_offer_generates_number(self, offer_service, mock_db, admin_user):
        seq_result = MagicMock()
        seq_result.scalar.return_value = 42
        mock_db.execute.return_value = seq_result

        offer = await offer_service.create_offer(
            admin_user,
            description="Tapones de corcho",
            minimum_units=500,
            lines=[
                {"material_code": "TAP-1", "material_description": "Tapón natural", "requested_units": 500},
            ],
        )

        assert offer.offer_number == f"OF-{datetime.now(UTC).year}-00042"
        assert offer.status == OfferStatus.OPEN
        assert len(offer.lines) == 1
        mock_db.add.assert_called_once_with(offer)
        mock_db.flush.assert_awaited()

    @pytest.mark.asyncio
    async def test_suppliers_cannot_create_offers(self, offer_service, supplier_user):
        with pytest.raises(ForbiddenException):
            await offer_service.create_offer(supplier_user, description="x", minimum_units=1)

    @pytest.mark.asyncio
    async def test_requested_units_must_be_positive(self, offer_service, mock_db, admin_user):
        with pytest.raises(ValidationException):
            await offer_service.create_offer(
                admin_user,
                description="x",
                minimum_units=1,
                lines=[{"material_code": "A", "material_description": "A", "requested_units": 0}],
            )
        mock_db.add.assert_not_called()


class TestGetOffer:
    @pytest.mark.asyncio
    async def test_get_offer_not_found(self, offer_service, mock_db):
        mock_db.execute.return_value = _make_scalar_result(None)
        with pytest.raises(NotFoundException):
            await offer_service.get_offer(uuid.uuid4())


# ---------------------------------------------------------------------------
# Draft save
# ---------------------------------------------------------------------------


class TestSaveOfferLines:
    @pytest.mark.asyncio
    async def test_draft_save_keeps_status(self, offer_service, mock_db, supplier_user):
        offer = _make_offer()
        line = offer.lines[0]
        mock_db.execute.return_value = _make_scalar_result(offer)

        result = await offer_service.save_offer_lines(
            supplier_user, offer.id, [OfferLineInput(line_id=line.id, confirmed_units="40")]
        )

        assert result.status == OfferStatus.OPEN
        assert line.confirmed_units == Decimal("40")
        assert line.confirmed_price is None
        mock_db.flush.assert_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", [OfferStatus.ACCEPTED, OfferStatus.REJECTED])
    async def test_terminal_offer_lines_are_read_only(self, offer_service, mock_db, admin_user, status):
        offer = _make_offer(status=status)
        mock_db.execute.return_value = _make_scalar_result(offer)

        with pytest.raises(InvalidTransitionException):
            await offer_service.save_offer_lines(
                admin_user, offer.id, [OfferLineInput(line_id=offer.lines[0].id, confirmed_units="1")]
            )
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_applied_offer_only_editable_by_sender(
        self, offer_service, mock_db, supplier_user, other_supplier_user
    ):
        offer = _make_offer(status=OfferStatus.APPLIED, applied_supplier_id=supplier_user.supplier_id)
        mock_db.execute.return_value = _make_scalar_result(offer)

        with pytest.raises(ForbiddenException):
            await offer_service.save_offer_lines(
                other_supplier_user,
                offer.id,
                [OfferLineInput(line_id=offer.lines[0].id, confirmed_units="1")],
            )

    @pytest.mark.asyncio
    async def test_invalid_values_write_nothing(self, offer_service, mock_db, supplier_user):
        offer = _make_offer()
        line = offer.lines[0]
        mock_db.execute.return_value = _make_scalar_result(offer)

        with pytest.raises(ValidationException):
            await offer_service.save_offer_lines(
                supplier_user, offer.id, [OfferLineInput(line_id=line.id, confirmed_price="-3")]
            )
        assert line.confirmed_price is None
        mock_db.flush.assert_not_awaited()


# ---------------------------------------------------------------------------
# Send
# ---------------------------------------------------------------------------


class TestSendOffer:
    @pytest.mark.asyncio
    async def test_send_persists_lines_and_status(self, offer_service, mock_db, supplier_user):
        offer = _make_offer()
        line = offer.lines[0]
        mock_db.execute.return_value = _make_scalar_result(offer)

        result = await offer_service.send_offer(
            supplier_user,
            offer.id,
            [OfferLineInput(line_id=line.id, confirmed_units="100", confirmed_price="2.50")],
        )

        assert result.status == OfferStatus.APPLIED
        assert result.applied_supplier_id == supplier_user.supplier_id
        assert result.applied_at is not None
        assert line.confirmed_units == Decimal("100")
        assert line.confirmed_price == Decimal("2.50")

        transitions = _added(mock_db, OfferTransition)
        assert len(transitions) == 1
        assert transitions[0].from_status == OfferStatus.OPEN
        assert transitions[0].to_status == OfferStatus.APPLIED

        events = _added(mock_db, EventOutbox)
        assert [e.event_type for e in events] == ["offer.applied"]
        assert events[0].payload["lines"][0]["confirmed_units"] == "100"

    @pytest.mark.asyncio
    async def test_send_blocked_when_a_line_is_incomplete(self, offer_service, mock_db, supplier_user):
        complete = _make_line(code="MAT-1", units=Decimal("10"), price=Decimal("1"))
        incomplete = _make_line(code="MAT-2", units=Decimal("10"))
        offer = _make_offer(lines=[complete, incomplete])
        mock_db.execute.return_value = _make_scalar_result(offer)

        with pytest.raises(ValidationException) as exc_info:
            await offer_service.send_offer(supplier_user, offer.id)

        assert exc_info.value.details[0]["field"] == "lines[MAT-2].confirmed_price"
        assert offer.status == OfferStatus.OPEN
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_second_send_is_impossible(self, offer_service, mock_db, supplier_user):
        offer = _make_offer(
            status=OfferStatus.APPLIED,
            lines=[_make_line(units=Decimal("100"), price=Decimal("2.50"))],
        )
        mock_db.execute.return_value = _make_scalar_result(offer)

        with pytest.raises(InvalidTransitionException):
            await offer_service.send_offer(supplier_user, offer.id)

    @pytest.mark.asyncio
    async def test_admin_cannot_send(self, offer_service, admin_user):
        with pytest.raises(ForbiddenException):
            await offer_service.send_offer(admin_user, uuid.uuid4())


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


class TestReviewOffer:
    @pytest.mark.asyncio
    async def test_accept_applied_offer(self, offer_service, mock_db, admin_user, supplier_id):
        offer = _make_offer(status=OfferStatus.APPLIED, applied_supplier_id=supplier_id)
        mock_db.execute.return_value = _make_scalar_result(offer)

        result = await offer_service.review_offer(admin_user, offer.id, OfferTransitionType.ACCEPT)

        assert result.status == OfferStatus.ACCEPTED
        events = _added(mock_db, EventOutbox)
        assert events[0].event_type == "offer.accepted"
        assert events[0].payload["supplier_id"] == str(supplier_id)

    @pytest.mark.asyncio
    async def test_reject_records_reason(self, offer_service, mock_db, admin_user):
        offer = _make_offer(status=OfferStatus.APPLIED, applied_supplier_id=uuid.uuid4())
        mock_db.execute.return_value = _make_scalar_result(offer)

        await offer_service.review_offer(
            admin_user, offer.id, OfferTransitionType.REJECT, reason="Precio fuera de mercado"
        )

        transition = _added(mock_db, OfferTransition)[0]
        assert transition.to_status == OfferStatus.REJECTED
        assert transition.reason == "Precio fuera de mercado"

    @pytest.mark.asyncio
    async def test_send_is_not_a_review_decision(self, offer_service, admin_user):
        with pytest.raises(ValidationException):
            await offer_service.review_offer(admin_user, uuid.uuid4(), OfferTransitionType.SEND)

    @pytest.mark.asyncio
    async def test_supplier_cannot_review(self, offer_service, supplier_user):
        with pytest.raises(ForbiddenException):
            await offer_service.review_offer(supplier_user, uuid.uuid4(), OfferTransitionType.ACCEPT)

    @pytest.mark.asyncio
    async def test_reviewing_a_reviewed_offer_fails(self, offer_service, mock_db, admin_user):
        offer = _make_offer(status=OfferStatus.ACCEPTED)
        mock_db.execute.return_value = _make_scalar_result(offer)

        with pytest.raises(InvalidTransitionException):
            await offer_service.review_offer(admin_user, offer.id, OfferTransitionType.REJECT)
