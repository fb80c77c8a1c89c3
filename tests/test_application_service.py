"""Unit tests for application transitions and ApplicationService guards."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from src.exceptions import (
    AllocationRejectedException,
    ForbiddenException,
    InvalidTransitionException,
    ValidationException,
)
from src.models.confirmation_snapshot import ConfirmationSnapshot
from src.models.enums import ApplicationEvent, ApplicationStatus
from src.models.event_outbox import EventOutbox
from src.models.order_line_confirmation import OrderLineConfirmation
from src.modules.application.allocation import CandidateConfirmation
from src.modules.application.service import ApplicationService
from src.modules.application.state_machine import (
    Terms,
    next_application_status,
    parse_terms,
    terms_changed,
)

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def application_service(mock_db):
    return ApplicationService(mock_db)


def _make_application(supplier_id, status=ApplicationStatus.PENDING, order_lines=None):
    application = MagicMock()
    application.id = uuid.uuid4()
    application.order_number = "ORD-2026-000001"
    application.offer_id = None
    application.supplier_id = supplier_id
    application.units = 1000
    application.term = "30 días"
    application.price_euros = Decimal("100.00")
    application.status = status
    application.verified_at = datetime.now(UTC) if status == ApplicationStatus.CONFIRMED else None
    application.order_lines = order_lines if order_lines is not None else []
    return application


def _order_line(code="ABC-1", requested=50):
    return SimpleNamespace(
        id=uuid.uuid4(),
        article_code=code,
        description=code,
        requested_units=requested,
        requested_term="2026-12-01",
        requested_price=Decimal("1.20"),
    )


def _make_scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    scalars_mock = MagicMock()
    scalars_mock.all.return_value = []
    result.scalars.return_value = scalars_mock
    return result


def _make_rows_result(rows):
    result = MagicMock()
    scalars_mock = MagicMock()
    scalars_mock.all.return_value = list(rows)
    result.scalars.return_value = scalars_mock
    return result


def _added(mock_db, model):
    return [call.args[0] for call in mock_db.add.call_args_list if isinstance(call.args[0], model)]


# ---------------------------------------------------------------------------
# Pure transition functions
# ---------------------------------------------------------------------------


class TestNextApplicationStatus:
    def test_verify_confirms_pending(self):
        assert (
            next_application_status(ApplicationStatus.PENDING, ApplicationEvent.VERIFY)
            == ApplicationStatus.CONFIRMED
        )

    def test_verify_on_confirmed_is_rejected(self):
        with pytest.raises(InvalidTransitionException):
            next_application_status(ApplicationStatus.CONFIRMED, ApplicationEvent.VERIFY)

    @pytest.mark.parametrize("event", [ApplicationEvent.EDIT_TERMS, ApplicationEvent.EDIT_CONFIRMATIONS])
    def test_changed_edit_demotes_confirmed(self, event):
        assert (
            next_application_status(ApplicationStatus.CONFIRMED, event, changed=True)
            == ApplicationStatus.PENDING
        )

    @pytest.mark.parametrize("event", [ApplicationEvent.EDIT_TERMS, ApplicationEvent.EDIT_CONFIRMATIONS])
    def test_unchanged_edit_keeps_confirmed(self, event):
        assert (
            next_application_status(ApplicationStatus.CONFIRMED, event, changed=False)
            == ApplicationStatus.CONFIRMED
        )

    def test_edits_on_pending_stay_pending(self):
        assert (
            next_application_status(ApplicationStatus.PENDING, ApplicationEvent.EDIT_TERMS)
            == ApplicationStatus.PENDING
        )


class TestParseTerms:
    def test_valid_terms(self):
        terms = parse_terms("1000", " 30 días ", "99.90")
        assert terms == Terms(units=1000, term="30 días", price_euros=Decimal("99.90"))

    @pytest.mark.parametrize("units", [0, -5, "2.5", "abc", None, True])
    def test_units_must_be_positive_integers(self, units):
        with pytest.raises(ValidationException) as exc_info:
            parse_terms(units, "30 días", "10")
        assert exc_info.value.details[0]["field"] == "units"

    def test_all_problems_reported_together(self):
        with pytest.raises(ValidationException) as exc_info:
            parse_terms(0, "", "0")
        assert [d["field"] for d in exc_info.value.details] == ["units", "term", "price_euros"]

    def test_price_finer_than_cents_is_rejected(self):
        with pytest.raises(ValidationException) as exc_info:
            parse_terms("1000", "30 días", "100.004")
        assert exc_info.value.details == [
            {"field": "price_euros", "message": "must have at most 2 decimal places"}
        ]

    @pytest.mark.parametrize("price", ["100.00", "100.000", "100"])
    def test_price_with_cents_or_trailing_zeros_is_accepted(self, price):
        assert parse_terms("1000", "30 días", price).price_euros == Decimal("100")

    def test_terms_changed_compares_each_field(self):
        application = SimpleNamespace(units=10, term="30 días", price_euros=Decimal("100.00"))
        assert not terms_changed(application, Terms(10, "30 días", Decimal("100")))
        assert terms_changed(application, Terms(10, "30 días", Decimal("120.00")))
        assert terms_changed(application, Terms(11, "30 días", Decimal("100")))
        assert terms_changed(application, Terms(10, "60 días", Decimal("100")))


# ---------------------------------------------------------------------------
# Verify / edit terms
# ---------------------------------------------------------------------------


class TestVerifyApplication:
    @pytest.mark.asyncio
    async def test_verify_sets_confirmed_and_writes_snapshot(
        self, application_service, mock_db, supplier_user
    ):
        application = _make_application(supplier_user.supplier_id)
        mock_db.execute.side_effect = [_make_scalar_result(application), _make_rows_result([])]

        result = await application_service.verify_application(
            supplier_user, application.id, price_euros=Decimal("95.00")
        )

        assert result.status == ApplicationStatus.CONFIRMED
        assert result.verified_at is not None
        assert result.price_euros == Decimal("95.00")
        snapshots = _added(mock_db, ConfirmationSnapshot)
        assert len(snapshots) == 1
        assert snapshots[0].price_euros == Decimal("95.00")
        assert snapshots[0].confirmed_by == supplier_user.id
        assert [e.event_type for e in _added(mock_db, EventOutbox)] == ["application.confirmed"]

    @pytest.mark.asyncio
    async def test_verify_twice_is_rejected(self, application_service, mock_db, supplier_user):
        application = _make_application(supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED)
        mock_db.execute.return_value = _make_scalar_result(application)

        with pytest.raises(InvalidTransitionException):
            await application_service.verify_application(supplier_user, application.id)
        mock_db.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_other_supplier_cannot_verify(
        self, application_service, mock_db, supplier_user, other_supplier_user
    ):
        application = _make_application(supplier_user.supplier_id)
        mock_db.execute.return_value = _make_scalar_result(application)

        with pytest.raises(ForbiddenException):
            await application_service.verify_application(other_supplier_user, application.id)


class TestUpdateTerms:
    @pytest.mark.asyncio
    async def test_price_edit_on_confirmed_demotes_to_pending(
        self, application_service, mock_db, supplier_user
    ):
        application = _make_application(supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED)
        mock_db.execute.return_value = _make_scalar_result(application)

        result = await application_service.update_terms(
            supplier_user, application.id, units=1000, term="30 días", price_euros=Decimal("120.00")
        )

        assert result.price_euros == Decimal("120.00")
        assert result.status == ApplicationStatus.PENDING
        assert result.verified_at is None
        mock_db.flush.assert_awaited()
        events = _added(mock_db, EventOutbox)
        assert [e.event_type for e in events] == ["application.reopened"]

    @pytest.mark.asyncio
    async def test_identical_save_keeps_confirmed(self, application_service, mock_db, supplier_user):
        application = _make_application(supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED)
        verified_at = application.verified_at
        mock_db.execute.return_value = _make_scalar_result(application)

        result = await application_service.update_terms(
            supplier_user, application.id, units=1000, term="30 días", price_euros=Decimal("100")
        )

        assert result.status == ApplicationStatus.CONFIRMED
        assert result.verified_at == verified_at
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_terms_rejected_before_any_write(
        self, application_service, mock_db, supplier_user
    ):
        application = _make_application(supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED)
        mock_db.execute.return_value = _make_scalar_result(application)

        with pytest.raises(ValidationException):
            await application_service.update_terms(
                supplier_user, application.id, units=0, term="30 días", price_euros=Decimal("100")
            )
        assert application.status == ApplicationStatus.CONFIRMED
        mock_db.flush.assert_not_awaited()


# ---------------------------------------------------------------------------
# Confirmations
# ---------------------------------------------------------------------------


class TestSaveConfirmations:
    @pytest.mark.asyncio
    async def test_over_allocated_batch_writes_nothing(self, application_service, mock_db, supplier_user):
        line = _order_line()
        application = _make_application(supplier_user.supplier_id, order_lines=[line])
        mock_db.execute.return_value = _make_scalar_result(application)

        with pytest.raises(AllocationRejectedException) as exc_info:
            await application_service.save_confirmations(
                supplier_user,
                application.id,
                [
                    CandidateConfirmation(line.id, "30", "2026-12-01", "1.20"),
                    CandidateConfirmation(line.id, "25", "2026-12-01", "1.20"),
                ],
            )

        assert exc_info.value.details[0]["attempted"] == "55"
        mock_db.add.assert_not_called()
        mock_db.delete.assert_not_awaited()
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_changed_set_demotes_confirmed_application(
        self, application_service, mock_db, supplier_user
    ):
        line = _order_line()
        application = _make_application(
            supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED, order_lines=[line]
        )
        mock_db.execute.side_effect = [_make_scalar_result(application), _make_rows_result([])]

        diff = await application_service.save_confirmations(
            supplier_user, application.id, [CandidateConfirmation(line.id, "30", "2026-12-01", "1.20")]
        )

        assert len(diff.to_insert) == 1
        assert len(_added(mock_db, OrderLineConfirmation)) == 1
        assert application.status == ApplicationStatus.PENDING
        assert application.verified_at is None

    @pytest.mark.asyncio
    async def test_unchanged_set_keeps_status(self, application_service, mock_db, supplier_user):
        line = _order_line()
        stored = SimpleNamespace(
            id=uuid.uuid4(),
            order_line_id=line.id,
            article_code=line.article_code,
            confirmed_units=Decimal("30"),
            confirmed_term="2026-12-01",
            confirmed_price=Decimal("1.20"),
        )
        application = _make_application(
            supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED, order_lines=[line]
        )
        mock_db.execute.side_effect = [_make_scalar_result(application), _make_rows_result([stored])]

        diff = await application_service.save_confirmations(
            supplier_user,
            application.id,
            [CandidateConfirmation(line.id, "30", "2026-12-01", "1.20", id=stored.id)],
        )

        assert not diff.changed
        assert application.status == ApplicationStatus.CONFIRMED
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_confirm_all_creates_one_row_per_line(self, application_service, mock_db, supplier_user):
        lines = [_order_line("A", 10), _order_line("B", 20), _order_line("C", 30)]
        application = _make_application(supplier_user.supplier_id, order_lines=lines)
        mock_db.execute.side_effect = [_make_scalar_result(application), _make_rows_result([])]

        diff = await application_service.confirm_all(supplier_user, application.id)

        rows = _added(mock_db, OrderLineConfirmation)
        assert len(rows) == 3
        assert sorted((r.article_code, r.confirmed_units) for r in rows) == [
            ("A", Decimal(10)), ("B", Decimal(20)), ("C", Decimal(30)),
        ]
        assert diff.to_delete == []
        assert application.status == ApplicationStatus.PENDING

    @pytest.mark.asyncio
    async def test_confirm_all_on_confirmed_application_is_a_no_op(
        self, application_service, mock_db, supplier_user
    ):
        line = _order_line()
        stored = SimpleNamespace(
            id=uuid.uuid4(),
            order_line_id=line.id,
            article_code=line.article_code,
            confirmed_units=Decimal("50.000"),
            confirmed_term="2026-12-01",
            confirmed_price=Decimal("1.2000"),
        )
        application = _make_application(
            supplier_user.supplier_id, status=ApplicationStatus.CONFIRMED, order_lines=[line]
        )
        mock_db.execute.side_effect = [_make_scalar_result(application), _make_rows_result([stored])]

        diff = await application_service.confirm_all(supplier_user, application.id)

        assert not diff.changed
        assert application.status == ApplicationStatus.CONFIRMED
        mock_db.delete.assert_not_awaited()
        mock_db.flush.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_application_without_order_lines(self, application_service, mock_db, admin_user):
        application = _make_application(uuid.uuid4())
        mock_db.execute.return_value = _make_scalar_result(application)

        with pytest.raises(ValidationException):
            await application_service.confirm_all(admin_user, application.id)
