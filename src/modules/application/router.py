"""Application (order) API router."""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.middleware.rate_limit import limiter
from src.modules.application.allocation import CandidateConfirmation
from src.modules.application.ledger import ConfirmationDiff
from src.modules.application.schemas import (
    ApplicationCreate,
    ApplicationResponse,
    ArticleAllocationResponse,
    ConfirmationResponse,
    ConfirmationSaveResponse,
    ConfirmationsSave,
    OrderLineResponse,
    SnapshotResponse,
    TermsUpdate,
    VerifyRequest,
)
from src.modules.application.service import ApplicationService
from src.modules.identity.auth import ActingUser, get_current_user

router = APIRouter(prefix="/applications", tags=["applications"])


async def _save_response(
    svc: ApplicationService, application_id: uuid.UUID, diff: ConfirmationDiff
) -> ConfirmationSaveResponse:
    application = await svc.get_application(application_id)
    confirmations = await svc.get_confirmations(application_id)
    return ConfirmationSaveResponse(
        application=ApplicationResponse.model_validate(application),
        confirmations=[ConfirmationResponse.model_validate(c) for c in confirmations],
        deleted=len(diff.to_delete),
        updated=len(diff.to_update),
        inserted=len(diff.to_insert),
    )


@router.post("/", response_model=ApplicationResponse, status_code=201)
@limiter.limit("30/minute")
async def create_application(
    request: Request,
    body: ApplicationCreate,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Generate an order for a supplier in PENDING status."""
    svc = ApplicationService(db)
    application = await svc.create_application(
        user,
        supplier_id=body.supplier_id,
        units=body.units,
        term=body.term,
        price_euros=body.price_euros,
        offer_id=body.offer_id,
        order_lines=[line.model_dump() for line in body.order_lines],
    )
    return ApplicationResponse.model_validate(application)


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single application with its order lines."""
    svc = ApplicationService(db)
    application = await svc.get_application(application_id)
    return ApplicationResponse.model_validate(application)


@router.get("/{application_id}/order-lines", response_model=list[OrderLineResponse])
async def get_order_lines(
    application_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = ApplicationService(db)
    lines = await svc.get_order_lines(application_id)
    return [OrderLineResponse.model_validate(line) for line in lines]


@router.post("/{application_id}/verify", response_model=ApplicationResponse)
@limiter.limit("30/minute")
async def verify_application(
    request: Request,
    application_id: uuid.UUID,
    body: VerifyRequest,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Confirm a pending application, optionally correcting its terms."""
    svc = ApplicationService(db)
    application = await svc.verify_application(
        user,
        application_id,
        units=body.units,
        term=body.term,
        price_euros=body.price_euros,
    )
    return ApplicationResponse.model_validate(application)


@router.put("/{application_id}/terms", response_model=ApplicationResponse)
@limiter.limit("60/minute")
async def update_terms(
    request: Request,
    application_id: uuid.UUID,
    body: TermsUpdate,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Edit units/term/price. A changed confirmed application goes back to PENDING."""
    svc = ApplicationService(db)
    application = await svc.update_terms(
        user,
        application_id,
        units=body.units,
        term=body.term,
        price_euros=body.price_euros,
    )
    return ApplicationResponse.model_validate(application)


@router.get("/{application_id}/confirmations", response_model=list[ConfirmationResponse])
async def get_confirmations(
    application_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = ApplicationService(db)
    confirmations = await svc.get_confirmations(application_id)
    return [ConfirmationResponse.model_validate(c) for c in confirmations]


@router.put("/{application_id}/confirmations", response_model=ConfirmationSaveResponse)
@limiter.limit("60/minute")
async def save_confirmations(
    request: Request,
    application_id: uuid.UUID,
    body: ConfirmationsSave,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Replace the full confirmation set of an application."""
    svc = ApplicationService(db)
    candidates = [
        CandidateConfirmation(
            id=row.id,
            order_line_id=row.order_line_id,
            confirmed_units=row.confirmed_units,
            confirmed_term=row.confirmed_term,
            confirmed_price=row.confirmed_price,
        )
        for row in body.confirmations
    ]
    diff = await svc.save_confirmations(user, application_id, candidates)
    return await _save_response(svc, application_id, diff)


@router.post("/{application_id}/confirmations/confirm-all", response_model=ConfirmationSaveResponse)
@limiter.limit("30/minute")
async def confirm_all(
    request: Request,
    application_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Confirm every order line with its requested units, term and price."""
    svc = ApplicationService(db)
    diff = await svc.confirm_all(user, application_id)
    return await _save_response(svc, application_id, diff)


@router.get("/{application_id}/allocation", response_model=list[ArticleAllocationResponse])
async def allocation_summary(
    application_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Requested vs confirmed units per article."""
    svc = ApplicationService(db)
    summary = await svc.allocation_summary(application_id)
    return [ArticleAllocationResponse.model_validate(item) for item in summary]


@router.get("/{application_id}/snapshots", response_model=list[SnapshotResponse])
async def list_snapshots(
    application_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    svc = ApplicationService(db)
    snapshots = await svc.list_snapshots(application_id)
    return [SnapshotResponse.model_validate(s) for s in snapshots]
