"""Offer API router."""

import uuid

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.session import get_db
from src.middleware.rate_limit import limiter
from src.modules.identity.auth import ActingUser, get_current_user
from src.modules.offer.schemas import (
    OfferCreate,
    OfferLinesSave,
    OfferResponse,
    OfferTransitionResponse,
    ReviewRequest,
)
from src.modules.offer.service import OfferService
from src.modules.offer.validation import OfferLineInput

router = APIRouter(prefix="/offers", tags=["offers"])


def _line_inputs(body: OfferLinesSave) -> list[OfferLineInput]:
    return [
        OfferLineInput(
            line_id=line.line_id,
            confirmed_units=line.confirmed_units,
            confirmed_price=line.confirmed_price,
            confirmed_term=line.confirmed_term,
        )
        for line in body.lines
    ]


@router.post("/", response_model=OfferResponse, status_code=201)
@limiter.limit("30/minute")
async def create_offer(
    request: Request,
    body: OfferCreate,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a new offer in OPEN status (staff only)."""
    svc = OfferService(db)
    offer = await svc.create_offer(
        user,
        description=body.description,
        minimum_units=body.minimum_units,
        deadline=body.deadline,
        lines=[line.model_dump() for line in body.lines],
    )
    return OfferResponse.model_validate(offer)


@router.get("/{offer_id}", response_model=OfferResponse)
async def get_offer(
    offer_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single offer with its lines."""
    svc = OfferService(db)
    offer = await svc.get_offer(offer_id)
    return OfferResponse.model_validate(offer)


@router.put("/{offer_id}/lines", response_model=OfferResponse)
@limiter.limit("60/minute")
async def save_offer_lines(
    request: Request,
    offer_id: uuid.UUID,
    body: OfferLinesSave,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Save confirmed line values as a draft, without sending."""
    svc = OfferService(db)
    offer = await svc.save_offer_lines(user, offer_id, _line_inputs(body))
    return OfferResponse.model_validate(offer)


@router.post("/{offer_id}/send", response_model=OfferResponse)
@limiter.limit("30/minute")
async def send_offer(
    request: Request,
    offer_id: uuid.UUID,
    body: OfferLinesSave,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Submit the supplier's proposal: OPEN -> APPLIED."""
    svc = OfferService(db)
    offer = await svc.send_offer(user, offer_id, _line_inputs(body))
    return OfferResponse.model_validate(offer)


@router.post("/{offer_id}/review", response_model=OfferResponse)
@limiter.limit("30/minute")
async def review_offer(
    request: Request,
    offer_id: uuid.UUID,
    body: ReviewRequest,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Accept or reject an applied offer (staff only)."""
    svc = OfferService(db)
    offer = await svc.review_offer(user, offer_id, body.decision, reason=body.reason)
    return OfferResponse.model_validate(offer)


@router.get("/{offer_id}/transitions", response_model=list[OfferTransitionResponse])
async def get_transitions(
    offer_id: uuid.UUID,
    user: ActingUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Audit history of an offer."""
    svc = OfferService(db)
    transitions = await svc.get_transitions(offer_id)
    return [OfferTransitionResponse.model_validate(t) for t in transitions]
