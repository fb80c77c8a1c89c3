"""Pydantic v2 schemas for offer endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import OfferStatus, OfferTransitionType

# ---------------------------------------------------------------------------
# Offer line schemas
# ---------------------------------------------------------------------------


class OfferLineCreate(BaseModel):
    material_code: str = Field(..., min_length=1, max_length=50)
    material_description: str = Field(..., min_length=1, max_length=500)
    requested_units: int = Field(..., gt=0)
    deadline: datetime | None = None
    reference_price: Decimal | None = Field(None, gt=0)


class OfferLineConfirm(BaseModel):
    """Supplier values for one line. Positivity is checked by the service."""

    line_id: uuid.UUID
    confirmed_units: Decimal | None = None
    confirmed_price: Decimal | None = None
    confirmed_term: str | None = Field(None, max_length=100)


class OfferLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    offer_id: uuid.UUID
    material_code: str
    material_description: str
    requested_units: int
    deadline: datetime | None = None
    reference_price: Decimal | None = None
    confirmed_units: Decimal | None = None
    confirmed_price: Decimal | None = None
    confirmed_term: str | None = None


# ---------------------------------------------------------------------------
# Offer schemas
# ---------------------------------------------------------------------------


class OfferCreate(BaseModel):
    description: str = Field(..., min_length=1)
    minimum_units: int = Field(..., gt=0)
    deadline: datetime | None = None
    lines: list[OfferLineCreate] = Field(default_factory=list)


class OfferLinesSave(BaseModel):
    lines: list[OfferLineConfirm] = Field(default_factory=list)


class OfferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    offer_number: str
    description: str
    minimum_units: int
    deadline: datetime | None = None
    status: OfferStatus
    applied_supplier_id: uuid.UUID | None = None
    applied_at: datetime | None = None
    lines: list[OfferLineResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Review / audit schemas
# ---------------------------------------------------------------------------


class ReviewRequest(BaseModel):
    decision: OfferTransitionType
    reason: str | None = Field(None, max_length=1000)


class OfferTransitionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    offer_id: uuid.UUID
    from_status: OfferStatus
    to_status: OfferStatus
    transition_type: OfferTransitionType
    triggered_by: uuid.UUID | None = None
    supplier_id: uuid.UUID | None = None
    reason: str | None = None
    created_at: datetime
