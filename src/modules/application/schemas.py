"""Pydantic v2 schemas for application (order) endpoints."""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import ApplicationStatus

# ---------------------------------------------------------------------------
# Order line schemas
# ---------------------------------------------------------------------------


class OrderLineCreate(BaseModel):
    article_code: str = Field(..., min_length=1, max_length=50)
    description: str = Field(..., min_length=1, max_length=500)
    requested_units: int = Field(..., gt=0)
    requested_term: str | None = Field(None, max_length=100)
    requested_price: Decimal | None = Field(None, gt=0)


class OrderLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    application_id: uuid.UUID
    article_code: str
    description: str
    requested_units: int
    requested_term: str | None = None
    requested_price: Decimal | None = None


# ---------------------------------------------------------------------------
# Application schemas
# ---------------------------------------------------------------------------


class ApplicationCreate(BaseModel):
    supplier_id: uuid.UUID
    offer_id: uuid.UUID | None = None
    units: int
    term: str = Field(..., max_length=100)
    price_euros: Decimal
    order_lines: list[OrderLineCreate] = Field(default_factory=list)


class TermsUpdate(BaseModel):
    units: int
    term: str = Field(..., max_length=100)
    price_euros: Decimal


class VerifyRequest(BaseModel):
    """Optional corrections applied while verifying."""

    units: int | None = None
    term: str | None = Field(None, max_length=100)
    price_euros: Decimal | None = None


class ApplicationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    offer_id: uuid.UUID | None = None
    supplier_id: uuid.UUID
    units: int
    term: str
    price_euros: Decimal
    status: ApplicationStatus
    verified_at: datetime | None = None
    order_lines: list[OrderLineResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Confirmation schemas
# ---------------------------------------------------------------------------


class ConfirmationInput(BaseModel):
    """One row of the submitted set. Field checks run in the allocation pass."""

    id: uuid.UUID | None = None
    order_line_id: uuid.UUID
    confirmed_units: Decimal | None = None
    confirmed_term: str | None = Field(None, max_length=100)
    confirmed_price: Decimal | None = None


class ConfirmationsSave(BaseModel):
    confirmations: list[ConfirmationInput] = Field(default_factory=list)


class ConfirmationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_line_id: uuid.UUID
    application_id: uuid.UUID
    article_code: str
    confirmed_units: Decimal
    confirmed_term: str
    confirmed_price: Decimal


class ConfirmationSaveResponse(BaseModel):
    application: ApplicationResponse
    confirmations: list[ConfirmationResponse]
    deleted: int
    updated: int
    inserted: int


class ArticleAllocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    order_line_id: uuid.UUID
    article_code: str
    description: str
    requested_units: Decimal
    confirmed_units: Decimal
    remaining_units: Decimal
    percentage: Decimal
    at_limit: bool


class SnapshotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    application_id: uuid.UUID
    supplier_id: uuid.UUID
    offer_id: uuid.UUID | None = None
    units: int
    term: str
    price_euros: Decimal
    lines: list[dict] = Field(default_factory=list)
    confirmed_by: uuid.UUID | None = None
    confirmed_at: datetime
