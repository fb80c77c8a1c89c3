"""Allocation checks for order-line confirmations.

Everything here is pure: it takes the candidate rows for one application and
that application's order lines, and reports every problem it finds. Nothing
is read from or written to the database.

Three passes run over the batch:

1. every row must reference an order line of the application,
2. every row needs units > 0, a non-empty term and a price > 0, each
   storable at its column scale,
3. per article code, the units of the rows that survived 1 and 2 may not add
   up to more than the requested units.
"""

from __future__ import annotations

import uuid
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal

from src.exceptions import AllocationRejectedException
from src.models.order_line import OrderLine
from src.modules.offer.validation import DECIMAL_PLACES, parse_positive_decimal

_HUNDRED = Decimal(100)


@dataclass(frozen=True)
class CandidateConfirmation:
    """One submitted confirmation row. ``id`` is set for rows already stored."""

    order_line_id: uuid.UUID
    confirmed_units: Decimal | int | str | None
    confirmed_term: str | None
    confirmed_price: Decimal | str | None
    id: uuid.UUID | None = None


@dataclass(frozen=True)
class ValidConfirmation:
    order_line_id: uuid.UUID
    article_code: str
    confirmed_units: Decimal
    confirmed_term: str
    confirmed_price: Decimal
    id: uuid.UUID | None = None


@dataclass(frozen=True)
class UnknownArticle:
    order_line_id: uuid.UUID
    index: int

    def to_dict(self) -> dict:
        return {
            "code": "UNKNOWN_ARTICLE",
            "field": f"confirmations[{self.index}].order_line_id",
            "message": f"Order line {self.order_line_id} does not belong to this order",
        }


@dataclass(frozen=True)
class FieldError:
    article_code: str
    field: str
    message: str
    index: int

    def to_dict(self) -> dict:
        return {
            "code": "INVALID_FIELD",
            "field": f"confirmations[{self.index}].{self.field}",
            "article": self.article_code,
            "message": self.message,
        }


@dataclass(frozen=True)
class OverAllocated:
    article_code: str
    requested: Decimal
    attempted: Decimal

    def to_dict(self) -> dict:
        return {
            "code": "OVER_ALLOCATED",
            "field": f"article[{self.article_code}]",
            "article": self.article_code,
            "requested": str(self.requested),
            "attempted": str(self.attempted),
            "message": (
                f"Confirmed units for {self.article_code} ({self.attempted}) "
                f"exceed the requested {self.requested}"
            ),
        }


AllocationError = UnknownArticle | FieldError | OverAllocated


@dataclass
class AllocationResult:
    confirmations: list[ValidConfirmation] = field(default_factory=list)
    errors: list[AllocationError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def raise_for_errors(self) -> None:
        if self.errors:
            raise AllocationRejectedException(
                f"{len(self.errors)} problem(s) found; no confirmations were saved",
                details=[error.to_dict() for error in self.errors],
            )


@dataclass(frozen=True)
class ArticleAllocation:
    order_line_id: uuid.UUID
    article_code: str
    description: str
    requested_units: Decimal
    confirmed_units: Decimal
    percentage: Decimal
    at_limit: bool

    @property
    def remaining_units(self) -> Decimal:
        return max(self.requested_units - self.confirmed_units, Decimal(0))


def validate_allocation(
    order_lines: Sequence[OrderLine],
    candidates: Sequence[CandidateConfirmation],
) -> AllocationResult:
    """Validate a full candidate batch, collecting every error."""
    lines_by_id = {line.id: line for line in order_lines}
    result = AllocationResult()

    for index, candidate in enumerate(candidates):
        line = lines_by_id.get(candidate.order_line_id)
        if line is None:
            result.errors.append(UnknownArticle(candidate.order_line_id, index))
            continue

        row_errors: list[FieldError] = []
        units = _positive(candidate.confirmed_units, line.article_code, "confirmed_units", index, row_errors)
        price = _positive(candidate.confirmed_price, line.article_code, "confirmed_price", index, row_errors)
        term = (candidate.confirmed_term or "").strip()
        if not term:
            row_errors.append(FieldError(line.article_code, "confirmed_term", "is required", index))

        if row_errors:
            result.errors.extend(row_errors)
            continue

        result.confirmations.append(
            ValidConfirmation(
                order_line_id=line.id,
                article_code=line.article_code,
                confirmed_units=units,
                confirmed_term=term,
                confirmed_price=price,
                id=candidate.id,
            )
        )

    attempted = _units_by_article(result.confirmations)
    requested = {line.article_code: Decimal(line.requested_units) for line in order_lines}
    for article_code, total in attempted.items():
        if total > requested[article_code]:
            result.errors.append(OverAllocated(article_code, requested[article_code], total))

    return result


def summarize_allocation(
    order_lines: Sequence[OrderLine],
    confirmations: Iterable,
) -> list[ArticleAllocation]:
    """Per-article requested vs confirmed units for stored confirmations.

    ``at_limit`` is set once an article is fully covered; callers use it to
    stop offering "add confirmation" for that article.
    """
    confirmed = _units_by_article(confirmations)
    summary = []
    for line in order_lines:
        requested = Decimal(line.requested_units)
        total = confirmed.get(line.article_code, Decimal(0))
        summary.append(
            ArticleAllocation(
                order_line_id=line.id,
                article_code=line.article_code,
                description=line.description,
                requested_units=requested,
                confirmed_units=total,
                percentage=(total * _HUNDRED / requested).quantize(Decimal("0.01"), ROUND_HALF_UP),
                at_limit=total >= requested,
            )
        )
    return summary


def _units_by_article(confirmations: Iterable) -> dict[str, Decimal]:
    totals: dict[str, Decimal] = defaultdict(Decimal)
    for confirmation in confirmations:
        totals[confirmation.article_code] += Decimal(confirmation.confirmed_units)
    return dict(totals)


def _positive(value, article_code: str, field_name: str, index: int, errors: list[FieldError]):
    try:
        number = parse_positive_decimal(value, DECIMAL_PLACES[field_name])
    except ValueError as exc:
        errors.append(FieldError(article_code, field_name, str(exc), index))
        return None
    if number is None:
        errors.append(FieldError(article_code, field_name, "is required", index))
    return number
