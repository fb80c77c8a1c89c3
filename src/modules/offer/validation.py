"""Line-level validation for offer drafts and sends."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from src.exceptions import ValidationException
from src.models.offer_line import OfferLine


@dataclass(frozen=True)
class OfferLineInput:
    """Supplier-entered values for one offer line. Blank means "not set"."""

    line_id: uuid.UUID
    confirmed_units: Decimal | str | None = None
    confirmed_price: Decimal | str | None = None
    confirmed_term: str | None = None


@dataclass(frozen=True)
class LineValues:
    line_id: uuid.UUID
    material_code: str
    confirmed_units: Decimal | None
    confirmed_price: Decimal | None
    confirmed_term: str | None


# Decimal places of the NUMERIC columns holding confirmed values
UNITS_DECIMAL_PLACES = 3
PRICE_DECIMAL_PLACES = 4

DECIMAL_PLACES = {
    "confirmed_units": UNITS_DECIMAL_PLACES,
    "confirmed_price": PRICE_DECIMAL_PLACES,
}


def parse_positive_decimal(
    value: Decimal | int | float | str | None, places: int | None = None
) -> Decimal | None:
    """Parse a user-entered quantity or price.

    ``None`` and blank strings mean "absent" and return ``None``. Anything else
    must be a finite decimal greater than zero, otherwise ``ValueError``. With
    ``places`` set, values that cannot be stored at that scale without
    rounding are rejected as well.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"'{value}' is not a number") from exc
    if not number.is_finite() or number <= 0:
        raise ValueError("must be greater than zero")
    if places is not None and not fits_scale(number, places):
        raise ValueError(f"must have at most {places} decimal places")
    return number


def fits_scale(number: Decimal, places: int) -> bool:
    """True when ``number`` is stored unchanged in a column with ``places`` decimals."""
    try:
        return number == number.quantize(Decimal(1).scaleb(-places))
    except InvalidOperation:
        return False


def merge_line_inputs(
    lines: Sequence[OfferLine], inputs: Sequence[OfferLineInput]
) -> list[LineValues]:
    """Combine stored line values with the submitted ones.

    A submitted line replaces all three confirmed values of that line; lines
    not submitted keep what is stored. All problems are collected before
    raising ``ValidationException``.
    """
    by_id = {line.id: line for line in lines}
    submitted: dict[uuid.UUID, LineValues] = {}
    errors: list[dict] = []

    for item in inputs:
        line = by_id.get(item.line_id)
        if line is None:
            errors.append({
                "field": f"lines[{item.line_id}]",
                "message": "Line does not belong to this offer",
            })
            continue

        parsed: dict[str, Decimal | None] = {}
        for field in ("confirmed_units", "confirmed_price"):
            try:
                parsed[field] = parse_positive_decimal(
                    getattr(item, field), DECIMAL_PLACES[field]
                )
            except ValueError as exc:
                errors.append({"field": f"lines[{line.material_code}].{field}", "message": str(exc)})

        submitted[line.id] = LineValues(
            line_id=line.id,
            material_code=line.material_code,
            confirmed_units=parsed.get("confirmed_units"),
            confirmed_price=parsed.get("confirmed_price"),
            confirmed_term=(item.confirmed_term or "").strip() or None,
        )

    if errors:
        raise ValidationException("Some offer lines are invalid", details=errors)

    return [
        submitted.get(line.id)
        or LineValues(
            line_id=line.id,
            material_code=line.material_code,
            confirmed_units=line.confirmed_units,
            confirmed_price=line.confirmed_price,
            confirmed_term=line.confirmed_term,
        )
        for line in lines
    ]


def check_ready_to_send(values: Sequence[LineValues]) -> None:
    """Every line needs confirmed units and price before the offer can be sent."""
    errors = []
    for value in values:
        if value.confirmed_units is None:
            errors.append({
                "field": f"lines[{value.material_code}].confirmed_units",
                "message": "Confirmed units are required to send the offer",
            })
        if value.confirmed_price is None:
            errors.append({
                "field": f"lines[{value.material_code}].confirmed_price",
                "message": "Confirmed price is required to send the offer",
            })
    if errors:
        raise ValidationException("All lines must be confirmed before sending", details=errors)
