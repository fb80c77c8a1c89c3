"""Pure application status transitions and headline-term checks."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from src.exceptions import InvalidTransitionException, ValidationException
from src.models.application import Application
from src.models.enums import ApplicationEvent, ApplicationStatus
from src.modules.application.constants import VALID_TRANSITIONS
from src.modules.offer.validation import fits_scale

# Scale of the price_euros NUMERIC column
PRICE_EUROS_DECIMAL_PLACES = 2


@dataclass(frozen=True)
class Terms:
    units: int
    term: str
    price_euros: Decimal


def next_application_status(
    current: ApplicationStatus,
    event: ApplicationEvent,
    changed: bool = True,
) -> ApplicationStatus:
    """Return the status after ``event``.

    An edit that changed nothing leaves the status as it is, so saving
    identical values on a CONFIRMED application keeps it CONFIRMED.
    """
    allowed = VALID_TRANSITIONS.get(current, {})
    if event not in allowed:
        raise InvalidTransitionException(
            f"Cannot perform '{event.value}' on an application in status '{current.value}'",
            details=[{"field": "status", "message": current.value}],
        )
    if event != ApplicationEvent.VERIFY and not changed:
        return current
    return allowed[event]


def parse_terms(
    units: int | str | Decimal | None,
    term: str | None,
    price_euros: Decimal | str | float | None,
) -> Terms:
    """Validate headline terms: integer units > 0, non-empty term, price > 0 in cents."""
    errors: list[dict] = []

    parsed_units = None
    try:
        if isinstance(units, bool):
            raise InvalidOperation
        number = Decimal(str(units).strip())
        if not number.is_finite() or number != number.to_integral_value() or number <= 0:
            raise InvalidOperation
        parsed_units = int(number)
    except (InvalidOperation, ValueError):
        errors.append({"field": "units", "message": "must be a whole number greater than zero"})

    clean_term = (term or "").strip()
    if not clean_term:
        errors.append({"field": "term", "message": "is required"})

    parsed_price = None
    try:
        price = Decimal(str(price_euros).strip())
        if not price.is_finite() or price <= 0:
            raise InvalidOperation
    except (InvalidOperation, ValueError):
        errors.append({"field": "price_euros", "message": "must be greater than zero"})
    else:
        if fits_scale(price, PRICE_EUROS_DECIMAL_PLACES):
            parsed_price = price
        else:
            errors.append({
                "field": "price_euros",
                "message": f"must have at most {PRICE_EUROS_DECIMAL_PLACES} decimal places",
            })

    if errors:
        raise ValidationException("Application terms are invalid", details=errors)
    return Terms(units=parsed_units, term=clean_term, price_euros=parsed_price)


def terms_changed(application: Application, terms: Terms) -> bool:
    """Field-by-field comparison of stored terms with the submitted ones."""
    return (
        application.units != terms.units
        or application.term != terms.term
        or Decimal(application.price_euros) != terms.price_euros
    )
