"""JWT authentication dependency for FastAPI.

Tokens are issued by the external identity provider; this module only
validates them and turns the claims into an explicit ``ActingUser`` that is
passed into every service call.
"""

import logging
import uuid
from dataclasses import dataclass

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from src.config import settings
from src.exceptions import UnauthorizedException
from src.models.enums import UserRole

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class ActingUser:
    """The caller of a core operation, as resolved by the identity provider."""

    id: uuid.UUID
    role: UserRole
    supplier_id: uuid.UUID | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        return jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


def user_from_claims(payload: dict) -> ActingUser:
    """Build an ActingUser from token claims (``sub``, ``role``, ``supplier_id``)."""
    try:
        role = UserRole(str(payload.get("role", "SUPPLIER")).upper())
        supplier_claim = payload.get("supplier_id")
        user = ActingUser(
            id=uuid.UUID(payload["sub"]),
            role=role,
            supplier_id=uuid.UUID(supplier_claim) if supplier_claim else None,
        )
    except (KeyError, ValueError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    if user.role == UserRole.SUPPLIER and user.supplier_id is None:
        raise UnauthorizedException("Supplier tokens must carry a supplier_id claim")
    return user


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> ActingUser:
    """FastAPI dependency that extracts and validates the current user from JWT."""
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    user = user_from_claims(_decode_token(credentials.credentials))
    request.state.user = user
    return user
