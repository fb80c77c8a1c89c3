"""Tests for token claims, the auth dependency and ownership checks."""

import uuid
from types import SimpleNamespace

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from src.config import settings
from src.exceptions import ForbiddenException, UnauthorizedException
from src.models.enums import UserRole
from src.modules.identity.auth import get_current_user, user_from_claims
from src.modules.identity.permissions import (
    ensure_supplier_access,
    require_admin,
    require_supplier,
)


def _token(claims: dict) -> HTTPAuthorizationCredentials:
    encoded = jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=encoded)


class TestUserFromClaims:
    def test_supplier_claims(self):
        user_id, supplier_id = uuid.uuid4(), uuid.uuid4()
        user = user_from_claims({"sub": str(user_id), "role": "supplier", "supplier_id": str(supplier_id)})
        assert user.id == user_id
        assert user.role == UserRole.SUPPLIER
        assert user.supplier_id == supplier_id
        assert not user.is_admin

    def test_admin_without_supplier(self):
        user = user_from_claims({"sub": str(uuid.uuid4()), "role": "ADMIN"})
        assert user.is_admin
        assert user.supplier_id is None

    def test_supplier_without_supplier_id_is_rejected(self):
        with pytest.raises(UnauthorizedException):
            user_from_claims({"sub": str(uuid.uuid4()), "role": "SUPPLIER"})

    @pytest.mark.parametrize("claims", [{}, {"sub": "not-a-uuid", "role": "ADMIN"}, {"sub": str(uuid.uuid4()), "role": "OWNER"}])
    def test_malformed_claims(self, claims):
        with pytest.raises(UnauthorizedException):
            user_from_claims(claims)


class TestGetCurrentUser:
    @pytest.mark.asyncio
    async def test_valid_token(self):
        supplier_id = uuid.uuid4()
        request = SimpleNamespace(state=SimpleNamespace())
        credentials = _token({"sub": str(uuid.uuid4()), "role": "SUPPLIER", "supplier_id": str(supplier_id)})

        user = await get_current_user(request, credentials)

        assert user.supplier_id == supplier_id
        assert request.state.user is user

    @pytest.mark.asyncio
    async def test_missing_credentials(self):
        with pytest.raises(UnauthorizedException):
            await get_current_user(SimpleNamespace(state=SimpleNamespace()), None)

    @pytest.mark.asyncio
    async def test_bad_signature(self):
        encoded = jwt.encode({"sub": str(uuid.uuid4()), "role": "ADMIN"}, "other-secret", algorithm="HS256")
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=encoded)
        with pytest.raises(UnauthorizedException):
            await get_current_user(SimpleNamespace(state=SimpleNamespace()), credentials)


class TestPermissions:
    def test_admin_may_act_for_any_supplier(self, admin_user):
        ensure_supplier_access(admin_user, uuid.uuid4())

    def test_supplier_limited_to_own_records(self, supplier_user, supplier_id):
        ensure_supplier_access(supplier_user, supplier_id)
        with pytest.raises(ForbiddenException):
            ensure_supplier_access(supplier_user, uuid.uuid4())
        with pytest.raises(ForbiddenException):
            ensure_supplier_access(supplier_user, None)

    def test_role_requirements(self, admin_user, supplier_user):
        require_admin(admin_user)
        with pytest.raises(ForbiddenException):
            require_admin(supplier_user)
        assert require_supplier(supplier_user) == supplier_user.supplier_id
        with pytest.raises(ForbiddenException):
            require_supplier(admin_user)
