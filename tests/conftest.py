"""Shared pytest fixtures for the supplier portal tests."""

import uuid
from collections.abc import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import src.models  # noqa: F401  (registers every table on Base.metadata)
from src.database.base import Base
from src.models.enums import UserRole
from src.models.supplier import Supplier
from src.modules.events.handlers import EventHandlerRegistry
from src.modules.identity.auth import ActingUser

# Use SQLite for lightweight in-process storage tests
TEST_DATABASE_URL = "sqlite+aiosqlite:///file::memory:?cache=shared&uri=true"


@pytest.fixture
def mock_db():
    """Create a mock AsyncSession."""
    session = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    session.flush = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def admin_user() -> ActingUser:
    return ActingUser(id=uuid.uuid4(), role=UserRole.ADMIN)


@pytest.fixture
def supplier_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def supplier_user(supplier_id) -> ActingUser:
    return ActingUser(id=uuid.uuid4(), role=UserRole.SUPPLIER, supplier_id=supplier_id)


@pytest.fixture
def other_supplier_user() -> ActingUser:
    return ActingUser(id=uuid.uuid4(), role=UserRole.SUPPLIER, supplier_id=uuid.uuid4())


@pytest.fixture
def handler_registry():
    """Yield the registry and restore the previous handlers afterwards."""
    saved = {event_type: list(handlers) for event_type, handlers in EventHandlerRegistry._handlers.items()}
    yield EventHandlerRegistry
    EventHandlerRegistry.clear()
    EventHandlerRegistry._handlers.update(saved)


@pytest_asyncio.fixture
async def async_test_engine():
    engine = create_async_engine(TEST_DATABASE_URL, echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def async_test_session(async_test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        async_test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def stored_supplier(async_test_session, supplier_id) -> Supplier:
    supplier = Supplier(
        id=supplier_id,
        name="Suministros Navarro",
        supplier_code="SN-001",
        family="Envases",
        contact_email="pedidos@navarro.example",
    )
    async_test_session.add(supplier)
    await async_test_session.commit()
    return supplier
