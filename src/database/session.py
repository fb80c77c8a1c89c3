import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.database.engine import async_session
from src.exceptions import PersistenceException

logger = logging.getLogger(__name__)


@asynccontextmanager
async def transactional_session() -> AsyncIterator[AsyncSession]:
    """Yield a session whose work is committed once, or rolled back entirely.

    Every logical operation (send offer, verify application, save
    confirmations) runs inside exactly one of these.
    """
    async with async_session() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            logger.exception("Commit failed, transaction rolled back")
            raise PersistenceException("The change could not be stored. Please retry.") from exc
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that yields a request-scoped transactional session."""
    async with transactional_session() as session:
        yield session


@asynccontextmanager
async def atomic(session: AsyncSession, operation: str) -> AsyncIterator[AsyncSession]:
    """Flush a multi-row write as one unit.

    Any database error inside the block rolls back the whole transaction, so
    no partial delete/update/insert survives, and is re-raised as
    ``PersistenceException`` for the caller to retry.
    """
    try:
        yield session
        await session.flush()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Atomic write '%s' failed, transaction rolled back", operation)
        raise PersistenceException(
            f"Could not complete '{operation}'. No changes were stored; please retry."
        ) from exc
