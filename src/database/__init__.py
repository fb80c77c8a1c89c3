from src.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin
from src.database.engine import async_session, engine, sync_engine
from src.database.session import atomic, get_db, transactional_session

__all__ = [
    "Base",
    "JSONType",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "async_session",
    "engine",
    "sync_engine",
    "atomic",
    "get_db",
    "transactional_session",
]
