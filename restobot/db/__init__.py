"""Database utilities."""

from restobot.db.base import Base, JSONType, enum_column
from restobot.db.session import async_session_maker, dispose_engine, engine, get_db, session_scope

__all__ = [
    "Base",
    "JSONType",
    "enum_column",
    "async_session_maker",
    "dispose_engine",
    "engine",
    "get_db",
    "session_scope",
]
