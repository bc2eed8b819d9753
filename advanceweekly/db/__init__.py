"""Database layer for AdvanceWeekly."""

from advanceweekly.db.connection import (
    SessionFactory,
    close_db,
    get_engine,
    get_session,
    init_db,
    session_scope,
)

__all__ = [
    "SessionFactory",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
    "session_scope",
]
