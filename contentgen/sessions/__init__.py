"""Session persistence."""

from contentgen.sessions.store import (
    FileSessionStore,
    InMemorySessionStore,
    PostgresSessionStore,
    SessionStore,
    get_session_store,
    new_session_id,
)

__all__ = [
    "FileSessionStore",
    "InMemorySessionStore",
    "PostgresSessionStore",
    "SessionStore",
    "get_session_store",
    "new_session_id",
]
