"""Session storage: Postgres (preferred), JSON files, or in-memory.

Every backend failure surfaces as ``StorageError``; the orchestrator logs
it and carries on, so a broken store never fails a generation.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from contentgen.config import get_settings
from contentgen.errors import StorageError
from contentgen.schemas.models import Session

logger = logging.getLogger(__name__)


def new_session_id() -> str:
    return f"sess_{uuid.uuid4().hex[:16]}"


class SessionStore(Protocol):
    def create(self, session: Session) -> str: ...
    def update(self, session: Session) -> None: ...
    def get(self, session_id: str) -> Session | None: ...
    def list_recent(self, limit: int = 20) -> list[Session]: ...


# ---------------------------------------------------------------------------
# Postgres implementation
# ---------------------------------------------------------------------------

class PostgresSessionStore:
    """Persist sessions as JSONB rows. Survives restarts."""

    def __init__(self, database_url: str):
        self._url = database_url
        self._lock = threading.Lock()
        self._conn = self._connect()

    def _connect(self):
        try:
            import psycopg
        except ImportError:
            raise ImportError(
                "psycopg required for Postgres session store. pip install 'psycopg[binary]'"
            )
        conn = psycopg.connect(self._url, autocommit=True)
        conn.execute("""
            CREATE TABLE IF NOT EXISTS contentgen_sessions (
                session_id TEXT PRIMARY KEY,
                status TEXT NOT NULL,
                progress INT NOT NULL DEFAULT 0,
                data JSONB NOT NULL,
                created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
                updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
            )
        """)
        return conn

    def _execute(self, sql: str, params: tuple, fetch: str | None = None):
        """Run ``sql``; ``fetch`` is None, "one" or "all"."""
        import psycopg

        try:
            with self._lock:
                cur = self._conn.execute(sql, params)
                if fetch == "one":
                    return cur.fetchone()
                if fetch == "all":
                    return cur.fetchall()
                return None
        except psycopg.Error as e:
            raise StorageError(f"Postgres session store: {e}") from e

    def create(self, session: Session) -> str:
        session_id = session.id or new_session_id()
        data = session.model_copy(update={"id": session_id}).model_dump_json()
        self._execute(
            """
            INSERT INTO contentgen_sessions (session_id, status, progress, data, created_at, updated_at)
            VALUES (%s, %s, %s, %s::jsonb, NOW(), NOW())
            """,
            (session_id, session.status.value, session.progress, data),
        )
        return session_id

    def update(self, session: Session) -> None:
        self._execute(
            """
            UPDATE contentgen_sessions SET
                status = %s, progress = %s, data = %s::jsonb, updated_at = NOW()
            WHERE session_id = %s
            """,
            (session.status.value, session.progress, session.model_dump_json(), session.id),
        )

    def get(self, session_id: str) -> Session | None:
        row = self._execute(
            "SELECT data FROM contentgen_sessions WHERE session_id = %s", (session_id,), fetch="one"
        )
        if not row:
            return None
        return self._load(row[0], session_id)

    def list_recent(self, limit: int = 20) -> list[Session]:
        rows = self._execute(
            "SELECT session_id, data FROM contentgen_sessions ORDER BY created_at DESC LIMIT %s",
            (limit,),
            fetch="all",
        )
        return [self._load(data, session_id) for session_id, data in rows or []]

    @staticmethod
    def _load(raw, session_id: str) -> Session:
        data = raw if isinstance(raw, dict) else json.loads(raw)
        try:
            return Session.model_validate(data)
        except ValidationError as e:
            raise StorageError(f"Stored session {session_id} is corrupt: {e}") from e


# ---------------------------------------------------------------------------
# File-based implementation (fallback when no Postgres)
# ---------------------------------------------------------------------------

class FileSessionStore:
    """Persist sessions as JSON files, one per session."""

    def __init__(self, sessions_dir: Path):
        self._dir = Path(sessions_dir)
        self._dir.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    def _path(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise StorageError(f"Invalid session id: {session_id!r}")
        return self._dir / f"{session_id}.json"

    def _write(self, session: Session) -> None:
        path = self._path(session.id)
        tmp = path.with_suffix(".json.tmp")
        try:
            with self._lock:
                with open(tmp, "w", encoding="utf-8") as f:
                    f.write(session.model_dump_json(indent=2))
                os.replace(tmp, path)
        except OSError as e:
            raise StorageError(f"Cannot write session {session.id}: {e}") from e

    def create(self, session: Session) -> str:
        session_id = session.id or new_session_id()
        self._write(session.model_copy(update={"id": session_id}))
        return session_id

    def update(self, session: Session) -> None:
        self._write(session)

    def get(self, session_id: str) -> Session | None:
        path = self._path(session_id)
        if not path.exists():
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return Session.model_validate_json(f.read())
        except OSError as e:
            raise StorageError(f"Cannot read session {session_id}: {e}") from e
        except ValidationError as e:
            raise StorageError(f"Stored session {session_id} is corrupt: {e}") from e

    def list_recent(self, limit: int = 20) -> list[Session]:
        """Newest first by creation time; unreadable files are logged and skipped."""
        sessions: list[Session] = []
        for path in self._dir.glob("*.json"):
            try:
                session = self.get(path.stem)
            except StorageError as e:
                logger.warning("Skipping session file %s: %s", path.name, e)
                continue
            if session is not None:
                sessions.append(session)
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions[:limit]


# ---------------------------------------------------------------------------
# In-memory implementation (tests, or when nothing else is writable)
# ---------------------------------------------------------------------------

class InMemorySessionStore:
    """Sessions kept as serialized JSON so callers never share live objects."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def create(self, session: Session) -> str:
        session_id = session.id or new_session_id()
        with self._lock:
            self._data[session_id] = session.model_copy(update={"id": session_id}).model_dump_json()
        return session_id

    def update(self, session: Session) -> None:
        with self._lock:
            self._data[session.id] = session.model_dump_json()

    def get(self, session_id: str) -> Session | None:
        with self._lock:
            raw = self._data.get(session_id)
        return Session.model_validate_json(raw) if raw else None

    def list_recent(self, limit: int = 20) -> list[Session]:
        with self._lock:
            raws = list(self._data.values())
        sessions = [Session.model_validate_json(raw) for raw in raws]
        sessions.sort(key=lambda s: s.created_at, reverse=True)
        return sessions[:limit]


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_store: SessionStore | None = None


def get_session_store() -> SessionStore:
    """Return singleton session store (Postgres if configured, else file-based)."""
    global _store
    if _store is not None:
        return _store
    settings = get_settings()
    if settings.contentgen_database_url:
        try:
            _store = PostgresSessionStore(settings.contentgen_database_url)
            logger.info("Using Postgres session store")
            return _store
        except Exception as e:
            logger.warning("Postgres session store failed (%s), falling back to file store", e)
    try:
        _store = FileSessionStore(settings.sessions_dir)
        logger.info("Using file-based session store (%s)", settings.sessions_dir)
    except OSError as e:
        logger.warning("File session store unavailable (%s), keeping sessions in memory", e)
        _store = InMemorySessionStore()
    return _store
