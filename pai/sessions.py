"""Conversation sessions and the current-session pointer.

Sessions are ``<root>/session-<millis>.json``. The pointer file
``<root>/current_session`` holds a copy of the current session's JSON and
is overwritten on every create, switch and rename.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from pai.clock import unique_millis
from pai.storage import ensure_dir, read_text, storage_errors, write_text

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

POINTER_FILE = "current_session"
DEFAULT_SESSION_NAME = "Default"


class SessionError(Exception):
    """A session operation was refused."""


class Session(BaseModel):
    """A conversation grouping."""

    id: str
    name: str
    created_at: int  # milliseconds
    last_active: int  # milliseconds
    message_count: int = 0


class SessionStore:
    """File-backed sessions. All methods are synchronous."""

    def __init__(self, root: Path) -> None:
        self._root = root

    def _path(self, session_id: str) -> Path:
        return self._root / f"{session_id}.json"

    @property
    def _pointer(self) -> Path:
        return self._root / POINTER_FILE

    def _write(self, session: Session, *, current: bool) -> None:
        data = session.model_dump_json(indent=2)
        write_text(self._path(session.id), data)
        if current:
            write_text(self._pointer, data)

    def _read(self, path: Path) -> Session | None:
        text = read_text(path)
        if text is None:
            return None
        try:
            return Session.model_validate_json(text)
        except ValidationError:
            logger.warning("Skipping malformed session file %s", path)
            return None

    def _require(self, session_id: str) -> Session:
        session = self._read(self._path(session_id)) if self._path(session_id).is_file() else None
        if session is None:
            msg = "Session not found"
            raise SessionError(msg)
        return session

    # -- Operations ----------------------------------------------------------

    def get_current(self) -> Session:
        """The current session, creating a default one if the pointer is stale."""
        ensure_dir(self._root)
        if self._pointer.is_file():
            pointed = self._read(self._pointer)
            if pointed is not None and self._path(pointed.id).is_file():
                session = self._read(self._path(pointed.id))
                if session is not None:
                    return session
            logger.warning("Current session pointer is stale; starting a new session")
        return self.create(DEFAULT_SESSION_NAME)

    def create(self, name: str) -> Session:
        """Create a session and make it current."""
        ensure_dir(self._root)
        now = unique_millis()
        session = Session(
            id=f"session-{now}", name=name, created_at=now, last_active=now, message_count=0
        )
        self._write(session, current=True)
        logger.info("Created session %s (%s)", session.id, name)
        return session

    def list_all(self) -> list[Session]:
        """All sessions, most recently active first."""
        ensure_dir(self._root)
        sessions = []
        for path in self._root.glob("session-*.json"):
            session = self._read(path)
            if session is not None:
                sessions.append(session)
        sessions.sort(key=lambda s: s.last_active, reverse=True)
        return sessions

    def switch(self, session_id: str) -> Session:
        session = self._require(session_id)
        write_text(self._pointer, session.model_dump_json(indent=2))
        return session

    def delete(self, session_id: str) -> None:
        """Delete a session. The current session can't be deleted."""
        path = self._path(session_id)
        if not path.is_file():
            msg = "Session not found"
            raise SessionError(msg)
        if self.get_current().id == session_id:
            msg = "Cannot delete current session"
            raise SessionError(msg)
        with storage_errors(f"delete {path}"):
            path.unlink()

    def rename(self, session_id: str, name: str) -> Session:
        session = self._require(session_id)
        session.name = name
        self._write(session, current=self.get_current().id == session_id)
        return session

    def update_activity(self, session: Session) -> Session:
        """Stamp ``last_active`` and persist the session as current."""
        session.last_active = unique_millis()
        self._write(session, current=True)
        return session

    def increment_message_count(self, session: Session) -> Session:
        session.message_count += 1
        return self.update_activity(session)
