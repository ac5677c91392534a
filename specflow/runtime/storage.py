"""
storage.py - Session persistence.

The engine talks to a SessionStore. Two implementations ship here:

    InMemorySessionStore   sessions held in a dict (tests, embedding)
    JsonFileSessionStore   one JSON document per session on disk

The on-disk layout is:

    <root>/
      <session_id>/
        session.json       # Session serialized, interactions inline

Usage:
    from specflow.runtime.storage import JsonFileSessionStore

    store = JsonFileSessionStore(Path(".specflow/sessions"))
    with store.lock(session.id):
        session = store.get_session(session.id)
        ...
        store.update_session(session)
"""

from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
import weakref
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from .errors import InteractionNotFoundError, SessionNotFoundError
from .types import (
    Interaction,
    InteractionId,
    Session,
    SessionId,
    SessionStatus,
    session_from_dict,
    session_to_dict,
    utc_now,
)

# Module logger
logger = logging.getLogger(__name__)

SESSION_FILE = "session.json"


class SessionStore(ABC):
    """Abstract session persistence.

    All methods return copies: mutating a returned Session has no effect
    until it is passed back through update_session().

    Per-session locks serialize threads of one process only. Two processes
    sharing a JsonFileSessionStore root (e.g. the CLI next to a running
    server) are not serialized against each other.
    """

    def __init__(self) -> None:
        # Weak values: a lock is dropped once no caller holds it.
        self._locks: "weakref.WeakValueDictionary[SessionId, Any]" = weakref.WeakValueDictionary()
        self._locks_lock = threading.Lock()

    def _get_session_lock(self, session_id: SessionId) -> Any:
        """Get or create the lock for a session id."""
        with self._locks_lock:
            lock = self._locks.get(session_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[session_id] = lock
            return lock

    @contextmanager
    def lock(self, session_id: SessionId) -> Iterator[None]:
        """Hold the per-session lock for a read-modify-write cycle.

        The lock is reentrant so engine operations can nest. It is
        in-process only, and released from the registry when unused.
        """
        lock = self._get_session_lock(session_id)
        with lock:
            yield

    @abstractmethod
    def create_session(self, session: Session) -> Session:
        ...

    @abstractmethod
    def get_session(self, session_id: SessionId) -> Session:
        """Load a session.

        Raises:
            SessionNotFoundError: If no session has this id.
        """
        ...

    @abstractmethod
    def update_session(self, session: Session) -> Session:
        """Replace the stored record, interactions included."""
        ...

    @abstractmethod
    def _all_sessions(self) -> List[Session]:
        ...

    def list_sessions(
        self,
        status: Optional[SessionStatus] = None,
        parent_session_id: Optional[SessionId] = None,
        project_id: Optional[str] = None,
        type: Optional[str] = None,
        account_id: Optional[str] = None,
    ) -> List[Session]:
        """List sessions matching every given filter, oldest first."""
        matches = []
        for session in self._all_sessions():
            if status is not None and session.status != status:
                continue
            if parent_session_id is not None and session.parent_session_id != parent_session_id:
                continue
            if project_id is not None and session.project_id != project_id:
                continue
            if type is not None and session.type != type:
                continue
            if account_id is not None and session.account_id != account_id:
                continue
            matches.append(session)
        return sorted(matches, key=lambda s: (s.created_at, s.id))

    def add_interaction(self, session_id: SessionId, interaction: Interaction) -> Session:
        """Append an interaction to the session history."""
        with self.lock(session_id):
            session = self.get_session(session_id)
            session.interactions.append(interaction)
            return self.update_session(session)

    def update_interaction(self, session_id: SessionId, interaction: Interaction) -> Session:
        """Replace an existing interaction in place (matched by id)."""
        with self.lock(session_id):
            session = self.get_session(session_id)
            for index, existing in enumerate(session.interactions):
                if existing.id == interaction.id:
                    session.interactions[index] = interaction
                    return self.update_session(session)
            raise InteractionNotFoundError(session_id, interaction.id)

    def delete_interaction(self, session_id: SessionId, interaction_id: InteractionId) -> Session:
        """Remove an interaction from the session history."""
        with self.lock(session_id):
            session = self.get_session(session_id)
            remaining = [i for i in session.interactions if i.id != interaction_id]
            if len(remaining) == len(session.interactions):
                raise InteractionNotFoundError(session_id, interaction_id)
            session.interactions = remaining
            return self.update_session(session)


class InMemorySessionStore(SessionStore):
    """Dict-backed store. Records are deep-copied in and out."""

    def __init__(self) -> None:
        super().__init__()
        self._sessions: Dict[SessionId, Session] = {}
        self._data_lock = threading.Lock()

    def create_session(self, session: Session) -> Session:
        with self._data_lock:
            if session.id in self._sessions:
                raise ValueError(f"Session '{session.id}' already exists")
            self._sessions[session.id] = copy.deepcopy(session)
        return copy.deepcopy(session)

    def get_session(self, session_id: SessionId) -> Session:
        with self._data_lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFoundError(session_id)
            return copy.deepcopy(session)

    def update_session(self, session: Session) -> Session:
        session.updated_at = utc_now()
        with self._data_lock:
            if session.id not in self._sessions:
                raise SessionNotFoundError(session.id)
            self._sessions[session.id] = copy.deepcopy(session)
        return copy.deepcopy(session)

    def _all_sessions(self) -> List[Session]:
        with self._data_lock:
            return [copy.deepcopy(s) for s in self._sessions.values()]


# -----------------------------------------------------------------------------
# Atomic File I/O Helpers
# -----------------------------------------------------------------------------


def _atomic_write_json(path: Path, data: Any, indent: int = 2) -> None:
    """Write JSON data to a file atomically (temp file + os.replace).

    Args:
        path: Destination file path.
        data: JSON-serializable data.
        indent: JSON indentation level.
    """
    parent = path.parent
    parent.mkdir(parents=True, exist_ok=True)

    # Same directory keeps the rename on one filesystem
    fd, tmp_path = tempfile.mkstemp(
        suffix=".tmp",
        prefix=path.name + ".",
        dir=parent,
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False)
            f.flush()
            os.fsync(f.fileno())

        os.replace(tmp_path, path)
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


class JsonFileSessionStore(SessionStore):
    """Stores each session as <root>/<session_id>/session.json."""

    def __init__(self, root: Path):
        super().__init__()
        self.root = Path(root)

    def _session_path(self, session_id: SessionId) -> Path:
        return self.root / session_id / SESSION_FILE

    def _read(self, path: Path) -> Optional[Session]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return session_from_dict(json.load(f))
        except (json.JSONDecodeError, KeyError, ValueError) as e:
            logger.warning("Skipping unreadable session file %s: %s", path, e)
            return None

    def create_session(self, session: Session) -> Session:
        path = self._session_path(session.id)
        with self.lock(session.id):
            if path.exists():
                raise ValueError(f"Session '{session.id}' already exists")
            _atomic_write_json(path, session_to_dict(session))
        logger.debug("Created session %s at %s", session.id, path)
        return self.get_session(session.id)

    def get_session(self, session_id: SessionId) -> Session:
        path = self._session_path(session_id)
        if not path.exists():
            raise SessionNotFoundError(session_id)
        session = self._read(path)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def update_session(self, session: Session) -> Session:
        path = self._session_path(session.id)
        with self.lock(session.id):
            if not path.exists():
                raise SessionNotFoundError(session.id)
            session.updated_at = utc_now()
            _atomic_write_json(path, session_to_dict(session))
        return self.get_session(session.id)

    def _all_sessions(self) -> List[Session]:
        if not self.root.exists():
            return []
        sessions = []
        for path in sorted(self.root.glob(f"*/{SESSION_FILE}")):
            session = self._read(path)
            if session is not None:
                sessions.append(session)
        return sessions
