"""
Session registry for the relay.

Holds every active ConnectionSession, indexed by session id (insertion
ordered) and by display name. Owned by a single event-processing context;
callers outside the router only see snapshot copies, never the live maps.
"""

import itertools
from collections.abc import Iterator

from ..exceptions import ErrorContext, SessionIdCollisionError
from ..structured_logging.enhanced_logging_config import get_logger
from .session import ConnectionSession, SendHandle

logger = get_logger(__name__)


class SessionRegistry:
    """
    Registry of active sessions.

    Invariants:
    - session ids are never reused within the process lifetime
    - every non-empty display name maps to exactly one session
    """

    def __init__(self, first_session_id: int = 1) -> None:
        self._sessions: dict[int, ConnectionSession] = {}
        self._ids_by_name: dict[str, int] = {}
        self._next_id: Iterator[int] = itertools.count(first_session_id)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def create(self, send_handle: SendHandle) -> ConnectionSession:
        """Create and register a session with a fresh identifier."""
        session = ConnectionSession(session_id=next(self._next_id), send_handle=send_handle)
        self.add(session)
        return session

    def add(self, session: ConnectionSession) -> None:
        """
        Insert a session.

        Raises:
            SessionIdCollisionError: If the session id is already registered
        """
        if session.session_id in self._sessions:
            raise SessionIdCollisionError(session.session_id, context=ErrorContext(session_id=session.session_id))
        if session.display_name and session.display_name in self._ids_by_name:
            raise ValueError(f"Display name {session.display_name!r} is already registered")

        self._sessions[session.session_id] = session
        if session.display_name:
            self._ids_by_name[session.display_name] = session.session_id
        logger.debug("Session registered", session_id=session.session_id, active_sessions=len(self._sessions))

    def remove(self, session_id: int) -> ConnectionSession | None:
        """Remove a session; an unknown id is a no-op returning None."""
        session = self._sessions.pop(session_id, None)
        if session is None:
            logger.debug("Session already removed", session_id=session_id)
            return None

        if session.display_name and self._ids_by_name.get(session.display_name) == session_id:
            del self._ids_by_name[session.display_name]
        logger.debug("Session unregistered", session_id=session_id, active_sessions=len(self._sessions))
        return session

    def rename(self, session: ConnectionSession, name: str) -> None:
        """
        Change a registered session's display name, keeping the name index in step.

        Raises:
            KeyError: If the session is not registered
            ValueError: If another session already holds the name
        """
        if self._sessions.get(session.session_id) is not session:
            raise KeyError(session.session_id)

        holder = self._ids_by_name.get(name)
        if name and holder is not None and holder != session.session_id:
            raise ValueError(f"Display name {name!r} is already registered")

        if session.display_name and self._ids_by_name.get(session.display_name) == session.session_id:
            del self._ids_by_name[session.display_name]
        session.display_name = name
        if name:
            self._ids_by_name[name] = session.session_id

    def find_by_id(self, session_id: int) -> ConnectionSession | None:
        return self._sessions.get(session_id)

    def find_by_name(self, name: str) -> ConnectionSession | None:
        """Look up the session holding a display name; empty names never match."""
        if not name:
            return None
        session_id = self._ids_by_name.get(name)
        if session_id is None:
            return None
        return self._sessions.get(session_id)

    def snapshot_names(self) -> list[str]:
        """Display names of named sessions, in registry insertion order."""
        return [session.display_name for session in self._sessions.values() if session.display_name]

    def sessions(self) -> list[ConnectionSession]:
        """Snapshot of the active sessions, in registry insertion order."""
        return list(self._sessions.values())
