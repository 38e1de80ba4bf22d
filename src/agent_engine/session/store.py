"""Session storage contract, an in-memory store, and the session manager."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from agent_engine.errors import AgentError, SessionNotFoundError
from agent_engine.session.actions import SessionAction
from agent_engine.session.models import AgentSession, AgentSessionInfo

logger = logging.getLogger(__name__)


class SessionStore(ABC):
    @abstractmethod
    def create(self, session: AgentSession) -> AgentSession: ...

    @abstractmethod
    def save(self, session: AgentSession) -> AgentSession: ...

    @abstractmethod
    def load(self, session_id: str) -> AgentSession | None: ...

    @abstractmethod
    def exists(self, session_id: str) -> bool: ...

    @abstractmethod
    def delete(self, session_id: str) -> None: ...

    @abstractmethod
    def list_headers(self) -> list[AgentSessionInfo]: ...


class InMemorySessionStore(SessionStore):
    """Process-local store; every save bumps the session version."""

    def __init__(self) -> None:
        self._sessions: dict[str, AgentSession] = {}

    def create(self, session: AgentSession) -> AgentSession:
        if session.session_id in self._sessions:
            raise AgentError(f"Session '{session.session_id}' already exists")
        stored = session.with_version(1)
        self._sessions[stored.session_id] = stored
        logger.debug("Created session %s", stored.session_id)
        return stored

    def save(self, session: AgentSession) -> AgentSession:
        current = self._sessions.get(session.session_id)
        if current is None:
            raise SessionNotFoundError(session.session_id)
        stored = session.with_version(current.version + 1)
        self._sessions[stored.session_id] = stored
        return stored

    def load(self, session_id: str) -> AgentSession | None:
        return self._sessions.get(session_id)

    def exists(self, session_id: str) -> bool:
        return session_id in self._sessions

    def delete(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)

    def list_headers(self) -> list[AgentSessionInfo]:
        return [session.info() for session in self._sessions.values()]


class SessionManager:
    def __init__(self, store: SessionStore) -> None:
        self.store = store

    def list_sessions(self) -> list[AgentSessionInfo]:
        return self.store.list_headers()

    def get_session(self, session_id: str) -> AgentSession:
        session = self.store.load(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def get_session_info(self, session_id: str) -> AgentSessionInfo:
        return self.get_session(session_id).info()

    def execute(self, session_id: str, action: SessionAction) -> AgentSession:
        """Apply ``action`` to the stored session and persist the result."""
        session = self.get_session(session_id)
        updated = action.execute_on(session)
        logger.info("Applied %s to session %s", type(action).__name__, session_id)
        return self.store.save(updated)
