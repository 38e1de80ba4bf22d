"""Exception hierarchy for the agent engine."""

from __future__ import annotations


class AgentError(Exception):
    """Base class for all engine errors."""


class ToolNotFoundError(AgentError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Tool '{name}' not found")
        self.name = name


class FatalAgentError(AgentError):
    """Raised by a tool or driver to mark the current execution unrecoverable."""


class SubagentError(AgentError):
    """A nested agent loop ended in the failed state."""


class SessionNotFoundError(AgentError):
    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session '{session_id}' not found")
        self.session_id = session_id
