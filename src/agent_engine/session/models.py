"""Session value objects wrapping an agent state for external storage."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from agent_engine.budget import utcnow
from agent_engine.models.state import AgentState, ExecutionStatus


class SessionStatus(str, Enum):
    ACTIVE = "active"
    SUSPENDED = "suspended"


class AgentSessionInfo(BaseModel):
    """Lightweight header listed by session stores."""

    model_config = ConfigDict(frozen=True)

    session_id: str
    status: SessionStatus
    agent_id: str
    execution_status: ExecutionStatus
    step_count: int
    version: int
    created_at: datetime
    updated_at: datetime


class AgentSession(BaseModel):
    model_config = ConfigDict(frozen=True)

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    state: AgentState = Field(default_factory=AgentState)
    status: SessionStatus = SessionStatus.ACTIVE
    version: int = 0
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def with_state(self, state: AgentState) -> AgentSession:
        return self.model_copy(update={"state": state, "updated_at": utcnow()})

    def suspended(self) -> AgentSession:
        return self.model_copy(update={"status": SessionStatus.SUSPENDED, "updated_at": utcnow()})

    def with_version(self, version: int) -> AgentSession:
        return self.model_copy(update={"version": version})

    def info(self) -> AgentSessionInfo:
        return AgentSessionInfo(
            session_id=self.session_id,
            status=self.status,
            agent_id=self.state.agent_id,
            execution_status=self.state.status,
            step_count=len(self.state.steps),
            version=self.version,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
