"""Pure session transformations applied by a session manager."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Protocol

from agent_engine.budget import ExecutionBudget
from agent_engine.session.models import AgentSession
from agent_engine.session.tasks import TASKS_METADATA_KEY, TaskList


class SessionAction(Protocol):
    def execute_on(self, session: AgentSession) -> AgentSession: ...


@dataclass(frozen=True)
class ChangeBudget:
    budget: ExecutionBudget

    def execute_on(self, session: AgentSession) -> AgentSession:
        return session.with_state(session.state.with_budget(self.budget))


@dataclass(frozen=True)
class ChangeSystemPrompt:
    system_prompt: str

    def execute_on(self, session: AgentSession) -> AgentSession:
        return session.with_state(session.state.with_system_prompt(self.system_prompt))


@dataclass(frozen=True)
class SuspendSession:
    def execute_on(self, session: AgentSession) -> AgentSession:
        return session.suspended()


@dataclass(frozen=True)
class WriteMetadata:
    key: str
    value: Any

    def execute_on(self, session: AgentSession) -> AgentSession:
        return session.with_state(session.state.with_metadata(self.key, self.value))


@dataclass(frozen=True)
class UpdateTask:
    task_list: TaskList

    @classmethod
    def from_list(cls, tasks: Iterable[dict[str, Any]]) -> UpdateTask:
        return cls(TaskList.from_list(tasks))

    def execute_on(self, session: AgentSession) -> AgentSession:
        return session.with_state(session.state.with_metadata(TASKS_METADATA_KEY, self.task_list.to_list()))
