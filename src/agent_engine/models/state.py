"""Immutable agent state: messages, context, steps and execution status."""

from __future__ import annotations

import json
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field

from agent_engine.budget import ExecutionBudget, utcnow
from agent_engine.config import ModelConfig
from agent_engine.errors import AgentError
from agent_engine.models.decision import Decision


def _new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex}"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SUSPENDED = "suspended"

    def is_terminal(self) -> bool:
        return self != ExecutionStatus.RUNNING


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str  # "system" | "user" | "assistant" | "tool"
    content: str = ""
    tool_call_id: str | None = None
    tool_calls: tuple[dict[str, Any], ...] = ()

    def to_openai(self) -> dict[str, Any]:
        data: dict[str, Any] = {"role": self.role, "content": self.content}
        if self.tool_call_id is not None:
            data["tool_call_id"] = self.tool_call_id
        if self.tool_calls:
            data["tool_calls"] = list(self.tool_calls)
        return data


class ToolCall(BaseModel):
    """A validated, normalized tool invocation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: _new_id("call_"))
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)

    def to_openai(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": "function",
            "function": {"name": self.name, "arguments": json.dumps(self.arguments, default=str)},
        }


class ToolExecution(BaseModel):
    """Outcome of one tool call: a value or an error message."""

    model_config = ConfigDict(frozen=True)

    tool_call: ToolCall
    value: Any = None
    error: str | None = None

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def content(self) -> str:
        if self.error is not None:
            return f"Error: {self.error}"
        if isinstance(self.value, str):
            return self.value
        if self.value is None:
            return ""
        return json.dumps(self.value, default=str)


class Step(BaseModel):
    """Record of one loop iteration."""

    model_config = ConfigDict(frozen=True)

    step_id: str = Field(default_factory=_new_id)
    decision: Decision | None = None
    tool_executions: tuple[ToolExecution, ...] = ()
    output_messages: tuple[Message, ...] = ()
    errors: tuple[str, ...] = ()
    tokens: int = 0
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime = Field(default_factory=utcnow)

    def has_errors(self) -> bool:
        return bool(self.errors) or any(e.has_error for e in self.tool_executions)

    def output_text(self) -> str:
        return "\n".join(m.content for m in self.output_messages if m.content)

    def errors_as_string(self) -> str:
        parts = list(self.errors)
        parts.extend(e.error for e in self.tool_executions if e.error is not None)
        return "\n".join(parts)


class AgentContext(BaseModel):
    model_config = ConfigDict(frozen=True)

    system_prompt: str = ""
    llm_config: ModelConfig | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    parent_agent_id: str | None = None


class AgentState(BaseModel):
    """Snapshot of an agent execution.

    Every transformation returns a new instance; ``steps`` keeps the full
    history. Once the status leaves ``running`` no step may be appended
    until the state is resumed or reset with :meth:`for_next_execution`.
    """

    model_config = ConfigDict(frozen=True)

    agent_id: str = Field(default_factory=_new_id)
    messages: tuple[Message, ...] = ()
    context: AgentContext = Field(default_factory=AgentContext)
    steps: tuple[Step, ...] = ()
    status: ExecutionStatus = ExecutionStatus.RUNNING
    stop_reason: str | None = None
    budget: ExecutionBudget | None = None
    execution_started_at: datetime | None = None

    @classmethod
    def empty(cls) -> AgentState:
        return cls()

    # --- accessors ---

    @property
    def system_prompt(self) -> str:
        return self.context.system_prompt

    @property
    def llm_config(self) -> ModelConfig | None:
        return self.context.llm_config

    @property
    def parent_agent_id(self) -> str | None:
        return self.context.parent_agent_id

    def metadata(self, key: str, default: Any = None) -> Any:
        return self.context.metadata.get(key, default)

    def last_step(self) -> Step | None:
        return self.steps[-1] if self.steps else None

    def last_step_tool_executions(self) -> tuple[ToolExecution, ...]:
        step = self.last_step()
        return step.tool_executions if step else ()

    def tokens_used(self) -> int:
        return sum(step.tokens for step in self.steps)

    def final_response(self) -> str:
        """Text of the answer that ended a successful execution, or ''."""
        step = self.last_step()
        if self.status != ExecutionStatus.SUCCEEDED or step is None or step.tool_executions:
            return ""
        return step.decision.text if step.decision is not None else ""

    # --- transformations ---

    def _with_context(self, **update: Any) -> AgentState:
        return self.model_copy(update={"context": self.context.model_copy(update=update)})

    def with_messages(self, messages: Iterable[Message | dict[str, Any]]) -> AgentState:
        parsed = tuple(m if isinstance(m, Message) else Message.model_validate(m) for m in messages)
        return self.model_copy(update={"messages": parsed})

    def with_system_prompt(self, system_prompt: str) -> AgentState:
        return self._with_context(system_prompt=system_prompt)

    def with_llm_config(self, llm_config: ModelConfig | None) -> AgentState:
        return self._with_context(llm_config=llm_config)

    def with_parent_agent_id(self, parent_agent_id: str | None) -> AgentState:
        return self._with_context(parent_agent_id=parent_agent_id)

    def with_metadata(self, key: str, value: Any) -> AgentState:
        return self._with_context(metadata={**self.context.metadata, key: value})

    def with_budget(self, budget: ExecutionBudget | None) -> AgentState:
        return self.model_copy(update={"budget": budget})

    def with_status(self, status: ExecutionStatus, reason: str | None = None) -> AgentState:
        return self.model_copy(update={"status": status, "stop_reason": reason})

    def with_execution_started(self, at: datetime) -> AgentState:
        return self.model_copy(update={"execution_started_at": at})

    def with_step(self, step: Step) -> AgentState:
        if self.status.is_terminal():
            raise AgentError(f"Cannot append a step to a {self.status.value} agent state")
        return self.model_copy(
            update={
                "steps": (*self.steps, step),
                "messages": (*self.messages, *step.output_messages),
            }
        )

    def resumed(self) -> AgentState:
        """Move a suspended state back to running, keeping its history."""
        if self.status != ExecutionStatus.SUSPENDED:
            return self
        return self.with_status(ExecutionStatus.RUNNING)

    def for_next_execution(self) -> AgentState:
        """Keep the conversation and context, drop the step history."""
        return self.model_copy(
            update={
                "steps": (),
                "status": ExecutionStatus.RUNNING,
                "stop_reason": None,
                "execution_started_at": None,
            }
        )
