"""Tools that see the agent state and the tool call that triggered them."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any, TypeVar

from agent_engine.tools import Tool

if TYPE_CHECKING:
    from agent_engine.models.state import AgentState, ToolCall

T = TypeVar("T", bound="ContextAwareTool")


class ContextAwareTool(Tool):
    """Base for tools bound to the current state before each invocation.

    Binding never mutates: ``with_agent_state`` and ``with_tool_call`` return
    copies, so one registered instance can serve many executions.
    """

    def __init__(self, name: str, description: str) -> None:
        super().__init__(name, description)
        self.agent_state: AgentState | None = None
        self.tool_call: ToolCall | None = None

    def with_agent_state(self: T, state: AgentState) -> T:
        new = copy.copy(self)
        new.agent_state = state
        return new

    def with_tool_call(self: T, tool_call: ToolCall) -> T:
        new = copy.copy(self)
        new.tool_call = tool_call
        return new

    @staticmethod
    def arg(args: tuple[Any, ...], kwargs: dict[str, Any], name: str, position: int, default: Any = None) -> Any:
        """Read an argument passed either by name or by position."""
        if name in kwargs:
            return kwargs[name]
        if len(args) > position:
            return args[position]
        return default
