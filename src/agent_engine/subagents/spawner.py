"""Nested agent loops that derive an artifact for the parent's current step.

A subagent shares the parent's tool catalogue and decision source but runs
in its own state. Recursion is bounded by name: tools able to start another
subagent are always removed from the subagent's tool set, whatever the
allow-list says.
"""

from __future__ import annotations

import logging
from typing import Iterable

from agent_engine.agents.agent_loop import AgentLoop, StepCallback
from agent_engine.budget import ExecutionBudget
from agent_engine.config import ModelConfig, get_model_config
from agent_engine.drivers import AcceptsModelConfig, DecisionSource
from agent_engine.errors import SubagentError
from agent_engine.models.state import AgentState, ExecutionStatus, Message
from agent_engine.tools import Tool, ToolRegistry

logger = logging.getLogger(__name__)

PLANNING_TOOL_NAME = "plan_with_subagent"
SPAWN_SUBAGENT_TOOL_NAME = "spawn_subagent"
RECURSIVE_TOOL_NAMES = frozenset({PLANNING_TOOL_NAME, SPAWN_SUBAGENT_TOOL_NAME})


class SubagentSpawner:
    def __init__(
        self,
        parent_tools: ToolRegistry,
        parent_driver: DecisionSource,
        system_prompt: str = "",
        allowed_tools: Iterable[str] | None = None,
        extra_tools: ToolRegistry | Iterable[Tool] | None = None,
        budget: ExecutionBudget | None = None,
        forbidden_tool_names: Iterable[str] = RECURSIVE_TOOL_NAMES,
        callback: StepCallback | None = None,
        label: str = "Subagent",
        empty_result: str = "Subagent produced no result.",
        config_name: str = "subagent",
    ) -> None:
        self.parent_tools = parent_tools
        self.parent_driver = parent_driver
        self.system_prompt = system_prompt
        self.allowed_tools = frozenset(allowed_tools) if allowed_tools is not None else None
        self.extra_tools = extra_tools if isinstance(extra_tools, ToolRegistry) else ToolRegistry(*(extra_tools or ()))
        self.budget = budget or ExecutionBudget.unlimited()
        self.forbidden_tool_names = frozenset(forbidden_tool_names) | RECURSIVE_TOOL_NAMES
        self.callback = callback
        self.label = label
        self.empty_result = empty_result
        self.config_name = config_name

    def run(self, specification: str, parent_state: AgentState | None = None) -> str:
        """Run a subagent on ``specification`` and return its final text.

        Raises SubagentError if the subagent ends in the failed state.
        """
        loop = self.build_loop(parent_state)
        initial = self.initial_state(specification, parent_state)
        logger.info("%s started with tools: %s", self.label, ", ".join(loop.tools.names()) or "(none)")
        final = loop.execute(initial)

        if final.status == ExecutionStatus.FAILED:
            raise SubagentError(self.failure_message(final))
        return self.extract_result(final)

    def build_loop(self, parent_state: AgentState | None = None) -> AgentLoop:
        tools = self.filter_tools(self.available_tools(), self.allowed_tools)
        return AgentLoop(
            tools=tools,
            driver=self.resolve_driver(parent_state),
            budget=self.budget,
            callback=self.callback,
        )

    def available_tools(self) -> ToolRegistry:
        if self.extra_tools.is_empty():
            return self.parent_tools
        return self.parent_tools.merge(self.extra_tools)

    def filter_tools(self, available: ToolRegistry, allow_list: Iterable[str] | None) -> ToolRegistry:
        """Apply the allow-list (if non-empty), then always drop forbidden names."""
        allowed = frozenset(allow_list) if allow_list is not None else frozenset()
        tools = available.only(allowed) if allowed else available
        return tools.without(self.forbidden_tool_names)

    def resolve_model_config(self, parent_state: AgentState | None) -> ModelConfig:
        if parent_state is not None and parent_state.llm_config is not None:
            return parent_state.llm_config
        return get_model_config(self.config_name)

    def resolve_driver(self, parent_state: AgentState | None) -> DecisionSource:
        if not isinstance(self.parent_driver, AcceptsModelConfig):
            return self.parent_driver
        return self.parent_driver.with_model_config(self.resolve_model_config(parent_state))

    def initial_state(self, specification: str, parent_state: AgentState | None = None) -> AgentState:
        messages = [Message(role="user", content=specification)]
        system_prompt = self.system_prompt.strip()
        if system_prompt:
            messages.insert(0, Message(role="system", content=system_prompt))

        state = AgentState.empty().with_messages(messages).with_llm_config(self.resolve_model_config(parent_state))
        if parent_state is None:
            return state
        return state.with_parent_agent_id(parent_state.agent_id)

    def extract_result(self, state: AgentState) -> str:
        result = state.final_response().strip()
        if result:
            return result

        last = state.last_step()
        fallback = last.output_text().strip() if last is not None else ""
        if fallback:
            return fallback

        return self.empty_result

    def failure_message(self, state: AgentState) -> str:
        last = state.last_step()
        details = last.errors_as_string().strip() if last is not None else ""
        if not details:
            return f"{self.label} execution failed."
        return f"{self.label} execution failed: {details}"
