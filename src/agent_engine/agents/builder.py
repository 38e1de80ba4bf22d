"""Composable construction of agent loops from capabilities."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Protocol

from agent_engine.agents.agent_loop import AgentLoop, NullCallback, RejectedCallPolicy, StepCallback
from agent_engine.budget import ExecutionBudget
from agent_engine.drivers import DecisionSource
from agent_engine.hooks import Hook, HookStack, HookTrigger
from agent_engine.tools import Tool, ToolRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeferredToolContext:
    """What a deferred provider knows when the builder is finalized."""

    tools: ToolRegistry
    driver: DecisionSource
    callback: StepCallback


class DeferredToolProvider(Protocol):
    def provide_tools(self, context: DeferredToolContext) -> ToolRegistry: ...


class AgentCapability(Protocol):
    def configure(self, builder: AgentBuilder) -> AgentBuilder: ...


@dataclass(frozen=True)
class AgentBuilder:
    tools: ToolRegistry = field(default_factory=ToolRegistry)
    driver: DecisionSource | None = None
    budget: ExecutionBudget = field(default_factory=ExecutionBudget.unlimited)
    hooks: HookStack = field(default_factory=HookStack)
    deferred_tools: tuple[DeferredToolProvider, ...] = ()
    callback: StepCallback | None = None
    rejected_call_policy: RejectedCallPolicy = RejectedCallPolicy.FINISH

    @classmethod
    def base(cls) -> AgentBuilder:
        return cls()

    def with_capability(self, capability: AgentCapability) -> AgentBuilder:
        return capability.configure(self)

    def with_tools(self, *tools: Tool) -> AgentBuilder:
        return replace(self, tools=self.tools.merge(ToolRegistry(*tools)))

    def with_driver(self, driver: DecisionSource) -> AgentBuilder:
        return replace(self, driver=driver)

    def with_budget(self, budget: ExecutionBudget) -> AgentBuilder:
        return replace(self, budget=budget)

    def with_hooks(self, hooks: HookStack) -> AgentBuilder:
        return replace(self, hooks=hooks)

    def with_deferred_tools(self, provider: DeferredToolProvider) -> AgentBuilder:
        return replace(self, deferred_tools=(*self.deferred_tools, provider))

    def with_callback(self, callback: StepCallback) -> AgentBuilder:
        return replace(self, callback=callback)

    def with_rejected_call_policy(self, policy: RejectedCallPolicy) -> AgentBuilder:
        return replace(self, rejected_call_policy=policy)

    def build(self) -> AgentLoop:
        driver = self.driver or _default_driver()
        callback = self.callback or NullCallback()

        tools = self.tools
        context = DeferredToolContext(tools=self.tools, driver=driver, callback=callback)
        for provider in self.deferred_tools:
            tools = tools.merge(provider.provide_tools(context))

        logger.debug("Building agent loop with tools: %s", ", ".join(tools.names()) or "(none)")
        return AgentLoop(
            tools=tools,
            driver=driver,
            budget=self.budget,
            hooks=self.hooks,
            callback=callback,
            rejected_call_policy=self.rejected_call_policy,
        )


def _default_driver() -> DecisionSource:
    from agent_engine.config import get_model_config
    from agent_engine.drivers.tool_use_driver import ToolUseDriver
    from agent_engine.services.llm_service import LLMService

    return ToolUseDriver(LLMService(get_model_config("agent")))


# --- core capabilities ---


class UseTools:
    def __init__(self, *tools: Tool) -> None:
        self.tools = tools

    def configure(self, builder: AgentBuilder) -> AgentBuilder:
        return builder.with_tools(*self.tools)


class UseDriver:
    def __init__(self, driver: DecisionSource) -> None:
        self.driver = driver

    def configure(self, builder: AgentBuilder) -> AgentBuilder:
        return builder.with_driver(self.driver)


class UseGuards:
    def __init__(
        self,
        max_steps: int | None = None,
        max_tokens: int | None = None,
        max_seconds: float | None = None,
    ) -> None:
        self.budget = ExecutionBudget(max_steps=max_steps, max_tokens=max_tokens, max_seconds=max_seconds)

    def configure(self, builder: AgentBuilder) -> AgentBuilder:
        return builder.with_budget(self.budget)


class UseHook:
    def __init__(
        self,
        hook: Hook,
        triggers: Iterable[HookTrigger] = (HookTrigger.BEFORE_STEP,),
        priority: int = 0,
        name: str | None = None,
    ) -> None:
        self.hook = hook
        self.triggers = tuple(triggers)
        self.priority = priority
        self.name = name

    def configure(self, builder: AgentBuilder) -> AgentBuilder:
        return builder.with_hooks(
            builder.hooks.with_hook(self.hook, self.triggers, priority=self.priority, name=self.name)
        )
