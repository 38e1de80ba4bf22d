"""Planning subagent: a tool that delegates plan writing to a nested agent."""

from __future__ import annotations

from typing import Any, Iterable

from agent_engine.agents.agent_loop import StepCallback
from agent_engine.agents.builder import AgentBuilder, DeferredToolContext
from agent_engine.budget import ExecutionBudget
from agent_engine.drivers import DecisionSource
from agent_engine.hooks import HookTrigger
from agent_engine.models.state import AgentState
from agent_engine.prompts.prompt_layer import load_prompt
from agent_engine.subagents.spawner import PLANNING_TOOL_NAME, SubagentSpawner
from agent_engine.tools import Tool, ToolRegistry
from agent_engine.tools.context_aware import ContextAwareTool

INSTRUCTIONS_HOOK_NAME = "planning_subagent:instructions"
INSTRUCTIONS_HOOK_PRIORITY = 90
NO_PLAN = "Planning subagent produced no plan."
MISSING_SPECIFICATION = "Error: specification is required"


class PlanningSubagentTool(ContextAwareTool):
    TOOL_NAME = PLANNING_TOOL_NAME

    def __init__(
        self,
        parent_tools: ToolRegistry,
        parent_driver: DecisionSource,
        planner_system_prompt: str,
        planner_tools: Iterable[str] | None = None,
        planner_additional_tools: ToolRegistry | Iterable[Tool] | None = None,
        planner_budget: ExecutionBudget | None = None,
        callback: StepCallback | None = None,
    ) -> None:
        super().__init__(
            self.TOOL_NAME,
            "Delegate planning to a subagent that can inspect the workspace with read-only tools "
            "and returns a markdown implementation plan for the given task specification.",
        )
        self.spawner = SubagentSpawner(
            parent_tools=parent_tools,
            parent_driver=parent_driver,
            system_prompt=planner_system_prompt,
            allowed_tools=planner_tools,
            extra_tools=planner_additional_tools,
            budget=planner_budget or ExecutionBudget.unlimited(),
            callback=callback,
            label="Planning subagent",
            empty_result=NO_PLAN,
            config_name="planner",
        )

    def __call__(self, *args: Any, **kwargs: Any) -> str:
        specification = str(self.arg(args, kwargs, "specification", 0, "") or "").strip()
        if not specification:
            return MISSING_SPECIFICATION
        return self.spawner.run(specification, self.agent_state)

    def build_parameters_schema(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "specification": {
                    "type": "string",
                    "description": (
                        "Task specification text with goal, context, expected outcomes, "
                        "and acceptance criteria."
                    ),
                },
            },
            "required": ["specification"],
        }


class PlanningSubagentInstructionsHook:
    """Appends the planning instructions to the system prompt, once."""

    def __init__(self, instructions: str) -> None:
        self.instructions = instructions.strip()

    def __call__(self, state: AgentState, trigger: HookTrigger) -> AgentState:
        prompt = state.system_prompt
        if self.instructions in prompt:
            return state
        if not prompt.strip():
            return state.with_system_prompt(self.instructions)
        return state.with_system_prompt(f"{prompt.rstrip()}\n\n{self.instructions}")


class PlanningToolProvider:
    """Creates the planning tool once the builder's tools and driver are known."""

    def __init__(
        self,
        planner_system_prompt: str,
        planner_tools: Iterable[str] | None,
        planner_additional_tools: ToolRegistry | Iterable[Tool] | None,
        planner_budget: ExecutionBudget,
    ) -> None:
        self.planner_system_prompt = planner_system_prompt
        self.planner_tools = planner_tools
        self.planner_additional_tools = planner_additional_tools
        self.planner_budget = planner_budget

    def provide_tools(self, context: DeferredToolContext) -> ToolRegistry:
        return ToolRegistry(
            PlanningSubagentTool(
                parent_tools=context.tools,
                parent_driver=context.driver,
                planner_system_prompt=self.planner_system_prompt,
                planner_tools=self.planner_tools,
                planner_additional_tools=self.planner_additional_tools,
                planner_budget=self.planner_budget,
                callback=context.callback,
            )
        )


class UsePlanningSubagent:
    def __init__(
        self,
        parent_instructions: str | None = None,
        planner_system_prompt: str | None = None,
        planner_tools: Iterable[str] | None = None,
        planner_additional_tools: ToolRegistry | Iterable[Tool] | None = None,
        planner_budget: ExecutionBudget | None = None,
    ) -> None:
        self.parent_instructions = (
            load_prompt("planning_instructions") if parent_instructions is None else parent_instructions
        )
        self.planner_system_prompt = (
            load_prompt("planner_system") if planner_system_prompt is None else planner_system_prompt
        )
        self.planner_tools = tuple(planner_tools) if planner_tools is not None else None
        self.planner_additional_tools = planner_additional_tools
        self.planner_budget = planner_budget or ExecutionBudget.unlimited()

    @staticmethod
    def capability_name() -> str:
        return "use_planning_subagent"

    def configure(self, builder: AgentBuilder) -> AgentBuilder:
        builder = self._configure_instructions(builder)
        return builder.with_deferred_tools(
            PlanningToolProvider(
                planner_system_prompt=self.planner_system_prompt,
                planner_tools=self.planner_tools,
                planner_additional_tools=self.planner_additional_tools,
                planner_budget=self.planner_budget,
            )
        )

    def _configure_instructions(self, builder: AgentBuilder) -> AgentBuilder:
        instructions = self.parent_instructions.strip()
        if not instructions:
            return builder
        hooks = builder.hooks.with_hook(
            PlanningSubagentInstructionsHook(instructions),
            triggers=(HookTrigger.BEFORE_STEP,),
            priority=INSTRUCTIONS_HOOK_PRIORITY,
            name=INSTRUCTIONS_HOOK_NAME,
        )
        return builder.with_hooks(hooks)
