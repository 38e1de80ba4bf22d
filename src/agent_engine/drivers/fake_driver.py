"""Scripted decision source for tests and offline runs."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Sequence

from agent_engine.config import ModelConfig
from agent_engine.errors import FatalAgentError
from agent_engine.models.decision import Decision
from agent_engine.models.state import AgentState
from agent_engine.tools import ToolRegistry


@dataclass(frozen=True)
class ScenarioStep:
    decision: Decision | None = None
    error: str | None = None

    @classmethod
    def tool_call(cls, tool: str, args: dict[Any, Any] | None = None, text: str = "", tokens: int = 0) -> ScenarioStep:
        return cls(decision=Decision.call(tool, args, text=text, tokens=tokens))

    @classmethod
    def final(cls, text: str, tokens: int = 0) -> ScenarioStep:
        return cls(decision=Decision.final(text, tokens=tokens))

    @classmethod
    def failure(cls, message: str) -> ScenarioStep:
        return cls(error=message)


@dataclass(frozen=True)
class FakeAgentDriver:
    """Plays back a fixed list of decisions.

    The decision for a state is picked by its number of completed steps, so
    the driver itself holds no cursor. States that carry a parent agent id
    (subagents) read ``child_steps`` instead of ``steps``. Past the end of a
    script the driver answers with an empty final response.
    """

    steps: tuple[ScenarioStep, ...] = ()
    child_steps: tuple[ScenarioStep, ...] = ()
    model_config: ModelConfig | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "child_steps", tuple(self.child_steps))

    @classmethod
    def from_responses(cls, *responses: str) -> FakeAgentDriver:
        return cls([ScenarioStep.final(text) for text in responses])

    def with_child_steps(self, steps: Sequence[ScenarioStep]) -> FakeAgentDriver:
        return replace(self, child_steps=tuple(steps))

    def with_model_config(self, config: ModelConfig) -> FakeAgentDriver:
        return replace(self, model_config=config)

    def decide(self, state: AgentState, tools: ToolRegistry) -> Decision:
        script = self.child_steps if state.parent_agent_id is not None else self.steps
        index = len(state.steps)
        if index >= len(script):
            return Decision.final("")
        step = script[index]
        if step.error is not None:
            raise FatalAgentError(step.error)
        return step.decision or Decision.final("")
