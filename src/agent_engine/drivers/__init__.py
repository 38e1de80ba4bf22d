"""Decision sources: the pluggable "decide" half of the agent loop."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from agent_engine.config import ModelConfig
    from agent_engine.models.decision import Decision
    from agent_engine.models.state import AgentState
    from agent_engine.tools import ToolRegistry


class DecisionSource(Protocol):
    def decide(self, state: AgentState, tools: ToolRegistry) -> Decision: ...


@runtime_checkable
class AcceptsModelConfig(Protocol):
    """Drivers that can be re-targeted at another model configuration."""

    def with_model_config(self, config: ModelConfig) -> DecisionSource: ...
