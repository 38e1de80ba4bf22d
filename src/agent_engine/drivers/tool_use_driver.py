"""Model-backed decision source using OpenAI-compatible tool calling."""

from __future__ import annotations

import json
import logging
from typing import Any

from agent_engine.config import ModelConfig
from agent_engine.models.decision import Decision
from agent_engine.models.state import AgentState
from agent_engine.services.llm_service import LLMService
from agent_engine.tools import ToolRegistry

logger = logging.getLogger(__name__)


class ToolUseDriver:
    def __init__(self, llm: LLMService) -> None:
        self.llm = llm

    def with_model_config(self, config: ModelConfig) -> ToolUseDriver:
        return ToolUseDriver(LLMService(config))

    def decide(self, state: AgentState, tools: ToolRegistry) -> Decision:
        response = self.llm.generate_with_tools(self._messages(state), tools.to_openai_tools())
        message = response.choices[0].message
        tokens = _total_tokens(response)

        if not message.tool_calls:
            return Decision.final(message.content or "", tokens=tokens)

        if len(message.tool_calls) > 1:
            logger.warning("Model proposed %d tool calls, using the first one", len(message.tool_calls))
        tool_call = message.tool_calls[0]
        return Decision.call(
            tool_call.function.name,
            _parse_arguments(tool_call.function.arguments),
            text=message.content or "",
            tokens=tokens,
        )

    @staticmethod
    def _messages(state: AgentState) -> list[dict[str, Any]]:
        messages: list[dict[str, Any]] = []
        if state.system_prompt:
            messages.append({"role": "system", "content": state.system_prompt})
        messages.extend(m.to_openai() for m in state.messages)
        return messages


def _parse_arguments(raw: str | None) -> dict[str, Any]:
    try:
        args = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning("Could not parse tool arguments: %s", raw)
        return {}
    return args if isinstance(args, dict) else {}


def _total_tokens(response: Any) -> int:
    usage = getattr(response, "usage", None)
    total = getattr(usage, "total_tokens", None) if usage is not None else None
    return total if isinstance(total, int) else 0
