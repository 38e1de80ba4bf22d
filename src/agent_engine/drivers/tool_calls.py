"""Turns a decision into at most one validated, normalized tool call."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from agent_engine.models.decision import Decision
from agent_engine.models.state import ToolCall
from agent_engine.tools import ToolRegistry
from agent_engine.tools.arguments import ArgumentSchema

logger = logging.getLogger(__name__)


class SchemaResolver(Protocol):
    def resolve(self, tool_name: str) -> dict[str, Any] | None: ...


class RegistrySchemaResolver:
    """Reads parameter schemas from the tools' own ``to_tool_schema()``."""

    def __init__(self, tools: ToolRegistry) -> None:
        self.tools = tools

    def resolve(self, tool_name: str) -> dict[str, Any] | None:
        if not tool_name or not self.tools.has(tool_name):
            return None
        parameters = self.tools.get(tool_name).to_tool_schema().get("function", {}).get("parameters")
        if not isinstance(parameters, dict):
            return None
        return parameters


class ToolCallBuilder:
    def __init__(self, tools: ToolRegistry, resolver: SchemaResolver | None = None) -> None:
        self.tools = tools
        self.resolver = resolver or RegistrySchemaResolver(tools)
        self._schemas: dict[str, ArgumentSchema | None] = {}

    def build(self, decision: Decision) -> ToolCall | None:
        """Return the tool call a decision asks for, or None.

        None means either a final answer or a call whose arguments do not
        validate; the latter is logged and left to the loop's policy.
        """
        if not decision.is_call():
            return None
        tool_name = decision.tool or ""
        schema = self.argument_schema(tool_name)
        if schema is not None:
            errors = schema.validate(decision.args)
            if errors:
                logger.debug("Rejected call to '%s': %s", tool_name, "; ".join(errors))
                return None
        return ToolCall(name=tool_name, arguments=self._normalize(decision.args, schema))

    def validation_errors(self, decision: Decision) -> list[str]:
        if not decision.is_call():
            return []
        schema = self.argument_schema(decision.tool or "")
        if schema is None:
            return []
        return schema.validate(decision.args)

    def argument_schema(self, tool_name: str) -> ArgumentSchema | None:
        if tool_name not in self._schemas:
            self._schemas[tool_name] = self._build_schema(tool_name)
        return self._schemas[tool_name]

    def _build_schema(self, tool_name: str) -> ArgumentSchema | None:
        if not tool_name:
            return None
        parameters = self.resolver.resolve(tool_name)
        if parameters is None:
            return None
        return ArgumentSchema.from_json_schema({
            **parameters,
            "x-title": parameters.get("x-title", f"{tool_name}_arguments"),
            "description": parameters.get("description", f"Arguments for {tool_name}"),
        })

    @staticmethod
    def _normalize(args: dict[Any, Any], schema: ArgumentSchema | None) -> dict[str, Any]:
        if schema is None:
            return {key: value for key, value in args.items() if isinstance(key, str)}
        return schema.normalize(args)
