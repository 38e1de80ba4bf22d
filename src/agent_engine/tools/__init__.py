"""Tool base class and the immutable tool registry used by the agent loop."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Iterator

from agent_engine.errors import ToolNotFoundError


class Tool(ABC):
    """A named, described capability with a JSON-schema parameter description."""

    def __init__(self, name: str, description: str) -> None:
        self._name = name
        self._description = description
        self._params_schema: dict[str, Any] | None = None

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @abstractmethod
    def __call__(self, *args: Any, **kwargs: Any) -> Any: ...

    def build_parameters_schema(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    def parameters_schema(self) -> dict[str, Any]:
        """Parameter schema, computed once per instance."""
        if self._params_schema is None:
            self._params_schema = self.build_parameters_schema()
        return self._params_schema

    def to_tool_schema(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema(),
            },
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class ToolRegistry:
    """Ordered, name-unique tool collection.

    Every operation returns a new registry; on duplicate names the first
    occurrence wins.
    """

    def __init__(self, *tools: Tool) -> None:
        unique: dict[str, Tool] = {}
        for tool in tools:
            if tool.name not in unique:
                unique[tool.name] = tool
        self._tools = unique

    def all(self) -> list[Tool]:
        return list(self._tools.values())

    def names(self) -> list[str]:
        return list(self._tools)

    def has(self, name: str) -> bool:
        return name in self._tools

    def get(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(name) from None

    def is_empty(self) -> bool:
        return not self._tools

    def merge(self, other: ToolRegistry | Iterable[Tool]) -> ToolRegistry:
        others = other.all() if isinstance(other, ToolRegistry) else list(other)
        return ToolRegistry(*self.all(), *others)

    def filter(self, predicate: Callable[[Tool], bool]) -> ToolRegistry:
        return ToolRegistry(*(t for t in self._tools.values() if predicate(t)))

    def only(self, names: Iterable[str]) -> ToolRegistry:
        allowed = set(names)
        return self.filter(lambda t: t.name in allowed)

    def without(self, names: Iterable[str]) -> ToolRegistry:
        excluded = set(names)
        return self.filter(lambda t: t.name not in excluded)

    def to_openai_tools(self) -> list[dict[str, Any]]:
        return [tool.to_tool_schema() for tool in self._tools.values()]

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(list(self._tools.values()))

    def __repr__(self) -> str:
        return f"ToolRegistry({', '.join(self._tools)})"
