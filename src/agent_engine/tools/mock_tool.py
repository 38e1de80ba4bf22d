"""Scripted tool for tests and demos."""

from __future__ import annotations

import copy
from typing import Any, Callable

from agent_engine.tools import Tool

OPEN_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": True}


class MockTool(Tool):
    def __init__(
        self,
        name: str,
        description: str,
        handler: Callable[..., Any],
        parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(name, description)
        self.handler = handler
        self.calls: list[dict[str, Any]] = []
        self._params_schema = parameters if parameters is not None else copy.deepcopy(OPEN_SCHEMA)

    @classmethod
    def returning(cls, name: str, description: str, value: Any, parameters: dict[str, Any] | None = None) -> MockTool:
        return cls(name, description, lambda *args, **kwargs: value, parameters)

    @classmethod
    def raising(cls, name: str, description: str, error: Exception) -> MockTool:
        def _raise(*args: Any, **kwargs: Any) -> Any:
            raise error

        return cls(name, description, _raise)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        self.calls.append(dict(kwargs))
        return self.handler(*args, **kwargs)
