"""Tools backed by a plain Python callable."""

from __future__ import annotations

import inspect
import typing
from typing import Any, Callable

from pydantic import create_model

from agent_engine.tools import Tool


def schema_from_callable(fn: Callable[..., Any]) -> dict[str, Any]:
    """Build a JSON parameter schema from ``fn``'s signature.

    Parameter descriptions can be attached with
    ``Annotated[str, Field(description=...)]``.
    """
    try:
        hints = typing.get_type_hints(fn, include_extras=True)
    except (NameError, TypeError):
        hints = {}

    fields: dict[str, Any] = {}
    for name, param in inspect.signature(fn).parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        annotation = hints.get(name, Any)
        default = ... if param.default is inspect.Parameter.empty else param.default
        fields[name] = (annotation, default)

    model = create_model(f"{getattr(fn, '__name__', 'function')}_arguments", **fields)
    schema = model.model_json_schema()
    schema.pop("title", None)
    for prop in schema.get("properties", {}).values():
        prop.pop("title", None)
    schema.setdefault("required", [])
    return schema


def _first_paragraph(doc: str | None) -> str:
    if not doc:
        return ""
    return doc.strip().split("\n\n", 1)[0].replace("\n", " ").strip()


class FunctionTool(Tool):
    def __init__(
        self,
        name: str,
        description: str,
        function: Callable[..., Any],
        parameters: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(name, description)
        self.function = function
        self._params_schema = parameters

    @classmethod
    def from_callable(
        cls,
        function: Callable[..., Any],
        name: str | None = None,
        description: str | None = None,
    ) -> FunctionTool:
        return cls(
            name=name or function.__name__,
            description=description if description is not None else _first_paragraph(inspect.getdoc(function)),
            function=function,
        )

    def build_parameters_schema(self) -> dict[str, Any]:
        return schema_from_callable(self.function)

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self.function(*args, **kwargs)
