"""Schema-driven validation and normalization of tool arguments.

A tool's JSON parameter schema is compiled into a pydantic model running in
lax mode, which gives the coercion rules: ``"3"`` becomes ``3`` for an
integer, ``"true"`` becomes ``True`` for a boolean, numbers become strings
for a string property. Undeclared keys are dropped, and so is every key
whose normalized value is ``None``, at any depth.

When no usable schema exists the raw arguments are passed through unchanged,
so ad-hoc tools stay callable.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Any, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

_PRIMITIVES: dict[str, Any] = {
    "string": str,
    "integer": int,
    "number": float,
    "boolean": bool,
}


def _union(types: tuple[Any, ...], nullable: bool) -> Any:
    if not types:
        return Any
    annotation = types[0] if len(types) == 1 else Union[types]
    return Optional[annotation] if nullable else annotation


def _annotation(prop: Mapping[str, Any], title: str) -> Any:
    enum = prop.get("enum")
    if isinstance(enum, list) and enum:
        return Literal[tuple(enum)]

    # anyOf/oneOf branches, e.g. {"anyOf": [{"type": "integer"}, {"type": "null"}]}
    variants = prop.get("anyOf") or prop.get("oneOf")
    if isinstance(variants, list) and variants:
        branches = [v for v in variants if isinstance(v, dict) and v.get("type") != "null"]
        types = tuple(_annotation(v, f"{title}_{i}") for i, v in enumerate(branches))
        return _union(types, nullable=len(branches) != len(variants))

    declared = prop.get("type")
    if isinstance(declared, list):
        options = [t for t in declared if t != "null"]
        types = tuple(_annotation({**prop, "type": t}, title) for t in options)
        return _union(types, nullable="null" in declared)

    if declared in _PRIMITIVES:
        return _PRIMITIVES[declared]
    if declared == "object":
        if isinstance(prop.get("properties"), dict):
            return _build_model(prop, title)
        return dict[str, Any]
    if declared == "array":
        items = prop.get("items")
        if isinstance(items, dict):
            return list[_annotation(items, f"{title}_item")]
        return list[Any]
    return Any


def _build_model(schema: Mapping[str, Any], title: str) -> type[BaseModel]:
    properties: dict[str, Any] = schema.get("properties") or {}
    required = set(schema.get("required") or [])
    extra = "allow" if schema.get("additionalProperties") is True else "ignore"

    # Properties are stored under positional field names with the property
    # name as alias, so names like "schema" or "_id" cannot clash with BaseModel.
    fields: dict[str, Any] = {}
    for index, (name, prop) in enumerate(properties.items()):
        prop = prop if isinstance(prop, dict) else {}
        annotation = _annotation(prop, f"{title}_{name}")
        description = prop.get("description")
        if name in required:
            fields[f"p{index}"] = (annotation, Field(..., alias=name, description=description))
        else:
            fields[f"p{index}"] = (Optional[annotation], Field(None, alias=name, description=description))

    config = ConfigDict(extra=extra, coerce_numbers_to_str=True)
    return create_model(title, __config__=config, **fields)


def _is_object_schema(schema: Any) -> bool:
    return (
        isinstance(schema, dict)
        and schema.get("type", "object") == "object"
        and isinstance(schema.get("properties"), dict)
    )


class ArgumentSchema:
    """A JSON parameter schema compiled for validation and normalization."""

    def __init__(self, schema: dict[str, Any]) -> None:
        self.schema = schema
        self.title = str(schema.get("x-title") or schema.get("title") or "arguments")
        self.model = _build_model(schema, self.title)

    @classmethod
    def from_json_schema(cls, schema: Any) -> ArgumentSchema | None:
        """Compile ``schema``, or return None when it is missing or malformed."""
        if not _is_object_schema(schema):
            return None
        try:
            return _compile(json.dumps(schema, sort_keys=True, default=str))
        except (TypeError, ValueError):
            return None

    def validate(self, args: Mapping[Any, Any]) -> list[str]:
        """Return validation error messages; empty when ``args`` is acceptable."""
        try:
            self.model.model_validate(_string_keys(args))
        except ValidationError as e:
            return [_format_error(err) for err in e.errors()]
        return []

    def is_valid(self, args: Mapping[Any, Any]) -> bool:
        return not self.validate(args)

    def normalize(self, args: Mapping[Any, Any]) -> dict[str, Any]:
        """Coerce ``args`` into the declared shape. Raises ValidationError if invalid."""
        record = self.model.model_validate(_string_keys(args))
        return record.model_dump(by_alias=True, exclude_none=True)


@lru_cache(maxsize=256)
def _compile(schema_json: str) -> ArgumentSchema:
    return ArgumentSchema(json.loads(schema_json))


def _string_keys(args: Mapping[Any, Any]) -> dict[str, Any]:
    return {key: value for key, value in args.items() if isinstance(key, str)}


def _format_error(error: Mapping[str, Any]) -> str:
    location = ".".join(str(part) for part in error.get("loc", ())) or "arguments"
    return f"{location}: {error.get('msg', 'invalid value')}"


def normalize_arguments(schema: Any, args: Mapping[Any, Any]) -> dict[Any, Any]:
    """Normalize ``args`` against ``schema``; raw args come back if the schema is unusable."""
    compiled = ArgumentSchema.from_json_schema(schema)
    if compiled is None:
        return dict(args)
    return compiled.normalize(args)
