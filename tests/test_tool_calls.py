from __future__ import annotations

from agent_engine.drivers.tool_calls import ToolCallBuilder
from agent_engine.models.decision import Decision
from agent_engine.tools import ToolRegistry
from agent_engine.tools.mock_tool import MockTool

READ_SCHEMA = {
    "type": "object",
    "properties": {"path": {"type": "string"}, "limit": {"type": "integer"}},
    "required": ["path"],
}


class StaticResolver:
    def __init__(self, schemas):
        self.schemas = schemas
        self.lookups: list[str] = []

    def resolve(self, tool_name):
        self.lookups.append(tool_name)
        return self.schemas.get(tool_name)


def _builder() -> ToolCallBuilder:
    return ToolCallBuilder(ToolRegistry(MockTool.returning("read_file", "Read", "x", parameters=READ_SCHEMA)))


def test_final_decision_builds_nothing():
    assert _builder().build(Decision.final("done")) is None


def test_valid_call_is_normalized():
    call = _builder().build(Decision.call("read_file", {"path": "a.py", "limit": "10", "junk": True}))
    assert call is not None
    assert call.name == "read_file"
    assert call.arguments == {"path": "a.py", "limit": 10}
    assert call.id.startswith("call_")


def test_invalid_call_is_rejected():
    builder = _builder()
    decision = Decision.call("read_file", {"limit": "ten"})
    assert builder.build(decision) is None
    errors = builder.validation_errors(decision)
    assert any(e.startswith("path:") for e in errors)
    assert any(e.startswith("limit:") for e in errors)


def test_unknown_tool_passes_raw_arguments():
    call = _builder().build(Decision.call("missing_tool", {"x": "1", 2: "dropped"}))
    assert call is not None
    assert call.name == "missing_tool"
    assert call.arguments == {"x": "1"}


def test_schema_resolved_once_per_tool():
    resolver = StaticResolver({"read_file": READ_SCHEMA})
    builder = ToolCallBuilder(ToolRegistry(), resolver)
    builder.build(Decision.call("read_file", {"path": "a"}))
    builder.build(Decision.call("read_file", {"path": "b"}))
    assert resolver.lookups == ["read_file"]


def test_synthesized_schema_title():
    schema = _builder().argument_schema("read_file")
    assert schema is not None
    assert schema.title == "read_file_arguments"
    assert schema.schema["description"] == "Arguments for read_file"


def test_open_schema_keeps_everything():
    builder = ToolCallBuilder(ToolRegistry(MockTool.returning("echo", "Echo", "x")))
    call = builder.build(Decision.call("echo", {"a": 1, "b": "two"}))
    assert call.arguments == {"a": 1, "b": "two"}


def test_optional_function_parameters_are_coerced(tmp_path):
    from agent_engine.tools.file_tools import create_file_tools

    (tmp_path / "a.txt").write_text("one\ntwo\nthree\n")
    tools = ToolRegistry(*create_file_tools(tmp_path))
    call = ToolCallBuilder(tools).build(
        Decision.call("read_file", {"path": "a.txt", "offset": "1", "limit": "1"})
    )
    assert call.arguments == {"path": "a.txt", "offset": 1, "limit": 1}
    result = tools.get("read_file")(**call.arguments)
    assert "   2 | two" in result
    assert "three" not in result
