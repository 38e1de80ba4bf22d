from __future__ import annotations

from unittest.mock import patch

import pytest

from agent_engine.budget import ExecutionBudget
from agent_engine.config import ModelConfig
from agent_engine.drivers.fake_driver import FakeAgentDriver, ScenarioStep
from agent_engine.errors import SubagentError
from agent_engine.models.state import AgentState, ExecutionStatus, Message, Step
from agent_engine.subagents.spawner import (
    PLANNING_TOOL_NAME,
    SPAWN_SUBAGENT_TOOL_NAME,
    SubagentSpawner,
)
from agent_engine.tools import ToolRegistry
from agent_engine.tools.mock_tool import MockTool


def _tools(*names: str) -> ToolRegistry:
    return ToolRegistry(*(MockTool.returning(n, n, f"{n} result") for n in names))


def _spawner(driver=None, tools=None, **kwargs) -> SubagentSpawner:
    return SubagentSpawner(
        parent_tools=tools if tools is not None else _tools("read_file"),
        parent_driver=driver or FakeAgentDriver(),
        **kwargs,
    )


def _parent() -> AgentState:
    return AgentState.empty().with_llm_config(ModelConfig(model="parent-model"))


class TestFilterTools:
    def test_recursive_tools_removed_even_when_allowed(self):
        registry = _tools(SPAWN_SUBAGENT_TOOL_NAME, PLANNING_TOOL_NAME, "read_file")
        spawner = _spawner(tools=registry)
        allow = {SPAWN_SUBAGENT_TOOL_NAME, PLANNING_TOOL_NAME, "read_file"}
        assert spawner.filter_tools(registry, allow).names() == ["read_file"]

    def test_empty_allow_list_means_everything_but_forbidden(self):
        registry = _tools("read_file", "grep", PLANNING_TOOL_NAME)
        spawner = _spawner(tools=registry)
        assert spawner.filter_tools(registry, None).names() == ["read_file", "grep"]
        assert spawner.filter_tools(registry, []).names() == ["read_file", "grep"]

    def test_allow_list_restricts(self):
        registry = _tools("read_file", "grep", "write_file")
        assert _spawner(tools=registry).filter_tools(registry, ["grep"]).names() == ["grep"]

    def test_custom_forbidden_names_extend_recursive_ones(self):
        registry = _tools("read_file", "write_file", SPAWN_SUBAGENT_TOOL_NAME)
        spawner = _spawner(tools=registry, forbidden_tool_names={"write_file"})
        assert spawner.filter_tools(registry, None).names() == ["read_file"]

    def test_extra_tools_are_available(self):
        spawner = _spawner(tools=_tools("read_file"), extra_tools=[MockTool.returning("notes", "Notes", "n")])
        assert spawner.build_loop().tools.names() == ["read_file", "notes"]


class TestRun:
    def test_returns_final_response(self):
        driver = FakeAgentDriver().with_child_steps([ScenarioStep.final("  the answer  ")])
        assert _spawner(driver).run("question", _parent()) == "the answer"

    def test_subagent_uses_parent_tools(self):
        reader = MockTool.returning("read_file", "Read", "content")
        driver = FakeAgentDriver().with_child_steps([
            ScenarioStep.tool_call("read_file", {"path": "a.py"}),
            ScenarioStep.final("read it"),
        ])
        result = _spawner(driver, tools=ToolRegistry(reader)).run("inspect", _parent())
        assert result == "read it"
        assert reader.calls == [{"path": "a.py"}]

    def test_failure_raises_with_details(self):
        driver = FakeAgentDriver().with_child_steps([ScenarioStep.failure("boom")])
        with pytest.raises(SubagentError, match="Subagent execution failed: boom"):
            _spawner(driver).run("task", _parent())

    def test_budget_limits_subagent(self):
        driver = FakeAgentDriver().with_child_steps(
            [ScenarioStep.tool_call("read_file", text="looking")] * 5
        )
        result = _spawner(driver, budget=ExecutionBudget(max_steps=1)).run("task", _parent())
        assert result == "looking\nread_file result"

    def test_empty_result_sentinel(self):
        assert _spawner(empty_result="nothing").run("task", _parent()) == "nothing"


class TestState:
    def test_initial_state_links_parent(self):
        parent = _parent()
        state = _spawner(system_prompt="  You plan.  ").initial_state("Goal", parent)
        assert state.parent_agent_id == parent.agent_id
        assert state.llm_config == parent.llm_config
        assert state.agent_id != parent.agent_id
        assert state.messages == (
            Message(role="system", content="You plan."),
            Message(role="user", content="Goal"),
        )

    def test_blank_system_prompt_is_omitted(self):
        state = _spawner().initial_state("Goal")
        assert [m.role for m in state.messages] == ["user"]
        assert state.parent_agent_id is None

    def test_initial_state_records_resolved_config(self):
        spawner = _spawner(config_name="planner")
        parent = AgentState.empty()
        with patch("agent_engine.subagents.spawner.get_model_config") as get_config:
            get_config.return_value = ModelConfig(model="planner-model")
            state = spawner.initial_state("Goal", parent)
        get_config.assert_called_once_with("planner")
        assert state.llm_config == ModelConfig(model="planner-model")
        assert state.parent_agent_id == parent.agent_id

    def test_model_config_prefers_parent(self):
        spawner = _spawner()
        assert spawner.resolve_model_config(_parent()).model == "parent-model"

    def test_model_config_falls_back_to_named_config(self):
        spawner = _spawner(config_name="planner")
        with patch("agent_engine.subagents.spawner.get_model_config") as get_config:
            get_config.return_value = ModelConfig(model="planner-model")
            config = spawner.resolve_model_config(AgentState.empty())
        get_config.assert_called_once_with("planner")
        assert config.model == "planner-model"

    def test_driver_retargeted_at_model_config(self):
        driver = _spawner().resolve_driver(_parent())
        assert driver.model_config == ModelConfig(model="parent-model")

    def test_driver_without_retargeting_is_shared(self):
        class PlainDriver:
            def decide(self, state, tools):
                raise AssertionError("not called")

        driver = PlainDriver()
        assert _spawner(driver).resolve_driver(_parent()) is driver


class TestResults:
    def test_extract_result_falls_back_to_last_output(self):
        step = Step(output_messages=(Message(role="assistant", content="partial"),))
        state = AgentState.empty().with_step(step).with_status(ExecutionStatus.SUSPENDED)
        assert _spawner().extract_result(state) == "partial"

    def test_failure_message_without_details(self):
        state = AgentState.empty().with_status(ExecutionStatus.FAILED)
        assert _spawner(label="Planner").failure_message(state) == "Planner execution failed."
