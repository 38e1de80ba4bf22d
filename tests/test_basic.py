from agent_engine.budget import ExecutionBudget
from agent_engine.config import Settings
from agent_engine.models.decision import Decision, DecisionType
from agent_engine.models.state import AgentState, ExecutionStatus, Message, ToolCall, ToolExecution


def test_decision_call():
    d = Decision.call("read_file", {"path": "a.py"}, text="looking", tokens=5)
    assert d.type == DecisionType.CALL
    assert d.is_call()
    assert d.args == {"path": "a.py"}
    assert d.tokens == 5


def test_decision_final():
    d = Decision.final("done")
    assert d.is_final()
    assert d.tool is None
    assert d.args == {}


def test_empty_state():
    state = AgentState.empty()
    assert state.status == ExecutionStatus.RUNNING
    assert state.steps == ()
    assert state.last_step() is None
    assert state.final_response() == ""
    assert state.tokens_used() == 0


def test_state_transformations_return_new_instances():
    state = AgentState.empty()
    updated = state.with_system_prompt("be brief").with_metadata("k", 1)
    assert state.system_prompt == ""
    assert updated.system_prompt == "be brief"
    assert updated.metadata("k") == 1
    assert state.metadata("k") is None


def test_with_messages_accepts_dicts():
    state = AgentState.empty().with_messages([{"role": "user", "content": "hi"}])
    assert state.messages == (Message(role="user", content="hi"),)


def test_tool_execution_content():
    call = ToolCall(name="t")
    assert ToolExecution(tool_call=call, value="ok").content() == "ok"
    assert ToolExecution(tool_call=call, value={"a": 1}).content() == '{"a": 1}'
    assert ToolExecution(tool_call=call, error="nope").content() == "Error: nope"
    assert ToolExecution(tool_call=call, error="nope").has_error


def test_tool_call_to_openai():
    call = ToolCall(id="call_1", name="grep", arguments={"pattern": "x"})
    assert call.to_openai() == {
        "id": "call_1",
        "type": "function",
        "function": {"name": "grep", "arguments": '{"pattern": "x"}'},
    }


def test_budget_defaults():
    budget = ExecutionBudget()
    assert budget.is_empty()
    assert not ExecutionBudget(max_steps=3).is_empty()


def test_settings_defaults():
    s = Settings(llm_api_key="k")
    assert s.agent_max_steps == 30
    assert s.agent_max_tokens == 0
    assert s.planner_max_steps == 10
