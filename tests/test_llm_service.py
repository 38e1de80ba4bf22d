"""Tests that LLMService and ToolUseDriver honour ModelConfig and tool-call responses."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from agent_engine.config import ModelConfig
from agent_engine.models.state import AgentState
from agent_engine.tools import ToolRegistry
from agent_engine.tools.mock_tool import MockTool


@pytest.fixture(autouse=True)
def _reset_config_cache():
    import agent_engine.config as cfg
    cfg._models_config_cache = None
    yield
    cfg._models_config_cache = None


def _make_service(**kwargs):
    cfg = ModelConfig(
        model=kwargs.get("model", "m"),
        temperature=kwargs.get("temperature"),
        max_tokens=kwargs.get("max_tokens"),
        base_url=kwargs.get("base_url", "https://x.com/v1"),
    )
    with patch("agent_engine.services.llm_service._create_openai_client") as mock_client_fn:
        mock_client = MagicMock()
        mock_client_fn.return_value = mock_client
        from agent_engine.services.llm_service import LLMService
        svc = LLMService(config=cfg)
    return svc, mock_client


def _tool_call(name: str, arguments: str):
    tc = MagicMock()
    tc.function.name = name
    tc.function.arguments = arguments
    return tc


def _response(content: str | None = None, tool_calls=None, total_tokens: int = 0):
    resp = MagicMock()
    resp.choices = [MagicMock()]
    resp.choices[0].message.content = content
    resp.choices[0].message.tool_calls = tool_calls or []
    resp.usage.total_tokens = total_tokens
    return resp


# ---------------------------------------------------------------------------
# LLMService
# ---------------------------------------------------------------------------

class TestLLMService:
    def test_uses_model_config(self):
        svc, _ = _make_service(model="test-model", temperature=0.7, max_tokens=512)
        assert svc.model == "test-model"
        assert svc.temperature == 0.7
        assert svc.completion_options([]) == {"model": "test-model", "temperature": 0.7, "max_tokens": 512}

    def test_default_temperature(self):
        svc, _ = _make_service()
        assert svc.temperature == 0.2

    def test_zero_temperature_kept(self):
        svc, _ = _make_service(temperature=0.0)
        assert svc.temperature == 0.0

    def test_empty_model_falls_back_to_settings(self):
        from agent_engine.config import settings

        svc, _ = _make_service(model="")
        assert svc.model == settings.llm_model

    def test_generate_with_tools_passes_settings(self):
        svc, client = _make_service(model="my-model", temperature=0.5, max_tokens=2048)
        tools = [{"type": "function", "function": {"name": "foo"}}]
        svc.generate_with_tools([{"role": "user", "content": "hi"}], tools)
        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs["model"] == "my-model"
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 2048
        assert kwargs["tools"] == tools

    def test_generate_with_tools_omits_empty_options(self):
        svc, client = _make_service()
        svc.generate_with_tools([{"role": "user", "content": "hi"}], [])
        kwargs = client.chat.completions.create.call_args[1]
        assert "tools" not in kwargs
        assert "max_tokens" not in kwargs

    def test_custom_base_url_passed_to_client(self):
        cfg = ModelConfig(model="m", base_url="https://custom.example/v1")
        with patch("agent_engine.services.llm_service._create_openai_client") as mock_fn:
            mock_fn.return_value = MagicMock()
            from agent_engine.services.llm_service import LLMService
            LLMService(config=cfg)
            mock_fn.assert_called_once_with("https://custom.example/v1")

    def test_create_openai_client_empty_url_falls_back(self):
        import agent_engine.services.llm_service as mod
        from agent_engine.config import settings

        with patch.object(mod, "OpenAI") as mock_openai:
            mod._create_openai_client("")
        assert mock_openai.call_args[1]["base_url"] == settings.llm_base_url

    def test_no_config_no_yaml_uses_settings(self, tmp_path):
        with (
            patch.dict("os.environ", {"MODELS_CONFIG_PATH": str(tmp_path / "nope.yaml")}),
            patch("agent_engine.services.llm_service._create_openai_client", return_value=MagicMock()),
        ):
            from agent_engine.services.llm_service import LLMService
            from agent_engine.config import settings
            svc = LLMService()
            assert svc.model == settings.llm_model


# ---------------------------------------------------------------------------
# ToolUseDriver
# ---------------------------------------------------------------------------

class TestToolUseDriver:
    def _driver(self, response):
        from agent_engine.drivers.tool_use_driver import ToolUseDriver

        svc, client = _make_service()
        client.chat.completions.create.return_value = response
        return ToolUseDriver(svc), client

    def test_text_reply_is_final(self):
        driver, _ = self._driver(_response("All done", total_tokens=42))
        decision = driver.decide(AgentState.empty(), ToolRegistry())
        assert decision.is_final()
        assert decision.text == "All done"
        assert decision.tokens == 42

    def test_tool_call_reply(self):
        driver, _ = self._driver(_response("Let me look", [_tool_call("grep", '{"pattern": "x"}')]))
        decision = driver.decide(AgentState.empty(), ToolRegistry())
        assert decision.is_call()
        assert decision.tool == "grep"
        assert decision.args == {"pattern": "x"}
        assert decision.text == "Let me look"

    def test_only_first_tool_call_is_used(self):
        calls = [_tool_call("a", "{}"), _tool_call("b", "{}")]
        driver, _ = self._driver(_response(None, calls))
        decision = driver.decide(AgentState.empty(), ToolRegistry())
        assert decision.tool == "a"
        assert decision.text == ""

    def test_malformed_arguments_become_empty(self):
        driver, _ = self._driver(_response(None, [_tool_call("grep", "{not json")]))
        decision = driver.decide(AgentState.empty(), ToolRegistry())
        assert decision.args == {}

    def test_sends_system_prompt_history_and_tools(self):
        driver, client = self._driver(_response("ok"))
        state = (
            AgentState.empty()
            .with_system_prompt("be nice")
            .with_messages([{"role": "user", "content": "hello"}])
        )
        tools = ToolRegistry(MockTool.returning("echo", "Echo", "x"))
        driver.decide(state, tools)
        kwargs = client.chat.completions.create.call_args[1]
        assert kwargs["messages"][0] == {"role": "system", "content": "be nice"}
        assert kwargs["messages"][1] == {"role": "user", "content": "hello"}
        assert kwargs["tools"][0]["function"]["name"] == "echo"

    def test_with_model_config_builds_new_service(self):
        from agent_engine.drivers.tool_use_driver import ToolUseDriver

        svc, _ = _make_service()
        driver = ToolUseDriver(svc)
        with patch("agent_engine.services.llm_service._create_openai_client", return_value=MagicMock()):
            other = driver.with_model_config(ModelConfig(model="planner-model"))
        assert other is not driver
        assert other.llm.model == "planner-model"
        assert driver.llm.model == "m"
