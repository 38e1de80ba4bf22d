"""OpenAI-compatible chat client bound to one agent's model configuration."""

from __future__ import annotations

import logging
from typing import Any

from openai import OpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from agent_engine.config import ModelConfig, get_model_config, settings

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.2


def _create_openai_client(base_url: str = "") -> OpenAI:
    return OpenAI(
        api_key=settings.llm_api_key,
        base_url=base_url or settings.llm_base_url,
    )


class LLMService:
    def __init__(self, config: ModelConfig | None = None) -> None:
        self.config = config if config is not None else get_model_config()
        self.client = _create_openai_client(self.config.base_url)
        self.model = self.config.model or settings.llm_model

    @property
    def temperature(self) -> float:
        if self.config.temperature is None:
            return DEFAULT_TEMPERATURE
        return self.config.temperature

    def completion_options(self, tools: list[dict[str, Any]]) -> dict[str, Any]:
        """Request options other than the messages; empty tool lists and unset limits are omitted."""
        options: dict[str, Any] = {"model": self.model, "temperature": self.temperature}
        if tools:
            options["tools"] = tools
        if self.config.max_tokens is not None:
            options["max_tokens"] = self.config.max_tokens
        return options

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(min=2, max=30), reraise=True)
    def generate_with_tools(self, messages: list[dict[str, Any]], tools: list[dict[str, Any]]):
        logger.debug("Calling %s with %d messages and %d tools", self.model, len(messages), len(tools))
        return self.client.chat.completions.create(messages=messages, **self.completion_options(tools))
