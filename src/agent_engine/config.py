"""Settings plus per-agent model configuration and budgets from ``models.yaml``.

``models.yaml`` (path from ``MODELS_CONFIG_PATH``) has a ``default`` section
and an ``agents`` mapping; an agent's section overrides the default one::

    default:
      model: openai/gpt-4o-mini
      budget: {max_steps: 30}
    agents:
      planner:
        temperature: 0.1
        budget: {max_steps: 8, max_seconds: 120}

Without the file everything comes from :class:`Settings`.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings

from agent_engine.budget import LIMIT_NAMES, ExecutionBudget

logger = logging.getLogger(__name__)

PLANNER = "planner"


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    llm_api_key: str = ""
    llm_base_url: str = "https://openrouter.ai/api/v1"
    llm_model: str = "openai/gpt-4o-mini"

    # Agent loop budget (0 = unlimited)
    agent_max_steps: int = 30
    agent_max_tokens: int = 0
    agent_max_seconds: float = 0

    # Planning subagent budget (0 = unlimited)
    planner_max_steps: int = 10


settings = Settings()


@dataclass
class ModelConfig:
    model: str = ""
    temperature: float | None = None
    max_tokens: int | None = None
    base_url: str = ""


_models_config_cache: dict | None = None


def _load_models_yaml() -> dict:
    global _models_config_cache
    if _models_config_cache is None:
        path = Path(os.environ.get("MODELS_CONFIG_PATH", "models.yaml"))
        _models_config_cache = _read_yaml(path) if path.is_file() else {}
    return _models_config_cache


def _read_yaml(path: Path) -> dict:
    import yaml

    with open(path, encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        logger.warning("Ignoring %s: top level is not a mapping", path)
        return {}
    return data


def _sections(agent_name: str) -> tuple[dict[str, Any], dict[str, Any]]:
    data = _load_models_yaml()
    default = data.get("default") or {}
    agent = (data.get("agents") or {}).get(agent_name) or {} if agent_name else {}
    return default, agent


def get_model_config(agent_name: str = "") -> ModelConfig:
    """Model settings for ``agent_name``: its section over ``default`` over Settings."""
    default, agent = _sections(agent_name)
    merged = {**default, **agent}
    return ModelConfig(
        model=merged.get("model", settings.llm_model),
        temperature=merged.get("temperature"),
        max_tokens=merged.get("max_tokens"),
        base_url=merged.get("base_url", settings.llm_base_url),
    )


def _settings_budget(agent_name: str) -> ExecutionBudget:
    if agent_name == PLANNER:
        return ExecutionBudget(max_steps=settings.planner_max_steps or None)
    return ExecutionBudget(
        max_steps=settings.agent_max_steps or None,
        max_tokens=settings.agent_max_tokens or None,
        max_seconds=settings.agent_max_seconds or None,
    )


def get_budget(agent_name: str = "agent") -> ExecutionBudget:
    """Execution budget for ``agent_name``.

    ``budget`` keys from the agent section win over the default section, which
    wins over Settings. A configured 0 or null lifts that ceiling.
    """
    default, agent = _sections(agent_name)
    configured = {**(default.get("budget") or {}), **(agent.get("budget") or {})}

    budget = _settings_budget(agent_name)
    for name in LIMIT_NAMES:
        if name not in configured:
            continue
        value = configured[name]
        budget = budget.with_limits(**{name: value}) if value else budget.without_limits(name)
    return budget
