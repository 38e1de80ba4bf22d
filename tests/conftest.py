"""Shared test setup."""

# Import modules that bind config helpers by name before any test patches
# agent_engine.config, so a patch active at first import cannot leak.
import agent_engine.services.llm_service  # noqa: F401
