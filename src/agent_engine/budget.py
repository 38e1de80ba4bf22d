"""Execution budget and the guard that enforces it."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable

from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from agent_engine.models.state import AgentState


LIMIT_NAMES = ("max_steps", "max_tokens", "max_seconds")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExecutionBudget(BaseModel):
    """Optional ceilings on steps, tokens and wall-clock seconds. ``None`` means unlimited."""

    model_config = ConfigDict(frozen=True)

    max_steps: int | None = Field(default=None, ge=0)
    max_tokens: int | None = Field(default=None, ge=0)
    max_seconds: float | None = Field(default=None, ge=0)

    @classmethod
    def unlimited(cls) -> ExecutionBudget:
        return cls()

    def is_empty(self) -> bool:
        return self.max_steps is None and self.max_tokens is None and self.max_seconds is None

    def with_limits(
        self,
        max_steps: int | None = None,
        max_tokens: int | None = None,
        max_seconds: float | None = None,
    ) -> ExecutionBudget:
        """Return a copy with the given ceilings replaced; omitted ones are kept."""
        return ExecutionBudget(
            max_steps=max_steps if max_steps is not None else self.max_steps,
            max_tokens=max_tokens if max_tokens is not None else self.max_tokens,
            max_seconds=max_seconds if max_seconds is not None else self.max_seconds,
        )

    def without_limits(self, *names: str) -> ExecutionBudget:
        """Return a copy with the named ceilings (e.g. ``"max_tokens"``) made unlimited."""
        unknown = set(names) - set(LIMIT_NAMES)
        if unknown:
            raise ValueError(f"Unknown budget limit(s): {', '.join(sorted(unknown))}")
        return self.model_copy(update={name: None for name in names})


class ExecutionGuard:
    """Compares what a state has consumed against a budget.

    Consumption is derived from the state itself (step count, token sum, time
    since the execution started), so a suspended state re-checked against the
    same budget is exhausted again.
    """

    def __init__(self, budget: ExecutionBudget, clock: Callable[[], datetime] = utcnow) -> None:
        self.budget = budget
        self.clock = clock

    def check(self, state: AgentState) -> str | None:
        """Return the exhaustion reason, or None while within budget."""
        budget = self.budget
        if budget.is_empty():
            return None

        if budget.max_steps is not None and len(state.steps) >= budget.max_steps:
            return f"step limit reached ({len(state.steps)}/{budget.max_steps})"

        if budget.max_tokens is not None:
            used = state.tokens_used()
            if used >= budget.max_tokens:
                return f"token limit reached ({used}/{budget.max_tokens})"

        if budget.max_seconds is not None and state.execution_started_at is not None:
            elapsed = (self.clock() - state.execution_started_at).total_seconds()
            if elapsed >= budget.max_seconds:
                return f"time limit reached ({elapsed:.1f}s/{budget.max_seconds}s)"

        return None

    def is_exhausted(self, state: AgentState) -> bool:
        return self.check(state) is not None
