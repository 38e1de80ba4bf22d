from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from agent_engine.budget import ExecutionBudget, ExecutionGuard
from agent_engine.models.state import AgentState, Step

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def _state_with_steps(*tokens: int) -> AgentState:
    state = AgentState.empty().with_execution_started(T0)
    for t in tokens:
        state = state.with_step(Step(tokens=t))
    return state


def test_unlimited_never_exhausts():
    guard = ExecutionGuard(ExecutionBudget.unlimited())
    assert guard.check(_state_with_steps(*[1000] * 50)) is None


def test_step_limit():
    guard = ExecutionGuard(ExecutionBudget(max_steps=2))
    assert guard.check(_state_with_steps(0)) is None
    assert guard.check(_state_with_steps(0, 0)) == "step limit reached (2/2)"


def test_token_limit():
    guard = ExecutionGuard(ExecutionBudget(max_tokens=100))
    assert not guard.is_exhausted(_state_with_steps(40, 50))
    assert guard.is_exhausted(_state_with_steps(40, 60))


def test_time_limit():
    clock = FakeClock()
    guard = ExecutionGuard(ExecutionBudget(max_seconds=5), clock)
    state = _state_with_steps()
    assert guard.check(state) is None
    clock.advance(5)
    assert guard.check(state).startswith("time limit reached")


def test_time_limit_ignored_before_start():
    clock = FakeClock()
    guard = ExecutionGuard(ExecutionBudget(max_seconds=0), clock)
    assert guard.check(AgentState.empty()) is None


def test_zero_step_budget_is_exhausted_immediately():
    assert ExecutionGuard(ExecutionBudget(max_steps=0)).is_exhausted(AgentState.empty())


def test_with_limits_keeps_unspecified():
    budget = ExecutionBudget(max_steps=5, max_tokens=10).with_limits(max_tokens=20, max_seconds=1.5)
    assert budget == ExecutionBudget(max_steps=5, max_tokens=20, max_seconds=1.5)


def test_negative_limits_rejected():
    with pytest.raises(ValidationError):
        ExecutionBudget(max_steps=-1)


def test_budget_is_frozen():
    budget = ExecutionBudget(max_steps=1)
    with pytest.raises(ValidationError):
        budget.max_steps = 2


def test_without_limits_resets_to_unlimited():
    budget = ExecutionBudget(max_steps=5, max_tokens=10)
    relaxed = budget.without_limits("max_tokens")
    assert relaxed == ExecutionBudget(max_steps=5)
    assert budget.max_tokens == 10
    assert budget.without_limits("max_steps", "max_tokens").is_empty()


def test_without_limits_rejects_unknown_names():
    with pytest.raises(ValueError, match="max_turns"):
        ExecutionBudget(max_steps=1).without_limits("max_turns")
