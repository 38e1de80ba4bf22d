"""Decide -> act -> observe loop with budget gating and lifecycle hooks."""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Callable, Iterator, Protocol

from agent_engine.budget import ExecutionBudget, ExecutionGuard, utcnow
from agent_engine.drivers import DecisionSource
from agent_engine.drivers.tool_calls import ToolCallBuilder
from agent_engine.errors import FatalAgentError, ToolNotFoundError
from agent_engine.hooks import HookStack, HookTrigger
from agent_engine.models.decision import Decision
from agent_engine.models.state import (
    AgentState,
    ExecutionStatus,
    Message,
    Step,
    ToolCall,
    ToolExecution,
)
from agent_engine.tools import ToolRegistry
from agent_engine.tools.context_aware import ContextAwareTool

logger = logging.getLogger(__name__)


class StepCallback(Protocol):
    def on_step_start(self, step: int, state: AgentState) -> None: ...
    def on_thinking(self, text: str) -> None: ...
    def on_tool_call(self, call: ToolCall) -> None: ...
    def on_tool_result(self, execution: ToolExecution) -> None: ...
    def on_finish(self, state: AgentState) -> None: ...


class NullCallback:
    def on_step_start(self, step: int, state: AgentState) -> None: ...
    def on_thinking(self, text: str) -> None: ...
    def on_tool_call(self, call: ToolCall) -> None: ...
    def on_tool_result(self, execution: ToolExecution) -> None: ...
    def on_finish(self, state: AgentState) -> None: ...


class RejectedCallPolicy(str, Enum):
    """What to do when a proposed tool call fails schema validation.

    FINISH ends the execution successfully with the decision's text as the
    answer; FAIL ends it as failed. Both record the validation errors on the
    step. Neither retries the decision source.
    """

    FINISH = "finish"
    FAIL = "fail"


class AgentLoop:
    def __init__(
        self,
        tools: ToolRegistry,
        driver: DecisionSource,
        budget: ExecutionBudget | None = None,
        hooks: HookStack | None = None,
        callback: StepCallback | None = None,
        rejected_call_policy: RejectedCallPolicy = RejectedCallPolicy.FINISH,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.tools = tools
        self.driver = driver
        self.budget = budget or ExecutionBudget.unlimited()
        self.hooks = hooks or HookStack()
        self.cb: StepCallback = callback or NullCallback()
        self.rejected_call_policy = rejected_call_policy
        self.clock = clock
        self.tool_calls = ToolCallBuilder(tools)

    def execute(self, state: AgentState) -> AgentState:
        """Run until the state is succeeded, failed or suspended."""
        final = state
        for final in self.iterate(state):
            pass
        return final

    def iterate(self, state: AgentState) -> Iterator[AgentState]:
        """Yield the state after every step.

        A suspended state is resumed; a succeeded or failed one yields nothing.
        """
        if state.status in (ExecutionStatus.SUCCEEDED, ExecutionStatus.FAILED):
            logger.info("Agent %s is already %s, nothing to execute", state.agent_id, state.status.value)
            return

        state = state.resumed()
        if state.execution_started_at is None:
            state = state.with_execution_started(self.clock())
        state = self.hooks.apply(state, HookTrigger.BEFORE_EXECUTION)

        budget = state.budget if state.budget is not None else self.budget
        guard = None if budget.is_empty() else ExecutionGuard(budget, self.clock)

        while state.status == ExecutionStatus.RUNNING:
            reason = guard.check(state) if guard is not None else None
            if reason is not None:
                logger.info("Suspending agent %s: %s", state.agent_id, reason)
                state = state.with_status(ExecutionStatus.SUSPENDED, reason)
                yield state
                break
            state = self.step(state)
            state = self.hooks.apply(state, HookTrigger.AFTER_STEP)
            yield state

        final = self.hooks.apply(state, HookTrigger.AFTER_EXECUTION)
        self.cb.on_finish(final)
        logger.info(
            "Agent %s finished: %s after %d steps", final.agent_id, final.status.value, len(final.steps)
        )
        if final is not state:
            yield final

    def step(self, state: AgentState) -> AgentState:
        """Perform one decide -> act iteration on a running state."""
        started = self.clock()
        logger.info("Agent %s step %d", state.agent_id, len(state.steps) + 1)
        self.cb.on_step_start(len(state.steps) + 1, state)
        state = self.hooks.apply(state, HookTrigger.BEFORE_STEP)

        try:
            decision = self.driver.decide(state, self.tools)
        except Exception as e:
            logger.exception("Decision source failed")
            message = _describe(e)
            step = Step(errors=(message,), started_at=started, completed_at=self.clock())
            return state.with_step(step).with_status(ExecutionStatus.FAILED, message)

        tool_call = self.tool_calls.build(decision)
        if tool_call is None:
            return self._finish(state, decision, started)
        if decision.text:
            self.cb.on_thinking(decision.text)
        return self._execute_call(state, decision, tool_call, started)

    def _finish(self, state: AgentState, decision: Decision, started: datetime) -> AgentState:
        output = (Message(role="assistant", content=decision.text),) if decision.text else ()
        errors: tuple[str, ...] = ()
        if decision.is_call():
            problems = "; ".join(self.tool_calls.validation_errors(decision))
            errors = (f"Invalid arguments for '{decision.tool}': {problems}",)
            logger.info("Tool call to '%s' rejected: %s", decision.tool, problems)

        step = Step(
            decision=decision,
            output_messages=output,
            errors=errors,
            tokens=decision.tokens,
            started_at=started,
            completed_at=self.clock(),
        )
        state = state.with_step(step)
        if errors and self.rejected_call_policy == RejectedCallPolicy.FAIL:
            return state.with_status(ExecutionStatus.FAILED, errors[0])
        return state.with_status(ExecutionStatus.SUCCEEDED)

    def _execute_call(
        self,
        state: AgentState,
        decision: Decision,
        tool_call: ToolCall,
        started: datetime,
    ) -> AgentState:
        self.cb.on_tool_call(tool_call)
        fatal: str | None = None
        try:
            execution = self._invoke(tool_call, state)
        except FatalAgentError as e:
            logger.error("Tool '%s' failed fatally: %s", tool_call.name, e)
            fatal = _describe(e)
            execution = ToolExecution(tool_call=tool_call, error=fatal)
        self.cb.on_tool_result(execution)

        step = Step(
            decision=decision,
            tool_executions=(execution,),
            output_messages=(
                Message(role="assistant", content=decision.text, tool_calls=(tool_call.to_openai(),)),
                Message(role="tool", content=execution.content(), tool_call_id=tool_call.id),
            ),
            tokens=decision.tokens,
            started_at=started,
            completed_at=self.clock(),
        )
        state = state.with_step(step)
        if fatal is not None:
            return state.with_status(ExecutionStatus.FAILED, fatal)
        return state

    def _invoke(self, tool_call: ToolCall, state: AgentState) -> ToolExecution:
        if not self.tools.has(tool_call.name):
            logger.warning("Unknown tool '%s'", tool_call.name)
            return ToolExecution(tool_call=tool_call, error=str(ToolNotFoundError(tool_call.name)))

        tool = self.tools.get(tool_call.name)
        if isinstance(tool, ContextAwareTool):
            tool = tool.with_agent_state(state).with_tool_call(tool_call)
        try:
            value = tool(**tool_call.arguments)
        except FatalAgentError:
            raise
        except Exception as e:
            logger.error("Tool '%s' failed: %s", tool_call.name, e)
            return ToolExecution(tool_call=tool_call, error=_describe(e))
        return ToolExecution(tool_call=tool_call, value=value)


def _describe(error: Exception) -> str:
    return str(error) or type(error).__name__
