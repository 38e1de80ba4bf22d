"""Lifecycle hooks that may rewrite the agent state around each step."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Protocol

if TYPE_CHECKING:
    from agent_engine.models.state import AgentState

logger = logging.getLogger(__name__)


class HookTrigger(str, Enum):
    BEFORE_EXECUTION = "before_execution"
    BEFORE_STEP = "before_step"
    AFTER_STEP = "after_step"
    AFTER_EXECUTION = "after_execution"


class Hook(Protocol):
    def __call__(self, state: AgentState, trigger: HookTrigger) -> AgentState: ...


@dataclass(frozen=True)
class RegisteredHook:
    name: str
    hook: Hook
    triggers: frozenset[HookTrigger]
    priority: int = 0


class HookStack:
    """Immutable, name-keyed set of hooks.

    Registering a hook under a name that is already present replaces the
    earlier entry, so re-applying a capability never stacks duplicates.
    Hooks run in descending priority; equal priorities keep registration order.
    """

    def __init__(self, *hooks: RegisteredHook) -> None:
        self._hooks: dict[str, RegisteredHook] = {h.name: h for h in hooks}

    def with_hook(
        self,
        hook: Hook,
        triggers: Iterable[HookTrigger],
        priority: int = 0,
        name: str | None = None,
    ) -> HookStack:
        entry = RegisteredHook(
            name=name or getattr(hook, "__name__", type(hook).__name__),
            hook=hook,
            triggers=frozenset(triggers),
            priority=priority,
        )
        hooks = dict(self._hooks)
        hooks[entry.name] = entry
        return HookStack(*hooks.values())

    def without(self, name: str) -> HookStack:
        return HookStack(*(h for h in self._hooks.values() if h.name != name))

    def names(self) -> list[str]:
        return list(self._hooks)

    def for_trigger(self, trigger: HookTrigger) -> list[RegisteredHook]:
        matching = [h for h in self._hooks.values() if trigger in h.triggers]
        return sorted(matching, key=lambda h: -h.priority)

    def apply(self, state: AgentState, trigger: HookTrigger) -> AgentState:
        for entry in self.for_trigger(trigger):
            logger.debug("Running hook '%s' (%s)", entry.name, trigger.value)
            state = entry.hook(state, trigger)
        return state

    def __len__(self) -> int:
        return len(self._hooks)
