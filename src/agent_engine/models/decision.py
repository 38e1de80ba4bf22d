"""Decision values produced by a decision source once per step."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DecisionType(str, Enum):
    CALL = "call"
    FINAL = "final"


class Decision(BaseModel):
    """Either "call tool T with raw args A" or "final answer R".

    ``args`` is deliberately loose (``dict[Any, Any]``): models sometimes
    produce ill-typed keys, which the tool-call builder drops.
    """

    model_config = ConfigDict(frozen=True)

    type: DecisionType
    tool: str | None = None
    args: dict[Any, Any] = Field(default_factory=dict)
    text: str = ""
    tokens: int = 0

    @classmethod
    def call(cls, tool: str, args: dict[Any, Any] | None = None, text: str = "", tokens: int = 0) -> Decision:
        return cls(type=DecisionType.CALL, tool=tool, args=dict(args or {}), text=text, tokens=tokens)

    @classmethod
    def final(cls, text: str, tokens: int = 0) -> Decision:
        return cls(type=DecisionType.FINAL, text=text, tokens=tokens)

    def is_call(self) -> bool:
        return self.type == DecisionType.CALL

    def is_final(self) -> bool:
        return self.type == DecisionType.FINAL
