from __future__ import annotations

from enum import Enum
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict

TASKS_METADATA_KEY = "tasks"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class Task(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str
    status: TaskStatus = TaskStatus.PENDING
    active_form: str = ""


class TaskList(BaseModel):
    model_config = ConfigDict(frozen=True)

    tasks: tuple[Task, ...] = ()

    @classmethod
    def from_list(cls, items: Iterable[dict[str, Any] | Task]) -> TaskList:
        return cls(tasks=tuple(i if isinstance(i, Task) else Task.model_validate(i) for i in items))

    def to_list(self) -> list[dict[str, Any]]:
        return [task.model_dump(mode="json") for task in self.tasks]

    def with_status(self, status: TaskStatus) -> list[Task]:
        return [task for task in self.tasks if task.status == status]
