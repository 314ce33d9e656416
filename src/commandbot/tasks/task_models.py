# src/commandbot/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Progression is strictly forward:
        pending -> running -> succeeded | failed | killed
        pending -> failed  (the process could not be started)
    """

    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    KILLED = "killed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    def can_transition_to(self, new: TaskStatus) -> bool:
        return new in _TRANSITIONS[self]


TERMINAL_STATUSES = frozenset({TaskStatus.SUCCEEDED, TaskStatus.FAILED, TaskStatus.KILLED})

_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.RUNNING, TaskStatus.FAILED}),
    TaskStatus.RUNNING: TERMINAL_STATUSES,
    TaskStatus.SUCCEEDED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.KILLED: frozenset(),
}


@dataclass(slots=True)
class Task:
    id: str
    command_name: str
    args: list[str]
    status: TaskStatus = TaskStatus.PENDING

    started_at: float | None = None
    ended_at: float | None = None
    exit_code: int | None = None

    # Every line emitted by the task, normal and error, in arrival order.
    output: list[str] = field(default_factory=list)
