# src/commandbot/tasks/registry.py

from __future__ import annotations

import logging
import threading

from .executor import Executor

logger = logging.getLogger(__name__)


class TaskRegistry:
    """
    Live tasks by id, so a chat user can name a task to kill.

    An executor is dropped from the registry as soon as it reaches a terminal
    state and its queues are closed.
    """

    def __init__(self) -> None:
        self._tasks: dict[str, Executor] = {}
        self._lock = threading.Lock()

    def add(self, executor: Executor) -> None:
        with self._lock:
            self._tasks[executor.id] = executor
        executor.add_done_callback(self._discard)

    def _discard(self, executor: Executor) -> None:
        with self._lock:
            self._tasks.pop(executor.id, None)
        logger.debug("Task %s left the registry (%s).", executor.id, executor.status)

    def get(self, task_id: str) -> Executor | None:
        with self._lock:
            return self._tasks.get(task_id)

    def running(self) -> list[Executor]:
        with self._lock:
            executors = list(self._tasks.values())
        return sorted(executors, key=lambda e: e.task.started_at or 0.0)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)
