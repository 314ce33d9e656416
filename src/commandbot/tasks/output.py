# src/commandbot/tasks/output.py

"""
Output plumbing for a running task.

OutputQueue: unbounded single-producer/single-consumer line queue that is
closed exactly once. Closing enqueues a sentinel, so every line put before
close() is seen by the consumer before it sees the closure.

TaskLog: best-effort append-only mirror of a task's output to a file. A
worker thread does the disk I/O so the streaming path never waits on it.
"""

from __future__ import annotations

import logging
import queue
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

_CLOSED = object()


class OutputQueue:
    def __init__(self, name: str = "output") -> None:
        self.name = name
        self._queue: "queue.Queue[object]" = queue.Queue()
        self._close_lock = threading.Lock()
        self._closed = False
        self._drained = False

    def put(self, line: str) -> None:
        if self._closed:
            raise RuntimeError(f"{self.name} queue is closed")
        self._queue.put(line)

    def close(self) -> None:
        """Close the queue. Further calls are no-ops."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True
        self._queue.put(_CLOSED)

    def get(self, timeout: float | None = None) -> tuple[str, bool]:
        """
        Block until a line is available or the queue is closed.

        Returns (line, True) for a line and ("", False) once the queue is
        closed and drained; every later call returns ("", False) too.
        Raises queue.Empty if `timeout` expires first.
        """
        if self._drained:
            return "", False
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            self._drained = True
            return "", False
        return str(item), True


class TaskLog:
    """Append lines to `path` from a background worker thread."""

    def __init__(self, path: str | Path, *, task_id: str = "") -> None:
        self.path = Path(path)
        self.task_id = task_id
        self._queue: "queue.Queue[str | None]" = queue.Queue()
        self._failed = False
        self._worker: Optional[threading.Thread] = threading.Thread(
            target=self._run,
            name=f"task-log-{task_id or self.path.name}",
            daemon=True,
        )
        self._worker.start()

    def write(self, line: str) -> None:
        if not self._failed:
            self._queue.put(line)

    def close(self) -> None:
        self._queue.put(None)

    def join(self, timeout: float | None = None) -> None:
        if self._worker is not None:
            self._worker.join(timeout=timeout)

    def _run(self) -> None:
        fh = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fh = self.path.open("a", encoding="utf-8")
        except OSError as e:
            self._fail(e)

        while True:
            item = self._queue.get()
            if item is None:
                break
            if fh is None:
                continue
            try:
                fh.write(item + "\n")
                fh.flush()
            except OSError as e:
                self._fail(e)
                fh.close()
                fh = None

        if fh is not None:
            try:
                fh.close()
            except OSError as e:
                self._fail(e)

    def _fail(self, err: OSError) -> None:
        # Warn once per task; the mirror is disabled from here on.
        if not self._failed:
            logger.warning("Task log %s disabled (task=%s): %r", self.path, self.task_id, err)
        self._failed = True
