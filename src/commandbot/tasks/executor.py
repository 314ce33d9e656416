# src/commandbot/tasks/executor.py

"""
Task executor.

One Executor owns one external process invocation:
- builds argv from the command template and bound parameters,
- starts the process (pending -> running, or pending -> failed),
- pumps stdout into the normal queue and stderr into the error queue,
- mirrors every line to the command's log file (best-effort),
- settles the terminal status when the process exits or is killed,
- closes both queues after the pumps have delivered everything.

Threads per task: two pumps (stdout, stderr), one waiter, and a SIGKILL
timer once the task is killed. Consumers are owned by the caller (see
commands/invocation.py).
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import string
import subprocess
import threading
import time
import uuid
from collections.abc import Callable, Sequence
from typing import IO, TYPE_CHECKING

from ..commands.params import Param
from ..core.errors import LaunchError, TaskRuntimeError, ValidationError
from .output import OutputQueue, TaskLog
from .task_models import Task, TaskStatus

if TYPE_CHECKING:
    from ..commands.command import Command

logger = logging.getLogger(__name__)

DoneCallback = Callable[["Executor"], None]

LOG_FLUSH_TIMEOUT_S = 5.0
# SIGTERM -> SIGKILL escalation delay for kill().
KILL_GRACE_S = 3.0


def new_task_id() -> str:
    return uuid.uuid4().hex[:8]


def _strip_eol(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n") or line.endswith("\r"):
        return line[:-1]
    return line


def build_args(template: str, params: Sequence[Param]) -> list[str]:
    """
    Expand a command template into argv.

    The template is split with shell-word rules, then `$name` / `${name}`
    placeholders in each word are replaced by parameter values (last value
    wins for repeated names). Parameters no placeholder refers to are
    appended as `--name=value`, in input order.
    """
    try:
        words = shlex.split(template)
    except ValueError as e:
        raise LaunchError(f"invalid command template: {str(e).lower()}") from e
    if not words:
        raise LaunchError("empty command template")

    values = {p.name: p.value for p in params}
    used: set[str] = set()
    args: list[str] = []

    for word in words:
        tmpl = string.Template(word)
        try:
            args.append(tmpl.substitute(values))
        except KeyError as e:
            raise LaunchError(f"template substitution failed: no value for ${e.args[0]}") from e
        except ValueError as e:
            raise LaunchError(f"template substitution failed: {e}") from e
        used.update(tmpl.get_identifiers())

    for p in params:
        if p.name not in used:
            args.append(f"--{p.name}={p.value}")

    return args


class Executor:
    def __init__(self, command: Command, params: Sequence[Param], *, kill_grace_s: float = KILL_GRACE_S) -> None:
        for p in params:
            if not command.is_valid_param_name(p.name):
                raise ValidationError(f"unknown param name: {p.name}")

        self.command = command
        self.params = list(params)
        self.kill_grace_s = kill_grace_s
        self.task = Task(id=new_task_id(), command_name=command.name, args=[])

        self._normal = OutputQueue("normal")
        self._errors = OutputQueue("error")
        self._log: TaskLog | None = None
        if command.log_filename:
            self._log = TaskLog(command.log_filename, task_id=self.task.id)

        self._lock = threading.Lock()
        self._emit_lock = threading.Lock()
        self._proc: subprocess.Popen[str] | None = None
        self._done = threading.Event()
        self._finished = False
        self._callbacks: list[DoneCallback] = []
        self._kill_timer: threading.Timer | None = None

    # ---- state ----

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def status(self) -> TaskStatus:
        with self._lock:
            return self.task.status

    def _set_status(self, new: TaskStatus) -> bool:
        """Caller holds self._lock. Returns False if the transition is not allowed."""
        old = self.task.status
        if not old.can_transition_to(new):
            return False
        self.task.status = new
        logger.info("Task %s (%s): %s -> %s", self.task.id, self.task.command_name, old, new)
        return True

    def add_done_callback(self, fn: DoneCallback) -> None:
        """Call `fn(executor)` once the task is terminal and both queues are closed."""
        with self._lock:
            if not self._finished:
                self._callbacks.append(fn)
                return
        fn(self)

    def wait(self, timeout: float | None = None) -> TaskStatus:
        self._done.wait(timeout=timeout)
        return self.status

    # ---- lifecycle ----

    def start(self) -> None:
        """
        Start the process.

        Raises LaunchError if argv cannot be built or the process cannot be
        started; the reason is also pushed onto the error queue and the task
        ends as failed.
        """
        error: LaunchError | None = None

        with self._lock:
            if self.task.status is not TaskStatus.PENDING:
                raise RuntimeError(f"task {self.task.id} was already started")
            try:
                self.task.args = build_args(self.command.command, self.params)
                self._proc = subprocess.Popen(
                    self.task.args,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    text=True,
                    encoding="utf-8",
                    errors="replace",
                    bufsize=1,
                    start_new_session=(os.name == "posix"),
                )
            except LaunchError as e:
                error = e
            except (OSError, ValueError, subprocess.SubprocessError) as e:
                error = LaunchError(f"failed to start {self.task.args[0]}: {e}")
            else:
                self.task.started_at = time.time()
                self._set_status(TaskStatus.RUNNING)

        if error is not None:
            logger.warning("Task %s (%s) launch failed: %s", self.task.id, self.task.command_name, error)
            self._emit(self._errors, str(error))
            self._settle(TaskStatus.FAILED)
            raise error

        assert self._proc is not None and self._proc.stdout is not None and self._proc.stderr is not None
        pumps = [
            threading.Thread(
                target=self._pump,
                args=(self._proc.stdout, self._normal),
                name=f"task-{self.task.id}-stdout",
                daemon=True,
            ),
            threading.Thread(
                target=self._pump,
                args=(self._proc.stderr, self._errors),
                name=f"task-{self.task.id}-stderr",
                daemon=True,
            ),
        ]
        for t in pumps:
            t.start()

        threading.Thread(
            target=self._wait_for_exit,
            args=(pumps,),
            name=f"task-{self.task.id}-wait",
            daemon=True,
        ).start()

    def kill(self) -> bool:
        """
        Terminate a running task.

        The task becomes killed immediately and its process group gets
        SIGTERM, even when the direct child already exited but a group member
        still holds the output pipes. Whatever is left after `kill_grace_s`
        gets SIGKILL, so the queues always close. Returns False when the task
        is not running.
        """
        with self._lock:
            proc = self._proc
            if self.task.status is not TaskStatus.RUNNING or proc is None:
                return False
            self._set_status(TaskStatus.KILLED)
            self.task.ended_at = time.time()

            timer = threading.Timer(self.kill_grace_s, self._escalate, args=(proc,))
            timer.name = f"task-{self.task.id}-kill"
            timer.daemon = True
            self._kill_timer = timer

        self._signal(proc, force=False)
        timer.start()
        return True

    def _signal(self, proc: subprocess.Popen[str], *, force: bool) -> None:
        try:
            if os.name == "posix":
                # start_new_session made the child a group leader; the pgid
                # stays valid while any member is alive.
                os.killpg(proc.pid, signal.SIGKILL if force else signal.SIGTERM)
            elif force:
                proc.kill()
            else:
                proc.terminate()
        except ProcessLookupError:
            logger.debug("Task %s: process group already gone on kill.", self.task.id)

    def _escalate(self, proc: subprocess.Popen[str]) -> None:
        if self._done.is_set():
            return
        logger.warning("Task %s still alive %.1fs after SIGTERM; sending SIGKILL.", self.task.id, self.kill_grace_s)
        self._signal(proc, force=True)

    # ---- consumers ----

    def next_normal_message(self) -> tuple[str, bool]:
        return self._normal.get()

    def next_error_message(self) -> tuple[str, bool]:
        return self._errors.get()

    # ---- internals ----

    def _emit(self, q: OutputQueue, line: str) -> None:
        # One lock keeps the log mirror in arrival order across both streams.
        with self._emit_lock:
            self.task.output.append(line)
            q.put(line)
            if self._log is not None:
                self._log.write(line)

    def _pump(self, stream: IO[str], q: OutputQueue) -> None:
        try:
            for raw in stream:
                self._emit(q, _strip_eol(raw))
        except (OSError, ValueError) as e:
            self._emit(self._errors, str(TaskRuntimeError(f"output read failed: {e}")))
        finally:
            stream.close()

    def _wait_for_exit(self, pumps: list[threading.Thread]) -> None:
        assert self._proc is not None
        for t in pumps:
            t.join()

        code = self._proc.wait()
        self.task.exit_code = code

        if code == 0:
            self._settle(TaskStatus.SUCCEEDED)
            return

        if self.status is not TaskStatus.KILLED:
            self._emit(self._errors, str(TaskRuntimeError(f"exit status {code}")))
        self._settle(TaskStatus.FAILED)

    def _settle(self, status: TaskStatus) -> None:
        """Apply the terminal status (unless already terminal), then close everything."""
        with self._lock:
            if self._set_status(status) or self.task.ended_at is None:
                self.task.ended_at = time.time()

        self._normal.close()
        self._errors.close()
        if self._log is not None:
            # Only the waiter thread blocks here; consumers already see closure.
            self._log.close()
            self._log.join(timeout=LOG_FLUSH_TIMEOUT_S)

        with self._lock:
            self._finished = True
            callbacks, self._callbacks = self._callbacks, []
            if self._kill_timer is not None:
                self._kill_timer.cancel()

        for fn in callbacks:
            try:
                fn(self)
            except Exception:
                logger.exception("Task %s done-callback failed.", self.task.id)

        self._done.set()


def new_executor(command: Command, params: Sequence[Param]) -> Executor:
    """Validate, build and start an executor in one step."""
    executor = Executor(command, params)
    executor.start()
    return executor
