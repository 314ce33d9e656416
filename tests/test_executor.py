# tests/test_executor.py

from __future__ import annotations

import os
from pathlib import Path

import pytest

from commandbot.commands.command import Command
from commandbot.commands.params import Param
from commandbot.core.errors import LaunchError, ValidationError
from commandbot.tasks.executor import Executor, build_args, new_executor
from commandbot.tasks.task_models import TaskStatus

from .fakes import python_command

WAIT_S = 10.0


def _drain_normal(executor: Executor) -> list[str]:
    lines = []
    while True:
        text, ok = executor.next_normal_message()
        if not ok:
            return lines
        lines.append(text)


def _drain_errors(executor: Executor) -> list[str]:
    lines = []
    while True:
        text, ok = executor.next_error_message()
        if not ok:
            return lines
        lines.append(text)


def test_build_args_substitutes_and_appends() -> None:
    params = [Param("env", "prod"), Param("force", "yes")]
    assert build_args("deploy.sh --env ${env}", params) == ["deploy.sh", "--env", "prod", "--force=yes"]
    assert build_args("echo '$env and $$HOME'", params) == ["echo", "prod and $HOME", "--force=yes"]


def test_build_args_repeated_names() -> None:
    params = [Param("tag", "a"), Param("tag", "b")]
    assert build_args("tool", params) == ["tool", "--tag=a", "--tag=b"]
    assert build_args("tool $tag", params) == ["tool", "b"]


@pytest.mark.parametrize("template", ["tool ${missing}", "tool $", "", "tool 'unterminated"])
def test_build_args_failures_are_launch_errors(template: str) -> None:
    with pytest.raises(LaunchError):
        build_args(template, [])


def test_undeclared_param_is_rejected() -> None:
    cmd = Command(name="deploy", command="true", param_names=("env",))
    with pytest.raises(ValidationError):
        Executor(cmd, [Param("env", "prod"), Param("region", "eu")])


def test_stdout_lines_then_closure_and_success() -> None:
    cmd = Command(name="steps", command=python_command("print('step 1'); print('step 2')"))
    executor = new_executor(cmd, [])

    assert _drain_normal(executor) == ["step 1", "step 2"]
    assert executor.wait(WAIT_S) is TaskStatus.SUCCEEDED
    assert _drain_errors(executor) == []
    assert executor.next_normal_message() == ("", False)

    task = executor.task
    assert task.exit_code == 0
    assert task.started_at is not None and task.ended_at is not None
    assert task.ended_at >= task.started_at


def test_stderr_and_non_zero_exit_fail() -> None:
    code = "import sys; print('out'); sys.stderr.write('boom\\n'); sys.exit(3)"
    executor = new_executor(Command(name="bad", command=python_command(code)), [])

    assert _drain_normal(executor) == ["out"]
    assert _drain_errors(executor) == ["boom", "exit status 3"]
    assert executor.wait(WAIT_S) is TaskStatus.FAILED
    assert executor.task.exit_code == 3


def test_parameters_reach_the_process() -> None:
    code = "import sys; print(' '.join(sys.argv[1:]))"
    cmd = Command(name="deploy", command=python_command(code) + " ${env}", param_names=("env", "dry"))
    executor = new_executor(cmd, [Param("env", "prod"), Param("dry", "1")])

    assert _drain_normal(executor) == ["prod --dry=1"]
    assert executor.wait(WAIT_S) is TaskStatus.SUCCEEDED


def test_queues_are_independent() -> None:
    code = (
        "import sys\n"
        "for i in range(200):\n"
        "    sys.stderr.write('e%d\\n' % i)\n"
        "    print('o%d' % i)\n"
    )
    executor = new_executor(Command(name="both", command=python_command(code)), [])

    # The error queue is left unread until normal output has fully closed.
    assert _drain_normal(executor) == [f"o{i}" for i in range(200)]
    assert _drain_errors(executor) == [f"e{i}" for i in range(200)]
    assert executor.wait(WAIT_S) is TaskStatus.SUCCEEDED


def test_kill_running_task() -> None:
    code = "import time; print('partial'); time.sleep(60)"
    executor = new_executor(Command(name="slow", command=python_command(code)), [])

    assert executor.next_normal_message() == ("partial", True)
    assert executor.status is TaskStatus.RUNNING

    assert executor.kill() is True
    assert executor.status is TaskStatus.KILLED

    assert executor.next_normal_message() == ("", False)
    assert executor.wait(WAIT_S) is TaskStatus.KILLED
    assert _drain_errors(executor) == []

    # Terminal status never changes again.
    assert executor.kill() is False
    assert executor.status is TaskStatus.KILLED


def test_kill_after_exit_is_a_no_op() -> None:
    executor = new_executor(Command(name="quick", command=python_command("print('x')")), [])
    assert executor.wait(WAIT_S) is TaskStatus.SUCCEEDED
    assert executor.kill() is False
    assert executor.status is TaskStatus.SUCCEEDED


def test_launch_failure_goes_to_error_queue() -> None:
    executor = Executor(Command(name="ghost", command="/nonexistent/commandbot-ghost --flag"), [])

    with pytest.raises(LaunchError):
        executor.start()

    assert executor.status is TaskStatus.FAILED
    errors = _drain_errors(executor)
    assert len(errors) == 1 and "commandbot-ghost" in errors[0]
    assert _drain_normal(executor) == []


def test_start_twice_is_rejected() -> None:
    executor = new_executor(Command(name="quick", command=python_command("pass")), [])
    with pytest.raises(RuntimeError):
        executor.start()
    executor.wait(WAIT_S)


def test_output_is_mirrored_to_log(tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "mixed.log"
    code = "import sys, time; print('a'); time.sleep(0.2); sys.stderr.write('b\\n'); time.sleep(0.2); print('c')"
    cmd = Command(name="mixed", command=python_command(code), log_filename=str(log_path))

    executor = new_executor(cmd, [])
    assert executor.wait(WAIT_S) is TaskStatus.SUCCEEDED

    assert log_path.read_text("utf-8") == "a\nb\nc\n"
    assert executor.task.output == ["a", "b", "c"]


def test_unwritable_log_does_not_break_streaming(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("", "utf-8")
    cmd = Command(name="x", command=python_command("print('still here')"), log_filename=str(blocker / "x.log"))

    executor = new_executor(cmd, [])
    assert _drain_normal(executor) == ["still here"]
    assert executor.wait(WAIT_S) is TaskStatus.SUCCEEDED


def test_done_callback_runs_once_terminal() -> None:
    seen: list[TaskStatus] = []
    executor = Executor(Command(name="quick", command=python_command("pass")), [])
    executor.add_done_callback(lambda e: seen.append(e.status))
    executor.start()
    executor.wait(WAIT_S)

    assert seen == [TaskStatus.SUCCEEDED]

    # Registered after completion: called immediately.
    executor.add_done_callback(lambda e: seen.append(e.status))
    assert seen == [TaskStatus.SUCCEEDED, TaskStatus.SUCCEEDED]


def test_kill_escalates_when_sigterm_is_ignored() -> None:
    code = "import signal, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); print('partial'); time.sleep(600)"
    executor = Executor(Command(name="stubborn", command=python_command(code)), [], kill_grace_s=0.5)
    executor.start()

    assert executor.next_normal_message() == ("partial", True)
    assert executor.kill() is True

    assert executor.wait(WAIT_S) is TaskStatus.KILLED
    assert executor.next_normal_message() == ("", False)
    assert _drain_errors(executor) == []


@pytest.mark.skipif(os.name != "posix", reason="process groups are POSIX-only")
def test_kill_reaches_group_after_leader_exits() -> None:
    # The shell exits at once; the background sleep keeps the pipes open.
    executor = Executor(Command(name="orphan", command="sh -c 'sleep 600 & echo started'"), [], kill_grace_s=0.5)
    executor.start()

    assert executor.next_normal_message() == ("started", True)
    assert executor.status is TaskStatus.RUNNING

    assert executor.kill() is True
    assert executor.wait(WAIT_S) is TaskStatus.KILLED
    assert executor.next_normal_message() == ("", False)
