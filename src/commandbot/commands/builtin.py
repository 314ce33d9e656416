# src/commandbot/commands/builtin.py

"""Built-in handlers: help, tasks, kill <task-id>."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import TYPE_CHECKING

from ..core.errors import AuthorizationError, format_error_block
from ..core.handlers import Handler
from ..core.message import Message
from .matching import match

if TYPE_CHECKING:
    from ..core.dispatcher import Dispatcher
    from ..tasks.registry import TaskRegistry
    from .command import Command

logger = logging.getLogger(__name__)


def _ts_local(ts: float | None) -> str:
    if ts is None:
        return "-"
    return datetime.fromtimestamp(ts).astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _matcher(name: str):
    def handleable(bot: Dispatcher, msg: Message) -> bool:
        matched, _ = match(name, msg.text)
        return matched

    return handleable


def help_handler() -> Handler:
    def handle(bot: Dispatcher, msg: Message) -> None:
        bot.send_message(bot.help(), msg.channel_id)

    return Handler(
        name="help",
        help="help - show available commands",
        needs_mention=True,
        handleable=_matcher("help"),
        handle=handle,
    )


def tasks_handler(tasks: TaskRegistry) -> Handler:
    def handle(bot: Dispatcher, msg: Message) -> None:
        running = tasks.running()
        if not running:
            bot.send_message("no running tasks", msg.channel_id)
            return
        lines = ["```"]
        for e in running:
            lines.append(f"{e.id}  {e.task.command_name}  {e.status}  {_ts_local(e.task.started_at)}")
        lines.append("```")
        bot.send_message("\n".join(lines), msg.channel_id)

    return Handler(
        name="tasks",
        help="tasks - list running tasks",
        needs_mention=True,
        handleable=_matcher("tasks"),
        handle=handle,
    )


def kill_handler(tasks: TaskRegistry, commands: Sequence[Command]) -> Handler:
    """
    kill <task-id>

    The caller must pass the permission gate of the command the task runs.
    """
    by_name = {c.name: c for c in commands}

    def handle(bot: Dispatcher, msg: Message) -> None:
        _, rest = match("kill", msg.text)
        args = rest.split()
        if len(args) != 1:
            bot.send_message(format_error_block("usage: kill <task-id>"), msg.channel_id)
            return

        task_id = args[0]
        executor = tasks.get(task_id)
        if executor is None:
            bot.send_message(format_error_block(f"no running task {task_id}"), msg.channel_id)
            return

        command = by_name.get(executor.task.command_name, executor.command)
        channel = bot.load_channel(msg.channel_id)
        user = bot.load_user(msg.user_id)
        if not command.has_permission(channel, user):
            err = AuthorizationError()
            bot.send_message(format_error_block(str(err)), msg.channel_id)
            raise err

        if not executor.kill():
            bot.send_message(format_error_block(f"task {task_id} is not running"), msg.channel_id)
            return

        logger.info("Task %s killed by %s in %s", task_id, user, channel)
        bot.send_message(f"killed {task_id}", msg.channel_id)

    return Handler(
        name="kill",
        help="kill <task-id> - stop a running task",
        needs_mention=True,
        handleable=_matcher("kill"),
        handle=handle,
    )


def builtin_handlers(tasks: TaskRegistry, commands: Sequence[Command]) -> list[Handler]:
    return [help_handler(), tasks_handler(tasks), kill_handler(tasks, commands)]
