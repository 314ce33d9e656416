# src/commandbot/commands/invocation.py

"""
One invocation of a configured command, from chat message to running task.

    match -> parse params -> authorize -> executor -> forwarders

Parse and authorization failures are answered with an error block before any
process is started. Output delivery runs on two forwarder threads, one per
queue, so a slow error channel never holds back normal output.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from ..core.errors import AuthorizationError, ParseError, ValidationError, format_error_block
from ..core.message import Message
from ..tasks.executor import Executor

if TYPE_CHECKING:
    from ..core.dispatcher import Dispatcher
    from ..tasks.registry import TaskRegistry
    from .command import Command

logger = logging.getLogger(__name__)


def start_task(
    bot: Dispatcher,
    msg: Message,
    command: Command,
    *,
    tasks: TaskRegistry | None = None,
) -> Executor:
    _, param_string = command.match(msg.text)
    try:
        params = command.parse_params(param_string)
    except (ParseError, ValidationError) as e:
        bot.send_message(format_error_block(str(e)), msg.channel_id)
        raise

    channel = bot.load_channel(msg.channel_id)
    user = bot.load_user(msg.user_id)
    if not command.has_permission(channel, user):
        logger.info("Denied %s for user=%s channel=%s", command.name, user, channel)
        err = AuthorizationError()
        bot.send_message(format_error_block(str(err)), msg.channel_id)
        raise err

    executor = Executor(command, params)
    err_channel_id = command.error_channel_id or msg.channel_id

    # Started before launch so a launch failure is delivered like any other error line.
    _spawn_forwarder(_forward_errors, bot, executor, err_channel_id, kind="err")

    executor.start()
    if tasks is not None:
        tasks.add(executor)

    logger.info("Task %s started for %s by %s in %s: %s", executor.id, command.name, user, channel, executor.task.args)
    bot.send_message(f"task {executor.id} started: {command.name}", msg.channel_id)

    _spawn_forwarder(_forward_normal, bot, executor, msg.channel_id, kind="out")
    return executor


def _spawn_forwarder(target, bot: Dispatcher, executor: Executor, channel_id: str, *, kind: str) -> None:
    threading.Thread(
        target=target,
        args=(bot, executor, channel_id),
        name=f"task-{executor.id}-fwd-{kind}",
        daemon=True,
    ).start()


def _forward_normal(bot: Dispatcher, executor: Executor, channel_id: str) -> None:
    while True:
        text, ok = executor.next_normal_message()
        if not ok:
            break
        bot.send_message(text, channel_id)


def _forward_errors(bot: Dispatcher, executor: Executor, channel_id: str) -> None:
    while True:
        text, ok = executor.next_error_message()
        if not ok:
            break
        bot.send_message(format_error_block(text.removesuffix("\n")), channel_id)
