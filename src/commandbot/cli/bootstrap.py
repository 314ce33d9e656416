# src/commandbot/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the transport and the fallback responder,
- registers built-in and configured commands on a Dispatcher.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ..commands.builtin import builtin_handlers
from ..commands.command import Command
from ..commands.loader import load_commands
from ..config import get_settings
from ..core.dispatcher import Dispatcher
from ..core.ports import ChatTransport, FallbackResponder, LLMClient
from ..llm.client import OpenRouterLLMClient
from ..llm.offline import OfflineLLMClient
from ..llm.responder import LLMFallbackResponder
from ..tasks.registry import TaskRegistry

logger = logging.getLogger(__name__)


@dataclass
class App:
    settings: object
    dispatcher: Dispatcher
    tasks: TaskRegistry
    commands: list[Command]


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.task_log_dir.mkdir(parents=True, exist_ok=True)
    if settings.matrix_enabled:
        settings.matrix_store_path.mkdir(parents=True, exist_ok=True)


def create_transport(settings) -> ChatTransport:
    if settings.matrix_enabled:
        from ..connectors.matrix_connector import MatrixTransport

        return MatrixTransport(settings)

    from ..connectors.console_connector import ConsoleTransport

    return ConsoleTransport(app_name=settings.app_name)


def create_responder(settings) -> FallbackResponder | None:
    if not settings.fallback_enabled:
        return None

    llm_client: LLMClient
    try:
        llm_client = OpenRouterLLMClient(settings)
    except RuntimeError as e:
        logger.info("Fallback responder runs offline: %s", e)
        llm_client = OfflineLLMClient()
    return LLMFallbackResponder(llm_client)


def build_dispatcher(
    transport: ChatTransport,
    commands: Sequence[Command],
    *,
    tasks: TaskRegistry,
    responder: FallbackResponder | None = None,
) -> Dispatcher:
    """Register built-ins first, then configured commands, in file order."""
    dispatcher = Dispatcher(transport, responder)
    for handler in builtin_handlers(tasks, commands):
        dispatcher.register_handler(handler)
    for command in commands:
        dispatcher.register_handler(command.handler(tasks))
    return dispatcher


def create_app(*, settings=None, transport: ChatTransport | None = None) -> App:
    """
    Wire the whole app from settings.

    Keeping settings/transport injectable makes the app easier to test.
    Raises CommandConfigError / DuplicateNameError on bad command definitions.
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    commands = load_commands(settings.commands_path, log_dir=settings.task_log_dir)
    tasks = TaskRegistry()
    dispatcher = build_dispatcher(
        transport or create_transport(settings),
        commands,
        tasks=tasks,
        responder=create_responder(settings),
    )
    return App(settings=settings, dispatcher=dispatcher, tasks=tasks, commands=commands)
