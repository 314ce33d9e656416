# src/commandbot/commands/command.py

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from ..core.errors import ValidationError
from ..core.handlers import Handler
from ..core.message import Message
from .matching import match
from .params import Param, parse_params
from .permissions import allowed

if TYPE_CHECKING:
    from ..core.dispatcher import Dispatcher
    from ..tasks.registry import TaskRegistry


@dataclass(frozen=True, slots=True)
class Command:
    """A user-configured command: how to run it and who may run it."""

    name: str
    command: str
    param_names: tuple[str, ...] = ()
    log_filename: str = ""
    error_channel_id: str = ""
    channel_names: tuple[str, ...] = ()
    user_names: tuple[str, ...] = ()
    description: str = ""

    def help(self) -> str:
        parts = [self.name]
        parts.extend(f"[--{p}=<{p}>]" for p in self.param_names)
        text = " ".join(parts)
        if self.description:
            text += f" - {self.description}"
        return text

    def match(self, text: str) -> tuple[bool, str]:
        return match(self.name, text)

    def is_valid_param_name(self, name: str) -> bool:
        return name in self.param_names

    def parse_params(self, text: str) -> list[Param]:
        """Parse the argument string; any undeclared name rejects the whole input."""
        params = parse_params(text)
        for p in params:
            if not self.is_valid_param_name(p.name):
                raise ValidationError(f"unknown param name: {p.name}")
        return params

    def has_permission(self, channel_label: str, user_label: str) -> bool:
        return allowed(self, channel_label, user_label)

    def handler(self, tasks: TaskRegistry | None = None) -> Handler:
        from .invocation import start_task

        def handleable(bot: Dispatcher, msg: Message) -> bool:
            matched, _ = self.match(msg.text)
            return matched

        def handle(bot: Dispatcher, msg: Message) -> None:
            start_task(bot, msg, self, tasks=tasks)

        return Handler(
            name=self.name,
            help=self.help(),
            needs_mention=True,
            handleable=handleable,
            handle=handle,
        )
