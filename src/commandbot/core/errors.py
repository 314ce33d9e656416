# src/commandbot/core/errors.py

"""
Error taxonomy.

Per-invocation errors (parse, validation, authorization, launch, runtime) are
caught at the invocation boundary and turned into chat replies.
Registration errors (duplicate name, invalid handler, bad config) are raised
at startup.
"""

from __future__ import annotations

ERROR_BLOCK_FMT = "```\nerror:\n  {}\n```"


def format_error_block(message: str) -> str:
    """Render an error message the way it is posted back to chat."""
    return ERROR_BLOCK_FMT.format(message)


class CommandBotError(Exception):
    """Base class for all errors raised by commandbot."""


class ParseError(CommandBotError):
    """Malformed parameter string (dangling flag, unterminated quote, ...)."""


class ValidationError(CommandBotError):
    """A parameter name is not declared on the command."""


class AuthorizationError(CommandBotError):
    """The invoking channel/user is not on the command's allow-lists."""

    def __init__(self, message: str = "you are not allowed to do that") -> None:
        super().__init__(message)


class LaunchError(CommandBotError):
    """The external process could not be started."""


class TaskRuntimeError(CommandBotError):
    """The process exited unsuccessfully or the execution itself faulted."""


class DuplicateNameError(CommandBotError):
    """A handler with the same name is already registered."""


class InvalidHandlerError(CommandBotError):
    """A handler is missing one of its required fields."""


class ResolveError(CommandBotError):
    """The transport could not resolve a channel or user label."""


class CommandConfigError(CommandBotError):
    """Command definitions could not be loaded."""
