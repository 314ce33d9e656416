# src/commandbot/core/handlers.py

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .message import Message

if TYPE_CHECKING:
    from .dispatcher import Dispatcher

MatchPredicate = Callable[["Dispatcher", Message], bool]
HandleFn = Callable[["Dispatcher", Message], None]


@dataclass(frozen=True, slots=True)
class Handler:
    """
    One class of inbound message the bot answers.

    `handleable` must be cheap and side-effect free: the dispatch loop calls
    it synchronously. `handle` runs off the loop thread; raising from it
    produces a failure reply in the invoking channel.
    """

    name: str
    help: str
    needs_mention: bool
    handleable: MatchPredicate | None
    handle: HandleFn | None

    def is_valid(self) -> bool:
        return bool(self.name) and callable(self.handleable) and callable(self.handle)
