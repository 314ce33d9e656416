# src/commandbot/core/dispatcher.py

"""
Dispatch loop.

Consumes transport events one at a time, in arrival order:
  resolve labels -> parse -> first matching handler -> run it off-thread.

At most one handler runs per event. Unmatched, non-ambient messages go to the
fallback responder. Nothing a single event does can stop the loop.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any

from .errors import DuplicateNameError, InvalidHandlerError, ResolveError
from .handlers import HandleFn, Handler, MatchPredicate
from .message import InboundEvent, Message, MessageParser, MessageType
from .ports import ChatTransport, FallbackResponder

logger = logging.getLogger(__name__)


class Dispatcher:
    def __init__(
        self,
        transport: ChatTransport,
        responder: FallbackResponder | None = None,
    ) -> None:
        self.transport = transport
        self.responder = responder

        mention_tokens = list(transport.mention_tokens())
        self._mention = mention_tokens[0] if mention_tokens else ""
        self._parser = MessageParser(mention_tokens)

        # Written only before start(); read-only while the loop runs.
        self._handlers: list[Handler] = []
        self._started = False
        self._stopped = threading.Event()

    # ---- registration ----

    def register_handler(self, handler: Handler) -> None:
        if self._started:
            raise RuntimeError("handlers must be registered before the dispatch loop starts")
        if not handler.is_valid():
            raise InvalidHandlerError(f"invalid handler: {handler.name or '<unnamed>'}")
        for h in self._handlers:
            if h.name == handler.name:
                raise DuplicateNameError(f"duplicate handler name: {handler.name}")
        self._handlers.append(handler)
        logger.debug("Registered handler %s (needs_mention=%s)", handler.name, handler.needs_mention)

    def register(
        self,
        name: str,
        help_text: str,
        needs_mention: bool,
        handleable: MatchPredicate,
        handle: HandleFn,
    ) -> Handler:
        handler = Handler(
            name=name,
            help=help_text,
            needs_mention=needs_mention,
            handleable=handleable,
            handle=handle,
        )
        self.register_handler(handler)
        return handler

    @property
    def handlers(self) -> tuple[Handler, ...]:
        return tuple(self._handlers)

    # ---- loop ----

    def start(self) -> None:
        """Start the transport and process events until stop() or end of stream."""
        self._started = True
        self.transport.start()
        logger.info("Start receiving incoming events (%d handlers)...", len(self._handlers))

        for event in self.transport.events():
            if self._stopped.is_set():
                break
            try:
                self.on_event(event)
            except Exception:
                logger.exception("Unexpected error while dispatching event from %s.", event.channel_id)

        logger.info("Dispatch loop finished.")

    def stop(self) -> None:
        if self._stopped.is_set():
            return
        self._stopped.set()
        try:
            self.transport.stop()
        except Exception:
            logger.exception("Transport stop failed.")
        logger.info("Bot stopped.")

    @property
    def stopped(self) -> bool:
        return self._stopped.is_set()

    def on_event(self, event: InboundEvent) -> Handler | None:
        """Dispatch a single event. Returns the handler that was started, if any."""
        if event.bot_id:
            return None

        try:
            self.load_channel(event.channel_id)
            self.load_user(event.user_id)
        except ResolveError as e:
            # No reply: unresolvable identities are usually ephemeral noise.
            logger.warning("Dropping event: %s", e)
            return None

        msg = self._parser.parse(event)

        for handler in self._handlers:
            if handler.needs_mention and msg.type is MessageType.LISTEN:
                continue
            assert handler.handleable is not None
            try:
                matched = handler.handleable(self, msg)
            except Exception:
                logger.exception("Handler %s predicate crashed; skipping.", handler.name)
                continue
            if not matched:
                continue

            self._spawn(self._handle, handler, msg, name=f"handler-{handler.name}")
            return handler

        if msg.type is not MessageType.LISTEN and self.responder is not None and msg.text:
            self._spawn(self._answer, msg, name="fallback")
        return None

    def _spawn(self, target: Callable[..., None], *args: Any, name: str) -> None:
        threading.Thread(target=target, args=args, name=name, daemon=True).start()

    def _handle(self, handler: Handler, msg: Message) -> None:
        assert handler.handle is not None
        try:
            handler.handle(self, msg)
        except Exception as e:
            logger.info("Handler %s failed for %r: %s", handler.name, msg.text, e)
            self.send_message(
                f"{self._user_display(msg.user_id)} *failed* - `{msg.text}` (error: {e})",
                msg.channel_id,
            )

    def _answer(self, msg: Message) -> None:
        assert self.responder is not None
        try:
            reply = self.responder.answer(msg.text)
        except Exception:
            logger.exception("Fallback responder crashed.")
            return
        if reply:
            self.send_message(reply, msg.channel_id)

    # ---- helpers for handlers ----

    def send_message(self, text: str, channel_id: str) -> bool:
        try:
            self.transport.send_message(text, channel_id)
            return True
        except Exception:
            logger.exception("Failed to send message to %s.", channel_id)
            return False

    def load_channel(self, channel_id: str) -> str:
        return self.transport.resolve_channel_label(channel_id)

    def load_user(self, user_id: str) -> str:
        return self.transport.resolve_user_label(user_id)

    def _user_display(self, user_id: str) -> str:
        try:
            return self.load_user(user_id) or user_id
        except ResolveError:
            return user_id

    def help(self) -> str:
        lines = ["```", "available commands:"]
        for handler in self._handlers:
            s = "  * "
            if handler.needs_mention and self._mention:
                s += self._mention + " "
            s += handler.help
            lines.append(s)
        lines.append("```")
        return "\n".join(lines)
