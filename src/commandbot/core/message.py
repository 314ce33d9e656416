# src/commandbot/core/message.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

# Characters allowed between a mention token and the message body: "@bot: deploy".
_MENTION_SEPARATORS = ":,"


@dataclass(frozen=True, slots=True)
class InboundEvent:
    """Raw message as delivered by a transport."""

    channel_id: str
    user_id: str
    text: str
    bot_id: str = ""
    is_direct: bool = False


class MessageType(StrEnum):
    MENTION = "mention"  # explicitly addressed to the bot
    DIRECT = "direct"  # private conversation with the bot
    LISTEN = "listen"  # ambient message overheard in a channel


@dataclass(frozen=True, slots=True)
class Message:
    type: MessageType
    text: str
    channel_id: str
    user_id: str


class MessageParser:
    """
    Classify an inbound event and strip the mention prefix.

    A text that starts with one of `mention_tokens` is a MENTION and the
    token (plus an optional ":" or "," and following whitespace) is removed.
    Otherwise direct conversations give DIRECT and everything else LISTEN.
    """

    def __init__(self, mention_tokens: Iterable[str] = ()) -> None:
        # Longest first so "@bot:server" wins over "@bot".
        self._tokens = sorted({t for t in mention_tokens if t}, key=len, reverse=True)

    def parse(self, event: InboundEvent) -> Message:
        text = event.text.strip()

        for token in self._tokens:
            if not text.startswith(token):
                continue
            rest = text[len(token):]
            if rest and rest[0] in _MENTION_SEPARATORS:
                rest = rest[1:]
            elif rest and not rest[0].isspace():
                # "@botty" is not a mention of "@bot".
                continue
            return Message(MessageType.MENTION, rest.strip(), event.channel_id, event.user_id)

        msg_type = MessageType.DIRECT if event.is_direct else MessageType.LISTEN
        return Message(msg_type, text, event.channel_id, event.user_id)
