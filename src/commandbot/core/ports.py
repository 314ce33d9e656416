# src/commandbot/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The dispatcher depends on Protocols instead of concrete transports/responders.
This keeps connectors swappable (console, Matrix) and makes testing easier.
"""

from typing import Iterable, Iterator, Protocol, Sequence

from .message import InboundEvent

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class ChatTransport(Protocol):
    """
    Connector-side port: where events come from and where replies go.

    Label resolution is expected to be cached by the transport and may raise
    ResolveError. Resolving the same id twice must give the same label.
    """

    def start(self) -> None: ...
    def stop(self) -> None: ...

    def events(self) -> Iterator[InboundEvent]: ...

    def send_message(self, text: str, channel_id: str) -> None: ...

    def resolve_channel_label(self, channel_id: str) -> str: ...
    def resolve_user_label(self, user_id: str) -> str: ...

    def mention_tokens(self) -> Sequence[str]:
        """Prefixes that address the bot directly (e.g. its user id)."""
        ...


class FallbackResponder(Protocol):
    """Answers free text that no handler matched."""
    def answer(self, text: str) -> str: ...


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI/OpenRouter-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...
