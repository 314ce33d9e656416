# src/commandbot/llm/offline.py

from __future__ import annotations

from collections.abc import Iterable

from ..core.ports import ChatMessage


class OfflineLLMClient:
    """
    Deterministic client used when no external LLM is configured.

    Points the user at `help` instead of pretending to understand them.
    """

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        user_text = ""
        for m in reversed(messages):
            if m["role"] == "user":
                user_text = m["content"]
                break

        yield f"I don't know what `{user_text}` means. Try `help` for the list of commands."
