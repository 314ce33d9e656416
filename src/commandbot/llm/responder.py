# src/commandbot/llm/responder.py

from __future__ import annotations

import logging

from ..core.ports import LLMClient
from .client import friendly_llm_error_message

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a chat-ops bot. Users run commands by addressing you with a command name. "
    "The message below did not match any command. Reply briefly and, if it looks like "
    "a typo of a command, suggest asking for `help`."
)


class LLMFallbackResponder:
    """Answers unmatched messages with one complete LLM reply."""

    def __init__(self, llm: LLMClient, *, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self._llm = llm
        self._system_prompt = system_prompt

    def answer(self, text: str) -> str:
        try:
            pieces = self._llm.stream_chat([{"role": "user", "content": text}], self._system_prompt)
            reply = "".join(p for p in pieces if p)
        except RuntimeError as e:
            msg = friendly_llm_error_message(e)
            logger.info("LLM runtime error: %s", msg)
            return msg
        return reply.strip()
