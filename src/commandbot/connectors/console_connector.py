# src/commandbot/connectors/console_connector.py

from __future__ import annotations

import getpass
import logging
import queue
import sys
import threading
from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import IO, Optional

from ..core.labels import LabelCache
from ..core.message import InboundEvent

logger = logging.getLogger(__name__)

CONSOLE_CHANNEL_ID = "console"
CONSOLE_USER_ID = "local"

EXIT_COMMANDS = ("/exit", "/quit")


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


class ConsoleTransport:
    """
    Local REPL transport: every stdin line is a direct message to the bot.

    A reader thread feeds the event queue so stop() can end events() even
    while input() is blocked.
    """

    def __init__(
        self,
        *,
        app_name: str = "commandbot",
        stdin: Optional[IO[str]] = None,
        stdout: Optional[IO[str]] = None,
    ) -> None:
        self.app_name = app_name
        self._stdin = stdin
        self._stdout = stdout
        self._events: "queue.Queue[InboundEvent | None]" = queue.Queue()
        self._out_lock = threading.Lock()
        self._reader: threading.Thread | None = None

        self._channels = LabelCache(self._fetch_channel_label, name="channel")
        self._users = LabelCache(self._fetch_user_label, name="user")

    # ---- lifecycle ----

    def start(self) -> None:
        if self._reader is not None:
            return
        self._reader = threading.Thread(target=self._read_loop, name="console-reader", daemon=True)
        self._reader.start()
        self._print("[CONSOLE] Type commands (try `help`). Use /exit to quit.")
        logger.info("Console connector started.")

    def stop(self) -> None:
        self._events.put(None)

    def _read_loop(self) -> None:
        stdin = self._stdin or sys.stdin
        try:
            for raw in stdin:
                line = raw.strip()
                if not line:
                    continue
                if line.lower() in EXIT_COMMANDS:
                    logger.info("Console exit command received.")
                    break
                self._events.put(InboundEvent(CONSOLE_CHANNEL_ID, CONSOLE_USER_ID, line, is_direct=True))
        except (OSError, ValueError):
            logger.exception("Console input failed.")
        finally:
            self._events.put(None)

    def events(self) -> Iterator[InboundEvent]:
        while True:
            event = self._events.get()
            if event is None:
                logger.info("Console connector finished.")
                return
            yield event

    # ---- outbound ----

    def _print(self, text: str) -> None:
        out = self._stdout or sys.stdout
        with self._out_lock:
            print(f"[{_ts_local()}] {text}", file=out, flush=True)

    def send_message(self, text: str, channel_id: str) -> None:
        self._print(f"<<< {self.app_name}: {text}")

    # ---- labels ----

    def _fetch_channel_label(self, channel_id: str) -> str:
        return f"#{channel_id}"

    def _fetch_user_label(self, user_id: str) -> str:
        if user_id == CONSOLE_USER_ID:
            return "@" + getpass.getuser()
        return "@" + user_id

    def resolve_channel_label(self, channel_id: str) -> str:
        return self._channels.resolve(channel_id)

    def resolve_user_label(self, user_id: str) -> str:
        return self._users.resolve(user_id)

    def mention_tokens(self) -> Sequence[str]:
        return ()
