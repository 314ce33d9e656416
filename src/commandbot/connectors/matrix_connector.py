# src/commandbot/connectors/matrix_connector.py

"""
Matrix transport.

The nio AsyncClient lives on its own event loop in a background thread
(init -> callbacks -> sync loop). The dispatch loop runs in the caller's
thread and talks to the client through thread-safe hops:

- inbound: the room-message callback pushes InboundEvent into a queue,
- outbound/lookups: coroutines are scheduled with run_coroutine_threadsafe
  and awaited from the calling thread.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import queue
import threading
import time
from collections.abc import Iterator, Sequence
from typing import Any, Optional, Set

from nio import AsyncClient, MatrixRoom, ProfileGetDisplayNameResponse, RoomMessageText, RoomSendResponse

from ..core.errors import ResolveError
from ..core.labels import LabelCache
from ..core.message import InboundEvent
from .matrix_client import create_matrix_client

logger = logging.getLogger(__name__)

DIRECT_MESSAGE_LABEL = "<direct message>"
SYNC_TIMEOUT_MS = 30000
CALL_TIMEOUT_S = 30.0


def _ms_now() -> int:
    return int(time.time() * 1000)


def _room_allowlist(settings_rooms: list[str]) -> Optional[Set[str]]:
    rooms = [r.strip() for r in (settings_rooms or []) if str(r).strip()]
    return set(rooms) if rooms else None


def _is_direct(room: Any) -> bool:
    return getattr(room, "member_count", 0) == 2


class MatrixTransport:
    def __init__(self, settings) -> None:
        self.settings = settings
        self.user_id = (getattr(settings, "matrix_user_id", "") or "").strip()
        self.allowed_rooms = _room_allowlist(getattr(settings, "matrix_rooms", []) or [])

        self._client: AsyncClient | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._stop_event: asyncio.Event | None = None
        self._thread: threading.Thread | None = None
        self._ready = threading.Event()

        self._events: "queue.Queue[InboundEvent | None]" = queue.Queue()
        self._startup_ts = _ms_now()

        self._channels = LabelCache(self._fetch_channel_label, name="channel")
        self._users = LabelCache(self._fetch_user_label, name="user")

    # ---- lifecycle ----

    def start(self) -> None:
        if self._thread is not None:
            return

        def runner() -> None:
            loop = asyncio.new_event_loop()
            asyncio.set_event_loop(loop)
            self._loop = loop
            self._stop_event = asyncio.Event()
            try:
                loop.run_until_complete(self._run())
            finally:
                self._ready.set()
                self._events.put(None)
                with contextlib.suppress(RuntimeError):
                    loop.close()

        self._thread = threading.Thread(target=runner, name="matrix-connector", daemon=True)
        self._thread.start()

        if not self._ready.wait(timeout=60.0):
            logger.warning("Matrix connector is still connecting; events will arrive once it is ready.")

    def stop(self) -> None:
        loop, stop_event = self._loop, self._stop_event
        if loop is not None and stop_event is not None:
            try:
                loop.call_soon_threadsafe(stop_event.set)
            except RuntimeError:
                logger.debug("Matrix loop already closed on stop.")
        self._events.put(None)

    async def _run(self) -> None:
        logger.info("Matrix startup timestamp (ms): %d", self._startup_ts)
        logger.info("Matrix allowed_rooms=%s", self.allowed_rooms if self.allowed_rooms is not None else "ALL")

        client = await create_matrix_client(self.settings)
        if client is None:
            logger.error("Matrix client creation failed; connector will stop.")
            return

        self._client = client
        client.add_event_callback(self._on_message, RoomMessageText)
        assert self._stop_event is not None

        try:
            logger.info("Matrix initial sync...")
            await client.sync(timeout=SYNC_TIMEOUT_MS, full_state=True)
            logger.info("Matrix initial sync done. Joined rooms: %d", len(client.rooms))
            self._ready.set()

            while not self._stop_event.is_set():
                sync = asyncio.ensure_future(client.sync(timeout=SYNC_TIMEOUT_MS, full_state=False))
                stopper = asyncio.ensure_future(self._stop_event.wait())
                done, pending = await asyncio.wait({sync, stopper}, return_when=asyncio.FIRST_COMPLETED)
                for fut in pending:
                    fut.cancel()
                if sync in done:
                    # Re-raise sync failures into the crash handler below.
                    sync.result()

        except asyncio.CancelledError:
            logger.info("Matrix connector cancelled.")
        except Exception:
            logger.exception("Matrix connector crashed.")
        finally:
            self._client = None
            await client.close()
            logger.info("Matrix connector stopped.")

    # ---- inbound ----

    async def _on_message(self, room: MatrixRoom, event: RoomMessageText) -> None:
        # Messages sent before startup are history, not commands.
        ts = getattr(event, "server_timestamp", None)
        if ts is not None and ts <= self._startup_ts:
            return

        if self.allowed_rooms is not None and room.room_id not in self.allowed_rooms:
            return

        body = (event.body or "").strip()
        if not body:
            return

        logger.info("Matrix <%s> %s: %r", room.display_name, event.sender, body)
        self._events.put(
            InboundEvent(
                channel_id=room.room_id,
                user_id=event.sender,
                text=body,
                # Our own messages come back through sync; the dispatcher drops them.
                bot_id=event.sender if event.sender == self.user_id else "",
                is_direct=_is_direct(room),
            )
        )

    def events(self) -> Iterator[InboundEvent]:
        while True:
            event = self._events.get()
            if event is None:
                return
            yield event

    # ---- outbound ----

    def _call(self, coro) -> Any:
        loop = self._loop
        if loop is None or self._client is None or loop.is_closed():
            coro.close()
            raise ConnectionError("Matrix client is not connected")
        fut = asyncio.run_coroutine_threadsafe(coro, loop)
        return fut.result(timeout=CALL_TIMEOUT_S)

    async def _send(self, room_id: str, text: str) -> Any:
        assert self._client is not None
        return await self._client.room_send(
            room_id=room_id,
            message_type="m.room.message",
            content={"msgtype": "m.text", "body": text},
        )

    def send_message(self, text: str, channel_id: str) -> None:
        resp = self._call(self._send(channel_id, text))
        if not isinstance(resp, RoomSendResponse):
            raise ConnectionError(f"Matrix send to {channel_id} failed: {resp!r}")

    # ---- labels ----

    def _fetch_channel_label(self, room_id: str) -> str:
        client = self._client
        room = client.rooms.get(room_id) if client is not None else None
        if room is None:
            raise ResolveError(f"fail to get room({room_id}): not joined")
        if _is_direct(room):
            return DIRECT_MESSAGE_LABEL
        return "#" + (room.name or room.display_name)

    def _fetch_user_label(self, user_id: str) -> str:
        try:
            resp = self._call(self._client.get_displayname(user_id)) if self._client else None
        except (ConnectionError, TimeoutError) as e:
            raise ResolveError(f"fail to get user({user_id}): {e}") from e
        if not isinstance(resp, ProfileGetDisplayNameResponse):
            raise ResolveError(f"fail to get user({user_id}): {resp!r}")
        return "@" + (resp.displayname or user_id.lstrip("@").split(":", 1)[0])

    def resolve_channel_label(self, channel_id: str) -> str:
        return self._channels.resolve(channel_id)

    def resolve_user_label(self, user_id: str) -> str:
        if not user_id:
            # Some events carry no sender; treat as an anonymous label.
            return ""
        return self._users.resolve(user_id)

    def mention_tokens(self) -> Sequence[str]:
        if not self.user_id:
            return ()
        localpart = self.user_id.lstrip("@").split(":", 1)[0]
        return (self.user_id, "@" + localpart, localpart)
