# tests/test_matrix_connector.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from commandbot.connectors.matrix_connector import DIRECT_MESSAGE_LABEL, MatrixTransport
from commandbot.core.errors import ResolveError


def _settings(rooms: list[str] | None = None) -> SimpleNamespace:
    return SimpleNamespace(matrix_user_id="@bot:example.org", matrix_rooms=rooms or [])


def _room(room_id: str = "!ops:example.org", members: int = 5, name: str = "ops") -> SimpleNamespace:
    return SimpleNamespace(room_id=room_id, member_count=members, name=name, display_name=name)


def _event(sender: str = "@alice:example.org", body: str = "@bot deploy", ts: int | None = None) -> SimpleNamespace:
    return SimpleNamespace(sender=sender, body=body, server_timestamp=ts)


def _queued(transport: MatrixTransport) -> list:
    out = []
    while not transport._events.empty():
        out.append(transport._events.get_nowait())
    return out


def test_mention_tokens() -> None:
    transport = MatrixTransport(_settings())
    assert transport.mention_tokens() == ("@bot:example.org", "@bot", "bot")
    assert MatrixTransport(SimpleNamespace(matrix_user_id="", matrix_rooms=[])).mention_tokens() == ()


@pytest.mark.asyncio
async def test_on_message_filters_and_tags() -> None:
    transport = MatrixTransport(_settings(rooms=["!ops:example.org"]))
    later = transport._startup_ts + 1000

    await transport._on_message(_room(), _event(ts=transport._startup_ts - 1))  # history
    await transport._on_message(_room(room_id="!other:example.org"), _event(ts=later))  # not allowed
    await transport._on_message(_room(), _event(body="   ", ts=later))  # empty
    await transport._on_message(_room(), _event(ts=later))
    await transport._on_message(_room(members=2), _event(sender="@bot:example.org", body="hi", ts=later))

    first, second = _queued(transport)
    assert (first.channel_id, first.user_id, first.text) == ("!ops:example.org", "@alice:example.org", "@bot deploy")
    assert first.bot_id == "" and first.is_direct is False
    assert second.bot_id == "@bot:example.org" and second.is_direct is True


def test_channel_labels() -> None:
    transport = MatrixTransport(_settings())
    transport._client = SimpleNamespace(
        rooms={"!ops:example.org": _room(), "!dm:example.org": _room(room_id="!dm:example.org", members=2)}
    )

    assert transport.resolve_channel_label("!ops:example.org") == "#ops"
    assert transport.resolve_channel_label("!dm:example.org") == DIRECT_MESSAGE_LABEL
    with pytest.raises(ResolveError):
        transport.resolve_channel_label("!gone:example.org")


def test_user_labels_without_connection() -> None:
    transport = MatrixTransport(_settings())
    assert transport.resolve_user_label("") == ""
    with pytest.raises(ResolveError):
        transport.resolve_user_label("@alice:example.org")


def test_send_without_connection_fails() -> None:
    transport = MatrixTransport(_settings())
    with pytest.raises(ConnectionError):
        transport.send_message("hello", "!ops:example.org")
