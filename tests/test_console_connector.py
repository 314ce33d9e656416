# tests/test_console_connector.py

from __future__ import annotations

import getpass
import io

from commandbot.connectors.console_connector import CONSOLE_CHANNEL_ID, CONSOLE_USER_ID, ConsoleTransport
from commandbot.core.message import InboundEvent


def test_lines_become_direct_events_until_exit() -> None:
    stdin = io.StringIO("help\n\n  deploy --env=prod  \n/exit\nnever seen\n")
    transport = ConsoleTransport(app_name="bot", stdin=stdin, stdout=io.StringIO())

    transport.start()
    events = list(transport.events())

    assert events == [
        InboundEvent(CONSOLE_CHANNEL_ID, CONSOLE_USER_ID, "help", is_direct=True),
        InboundEvent(CONSOLE_CHANNEL_ID, CONSOLE_USER_ID, "deploy --env=prod", is_direct=True),
    ]


def test_send_message_prints_reply() -> None:
    out = io.StringIO()
    transport = ConsoleTransport(app_name="bot", stdin=io.StringIO(""), stdout=out)

    transport.send_message("step 1", CONSOLE_CHANNEL_ID)

    line = out.getvalue().strip()
    assert line.startswith("[") and line.endswith("] <<< bot: step 1")


def test_stop_ends_events() -> None:
    transport = ConsoleTransport(stdin=io.StringIO(""), stdout=io.StringIO())
    transport.stop()
    assert list(transport.events()) == []


def test_labels() -> None:
    transport = ConsoleTransport(stdin=io.StringIO(""), stdout=io.StringIO())
    assert transport.resolve_channel_label(CONSOLE_CHANNEL_ID) == "#console"
    assert transport.resolve_user_label(CONSOLE_USER_ID) == "@" + getpass.getuser()
    assert transport.resolve_user_label("bob") == "@bob"
    assert transport.mention_tokens() == ()
