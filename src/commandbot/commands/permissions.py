# src/commandbot/commands/permissions.py

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol


class Restricted(Protocol):
    channel_names: Sequence[str]
    user_names: Sequence[str]


def allowed(command: Restricted, channel_label: str, user_label: str) -> bool:
    """
    Check the command's two allow-lists independently; both must pass.

    An empty list means no restriction on that axis. Labels are compared
    literally (no wildcards, no case folding).
    """
    if command.channel_names and channel_label not in command.channel_names:
        return False
    if command.user_names and user_label not in command.user_names:
        return False
    return True
