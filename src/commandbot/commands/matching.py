# src/commandbot/commands/matching.py

from __future__ import annotations


def match(command_name: str, text: str) -> tuple[bool, str]:
    """
    Decide whether `text` invokes `command_name`.

    Returns (matched, remainder). The name must be followed by end of text or
    a single space; everything after that space is returned verbatim.
    "foo" does not match "foobar".
    """
    if not text.startswith(command_name):
        return False, ""
    if len(text) == len(command_name):
        return True, ""

    rest = text[len(command_name):]
    if rest[0] != " ":
        return False, ""
    return True, rest[1:]
