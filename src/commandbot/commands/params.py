# src/commandbot/commands/params.py

"""
Parameter parser.

Turns the trailing argument string of a command into an ordered list of
(name, value) pairs. Accepted forms:

    --name=value
    --name value

Values may be quoted with shell rules ("two words", 'single'). Order of
appearance is kept and duplicate names are not merged.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from ..core.errors import ParseError

FLAG_PREFIX = "--"


@dataclass(frozen=True, slots=True)
class Param:
    name: str
    value: str


def _split_words(text: str) -> list[str]:
    try:
        return shlex.split(text)
    except ValueError as e:
        # shlex reports "No closing quotation" / "No escaped character".
        raise ParseError(f"malformed parameters: {str(e).lower()}") from e


def _flag_name(word: str) -> str | None:
    if not word.startswith(FLAG_PREFIX):
        return None
    name = word[len(FLAG_PREFIX):]
    return name or None


def parse_params(text: str) -> list[Param]:
    """
    Parse `text` into a list of Param.

    Raises ParseError when a flag has no value, a value has no flag, a flag
    has an empty name, or quoting is unterminated.
    """
    words = _split_words(text)
    params: list[Param] = []

    i = 0
    while i < len(words):
        word = words[i]
        name = _flag_name(word)
        if name is None:
            raise ParseError(f"unexpected argument: {word!r}")

        if "=" in name:
            name, _, value = name.partition("=")
            if not name:
                raise ParseError(f"missing parameter name: {word!r}")
            params.append(Param(name=name, value=value))
            i += 1
            continue

        if i + 1 >= len(words) or _flag_name(words[i + 1]) is not None:
            raise ParseError(f"missing value for --{name}")

        params.append(Param(name=name, value=words[i + 1]))
        i += 2

    return params
