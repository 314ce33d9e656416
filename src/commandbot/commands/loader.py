# src/commandbot/commands/loader.py

"""
Load command definitions from YAML.

    commands:
      - name: deploy
        command: ./scripts/deploy.sh --env ${env}
        params: [env]
        log: deploy.log
        error_channel: "!ops-errors:example.org"
        channels: ["#ops"]
        users: ["@alice"]

A bare top-level list of commands is accepted too.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from ..core.errors import CommandConfigError
from .command import Command

logger = logging.getLogger(__name__)


def _str_list(raw: Any, *, field: str, where: str) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list):
        raise CommandConfigError(f"{where}: '{field}' must be a list")
    return tuple(str(x).strip() for x in raw if str(x).strip())


def _resolve_log(raw: Any, log_dir: Path | None) -> str:
    name = str(raw or "").strip()
    if not name:
        return ""
    path = Path(name).expanduser()
    if not path.is_absolute() and log_dir is not None:
        path = log_dir / path
    return str(path)


def parse_commands(raw: Any, *, source: str = "<config>", log_dir: str | Path | None = None) -> list[Command]:
    if isinstance(raw, dict):
        raw = raw.get("commands")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise CommandConfigError(f"{source}: expected a list of commands")

    base = Path(log_dir) if log_dir is not None else None
    commands: list[Command] = []

    for i, item in enumerate(raw):
        where = f"{source}: command #{i + 1}"
        if not isinstance(item, dict):
            raise CommandConfigError(f"{where}: expected a mapping")

        name = str(item.get("name") or "").strip()
        template = str(item.get("command") or "").strip()
        if not name:
            raise CommandConfigError(f"{where}: missing 'name'")
        if not template:
            raise CommandConfigError(f"{where} ({name}): missing 'command'")

        commands.append(
            Command(
                name=name,
                command=template,
                param_names=_str_list(item.get("params"), field="params", where=where),
                log_filename=_resolve_log(item.get("log"), base),
                error_channel_id=str(item.get("error_channel") or "").strip(),
                channel_names=_str_list(item.get("channels"), field="channels", where=where),
                user_names=_str_list(item.get("users"), field="users", where=where),
                description=str(item.get("help") or "").strip(),
            )
        )

    return commands


def load_commands(path: str | Path, *, log_dir: str | Path | None = None) -> list[Command]:
    """Read and validate a YAML command file. A missing file yields no commands."""
    path = Path(path).expanduser()
    if not path.exists():
        logger.warning("Command file %s not found; only built-in commands are available.", path)
        return []

    try:
        with path.open("r", encoding="utf-8") as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CommandConfigError(f"invalid YAML in {path}: {e}") from e
    except OSError as e:
        raise CommandConfigError(f"could not read {path}: {e}") from e

    commands = parse_commands(raw, source=str(path), log_dir=log_dir)
    logger.info("Loaded %d command(s) from %s", len(commands), path)
    return commands
