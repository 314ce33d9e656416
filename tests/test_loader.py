# tests/test_loader.py

from __future__ import annotations

from pathlib import Path

import pytest

from commandbot.commands.loader import load_commands, parse_commands
from commandbot.core.errors import CommandConfigError

_YAML = """
commands:
  - name: deploy
    command: ./deploy.sh --env ${env}
    params: [env, region]
    log: deploy.log
    error_channel: "!errors:example.org"
    channels: ["#ops"]
    users: ["@alice", "@bob"]
    help: deploy the service
  - name: uptime
    command: uptime
"""


def test_load_full_definition(tmp_path: Path) -> None:
    path = tmp_path / "commands.yaml"
    path.write_text(_YAML, "utf-8")

    deploy, uptime = load_commands(path, log_dir=tmp_path / "logs")

    assert deploy.name == "deploy"
    assert deploy.command == "./deploy.sh --env ${env}"
    assert deploy.param_names == ("env", "region")
    assert deploy.log_filename == str(tmp_path / "logs" / "deploy.log")
    assert deploy.error_channel_id == "!errors:example.org"
    assert deploy.channel_names == ("#ops",)
    assert deploy.user_names == ("@alice", "@bob")
    assert deploy.description == "deploy the service"

    assert uptime.param_names == ()
    assert uptime.log_filename == ""
    assert uptime.channel_names == () and uptime.user_names == ()


def test_bare_list_and_absolute_log(tmp_path: Path) -> None:
    log = tmp_path / "abs.log"
    commands = parse_commands(
        [{"name": "x", "command": "true", "log": str(log), "channels": "#ops"}],
        log_dir=tmp_path / "ignored",
    )
    assert commands[0].log_filename == str(log)
    assert commands[0].channel_names == ("#ops",)


def test_empty_document_has_no_commands() -> None:
    assert parse_commands(None) == []
    assert parse_commands({"commands": None}) == []


@pytest.mark.parametrize(
    "raw, message",
    [
        ([{"command": "true"}], "missing 'name'"),
        ([{"name": "x"}], "missing 'command'"),
        (["deploy"], "expected a mapping"),
        ({"commands": "deploy"}, "expected a list"),
        ([{"name": "x", "command": "true", "params": {"env": 1}}], "'params' must be a list"),
    ],
)
def test_invalid_definitions(raw, message: str) -> None:
    with pytest.raises(CommandConfigError, match=message):
        parse_commands(raw)


def test_invalid_yaml(tmp_path: Path) -> None:
    path = tmp_path / "commands.yaml"
    path.write_text("commands: [\n  - name: x\n", "utf-8")
    with pytest.raises(CommandConfigError, match="invalid YAML"):
        load_commands(path)


def test_missing_file_yields_nothing(tmp_path: Path) -> None:
    assert load_commands(tmp_path / "nope.yaml") == []
