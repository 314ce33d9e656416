# tests/test_bootstrap.py

from __future__ import annotations

from types import SimpleNamespace

import pytest

from commandbot.cli.bootstrap import create_app, create_responder, create_transport
from commandbot.connectors.console_connector import ConsoleTransport
from commandbot.core.errors import CommandConfigError, DuplicateNameError
from commandbot.llm.offline import OfflineLLMClient
from commandbot.llm.responder import LLMFallbackResponder

from .fakes import FakeTransport

_COMMANDS = """
commands:
  - name: deploy
    command: ./deploy.sh
    params: [env]
    log: deploy.log
  - name: uptime
    command: uptime
"""


def test_create_app_registers_builtins_then_commands(settings: SimpleNamespace) -> None:
    settings.commands_path.write_text(_COMMANDS, "utf-8")

    app = create_app(settings=settings, transport=FakeTransport())

    assert [h.name for h in app.dispatcher.handlers] == ["help", "tasks", "kill", "deploy", "uptime"]
    assert [c.name for c in app.commands] == ["deploy", "uptime"]
    assert app.commands[0].log_filename == str(settings.task_log_dir / "deploy.log")
    assert settings.task_log_dir.is_dir()
    assert app.dispatcher.responder is None
    assert len(app.tasks) == 0


def test_create_app_without_command_file(settings: SimpleNamespace) -> None:
    app = create_app(settings=settings, transport=FakeTransport())
    assert [h.name for h in app.dispatcher.handlers] == ["help", "tasks", "kill"]


def test_command_clashing_with_builtin_is_rejected(settings: SimpleNamespace) -> None:
    settings.commands_path.write_text("- name: help\n  command: echo hi\n", "utf-8")
    with pytest.raises(DuplicateNameError):
        create_app(settings=settings, transport=FakeTransport())


def test_bad_command_file_is_a_config_error(settings: SimpleNamespace) -> None:
    settings.commands_path.write_text("- name: deploy\n", "utf-8")
    with pytest.raises(CommandConfigError):
        create_app(settings=settings, transport=FakeTransport())


def test_fallback_without_api_key_runs_offline(settings: SimpleNamespace) -> None:
    settings.fallback_enabled = True

    responder = create_responder(settings)

    assert isinstance(responder, LLMFallbackResponder)
    assert isinstance(responder._llm, OfflineLLMClient)


def test_console_transport_when_matrix_disabled(settings: SimpleNamespace) -> None:
    transport = create_transport(settings)
    assert isinstance(transport, ConsoleTransport)
    assert transport.app_name == "commandbot-test"
