# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from commandbot.core.dispatcher import Dispatcher
from commandbot.tasks.registry import TaskRegistry

from .fakes import FakeResponder, FakeTransport


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport(
        channel_labels={"C-ops": "#ops", "C-general": "#general", "D-1": "<direct message>"},
        user_labels={"U-alice": "@alice", "U-bob": "@bob"},
    )


@pytest.fixture()
def responder() -> FakeResponder:
    return FakeResponder()


@pytest.fixture()
def bot(transport: FakeTransport, responder: FakeResponder) -> Dispatcher:
    return Dispatcher(transport, responder)


@pytest.fixture()
def tasks() -> TaskRegistry:
    return TaskRegistry()


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object for bootstrap tests.

    A SimpleNamespace rather than the real config keeps tests isolated from
    the environment.
    """
    return SimpleNamespace(
        app_name="commandbot-test",
        data_dir=tmp_path / "data",
        task_log_dir=tmp_path / "data" / "logs",
        matrix_store_path=tmp_path / "data" / "matrix_store",
        commands_path=tmp_path / "commands.yaml",
        matrix_enabled=False,
        matrix_user_id="",
        matrix_rooms=[],
        fallback_enabled=False,
        openrouter_api_key=None,
        openrouter_base_url="https://openrouter.ai/api/v1",
        llm_models=[],
        extra_headers={},
    )
