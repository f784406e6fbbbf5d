import io
from pathlib import Path
from typing import Any, Callable, List, Optional

import pytest
from rich.console import Console

from fauna_shell import utils
from fauna_shell.connection.config import ENV_KEYS
from fauna_shell.interactive.main import ShellLoop
from fauna_shell.interactive.output_handler import RichConsoleHandler
from fauna_shell.interactive.session import SessionState
from fauna_shell.query import BINDINGS, to_wire


def evaluate_arithmetic(wire: Any) -> Any:
    """Answers `add` expressions like the service would and echoes anything else."""
    if isinstance(wire, dict) and "add" in wire:
        terms = wire["add"]
        return sum(terms) if isinstance(terms, list) else terms
    return wire


class FakeConnection:
    """A stand-in for FaunaClient that records every expression it receives."""

    endpoint = "https://db.fauna.com:443"

    def __init__(self, handler: Optional[Callable[[Any], Any]] = None):
        self.handler = handler or evaluate_arithmetic
        self.received: List[Any] = []

    async def query(self, expression: Any) -> Any:
        self.received.append(expression)
        return self.handler(to_wire(expression))

    @property
    def received_wire(self) -> List[Any]:
        return [to_wire(e) for e in self.received]


@pytest.fixture
def clean_shell_home(tmp_path: Path, monkeypatch):
    """
    Creates an isolated shell home for each test, removes any FAUNA_* settings
    from the environment and runs the test from an empty working directory.
    """
    temp_home = tmp_path / ".fauna-shell"
    monkeypatch.setattr(utils, "SHELL_HOME", temp_home)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    yield temp_home


@pytest.fixture
def connection_factory():
    """Builds fake connections with a custom response handler."""
    return FakeConnection


@pytest.fixture
def fake_connection() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def recording_console() -> Console:
    return Console(file=io.StringIO(), width=120, color_system=None)


@pytest.fixture
def output_handler(recording_console: Console) -> RichConsoleHandler:
    return RichConsoleHandler(recording_console)


@pytest.fixture
def session_state(fake_connection: FakeConnection) -> SessionState:
    return SessionState(fake_connection, BINDINGS)


@pytest.fixture
def shell_loop(session_state: SessionState, output_handler: RichConsoleHandler):
    return ShellLoop(session_state, output_handler=output_handler)
