from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional

import structlog
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.pretty import Pretty
from rich.table import Table

from ..errors import ShellError
from .commands import MetaCommand
from .executor import ExecutionOutcome

logger = structlog.get_logger(__name__)

# A single, shared console instance for all rich output in the shell
console = Console()


class _Keyword:
    """Prints as a bare FQL keyword inside rich pretty output."""

    def __init__(self, text: str):
        self.text = text

    def __repr__(self) -> str:
        return self.text


_NULL, _TRUE, _FALSE = _Keyword("null"), _Keyword("true"), _Keyword("false")


def to_display(value: Any) -> Any:
    """Swaps None and booleans for their FQL spelling, at any depth."""
    if value is None:
        return _NULL
    if value is True:
        return _TRUE
    if value is False:
        return _FALSE
    if isinstance(value, dict):
        return {key: to_display(item) for key, item in value.items()}
    if isinstance(value, list):
        return [to_display(item) for item in value]
    return value


class IOutputHandler(ABC):
    """
    An abstract interface for presenting what the session loop produces.
    The loop never writes to the terminal directly, so the same session can be
    rendered to a terminal or captured in tests.
    """

    @abstractmethod
    def handle_outcome(self, outcome: ExecutionOutcome):
        """Renders the outcome of one evaluation cycle."""

    @abstractmethod
    def handle_error(self, error: ShellError):
        """Renders an error: the message, then any structured payload."""

    @abstractmethod
    def show_last_error(self, error: Optional[ShellError]):
        """Renders the error object recorded by the last failed evaluation."""

    @abstractmethod
    def show_commands(self, commands: Iterable[MetaCommand]):
        """Lists the available meta-commands."""

    @abstractmethod
    def print_message(self, message: str):
        """Prints a plain informational line."""

    @abstractmethod
    def clear(self):
        """Clears the visible screen."""


class RichConsoleHandler(IOutputHandler):
    """
    Renders to the terminal with rich. Results are always printed at full
    depth, and no rendering failure ever propagates back into the loop.
    """

    def __init__(self, output_console: Optional[Console] = None):
        self.console = output_console or console

    def handle_outcome(self, outcome: ExecutionOutcome):
        if outcome.error is not None:
            self.handle_error(outcome.error)
            return
        self.handle_value(outcome.value)

    def handle_value(self, value: Any):
        self._safe_print(Pretty(to_display(value), max_depth=None), value)

    def handle_error(self, error: ShellError):
        message = getattr(error, "message", None) or str(error)
        self._safe_print(f"[bold red]Error:[/bold red] {escape(message)}", message)
        payload = getattr(error, "payload", None)
        if payload is not None:
            self._safe_print(
                Pretty(to_display(payload), max_depth=None, expand_all=True), payload
            )

    def show_last_error(self, error: Optional[ShellError]):
        if error is None:
            self.print_message("No error has been recorded in this session.")
            return
        self._safe_print(Pretty(error), error)
        self.handle_error(error)

    def show_commands(self, commands: Iterable[MetaCommand]):
        commands = list(commands)
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Command", style="cyan")
        table.add_column("Help")
        for command in commands:
            table.add_row(f".{command.name}", command.help)
        self._safe_print(table, [c.name for c in commands])

    def print_message(self, message: str):
        self._safe_print(escape(message), message)

    def clear(self):
        self.console.clear()

    def _safe_print(self, renderable: Any, raw: Any):
        """Prints a renderable, degrading to repr() and then to a type marker."""
        try:
            self.console.print(renderable)
            return
        except Exception as e:
            logger.debug("output.render.failed", error=str(e))
        try:
            self.console.print(repr(raw), markup=False, highlight=False)
            return
        except Exception as e:
            logger.debug("output.repr.failed", error=str(e))
        try:
            self.console.print(
                f"<unrenderable {type(raw).__name__}>", markup=False, highlight=False
            )
        except Exception as e:
            logger.error("output.print.failed", error=str(e))
