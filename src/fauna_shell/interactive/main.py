import asyncio
import re
from typing import Any, Optional

import structlog
from prompt_toolkit import PromptSession
from prompt_toolkit.filters import Condition
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings

from ..connection import ConnectionOptions, ConnectionService
from ..errors import (
    EvaluationError,
    IncompleteInput,
    QuerySyntaxError,
    TransportError,
)
from ..query import BINDINGS
from ..utils import get_history_path
from .commands import CommandRegistry, MetaCommand
from .completer import ShellCompleter
from .executor import ExecutionOutcome, QueryExecutor
from .output_handler import IOutputHandler, RichConsoleHandler, console
from .parser import ExpressionParser, is_blank
from .session import LoopState, SessionState

logger = structlog.get_logger(__name__)

CONTINUATION_PROMPT = "... "
_META_COMMAND_RE = re.compile(r"^\.([A-Za-z_]+)(?:\s+(.*?))?\s*$")


def _uncancel_current_task():
    """Clears the pending cancellation asyncio.run leaves on the main task after SIGINT."""
    task = asyncio.current_task()
    uncancel = getattr(task, "uncancel", None)
    if uncancel is not None:
        uncancel()


class ShellLoop:
    """
    The read-eval-print loop of the shell.

    `handle_line` drives the state machine for one line of input; `run` reads
    lines from a prompt_toolkit session until the user exits. A line is fully
    processed, including any query round trip, before the next one is read.
    """

    def __init__(
        self,
        state: SessionState,
        output_handler: Optional[IOutputHandler] = None,
        parser: Optional[ExpressionParser] = None,
        executor: Optional[QueryExecutor] = None,
    ):
        self.state = state
        self.output_handler = output_handler or RichConsoleHandler()
        self.parser = parser or ExpressionParser()
        self.executor = executor or QueryExecutor(state.connection)
        self.commands = CommandRegistry(
            builtins=[
                MetaCommand("break", "Abort the statement being typed", self._break),
                MetaCommand("exit", "Exit the shell", self._exit),
                MetaCommand("help", "Print this help message", self._help),
            ],
            custom=[
                MetaCommand("clear", "Clear the repl", self.output_handler.clear),
                MetaCommand("last_error", "Display the last error", self._last_error),
            ],
        )
        self.state.commands = self.commands

    @property
    def prompt(self) -> str:
        if self.state.buffer:
            return CONTINUATION_PROMPT
        return f"{self.state.scope_name or ''}> "

    async def handle_line(self, line: str):
        if not self.state.is_running:
            return

        meta = _META_COMMAND_RE.match(line.strip())
        if meta:
            self.run_meta_command(meta.group(1), meta.group(2))
            return

        if not self.state.buffer and is_blank(line):
            return

        self.state.buffer.append(line)
        result = self.parser.parse("\n".join(self.state.buffer))

        if isinstance(result, IncompleteInput):
            self.state.loop_state = LoopState.ACCUMULATING
            return

        # Any other outcome ends the statement.
        self.state.buffer.clear()

        if isinstance(result, QuerySyntaxError):
            logger.debug("loop.syntax_error", line=result.line, column=result.column)
            self.state.last_error = result
            self.state.loop_state = LoopState.IDLE
            self.output_handler.handle_error(result)
            return

        self.state.loop_state = LoopState.EVALUATING
        try:
            outcome = await self.executor.execute(
                result.nodes, self.state.evaluation_scope()
            )
        except (asyncio.CancelledError, KeyboardInterrupt):
            # Ctrl+C while waiting on the service abandons the query only.
            _uncancel_current_task()
            logger.info("loop.evaluation.interrupted")
            outcome = ExecutionOutcome(error=TransportError("Query interrupted"))
        finally:
            self.state.loop_state = LoopState.IDLE

        if outcome.error is not None:
            self.state.last_error = outcome.error
        self.output_handler.handle_outcome(outcome)

    def run_meta_command(self, name: str, argument: Optional[str] = None):
        command = self.commands.get(name)
        if command is None:
            self.output_handler.print_message("Invalid REPL keyword")
            return
        if argument:
            self.output_handler.print_message(f".{name} does not take arguments")
            return
        logger.debug("loop.meta_command", command=name)
        try:
            command.action()
        except Exception as e:
            logger.error("loop.meta_command.failed", command=name, error=str(e))
            self.output_handler.handle_error(
                EvaluationError(f"{type(e).__name__}: {e}")
            )

    def abort_statement(self):
        self.state.reset_buffer()

    async def run(self, prompt_session: Optional[Any] = None):
        prompt_session = prompt_session or self._create_prompt_session()

        while self.state.is_running:
            try:
                line = await prompt_session.prompt_async(self.prompt)
            except KeyboardInterrupt:
                if self.state.buffer:
                    self.abort_statement()
                else:
                    self.output_handler.print_message(
                        "(To exit, press Ctrl+D or type .exit)"
                    )
                continue
            except EOFError:
                self.state.loop_state = LoopState.CLOSED
                continue

            await self.handle_line(line)

    def _create_prompt_session(self) -> PromptSession:
        bindings = KeyBindings()
        prompt_session = PromptSession(
            history=FileHistory(str(get_history_path())),
            completer=ShellCompleter(self.state),
            complete_while_typing=False,
        )

        @bindings.add(
            "enter",
            filter=Condition(
                lambda: prompt_session.default_buffer.complete_state is not None
                and prompt_session.default_buffer.complete_state.current_completion
                is not None
            ),
        )
        def _(event):
            """Applies the current completion instead of submitting."""
            event.current_buffer.complete_state.current_completion.apply_completion(
                event.current_buffer
            )

        prompt_session.key_bindings = bindings
        return prompt_session

    def _break(self):
        self.abort_statement()

    def _exit(self):
        self.state.loop_state = LoopState.CLOSED

    def _help(self):
        self.output_handler.show_commands(self.commands)

    def _last_error(self):
        self.output_handler.show_last_error(self.state.last_error)


async def run_shell(
    service: ConnectionService,
    scope: Optional[str] = None,
    prompt_session: Optional[Any] = None,
):
    """Resolves the connection, prints the banner and runs the loop until exit."""
    connection = None
    try:
        connection = await service.get_client(scope)
        if scope:
            console.print(f"Starting shell for database {scope}")
        console.print(f"Connected to {connection.endpoint}")
        console.print("Type Ctrl+D or .exit to exit the shell")

        state = SessionState(connection, BINDINGS, scope_name=scope)
        await ShellLoop(state).run(prompt_session)
    finally:
        await service.aclose(*([connection] if connection else []))


def start_repl(options: ConnectionOptions, scope: Optional[str] = None):
    """Starts the interactive shell. Startup errors propagate to the caller."""
    service = ConnectionService(options)
    try:
        asyncio.run(run_shell(service, scope))
    except KeyboardInterrupt:
        # A second Ctrl+C during the same query stops the event loop itself.
        logger.info("shell.interrupted")
    print("Exiting shell. Goodbye!")
